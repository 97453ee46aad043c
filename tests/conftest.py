"""
Shared pytest fixtures for the Scout test suite.
"""
import os

# Point the module-level engine at SQLite before anything imports scout
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from scout.core.data_types import ExtractedFields, ExtractionResult, RawItem, SourceDescriptor
from scout.core.database import init_db, make_session_factory
from scout.core.models import SourceType, TrustLevel


# --- Database Fixtures ---

@pytest.fixture
async def session_factory(tmp_path):
    """Async session factory over a throwaway SQLite file with all tables created."""
    factory = make_session_factory(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await init_db(factory)
    yield factory
    await factory.kw["bind"].dispose()


# --- Source Fixtures ---

@pytest.fixture
def high_trust_source():
    return SourceDescriptor(
        name="techcrunch",
        type=SourceType.RSS,
        endpoint="https://techcrunch.com/feed/",
        reliability=0.95,
        trust=TrustLevel.HIGH,
    )


@pytest.fixture
def low_trust_source():
    return SourceDescriptor(
        name="serp",
        type=SourceType.SERP,
        reliability=0.85,
        trust=TrustLevel.LOW,
    )


@pytest.fixture
def raw_item():
    return RawItem(
        text="Acme raises $5M Series A led by Sequoia to build AI tooling for accountants. " * 3,
        source_url="https://techcrunch.com/2026/10/01/acme-raises-5m",
        source_name="techcrunch",
        published_at="Wed, 01 Oct 2026 10:00:00 +0000",
    )


@pytest.fixture
def acme_fields():
    """Factory for extracted fields with overridable attributes."""
    def _make(**overrides):
        values = dict(
            name="Acme",
            date_announced="2026-10-01",
            description="AI tooling for accountants",
            website="https://acme.ai",
            funding_amount="$5M",
            round_type="Series A",
            industry="AI/ML",
            founders=["Jane Doe"],
            investors=["Sequoia"],
        )
        values.update(overrides)
        return ExtractedFields(**values)
    return _make


@pytest.fixture
def stub_gateway(acme_fields):
    """Gateway stand-in whose validate_and_extract returns a valid Acme extraction."""
    gateway = MagicMock()
    gateway.validate_and_extract = AsyncMock(return_value=ExtractionResult.valid(acme_fields()))
    gateway.extract_company = AsyncMock(return_value=None)
    gateway.extract_founders = AsyncMock(return_value=[])
    gateway.classify_industry = AsyncMock(return_value=None)
    return gateway


@pytest.fixture
def fixed_now():
    return datetime(2026, 10, 19, 12, 0, 0)
