"""
Unit tests for the enrichment queue, website finder, founder discovery
and the enrichment service.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from scout.core.errors import EnrichmentError
from scout.core.utils import is_company_website
from scout.core.web_search import SearchHit
from scout.ingestion.database import StartupModel
from scout.ingestion.enrichment import (
    EnrichmentService,
    WebsiteFinder,
    clean_url,
)
from scout.ingestion.enrichment_queue import EnrichmentQueue
from scout.ingestion.founder_discovery import FounderDiscoveryService


class TestEnrichmentQueue:

    async def test_drains_in_order_one_at_a_time(self):
        seen = []
        active = 0
        max_active = 0

        async def enrich(record_id):
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0)
            seen.append(record_id)
            active -= 1

        queue = EnrichmentQueue(enrich, delay_seconds=0)
        for record_id in range(1, 6):
            queue.enqueue(record_id)
        await queue.wait_for_idle(poll_interval=0.01)

        assert seen == [1, 2, 3, 4, 5]
        assert max_active == 1
        assert queue.processed == 5
        assert queue.is_idle
        assert len(queue) == 0

    async def test_failure_does_not_stop_the_drain(self):
        calls = []

        async def enrich(record_id):
            calls.append(record_id)
            if record_id == 2:
                raise EnrichmentError("boom")

        queue = EnrichmentQueue(enrich, delay_seconds=0)
        for record_id in (1, 2, 3):
            queue.enqueue(record_id)
        await queue.wait_for_idle(poll_interval=0.01)

        assert calls == [1, 2, 3]
        assert queue.processed == 2
        assert queue.failed == 1

    async def test_enqueue_returns_before_work_runs(self):
        started = asyncio.Event()

        async def enrich(record_id):
            started.set()

        queue = EnrichmentQueue(enrich, delay_seconds=0)
        queue.enqueue(7)
        assert not started.is_set()
        assert not queue.is_idle
        await queue.wait_for_idle(poll_interval=0.01)
        assert started.is_set()

    async def test_restarts_after_going_idle(self):
        seen = []

        async def enrich(record_id):
            seen.append(record_id)

        queue = EnrichmentQueue(enrich, delay_seconds=0)
        queue.enqueue(1)
        await queue.wait_for_idle(poll_interval=0.01)
        queue.enqueue(2)
        await queue.wait_for_idle(poll_interval=0.01)
        assert seen == [1, 2]

    async def test_idle_queue_returns_immediately(self):
        queue = EnrichmentQueue(AsyncMock(), delay_seconds=0)
        await asyncio.wait_for(queue.wait_for_idle(poll_interval=0.01), timeout=1)


class TestWebsiteHelpers:

    @pytest.mark.parametrize("url,expected", [
        ("https://acme.ai", True),
        ("https://techcrunch.com/2026/acme", False),
        ("https://www.linkedin.com/company/acme", False),
        ("https://blog.medium.com/acme", False),
        (None, False),
    ])
    def test_is_company_website(self, url, expected):
        assert is_company_website(url) is expected

    def test_clean_url(self):
        assert clean_url("https://www.acme.ai/about?x=1") == "https://acme.ai"
        assert clean_url("acme.ai/pricing") == "https://acme.ai"


class TestWebsiteFinder:

    async def test_prefers_host_containing_name(self):
        search = MagicMock()
        search.search = AsyncMock(return_value=[
            SearchHit("Acme on Crunchbase", "https://www.crunchbase.com/organization/acme"),
            SearchHit("Some blog", "https://someblog.io/post"),
            SearchHit("Acme - AI for accountants", "https://www.acme-ai.com/about"),
        ])
        finder = WebsiteFinder(search)
        assert await finder.find("Acme AI") == "https://acme-ai.com"

    async def test_falls_back_to_first_company_host(self):
        search = MagicMock()
        search.search = AsyncMock(return_value=[
            SearchHit("Crunchbase", "https://crunchbase.com/organization/acme"),
            SearchHit("Other", "https://getacme.io"),
        ])
        assert await WebsiteFinder(search).find("Zeta") == "https://getacme.io"

    async def test_search_failure_returns_none(self):
        search = MagicMock()
        search.search = AsyncMock(side_effect=aiohttp.ClientError("down"))
        assert await WebsiteFinder(search).find("Acme") is None

    async def test_meta_description_survives_mislabelled_charset(self):
        html = '<html><head><meta name="description" content="AI bookkeeping for accountants"></head></html>'

        class MislabelledResponse:
            status = 200

            async def text(self, encoding=None, errors="strict"):
                if errors == "strict":
                    raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
                return html

        class FakeSession:
            def __init__(self, *args, **kwargs):
                pass

            async def __aenter__(self):
                return self

            async def __aexit__(self, *exc):
                return False

            def get(self, url):
                class _Request:
                    async def __aenter__(self):
                        return MislabelledResponse()

                    async def __aexit__(self, *exc):
                        return False
                return _Request()

        with patch("aiohttp.ClientSession", FakeSession):
            description = await WebsiteFinder(MagicMock()).fetch_meta_description("https://acme.ai")

        assert description == "AI bookkeeping for accountants"


class TestFounderDiscovery:

    def test_domain_query_only_with_website(self):
        service = FounderDiscoveryService(MagicMock(), search=MagicMock(), max_queries=10, delay_seconds=0)
        without = service.build_queries("Acme")
        with_site = service.build_queries("Acme", "https://acme.ai")
        assert not any("acme.ai" in q for q in without)
        assert any("acme.ai" in q for q in with_site)

    async def test_distinct_founders_capped(self):
        search = MagicMock()
        search.search = AsyncMock(return_value=[SearchHit("Acme founders", "https://x.example", "Jane Doe and John Roe")])
        gateway = MagicMock()
        gateway.extract_founders = AsyncMock(side_effect=[
            ["Jane Doe", "John Roe"],
            ["jane doe", "Max Moe", "Extra Person"],
        ])
        service = FounderDiscoveryService(gateway, search=search, max_queries=3, max_founders=3, delay_seconds=0)

        founders = await service.discover("Acme")

        assert founders == ["Jane Doe", "John Roe", "Max Moe"]
        assert gateway.extract_founders.call_count == 2

    async def test_search_errors_skipped(self):
        search = MagicMock()
        search.search = AsyncMock(side_effect=[
            asyncio.TimeoutError(),
            [SearchHit("t", "https://x.example", "Jane Doe founded Acme")],
        ])
        gateway = MagicMock()
        gateway.extract_founders = AsyncMock(return_value=["Jane Doe"])
        service = FounderDiscoveryService(gateway, search=search, max_queries=2, delay_seconds=0)

        assert await service.discover("Acme") == ["Jane Doe"]


class TestEnrichmentService:

    async def add_startup(self, session_factory, **kwargs):
        async with session_factory() as session:
            record = StartupModel(name="Acme", source_url="https://techcrunch.com/acme", **kwargs)
            session.add(record)
            await session.commit()
            return record.id

    async def test_fills_website_description_and_founders(self, session_factory):
        startup_id = await self.add_startup(session_factory)
        finder = MagicMock()
        finder.find = AsyncMock(return_value="https://acme.ai")
        finder.fetch_meta_description = AsyncMock(return_value="AI tooling for accountants")
        discovery = MagicMock()
        discovery.discover = AsyncMock(return_value=["Jane Doe"])
        service = EnrichmentService(finder, discovery, session_factory=session_factory)

        assert await service.enrich_startup(startup_id) == (True, True)

        async with session_factory() as session:
            record = await session.get(StartupModel, startup_id)
        assert record.website == "https://acme.ai"
        assert record.description == "AI tooling for accountants"
        assert record.founders == ["Jane Doe"]
        assert record.enrichment_complete is True
        discovery.discover.assert_awaited_once_with("Acme", "https://acme.ai")

    async def test_news_site_website_is_replaced(self, session_factory):
        startup_id = await self.add_startup(
            session_factory, website="https://techcrunch.com/acme", founders=["Jane Doe"],
        )
        finder = MagicMock()
        finder.find = AsyncMock(return_value=None)
        discovery = MagicMock()
        discovery.discover = AsyncMock(return_value=[])
        service = EnrichmentService(finder, discovery, session_factory=session_factory)

        assert await service.enrich_startup(startup_id) == (False, False)
        finder.find.assert_awaited_once()
        discovery.discover.assert_not_called()

        async with session_factory() as session:
            record = await session.get(StartupModel, startup_id)
        assert record.enrichment_complete is False

    async def test_complete_record_untouched(self, session_factory):
        startup_id = await self.add_startup(session_factory, website="https://acme.ai", founders=["Jane Doe"])
        finder = MagicMock()
        finder.find = AsyncMock()
        discovery = MagicMock()
        discovery.discover = AsyncMock()
        service = EnrichmentService(finder, discovery, session_factory=session_factory)

        assert await service.enrich_startup(startup_id) == (False, False)
        finder.find.assert_not_called()
        discovery.discover.assert_not_called()

    async def test_missing_record(self, session_factory):
        service = EnrichmentService(MagicMock(), MagicMock(), session_factory=session_factory)
        assert await service.enrich_startup(999) == (False, False)
