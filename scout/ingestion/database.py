"""
Database models for the ingestion pipeline.

- StartupModel: canonical, externally-visible records ('startups')
- PendingStartupModel: low-trust candidates accruing evidence ('pending_startups')
- ConfidenceHistoryModel: audit trail of confidence-engine decisions
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text, BigInteger, Float,
    Enum as SQLEnum, Index, JSON,
)

from scout.core.database import Base
from scout.core.data_types import Evidence, ExtractedFields
from scout.core.models import ValidationStatus
from scout.core.utils import canonical_key, parse_date, parse_funding_amount, utcnow


class StartupModel(Base):
    """
    SQLAlchemy model for canonical startup records.
    Maps to the 'startups' table. Name and source_url are unique so that
    racing duplicate inserts fail instead of duplicating.
    """
    __tablename__ = 'startups'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    canonical_name = Column(String(255), index=True)
    description = Column(Text)
    website = Column(String(500), index=True)
    location = Column(String(255))

    # Funding
    funding_amount = Column(String(100))
    funding_amount_num = Column(BigInteger, index=True)
    round_type = Column(String(100))
    date_announced = Column(String(10))  # YYYY-MM-DD
    date_announced_at = Column(Date)

    # Classification
    industry = Column(String(100))
    tags = Column(JSON)
    founders = Column(JSON)
    founders_text = Column(String(1000), index=True)  # lowercase, comma-joined for lookup
    investors = Column(JSON)
    team_size = Column(String(50))

    # Provenance
    source_name = Column(String(100))
    source_url = Column(String(1000), unique=True)
    source_count = Column(Integer, default=1)

    confidence_score = Column(Float, default=0.95)
    validation_status = Column(SQLEnum(ValidationStatus), default=ValidationStatus.VALIDATED)
    enrichment_complete = Column(Boolean, default=False)
    needs_revalidation = Column(Boolean, default=False)
    last_validated_at = Column(DateTime, default=utcnow)

    created_at = Column(DateTime, default=utcnow)
    last_updated = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_startup_industry_date', 'industry', 'date_announced_at'),
    )

    def set_founders(self, founders: Iterable[str]) -> None:
        names = [f for f in founders if f]
        self.founders = names
        self.founders_text = ", ".join(names).lower()[:1000] or None

    def __repr__(self):
        return f"<Startup(id={self.id}, name='{self.name}', confidence={self.confidence_score})>"


class PendingStartupModel(Base):
    """
    SQLAlchemy model for candidate records in the pending pool.
    Mutated only by the confidence engine; deleted on promotion.
    """
    __tablename__ = 'pending_startups'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    canonical_name = Column(String(255), index=True)
    description = Column(Text)
    website = Column(String(500))
    location = Column(String(255))
    funding_amount = Column(String(100))
    funding_amount_num = Column(BigInteger)
    round_type = Column(String(100))
    date_announced = Column(String(10))
    date_announced_at = Column(Date)
    industry = Column(String(100))
    tags = Column(JSON)
    founders = Column(JSON)
    investors = Column(JSON)

    evidence = Column(JSON, nullable=False)  # list of Evidence dicts, never empty
    evidence_sources = Column(String(500))  # sorted distinct source names
    aggregate_confidence = Column(Float, default=0.3, index=True)
    validation_status = Column(SQLEnum(ValidationStatus), default=ValidationStatus.PENDING)
    rejection_reason = Column(String(255))
    merged_into_id = Column(Integer, nullable=True)
    last_validated_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_pending_status_sources', 'validation_status', 'evidence_sources'),
    )

    def get_evidence(self) -> List[Evidence]:
        return [Evidence.from_dict(e) for e in (self.evidence or [])]

    def set_evidence(self, evidence: List[Evidence]) -> None:
        if not evidence:
            raise ValueError("A pending record needs at least one piece of evidence")
        self.evidence = [e.to_dict() for e in evidence]
        self.evidence_sources = ",".join(sorted({e.source_name for e in evidence}))[:500]

    def __repr__(self):
        return (
            f"<PendingStartup(id={self.id}, name='{self.name}', "
            f"confidence={self.aggregate_confidence}, status={self.validation_status})>"
        )


class ConfidenceHistoryModel(Base):
    """One row per score or status change made by the confidence engine."""
    __tablename__ = 'confidence_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    pending_id = Column(Integer, index=True)
    startup_name = Column(String(255))
    previous_score = Column(Float)
    new_score = Column(Float)
    sources = Column(JSON)
    algorithm = Column(String(50), default="evidence_tier_v1")
    reason = Column(String(255))
    created_at = Column(DateTime, default=utcnow)


# ──── Field mapping helpers ────

EXTRACTED_COLUMNS = (
    "name", "description", "website", "location", "funding_amount", "round_type",
    "date_announced", "industry", "tags", "founders", "investors",
)


def apply_extracted_fields(record, fields: ExtractedFields) -> None:
    """Copy extracted fields onto a StartupModel or PendingStartupModel."""
    record.name = fields.name.strip()
    record.canonical_name = canonical_key(fields.name)
    record.description = fields.description
    record.website = fields.website
    record.location = fields.location
    record.funding_amount = fields.funding_amount
    record.funding_amount_num = parse_funding_amount(fields.funding_amount)
    record.round_type = fields.round_type
    record.date_announced = fields.date_announced
    record.date_announced_at = parse_date(fields.date_announced)
    record.industry = fields.industry
    record.tags = list(fields.tags)
    record.investors = list(fields.investors)
    if isinstance(record, StartupModel):
        record.set_founders(fields.founders)
        record.team_size = fields.team_size
    else:
        record.founders = list(fields.founders)


def canonical_from_pending(
    pending: PendingStartupModel,
    confidence: float,
    validated_at: Optional[datetime] = None,
) -> StartupModel:
    """Build the canonical record a promoted candidate becomes."""
    evidence = pending.get_evidence()
    first = evidence[0]
    record = StartupModel(
        name=pending.name,
        canonical_name=pending.canonical_name,
        description=pending.description,
        website=pending.website,
        location=pending.location,
        funding_amount=pending.funding_amount,
        funding_amount_num=pending.funding_amount_num,
        round_type=pending.round_type,
        date_announced=pending.date_announced,
        date_announced_at=pending.date_announced_at,
        industry=pending.industry,
        tags=pending.tags or [],
        investors=pending.investors or [],
        source_name=first.source_name,
        source_url=first.source_url or None,
        source_count=len({e.source_name for e in evidence}),
        confidence_score=confidence,
        validation_status=ValidationStatus.VALIDATED,
        enrichment_complete=False,
        needs_revalidation=False,
        last_validated_at=validated_at or utcnow(),
    )
    record.set_founders(pending.founders or [])
    return record
