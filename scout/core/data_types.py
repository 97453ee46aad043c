"""
Core lightweight data types for the scout pipeline.

These are transfer objects (Dataclasses), NOT database models.
For SQLAlchemy ORM models, see scout/ingestion/database.py.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Dict, Optional, Any

from scout.core.models import SourceType, TrustLevel, IntakeOutcome
from scout.core.utils import utcnow


@dataclass
class RawItem:
    """One harvested item, consumed once by the extraction gateway."""
    text: str
    source_url: str
    source_name: str
    published_at: Optional[str] = None


@dataclass(frozen=True)
class Evidence:
    """One source's observation of a candidate."""
    source_name: str
    source_url: str
    confidence: float
    extracted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_name": self.source_name,
            "source_url": self.source_url,
            "confidence": self.confidence,
            "extracted_at": self.extracted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Evidence":
        extracted_at = data.get("extracted_at")
        if isinstance(extracted_at, str):
            extracted_at = datetime.fromisoformat(extracted_at)
        return cls(
            source_name=data.get("source_name", ""),
            source_url=data.get("source_url", ""),
            confidence=float(data.get("confidence", 0.0)),
            extracted_at=extracted_at or utcnow(),
        )


@dataclass
class ExtractedFields:
    """Structured facts pulled out of a raw item."""
    name: Optional[str] = None
    date_announced: Optional[str] = None  # YYYY-MM-DD
    description: Optional[str] = None
    website: Optional[str] = None
    funding_amount: Optional[str] = None
    round_type: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    founders: List[str] = field(default_factory=list)
    investors: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    team_size: Optional[str] = None


@dataclass
class ExtractionResult:
    """Discriminated gateway result: invalid with a reason, or valid with data."""
    is_valid: bool
    reason: str = ""
    data: Optional[ExtractedFields] = None

    @classmethod
    def invalid(cls, reason: str) -> "ExtractionResult":
        return cls(is_valid=False, reason=reason)

    @classmethod
    def valid(cls, data: ExtractedFields) -> "ExtractionResult":
        return cls(is_valid=True, data=data)


@dataclass
class SourceDescriptor:
    """Collector configuration entry. Read-only at runtime."""
    name: str
    type: SourceType
    endpoint: str = ""
    enabled: bool = True
    reliability: float = 0.8
    trust: TrustLevel = TrustLevel.HIGH
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class IntakeResult:
    outcome: IntakeOutcome
    record_id: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class ScrapeResult:
    """Standard collector output"""
    source: str
    processed_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    rejected_count: int = 0
    items: List[RawItem] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    def record(self, result: IntakeResult) -> None:
        if result.outcome in (IntakeOutcome.CREATED_CANONICAL, IntakeOutcome.CREATED_PENDING):
            self.processed_count += 1
        elif result.outcome == IntakeOutcome.DUPLICATE:
            self.duplicate_count += 1
        elif result.outcome == IntakeOutcome.REJECTED:
            self.rejected_count += 1


@dataclass
class RevalidationRequest:
    record_id: int
    name: str
    source_name: Optional[str]
    confidence: float


@dataclass
class SweepReport:
    """Outcome counts for one confidence-engine sweep."""
    scanned: int = 0
    merged: int = 0
    promoted: int = 0
    rejected: int = 0
    held: int = 0
    unchanged: int = 0
    conflicts: List[Dict[str, Any]] = field(default_factory=list)
    promoted_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ──── Search path ────

@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str = ""
    source: str = ""
    published_date: Optional[datetime] = None
    relevance_score: float = 0.5
    content: Optional[str] = None


@dataclass
class SearchSourceResult:
    """Outcome of one source call; error set means the call failed."""
    source: str
    query: str
    results: List[SearchResult] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CompanyData:
    name: str
    description: Optional[str] = None
    website: Optional[str] = None
    funding_amount: Optional[str] = None
    round_type: Optional[str] = None
    date_announced: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    founders: List[str] = field(default_factory=list)
    investors: List[str] = field(default_factory=list)
    source_url: Optional[str] = None
    confidence: float = 0.5


@dataclass
class AggregatedSearchResult:
    query: str
    tier: str
    page: int
    page_size: int
    total_companies: int
    total_pages: int
    companies: List[CompanyData] = field(default_factory=list)
    sources_used: List[str] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)
    source_errors: Dict[str, str] = field(default_factory=dict)
    total_results: int = 0
    elapsed_ms: int = 0
