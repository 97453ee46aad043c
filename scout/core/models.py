"""
Core enums for the scout pipeline.

NOTE: These are NOT database models. For SQLAlchemy ORM models, see
scout/ingestion/database.py. The enums below are shared by the ORM
columns, the collectors and the search path.
"""
from enum import Enum


class ValidationStatus(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class SourceType(str, Enum):
    RSS = "rss"
    HACKERNEWS = "hackernews"
    REDDIT = "reddit"
    PRODUCTHUNT = "producthunt"
    GALLERY = "gallery"
    SERP = "serp"


class TrustLevel(str, Enum):
    # High-trust sources write canonical records directly,
    # low-trust ones go through the pending pool.
    HIGH = "high"
    LOW = "low"


class IntakeOutcome(str, Enum):
    CREATED_CANONICAL = "created_canonical"
    CREATED_PENDING = "created_pending"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    NO_SIGNAL = "no_signal"
    SKIPPED = "skipped"
