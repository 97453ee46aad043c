"""
Error taxonomy for the scout pipeline.

Failures are contained at the smallest unit that produced them: one feed
item, one search source, one enrichment task. Only StoreUnavailableError
is allowed to abort a whole collection run.
"""


class ScoutError(Exception):
    """Base class for pipeline errors."""


class CollectionError(ScoutError):
    """A source was unreachable, misconfigured or returned a malformed feed."""


class ExtractionError(ScoutError):
    """The extraction service failed or returned unusable output."""


class RateLimitError(ExtractionError):
    """The extraction service answered 429."""


class TransientAIError(ExtractionError):
    """Timeouts and 5xx responses from the extraction service."""


class ValidationRejection(ScoutError):
    """An extracted candidate failed an intake heuristic."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class StorageError(ScoutError):
    """A write to the persistent store failed for one record."""


class StoreUnavailableError(StorageError):
    """The persistent store cannot be reached at all."""


class EnrichmentError(ScoutError):
    """Enrichment of a single record failed."""
