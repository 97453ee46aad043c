"""
Candidate Intake Filter.

Cheap rejection heuristics, exact-match dedup against canonical records,
then a write: high-trust sources create a canonical record directly and
enqueue it for enrichment, low-trust sources add a candidate to the
pending pool.
"""
import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scout.core.data_types import (
    Evidence, ExtractedFields, IntakeResult, RawItem, SourceDescriptor,
)
from scout.core.database import async_session_factory
from scout.core.errors import StorageError, StoreUnavailableError, ValidationRejection
from scout.core.models import IntakeOutcome, TrustLevel, ValidationStatus
from scout.core.utils import canonical_key, normalize_name, utcnow
from scout.ingestion.database import PendingStartupModel, StartupModel, apply_extracted_fields
from scout.ingestion.scoring import compute_confidence

logger = logging.getLogger(__name__)

DIRECT_CONFIDENCE = 0.95
MAX_FOUNDERS = 4

NULL_LITERALS = {"null", "none", "unknown", "n/a", "na", "nan", "not disclosed yet"}

PLACEHOLDER_NAMES = {
    "startup", "startups", "company", "unknown", "null", "none", "n a", "na", "tbd",
    "stealth", "stealth startup", "new startup", "unnamed", "unnamed startup",
    "the startup", "a startup", "this startup", "undisclosed",
}


class CandidateIntakeFilter:
    """
    Applied to every successful extraction, in order, short-circuiting:
      1. missing name or funding amount
      2. funding amount is a null/unknown literal
      3. more than four founders (extraction noise)
      4. generic placeholder name
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, enrichment_queue=None):
        self.session_factory = session_factory or async_session_factory
        self.enrichment_queue = enrichment_queue

    @classmethod
    def screen(cls, fields: ExtractedFields) -> None:
        """Raise ValidationRejection with the first failing rule."""
        name = (fields.name or "").strip()
        amount = (fields.funding_amount or "").strip()

        if not name or not amount:
            raise ValidationRejection("missing_name_or_funding")

        lowered = amount.lower()
        if lowered in NULL_LITERALS or "unknown" in lowered:
            raise ValidationRejection("null_funding")

        if len(fields.founders or []) > MAX_FOUNDERS:
            raise ValidationRejection("too_many_founders")

        normalized = normalize_name(name)
        if not normalized or normalized in PLACEHOLDER_NAMES or name.lower() in PLACEHOLDER_NAMES:
            raise ValidationRejection("placeholder_name")

    @classmethod
    def should_accept(cls, fields: ExtractedFields) -> tuple[bool, Optional[str]]:
        """(True, None) if the candidate passes the heuristics, else (False, reason)."""
        try:
            cls.screen(fields)
        except ValidationRejection as e:
            return False, e.reason
        return True, None

    async def _find_canonical(
        self, session: AsyncSession, name: str, source_url: str
    ) -> Optional[StartupModel]:
        conditions = [StartupModel.name == name]
        if source_url:
            conditions.append(StartupModel.source_url == source_url)
        stmt = select(StartupModel).where(or_(*conditions)).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _has_pending_observation(
        self, session: AsyncSession, key: str, source_url: str
    ) -> bool:
        stmt = select(PendingStartupModel).where(
            PendingStartupModel.canonical_name == key,
            PendingStartupModel.validation_status == ValidationStatus.PENDING,
        )
        for pending in (await session.execute(stmt)).scalars():
            if any(e.get("source_url") == source_url for e in pending.evidence or []):
                return True
        return False

    async def submit(
        self,
        fields: ExtractedFields,
        item: RawItem,
        descriptor: SourceDescriptor,
    ) -> IntakeResult:
        """
        Screen, dedup and store one extracted candidate.

        Duplicate-key races surface as IntegrityError and count as duplicates.
        Raises StoreUnavailableError when the database cannot be reached and
        StorageError for any other write failure.
        """
        try:
            self.screen(fields)
        except ValidationRejection as e:
            logger.debug(f"Rejected '{fields.name}' from {item.source_url}: {e.reason}")
            return IntakeResult(IntakeOutcome.REJECTED, reason=e.reason)

        name = fields.name.strip()
        try:
            async with self.session_factory() as session:
                existing = await self._find_canonical(session, name, item.source_url)
                if existing:
                    if existing.needs_revalidation:
                        existing.needs_revalidation = False
                        existing.last_validated_at = utcnow()
                        await session.commit()
                        logger.info(f"Re-observed '{existing.name}', revalidation cleared")
                    return IntakeResult(IntakeOutcome.DUPLICATE, existing.id, "canonical_exists")

                if descriptor.trust == TrustLevel.HIGH:
                    record = StartupModel(
                        source_name=descriptor.name,
                        source_url=item.source_url or None,
                        source_count=1,
                        confidence_score=DIRECT_CONFIDENCE,
                        validation_status=ValidationStatus.VALIDATED,
                        enrichment_complete=False,
                        last_validated_at=utcnow(),
                    )
                    apply_extracted_fields(record, fields)
                    outcome = IntakeOutcome.CREATED_CANONICAL
                else:
                    if await self._has_pending_observation(session, canonical_key(name), item.source_url):
                        return IntakeResult(IntakeOutcome.DUPLICATE, reason="pending_exists")
                    now = utcnow()
                    evidence = [Evidence(
                        source_name=descriptor.name,
                        source_url=item.source_url,
                        confidence=descriptor.reliability,
                        extracted_at=now,
                    )]
                    record = PendingStartupModel(
                        validation_status=ValidationStatus.PENDING,
                        aggregate_confidence=compute_confidence(evidence, now, now),
                        created_at=now,
                    )
                    apply_extracted_fields(record, fields)
                    record.set_evidence(evidence)
                    outcome = IntakeOutcome.CREATED_PENDING

                session.add(record)
                await session.commit()
                record_id = record.id
        except IntegrityError:
            logger.debug(f"Duplicate insert for '{name}' ({item.source_url}) lost the race")
            return IntakeResult(IntakeOutcome.DUPLICATE, reason="unique_violation")
        except (OperationalError, InterfaceError, OSError) as e:
            raise StoreUnavailableError(f"Database unavailable: {e}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store '{name}': {e}") from e

        if outcome == IntakeOutcome.CREATED_CANONICAL:
            logger.info(f"Created startup '{name}' (id={record_id}) from {descriptor.name}")
            if self.enrichment_queue is not None:
                self.enrichment_queue.enqueue(record_id)
        else:
            logger.info(f"Queued candidate '{name}' (id={record_id}) from {descriptor.name} for validation")
        return IntakeResult(outcome, record_id)
