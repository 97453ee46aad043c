"""
Deduplication & Confidence Engine.

Batch sweep over the pending pool:
1. Pairwise matching over an in-memory snapshot (single-threaded).
2. Identity matches (exact-name, website, domain) are clustered; each
   cluster merges into its earliest record and the rest are rejected as
   duplicates.
3. Funding consistency and date congruity are checked inside clusters.
   A date-congruity conflict holds the cluster back from promotion.
4. Survivors are re-scored; >= promotion threshold are copied to the
   canonical store and removed from the pool, very old low scorers are
   rejected.

Also flags stale canonical records for re-acquisition.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scout.core.config import settings
from scout.core.data_types import Evidence, RevalidationRequest, SweepReport
from scout.core.database import async_session_factory, get_async_db
from scout.core.models import ValidationStatus
from scout.core.utils import is_company_website, name_similarity, registered_domain, utcnow, website_host
from scout.ingestion.database import (
    ConfidenceHistoryModel,
    EXTRACTED_COLUMNS,
    PendingStartupModel,
    StartupModel,
    canonical_from_pending,
)
from scout.ingestion.scoring import compute_confidence, confidence_band

logger = logging.getLogger(__name__)

FUNDING_VARIANCE_LIMIT = 0.5
ALGORITHM = "evidence_tier_v1"


# =============================================================================
# MATCHING RULES
# =============================================================================

@dataclass
class MatchEvidence:
    rule: str
    left_id: int
    right_id: int
    score: float
    details: str = ""


@dataclass
class MatchRule:
    name: str
    description: str
    kind: str  # identity | corroboration | conflict
    evaluate: Callable[[PendingStartupModel, PendingStartupModel], Optional[float]]


def exact_name_score(a, b, threshold: Optional[float] = None) -> Optional[float]:
    """token_sort_ratio of normalized names, as 0-1, when above threshold."""
    threshold = settings.name_similarity_threshold if threshold is None else threshold
    score = name_similarity(a.name or "", b.name or "")
    return score / 100.0 if score >= threshold else None


def website_match_score(a, b) -> Optional[float]:
    # News, social and directory hosts are shared by unrelated startups
    if not (is_company_website(a.website) and is_company_website(b.website)):
        return None
    host_a, host_b = website_host(a.website), website_host(b.website)
    if host_a and host_a == host_b:
        return 1.0
    return None


def domain_match_score(a, b) -> Optional[float]:
    """Same registrable domain; hosting-platform tenants (acme.vercel.app) stay distinct."""
    if not (is_company_website(a.website) and is_company_website(b.website)):
        return None
    domain_a, domain_b = registered_domain(a.website), registered_domain(b.website)
    if domain_a and domain_a == domain_b:
        return 0.9
    return None


def funding_consistency_score(a, b) -> Optional[float]:
    """Amounts within 50% relative variance of each other."""
    x, y = a.funding_amount_num, b.funding_amount_num
    if not x or not y:
        return None
    variance = abs(x - y) / max(x, y)
    if variance <= FUNDING_VARIANCE_LIMIT:
        return round(1.0 - variance, 4)
    return None


def date_congruity_conflict(a, b) -> Optional[float]:
    """Flag when the chronologically earlier record shows a strictly larger amount."""
    if not (a.date_announced_at and b.date_announced_at):
        return None
    if not (a.funding_amount_num and b.funding_amount_num):
        return None
    if a.date_announced_at == b.date_announced_at:
        return None
    earlier, later = (a, b) if a.date_announced_at < b.date_announced_at else (b, a)
    if earlier.funding_amount_num > later.funding_amount_num:
        return 1.0
    return None


MATCH_RULES: List[MatchRule] = [
    MatchRule("exact_name", "Normalized names are (near) equal", "identity", exact_name_score),
    MatchRule("website_match", "Same website host", "identity", website_match_score),
    MatchRule("domain_match", "Same registered domain", "identity", domain_match_score),
    MatchRule("funding_consistency", "Funding amounts within 50%", "corroboration", funding_consistency_score),
    MatchRule("date_congruity", "Earlier record shows a larger round", "conflict", date_congruity_conflict),
]


def find_identity_matches(records: Sequence[PendingStartupModel]) -> List[MatchEvidence]:
    """Pairwise identity rules over the snapshot."""
    matches = []
    identity_rules = [r for r in MATCH_RULES if r.kind == "identity"]
    for i, a in enumerate(records):
        for b in records[i + 1:]:
            for rule in identity_rules:
                score = rule.evaluate(a, b)
                if score is not None:
                    matches.append(MatchEvidence(rule.name, a.id, b.id, score))
    return matches


def cluster_records(
    records: Sequence[PendingStartupModel],
    matches: Sequence[MatchEvidence],
) -> List[List[PendingStartupModel]]:
    """Union-find over identity matches. Clusters keep the input order."""
    parent: Dict[int, int] = {r.id: r.id for r in records}

    def find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    for m in matches:
        root_a, root_b = find(m.left_id), find(m.right_id)
        if root_a != root_b:
            parent[root_b] = root_a

    clusters: Dict[int, List[PendingStartupModel]] = {}
    for record in records:
        clusters.setdefault(find(record.id), []).append(record)
    return list(clusters.values())


def evaluate_cluster(cluster: Sequence[PendingStartupModel]) -> List[MatchEvidence]:
    """Corroboration and conflict rules, only between records already known to be the same entity."""
    found = []
    rules = [r for r in MATCH_RULES if r.kind != "identity"]
    for i, a in enumerate(cluster):
        for b in cluster[i + 1:]:
            for rule in rules:
                score = rule.evaluate(a, b)
                if score is not None:
                    found.append(MatchEvidence(rule.name, a.id, b.id, score))
    return found


def merge_evidence(primary: List[Evidence], extra: List[Evidence]) -> List[Evidence]:
    seen = {(e.source_name, e.source_url) for e in primary}
    merged = list(primary)
    for e in extra:
        key = (e.source_name, e.source_url)
        if key not in seen:
            seen.add(key)
            merged.append(e)
    return merged


def merge_into(survivor: PendingStartupModel, other: PendingStartupModel) -> None:
    """Fold another record's evidence and missing fields into the survivor."""
    survivor.set_evidence(merge_evidence(survivor.get_evidence(), other.get_evidence()))
    for column in EXTRACTED_COLUMNS + ("funding_amount_num", "date_announced_at", "canonical_name"):
        if not getattr(survivor, column) and getattr(other, column):
            setattr(survivor, column, getattr(other, column))
    if other.tags:
        survivor.tags = sorted(set(survivor.tags or []) | set(other.tags))


def transition(record: PendingStartupModel, status: ValidationStatus, reason: Optional[str] = None) -> None:
    """Status only moves forward: pending -> validated | rejected."""
    if record.validation_status != ValidationStatus.PENDING:
        raise ValueError(
            f"Illegal transition for pending record {record.id}: "
            f"{record.validation_status} -> {status}"
        )
    if status == ValidationStatus.PENDING:
        raise ValueError("Cannot transition back to pending")
    record.validation_status = status
    if reason:
        record.rejection_reason = reason


# =============================================================================
# ENGINE
# =============================================================================

class ValidationEngine:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        enrichment_queue=None,
        promotion_threshold: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory or async_session_factory
        self.enrichment_queue = enrichment_queue
        self.promotion_threshold = promotion_threshold or settings.promotion_threshold
        self._clock = clock

    def _history(
        self,
        session: AsyncSession,
        record: PendingStartupModel,
        previous: Optional[float],
        new: Optional[float],
        reason: str,
    ) -> None:
        session.add(ConfidenceHistoryModel(
            pending_id=record.id,
            startup_name=record.name,
            previous_score=previous,
            new_score=new,
            sources=[e.source_name for e in record.get_evidence()],
            algorithm=ALGORITHM,
            reason=reason[:255],
            created_at=self._clock(),
        ))

    async def run_sweep(self) -> SweepReport:
        """One batch pass over every pending candidate."""
        now = self._clock()
        report = SweepReport()
        to_promote: List[tuple[int, float]] = []

        async with self.session_factory() as session:
            stmt = (
                select(PendingStartupModel)
                .where(PendingStartupModel.validation_status == ValidationStatus.PENDING)
                .order_by(PendingStartupModel.created_at, PendingStartupModel.id)
            )
            pending = list((await session.execute(stmt)).scalars().all())
            report.scanned = len(pending)
            if not pending:
                logger.info("Validation sweep: pending pool is empty")
                return report

            matches = find_identity_matches(pending)
            clusters = cluster_records(pending, matches)
            logger.info(
                f"Validation sweep: {len(pending)} pending, {len(matches)} identity matches, "
                f"{len(clusters)} clusters"
            )

            for cluster in clusters:
                survivor = cluster[0]
                cluster_findings = evaluate_cluster(cluster)
                conflicts = [f for f in cluster_findings if f.rule == "date_congruity"]

                for other in cluster[1:]:
                    merge_into(survivor, other)
                    transition(other, ValidationStatus.REJECTED, f"duplicate_of:{survivor.id}")
                    other.merged_into_id = survivor.id
                    other.last_validated_at = now
                    self._history(session, other, other.aggregate_confidence,
                                  other.aggregate_confidence, f"merged_into:{survivor.id}")
                    report.merged += 1

                previous = survivor.aggregate_confidence
                score = compute_confidence(survivor.get_evidence(), survivor.created_at, now)
                survivor.aggregate_confidence = score
                survivor.last_validated_at = now
                if previous is None or abs(score - previous) > 1e-9:
                    self._history(session, survivor, previous, score, "rescored")

                if conflicts:
                    report.held += 1
                    report.conflicts.extend(
                        {"rule": c.rule, "left_id": c.left_id, "right_id": c.right_id}
                        for c in conflicts
                    )
                    logger.warning(
                        f"'{survivor.name}' held back: earlier record shows a larger round "
                        f"({len(conflicts)} conflicts)"
                    )
                    continue

                age_days = (now - survivor.created_at).days if survivor.created_at else 0
                if score >= self.promotion_threshold:
                    to_promote.append((survivor.id, score))
                elif age_days > settings.stale_rejection_age_days and score < settings.stale_rejection_floor:
                    transition(survivor, ValidationStatus.REJECTED, "stale_low_confidence")
                    self._history(session, survivor, score, score, "rejected:stale_low_confidence")
                    report.rejected += 1
                else:
                    report.unchanged += 1

            await session.commit()

        for pending_id, score in to_promote:
            canonical_id = await self._promote(pending_id, score, now)
            if canonical_id is None:
                continue
            report.promoted += 1
            report.promoted_ids.append(canonical_id)

        logger.info(
            f"Validation sweep done: promoted={report.promoted} merged={report.merged} "
            f"rejected={report.rejected} held={report.held} unchanged={report.unchanged}"
        )
        return report

    async def _promote(self, pending_id: int, score: float, now: datetime) -> Optional[int]:
        """
        Copy to the canonical store, commit, then delete the candidate.
        An existing canonical record with the same name or source URL means an
        earlier copy already landed; only the delete is left to do.
        """
        async with self.session_factory() as session:
            pending = await session.get(PendingStartupModel, pending_id)
            if pending is None or pending.validation_status != ValidationStatus.PENDING:
                return None

            canonical = canonical_from_pending(pending, score, now)
            existing = await self._find_canonical(session, canonical.name, canonical.source_url)
            created = False
            if existing is None:
                session.add(canonical)
                try:
                    await session.commit()
                    created = True
                    canonical_id = canonical.id
                except IntegrityError:
                    await session.rollback()
                    pending = await session.get(PendingStartupModel, pending_id)
                    existing = await self._find_canonical(session, canonical.name, canonical.source_url)
                    if existing is None or pending is None:
                        logger.error(f"Could not promote pending record {pending_id}")
                        return None
            if not created:
                canonical_id = existing.id
                logger.info(f"'{pending.name}' already canonical (id={canonical_id}), clearing candidate")

            transition(pending, ValidationStatus.VALIDATED)
            self._history(session, pending, score, score, f"promoted:{canonical_id}")
            await session.delete(pending)
            await session.commit()

        logger.info(f"Promoted '{canonical.name}' (confidence {score:.2f}) to startup id={canonical_id}")
        if created and self.enrichment_queue is not None:
            self.enrichment_queue.enqueue(canonical_id)
        return canonical_id

    @staticmethod
    async def _find_canonical(
        session: AsyncSession, name: str, source_url: Optional[str]
    ) -> Optional[StartupModel]:
        conditions = [StartupModel.name == name]
        if source_url:
            conditions.append(StartupModel.source_url == source_url)
        stmt = select(StartupModel).where(or_(*conditions)).limit(1)
        return (await session.execute(stmt)).scalar_one_or_none()

    async def revalidate_stale(self) -> List[RevalidationRequest]:
        """
        Flag canonical records not revisited for revalidation_age_days whose
        stored confidence is below the revalidation ceiling.
        """
        now = self._clock()
        cutoff = now - timedelta(days=settings.revalidation_age_days)
        requests: List[RevalidationRequest] = []

        async with get_async_db(self.session_factory) as session:
            stmt = select(StartupModel).where(
                StartupModel.confidence_score < settings.revalidation_confidence_ceiling,
                or_(
                    StartupModel.last_validated_at < cutoff,
                    and_(StartupModel.last_validated_at.is_(None), StartupModel.created_at < cutoff),
                ),
            ).order_by(StartupModel.id)
            for record in (await session.execute(stmt)).scalars():
                record.needs_revalidation = True
                requests.append(RevalidationRequest(
                    record_id=record.id,
                    name=record.name,
                    source_name=record.source_name,
                    confidence=record.confidence_score,
                ))

        logger.info(f"Revalidation: {len(requests)} startups flagged for re-acquisition")
        return requests

    async def get_statistics(self) -> Dict[str, object]:
        async with self.session_factory() as session:
            status_rows = await session.execute(
                select(PendingStartupModel.validation_status, func.count())
                .group_by(PendingStartupModel.validation_status)
            )
            by_status = {
                (s.value if hasattr(s, "value") else str(s)): count for s, count in status_rows
            }

            scores = (await session.execute(
                select(PendingStartupModel.aggregate_confidence)
                .where(PendingStartupModel.validation_status == ValidationStatus.PENDING)
            )).scalars().all()

            canonical_total = (await session.execute(select(func.count(StartupModel.id)))).scalar_one()
            flagged = (await session.execute(
                select(func.count(StartupModel.id)).where(StartupModel.needs_revalidation.is_(True))
            )).scalar_one()

        distribution: Dict[str, int] = {}
        for score in scores:
            band = confidence_band(score or 0.0)
            distribution[band] = distribution.get(band, 0) + 1

        return {
            "pending_by_status": by_status,
            "pending_count": len(scores),
            "average_pending_confidence": round(sum(scores) / len(scores), 4) if scores else 0.0,
            "confidence_distribution": distribution,
            "promotable": sum(1 for s in scores if s >= self.promotion_threshold),
            "canonical_total": canonical_total,
            "needs_revalidation": flagged,
        }
