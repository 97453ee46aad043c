"""
Confidence scoring for candidate records.

score = 0.3
      + per-evidence boost keyed to that evidence's own confidence
      + 0.05 per distinct source (max +0.2)
      - 0.1 past 90 days of age, -0.2 past 365 days
clamped to [0, 1].
"""
from datetime import datetime
from typing import Iterable, List, Optional

from scout.core.data_types import Evidence
from scout.core.utils import utcnow

BASE_CONFIDENCE = 0.3

# (minimum evidence confidence, boost), checked top-down
EVIDENCE_TIERS = [
    (0.95, 0.25),
    (0.90, 0.20),
    (0.85, 0.15),
    (0.80, 0.10),
    (0.75, 0.05),
]

SOURCE_BONUS = 0.05
SOURCE_BONUS_CAP = 0.2
DECAY_STEPS = [(90, 0.1), (365, 0.1)]

# Float noise such as 0.9499999 should still land in the 0.95 tier
_EPSILON = 1e-9


def evidence_boost(confidence: float) -> float:
    for threshold, boost in EVIDENCE_TIERS:
        if confidence + _EPSILON >= threshold:
            return boost
    return 0.0


def source_bonus(evidence: Iterable[Evidence]) -> float:
    distinct = {e.source_name for e in evidence}
    return min(SOURCE_BONUS * len(distinct), SOURCE_BONUS_CAP)


def age_penalty(created_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    if created_at is None:
        return 0.0
    age_days = ((now or utcnow()) - created_at).days
    return sum(penalty for days, penalty in DECAY_STEPS if age_days > days)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def compute_confidence(
    evidence: List[Evidence],
    created_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> float:
    score = BASE_CONFIDENCE
    score += sum(evidence_boost(e.confidence) for e in evidence)
    score += source_bonus(evidence)
    score -= age_penalty(created_at, now)
    return round(clamp(score), 4)


def confidence_band(score: float) -> str:
    """Reporting bucket for a confidence value."""
    if score >= 0.9:
        return "Very High"
    if score >= 0.8:
        return "High"
    if score >= 0.7:
        return "Medium"
    if score >= 0.5:
        return "Low"
    return "Very Low"
