"""Confidence tiers: ordering, rank-based tiers and numeric score mapping."""

from typing import NamedTuple

from models import ConfidenceLevel

HIGH_SCORE_THRESHOLD = 70
MEDIUM_SCORE_THRESHOLD = 40

_TIER_ORDER: dict[ConfidenceLevel, int] = {
    ConfidenceLevel.HIGH: 3,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.LOW: 1,
}


def tier_rank(level: ConfidenceLevel) -> int:
    """Return a sortable rank, higher is more trustworthy."""
    return _TIER_ORDER[level]


def tier_for_rank(index: int, total: int) -> ConfidenceLevel:
    """Tier for the pattern at ``index`` in an ordered list of ``total`` patterns.

    First quartile is high, second quartile medium, the rest low.
    """
    if total <= 0:
        return ConfidenceLevel.LOW
    if index * 4 < total:
        return ConfidenceLevel.HIGH
    if index * 2 < total:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def tier_from_score(score: float | None) -> ConfidenceLevel:
    """Map an upstream 0-100 confidence to a tier."""
    if score is None:
        return ConfidenceLevel.LOW
    if score >= HIGH_SCORE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if score >= MEDIUM_SCORE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


class FieldMatch(NamedTuple):
    value: str | None
    confidence: ConfidenceLevel


NO_MATCH = FieldMatch(None, ConfidenceLevel.LOW)
