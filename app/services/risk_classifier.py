"""HIRA risk matrix.

Every risk level in the service, whether for an AI-detected hazard, a manually
entered one, an override, or an inspection roll-up, comes from ``classify``.
"""
from typing import Any, Dict, Iterable, Optional, Tuple

from app.models.hazard import RiskLevel

MIN_RATING = 1
MAX_RATING = 5


def classify(score: int) -> RiskLevel:
    """Band a risk score (severity x likelihood) into a risk level."""
    if score <= 5:
        return RiskLevel.LOW
    if score <= 10:
        return RiskLevel.MEDIUM
    if score <= 15:
        return RiskLevel.HIGH
    return RiskLevel.EXTREME


def clamp_rating(value: int) -> int:
    return max(MIN_RATING, min(MAX_RATING, int(value)))


def score(severity: int, likelihood: int) -> Tuple[int, RiskLevel]:
    """Return (risk_score, risk_level) for an already-clamped rating pair."""
    risk_score = severity * likelihood
    return risk_score, classify(risk_score)


def overall_risk_level(scores: Iterable[int]) -> Optional[RiskLevel]:
    """Level of the highest-scoring hazard, or None when there are no hazards."""
    scores = list(scores)
    if not scores:
        return None
    return classify(max(scores))


def parse_risk_level(value: Any) -> Optional[RiskLevel]:
    """Map an untrusted string ("extreme", " High ") onto a RiskLevel, else None."""
    if isinstance(value, RiskLevel):
        return value
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for level in RiskLevel:
        if level.value.lower() == wanted:
            return level
    return None


def build_risk_matrix() -> Dict[int, Dict[int, RiskLevel]]:
    """severity -> likelihood -> level for the full 5x5 grid."""
    ratings = range(MIN_RATING, MAX_RATING + 1)
    return {s: {l: classify(s * l) for l in ratings} for s in ratings}


RISK_MATRIX = build_risk_matrix()
