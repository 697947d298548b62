"""Turn untrusted hazard candidates (AI output) into storable hazards.

``normalize`` never raises: anything missing or malformed falls back to a
safe default, and the risk score and level are always recomputed.
"""
import math
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from app.models.hazard import HazardCategory, RiskLevel
from app.services.risk_classifier import clamp_rating, score

DEFAULT_RATING = 3
DEFAULT_CONFIDENCE = 0.8
DEFAULT_CATEGORY = HazardCategory.PHYSICAL
DEFAULT_HAZARD_TYPE = "General Hazard"
DEFAULT_DESCRIPTION = "Unspecified hazard"

# column name -> (key inside "corrective_actions", fallback text)
CORRECTIVE_ACTIONS = {
    "engineering_control": ("engineering", "Implement engineering controls to eliminate hazard"),
    "administrative_control": ("administrative", "Establish safe work procedures and training"),
    "ppe_control": ("ppe", "Use appropriate personal protective equipment"),
    "immediate_action": ("immediate", "Assess and address immediately"),
}


class NormalizedHazard(BaseModel):
    description: str
    category: HazardCategory
    hazard_type: str
    severity: int
    likelihood: int
    risk_score: int
    risk_level: RiskLevel
    engineering_control: str
    administrative_control: str
    ppe_control: str
    immediate_action: str
    confidence: float


def to_number(value: Any) -> Optional[float]:
    """Finite number from an int, float or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _rating(value: Any) -> int:
    # zero counts as missing, like an empty field
    number = to_number(value) or DEFAULT_RATING
    return clamp_rating(round_half_up(number))


def _confidence(value: Any) -> float:
    number = to_number(value) or DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, number))


def _text(value: Any, default: str) -> str:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _category(value: Any) -> HazardCategory:
    if isinstance(value, str):
        wanted = value.strip().lower()
        for category in HazardCategory:
            if category.value.lower() == wanted:
                return category
    return DEFAULT_CATEGORY


def normalize(raw: Any) -> NormalizedHazard:
    if not isinstance(raw, Mapping):
        raw = {}

    severity = _rating(raw.get("severity"))
    likelihood = _rating(raw.get("likelihood"))
    risk_score, risk_level = score(severity, likelihood)

    nested = raw.get("corrective_actions")
    if not isinstance(nested, Mapping):
        nested = {}
    actions = {
        column: _text(nested.get(key, raw.get(column)), fallback)
        for column, (key, fallback) in CORRECTIVE_ACTIONS.items()
    }

    return NormalizedHazard(
        description=_text(raw.get("description"), DEFAULT_DESCRIPTION),
        category=_category(raw.get("category")),
        hazard_type=_text(raw.get("hazard_type"), DEFAULT_HAZARD_TYPE),
        severity=severity,
        likelihood=likelihood,
        risk_score=risk_score,
        risk_level=risk_level,
        confidence=_confidence(raw.get("confidence")),
        **actions,
    )
