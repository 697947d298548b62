import math

import pytest

from app.models.hazard import HazardCategory, RiskLevel
from app.services.hazard_normalizer import (
    CORRECTIVE_ACTIONS,
    DEFAULT_DESCRIPTION,
    DEFAULT_HAZARD_TYPE,
    normalize,
    round_half_up,
    to_number,
)


@pytest.mark.parametrize("raw", [{}, None, "a hazard", 42, [], ["severity", 5], {"severity": None}])
def test_normalize_accepts_anything(raw):
    hazard = normalize(raw)
    assert hazard.description == DEFAULT_DESCRIPTION
    assert hazard.category == HazardCategory.PHYSICAL
    assert hazard.hazard_type == DEFAULT_HAZARD_TYPE
    assert (hazard.severity, hazard.likelihood) == (3, 3)
    assert hazard.risk_score == 9
    assert hazard.risk_level == RiskLevel.MEDIUM
    assert hazard.confidence == 0.8
    for column, (_, fallback) in CORRECTIVE_ACTIONS.items():
        assert getattr(hazard, column) == fallback


def test_full_candidate_is_kept():
    hazard = normalize({
        "description": "  Unguarded grinder  ",
        "category": "MECHANICAL",
        "hazard_type": "Caught-in",
        "severity": 4,
        "likelihood": 5,
        "risk_score": 1,
        "risk_level": "Low",
        "corrective_actions": {
            "engineering": "Fit a guard",
            "administrative": "Lock-out procedure",
            "ppe": "Gloves",
            "immediate": "Isolate machine",
        },
        "confidence": 0.65,
    })
    assert hazard.description == "Unguarded grinder"
    assert hazard.category == HazardCategory.MECHANICAL
    assert hazard.risk_score == 20
    assert hazard.risk_level == RiskLevel.EXTREME
    assert hazard.engineering_control == "Fit a guard"
    assert hazard.immediate_action == "Isolate machine"
    assert hazard.confidence == 0.65


@pytest.mark.parametrize(
    "value,expected",
    [(0, 3), ("0", 3), (9, 5), (-2, 1), ("4", 4), (2.5, 3), (2.49, 2), ("abc", 3),
     (True, 3), (float("nan"), 3), (float("inf"), 3), ([4], 3)],
)
def test_ratings_are_clamped_or_defaulted(value, expected):
    hazard = normalize({"severity": value, "likelihood": 1})
    assert hazard.severity == expected
    assert hazard.risk_score == expected


def test_unknown_category_falls_back():
    assert normalize({"category": "Radiological"}).category == HazardCategory.PHYSICAL
    assert normalize({"category": " psychosocial "}).category == HazardCategory.PSYCHOSOCIAL


def test_flat_corrective_action_keys_are_read():
    hazard = normalize({"ppe_control": "Hard hat", "corrective_actions": "not a mapping"})
    assert hazard.ppe_control == "Hard hat"
    assert hazard.engineering_control == CORRECTIVE_ACTIONS["engineering_control"][1]


def test_confidence_is_bounded():
    assert normalize({"confidence": 7}).confidence == 1.0
    assert normalize({"confidence": -0.5}).confidence == 0.0
    assert normalize({"confidence": 0}).confidence == 0.8


def test_to_number_and_rounding():
    assert to_number(" 3.5 ") == 3.5
    assert to_number(False) is None
    assert to_number(math.nan) is None
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
