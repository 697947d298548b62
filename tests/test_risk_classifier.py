import pytest

from app.models.hazard import RiskLevel
from app.services.risk_classifier import (
    RISK_MATRIX,
    clamp_rating,
    classify,
    overall_risk_level,
    parse_risk_level,
    score,
)


def _expected(value):
    if value <= 5:
        return RiskLevel.LOW
    if value <= 10:
        return RiskLevel.MEDIUM
    if value <= 15:
        return RiskLevel.HIGH
    return RiskLevel.EXTREME


def test_every_rating_pair_is_classified_by_its_band():
    for severity in range(1, 6):
        for likelihood in range(1, 6):
            risk_score, level = score(severity, likelihood)
            assert risk_score == severity * likelihood
            assert level == _expected(risk_score), (severity, likelihood)


@pytest.mark.parametrize(
    "value,level",
    [(1, RiskLevel.LOW), (5, RiskLevel.LOW), (6, RiskLevel.MEDIUM), (10, RiskLevel.MEDIUM),
     (11, RiskLevel.HIGH), (15, RiskLevel.HIGH), (16, RiskLevel.EXTREME), (25, RiskLevel.EXTREME)],
)
def test_band_boundaries(value, level):
    assert classify(value) == level


def test_clamp_rating():
    assert clamp_rating(0) == 1
    assert clamp_rating(-4) == 1
    assert clamp_rating(9) == 5
    assert clamp_rating(3) == 3


def test_overall_risk_level_follows_highest_score():
    assert overall_risk_level([4, 12, 20]) == RiskLevel.EXTREME
    assert overall_risk_level([2, 3]) == RiskLevel.LOW
    assert overall_risk_level([]) is None


def test_parse_risk_level_is_case_insensitive():
    assert parse_risk_level(" extreme ") == RiskLevel.EXTREME
    assert parse_risk_level("MEDIUM") == RiskLevel.MEDIUM
    assert parse_risk_level(RiskLevel.HIGH) == RiskLevel.HIGH
    assert parse_risk_level("critical") is None
    assert parse_risk_level(None) is None
    assert parse_risk_level(16) is None


def test_risk_matrix_covers_the_grid():
    assert sorted(RISK_MATRIX) == [1, 2, 3, 4, 5]
    assert RISK_MATRIX[4][5] == RiskLevel.EXTREME
    assert RISK_MATRIX[1][5] == RiskLevel.LOW
    assert RISK_MATRIX[2][3] == RiskLevel.MEDIUM
    assert RISK_MATRIX[3][5] == RiskLevel.HIGH
