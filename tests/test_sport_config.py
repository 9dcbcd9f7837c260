"""Tests for sport_config.py: sport parameters and the regression table."""

import json

import pytest

from edgecalc.core.confidence import ConfidenceLevel
from edgecalc.core.errors import InvalidInput
from edgecalc.core.sport_config import (
    MetricProfile,
    RegressionTable,
    known_sports,
    sport_params,
)


def _minimal(**extra):
    raw = {"default": {"anyMetric": {"factor": 0.5, "stabilizationPoint": 10, "stdDev": 1.0}}}
    raw.update(extra)
    return raw


# ---------------------------------------------------------------------------
# Sport parameters
# ---------------------------------------------------------------------------

def test_sport_params_case_insensitive():
    params = sport_params("SOCCER")
    assert params.sport == "soccer"
    assert params.k_factor == 24
    assert params.home_advantage == 80


def test_unknown_sport_gets_basketball_params():
    assert sport_params("curling") == sport_params("basketball")
    assert sport_params(None).sport == "basketball"


def test_poisson_grid_size_by_scoring_type():
    assert sport_params("soccer").poisson_max_score == 10
    assert sport_params("hockey").poisson_max_score == 10
    assert sport_params("basketball").poisson_max_score == 20
    assert sport_params("baseball").poisson_max_score == 20


def test_known_sports():
    assert set(known_sports()) == {"basketball", "football", "baseball", "hockey", "soccer"}


# ---------------------------------------------------------------------------
# Regression table lookup
# ---------------------------------------------------------------------------

class TestRegressionLookup:
    @pytest.fixture
    def table(self):
        return RegressionTable.default()

    def test_exact_entry(self, table):
        profile, used_default = table.lookup("basketball", "threePointPercentage")
        assert used_default is False
        assert profile.factor == pytest.approx(0.70)
        assert profile.stabilization_point == 750
        assert profile.std_dev == pytest.approx(0.05)

    def test_sport_key_case_insensitive(self, table):
        profile, used_default = table.lookup("Basketball", "threePointPercentage")
        assert used_default is False
        assert profile.sport == "basketball"

    def test_known_sport_unknown_metric_uses_catch_all(self, table):
        profile, used_default = table.lookup("basketball", "reboundsPerGame")
        assert used_default is True
        assert profile.factor == pytest.approx(0.65)
        assert profile.stabilization_point == 40
        assert profile.std_dev == pytest.approx(0.10)

    def test_known_sport_does_not_borrow_default_metric(self, table):
        # default.scoringRate exists, but hockey only falls back to anyMetric
        profile, used_default = table.lookup("hockey", "scoringRate")
        assert used_default is True
        assert profile.factor == pytest.approx(0.65)

    def test_unknown_sport_uses_default_metric(self, table):
        profile, used_default = table.lookup("curling", "winPercentage")
        assert used_default is True
        assert profile.factor == pytest.approx(0.70)
        assert profile.stabilization_point == 50
        assert profile.std_dev == pytest.approx(0.15)

    def test_factor_and_std_dev_resolve_independently(self, table):
        # default.scoringRate has a factor but no std dev
        profile, used_default = table.lookup("curling", "scoringRate")
        assert used_default is True
        assert profile.factor == pytest.approx(0.75)
        assert profile.stabilization_point == 30
        assert profile.std_dev == pytest.approx(0.10)

    def test_std_dev_only_leaf(self):
        table = RegressionTable.from_mapping(_minimal(tennis={"aces": {"stdDev": 2.0}}))
        profile, used_default = table.lookup("tennis", "aces")
        assert used_default is True
        assert profile.factor == pytest.approx(0.5)
        assert profile.std_dev == pytest.approx(2.0)


# ---------------------------------------------------------------------------
# Regression table construction
# ---------------------------------------------------------------------------

def test_table_requires_complete_default():
    with pytest.raises(InvalidInput):
        RegressionTable.from_mapping({"default": {"anyMetric": {"stdDev": 0.1}}})
    with pytest.raises(InvalidInput):
        RegressionTable.from_mapping({"soccer": {}})


def test_snake_case_keys_accepted():
    table = RegressionTable.from_mapping({
        "default": {"anyMetric": {"factor": 0.4, "stabilization_point": 12, "std_dev": 0.2}}
    })
    profile, _ = table.lookup("anything", "anyMetric")
    assert profile.stabilization_point == 12
    assert profile.std_dev == pytest.approx(0.2)


def test_non_mapping_leaf_rejected():
    with pytest.raises(InvalidInput):
        RegressionTable.from_mapping(_minimal(soccer={"winPercentage": 0.7}))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"factor": 0.5},
        {"stabilization_point": 10},
        {"factor": 1.5, "stabilization_point": 10},
        {"factor": 0.5, "stabilization_point": 0},
        {"std_dev": 0.0},
    ],
)
def test_metric_profile_validation(kwargs):
    with pytest.raises(InvalidInput):
        MetricProfile(**kwargs)


def test_from_json(tmp_path):
    path = tmp_path / "table.json"
    path.write_text(json.dumps(_minimal(soccer={"xg": {"factor": 0.9, "stabilizationPoint": 5}})))
    table = RegressionTable.from_json(path)
    assert "soccer" in table
    profile, _ = table.lookup("soccer", "xg")
    assert profile.factor == pytest.approx(0.9)


def test_from_json_invalid(tmp_path):
    path = tmp_path / "table.json"
    path.write_text("{not json")
    with pytest.raises(InvalidInput):
        RegressionTable.from_json(path)


# ---------------------------------------------------------------------------
# Confidence levels
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ConfidenceLevel.P95),
        (0.9, ConfidenceLevel.P90),
        ("0.99", ConfidenceLevel.P99),
        (95, ConfidenceLevel.P95),
        ("p90", ConfidenceLevel.P90),
        (0.9500000001, ConfidenceLevel.P95),
        (ConfidenceLevel.P99, ConfidenceLevel.P99),
    ],
)
def test_confidence_level_parse(raw, expected):
    assert ConfidenceLevel.parse(raw) is expected


@pytest.mark.parametrize("raw", [0.8, "abc", 50])
def test_confidence_level_unsupported(raw):
    with pytest.raises(InvalidInput):
        ConfidenceLevel.parse(raw)


def test_z_scores():
    assert ConfidenceLevel.P90.z_score == pytest.approx(1.645)
    assert ConfidenceLevel.P95.z_score == pytest.approx(1.96)
    assert ConfidenceLevel.P99.z_score == pytest.approx(2.576)
