"""Tests for regression.py: regression to the mean and bias detection."""

import logging

import pytest

from edgecalc.core.confidence import ConfidenceLevel
from edgecalc.core.errors import ArithmeticDegenerate, InvalidInput
from edgecalc.core.sport_config import RegressionTable
from edgecalc.services.regression import (
    BiasType,
    PerformanceStatus,
    RegressionInput,
    analyze_regression,
    cap_standard_deviation,
    estimate_true_talent,
    expected_regression,
    identify_biases,
    performance_status,
    probability_adjustment,
    regression_confidence_interval,
    reliability,
)


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def test_reliability_zero_sample():
    assert reliability(0, 500) == 0.0


def test_reliability_at_stabilization_point():
    assert reliability(500, 500) == 0.5


def test_reliability_monotone():
    values = [reliability(n, 100) for n in (0, 10, 50, 100, 1000)]
    assert values == sorted(values)
    assert all(0.0 <= v < 1.0 for v in values)


@pytest.mark.parametrize("n, stab", [(-1, 100), (10, 0), (10, -5)])
def test_reliability_rejects(n, stab):
    with pytest.raises(InvalidInput):
        reliability(n, stab)


def test_estimate_true_talent():
    assert estimate_true_talent(0.60, 0.50, 0.25) == pytest.approx(0.525)


def test_expected_regression():
    # factor 0.7: 70% of the 0.1 deviation vanishes
    assert expected_regression(0.60, 0.50, 0.7) == pytest.approx(0.53)


def test_percentage_std_dev_capped():
    assert cap_standard_deviation(0.15, "winPercentage", 0.1) == pytest.approx(0.08)
    assert cap_standard_deviation(0.15, "winPercentage", 0.5) == pytest.approx(0.15)
    assert cap_standard_deviation(0.15, "winPercentage", None) == pytest.approx(0.15)
    assert cap_standard_deviation(5.0, "pointsPerGame", 0.1) == pytest.approx(5.0)


def test_confidence_interval():
    ci = regression_confidence_interval(0.5, 0.1, 25, ConfidenceLevel.P95)
    assert ci.lower == pytest.approx(0.5 - 1.96 * 0.02)
    assert ci.upper == pytest.approx(0.5 + 1.96 * 0.02)


def test_confidence_interval_empty_sample():
    with pytest.raises(ArithmeticDegenerate):
        regression_confidence_interval(0.5, 0.1, 0)


def test_probability_adjustment_leans_against_overperformance():
    assert probability_adjustment(0.6, 1.0) == pytest.approx(0.55)
    assert probability_adjustment(0.6, -1.0) == pytest.approx(0.65)


def test_probability_adjustment_capped():
    # max shift is half the distance to the nearer bound: 0.5 · 0.1
    assert probability_adjustment(0.9, -10.0) == pytest.approx(0.95)
    assert probability_adjustment(0.9, 10.0) == pytest.approx(0.85)


@pytest.mark.parametrize("p", [0.01, 0.3, 0.5, 0.99])
@pytest.mark.parametrize("dev", [-50.0, -1.0, 0.0, 2.5, 50.0])
def test_adjusted_probability_stays_inside(p, dev):
    assert 0.0 < probability_adjustment(p, dev) < 1.0


def test_performance_status():
    assert performance_status(0.6, 0.5) is PerformanceStatus.OVERPERFORMING
    assert performance_status(0.4, 0.5) is PerformanceStatus.UNDERPERFORMING
    assert performance_status(0.5, 0.5) is PerformanceStatus.AVERAGE


def test_input_validation():
    with pytest.raises(InvalidInput):
        RegressionInput(0.5, 0.5, -1, "soccer", "winPercentage")


@pytest.mark.parametrize("average", [-0.2, 1.5, 45.0])
def test_percentage_league_average_out_of_range(average):
    with pytest.raises(InvalidInput) as exc:
        RegressionInput(0.6, 0.5, 20, "soccer", "winPercentage", league_average=average)
    assert exc.value.field == "league_average"


def test_league_average_unbounded_for_counting_metrics():
    inp = RegressionInput(110.0, 105.0, 20, "basketball", "pointsPerGame", league_average=108.0)
    assert inp.league_average == 108.0


# ---------------------------------------------------------------------------
# analyze_regression
# ---------------------------------------------------------------------------

class TestAnalyzeRegression:
    def test_known_metric(self):
        """basketball winPercentage: factor 0.65, stabilization 70, sd 0.15."""
        inp = RegressionInput(0.70, 0.50, 70, "basketball", "winPercentage", league_average=0.5)
        a = analyze_regression(inp, 0.60)
        assert a.used_default_factors is False
        assert a.reliability == pytest.approx(0.5)
        assert a.expected_performance == pytest.approx(0.50 + 0.20 * 0.35)
        assert a.estimated_true_talent == pytest.approx(0.60)
        assert a.standard_deviation == pytest.approx(0.15)
        assert a.deviations_from_mean == pytest.approx((0.70 - 0.57) / 0.15)
        assert a.adjusted_probability == pytest.approx(0.60 - 0.05 * (0.13 / 0.15))
        assert a.performance_status is PerformanceStatus.OVERPERFORMING
        assert a.confidence_interval is not None

    def test_fallback_flagged_and_logged(self, caplog):
        inp = RegressionInput(3.0, 2.5, 10, "curling", "endsWon")
        with caplog.at_level(logging.WARNING, logger="edgecalc.services.regression"):
            a = analyze_regression(inp, 0.5)
        assert a.used_default_factors is True
        assert a.regression_factor == pytest.approx(0.65)
        assert "curling" in caplog.text

    def test_zero_sample_has_no_interval(self):
        inp = RegressionInput(0.6, 0.5, 0, "soccer", "winPercentage")
        a = analyze_regression(inp, 0.5)
        assert a.reliability == 0.0
        assert a.confidence_interval is None
        assert a.to_dict()["confidence_interval"] is None

    def test_degenerate_std_dev(self):
        inp = RegressionInput(0.6, 0.5, 20, "soccer", "winPercentage", league_average=1.0)
        with pytest.raises(ArithmeticDegenerate):
            analyze_regression(inp, 0.5)

    def test_injected_table(self):
        table = RegressionTable.from_mapping({
            "default": {"anyMetric": {"factor": 1.0, "stabilizationPoint": 10, "stdDev": 1.0}},
        })
        inp = RegressionInput(5.0, 3.0, 10, "any", "points")
        a = analyze_regression(inp, 0.5, table=table)
        # full regression: expected equals baseline
        assert a.expected_performance == pytest.approx(3.0)

    def test_probability_bounds(self):
        inp = RegressionInput(0.6, 0.5, 20, "soccer", "winPercentage")
        with pytest.raises(InvalidInput):
            analyze_regression(inp, 1.0)


# ---------------------------------------------------------------------------
# identify_biases
# ---------------------------------------------------------------------------

class TestBiases:
    def _types(self, analysis):
        return [b.type for b in identify_biases(analysis)]

    def test_hot_streak_small_sample(self):
        """Overperforming on 10 games vs stabilization 70."""
        inp = RegressionInput(0.90, 0.50, 10, "basketball", "winPercentage")
        analysis = analyze_regression(inp, 0.6)
        biases = {b.type: b for b in identify_biases(analysis)}
        assert BiasType.RECENCY in biases
        assert BiasType.HOT_HAND in biases
        assert BiasType.SMALL_SAMPLE in biases
        assert BiasType.GAMBLERS_FALLACY not in biases
        assert biases[BiasType.HOT_HAND].severity == pytest.approx(1 - 10 / 35)
        assert biases[BiasType.SMALL_SAMPLE].severity == pytest.approx(1 - 10 / 14)
        # expected 0.64, deviation 0.26 / 0.15 sd
        assert biases[BiasType.RECENCY].severity == pytest.approx(0.26 / 0.15 / 2)

    def test_slump_gamblers_fallacy(self):
        # gap 0.2 > 0.8 · 0.15
        inp = RegressionInput(0.30, 0.50, 60, "basketball", "winPercentage")
        biases = {b.type: b for b in identify_biases(analyze_regression(inp, 0.5))}
        assert BiasType.GAMBLERS_FALLACY in biases
        assert biases[BiasType.GAMBLERS_FALLACY].severity == 0.7
        assert BiasType.HOT_HAND not in biases

    def test_no_biases_for_average_large_sample(self):
        inp = RegressionInput(0.50, 0.50, 500, "basketball", "winPercentage")
        assert identify_biases(analyze_regression(inp, 0.5)) == []

    def test_severity_in_unit_interval(self):
        inp = RegressionInput(0.95, 0.50, 1, "soccer", "winPercentage")
        for bias in identify_biases(analyze_regression(inp, 0.5)):
            assert 0.0 <= bias.severity <= 1.0
