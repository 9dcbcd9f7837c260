"""Tests for statistical_models.py: Elo, Poisson, feature regression and blend."""

import pytest

from edgecalc.core.errors import InvalidInput
from edgecalc.services.statistical_models import (
    blend_models,
    elo_probability,
    expected_score,
    feature_weights,
    poisson_win_probability,
    regression_probability,
    update_elo,
)


# ---------------------------------------------------------------------------
# Elo
# ---------------------------------------------------------------------------

def test_expected_score_equal_ratings():
    assert expected_score(1500, 1500) == pytest.approx(0.5)


def test_expected_score_400_points():
    # 400-point gap → 10:1 odds
    assert expected_score(1900, 1500) == pytest.approx(10 / 11)


def test_update_elo():
    assert update_elo(1500, 0.5, 1.0, 32) == pytest.approx(1516)
    assert update_elo(1500, 0.5, 0.0, 32) == pytest.approx(1484)


def test_update_elo_rejects_bad_score():
    with pytest.raises(InvalidInput):
        update_elo(1500, 0.5, 1.5, 32)


def test_elo_home_advantage_added_before_formula():
    result = elo_probability("basketball")
    # 1600 vs 1500
    assert result.probability == pytest.approx(1 / (1 + 10 ** (-0.25)))
    assert result.home_advantage == 100
    assert result.k_factor == 32


def test_elo_away_and_neutral():
    away = elo_probability("basketball", team_is_home=False)
    neutral = elo_probability("basketball", team_is_home=None)
    home = elo_probability("basketball", team_is_home=True)
    assert away.probability == pytest.approx(1 - home.probability)
    assert neutral.probability == pytest.approx(0.5)
    assert neutral.home_advantage == 0.0


def test_elo_unknown_sport_uses_fallback():
    assert elo_probability("curling").sport == "basketball"


# ---------------------------------------------------------------------------
# Poisson
# ---------------------------------------------------------------------------

def test_poisson_symmetric_rates():
    win = poisson_win_probability(1.4, 1.4, "soccer").probability
    assert 0.0 < win < 0.5


def test_poisson_win_loss_draw_partition():
    win = poisson_win_probability(1.6, 1.1, "soccer").probability
    loss = poisson_win_probability(1.1, 1.6, "soccer").probability
    assert win > loss
    # remaining mass is draws plus the truncated tail
    assert win + loss < 1.0


def test_poisson_monotone_in_goals_for():
    probs = [poisson_win_probability(g, 1.2, "hockey").probability for g in (0.5, 1.0, 2.0, 3.0)]
    assert probs == sorted(probs)


def test_poisson_grid_by_sport():
    assert poisson_win_probability(1.0, 1.0, "soccer").max_score == 10
    assert poisson_win_probability(4.0, 4.0, "baseball").max_score == 20


def test_poisson_negative_rate_rejected():
    with pytest.raises(InvalidInput):
        poisson_win_probability(-1.0, 1.0, "soccer")


# ---------------------------------------------------------------------------
# Feature regression
# ---------------------------------------------------------------------------

def test_regression_probability_weighted_sum():
    result = regression_probability({"recentForm": 1.0, "headToHead": -0.5}, "basketball")
    assert result.probability == pytest.approx(0.5 + 0.3 - 0.1)


def test_regression_ignores_unknown_features():
    assert regression_probability({"vibes": 9.0}, "basketball").probability == 0.5


def test_regression_clamped():
    assert regression_probability({"recentForm": 5.0}, "soccer").probability == 1.0
    assert regression_probability({"recentForm": -5.0}, "soccer").probability == 0.0


def test_sport_feature_overrides():
    assert feature_weights("baseball")["weather"] == pytest.approx(0.15)
    assert feature_weights("baseball")["homeAdvantage"] == pytest.approx(0.08)
    assert feature_weights("Soccer")["venue"] == pytest.approx(0.15)
    assert feature_weights("hockey")["homeAdvantage"] == pytest.approx(0.1)


# ---------------------------------------------------------------------------
# Blend
# ---------------------------------------------------------------------------

class TestBlend:
    def test_three_models(self):
        result = blend_models(0.6, 0.7, 0.5)
        assert result.probability == pytest.approx(0.4 * 0.6 + 0.4 * 0.7 + 0.2 * 0.5)
        assert sum(result.weights.values()) == pytest.approx(1.0)

    def test_without_poisson_renormalizes(self):
        result = blend_models(0.6, 0.7)
        assert result.weights == pytest.approx({"regression": 0.5, "elo": 0.5})
        assert result.probability == pytest.approx(0.65)

    def test_home_advantage_clamped(self):
        assert blend_models(0.9, 0.9, 0.9, home_advantage=0.5).probability == 1.0

    def test_component_out_of_range(self):
        with pytest.raises(InvalidInput):
            blend_models(1.2, 0.5)

    def test_to_dict(self):
        d = blend_models(0.6, 0.7, 0.5).to_dict()
        assert set(d["components"]) == {"regression", "elo", "poisson"}
