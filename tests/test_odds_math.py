"""Tests for odds_math.py: odds format conversion and implied probability."""

import math

import pytest

from edgecalc.core.errors import ArithmeticDegenerate, InvalidInput, InvalidOdds, UnsupportedFormat
from edgecalc.core.odds_math import (
    NO_BET_AMERICAN,
    OddsFormat,
    american_to_decimal,
    convert_odds,
    decimal_to_american,
    decimal_to_fractional,
    fractional_to_decimal,
    from_decimal,
    implied_prob,
    implied_probability_from,
    parse_fractional,
    to_decimal,
    validate_decimal,
)


# ---------------------------------------------------------------------------
# American
# ---------------------------------------------------------------------------

def test_american_favourite_to_decimal():
    assert american_to_decimal(-110) == pytest.approx(1.909090, rel=1e-5)


def test_american_underdog_to_decimal():
    assert american_to_decimal(150) == pytest.approx(2.5)


def test_even_money_both_signs():
    assert american_to_decimal(100) == pytest.approx(2.0)
    assert american_to_decimal(-100) == pytest.approx(2.0)


@pytest.mark.parametrize("bad", [0, 50, -99, 99.9])
def test_american_magnitude_below_100_rejected(bad):
    with pytest.raises(InvalidOdds) as exc:
        american_to_decimal(bad)
    assert exc.value.field == "american_odds"
    assert exc.value.value == bad


def test_american_not_a_number():
    with pytest.raises(InvalidOdds):
        american_to_decimal("evens")


def test_decimal_to_american_underdog():
    assert decimal_to_american(2.5) == 150


def test_decimal_to_american_favourite():
    assert decimal_to_american(1.5) == -200


def test_decimal_to_american_even_money_is_positive():
    assert decimal_to_american(2.0) == 100


def test_decimal_one_is_degenerate():
    with pytest.raises(ArithmeticDegenerate):
        decimal_to_american(1.0)


def test_decimal_one_sentinel():
    assert decimal_to_american(1.0, allow_sentinel=True) == NO_BET_AMERICAN


def test_decimal_below_one_is_invalid():
    with pytest.raises(InvalidOdds):
        decimal_to_american(0.5)


@pytest.mark.parametrize("american", [-500, -110, 100, 150, 333])
def test_american_round_trip_within_one(american):
    assert abs(decimal_to_american(american_to_decimal(american)) - american) <= 1


@pytest.mark.parametrize("decimal_odds", [1.01, 1.5, 1.909, 1.999, 2.0, 2.37, 3.333, 11.0])
def test_decimal_round_trip_through_american(decimal_odds):
    # integer American rounding moves the price by at most half a cent
    back = to_decimal(from_decimal(decimal_odds, "american"), "american")
    assert back == pytest.approx(decimal_odds, abs=0.0051)


# ---------------------------------------------------------------------------
# Fractional
# ---------------------------------------------------------------------------

def test_fractional_to_decimal():
    assert fractional_to_decimal("5/2") == pytest.approx(3.5)
    assert fractional_to_decimal((10, 11)) == pytest.approx(1.909090, rel=1e-5)


@pytest.mark.parametrize("bad", ["5/0", "abc", "-1/2", "0/5", "1/2/3"])
def test_malformed_fractional_rejected(bad):
    with pytest.raises(InvalidOdds):
        parse_fractional(bad)


def test_decimal_to_fractional_reduces():
    assert decimal_to_fractional(3.5) == "5/2"
    assert decimal_to_fractional(2.0) == "1/1"


def test_decimal_to_fractional_best_approximation():
    assert decimal_to_fractional(1.909) == "10/11"


def test_decimal_to_fractional_very_short_price_clamped():
    assert decimal_to_fractional(1.001) == "1/100"


# ---------------------------------------------------------------------------
# Format-generic conversion
# ---------------------------------------------------------------------------

def test_same_format_returns_input_unchanged():
    assert convert_odds(-110, "american", "american") == -110
    assert convert_odds("7/4", OddsFormat.FRACTIONAL, "fractional") == "7/4"


def test_fractional_to_american():
    assert convert_odds("5/2", "fractional", "american") == 250


def test_american_to_fractional():
    assert convert_odds(150, "american", "fractional") == "3/2"


def test_unknown_format_rejected():
    with pytest.raises(UnsupportedFormat) as exc:
        to_decimal(2.0, "moneyline")
    assert isinstance(exc.value, InvalidInput)
    assert exc.value.field == "odds_format"


def test_format_names_case_insensitive():
    assert OddsFormat.parse(" Decimal ") is OddsFormat.DECIMAL


@pytest.mark.parametrize("bad", [1.0, 0.0, -2.0, math.inf, math.nan])
def test_validate_decimal_rejects(bad):
    with pytest.raises(InvalidOdds):
        validate_decimal(bad)


# ---------------------------------------------------------------------------
# Implied probability
# ---------------------------------------------------------------------------

def test_implied_prob_decimal():
    assert implied_prob(2.5) == pytest.approx(0.4)


def test_implied_probability_from_american():
    assert implied_probability_from(-110, "american") == pytest.approx(0.52381, rel=1e-4)


@pytest.mark.parametrize("decimal", [1.01, 1.5, 2.0, 10.0, 1000.0])
def test_implied_probability_in_open_unit_interval(decimal):
    p = implied_prob(decimal)
    assert 0.0 < p < 1.0


def test_invalid_input_is_a_value_error():
    # Callers that only catch ValueError still see validation failures
    with pytest.raises(ValueError):
        implied_prob(0.9)
