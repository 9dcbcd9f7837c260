"""Kelly criterion sizing: the single source of truth for bet sizing math.

All functions here are **pure**: no I/O, no database, no logging.
Import from this module; never reimplement Kelly locally in services.

The functions cover the sizing contexts used by the request layer:

1. :func:`raw_kelly`: full Kelly fraction, unclamped (may be negative).
2. :func:`kelly`: fractional, capped, non-negative Kelly wrapped in a
   :class:`KellyResult` with edge and risk classification.
3. :func:`risk_metrics`: profit / risk figures for a stake the user has
   already chosen.

Design decisions
----------------
* ``edge`` in :class:`KellyResult` is the simple difference
  ``p − implied``.  The ratio form used when comparing bookmakers is
  :func:`edgecalc.services.market.edge_percentage`.
* The risk level is read off the *applied* fraction (after the multiplier
  and cap), not the percentage shown to the user.
* Daily stop-loss / stop-win and max-open-bet limits are caller policy,
  see :mod:`edgecalc.services.risk`.  This module only exposes the sign of
  the edge and the fraction so the caller can enforce them.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Union

from edgecalc.core.errors import ArithmeticDegenerate, InvalidInput
from edgecalc.core.odds_math import OddsFormat, OddsValue, implied_prob, to_decimal, validate_decimal

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Applied fractions above this are classified ``high`` risk.
HIGH_RISK_THRESHOLD: Final[float] = 0.10

#: Applied fractions above this (and ≤ high) are classified ``medium`` risk.
MEDIUM_RISK_THRESHOLD: Final[float] = 0.05

#: Default cap on any single bet as a fraction of bankroll.
DEFAULT_MAX_BET_PERCENTAGE: Final[float] = 0.25


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Recommendation(str, Enum):
    BET = "bet"
    NO_BET = "no bet"


@dataclass(frozen=True, slots=True)
class KellyResult:
    """Immutable sizing decision for a single bet.

    Attributes:
        kelly_fraction: Applied fraction of bankroll in ``[0, max_bet_percentage]``.
        raw_kelly: Full Kelly before multiplier, cap and clamp.  Negative
            when the bet has negative expected value.
        edge: ``probability − implied_probability`` (may be negative).
        implied_probability: ``1 / decimal_odds``.
        decimal_odds: Price the fraction was computed against.
        probability: The caller's win probability (reported as confidence).
        risk_level: Classification of ``kelly_fraction``.
        recommendation: ``no bet`` iff ``kelly_fraction == 0``.
    """

    kelly_fraction: float
    raw_kelly: float
    edge: float
    implied_probability: float
    decimal_odds: float
    probability: float
    risk_level: RiskLevel
    recommendation: Recommendation

    @property
    def has_betting_value(self) -> bool:
        return self.edge > 0

    @property
    def kelly_percentage(self) -> float:
        """Applied fraction as a percentage of bankroll, for display."""
        return self.kelly_fraction * 100.0

    def to_dict(self) -> dict:
        return {
            "kelly_fraction": self.kelly_fraction,
            "kelly_percentage": self.kelly_percentage,
            "raw_kelly": self.raw_kelly,
            "edge": self.edge,
            "implied_probability": self.implied_probability,
            "decimal_odds": self.decimal_odds,
            "analysis": {
                "has_betting_value": self.has_betting_value,
                "confidence": self.probability,
                "risk_level": self.risk_level.value,
                "recommendation": self.recommendation.value,
            },
        }


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_probability(probability: float) -> None:
    if not (0.0 < probability < 1.0):
        raise InvalidInput(
            "probability", probability, "must be in (0, 1)"
        )


def _check_unit_interval(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise InvalidInput(name, value, "must be in [0, 1]")


def _net_odds(decimal_odds: float) -> float:
    if decimal_odds == 1.0:
        raise ArithmeticDegenerate(
            "net odds b = decimal_odds − 1 is zero; Kelly is undefined"
        )
    return validate_decimal(decimal_odds) - 1.0


# ---------------------------------------------------------------------------
# Kelly
# ---------------------------------------------------------------------------


def raw_kelly(probability: float, decimal_odds: float) -> float:
    """Full Kelly fraction for a win/loss bet, without any clamping.

    The closed-form solution (Kelly 1956)::

        f*  =  (b · p − q) / b

    where ``b`` is the net odds (decimal − 1), ``p`` the win probability
    and ``q = 1 − p``.  Monotonically non-decreasing in ``p`` for fixed odds.

    Raises:
        InvalidInput: ``probability`` outside ``(0, 1)``.
        ArithmeticDegenerate: ``decimal_odds == 1.0``.
        InvalidOdds: ``decimal_odds < 1.0``.
    """
    _check_probability(probability)
    b = _net_odds(decimal_odds)
    q = 1.0 - probability
    return (b * probability - q) / b


def classify_risk(fraction: float) -> RiskLevel:
    """Risk level of an applied Kelly fraction (strict inequalities)."""
    if fraction > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if fraction > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def kelly(
    probability: float,
    decimal_odds: float,
    fraction_multiplier: float = 1.0,
    max_bet_percentage: float = DEFAULT_MAX_BET_PERCENTAGE,
) -> KellyResult:
    """Compute the applied Kelly stake and its analysis.

    ``applied = max(0, min(raw · fraction_multiplier, max_bet_percentage))``;
    a negative edge yields a zero stake, never a short position.

    Args:
        probability: Estimated win probability in ``(0, 1)``.
        decimal_odds: Decimal odds > 1.0.
        fraction_multiplier: Fraction of full Kelly to stake, in ``[0, 1]``
            (0.5 = half Kelly).
        max_bet_percentage: Hard cap on the applied fraction, in ``[0, 1]``.

    Examples::

        kelly(0.55, 1.909).kelly_fraction → 0.0551   (full Kelly on -110)
        kelly(0.50, 2.000).recommendation → "no bet"
    """
    _check_unit_interval("fraction_multiplier", fraction_multiplier)
    _check_unit_interval("max_bet_percentage", max_bet_percentage)

    full = raw_kelly(probability, decimal_odds)
    implied = implied_prob(decimal_odds)

    applied = min(full * fraction_multiplier, max_bet_percentage)
    applied = max(0.0, applied)

    return KellyResult(
        kelly_fraction=applied,
        raw_kelly=full,
        edge=probability - implied,
        implied_probability=implied,
        decimal_odds=float(decimal_odds),
        probability=probability,
        risk_level=classify_risk(applied),
        recommendation=Recommendation.NO_BET if applied == 0.0 else Recommendation.BET,
    )


def kelly_from_odds(
    probability: float,
    odds: OddsValue,
    odds_format: Union[str, OddsFormat] = OddsFormat.DECIMAL,
    fraction_multiplier: float = 1.0,
    max_bet_percentage: float = DEFAULT_MAX_BET_PERCENTAGE,
) -> KellyResult:
    """:func:`kelly` for odds quoted in any supported format."""
    return kelly(
        probability,
        to_decimal(odds, odds_format),
        fraction_multiplier=fraction_multiplier,
        max_bet_percentage=max_bet_percentage,
    )


# ---------------------------------------------------------------------------
# Stake risk metrics
# ---------------------------------------------------------------------------


def risk_metrics(stake: float, decimal_odds: float, bankroll: float) -> dict:
    """Profit and exposure figures for a chosen stake.

    Returns:
        dict with ``potential_profit``, ``risk_to_reward_ratio``
        (stake per unit of profit), ``bankroll_risk_percentage`` and
        ``max_loss``.

    Raises:
        InvalidInput: Non-positive ``stake`` or ``bankroll``.
    """
    if stake <= 0:
        raise InvalidInput("stake", stake, "must be > 0")
    if bankroll <= 0:
        raise InvalidInput("bankroll", bankroll, "must be > 0")
    b = _net_odds(decimal_odds)
    potential_profit = stake * b
    return {
        "potential_profit": potential_profit,
        "risk_to_reward_ratio": stake / potential_profit,
        "bankroll_risk_percentage": stake / bankroll * 100.0,
        "max_loss": stake,
    }
