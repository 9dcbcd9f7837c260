"""Fundamental odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement odds conversion locally in services.

The two pillars exposed are:

1. **Odds conversion**: American ↔ decimal ↔ fractional, always pivoting
   through decimal odds.
2. **Implied probability**: ``1 / decimal``, the vig-inclusive probability
   the price encodes.

Design decisions
----------------
* Decimal odds are the internal currency.  Every engine downstream
  (Kelly, margin, expected value) accepts decimal odds only, so mixing
  formats is impossible once a quote has been through :func:`to_decimal`.
* Decimal odds must be strictly greater than 1.0.  A price of exactly 1.0
  pays nothing on a win; it is rejected with :class:`InvalidOdds` everywhere
  except :func:`decimal_to_american`, which may treat it as the "no bet"
  sentinel when the caller opts in.
* Fractional odds are reduced with :class:`fractions.Fraction` and limited
  to denominators ≤ 100, which covers every price a bookmaker actually posts
  (``11/10``, ``5/2``, ``100/30`` → ``10/3``).

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from enum import Enum
from fractions import Fraction
from typing import Final, Tuple, Union

from edgecalc.core.errors import ArithmeticDegenerate, InvalidOdds, UnsupportedFormat

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Values with |odds| < 100 are not
#: representable in the American convention.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100

#: Largest denominator considered when approximating fractional odds.
MAX_FRACTION_DENOMINATOR: Final[int] = 100

#: Sentinel American value for decimal odds of exactly 1.0 ("no bet").
NO_BET_AMERICAN: Final[int] = 0

FractionalOdds = Union[str, Tuple[int, int]]
OddsValue = Union[int, float, str, Tuple[int, int]]


class OddsFormat(str, Enum):
    """Supported odds representations."""

    AMERICAN = "american"
    DECIMAL = "decimal"
    FRACTIONAL = "fractional"

    @classmethod
    def parse(cls, value: Union[str, "OddsFormat"]) -> "OddsFormat":
        """Return the enum member for ``value``.

        Raises:
            UnsupportedFormat: If ``value`` names no known format.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormat(value) from None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_decimal(decimal_odds: float, field: str = "decimal_odds") -> float:
    """Return ``decimal_odds`` as a float, or raise if it cannot price a bet.

    Raises:
        InvalidOdds: If the value is not finite or is ≤ 1.0.
    """
    try:
        value = float(decimal_odds)
    except (TypeError, ValueError):
        raise InvalidOdds(field, decimal_odds, "not a number") from None
    if not math.isfinite(value):
        raise InvalidOdds(field, decimal_odds, "must be finite")
    if value <= 1.0:
        raise InvalidOdds(field, decimal_odds, "decimal odds must be > 1.0")
    return value


# ---------------------------------------------------------------------------
# American
# ---------------------------------------------------------------------------


def american_to_decimal(american: Union[int, float]) -> float:
    """Convert American odds to decimal (European) format.

    Decimal odds represent the total payout per unit staked, **including**
    the return of the stake itself.  Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Args:
        american: American odds.  Negative = favourite (risk more than you
            win), positive = underdog (win more than you risk).

    Returns:
        Decimal odds > 1.0.

    Raises:
        InvalidOdds: If ``|american| < 100``, which is not a representable
            American odds value.

    Note:
        Even-money (+100 / -100) returns 2.0 in both conventions.
    """
    try:
        value = float(american)
    except (TypeError, ValueError):
        raise InvalidOdds("american_odds", american, "not a number") from None
    if not math.isfinite(value) or abs(value) < _MIN_AMERICAN_MAGNITUDE:
        raise InvalidOdds(
            "american_odds", american, "magnitude must be ≥ 100"
        )
    if value > 0:
        return value / 100.0 + 1.0
    # Negative: risk |american| to win 100
    return 100.0 / abs(value) + 1.0


def decimal_to_american(decimal_odds: float, *, allow_sentinel: bool = False) -> int:
    """Convert decimal odds to the nearest American integer.

    Inverse of :func:`american_to_decimal`.  Rounds to the nearest integer,
    so the round trip loses up to half a cent of American precision; use
    the result for display, not for further arithmetic.

    Args:
        decimal_odds: Decimal odds > 1.0.
        allow_sentinel: When True, decimal odds of exactly 1.0 map to
            :data:`NO_BET_AMERICAN` (0) instead of raising.

    Returns:
        American odds integer.  Values ≥ 2.0 are returned as positive
        (underdog); values < 2.0 are returned as negative (favourite).

    Raises:
        ArithmeticDegenerate: If ``decimal_odds == 1.0`` and the sentinel is
            not allowed (the favourite branch would divide by zero).
        InvalidOdds: If ``decimal_odds < 1.0`` or not finite.
    """
    if decimal_odds == 1.0:
        if allow_sentinel:
            return NO_BET_AMERICAN
        raise ArithmeticDegenerate(
            "decimal odds of exactly 1.0 have no American equivalent"
        )
    value = validate_decimal(decimal_odds)
    if value >= 2.0:
        return round((value - 1.0) * 100)
    # Favourite: decimal < 2.0 → negative American
    return round(-100.0 / (value - 1.0))


# ---------------------------------------------------------------------------
# Fractional
# ---------------------------------------------------------------------------


def parse_fractional(fractional: FractionalOdds) -> Fraction:
    """Parse ``"n/d"`` (or an ``(n, d)`` pair) into a positive :class:`Fraction`.

    Raises:
        InvalidOdds: If the value is malformed, has a zero denominator, or
            is not strictly positive.
    """
    try:
        if isinstance(fractional, str):
            numerator, denominator = (int(p) for p in fractional.strip().split("/"))
        else:
            numerator, denominator = (int(p) for p in fractional)
    except (TypeError, ValueError):
        raise InvalidOdds(
            "fractional_odds", fractional, "expected 'numerator/denominator'"
        ) from None
    if denominator == 0:
        raise InvalidOdds("fractional_odds", fractional, "denominator is zero")
    ratio = Fraction(numerator, denominator)
    if ratio <= 0:
        raise InvalidOdds("fractional_odds", fractional, "must be positive")
    return ratio


def fractional_to_decimal(fractional: FractionalOdds) -> float:
    """Convert fractional odds to decimal: ``n/d + 1``.

    Examples::

        fractional_to_decimal("5/2")  → 3.5
        fractional_to_decimal("10/11") → 1.909
    """
    return float(parse_fractional(fractional)) + 1.0


def decimal_to_fractional(
    decimal_odds: float, max_denominator: int = MAX_FRACTION_DENOMINATOR
) -> str:
    """Convert decimal odds to the closest reduced fraction ``"n/d"``.

    The net payout ``decimal − 1`` is approximated by the fraction with
    denominator ≤ ``max_denominator`` that minimises absolute error, then
    reduced by the GCD.  Very short prices whose best approximation would
    be ``0/1`` are clamped to ``1/max_denominator`` so the result still
    encodes a payout.

    Examples::

        decimal_to_fractional(3.5)   → "5/2"
        decimal_to_fractional(1.909) → "10/11"
    """
    value = validate_decimal(decimal_odds)
    ratio = Fraction(value - 1.0).limit_denominator(max_denominator)
    if ratio == 0:
        ratio = Fraction(1, max_denominator)
    return f"{ratio.numerator}/{ratio.denominator}"


# ---------------------------------------------------------------------------
# Format-generic conversion
# ---------------------------------------------------------------------------


def to_decimal(odds: OddsValue, odds_format: Union[str, OddsFormat]) -> float:
    """Convert odds in any supported format to decimal odds.

    Raises:
        UnsupportedFormat: Unknown ``odds_format``.
        InvalidOdds: The resulting decimal odds would be ≤ 1.0.
    """
    fmt = OddsFormat.parse(odds_format)
    if fmt is OddsFormat.AMERICAN:
        return american_to_decimal(odds)  # type: ignore[arg-type]
    if fmt is OddsFormat.FRACTIONAL:
        return fractional_to_decimal(odds)  # type: ignore[arg-type]
    return validate_decimal(odds)  # type: ignore[arg-type]


def from_decimal(decimal_odds: float, odds_format: Union[str, OddsFormat]) -> OddsValue:
    """Convert decimal odds into ``odds_format``.

    Returns an ``int`` for American, a ``float`` for decimal and an
    ``"n/d"`` string for fractional.
    """
    fmt = OddsFormat.parse(odds_format)
    if fmt is OddsFormat.AMERICAN:
        return decimal_to_american(decimal_odds)
    if fmt is OddsFormat.FRACTIONAL:
        return decimal_to_fractional(decimal_odds)
    return validate_decimal(decimal_odds)


def convert_odds(
    odds: OddsValue,
    from_format: Union[str, OddsFormat],
    to_format: Union[str, OddsFormat],
) -> OddsValue:
    """Convert between any two formats, pivoting through decimal.

    Same-format conversion returns the input unchanged (after the format
    names are validated).
    """
    src = OddsFormat.parse(from_format)
    dst = OddsFormat.parse(to_format)
    if src is dst:
        return odds
    return from_decimal(to_decimal(odds, src), dst)


# ---------------------------------------------------------------------------
# Implied probability
# ---------------------------------------------------------------------------


def implied_prob(decimal_odds: float) -> float:
    """Raw implied probability from decimal odds (vig-inclusive).

    This is the bookmaker's *stated* probability and includes the overround.
    For a margin-free estimate see
    :func:`edgecalc.services.market.fair_probability`.

    Returns:
        Probability in ``(0, 1)``.

    Examples::

        implied_prob(1.909) → 0.5238
        implied_prob(2.5)   → 0.4000
    """
    return 1.0 / validate_decimal(decimal_odds)


def implied_probability_from(odds: OddsValue, odds_format: Union[str, OddsFormat]) -> float:
    """Implied probability for odds in any supported format."""
    return implied_prob(to_decimal(odds, odds_format))
