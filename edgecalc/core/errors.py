"""Error taxonomy for the engine.

Three families, matching how a caller should react:

* :class:`InvalidInput`: the caller passed something out of range.  Carries
  ``field`` and ``value`` so the request layer can report it verbatim.
* :class:`ArithmeticDegenerate`: the inputs are individually legal but the
  formula has no finite answer (decimal odds of exactly 1.0, zero net odds).
  Raised instead of returning ``nan`` or ``inf``.
* Missing sport/metric configuration is *not* an error: lookups fall back to
  the ``default`` / ``anyMetric`` entries and flag the result instead.
"""

from __future__ import annotations

from typing import Any


class EdgeCalcError(Exception):
    """Base class for every error raised by this package."""


class InvalidInput(EdgeCalcError, ValueError):
    """A caller-correctable input was out of range or malformed."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class InvalidOdds(InvalidInput):
    """Odds that cannot encode a bet with positive net payoff."""


class UnsupportedFormat(InvalidInput):
    """Odds format string not in {american, decimal, fractional}."""

    def __init__(self, value: Any, field: str = "odds_format") -> None:
        super().__init__(
            field, value, "expected one of 'american', 'decimal', 'fractional'"
        )


class ArithmeticDegenerate(EdgeCalcError, ArithmeticError):
    """The computation would divide by zero or otherwise lose meaning."""
