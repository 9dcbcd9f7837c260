"""Enumerated confidence levels for interval estimates.

Interval widths are looked up by enum member, never by comparing floats,
so ``0.95`` coming out of a JSON payload as ``0.9500000001`` cannot
silently fall through to a different z-score.  Levels other than 90, 95
and 99% are rejected with InvalidInput rather than defaulted to 1.96.
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from edgecalc.core.errors import InvalidInput


class ConfidenceLevel(Enum):
    """Two-sided confidence level and its standard-normal critical value."""

    P90 = (0.90, 1.645)
    P95 = (0.95, 1.96)
    P99 = (0.99, 2.576)

    def __init__(self, level: float, z_score: float) -> None:
        self.level = level
        self.z_score = z_score

    @classmethod
    def parse(cls, value: Union[float, str, "ConfidenceLevel", None]) -> "ConfidenceLevel":
        """Resolve ``value`` to a member; ``None`` means the 95% default.

        Accepts a member, a member name (``"P90"``), or a level given as a
        fraction (``0.9``) or percentage (``90``), matched to two decimals.

        Raises:
            InvalidInput: If the value matches no supported level.
        """
        if value is None:
            return cls.P95
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        try:
            numeric = float(value)
        except (TypeError, ValueError):
            raise InvalidInput("confidence_level", value, "not a number") from None
        if numeric > 1.0:
            numeric /= 100.0
        for member in cls:
            if round(numeric, 2) == member.level:
                return member
        raise InvalidInput(
            "confidence_level", value, "supported levels are 0.90, 0.95, 0.99"
        )
