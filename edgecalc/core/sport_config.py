"""Sport-level configuration: all sport-specific constants in one place.

This module is the **registry** for every constant that differs between
sports.  Nowhere else in the codebase should Elo k-factors, home-advantage
figures, regression factors or stabilization points be hard-coded.

Architecture
------------
:class:`SportParams` is a frozen dataclass carrying the per-sport constants
for the Elo and Poisson sub-models.  :class:`RegressionTable` is the
injected per-sport / per-metric table consumed by the regression engine.
Its built-in contents (:data:`DEFAULT_REGRESSION_TABLE`) are data, not
logic: replace them with :meth:`RegressionTable.from_json` or
:meth:`RegressionTable.from_mapping` without touching the engine.

Fallback chain
--------------
A lookup for ``(sport, metric)`` walks::

    sport.metric → sport.anyMetric → default.anyMetric      (known sport)
    default.metric → default.anyMetric                      (unknown sport)

and reports whether any step past ``sport.metric`` was needed.  The regression
factor and the standard deviation are resolved independently, so one may
be sport-specific while the other falls back.

Typical usage::

    from edgecalc.core.sport_config import RegressionTable, sport_params

    table = RegressionTable.default()
    profile, used_default = table.lookup("basketball", "threePointPercentage")
    elo = sport_params("soccer")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Final, Mapping, Optional, Tuple, Union

from edgecalc.core.errors import InvalidInput

#: Sport key holding the fallback entries.
DEFAULT_SPORT: Final[str] = "default"

#: Metric key holding the per-sport fallback entry.
ANY_METRIC: Final[str] = "anyMetric"

GOAL_SCORING: Final[str] = "goals"


# ---------------------------------------------------------------------------
# Elo / Poisson parameters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SportParams:
    """Immutable sub-model constants for one sport.

    Attributes:
        sport: Lower-case sport key.
        k_factor: Elo update step.
        home_advantage: Elo rating points added to the home side *before*
            the expected-score formula.
        default_rating: Rating assumed when none is supplied.
        scoring_type: ``goals``, ``points`` or ``runs``.  Goal sports truncate
            the Poisson score grid at 10, others at 20.
    """

    sport: str
    k_factor: float
    home_advantage: float
    default_rating: float
    scoring_type: str

    @property
    def poisson_max_score(self) -> int:
        return 10 if self.scoring_type == GOAL_SCORING else 20


_SPORT_PARAMS: Final[Mapping[str, SportParams]] = MappingProxyType({
    "basketball": SportParams("basketball", 32, 100, 1500, "points"),
    "football":   SportParams("football",   24,  70, 1500, "goals"),
    "baseball":   SportParams("baseball",   20,  50, 1500, "runs"),
    "hockey":     SportParams("hockey",     28,  60, 1500, "goals"),
    "soccer":     SportParams("soccer",     24,  80, 1500, "goals"),
})

#: Sport used when an unknown sport key is requested.
FALLBACK_SPORT: Final[str] = "basketball"


def sport_params(sport: Optional[str]) -> SportParams:
    """Return the constants for ``sport`` (case-insensitive).

    Unknown or missing sports get the basketball parameters.
    """
    key = (sport or "").strip().lower()
    return _SPORT_PARAMS.get(key, _SPORT_PARAMS[FALLBACK_SPORT])


def known_sports() -> Tuple[str, ...]:
    return tuple(_SPORT_PARAMS)


# ---------------------------------------------------------------------------
# Regression table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricProfile:
    """Regression constants for one sport / metric pair.

    A profile may carry only the regression pair, only the standard
    deviation, or both; missing halves are filled from the fallback chain.

    Attributes:
        factor: Share of the deviation from baseline expected to vanish
            (0 = none, 1 = full regression).
        stabilization_point: Sample size at which the metric is 50% reliable.
        std_dev: Typical spread of the metric, in the metric's own units.
    """

    factor: Optional[float] = None
    stabilization_point: Optional[float] = None
    std_dev: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.factor is None) != (self.stabilization_point is None):
            raise InvalidInput(
                "regression_table",
                {"factor": self.factor, "stabilizationPoint": self.stabilization_point},
                "factor and stabilizationPoint must be given together",
            )
        if self.factor is not None and not (0.0 <= self.factor <= 1.0):
            raise InvalidInput("regression_factor", self.factor, "must be in [0, 1]")
        if self.stabilization_point is not None and self.stabilization_point <= 0:
            raise InvalidInput(
                "stabilization_point", self.stabilization_point, "must be > 0"
            )
        if self.std_dev is not None and self.std_dev <= 0:
            raise InvalidInput("std_dev", self.std_dev, "must be > 0")


@dataclass(frozen=True)
class ResolvedProfile:
    """Result of a table lookup with every field populated."""

    sport: str
    metric: str
    factor: float
    stabilization_point: float
    std_dev: float


class RegressionTable:
    """Per-sport / per-metric regression constants with default fallback.

    The table is read-only after construction.  It must contain a
    ``default`` sport with an ``anyMetric`` entry that defines every field,
    so every lookup resolves.
    """

    def __init__(self, entries: Mapping[str, Mapping[str, MetricProfile]]) -> None:
        self._entries: Dict[str, Dict[str, MetricProfile]] = {
            sport.lower(): dict(metrics) for sport, metrics in entries.items()
        }
        fallback = self._entries.get(DEFAULT_SPORT, {}).get(ANY_METRIC)
        if fallback is None or fallback.factor is None or fallback.std_dev is None:
            raise InvalidInput(
                "regression_table",
                sorted(self._entries),
                f"missing complete '{DEFAULT_SPORT}.{ANY_METRIC}' entry",
            )

    # ------------------------------------------------------------------ #
    #  Constructors                                                        #
    # ------------------------------------------------------------------ #

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Mapping]]) -> "RegressionTable":
        """Build from nested plain dicts.

        Each leaf accepts ``factor``, ``stabilizationPoint`` (or
        ``stabilization_point``) and ``stdDev`` (or ``std_dev``); a leaf may
        carry only ``stdDev`` when just the deviation is known.
        """
        entries: Dict[str, Dict[str, MetricProfile]] = {}
        for sport, metrics in raw.items():
            entries[sport] = {}
            for metric, leaf in metrics.items():
                if not isinstance(leaf, Mapping):
                    raise InvalidInput(
                        f"regression_table.{sport}.{metric}", leaf, "expected a mapping"
                    )
                stab = leaf.get("stabilizationPoint", leaf.get("stabilization_point"))
                std = leaf.get("stdDev", leaf.get("std_dev"))
                entries[sport][metric] = MetricProfile(
                    factor=_opt_float(leaf.get("factor")),
                    stabilization_point=_opt_float(stab),
                    std_dev=_opt_float(std),
                )
        return cls(entries)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "RegressionTable":
        with open(path, encoding="utf-8") as fh:
            try:
                raw = json.load(fh)
            except json.JSONDecodeError as exc:
                raise InvalidInput("regression_table", str(path), f"invalid JSON: {exc}") from exc
        return cls.from_mapping(raw)

    @classmethod
    def default(cls) -> "RegressionTable":
        return cls.from_mapping(DEFAULT_REGRESSION_TABLE)

    # ------------------------------------------------------------------ #
    #  Lookup                                                              #
    # ------------------------------------------------------------------ #

    def _chain(self, sport: str, metric: str):
        # A known sport never borrows the default table's metric-specific
        # entries, only its catch-all.
        defaults = self._entries[DEFAULT_SPORT]
        sport_entries = self._entries.get(sport, defaults)
        yield sport_entries.get(metric)
        yield sport_entries.get(ANY_METRIC)
        yield defaults.get(ANY_METRIC)

    def lookup(self, sport: str, metric: str) -> Tuple[ResolvedProfile, bool]:
        """Resolve constants for ``(sport, metric)``.

        Returns:
            ``(profile, used_default)`` where ``used_default`` is True when
            the factor or the standard deviation came from anywhere other
            than the exact ``sport.metric`` entry.
        """
        sport_key = (sport or "").strip().lower()
        exact = self._entries.get(sport_key, {}).get(metric)

        factor_src = next(
            p for p in self._chain(sport_key, metric) if p is not None and p.factor is not None
        )
        std_src = next(
            p for p in self._chain(sport_key, metric) if p is not None and p.std_dev is not None
        )
        used_default = factor_src is not exact or std_src is not exact

        return ResolvedProfile(
            sport=sport_key,
            metric=metric,
            factor=factor_src.factor,
            stabilization_point=factor_src.stabilization_point,
            std_dev=std_src.std_dev,
        ), used_default

    def __contains__(self, sport: str) -> bool:
        return sport.lower() in self._entries

    def __repr__(self) -> str:
        return f"RegressionTable(sports={sorted(self._entries)})"


def _opt_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInput("regression_table", value, "not a number") from None


#: Built-in constants.  Regression factors and stabilization points follow
#: public stabilization research per sport; standard deviations are typical
#: season-level spreads.  Values are in the metric's own units.
DEFAULT_REGRESSION_TABLE: Final[Mapping[str, Mapping[str, Mapping[str, float]]]] = {
    "basketball": {
        "threePointPercentage": {"factor": 0.70, "stabilizationPoint": 750, "stdDev": 0.05},
        "freeThrowPercentage":  {"factor": 0.55, "stabilizationPoint": 250, "stdDev": 0.08},
        "fieldGoalPercentage":  {"factor": 0.60, "stabilizationPoint": 400, "stdDev": 0.04},
        "winPercentage":        {"factor": 0.65, "stabilizationPoint": 70,  "stdDev": 0.15},
        "pointsPerGame":        {"factor": 0.40, "stabilizationPoint": 20,  "stdDev": 5.0},
        "assistsPerGame":       {"factor": 0.30, "stabilizationPoint": 15,  "stdDev": 1.5},
    },
    "baseball": {
        "battingAverage":     {"factor": 0.80, "stabilizationPoint": 500, "stdDev": 0.025},
        "onBasePercentage":   {"factor": 0.65, "stabilizationPoint": 350, "stdDev": 0.03},
        "sluggingPercentage": {"factor": 0.75, "stabilizationPoint": 450, "stdDev": 0.05},
        "era":                {"factor": 0.70, "stabilizationPoint": 500, "stdDev": 0.75},
        "winPercentage":      {"factor": 0.85, "stabilizationPoint": 100, "stdDev": 0.10},
    },
    "football": {
        "passCompletionPercentage": {"factor": 0.65, "stabilizationPoint": 300, "stdDev": 0.05},
        "yardsPerAttempt":          {"factor": 0.75, "stabilizationPoint": 400, "stdDev": 1.0},
        "winPercentage":            {"factor": 0.80, "stabilizationPoint": 48,  "stdDev": 0.20},
        "fieldGoalPercentage":      {"factor": 0.70, "stabilizationPoint": 100, "stdDev": 0.07},
    },
    "soccer": {
        "scoringRate":        {"factor": 0.78, "stabilizationPoint": 40,  "stdDev": 0.10},
        "winPercentage":      {"factor": 0.75, "stabilizationPoint": 60,  "stdDev": 0.15},
        "cleanSheetRate":     {"factor": 0.68, "stabilizationPoint": 35,  "stdDev": 0.12},
        "goalConversionRate": {"factor": 0.80, "stabilizationPoint": 120, "stdDev": 0.04},
    },
    "hockey": {
        "shootingPercentage": {"factor": 0.75, "stabilizationPoint": 300,  "stdDev": 0.03},
        "savePercentage":     {"factor": 0.65, "stabilizationPoint": 1500, "stdDev": 0.015},
        "winPercentage":      {"factor": 0.70, "stabilizationPoint": 82,   "stdDev": 0.12},
    },
    DEFAULT_SPORT: {
        "winPercentage": {"factor": 0.70, "stabilizationPoint": 50, "stdDev": 0.15},
        "scoringRate":   {"factor": 0.75, "stabilizationPoint": 30},
        ANY_METRIC:      {"factor": 0.65, "stabilizationPoint": 40, "stdDev": 0.10},
    },
}
