"""
Multi-factor probability engine.

Blends an arbitrary set of user-scored factors into one win probability
with a confidence estimate and interval.

Pipeline (per request):

    1. Resolve each input against its FactorDefinition and normalize the
       raw value to [0, 1] with the normalizer for the definition's input
       type (binary / scale / percentage / select).
    2. contribution = normalized · (weight / 10) · historical_impact
    3. Correlation pass: for every unordered pair (A, B) with coefficient r,
       the overlap A·B·r is removed (r > 0) or added back (r < 0), split
       between A and B by their share of A + B.  Contributions are then
       clamped to [0, 1].
    4. Each contribution's deviation from 0.5 pushes the base probability
       up (toward 1) or down (toward 0).
    5. Confidence blends coverage, mean weight and dispersion; the interval
       width shrinks as confidence grows.

Order sensitivity
-----------------
Pairs are visited in the order the inputs were supplied, and each
adjustment sees the contributions already modified by earlier pairs.  With
three or more mutually correlated factors, reordering the inputs can change
the result slightly.  The intended tie-break has never been specified, so
the insertion-order behaviour is kept as is.

The correlation matrix and factor definitions must be a complete, stable
snapshot for the duration of one call; the engine does not guard against
concurrent mutation by the caller.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from edgecalc.core.confidence import ConfidenceLevel
from edgecalc.core.errors import InvalidInput

logger = logging.getLogger(__name__)

# Confidence blend weights: coverage, mean weight, dispersion
_COVERAGE_WEIGHT = 0.3
_WEIGHT_WEIGHT = 0.5
_DISPERSION_WEIGHT = 0.2

# Standard error at zero confidence; shrinks linearly to 0 at full confidence
_MAX_STANDARD_ERROR = 0.25

# Weight scale used by factor definitions and user overrides
MAX_WEIGHT = 10.0

DEFAULT_BASE_PROBABILITY = 0.5


class InputType(str, Enum):
    BINARY = "binary"
    SCALE = "scale"
    PERCENTAGE = "percentage"
    SELECT = "select"


# ---------------------------------------------------------------------------
# Definitions and correlations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorDefinition:
    """
    A factor the user can score.

    `correlations` maps other factor keys to a coefficient in [-1, 1].
    `user_weights` holds per-user weight overrides keyed by user id.
    """

    key: str
    input_type: InputType
    statistical_weight: float = 1.0
    historical_impact: float = 1.0
    name: str = ""
    category: str = "miscellaneous"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: Tuple[Any, ...] = ()
    correlations: Mapping[str, float] = field(default_factory=dict)
    user_weights: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "input_type", InputType(self.input_type))
        except ValueError:
            raise InvalidInput(
                f"{self.key}.input_type", self.input_type,
                "expected binary, scale, percentage or select",
            ) from None
        object.__setattr__(self, "options", tuple(self.options))
        _check_weight(f"{self.key}.statistical_weight", self.statistical_weight)
        if not (0.0 <= self.historical_impact <= 1.0):
            raise InvalidInput(
                f"{self.key}.historical_impact", self.historical_impact, "must be in [0, 1]"
            )
        if (self.min_value is None) != (self.max_value is None):
            raise InvalidInput(
                f"{self.key}.min_value", (self.min_value, self.max_value),
                "min_value and max_value must be given together",
            )
        if self.min_value is not None and self.max_value <= self.min_value:
            raise InvalidInput(
                f"{self.key}.max_value", self.max_value, "must be greater than min_value"
            )
        if self.input_type is InputType.SELECT and len(self.options) < 2:
            raise InvalidInput(
                f"{self.key}.options", self.options, "select factors need at least two options"
            )
        for other, r in self.correlations.items():
            if not (-1.0 <= r <= 1.0):
                raise InvalidInput(f"{self.key}.correlations.{other}", r, "must be in [-1, 1]")

    def user_weight(self, user_id: Optional[str]) -> Optional[float]:
        if user_id is None:
            return None
        return self.user_weights.get(user_id)


@dataclass(frozen=True)
class CorrelationPair:
    factor_a: str
    factor_b: str
    coefficient: float


class CorrelationMatrix:
    """Symmetric correlation lookup keyed by unordered factor pairs.

    Each pair is stored once, so ``get(a, b) == get(b, a)`` always holds.
    """

    def __init__(self, pairs: Iterable[CorrelationPair] = ()) -> None:
        self._pairs: Dict[FrozenSet[str], CorrelationPair] = {}
        for pair in pairs:
            self.add(pair)

    def add(self, pair: CorrelationPair) -> None:
        if pair.factor_a == pair.factor_b:
            raise InvalidInput("correlation", pair, "a factor cannot correlate with itself")
        if not (-1.0 <= pair.coefficient <= 1.0):
            raise InvalidInput("correlation", pair.coefficient, "must be in [-1, 1]")
        key = frozenset((pair.factor_a, pair.factor_b))
        existing = self._pairs.get(key)
        if existing is not None and existing.coefficient != pair.coefficient:
            raise InvalidInput(
                f"correlation.{pair.factor_a}-{pair.factor_b}",
                (existing.coefficient, pair.coefficient),
                "conflicting coefficients declared for the same pair",
            )
        self._pairs[key] = pair

    @classmethod
    def from_definitions(cls, definitions: Iterable[FactorDefinition]) -> "CorrelationMatrix":
        matrix = cls()
        for definition in definitions:
            for other, r in definition.correlations.items():
                matrix.add(CorrelationPair(definition.key, other, float(r)))
        return matrix

    def get(self, factor_a: str, factor_b: str) -> float:
        pair = self._pairs.get(frozenset((factor_a, factor_b)))
        return pair.coefficient if pair is not None else 0.0

    def pairs(self) -> List[CorrelationPair]:
        return list(self._pairs.values())

    def __len__(self) -> int:
        return len(self._pairs)

    def __repr__(self) -> str:
        return f"CorrelationMatrix(pairs={len(self._pairs)})"


# ---------------------------------------------------------------------------
# Normalization (one typed normalizer per input type)
# ---------------------------------------------------------------------------

def _normalize_binary(value: Any, definition: FactorDefinition) -> float:
    if isinstance(value, (bool, int, float)):
        return 1.0 if value else 0.0
    raise InvalidInput(definition.key, value, "binary factors take a boolean")


def _as_number(value: Any, definition: FactorDefinition) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(definition.key, value, f"{definition.input_type.value} factors take a number")
    return float(value)


def _normalize_scale(value: Any, definition: FactorDefinition) -> float:
    v = _as_number(value, definition)
    if definition.min_value is not None:
        lo, hi = definition.min_value, definition.max_value
    else:
        lo, hi = 0.0, MAX_WEIGHT
    if not (lo <= v <= hi):
        raise InvalidInput(definition.key, value, f"must be in [{lo}, {hi}]")
    return (v - lo) / (hi - lo)


def _normalize_percentage(value: Any, definition: FactorDefinition) -> float:
    v = _as_number(value, definition)
    if not (0.0 <= v <= 1.0):
        raise InvalidInput(definition.key, value, "percentage factors must be in [0, 1]")
    return v


def _normalize_select(value: Any, definition: FactorDefinition) -> float:
    try:
        index = definition.options.index(value)
    except ValueError:
        raise InvalidInput(
            definition.key, value, f"expected one of {list(definition.options)}"
        ) from None
    return index / (len(definition.options) - 1)


_NORMALIZERS: Dict[InputType, Callable[[Any, FactorDefinition], float]] = {
    InputType.BINARY: _normalize_binary,
    InputType.SCALE: _normalize_scale,
    InputType.PERCENTAGE: _normalize_percentage,
    InputType.SELECT: _normalize_select,
}


def normalize_factor_value(value: Any, definition: FactorDefinition) -> float:
    """Map a raw factor value to [0, 1] according to its input type.

    binary → {0, 1}; scale → (v − min)/(max − min), or v/10 without bounds;
    percentage → unchanged; select → option index / (options − 1).
    """
    return _NORMALIZERS[definition.input_type](value, definition)


# ---------------------------------------------------------------------------
# Contributions
# ---------------------------------------------------------------------------

def _check_weight(name: str, weight: float) -> None:
    if not (0.0 <= weight <= MAX_WEIGHT):
        raise InvalidInput(name, weight, f"must be in [0, {MAX_WEIGHT:g}]")


def factor_contribution(normalized_value: float, weight: float, historical_impact: float) -> float:
    """normalized · (weight / 10) · historical_impact"""
    _check_weight("weight", weight)
    return normalized_value * (weight / MAX_WEIGHT) * historical_impact


@dataclass(frozen=True)
class FactorInput:
    factor_key: str
    value: Any
    weight: Optional[float] = None


@dataclass(frozen=True)
class FactorObservation:
    """A resolved factor: its value, weight and (adjusted) contribution."""

    factor_key: str
    name: str
    category: str
    raw_value: Any
    weight: float
    normalized_value: float
    base_contribution: float
    contribution: float

    def to_dict(self) -> Dict:
        return {
            "factor_key": self.factor_key,
            "name": self.name,
            "category": self.category,
            "value": self.raw_value,
            "weight": self.weight,
            "normalized_value": self.normalized_value,
            "base_contribution": self.base_contribution,
            "contribution": self.contribution,
        }


def apply_correlation_adjustments(
    observations: Sequence[FactorObservation],
    matrix: Optional[CorrelationMatrix],
) -> List[FactorObservation]:
    """Remove (or restore) double-counted overlap between correlated factors.

    Returns new observations; the inputs are not modified.  See the module
    docstring for the order sensitivity of the pairwise pass.
    """
    if not matrix:
        return list(observations)

    contrib = [obs.contribution for obs in observations]
    n = len(observations)
    for i in range(n):
        for j in range(i + 1, n):
            r = matrix.get(observations[i].factor_key, observations[j].factor_key)
            if r == 0.0:
                continue
            adjustment = contrib[i] * contrib[j] * r
            total = contrib[i] + contrib[j]
            if total > 0:
                share_i = contrib[i] / total
                share_j = contrib[j] / total
                contrib[i] -= adjustment * share_i
                contrib[j] -= adjustment * share_j

    clamped = np.clip(np.asarray(contrib, dtype=float), 0.0, 1.0)
    return [
        replace(obs, contribution=float(c)) for obs, c in zip(observations, clamped)
    ]


# ---------------------------------------------------------------------------
# Probability and confidence
# ---------------------------------------------------------------------------

def final_probability(
    contributions: Sequence[float], base_probability: float = DEFAULT_BASE_PROBABILITY
) -> float:
    """Push the base probability by each contribution's deviation from 0.5.

    result = base + (1 − base)·pos − base·neg, clamped to [0, 1], where pos
    and neg are the summed positive and absolute negative deviations.
    """
    if not (0.0 <= base_probability <= 1.0):
        raise InvalidInput("base_probability", base_probability, "must be in [0, 1]")
    if len(contributions) == 0:
        return base_probability

    deviations = np.asarray(contributions, dtype=float) - 0.5
    pos = float(deviations[deviations > 0].sum())
    neg = float(-deviations[deviations < 0].sum())
    result = base_probability + (1.0 - base_probability) * pos - base_probability * neg
    return float(np.clip(result, 0.0, 1.0))


def calculate_confidence(observations: Sequence[FactorObservation], total_available: int) -> float:
    """
    Confidence in [0, 1] from three signals:

        coverage    factors used / factors available           (0.3)
        weight      mean weight on the 0-10 scale, as 0-1      (0.5)
        dispersion  mean (normalized − 0.5)², scaled by 4      (0.2)
    """
    if not observations:
        return 0.0
    coverage = len(observations) / max(1, total_available)
    weights = np.array([obs.weight for obs in observations], dtype=float)
    values = np.array([obs.normalized_value for obs in observations], dtype=float)
    avg_weight = float(weights.mean()) / MAX_WEIGHT
    dispersion = float(np.mean((values - 0.5) ** 2)) * 4.0

    confidence = (
        _COVERAGE_WEIGHT * coverage
        + _WEIGHT_WEIGHT * avg_weight
        + _DISPERSION_WEIGHT * dispersion
    )
    return float(np.clip(confidence, 0.0, 1.0))


@dataclass(frozen=True)
class ProbabilityInterval:
    lower: float
    upper: float

    def to_dict(self) -> Dict[str, float]:
        return {"lower": self.lower, "upper": self.upper}


def confidence_interval(
    probability: float,
    confidence: float,
    confidence_level: Union[ConfidenceLevel, float, None] = ConfidenceLevel.P95,
) -> ProbabilityInterval:
    """Interval around ``probability`` whose width shrinks with ``confidence``.

    standard_error = (1 − confidence) · 0.25; margin = z · standard_error.
    """
    level = ConfidenceLevel.parse(confidence_level)
    if not (0.0 <= confidence <= 1.0):
        raise InvalidInput("confidence", confidence, "must be in [0, 1]")
    margin = level.z_score * (1.0 - confidence) * _MAX_STANDARD_ERROR
    return ProbabilityInterval(
        lower=max(0.0, probability - margin),
        upper=min(1.0, probability + margin),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FactorResult:
    probability: float
    confidence: float
    interval: ProbabilityInterval
    confidence_level: ConfidenceLevel
    factors: List[FactorObservation]
    ignored_keys: List[str]

    def to_dict(self) -> Dict:
        return {
            "probability": self.probability,
            "confidence": self.confidence,
            "confidence_interval": self.interval.to_dict(),
            "confidence_level": self.confidence_level.level,
            "factors": [f.to_dict() for f in self.factors],
            "ignored_keys": list(self.ignored_keys),
        }


def _resolve_weight(inp: FactorInput, definition: FactorDefinition, user_id: Optional[str]) -> float:
    # input override → user override → statistical weight
    for candidate in (inp.weight, definition.user_weight(user_id)):
        if candidate is not None:
            _check_weight(f"{inp.factor_key}.weight", candidate)
            return float(candidate)
    return float(definition.statistical_weight)


def process_factors(
    inputs: Sequence[FactorInput],
    definitions: Sequence[FactorDefinition],
    correlations: Optional[CorrelationMatrix] = None,
    base_probability: float = DEFAULT_BASE_PROBABILITY,
    confidence_level: Union[ConfidenceLevel, float, None] = ConfidenceLevel.P95,
    user_id: Optional[str] = None,
) -> FactorResult:
    """
    Turn user factor inputs into a probability with confidence interval.

    Args:
        inputs:           Factor values in the order the user supplied them.
        definitions:      Every factor available for the sport (coverage
                          is measured against this list).
        correlations:     Pairwise correlations; built from the
                          definitions when omitted.
        base_probability: Starting probability before any factor.
        confidence_level: Interval level (90, 95 or 99%).
        user_id:          Selects per-user weight overrides.

    Raises:
        InvalidInput: Empty inputs or definitions, duplicate keys, no input
            matching a definition, or a value its normalizer rejects.
    """
    if not inputs:
        raise InvalidInput("factor_inputs", [], "at least one factor input is required")
    if not definitions:
        raise InvalidInput("factor_definitions", [], "at least one factor definition is required")

    by_key: Dict[str, FactorDefinition] = {}
    for definition in definitions:
        if definition.key in by_key:
            raise InvalidInput("factor_definitions", definition.key, "duplicate factor key")
        by_key[definition.key] = definition

    if correlations is None:
        correlations = CorrelationMatrix.from_definitions(definitions)

    observations: List[FactorObservation] = []
    ignored: List[str] = []
    seen = set()
    for inp in inputs:
        definition = by_key.get(inp.factor_key)
        if definition is None:
            logger.warning("Ignoring input for unknown factor %r", inp.factor_key)
            ignored.append(inp.factor_key)
            continue
        if inp.factor_key in seen:
            raise InvalidInput("factor_inputs", inp.factor_key, "factor supplied more than once")
        seen.add(inp.factor_key)

        normalized = normalize_factor_value(inp.value, definition)
        weight = _resolve_weight(inp, definition, user_id)
        contribution = factor_contribution(normalized, weight, definition.historical_impact)
        observations.append(FactorObservation(
            factor_key=inp.factor_key,
            name=definition.name or definition.key,
            category=definition.category,
            raw_value=inp.value,
            weight=weight,
            normalized_value=normalized,
            base_contribution=contribution,
            contribution=contribution,
        ))

    if not observations:
        raise InvalidInput(
            "factor_inputs", ignored, "no input matches a known factor definition"
        )

    adjusted = apply_correlation_adjustments(observations, correlations)
    probability = final_probability([o.contribution for o in adjusted], base_probability)
    confidence = calculate_confidence(adjusted, len(definitions))
    level = ConfidenceLevel.parse(confidence_level)
    interval = confidence_interval(probability, confidence, level)

    logger.info(
        "Processed %d/%d factors: p=%.4f confidence=%.3f [%.4f, %.4f]",
        len(adjusted), len(definitions), probability, confidence,
        interval.lower, interval.upper,
    )
    return FactorResult(
        probability=probability,
        confidence=confidence,
        interval=interval,
        confidence_level=level,
        factors=adjusted,
        ignored_keys=ignored,
    )
