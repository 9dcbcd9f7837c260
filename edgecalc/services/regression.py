"""
Regression-to-the-mean engine.

Given a team's (or player's) current performance on some metric, estimates
how much of it is skill versus noise and nudges the user's win probability
accordingly, then flags the cognitive biases the situation invites.

Constants come from an injected `RegressionTable` (see
`edgecalc.core.sport_config`):

    regression factor     share of the deviation expected to vanish
    stabilization point   sample size at which the metric is 50% reliable
    standard deviation    typical spread of the metric

When a sport or metric is missing from the table the lookup falls back to
the `default` / `anyMetric` entries and the result carries
`used_default_factors=True`.

Key formulas:

    reliability            n / (n + stabilization_point)
    estimated_true_talent  observed · reliability + baseline · (1 − reliability)
    expected_performance   baseline + (current − baseline) · (1 − factor)
    deviations_from_mean   (current − expected) / std_dev
    adjusted_probability   p − clamp(0.05 · deviations, ±0.5 · min(p, 1 − p))
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union

from edgecalc.core.confidence import ConfidenceLevel
from edgecalc.core.errors import ArithmeticDegenerate, InvalidInput
from edgecalc.core.sport_config import RegressionTable

logger = logging.getLogger(__name__)

# Probability shift per standard deviation of over/under-performance
_ADJUSTMENT_PER_SD = 0.05

# Adjustment never exceeds this share of the distance to the nearer bound
_MAX_ADJUSTMENT_SHARE = 0.5

# Percentage-metric std dev is capped at this share of min(avg, 1 − avg)
_PERCENTAGE_SD_CAP = 0.8

# Bias thresholds
_RECENCY_SD_THRESHOLD = 1.5
_HOT_HAND_SAMPLE_SHARE = 0.3
_HOT_HAND_SEVERITY_SHARE = 0.5
_GAMBLERS_SD_SHARE = 0.8
_GAMBLERS_SEVERITY = 0.7
_SMALL_SAMPLE_SHARE = 0.2


class PerformanceStatus(str, Enum):
    OVERPERFORMING = "overperforming"
    UNDERPERFORMING = "underperforming"
    AVERAGE = "average"


class BiasType(str, Enum):
    RECENCY = "recencyBias"
    HOT_HAND = "hotHandFallacy"
    GAMBLERS_FALLACY = "gamblersFallacy"
    SMALL_SAMPLE = "smallSampleSize"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RegressionInput:
    current_performance: float
    baseline: float
    sample_size: float
    sport: str
    metric: str
    league_average: Optional[float] = None

    def __post_init__(self) -> None:
        if self.sample_size < 0:
            raise InvalidInput("sample_size", self.sample_size, "must be >= 0")
        for name in ("current_performance", "baseline"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidInput(name, value, "must be finite")
        if self.league_average is not None and "Percentage" in self.metric:
            if not (0.0 <= self.league_average <= 1.0):
                raise InvalidInput(
                    "league_average", self.league_average, "percentage metrics need a value in [0, 1]"
                )


@dataclass(frozen=True)
class Interval:
    lower: float
    upper: float


@dataclass(frozen=True)
class RegressionAnalysis:
    """Full regression diagnosis for one metric."""

    sport: str
    metric: str
    current_performance: float
    baseline: float
    expected_performance: float
    estimated_true_talent: float
    original_probability: float
    adjusted_probability: float
    confidence_interval: Optional[Interval]
    regression_factor: float
    reliability: float
    performance_status: PerformanceStatus
    sample_size: float
    stabilization_point: float
    standard_deviation: float
    table_standard_deviation: float
    deviations_from_mean: float
    used_default_factors: bool

    def to_dict(self) -> Dict:
        ci = self.confidence_interval
        return {
            "sport": self.sport,
            "metric": self.metric,
            "current_performance": self.current_performance,
            "baseline": self.baseline,
            "expected_performance": self.expected_performance,
            "estimated_true_talent": self.estimated_true_talent,
            "original_probability": self.original_probability,
            "adjusted_probability": self.adjusted_probability,
            "confidence_interval": None if ci is None else {"lower": ci.lower, "upper": ci.upper},
            "regression_factor": self.regression_factor,
            "reliability": self.reliability,
            "performance_status": self.performance_status.value,
            "sample_size": self.sample_size,
            "stabilization_point": self.stabilization_point,
            "standard_deviation": self.standard_deviation,
            "deviations_from_mean": self.deviations_from_mean,
            "used_default_factors": self.used_default_factors,
        }


@dataclass(frozen=True)
class CognitiveBias:
    type: BiasType
    description: str
    explanation: str
    severity: float

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "description": self.description,
            "explanation": self.explanation,
            "severity": self.severity,
        }


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def reliability(sample_size: float, stabilization_point: float) -> float:
    """n / (n + stabilization_point); 0 at n = 0, 0.5 at the stabilization point."""
    if sample_size < 0:
        raise InvalidInput("sample_size", sample_size, "must be >= 0")
    if stabilization_point <= 0:
        raise InvalidInput("stabilization_point", stabilization_point, "must be > 0")
    return sample_size / (sample_size + stabilization_point)


def estimate_true_talent(observed: float, population_mean: float, rel: float) -> float:
    return observed * rel + population_mean * (1.0 - rel)


def expected_regression(current: float, baseline: float, regression_factor: float) -> float:
    return baseline + (current - baseline) * (1.0 - regression_factor)


def cap_standard_deviation(std_dev: float, metric: str, average: Optional[float]) -> float:
    """
    Percentage metrics cannot spread past 0 or 1, so their std dev is capped
    at 80% of min(average, 1 − average).  Other metrics pass through.
    """
    if average is None or "Percentage" not in metric:
        return std_dev
    return min(std_dev, min(average, 1.0 - average) * _PERCENTAGE_SD_CAP)


def regression_confidence_interval(
    expected: float,
    std_dev: float,
    sample_size: float,
    confidence_level: Union[ConfidenceLevel, float, None] = ConfidenceLevel.P95,
) -> Interval:
    """expected ± z · std_dev / √n"""
    if sample_size <= 0:
        raise ArithmeticDegenerate("standard error is undefined for an empty sample")
    level = ConfidenceLevel.parse(confidence_level)
    margin = level.z_score * std_dev / math.sqrt(sample_size)
    return Interval(lower=expected - margin, upper=expected + margin)


def probability_adjustment(original_probability: float, deviations_from_mean: float) -> float:
    """Adjusted probability after leaning against over/under-performance."""
    if not (0.0 < original_probability < 1.0):
        raise InvalidInput(
            "original_probability", original_probability, "must be in (0, 1)"
        )
    max_adjustment = min(original_probability, 1.0 - original_probability) * _MAX_ADJUSTMENT_SHARE
    raw_adjustment = deviations_from_mean * _ADJUSTMENT_PER_SD
    return original_probability - max(-max_adjustment, min(raw_adjustment, max_adjustment))


def performance_status(current: float, baseline: float) -> PerformanceStatus:
    if current > baseline:
        return PerformanceStatus.OVERPERFORMING
    if current < baseline:
        return PerformanceStatus.UNDERPERFORMING
    return PerformanceStatus.AVERAGE


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def analyze_regression(
    inp: RegressionInput,
    original_probability: float,
    table: Optional[RegressionTable] = None,
    confidence_level: Union[ConfidenceLevel, float, None] = ConfidenceLevel.P95,
) -> RegressionAnalysis:
    """
    Regression-adjust `original_probability` for the performance in `inp`.

    With `sample_size == 0` there is no standard error, so the confidence
    interval is None; every other field is still computed.

    Raises:
        InvalidInput: `original_probability` outside (0, 1).
        ArithmeticDegenerate: The capped standard deviation is zero (a
            percentage metric whose league average is exactly 0 or 1).
    """
    table = table or RegressionTable.default()
    profile, used_default = table.lookup(inp.sport, inp.metric)
    if used_default:
        logger.warning(
            "No regression entry for %s/%s; using default factors "
            "(factor=%.2f, stabilization=%g, sd=%g)",
            inp.sport, inp.metric, profile.factor,
            profile.stabilization_point, profile.std_dev,
        )

    rel = reliability(inp.sample_size, profile.stabilization_point)
    talent = estimate_true_talent(inp.current_performance, inp.baseline, rel)
    expected = expected_regression(inp.current_performance, inp.baseline, profile.factor)

    std_dev = cap_standard_deviation(profile.std_dev, inp.metric, inp.league_average)
    if std_dev <= 0:
        raise ArithmeticDegenerate(
            f"standard deviation for {inp.sport}/{inp.metric} is {std_dev!r} "
            f"(league_average={inp.league_average!r})"
        )

    interval = None
    if inp.sample_size > 0:
        interval = regression_confidence_interval(expected, std_dev, inp.sample_size, confidence_level)

    deviations = (inp.current_performance - expected) / std_dev
    adjusted = probability_adjustment(original_probability, deviations)

    analysis = RegressionAnalysis(
        sport=inp.sport,
        metric=inp.metric,
        current_performance=inp.current_performance,
        baseline=inp.baseline,
        expected_performance=expected,
        estimated_true_talent=talent,
        original_probability=original_probability,
        adjusted_probability=adjusted,
        confidence_interval=interval,
        regression_factor=profile.factor,
        reliability=rel,
        performance_status=performance_status(inp.current_performance, inp.baseline),
        sample_size=inp.sample_size,
        stabilization_point=profile.stabilization_point,
        standard_deviation=std_dev,
        table_standard_deviation=profile.std_dev,
        deviations_from_mean=deviations,
        used_default_factors=used_default,
    )
    logger.info(
        "Regression %s/%s: expected=%.4f reliability=%.3f p %.4f → %.4f",
        inp.sport, inp.metric, expected, rel, original_probability, adjusted,
    )
    return analysis


def identify_biases(analysis: RegressionAnalysis) -> List[CognitiveBias]:
    """
    Flag cognitive biases suggested by the analysis.  Each check is
    independent, so several may fire at once.
    """
    biases: List[CognitiveBias] = []
    dev = abs(analysis.deviations_from_mean)
    n = analysis.sample_size
    stab = analysis.stabilization_point
    status = analysis.performance_status

    if dev > _RECENCY_SD_THRESHOLD:
        biases.append(CognitiveBias(
            type=BiasType.RECENCY,
            description="Recency Bias",
            explanation=(
                f"Current {status.value} performance is {dev:.1f} standard deviations "
                "from the mean, suggesting possible recency bias in probability estimates."
            ),
            severity=min(dev / 2.0, 1.0),
        ))

    if status is PerformanceStatus.OVERPERFORMING and n < stab * _HOT_HAND_SAMPLE_SHARE:
        biases.append(CognitiveBias(
            type=BiasType.HOT_HAND,
            description="Hot-Hand Fallacy",
            explanation=(
                f"Current hot streak ({n:g} observations) is smaller than the "
                f"stabilization point ({stab:g}), suggesting caution when projecting "
                "continued high performance."
            ),
            severity=1.0 - n / (stab * _HOT_HAND_SEVERITY_SHARE),
        ))

    gap = abs(analysis.current_performance - analysis.baseline)
    if (status is PerformanceStatus.UNDERPERFORMING
            and gap > _GAMBLERS_SD_SHARE * analysis.table_standard_deviation):
        biases.append(CognitiveBias(
            type=BiasType.GAMBLERS_FALLACY,
            description="Gambler's Fallacy",
            explanation=(
                "Be cautious about assuming an immediate return to baseline performance. "
                "Regression happens gradually over time, not necessarily in the next event."
            ),
            severity=_GAMBLERS_SEVERITY,
        ))

    if n < stab * _SMALL_SAMPLE_SHARE:
        biases.append(CognitiveBias(
            type=BiasType.SMALL_SAMPLE,
            description="Small Sample Size",
            explanation=(
                f"Current performance is based on a small sample ({n:g} vs. stabilization "
                f"at {stab:g}), making it less reliable for predictive purposes."
            ),
            severity=1.0 - n / (stab * _SMALL_SAMPLE_SHARE),
        ))

    if biases:
        logger.debug(
            "Biases for %s/%s: %s", analysis.sport, analysis.metric,
            ", ".join(b.type.value for b in biases),
        )
    return biases
