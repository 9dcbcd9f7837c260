"""
Calibration scoring for a bettor's historical predictions.

Every (predicted probability, outcome) pair the user has logged is scored
in full on each call:

    brier_score      mean((predicted − outcome)²); lower is better
    curve            predictions bucketed into equal-width bins, each with
                     its mean prediction, hit rate and count
    overconfidence   Σ (predicted − actual) · count over bins that predicted
                     too high
    underconfidence  Σ (actual − predicted) · count over bins that predicted
                     too low

Over/under-confidence are count-weighted sums, not means, so they grow with
the number of predictions.  The 0.1 / 0.2 recommendation thresholds are
therefore easy to cross once a user has logged a few dozen bets.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from edgecalc.core.errors import InvalidInput

logger = logging.getLogger(__name__)

DEFAULT_NUM_BINS = 10

# Recommendation thresholds
_CONFIDENCE_THRESHOLD = 0.1
_HIGH_SEVERITY_THRESHOLD = 0.2
_RANGE_MIN_COUNT = 5
_RANGE_ERROR_THRESHOLD = 0.15


@dataclass(frozen=True)
class CalibrationPoint:
    predicted_probability: float
    actual_outcome: bool

    def __post_init__(self) -> None:
        if not (0.0 <= self.predicted_probability <= 1.0):
            raise InvalidInput(
                "predicted_probability", self.predicted_probability, "must be in [0, 1]"
            )


@dataclass(frozen=True)
class CalibrationBin:
    lower_edge: float
    predicted: float
    actual: float
    count: int

    def to_dict(self) -> Dict:
        return {
            "bin": self.lower_edge,
            "predicted": self.predicted,
            "actual": self.actual,
            "count": self.count,
        }


@dataclass(frozen=True)
class CalibrationRecommendation:
    type: str
    description: str
    severity: str
    suggested_action: str

    def to_dict(self) -> Dict:
        return {
            "type": self.type,
            "description": self.description,
            "severity": self.severity,
            "suggested_action": self.suggested_action,
        }


@dataclass(frozen=True)
class CalibrationReport:
    total_predictions: int
    brier_score: float
    curve: List[CalibrationBin]
    overconfidence: float
    underconfidence: float
    recommendations: List[CalibrationRecommendation] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "total_predictions": self.total_predictions,
            "brier_score": self.brier_score,
            "calibration_curve": [b.to_dict() for b in self.curve],
            "overconfidence": self.overconfidence,
            "underconfidence": self.underconfidence,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def _arrays(points: Sequence[CalibrationPoint]):
    predicted = np.array([p.predicted_probability for p in points], dtype=float)
    outcomes = np.array([1.0 if p.actual_outcome else 0.0 for p in points], dtype=float)
    return predicted, outcomes


def brier_score(points: Sequence[CalibrationPoint]) -> float:
    """Mean squared error between prediction and outcome; 0.0 for no points."""
    if not points:
        return 0.0
    predicted, outcomes = _arrays(points)
    return float(np.mean((predicted - outcomes) ** 2))


def calibration_curve(
    points: Sequence[CalibrationPoint], num_bins: int = DEFAULT_NUM_BINS
) -> List[CalibrationBin]:
    """
    Equal-width bins over [0, 1].  A prediction of exactly 1.0 lands in the
    last bin.  Empty bins report predicted = actual = 0.
    """
    if num_bins < 1:
        raise InvalidInput("num_bins", num_bins, "must be >= 1")

    counts = np.zeros(num_bins, dtype=int)
    pred_sums = np.zeros(num_bins)
    hit_sums = np.zeros(num_bins)
    if points:
        predicted, outcomes = _arrays(points)
        idx = np.minimum(np.floor(predicted * num_bins).astype(int), num_bins - 1)
        counts = np.bincount(idx, minlength=num_bins)
        pred_sums = np.bincount(idx, weights=predicted, minlength=num_bins)
        hit_sums = np.bincount(idx, weights=outcomes, minlength=num_bins)

    curve = []
    for i in range(num_bins):
        n = int(counts[i])
        curve.append(CalibrationBin(
            lower_edge=i / num_bins,
            predicted=float(pred_sums[i] / n) if n else 0.0,
            actual=float(hit_sums[i] / n) if n else 0.0,
            count=n,
        ))
    return curve


def confidence_metrics(curve: Sequence[CalibrationBin]) -> Dict[str, float]:
    """Count-weighted over- and under-confidence across the curve."""
    over = under = 0.0
    for b in curve:
        if b.count == 0:
            continue
        if b.predicted > b.actual:
            over += (b.predicted - b.actual) * b.count
        elif b.predicted < b.actual:
            under += (b.actual - b.predicted) * b.count
    return {"overconfidence": over, "underconfidence": under}


def generate_recommendations(
    overconfidence: float,
    underconfidence: float,
    curve: Sequence[CalibrationBin],
) -> List[CalibrationRecommendation]:
    recs: List[CalibrationRecommendation] = []

    if overconfidence > _CONFIDENCE_THRESHOLD:
        recs.append(CalibrationRecommendation(
            type="overconfidence",
            description="You tend to be overconfident in your predictions",
            severity="high" if overconfidence > _HIGH_SEVERITY_THRESHOLD else "medium",
            suggested_action="Consider being more conservative with your probability estimates",
        ))

    if underconfidence > _CONFIDENCE_THRESHOLD:
        recs.append(CalibrationRecommendation(
            type="underconfidence",
            description="You tend to be underconfident in your predictions",
            severity="high" if underconfidence > _HIGH_SEVERITY_THRESHOLD else "medium",
            suggested_action="Consider being more confident in your probability estimates",
        ))

    width = 1.0 / len(curve) if curve else 0.0
    for b in curve:
        if b.count > _RANGE_MIN_COUNT and abs(b.predicted - b.actual) > _RANGE_ERROR_THRESHOLD:
            lo = b.lower_edge * 100
            hi = (b.lower_edge + width) * 100
            recs.append(CalibrationRecommendation(
                type="specific_range",
                description=f"Significant calibration error in the {lo:.0f}-{hi:.0f}% range",
                severity="medium",
                suggested_action="Review your prediction methodology for this probability range",
            ))

    return recs


def evaluate_calibration(
    points: Sequence[CalibrationPoint], num_bins: int = DEFAULT_NUM_BINS
) -> CalibrationReport:
    """
    Score the full prediction history.

    Raises:
        InvalidInput: `points` is empty; there is nothing to calibrate.
    """
    if not points:
        raise InvalidInput("points", [], "at least one calibration point is required")

    curve = calibration_curve(points, num_bins)
    metrics = confidence_metrics(curve)
    report = CalibrationReport(
        total_predictions=len(points),
        brier_score=brier_score(points),
        curve=curve,
        overconfidence=metrics["overconfidence"],
        underconfidence=metrics["underconfidence"],
        recommendations=generate_recommendations(
            metrics["overconfidence"], metrics["underconfidence"], curve
        ),
    )
    logger.info(
        "Calibration over %d predictions: brier=%.4f over=%.3f under=%.3f (%d recommendations)",
        report.total_predictions, report.brier_score,
        report.overconfidence, report.underconfidence, len(report.recommendations),
    )
    return report
