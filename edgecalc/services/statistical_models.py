"""
Statistical sub-models and their fixed-weight blend.

Three independent estimates of a team's win probability:

    regression  0.5 plus a weighted sum of situational features
    elo         logistic expected score from ratings (home advantage added
                to the home side's rating before the formula)
    poisson     P(team goals > opponent goals) from independent Poisson
                scoring rates, summed over a truncated score grid

`blend_models` combines them with weights 0.4 / 0.4 / 0.2.  Without a
Poisson estimate the regression and Elo weights are renormalized to sum
to 1.

The Poisson grid stops at 10 goals for goal-scoring sports and 20 points
otherwise, so it is a finite truncation of an infinite series.  For high
scoring rates (basketball points) the truncated mass is large and the
estimate is biased low; use it for low-scoring sports.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import numpy as np
from scipy.stats import poisson

from edgecalc.core.errors import InvalidInput
from edgecalc.core.sport_config import SportParams, sport_params

logger = logging.getLogger(__name__)

# Blend weights
REGRESSION_WEIGHT = 0.4
ELO_WEIGHT = 0.4
POISSON_WEIGHT = 0.2

_BASE_FEATURE_WEIGHTS: Dict[str, float] = {
    "homeAdvantage": 0.1,
    "recentForm": 0.3,
    "headToHead": 0.2,
    "restDays": 0.1,
    "injuries": 0.1,
    "weather": 0.1,
    "venue": 0.1,
}

_SPORT_FEATURE_OVERRIDES: Dict[str, Dict[str, float]] = {
    "baseball": {"weather": 0.15, "homeAdvantage": 0.08},
    "soccer": {"homeAdvantage": 0.15, "venue": 0.15},
}


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


# ---------------------------------------------------------------------------
# Elo
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EloResult:
    team_rating: float
    opponent_rating: float
    home_advantage: float
    k_factor: float
    probability: float
    sport: str


def expected_score(rating_a: float, rating_b: float) -> float:
    """Elo expected score of A against B: 1 / (1 + 10^((B − A)/400))."""
    return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / 400.0))


def update_elo(current_rating: float, expected: float, actual: float, k_factor: float) -> float:
    """Rating after one game: current + k · (actual − expected)."""
    if not (0.0 <= actual <= 1.0):
        raise InvalidInput("actual_score", actual, "must be in [0, 1] (loss, draw, win)")
    return current_rating + k_factor * (actual - expected)


def elo_probability(
    sport: str,
    team_rating: Optional[float] = None,
    opponent_rating: Optional[float] = None,
    team_is_home: Optional[bool] = True,
) -> EloResult:
    """
    Win probability for `team` from Elo ratings.

    Missing ratings default to the sport's starting rating.  `team_is_home`
    True gives the team the sport's home advantage, False gives it to the
    opponent, None treats the venue as neutral.
    """
    params: SportParams = sport_params(sport)
    team = params.default_rating if team_rating is None else float(team_rating)
    opponent = params.default_rating if opponent_rating is None else float(opponent_rating)

    team_adj, opponent_adj = team, opponent
    if team_is_home is True:
        team_adj += params.home_advantage
    elif team_is_home is False:
        opponent_adj += params.home_advantage

    probability = expected_score(team_adj, opponent_adj)
    return EloResult(
        team_rating=team,
        opponent_rating=opponent,
        home_advantage=params.home_advantage if team_is_home is not None else 0.0,
        k_factor=params.k_factor,
        probability=probability,
        sport=params.sport,
    )


# ---------------------------------------------------------------------------
# Poisson
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoissonResult:
    goals_for: float
    goals_against: float
    max_score: int
    probability: float
    scoring_type: str
    sport: str


def poisson_win_probability(goals_for: float, goals_against: float, sport: str) -> PoissonResult:
    """
    P(team outscores opponent) = Σ_{i > j} Pois(i; λ_for) · Pois(j; λ_against)

    over scores 0 .. max_score − 1.  Draws are excluded from the win mass.
    """
    if goals_for < 0:
        raise InvalidInput("goals_for", goals_for, "scoring rate must be >= 0")
    if goals_against < 0:
        raise InvalidInput("goals_against", goals_against, "scoring rate must be >= 0")

    params = sport_params(sport)
    scores = np.arange(params.poisson_max_score)
    p_for = poisson.pmf(scores, goals_for)
    p_against = poisson.pmf(scores, goals_against)
    # joint[i, j] = P(team scores i) · P(opponent scores j); i > j below the diagonal
    joint = np.outer(p_for, p_against)
    probability = float(np.tril(joint, k=-1).sum())

    return PoissonResult(
        goals_for=float(goals_for),
        goals_against=float(goals_against),
        max_score=params.poisson_max_score,
        probability=probability,
        scoring_type=params.scoring_type,
        sport=params.sport,
    )


# ---------------------------------------------------------------------------
# Feature regression
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RegressionModelResult:
    probability: float
    feature_weights: Dict[str, float]
    sport: str


def feature_weights(sport: str) -> Dict[str, float]:
    weights = dict(_BASE_FEATURE_WEIGHTS)
    weights.update(_SPORT_FEATURE_OVERRIDES.get((sport or "").lower(), {}))
    return weights


def regression_probability(features: Mapping[str, float], sport: str) -> RegressionModelResult:
    """
    0.5 + Σ weight · feature over the known features, clamped to [0, 1].

    Feature values are signed scores (positive favours the team).  Keys
    without a weight are ignored.
    """
    weights = feature_weights(sport)
    probability = 0.5
    for name, value in features.items():
        weight = weights.get(name)
        if weight is None:
            continue
        probability += weight * float(value)

    return RegressionModelResult(
        probability=_clamp01(probability),
        feature_weights=weights,
        sport=(sport or "").lower(),
    )


# ---------------------------------------------------------------------------
# Blend
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BlendedProbability:
    probability: float
    weights: Dict[str, float]
    components: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "probability": self.probability,
            "weights": dict(self.weights),
            "components": dict(self.components),
        }


def blend_models(
    regression: float,
    elo: float,
    poisson_estimate: Optional[float] = None,
    home_advantage: float = 0.0,
) -> BlendedProbability:
    """
    Weighted blend of the sub-model probabilities.

    `home_advantage` is an additive probability bump from the user's
    profile, applied after blending; the result is clamped to [0, 1].
    """
    components = {"regression": regression, "elo": elo}
    weights = {"regression": REGRESSION_WEIGHT, "elo": ELO_WEIGHT}
    if poisson_estimate is not None:
        components["poisson"] = poisson_estimate
        weights["poisson"] = POISSON_WEIGHT

    for name, p in components.items():
        if not (0.0 <= p <= 1.0):
            raise InvalidInput(f"{name}_probability", p, "must be in [0, 1]")

    total = sum(weights.values())
    weights = {name: w / total for name, w in weights.items()}
    blended = sum(components[name] * w for name, w in weights.items())
    result = _clamp01(blended + home_advantage)

    logger.debug("Blended %s with weights %s → %.4f", components, weights, result)
    return BlendedProbability(probability=result, weights=weights, components=components)
