"""
Request-level entry points.

Each function takes a validated request schema, runs the matching service,
and returns a plain dict ready for serialization.  Settings supply the
defaults a request leaves out (fraction multiplier, base probability,
confidence level, regression table, calibration bins, risk limits).
"""

import logging
from typing import Dict, Optional

from edgecalc.config import Settings, load_settings
from edgecalc.core.kelly import kelly_from_odds, risk_metrics
from edgecalc.core.sport_config import RegressionTable
from edgecalc.schemas import (
    CalibrationRequest,
    FactorRequest,
    KellyRequest,
    MarketCompareRequest,
    ModelBlendRequest,
    RegressionRequest,
    RiskCheckRequest,
)
from edgecalc.services.calibration import CalibrationPoint, evaluate_calibration
from edgecalc.services.factors import (
    CorrelationMatrix,
    FactorDefinition,
    FactorInput,
    process_factors,
)
from edgecalc.services.market import BookmakerQuote, compare_market
from edgecalc.services.regression import RegressionInput, analyze_regression, identify_biases
from edgecalc.services.risk import RiskSettings, check_bet_limits
from edgecalc.services.statistical_models import (
    blend_models,
    elo_probability,
    poisson_win_probability,
    regression_probability,
)

logger = logging.getLogger(__name__)

_settings: Optional[Settings] = None
_regression_table: Optional[RegressionTable] = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _table(settings: Settings) -> RegressionTable:
    global _regression_table
    if settings is not _settings:
        return settings.regression_table()
    if _regression_table is None:
        _regression_table = settings.regression_table()
    return _regression_table


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def size_bet(req: KellyRequest, settings: Optional[Settings] = None) -> Dict:
    """Kelly stake for one bet; adds stake and risk metrics when a bankroll is given."""
    settings = settings or get_settings()
    result = kelly_from_odds(
        req.probability,
        req.odds,
        req.odds_format,
        fraction_multiplier=(
            settings.fraction_multiplier if req.fraction_multiplier is None
            else req.fraction_multiplier
        ),
        max_bet_percentage=(
            settings.max_bet_percentage if req.max_bet_percentage is None
            else req.max_bet_percentage
        ),
    )
    out = result.to_dict()
    if req.bankroll is not None:
        stake = round(result.kelly_fraction * req.bankroll, 2)
        out["stake"] = stake
        out["risk_metrics"] = (
            risk_metrics(stake, result.decimal_odds, req.bankroll) if stake > 0 else None
        )
    logger.info(
        "Kelly p=%.3f d=%.3f → %.4f (%s, %s)",
        req.probability, result.decimal_odds, result.kelly_fraction,
        result.risk_level.value, result.recommendation.value,
    )
    return out


def compare_market_odds(req: MarketCompareRequest) -> Dict:
    quotes = [
        BookmakerQuote(
            bookmaker=q.bookmaker,
            home_odds=q.home_odds,
            away_odds=q.away_odds,
            draw_odds=q.draw_odds,
            odds_format=q.odds_format,
        )
        for q in req.quotes
    ]
    ranked = compare_market(quotes, req.outcome, req.user_probability)
    return {
        "outcome": req.outcome,
        "user_probability": req.user_probability,
        "opportunities": [o.to_dict() for o in ranked],
        "positive_ev_count": sum(1 for o in ranked if o.is_positive_ev),
    }


def estimate_probability(req: FactorRequest, settings: Optional[Settings] = None) -> Dict:
    settings = settings or get_settings()
    definitions = [
        FactorDefinition(
            key=d.key,
            input_type=d.input_type,
            statistical_weight=d.statistical_weight,
            historical_impact=d.historical_impact,
            name=d.name,
            category=d.category,
            min_value=d.min_value,
            max_value=d.max_value,
            options=tuple(d.options),
            correlations=dict(d.correlations),
            user_weights=dict(d.user_weights),
        )
        for d in req.definitions
    ]
    inputs = [FactorInput(i.factor_key, i.value, i.weight) for i in req.inputs]
    result = process_factors(
        inputs,
        definitions,
        correlations=CorrelationMatrix.from_definitions(definitions),
        base_probability=(
            settings.base_probability if req.base_probability is None else req.base_probability
        ),
        confidence_level=(
            settings.confidence_level if req.confidence_level is None else req.confidence_level
        ),
        user_id=req.user_id,
    )
    return result.to_dict()


def blend_probability(req: ModelBlendRequest) -> Dict:
    regression = regression_probability(req.features, req.sport)
    elo = elo_probability(req.sport, req.team_rating, req.opponent_rating, req.team_is_home)

    poisson_p = None
    if req.goals_for is not None and req.goals_against is not None:
        poisson_p = poisson_win_probability(req.goals_for, req.goals_against, req.sport).probability

    blended = blend_models(
        regression.probability, elo.probability, poisson_p, home_advantage=req.home_advantage
    )
    out = blended.to_dict()
    out["sport"] = req.sport.lower()
    out["elo"] = {
        "team_rating": elo.team_rating,
        "opponent_rating": elo.opponent_rating,
        "home_advantage": elo.home_advantage,
        "k_factor": elo.k_factor,
    }
    return out


def analyze_regression_request(req: RegressionRequest, settings: Optional[Settings] = None) -> Dict:
    settings = settings or get_settings()
    inp = RegressionInput(
        current_performance=req.current_performance,
        baseline=req.baseline,
        sample_size=req.sample_size,
        sport=req.sport,
        metric=req.metric,
        league_average=req.league_average,
    )
    analysis = analyze_regression(
        inp,
        req.original_probability,
        table=_table(settings),
        confidence_level=(
            settings.confidence_level if req.confidence_level is None else req.confidence_level
        ),
    )
    out = analysis.to_dict()
    out["cognitive_biases"] = [b.to_dict() for b in identify_biases(analysis)]
    return out


def score_calibration(req: CalibrationRequest, settings: Optional[Settings] = None) -> Dict:
    settings = settings or get_settings()
    points = [CalibrationPoint(p.predicted_probability, p.actual_outcome) for p in req.points]
    num_bins = settings.calibration_bins if req.num_bins is None else req.num_bins
    return evaluate_calibration(points, num_bins).to_dict()


def check_risk(req: RiskCheckRequest, settings: Optional[Settings] = None) -> Dict:
    settings = settings or get_settings()
    base = RiskSettings.from_settings(settings)
    limits = RiskSettings(
        stop_loss_percentage=(
            base.stop_loss_percentage if req.stop_loss_percentage is None
            else req.stop_loss_percentage
        ),
        stop_win_percentage=(
            base.stop_win_percentage if req.stop_win_percentage is None
            else req.stop_win_percentage
        ),
        max_open_bets=base.max_open_bets if req.max_open_bets is None else req.max_open_bets,
    )
    return check_bet_limits(
        req.stake, req.bankroll, req.open_bets, req.daily_results, limits
    ).to_dict()
