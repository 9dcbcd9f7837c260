"""
Pydantic request schemas for the engine entry points.

A request layer (HTTP, CLI, queue consumer) validates raw payloads with
these models before calling :mod:`edgecalc.engine`.  Range checks that a
caller can correct live here; the numeric core re-checks what it depends on.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator


OddsFormatName = Literal["american", "decimal", "fractional"]
OddsIn = Union[float, str]


def _check_american(v: float) -> float:
    if -100 < v < 100:
        raise ValueError(
            f"odds={v} is not valid American odds. Must be >= +100 or <= -100."
        )
    return v


# ---------------------------------------------------------------------------
# Kelly sizing
# ---------------------------------------------------------------------------

class KellyRequest(BaseModel):
    """Stake sizing for a single bet."""

    probability: float = Field(..., gt=0.0, lt=1.0, description="Estimated win probability")
    odds_format: OddsFormatName = "decimal"
    odds: OddsIn = Field(..., description="Price in the given format")
    fraction_multiplier: Optional[float] = Field(None, ge=0.0, le=1.0, description="0.5 = half Kelly")
    max_bet_percentage: Optional[float] = Field(None, ge=0.0, le=1.0)
    bankroll: Optional[float] = Field(None, gt=0, description="Enables stake and risk metrics")

    @field_validator("odds")
    @classmethod
    def validate_odds(cls, v: OddsIn, info: ValidationInfo) -> OddsIn:
        if info.data.get("odds_format") == "american" and not isinstance(v, str):
            return _check_american(v)
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "probability": 0.55,
                "odds": -110,
                "odds_format": "american",
                "fraction_multiplier": 0.5,
                "max_bet_percentage": 0.10,
                "bankroll": 1000.0,
            }
        }
    }


# ---------------------------------------------------------------------------
# Market comparison
# ---------------------------------------------------------------------------

class QuoteIn(BaseModel):
    """One bookmaker's prices for the market."""

    bookmaker: str = Field(..., min_length=1, max_length=120)
    home_odds: OddsIn
    away_odds: OddsIn
    draw_odds: Optional[OddsIn] = None
    odds_format: OddsFormatName = "decimal"


class MarketCompareRequest(BaseModel):
    outcome: Literal["home", "away", "draw"]
    user_probability: float = Field(..., gt=0.0, lt=1.0)
    quotes: List[QuoteIn] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "outcome": "home",
                "user_probability": 0.55,
                "quotes": [
                    {"bookmaker": "BookA", "home_odds": 1.95, "away_odds": 1.95},
                    {"bookmaker": "BookB", "home_odds": -105, "away_odds": -115,
                     "odds_format": "american"},
                ],
            }
        }
    }


# ---------------------------------------------------------------------------
# Multi-factor estimate
# ---------------------------------------------------------------------------

class FactorDefinitionIn(BaseModel):
    key: str = Field(..., min_length=1)
    input_type: Literal["binary", "scale", "percentage", "select"]
    statistical_weight: float = Field(1.0, ge=0.0, le=10.0)
    historical_impact: float = Field(1.0, ge=0.0, le=1.0)
    name: str = ""
    category: str = "miscellaneous"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: List[Any] = Field(default_factory=list)
    correlations: Dict[str, float] = Field(default_factory=dict)
    user_weights: Dict[str, float] = Field(default_factory=dict)


class FactorInputIn(BaseModel):
    factor_key: str = Field(..., min_length=1)
    value: Any
    weight: Optional[float] = Field(None, ge=0.0, le=10.0)


class FactorRequest(BaseModel):
    inputs: List[FactorInputIn] = Field(..., min_length=1)
    definitions: List[FactorDefinitionIn] = Field(..., min_length=1)
    base_probability: Optional[float] = Field(None, ge=0.0, le=1.0)
    confidence_level: Optional[float] = Field(None, description="0.90, 0.95 or 0.99")
    user_id: Optional[str] = None

    @field_validator("confidence_level")
    @classmethod
    def validate_level(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and round(v, 2) not in (0.90, 0.95, 0.99):
            raise ValueError("confidence_level must be 0.90, 0.95 or 0.99")
        return v


# ---------------------------------------------------------------------------
# Model blend
# ---------------------------------------------------------------------------

class ModelBlendRequest(BaseModel):
    """
    Inputs for the three sub-models.  Poisson is included only when both
    scoring rates are supplied.
    """

    sport: str = Field(..., min_length=1)
    features: Dict[str, float] = Field(default_factory=dict)
    team_rating: Optional[float] = None
    opponent_rating: Optional[float] = None
    team_is_home: Optional[bool] = True
    goals_for: Optional[float] = Field(None, ge=0.0)
    goals_against: Optional[float] = Field(None, ge=0.0)
    home_advantage: float = Field(0.0, ge=-1.0, le=1.0, description="Profile probability bump")

    model_config = {
        "json_schema_extra": {
            "example": {
                "sport": "soccer",
                "features": {"recentForm": 0.4, "injuries": -0.2},
                "team_rating": 1560,
                "opponent_rating": 1500,
                "team_is_home": True,
                "goals_for": 1.6,
                "goals_against": 1.1,
            }
        }
    }


# ---------------------------------------------------------------------------
# Regression analysis
# ---------------------------------------------------------------------------

class RegressionRequest(BaseModel):
    current_performance: float
    baseline: float
    sample_size: float = Field(..., ge=0.0)
    sport: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    league_average: Optional[float] = None
    original_probability: float = Field(..., gt=0.0, lt=1.0)
    confidence_level: Optional[float] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "current_performance": 0.62,
                "baseline": 0.50,
                "sample_size": 20,
                "sport": "basketball",
                "metric": "winPercentage",
                "league_average": 0.5,
                "original_probability": 0.60,
            }
        }
    }


# ---------------------------------------------------------------------------
# Calibration
# ---------------------------------------------------------------------------

class CalibrationPointIn(BaseModel):
    predicted_probability: float = Field(..., ge=0.0, le=1.0)
    actual_outcome: bool


class CalibrationRequest(BaseModel):
    points: List[CalibrationPointIn] = Field(..., min_length=1)
    num_bins: Optional[int] = Field(None, ge=1, le=100)


# ---------------------------------------------------------------------------
# Risk limits
# ---------------------------------------------------------------------------

class RiskCheckRequest(BaseModel):
    stake: float = Field(..., gt=0)
    bankroll: float = Field(..., gt=0)
    open_bets: int = Field(0, ge=0)
    daily_results: List[float] = Field(
        default_factory=list, description="Signed P&L of today's settled bets"
    )
    stop_loss_percentage: Optional[float] = Field(None, ge=0.0, le=1.0)
    stop_win_percentage: Optional[float] = Field(None, ge=0.0)
    max_open_bets: Optional[int] = Field(None, ge=1)
