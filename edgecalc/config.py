"""
Environment-driven settings.

Values are read from the process environment after ``load_dotenv()`` so a
local ``.env`` file works the same way it does for the request layer.
Defaults match the risk settings a new user starts with:

    EDGECALC_FRACTION_MULTIPLIER   0.5    (half Kelly)
    EDGECALC_MAX_BET_PCT           0.10   (10% of bankroll per bet)
    EDGECALC_STOP_LOSS_PCT         0.20   (20% daily stop loss)
    EDGECALC_STOP_WIN_PCT          0.50   (50% daily stop win)
    EDGECALC_MAX_OPEN_BETS         5
    EDGECALC_BASE_PROBABILITY      0.5
    EDGECALC_CONFIDENCE_LEVEL      0.95
    EDGECALC_CALIBRATION_BINS      10
    EDGECALC_REGRESSION_TABLE      unset  (path to a JSON regression table)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from edgecalc.core.confidence import ConfidenceLevel
from edgecalc.core.errors import InvalidInput
from edgecalc.core.sport_config import RegressionTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    fraction_multiplier: float = 0.5
    max_bet_percentage: float = 0.10
    stop_loss_percentage: float = 0.20
    stop_win_percentage: float = 0.50
    max_open_bets: int = 5
    base_probability: float = 0.5
    confidence_level: ConfidenceLevel = ConfidenceLevel.P95
    calibration_bins: int = 10
    regression_table_path: Optional[str] = None

    def regression_table(self) -> RegressionTable:
        """Return the configured table, or the built-in one when no path is set."""
        if self.regression_table_path:
            logger.info("Loading regression table from %s", self.regression_table_path)
            return RegressionTable.from_json(self.regression_table_path)
        return RegressionTable.default()


def _env_float(name: str, default: str, lo: float, hi: float) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise InvalidInput(name, raw, "not a number") from None
    if not (lo <= value <= hi):
        raise InvalidInput(name, raw, f"must be in [{lo}, {hi}]")
    return value


def _env_int(name: str, default: str, lo: int) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise InvalidInput(name, raw, "not an integer") from None
    if value < lo:
        raise InvalidInput(name, raw, f"must be >= {lo}")
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """Build :class:`Settings` from the environment.

    Raises:
        InvalidInput: A variable is set to a malformed or out-of-range value;
            the error names the variable.
    """
    if dotenv:
        load_dotenv()

    level_raw = os.getenv("EDGECALC_CONFIDENCE_LEVEL", "0.95")
    try:
        level = ConfidenceLevel.parse(level_raw)
    except InvalidInput:
        raise InvalidInput(
            "EDGECALC_CONFIDENCE_LEVEL", level_raw, "supported levels are 0.90, 0.95, 0.99"
        ) from None

    settings = Settings(
        fraction_multiplier=_env_float("EDGECALC_FRACTION_MULTIPLIER", "0.5", 0.0, 1.0),
        max_bet_percentage=_env_float("EDGECALC_MAX_BET_PCT", "0.10", 0.0, 1.0),
        stop_loss_percentage=_env_float("EDGECALC_STOP_LOSS_PCT", "0.20", 0.0, 1.0),
        stop_win_percentage=_env_float("EDGECALC_STOP_WIN_PCT", "0.50", 0.0, float("inf")),
        max_open_bets=_env_int("EDGECALC_MAX_OPEN_BETS", "5", 1),
        base_probability=_env_float("EDGECALC_BASE_PROBABILITY", "0.5", 0.0, 1.0),
        confidence_level=level,
        calibration_bins=_env_int("EDGECALC_CALIBRATION_BINS", "10", 1),
        regression_table_path=os.getenv("EDGECALC_REGRESSION_TABLE") or None,
    )
    logger.debug("Loaded settings: %s", settings)
    return settings
