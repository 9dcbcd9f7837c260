"""
Daily risk limits applied before a bet is placed.

Kelly sizing says how much a bet is worth; these checks say whether the
bettor should be placing another bet at all today:

    1. Open-bet cap: no new bet once ``max_open_bets`` are pending.
    2. Stop loss: the day's realised losses plus this stake must not
       exceed ``stop_loss_percentage`` of the bankroll.
    3. Stop win: once the day's realised wins exceed
       ``stop_win_percentage`` of the bankroll, stop for the day.

All three are evaluated so the caller can report every breached limit,
not only the first.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from edgecalc.core.errors import InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskSettings:
    stop_loss_percentage: float = 0.20
    stop_win_percentage: float = 0.50
    max_open_bets: int = 5

    def __post_init__(self) -> None:
        if not (0.0 <= self.stop_loss_percentage <= 1.0):
            raise InvalidInput(
                "stop_loss_percentage", self.stop_loss_percentage, "must be in [0, 1]"
            )
        if self.stop_win_percentage < 0:
            raise InvalidInput("stop_win_percentage", self.stop_win_percentage, "must be >= 0")
        if self.max_open_bets < 1:
            raise InvalidInput("max_open_bets", self.max_open_bets, "must be >= 1")

    @classmethod
    def from_settings(cls, settings) -> "RiskSettings":
        """Build from :class:`edgecalc.config.Settings`."""
        return cls(
            stop_loss_percentage=settings.stop_loss_percentage,
            stop_win_percentage=settings.stop_win_percentage,
            max_open_bets=settings.max_open_bets,
        )


@dataclass
class RiskCheck:
    """Outcome of the pre-bet limit checks."""

    allowed: bool
    open_bets: int
    daily_loss: float
    daily_win: float
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "allowed": self.allowed,
            "open_bets": self.open_bets,
            "daily_loss": self.daily_loss,
            "daily_win": self.daily_win,
            "reasons": list(self.reasons),
        }


def daily_totals(results: Iterable[float]) -> Dict[str, float]:
    """
    Split the day's settled results into total loss and total win.

    Each result is the signed profit of one bet: negative for a loss,
    positive for a win, zero for a push.
    """
    loss = win = 0.0
    for r in results:
        if r < 0:
            loss += abs(r)
        elif r > 0:
            win += r
    return {"loss": loss, "win": win}


def check_bet_limits(
    stake: float,
    bankroll: float,
    open_bets: int,
    daily_results: Iterable[float] = (),
    settings: Optional[RiskSettings] = None,
) -> RiskCheck:
    """
    Decide whether a new bet of ``stake`` may be placed.

    Raises:
        InvalidInput: Non-positive stake or bankroll, or negative open bets.
    """
    settings = settings or RiskSettings()
    if stake <= 0:
        raise InvalidInput("stake", stake, "must be > 0")
    if bankroll <= 0:
        raise InvalidInput("bankroll", bankroll, "must be > 0")
    if open_bets < 0:
        raise InvalidInput("open_bets", open_bets, "must be >= 0")

    totals = daily_totals(daily_results)
    reasons: List[str] = []

    if open_bets >= settings.max_open_bets:
        reasons.append(f"Maximum number of open bets ({settings.max_open_bets}) reached")

    if totals["loss"] + stake > bankroll * settings.stop_loss_percentage:
        reasons.append("Daily stop loss limit would be exceeded")

    if totals["win"] > bankroll * settings.stop_win_percentage:
        reasons.append("Daily stop win limit reached")

    check = RiskCheck(
        allowed=not reasons,
        open_bets=open_bets,
        daily_loss=totals["loss"],
        daily_win=totals["win"],
        reasons=reasons,
    )
    if reasons:
        logger.info("Bet of %.2f blocked: %s", stake, "; ".join(reasons))
    return check
