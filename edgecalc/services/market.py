"""
Market margin and edge engine.

Compares a user's probability for one outcome against every bookmaker
quoting the event:

    1. Each quote is converted to decimal odds first.  Margin arithmetic on
       mixed American / fractional prices is meaningless, so conversion is
       an explicit step (`BookmakerQuote.decimal_odds`) rather than
       something each formula does on its own.
    2. Margin is computed over that bookmaker's *complete* outcome set
       (home/away, plus draw when quoted).
    3. Fair probability removes the margin proportionally.
    4. Edge percentage and expected value are computed against it and the
       opportunities are ranked by edge.

Proportional de-vigging divides every implied probability by the same
overround.  It does not shift margin toward longshots, so fair
probabilities for heavy underdogs remain slightly inflated.  This is a
known limitation of the method.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from edgecalc.core.errors import ArithmeticDegenerate, InvalidInput
from edgecalc.core.odds_math import OddsFormat, OddsValue, implied_prob, to_decimal, validate_decimal

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    HOME = "home"
    AWAY = "away"
    DRAW = "draw"

    @classmethod
    def parse(cls, value: Union[str, "Outcome"]) -> "Outcome":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInput("outcome", value, "expected 'home', 'away' or 'draw'") from None


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookmakerQuote:
    """One bookmaker's prices for every outcome of one market."""

    bookmaker: str
    home_odds: OddsValue
    away_odds: OddsValue
    draw_odds: Optional[OddsValue] = None
    odds_format: OddsFormat = OddsFormat.DECIMAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "odds_format", OddsFormat.parse(self.odds_format))

    def raw_odds(self, outcome: Outcome) -> Optional[OddsValue]:
        return {
            Outcome.HOME: self.home_odds,
            Outcome.AWAY: self.away_odds,
            Outcome.DRAW: self.draw_odds,
        }[outcome]

    def decimal_odds(self) -> Dict[Outcome, float]:
        """Every quoted outcome converted to decimal odds."""
        converted = {}
        for outcome in Outcome:
            raw = self.raw_odds(outcome)
            if raw is not None:
                converted[outcome] = to_decimal(raw, self.odds_format)
        return converted


@dataclass(frozen=True)
class MarketOpportunity:
    """Edge analysis for one outcome at one bookmaker."""

    bookmaker: str
    outcome: Outcome
    original_odds: OddsValue
    odds_format: OddsFormat
    decimal_odds: float
    implied_probability: float
    fair_probability: float
    user_probability: float
    bookmaker_margin: float
    edge_percentage: float
    expected_value: float

    @property
    def is_positive_ev(self) -> bool:
        return self.expected_value > 0

    def to_dict(self) -> Dict:
        return {
            "bookmaker": self.bookmaker,
            "odds": {
                "original": self.original_odds,
                "decimal": self.decimal_odds,
                "format": self.odds_format.value,
            },
            "probabilities": {
                "implied": self.implied_probability,
                "fair": self.fair_probability,
                "user": self.user_probability,
            },
            "analysis": {
                "bookmaker_margin": self.bookmaker_margin,
                "edge_percentage": self.edge_percentage,
                "expected_value": self.expected_value,
                "is_positive_ev": self.is_positive_ev,
            },
        }


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def bookmaker_margin(implied_probabilities: Sequence[float]) -> float:
    """Overround: sum of implied probabilities minus one.

    Only meaningful when the list covers every mutually exclusive outcome
    of one bookmaker's market (2 for moneyline, 3 with a draw).
    """
    if len(implied_probabilities) < 2:
        raise InvalidInput(
            "implied_probabilities", list(implied_probabilities),
            "need at least two outcomes to define a market",
        )
    return sum(implied_probabilities) - 1.0


def fair_probability(implied: float, margin: float) -> float:
    """Remove the margin proportionally: ``implied / (1 + margin)``."""
    total = 1.0 + margin
    if total <= 0.0:
        raise ArithmeticDegenerate(f"margin {margin!r} leaves no probability mass")
    return implied / total


def expected_value(user_probability: float, decimal_odds: float) -> float:
    """EV per unit staked: ``p·(d − 1) − (1 − p)``."""
    d = validate_decimal(decimal_odds)
    return user_probability * (d - 1.0) - (1.0 - user_probability)


def is_positive_ev(user_probability: float, decimal_odds: float) -> bool:
    return expected_value(user_probability, decimal_odds) > 0


def edge_percentage(user_probability: float, reference_probability: float) -> float:
    """Relative edge in percent: ``(p − ref) / ref · 100``.

    Distinct from :attr:`edgecalc.core.kelly.KellyResult.edge`, which is
    the plain difference ``p − implied``.
    """
    if reference_probability <= 0.0:
        raise ArithmeticDegenerate(
            f"reference probability {reference_probability!r} must be > 0 for a relative edge"
        )
    return (user_probability - reference_probability) / reference_probability * 100.0


def _edge_of(opportunity: Union[MarketOpportunity, Mapping]) -> float:
    if isinstance(opportunity, Mapping):
        return opportunity["edge_percentage"]
    return opportunity.edge_percentage


def rank_by_edge(opportunities: Iterable) -> List:
    """Sort descending by edge percentage.

    The sort is stable, so opportunities with equal edge keep their input
    order.  Accepts :class:`MarketOpportunity` objects or mappings with an
    ``edge_percentage`` key.
    """
    return sorted(opportunities, key=_edge_of, reverse=True)


# ---------------------------------------------------------------------------
# Market comparison
# ---------------------------------------------------------------------------

def analyze_quote(
    quote: BookmakerQuote,
    outcome: Union[str, Outcome],
    user_probability: float,
) -> MarketOpportunity:
    """Edge analysis for one outcome of one bookmaker's market."""
    outcome = Outcome.parse(outcome)
    if not (0.0 < user_probability < 1.0):
        raise InvalidInput("user_probability", user_probability, "must be in (0, 1)")

    decimals = quote.decimal_odds()
    if outcome not in decimals:
        raise InvalidInput(
            "outcome", outcome.value, f"{quote.bookmaker} does not quote this outcome"
        )

    implied = {o: implied_prob(d) for o, d in decimals.items()}
    margin = bookmaker_margin(list(implied.values()))
    fair = fair_probability(implied[outcome], margin)

    opportunity = MarketOpportunity(
        bookmaker=quote.bookmaker,
        outcome=outcome,
        original_odds=quote.raw_odds(outcome),
        odds_format=quote.odds_format,
        decimal_odds=decimals[outcome],
        implied_probability=implied[outcome],
        fair_probability=fair,
        user_probability=user_probability,
        bookmaker_margin=margin,
        edge_percentage=edge_percentage(user_probability, fair),
        expected_value=expected_value(user_probability, decimals[outcome]),
    )
    logger.debug(
        "%s %s: decimal=%.3f margin=%.4f fair=%.4f edge=%.2f%%",
        quote.bookmaker, outcome.value, opportunity.decimal_odds,
        margin, fair, opportunity.edge_percentage,
    )
    return opportunity


def compare_market(
    quotes: Sequence[BookmakerQuote],
    outcome: Union[str, Outcome],
    user_probability: float,
) -> List[MarketOpportunity]:
    """Analyse ``outcome`` at every bookmaker and rank by edge.

    Bookmakers that do not quote ``outcome`` (typically no draw price) are
    left out of the comparison.

    Raises:
        InvalidInput: No quotes, or no bookmaker quotes ``outcome``.
    """
    outcome = Outcome.parse(outcome)
    if not quotes:
        raise InvalidInput("quotes", [], "at least one bookmaker quote is required")

    opportunities = []
    for quote in quotes:
        if quote.raw_odds(outcome) is None:
            logger.warning(
                "Skipping %s: no %s price quoted", quote.bookmaker, outcome.value
            )
            continue
        opportunities.append(analyze_quote(quote, outcome, user_probability))

    if not opportunities:
        raise InvalidInput("outcome", outcome.value, "no bookmaker quotes this outcome")

    ranked = rank_by_edge(opportunities)
    logger.info(
        "Compared %d bookmakers for %s: best edge %.2f%% at %s",
        len(ranked), outcome.value, ranked[0].edge_percentage, ranked[0].bookmaker,
    )
    return ranked


def best_price(
    quotes: Sequence[BookmakerQuote], outcome: Union[str, Outcome]
) -> Tuple[str, float]:
    """Bookmaker offering the highest decimal odds for ``outcome``."""
    outcome = Outcome.parse(outcome)
    prices = [
        (q.bookmaker, q.decimal_odds()[outcome])
        for q in quotes if q.raw_odds(outcome) is not None
    ]
    if not prices:
        raise InvalidInput("outcome", outcome.value, "no bookmaker quotes this outcome")
    return max(prices, key=lambda item: item[1])
