"""
Expected value, edge and rating for sportsbook prices.

Given a fair probability (normally a market consensus) and the price a book
offers, this module answers: what does a 100-unit bet return on average,
how far is the fair probability above the book's implied probability, and
how should that edge be labelled.

Side selection
--------------
Every quote is evaluated on **both** sides — the Over against the
consensus over-probability and the Under against the consensus
under-probability — and the side with the higher EV becomes that quote's
best entry.  Entries are ranked by EV (descending), then confidence
(descending), then sportsbook name so that ties resolve the same way on
every run.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from propedge.core.exceptions import ProbabilityError
from propedge.core.kelly import kelly_fraction
from propedge.core.market_config import MODERATE_EDGE_PCT, STRONG_EDGE_PCT, MarketConfig
from propedge.core.models import (
    ConsensusResult,
    EVRating,
    EVResult,
    NormalizedProp,
    Side,
    SideEvaluation,
)
from propedge.core.odds_math import american_to_decimal, american_to_probability


#: Default notional stake; with 100 the EV reads directly as a percentage.
DEFAULT_STAKE = 100.0


@dataclass(frozen=True)
class RatingThresholds:
    """Edge-percent cut-offs for the qualitative rating."""

    strong: float = STRONG_EDGE_PCT
    moderate: float = MODERATE_EDGE_PCT

    @classmethod
    def from_config(cls, config: MarketConfig) -> "RatingThresholds":
        return cls(strong=config.strong_edge_pct, moderate=config.moderate_edge_pct)

    def rate(self, edge_percent: float) -> EVRating:
        if edge_percent >= self.strong:
            return EVRating.STRONG
        if edge_percent >= self.moderate:
            return EVRating.MODERATE
        return EVRating.LOW


DEFAULT_THRESHOLDS = RatingThresholds()


def calculate_ev(
    true_probability: float,
    offered_odds: int,
    stake: float = DEFAULT_STAKE,
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> EVResult:
    """Expected value and edge of betting ``offered_odds`` at a fair probability.

    Formulae::

        payout = stake × decimal_odds          (stake returned on a win)
        EV     = p × (payout − stake) − (1 − p) × stake
        edge % = (p / implied_probability − 1) × 100

    ``EV`` is reported per 100 staked, so it reads as a percentage of the
    stake whatever ``stake`` is.

    Args:
        true_probability: Fair probability of the side, strictly in ``(0, 1)``.
        offered_odds: American price offered by the book.
        stake: Notional stake.  Must be positive.
        thresholds: Edge cut-offs for the rating.

    Raises:
        ProbabilityError: If ``true_probability`` is not in ``(0, 1)``.
        InvalidOddsError: If ``offered_odds`` is zero.
        ValueError: If ``stake`` is not positive.

    Example::

        calculate_ev(0.55, -110)
        → EV +5.0 per 100, edge +5.0%, Strong
    """
    if not (0.0 < true_probability < 1.0):
        raise ProbabilityError(
            f"true_probability must be in (0, 1), got {true_probability!r}."
        )
    if stake <= 0:
        raise ValueError(f"stake must be positive, got {stake!r}.")

    implied = american_to_probability(offered_odds)
    payout = stake * american_to_decimal(offered_odds)
    win_amount = payout - stake
    ev = true_probability * win_amount - (1.0 - true_probability) * stake
    edge_percent = (true_probability / implied - 1.0) * 100.0

    return EVResult(
        true_probability=true_probability,
        edge_percent=edge_percent,
        expected_value=ev / stake * 100.0,
        rating=thresholds.rate(edge_percent),
        implied_probability=implied,
        offered_odds=offered_odds,
    )


def calculate_multiple_evs(
    true_probability: float,
    scenarios: Iterable[Tuple[str, int]],
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> List[Tuple[str, EVResult]]:
    """EV of one fair probability against several ``(sportsbook, odds)`` prices.

    Returned best-first (EV descending, then sportsbook name).
    """
    results = [
        (book, calculate_ev(true_probability, odds, thresholds=thresholds))
        for book, odds in scenarios
    ]
    return sorted(results, key=lambda r: (-r[1].expected_value, r[0]))


def evaluate_side(
    quote: NormalizedProp,
    consensus: ConsensusResult,
    side: Side,
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> SideEvaluation:
    odds = quote.odds_for(side)
    probability = consensus.probability_for(side)
    return SideEvaluation(
        sportsbook=quote.sportsbook,
        side=side,
        offered_odds=odds,
        ev=calculate_ev(probability, odds, thresholds=thresholds),
        confidence=consensus.confidence,
        kelly_fraction=kelly_fraction(probability, odds),
    )


def evaluate_quote(
    quote: NormalizedProp,
    consensus: ConsensusResult,
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> SideEvaluation:
    """Best side of one quote; an exact EV tie goes to the Over."""
    over = evaluate_side(quote, consensus, Side.OVER, thresholds=thresholds)
    under = evaluate_side(quote, consensus, Side.UNDER, thresholds=thresholds)
    return over if over.expected_value >= under.expected_value else under


def _rank_key(evaluation: SideEvaluation):
    return (
        -evaluation.expected_value,
        -evaluation.confidence,
        evaluation.sportsbook,
        evaluation.side.value,
    )


def rank_evaluations(evaluations: Iterable[SideEvaluation]) -> List[SideEvaluation]:
    """EV desc → confidence desc → sportsbook asc → side."""
    return sorted(evaluations, key=_rank_key)


def evaluate_group(
    quotes: Sequence[NormalizedProp],
    consensus: ConsensusResult,
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> List[SideEvaluation]:
    """Each quote's best side, ranked best-first."""
    return rank_evaluations(
        evaluate_quote(q, consensus, thresholds=thresholds) for q in quotes
    )


def best_evaluation(
    quotes: Sequence[NormalizedProp],
    consensus: ConsensusResult,
    *,
    thresholds: RatingThresholds = DEFAULT_THRESHOLDS,
) -> Optional[SideEvaluation]:
    ranked = evaluate_group(quotes, consensus, thresholds=thresholds)
    return ranked[0] if ranked else None
