"""
Parlay probability, correlation risk and variance for player-prop legs.

The combined probability of a parlay is computed as the product of the leg
probabilities.  That assumes the legs are independent, which over-estimates
the true hit rate whenever legs are correlated (same player, same game, same
team, overlapping stats).  The engine does not try to correct the number; it
surfaces the risk through :func:`detect_correlation_risk` and the warnings
list on :class:`ParlayCalculation`.
"""

import itertools
import logging
import math
import time
from typing import Iterable, List, Optional, Sequence

import numpy as np

from propedge.core.exceptions import ParlayError, ProbabilityError
from propedge.core.market_config import DEFAULT_MC_TRIALS
from propedge.core.models import (
    CorrelationLevel,
    CorrelationRisk,
    ParlayCalculation,
    ParlayEV,
    ParlayLeg,
    ParlaySimulation,
    ParlayTicket,
    PropEVRecord,
)
from propedge.core.odds_math import (
    american_to_decimal,
    american_to_probability,
    decimal_to_american,
    probability_to_american,
)
from propedge.core.scoring import CorrelationModel, RuleBasedCorrelation

logger = logging.getLogger(__name__)

#: Warning thresholds.
MANY_LEGS_WARNING = 5
LOW_HIT_RATE_WARNING = 0.05
WEAK_LEG_WARNING = 0.30

#: Trials simulated per vectorised chunk; the time budget is checked between chunks.
_MC_CHUNK = 50_000

_DEFAULT_CORRELATION = RuleBasedCorrelation()


def _check_legs(legs: Sequence[ParlayLeg]) -> None:
    if not legs:
        raise ParlayError("Cannot calculate parlay with no legs")
    for leg in legs:
        if not (0.0 < leg.probability < 1.0):
            raise ProbabilityError(
                f"Invalid probability {leg.probability!r} for {leg.player_id} "
                f"{leg.stat_type}; must be in (0, 1)."
            )


def combined_probability(legs: Sequence[ParlayLeg]) -> float:
    """Product of leg probabilities (independence assumption).

    ``combined_probability`` of legs at 0.6, 0.55 and 0.5 is 0.165.

    Raises:
        ParlayError: If ``legs`` is empty.
        ProbabilityError: If any leg probability is outside ``(0, 1)``.
    """
    _check_legs(legs)
    return math.prod(leg.probability for leg in legs)


def detect_correlation_risk(
    legs: Sequence[ParlayLeg],
    model: Optional[CorrelationModel] = None,
) -> CorrelationRisk:
    """Correlation risk of ``legs`` under ``model`` (rule-based by default)."""
    return (model or _DEFAULT_CORRELATION).assess(legs)


def calculate_full_parlay(
    legs: Sequence[ParlayLeg],
    correlation_model: Optional[CorrelationModel] = None,
) -> ParlayCalculation:
    """Combined probability, fair odds, correlation risk and warnings.

    Warnings are emitted in a fixed order:

    1. Correlation (risk High or Severe), followed by a reminder that the
       real hit rate is lower than the product.
    2. Five or more legs.
    3. Combined probability under 5%.
    4. Any leg under 30%.
    """
    combined = combined_probability(legs)
    risk = detect_correlation_risk(legs, correlation_model)

    warnings: List[str] = []
    if risk.level.at_least(CorrelationLevel.HIGH):
        warnings.append(risk.description)
        warnings.append("Actual probability is likely significantly lower than calculated.")
    if len(legs) >= MANY_LEGS_WARNING:
        warnings.append(
            f"Parlays with {MANY_LEGS_WARNING}+ legs have exponentially lower hit rates."
        )
    if combined < LOW_HIT_RATE_WARNING:
        warnings.append(f"This parlay has only a {combined * 100:.2f}% chance of hitting.")
    if min(leg.probability for leg in legs) < WEAK_LEG_WARNING:
        warnings.append(
            f"One or more legs have less than {WEAK_LEG_WARNING:.0%} chance of hitting."
        )

    return ParlayCalculation(
        combined_probability=combined,
        combined_probability_percent=combined * 100.0,
        fair_odds=probability_to_american(combined),
        expected_legs=sum(leg.probability for leg in legs),
        correlation_risk=risk,
        warnings=tuple(warnings),
    )


def simulate_parlay_outcomes(
    legs: Sequence[ParlayLeg],
    trials: int = DEFAULT_MC_TRIALS,
    *,
    seed: Optional[int] = None,
    time_budget_s: Optional[float] = None,
) -> ParlaySimulation:
    """Monte Carlo estimate of hit rate and legs-hit distribution.

    Each trial draws one uniform number per leg; a leg hits when its draw is
    below its probability and the parlay hits only when every leg does.  With
    enough trials ``hit_rate`` converges to :func:`combined_probability`.

    Args:
        legs: Parlay legs.
        trials: Number of simulated parlays.
        seed: RNG seed; ``None`` for fresh entropy.  Each call owns its RNG.
        time_budget_s: Optional wall-clock budget.  When exceeded the run
            stops at the next chunk boundary and ``trials`` on the result
            reports how many were actually simulated.

    Raises:
        ParlayError: If ``legs`` is empty or ``trials < 1``.
    """
    _check_legs(legs)
    if trials < 1:
        raise ParlayError(f"trials must be ≥ 1, got {trials!r}")

    rng = np.random.default_rng(seed)
    probs = np.array([leg.probability for leg in legs], dtype=float)
    n_legs = len(legs)
    counts = np.zeros(n_legs + 1, dtype=np.int64)
    deadline = time.monotonic() + time_budget_s if time_budget_s is not None else None

    done = 0
    while done < trials:
        size = min(_MC_CHUNK, trials - done)
        legs_hit = (rng.random((size, n_legs)) < probs).sum(axis=1)
        counts += np.bincount(legs_hit, minlength=n_legs + 1)
        done += size
        if deadline is not None and done < trials and time.monotonic() >= deadline:
            logger.info("Parlay simulation stopped at %d/%d trials (time budget)", done, trials)
            break

    return ParlaySimulation(
        hit_rate=float(counts[n_legs]) / done,
        avg_legs_hit=float(np.dot(counts, np.arange(n_legs + 1))) / done,
        distribution=tuple(int(c) for c in counts),
        trials=done,
    )


def calculate_parlay_ev(
    probability: float,
    book_odds: int,
    stake: float = 100.0,
) -> ParlayEV:
    """EV of a parlay whose true combined probability is ``probability``.

    Raises:
        ProbabilityError: If ``probability`` is not in ``(0, 1)``.
        InvalidOddsError: If ``book_odds`` is zero.
    """
    if not (0.0 < probability < 1.0):
        raise ProbabilityError(f"probability must be in (0, 1), got {probability!r}.")
    profit = stake * (american_to_decimal(book_odds) - 1.0)
    expected_value = probability * profit - (1.0 - probability) * stake
    return ParlayEV(
        expected_value=expected_value,
        roi_percent=expected_value / stake * 100.0,
        fair_odds=probability_to_american(probability),
        edge_percent=(probability / american_to_probability(book_odds) - 1.0) * 100.0,
    )


def leg_from_record(
    record: PropEVRecord,
    game_id: Optional[str] = None,
    team: Optional[str] = None,
) -> ParlayLeg:
    """Parlay leg for the side a pipeline record recommends."""
    return ParlayLeg(
        player_id=record.player_id,
        stat_type=record.stat_type,
        probability=record.consensus_probability,
        game_id=game_id,
        team=team,
        player_name=record.player_name,
        sport=record.sport,
    )


def build_parlay_tickets(
    records: Iterable[PropEVRecord],
    max_legs: int = 3,
    max_tickets: int = 10,
    min_ev_pct: float = 0.0,
) -> List[ParlayTicket]:
    """Suggest parlays from a slate of pipeline records.

    Only records with EV above ``min_ev_pct`` qualify.  Every 2..``max_legs``
    combination is priced at the product of its legs' decimal odds; combos
    whose correlation risk is High or worse are skipped.  Tickets are sorted
    by EV and then picked greedily so that no player appears in more than
    one returned ticket.
    """
    qualified = [r for r in records if r.ev_percent > min_ev_pct]
    if len(qualified) < 2:
        logger.info("Not enough qualified props for parlays (need 2+, have %d)", len(qualified))
        return []

    tickets: List[ParlayTicket] = []
    for n_legs in range(2, max_legs + 1):
        for combo in itertools.combinations(qualified, n_legs):
            legs = tuple(leg_from_record(r) for r in combo)
            calc = calculate_full_parlay(legs)
            if calc.correlation_risk.level.at_least(CorrelationLevel.HIGH):
                continue
            decimal_odds = math.prod(american_to_decimal(r.offered_odds) for r in combo)
            american = decimal_to_american(decimal_odds)
            tickets.append(
                ParlayTicket(
                    legs=legs,
                    sportsbooks=tuple(r.sportsbook for r in combo),
                    calculation=calc,
                    parlay_decimal_odds=decimal_odds,
                    parlay_american_odds=american,
                    ev=calculate_parlay_ev(calc.combined_probability, american),
                )
            )

    tickets.sort(key=lambda t: t.ev.expected_value, reverse=True)

    selected: List[ParlayTicket] = []
    used_players: set = set()
    for ticket in tickets:
        players = {leg.player_id for leg in ticket.legs}
        if players & used_players:
            continue
        selected.append(ticket)
        used_players.update(players)
        if len(selected) >= max_tickets:
            break

    logger.info(
        "Generated %d parlay candidates, returning %d non-overlapping",
        len(tickets), len(selected),
    )
    return selected


def format_parlay_summary(calc: ParlayCalculation, legs: Sequence[ParlayLeg]) -> str:
    """Human-readable summary of a parlay calculation."""
    names = [
        f"{leg.player_name or leg.player_id} {leg.stat_type} ({leg.probability:.1%})"
        for leg in legs
    ]
    lines = [
        f"{len(legs)}-Leg Parlay @ fair {calc.fair_odds:+d}",
        f"   Legs: {' + '.join(names)}",
        f"   Combined Prob: {calc.combined_probability:.2%}",
        f"   Expected Legs: {calc.expected_legs:.2f}",
        f"   Correlation: {calc.correlation_risk.level.value}",
    ]
    lines.extend(f"   ! {w}" for w in calc.warnings)
    return "\n".join(lines)
