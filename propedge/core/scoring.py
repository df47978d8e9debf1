"""Swappable scoring strategies for consensus confidence and parlay correlation.

Both scores are deliberately simple, monotone heuristics — not statistical
models.  They sit behind abstract base classes so a calibrated replacement
can be injected into :func:`~propedge.services.consensus.compute_consensus`
or :func:`~propedge.services.parlay_engine.detect_correlation_risk` without
touching the calling code.

Design choices
--------------
* ABCs rather than ``typing.Protocol`` so callers can ``isinstance``-check
  injected strategies and implementers inherit the documented contract.
* Strategies are stateless after construction: the same inputs always give
  the same score, whatever order calls arrive in, so a single instance is
  safe to share across worker threads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from typing import Sequence, Tuple

from propedge.core.market_config import (
    DEFAULT_CONFIDENCE_BASE,
    DEFAULT_CONFIDENCE_CAP,
    DEFAULT_CONFIDENCE_STEP,
    DEFAULT_CORRELATED_STATS,
    CorrelatedStat,
    MarketConfig,
)
from propedge.core.models import (
    CorrelationLevel,
    CorrelationRisk,
    ParlayLeg,
)


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------


class ConfidenceModel(ABC):
    """Maps the number of agreeing books to a confidence score in ``[0, 1]``.

    Implementations must be non-decreasing in ``sample_size``.
    """

    @abstractmethod
    def score(self, sample_size: int) -> float:
        """Confidence for a consensus built from ``sample_size`` quotes."""


class SaturatingConfidence(ConfidenceModel):
    """``min(cap, base + step * sample_size)``.

    With the defaults one book scores 0.6, three books 0.8, and five or more
    hit the 0.95 ceiling.  The score says how many independent books agree;
    it does not account for how tightly their prices cluster.
    """

    def __init__(
        self,
        base: float = DEFAULT_CONFIDENCE_BASE,
        step: float = DEFAULT_CONFIDENCE_STEP,
        cap: float = DEFAULT_CONFIDENCE_CAP,
    ) -> None:
        if step < 0.0:
            raise ValueError(f"step must be ≥ 0 for a monotone score, got {step!r}.")
        self.base = base
        self.step = step
        self.cap = cap

    @classmethod
    def from_config(cls, config: MarketConfig) -> "SaturatingConfidence":
        return cls(config.confidence_base, config.confidence_step, config.confidence_cap)

    def score(self, sample_size: int) -> float:
        return min(self.cap, self.base + self.step * sample_size)


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------


class CorrelationModel(ABC):
    """Assesses how far a set of parlay legs departs from independence."""

    @abstractmethod
    def assess(self, legs: Sequence[ParlayLeg]) -> CorrelationRisk:
        """Correlation risk for ``legs``.  A single leg is always ``None``."""


def _shared_count(values: Sequence[str]) -> int:
    """Number of entries whose value appears more than once."""
    counts = Counter(values)
    return sum(n for n in counts.values() if n > 1)


class RuleBasedCorrelation(CorrelationModel):
    """Ordered rules, first match wins.

    1. Severe — two legs on the same player.
    2. High   — two or more legs from the same game.
    3. Medium — two or more legs on players from the same team.
    4. Low    — stat types from the correlated-stat table co-occur.
    5. None   — otherwise.
    """

    def __init__(
        self, correlated_stats: Tuple[CorrelatedStat, ...] = DEFAULT_CORRELATED_STATS
    ) -> None:
        self.correlated_stats = correlated_stats

    @classmethod
    def from_config(cls, config: MarketConfig) -> "RuleBasedCorrelation":
        return cls(config.correlated_stats)

    def assess(self, legs: Sequence[ParlayLeg]) -> CorrelationRisk:
        if len(legs) <= 1:
            return CorrelationRisk(
                level=CorrelationLevel.NONE,
                description="Single leg parlay has no correlation risk",
                affected_legs=0,
            )

        same_player = _shared_count([leg.player_id for leg in legs])
        if same_player:
            return CorrelationRisk(
                level=CorrelationLevel.SEVERE,
                description=(
                    f"{same_player} legs involve the same player. These stats are "
                    "highly correlated (a player who scores tends to also rebound "
                    "and assist). True probability is lower than calculated."
                ),
                affected_legs=same_player,
            )

        same_game = _shared_count([leg.game_id for leg in legs if leg.game_id])
        if same_game:
            return CorrelationRisk(
                level=CorrelationLevel.HIGH,
                description=(
                    f"{same_game} legs are from the same game. Game flow (blowout, "
                    "overtime, pace) affects all of them. True probability is lower "
                    "than calculated."
                ),
                affected_legs=same_game,
            )

        same_team = _shared_count([leg.team for leg in legs if leg.team])
        if same_team:
            return CorrelationRisk(
                level=CorrelationLevel.MEDIUM,
                description=(
                    f"{same_team} legs involve players from the same team. Team "
                    "performance affects all of them."
                ),
                affected_legs=same_team,
            )

        stats = {leg.stat_type for leg in legs}
        matched = []
        involved = set()
        for anchor, partners, description in self.correlated_stats:
            overlap = partners & stats
            if anchor in stats and overlap:
                matched.append(description)
                involved.add(anchor)
                involved.update(overlap)
        if matched:
            return CorrelationRisk(
                level=CorrelationLevel.LOW,
                description=f"Some stat types may be correlated: {', '.join(matched)}",
                affected_legs=sum(1 for leg in legs if leg.stat_type in involved),
            )

        return CorrelationRisk(
            level=CorrelationLevel.NONE,
            description="Legs appear to be independent",
            affected_legs=0,
        )
