"""Immutable value types passed between the pipeline stages.

Every type is a frozen, slotted dataclass so results can be cached, shared
across worker threads and compared by value.  No type holds a reference back
to the group it was computed from; records carry copies of the quotes they
were built from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class Side(str, Enum):
    OVER = "Over"
    UNDER = "Under"


class EVRating(str, Enum):
    STRONG = "Strong"
    MODERATE = "Moderate"
    LOW = "Low"


class CorrelationLevel(str, Enum):
    """Correlation risk levels in ascending order of severity."""

    NONE = "None"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    SEVERE = "Severe"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def at_least(self, other: "CorrelationLevel") -> bool:
        return self.rank >= other.rank


_LEVEL_ORDER = (
    CorrelationLevel.NONE,
    CorrelationLevel.LOW,
    CorrelationLevel.MEDIUM,
    CorrelationLevel.HIGH,
    CorrelationLevel.SEVERE,
)


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------

GroupKey = Tuple[str, str, float]


@dataclass(frozen=True, slots=True)
class NormalizedProp:
    """One sportsbook's over/under quote on a player prop.

    Attributes:
        player_id: Stable player identifier from the source feed.
        player_name: Display name.
        sport: League label (``"NBA"``, ``"NFL"`` …) or the raw value when
            the source used vocabulary we do not map.
        stat_type: Market label (``"Points"``, ``"PRA"`` …), passed through
            unchanged when unmapped.
        line: The prop line (e.g. ``24.5``).
        over_odds: American price on the Over.  Never zero.
        under_odds: American price on the Under.  Never zero.
        sportsbook: Book display name.
        timestamp: ISO-8601 instant the quote refers to.
    """

    player_id: str
    player_name: str
    sport: str
    stat_type: str
    line: float
    over_odds: int
    under_odds: int
    sportsbook: str
    timestamp: str

    @property
    def group_key(self) -> GroupKey:
        """Quotes sharing this key are priced on the same underlying event."""
        return (self.player_id, self.stat_type, self.line)

    def odds_for(self, side: Side) -> int:
        return self.over_odds if side is Side.OVER else self.under_odds


@dataclass(frozen=True, slots=True)
class DeviggedMarket:
    """A two-way market with the bookmaker margin removed."""

    over: float
    under: float
    vig_percent: float


# ---------------------------------------------------------------------------
# Consensus and EV
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConsensusResult:
    """Market consensus for one prop group.

    ``over_probability + under_probability == 1`` within floating tolerance.
    ``confidence`` is a heuristic in ``[0, 0.95]`` driven by how many books
    contributed, not a statistical estimate.
    """

    over_probability: float
    under_probability: float
    confidence: float
    sample_size: int
    mean_vig_percent: float = 0.0

    def probability_for(self, side: Side) -> float:
        return self.over_probability if side is Side.OVER else self.under_probability


@dataclass(frozen=True, slots=True)
class EVResult:
    """Expected value of one (true probability, offered odds) pair.

    ``expected_value`` is expressed per 100 staked, i.e. a percentage.
    """

    true_probability: float
    edge_percent: float
    expected_value: float
    rating: EVRating
    implied_probability: float
    offered_odds: int


@dataclass(frozen=True, slots=True)
class SideEvaluation:
    """One quote evaluated on one side of the market."""

    sportsbook: str
    side: Side
    offered_odds: int
    ev: EVResult
    confidence: float
    kelly_fraction: float

    @property
    def expected_value(self) -> float:
        return self.ev.expected_value


@dataclass(frozen=True, slots=True)
class PropEVRecord:
    """Pipeline output: the best book and side for one prop group.

    Carries copies of every contributing quote and the ranked best entry of
    each quote so callers can drill down without touching the source group.
    """

    player_id: str
    player_name: str
    sport: str
    stat_type: str
    consensus_line: float
    consensus_probability: float
    sportsbook: str
    side: Side
    offered_odds: int
    implied_probability: float
    edge_percent: float
    ev_percent: float
    rating: EVRating
    confidence: float
    kelly_fraction: float
    sample_size: int
    quotes: Tuple[NormalizedProp, ...] = field(default=(), repr=False)
    book_evaluations: Tuple[SideEvaluation, ...] = field(default=(), repr=False)


# ---------------------------------------------------------------------------
# Parlays
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParlayLeg:
    """One leg of a parlay.

    ``game_id`` and ``team`` are optional; when absent the matching
    correlation rules simply do not fire for this leg.
    """

    player_id: str
    stat_type: str
    probability: float
    game_id: Optional[str] = None
    team: Optional[str] = None
    player_name: str = ""
    sport: str = ""


@dataclass(frozen=True, slots=True)
class CorrelationRisk:
    level: CorrelationLevel
    description: str
    affected_legs: int


@dataclass(frozen=True, slots=True)
class ParlayCalculation:
    combined_probability: float
    combined_probability_percent: float
    fair_odds: int
    expected_legs: float
    correlation_risk: CorrelationRisk
    warnings: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ParlaySimulation:
    """Monte Carlo summary.  ``distribution[k]`` counts trials with exactly k legs hit."""

    hit_rate: float
    avg_legs_hit: float
    distribution: Tuple[int, ...]
    trials: int


@dataclass(frozen=True, slots=True)
class ParlayEV:
    expected_value: float
    roi_percent: float
    fair_odds: int
    edge_percent: float


@dataclass(frozen=True, slots=True)
class ParlayTicket:
    """A suggested parlay built from pipeline records, priced at the books' odds."""

    legs: Tuple[ParlayLeg, ...]
    sportsbooks: Tuple[str, ...]
    calculation: ParlayCalculation
    parlay_decimal_odds: float
    parlay_american_odds: int
    ev: ParlayEV
