"""Market-level configuration — every tunable constant in one place.

Nowhere else in the codebase should consensus thresholds, rating cut-offs,
or sportsbook vocabulary be hard-coded.

Architecture
------------
:class:`MarketConfig` is a frozen dataclass carrying all tunables.  The
defaults are the production values; :meth:`MarketConfig.from_env`
applies environment overrides for deployment.  To tweak a single value in
code use :func:`dataclasses.replace`::

    from dataclasses import replace
    from propedge.core.market_config import MarketConfig

    cfg = replace(MarketConfig(), min_consensus_books=3)

The vocabulary tables below translate source-specific keys into display
labels.  Lookups that miss return the raw value unchanged so new markets
flow through without a code change.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Final, FrozenSet, Mapping, Optional, Tuple

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

#: Fewest books a prop group needs before the pipeline treats its consensus
#: as meaningful.  A single book's de-vigged line is just that book's
#: opinion; two is the smallest sample that is a "market".
DEFAULT_MIN_CONSENSUS_BOOKS: Final[int] = 2

#: Confidence heuristic ``min(cap, base + step * n_books)``.
DEFAULT_CONFIDENCE_BASE: Final[float] = 0.5
DEFAULT_CONFIDENCE_STEP: Final[float] = 0.1
DEFAULT_CONFIDENCE_CAP: Final[float] = 0.95

#: Edge (percent) at or above which a side is rated Strong / Moderate.
STRONG_EDGE_PCT: Final[float] = 5.0
MODERATE_EDGE_PCT: Final[float] = 2.0

#: Price assumed for both sides of a pick-em (DFS) prop that publishes no odds.
DEFAULT_PICKEM_ODDS: Final[int] = -110

#: Monte Carlo trials for parlay variance estimates.
DEFAULT_MC_TRIALS: Final[int] = 10_000

#: (anchor stat, stats it overlaps with, description).  Two legs whose stat
#: types hit the anchor and one of its partners are flagged as correlated.
CorrelatedStat = Tuple[str, FrozenSet[str], str]

DEFAULT_CORRELATED_STATS: Final[Tuple[CorrelatedStat, ...]] = (
    (
        "PRA",
        frozenset({"Points", "Rebounds", "Assists"}),
        "PRA overlaps with Points/Rebounds/Assists",
    ),
    (
        "Passing Yards",
        frozenset({"Touchdowns"}),
        "Passing Yards and Touchdowns are correlated",
    ),
)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

#: Aggregator ``sport_key`` → league label.
AGGREGATOR_SPORTS: Final[Dict[str, str]] = {
    "basketball_nba": "NBA",
    "americanfootball_nfl": "NFL",
    "baseball_mlb": "MLB",
    "icehockey_nhl": "NHL",
    "basketball_wnba": "WNBA",
    "soccer_epl": "Soccer",
}

#: Aggregator market key → stat label.
AGGREGATOR_MARKETS: Final[Dict[str, str]] = {
    "player_points": "Points",
    "player_rebounds": "Rebounds",
    "player_assists": "Assists",
    "player_threes": "3-Pointers",
    "player_blocks": "Blocks",
    "player_steals": "Steals",
    "player_points_rebounds_assists": "PRA",
    "player_pass_yds": "Passing Yards",
    "player_rush_yds": "Rushing Yards",
    "player_pass_tds": "Touchdowns",
}

#: Aggregator bookmaker key → display name.
BOOKMAKER_NAMES: Final[Dict[str, str]] = {
    "fanduel": "FanDuel",
    "draftkings": "DraftKings",
    "betmgm": "BetMGM",
    "caesars": "Caesars",
    "williamhill_us": "Caesars",
    "pointsbetus": "PointsBet",
    "prizepicks": "PrizePicks",
}

#: DFS ``league`` → league label.
DFS_LEAGUES: Final[Dict[str, str]] = {
    "NBA": "NBA",
    "NFL": "NFL",
    "MLB": "MLB",
    "NHL": "NHL",
    "WNBA": "WNBA",
    "soccer": "Soccer",
    "mls": "Soccer",
}

#: DFS ``stat_type`` (lower-cased) → stat label.
DFS_STATS: Final[Dict[str, str]] = {
    "pts": "Points",
    "points": "Points",
    "reb": "Rebounds",
    "rebounds": "Rebounds",
    "ast": "Assists",
    "assists": "Assists",
    "pts+reb+ast": "PRA",
    "pra": "PRA",
    "pass_yds": "Passing Yards",
    "rush_yds": "Rushing Yards",
    "strikeouts": "Strikeouts",
}

#: Exchange ``subcategoryId`` → league label.
EXCHANGE_SUBCATEGORIES: Final[Dict[str, str]] = {
    "4": "NBA",
    "88": "NFL",
    "3": "MLB",
    "6": "NHL",
}


def lookup(table: Mapping[str, str], key: str) -> str:
    """Map ``key`` through ``table``; unknown keys pass through unchanged."""
    return table.get(key, key)


# ---------------------------------------------------------------------------
# Config bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketConfig:
    """Immutable bundle of pipeline tunables.

    Attributes:
        min_consensus_books: Minimum quotes in a prop group before the
            pipeline computes a consensus for it.  Groups below this are
            skipped, not errors.
        confidence_base: Intercept of the saturating confidence heuristic.
        confidence_step: Confidence added per contributing book.
        confidence_cap: Ceiling of the confidence heuristic.
        strong_edge_pct: Edge percent at or above which a side rates Strong.
        moderate_edge_pct: Edge percent at or above which a side rates Moderate.
        pickem_default_odds: Price applied to DFS props without an ``odds``
            object.
        mc_trials: Default Monte Carlo trial count for parlay simulation.
        correlated_stats: Static table of correlated stat groups used by the
            Low correlation-risk rule.
    """

    min_consensus_books: int = DEFAULT_MIN_CONSENSUS_BOOKS
    confidence_base: float = DEFAULT_CONFIDENCE_BASE
    confidence_step: float = DEFAULT_CONFIDENCE_STEP
    confidence_cap: float = DEFAULT_CONFIDENCE_CAP
    strong_edge_pct: float = STRONG_EDGE_PCT
    moderate_edge_pct: float = MODERATE_EDGE_PCT
    pickem_default_odds: int = DEFAULT_PICKEM_ODDS
    mc_trials: int = DEFAULT_MC_TRIALS
    correlated_stats: Tuple[CorrelatedStat, ...] = field(
        default=DEFAULT_CORRELATED_STATS
    )

    def __post_init__(self) -> None:
        if self.min_consensus_books < 1:
            raise ValueError(
                f"min_consensus_books must be ≥ 1, got {self.min_consensus_books!r}."
            )
        if self.moderate_edge_pct > self.strong_edge_pct:
            raise ValueError(
                "moderate_edge_pct must not exceed strong_edge_pct "
                f"({self.moderate_edge_pct!r} > {self.strong_edge_pct!r})."
            )
        if self.pickem_default_odds == 0:
            raise ValueError("pickem_default_odds cannot be 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MarketConfig":
        """Build a config from environment variables, falling back to defaults.

        Recognised variables: ``MIN_CONSENSUS_BOOKS``, ``CONFIDENCE_BASE``,
        ``CONFIDENCE_STEP``, ``CONFIDENCE_CAP``, ``STRONG_EDGE_PCT``,
        ``MODERATE_EDGE_PCT``, ``PICKEM_DEFAULT_ODDS``, ``PARLAY_MC_TRIALS``
        and ``CORRELATED_STATS``.  The last is JSON mapping an anchor stat to
        its partner list, e.g. ``{"Rushing Yards": ["Touchdowns"]}``; the
        entries are appended to the built-in table.
        """
        env = os.environ if environ is None else environ
        extra = parse_correlated_stats(env.get("CORRELATED_STATS", ""))
        return cls(
            min_consensus_books=int(
                env.get("MIN_CONSENSUS_BOOKS", DEFAULT_MIN_CONSENSUS_BOOKS)
            ),
            confidence_base=float(env.get("CONFIDENCE_BASE", DEFAULT_CONFIDENCE_BASE)),
            confidence_step=float(env.get("CONFIDENCE_STEP", DEFAULT_CONFIDENCE_STEP)),
            confidence_cap=float(env.get("CONFIDENCE_CAP", DEFAULT_CONFIDENCE_CAP)),
            strong_edge_pct=float(env.get("STRONG_EDGE_PCT", STRONG_EDGE_PCT)),
            moderate_edge_pct=float(env.get("MODERATE_EDGE_PCT", MODERATE_EDGE_PCT)),
            pickem_default_odds=int(env.get("PICKEM_DEFAULT_ODDS", DEFAULT_PICKEM_ODDS)),
            mc_trials=int(env.get("PARLAY_MC_TRIALS", DEFAULT_MC_TRIALS)),
            correlated_stats=DEFAULT_CORRELATED_STATS + extra,
        )


def parse_correlated_stats(raw: str) -> Tuple[CorrelatedStat, ...]:
    """Parse the ``CORRELATED_STATS`` JSON object into table entries.

    Raises:
        ValueError: If ``raw`` is not a JSON object of string → list of strings.
    """
    if not raw.strip():
        return ()
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("CORRELATED_STATS must be a JSON object")
    entries = []
    for anchor, partners in data.items():
        if not isinstance(partners, list) or not all(isinstance(p, str) for p in partners):
            raise ValueError(
                f"CORRELATED_STATS[{anchor!r}] must be a list of stat names"
            )
        entries.append(
            (anchor, frozenset(partners), f"{anchor} overlaps with {'/'.join(partners)}")
        )
    return tuple(entries)
