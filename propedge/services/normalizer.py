"""
Odds normalization layer.

Converts raw sportsbook payloads into :class:`NormalizedProp` records.  Three
payload shapes are supported, one adapter each:

  Aggregator (The Odds API event odds):
      ``{sport_key, commence_time, bookmakers: [{title, markets: [{key,
      outcomes: [{name, description, price, point}]}]}]}``.  One payload
      carries a prop per bookmaker × market × player.

  Exchange (DraftKings-style offer tree):
      ``{participant: {participantId, name}, subcategoryId, offers: [{label,
      outcomes: [{label, oddsAmerican, line}]}]}``.  Odds and line arrive
      as strings.  One prop per over/under offer; milestone offers and
      offers with unparsable fields are skipped.

  DFS (PrizePicks-style pick-em):
      ``{player: {id, name}, league, stat_type, line_score, odds: {over,
      under}}``.  Numbers arrive as numbers.

Dispatch goes through an explicit :class:`SportsbookFormat` hint first, then
structural detection in a fixed order (DFS → Aggregator → Exchange).

A malformed record is a data problem, not a programming error: adapters
return nothing for it, the normalizer logs and moves on, and a batch is
never failed by one bad record.
"""

import logging
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from propedge.core.market_config import (
    AGGREGATOR_MARKETS,
    AGGREGATOR_SPORTS,
    BOOKMAKER_NAMES,
    DFS_LEAGUES,
    DFS_STATS,
    EXCHANGE_SUBCATEGORIES,
    MarketConfig,
    lookup,
)
from propedge.core.models import NormalizedProp

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class SportsbookFormat(str, Enum):
    """Closed set of payload shapes the normalizer understands."""

    AGGREGATOR = "aggregator"
    EXCHANGE = "exchange"
    DFS = "dfs"

    @classmethod
    def from_hint(cls, hint: Union["SportsbookFormat", str, None]) -> Optional["SportsbookFormat"]:
        """Resolve a format or a sportsbook/feed alias; ``None`` when unknown."""
        if hint is None or isinstance(hint, cls):
            return hint
        return _FORMAT_ALIASES.get(str(hint).strip().lower())


_FORMAT_ALIASES: Dict[str, SportsbookFormat] = {
    "aggregator": SportsbookFormat.AGGREGATOR,
    "the_odds_api": SportsbookFormat.AGGREGATOR,
    "theoddsapi": SportsbookFormat.AGGREGATOR,
    "oddsapi": SportsbookFormat.AGGREGATOR,
    "exchange": SportsbookFormat.EXCHANGE,
    "draftkings": SportsbookFormat.EXCHANGE,
    "dk": SportsbookFormat.EXCHANGE,
    "dfs": SportsbookFormat.DFS,
    "prizepicks": SportsbookFormat.DFS,
    "pp": SportsbookFormat.DFS,
}


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------

_UNICODE_MINUS = "−"


def _text(value: Any) -> Optional[str]:
    """Non-empty stripped string, accepting integer ids; ``None`` otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip().replace(_UNICODE_MINUS, "-")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def parse_american_odds(value: Any) -> Optional[int]:
    """Parse an American price from an int, float or string such as ``"+120"``.

    Returns ``None`` for zero, fractional, non-finite or unparsable values.
    """
    number = _number(value)
    if number is None or number == 0 or not number.is_integer():
        return None
    return int(number)


def parse_line(value: Any) -> Optional[float]:
    return _number(value)


def player_slug(name: str) -> str:
    """``"LeBron James"`` → ``"lebron-james"``."""
    return re.sub(r"\s+", "-", name.strip().lower())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_side(label: Any, side: str) -> bool:
    return isinstance(label, str) and side in label.lower()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class PayloadAdapter(ABC):
    """One payload shape → normalized props."""

    format: SportsbookFormat

    def __init__(self, config: MarketConfig, clock: Clock) -> None:
        self.config = config
        self.clock = clock

    def _now_iso(self) -> str:
        return self.clock().isoformat()

    @abstractmethod
    def detect(self, raw: Mapping) -> bool:
        """True when ``raw`` carries this shape's discriminating fields."""

    @abstractmethod
    def extract(self, raw: Mapping) -> List[NormalizedProp]:
        """Every prop in ``raw``; empty when required fields are missing."""


class DFSAdapter(PayloadAdapter):
    format = SportsbookFormat.DFS
    sportsbook = "PrizePicks"

    def detect(self, raw: Mapping) -> bool:
        return "player" in raw and "line_score" in raw

    def extract(self, raw: Mapping) -> List[NormalizedProp]:
        player = raw.get("player")
        if not isinstance(player, Mapping):
            logger.debug("DFS payload without player object: %r", raw)
            return []
        player_id = _text(player.get("id"))
        player_name = _text(player.get("name"))
        league = _text(raw.get("league"))
        stat = _text(raw.get("stat_type"))
        line = parse_line(raw.get("line_score"))
        if None in (player_id, player_name, league, stat, line):
            logger.debug("Missing required DFS fields: %r", raw)
            return []

        odds = raw.get("odds")
        if odds is None:
            over_odds = under_odds = self.config.pickem_default_odds
        elif isinstance(odds, Mapping):
            over_odds = parse_american_odds(odds.get("over"))
            under_odds = parse_american_odds(odds.get("under"))
            if over_odds is None or under_odds is None:
                logger.debug("Unparsable DFS odds for %s: %r", player_name, odds)
                return []
        else:
            return []

        return [
            NormalizedProp(
                player_id=player_id,
                player_name=player_name,
                sport=lookup(DFS_LEAGUES, league),
                stat_type=DFS_STATS.get(stat.lower(), stat),
                line=line,
                over_odds=over_odds,
                under_odds=under_odds,
                sportsbook=self.sportsbook,
                timestamp=self._now_iso(),
            )
        ]


class AggregatorAdapter(PayloadAdapter):
    format = SportsbookFormat.AGGREGATOR

    def detect(self, raw: Mapping) -> bool:
        return isinstance(raw.get("bookmakers"), list)

    def extract(self, raw: Mapping) -> List[NormalizedProp]:
        sport_key = _text(raw.get("sport_key"))
        bookmakers = raw.get("bookmakers")
        if sport_key is None or not isinstance(bookmakers, list):
            logger.debug("Aggregator payload without sport_key/bookmakers")
            return []

        sport = lookup(AGGREGATOR_SPORTS, sport_key)
        timestamp = _text(raw.get("commence_time")) or self._now_iso()
        props: List[NormalizedProp] = []

        for bookmaker in bookmakers:
            if not isinstance(bookmaker, Mapping):
                continue
            book = _text(bookmaker.get("title"))
            if book is None:
                key = _text(bookmaker.get("key"))
                book = lookup(BOOKMAKER_NAMES, key.lower()) if key else None
            if book is None:
                continue

            for market in bookmaker.get("markets") or []:
                if not isinstance(market, Mapping):
                    continue
                market_key = _text(market.get("key"))
                outcomes = market.get("outcomes")
                if market_key is None or not isinstance(outcomes, list):
                    continue
                stat = lookup(AGGREGATOR_MARKETS, market_key)
                for player_name, over, under in self._pair_outcomes(outcomes):
                    prop = self._build(
                        player_name, over, under, sport, stat, book, timestamp
                    )
                    if prop is not None:
                        props.append(prop)

        return props

    @staticmethod
    def _pair_outcomes(
        outcomes: List[Any],
    ) -> Iterable[Tuple[str, Mapping, Mapping]]:
        """Yield (player, over outcome, under outcome) per described player."""
        by_player: Dict[str, Dict[str, Mapping]] = {}
        for outcome in outcomes:
            if not isinstance(outcome, Mapping):
                continue
            player = _text(outcome.get("description"))
            if player is None:
                continue
            sides = by_player.setdefault(player, {})
            name = outcome.get("name")
            if _is_side(name, "over"):
                sides.setdefault("over", outcome)
            elif _is_side(name, "under"):
                sides.setdefault("under", outcome)

        for player, sides in by_player.items():
            if "over" in sides and "under" in sides:
                yield player, sides["over"], sides["under"]

    @staticmethod
    def _build(
        player_name: str,
        over: Mapping,
        under: Mapping,
        sport: str,
        stat: str,
        book: str,
        timestamp: str,
    ) -> Optional[NormalizedProp]:
        line = parse_line(over.get("point"))
        under_line = parse_line(under.get("point"))
        over_odds = parse_american_odds(over.get("price"))
        under_odds = parse_american_odds(under.get("price"))
        if line is None or over_odds is None or under_odds is None:
            return None
        if under_line is not None and under_line != line:
            # Alternate lines listed side by side; not one over/under market.
            return None
        return NormalizedProp(
            player_id=player_slug(player_name),
            player_name=player_name,
            sport=sport,
            stat_type=stat,
            line=line,
            over_odds=over_odds,
            under_odds=under_odds,
            sportsbook=book,
            timestamp=timestamp,
        )


class ExchangeAdapter(PayloadAdapter):
    format = SportsbookFormat.EXCHANGE
    sportsbook = "DraftKings"

    def detect(self, raw: Mapping) -> bool:
        return "participant" in raw and "offers" in raw

    def extract(self, raw: Mapping) -> List[NormalizedProp]:
        participant = raw.get("participant")
        offers = raw.get("offers")
        if not isinstance(participant, Mapping) or not isinstance(offers, list):
            return []
        player_id = _text(participant.get("participantId"))
        player_name = _text(participant.get("name"))
        subcategory = _text(raw.get("subcategoryId"))
        if None in (player_id, player_name, subcategory):
            logger.debug("Missing required exchange fields: %r", raw)
            return []

        sport = lookup(EXCHANGE_SUBCATEGORIES, subcategory)
        props: List[NormalizedProp] = []
        for offer in offers:
            prop = self._build(offer, player_id, player_name, sport)
            if prop is not None:
                props.append(prop)
        return props

    def _build(
        self, offer: Any, player_id: str, player_name: str, sport: str
    ) -> Optional[NormalizedProp]:
        """One over/under offer → prop; ``None`` for milestones or bad fields."""
        if not isinstance(offer, Mapping):
            return None
        outcomes = offer.get("outcomes")
        if not isinstance(outcomes, list) or len(outcomes) < 2:
            return None
        over = next(
            (o for o in outcomes if isinstance(o, Mapping) and _is_side(o.get("label"), "over")),
            None,
        )
        under = next(
            (o for o in outcomes if isinstance(o, Mapping) and _is_side(o.get("label"), "under")),
            None,
        )
        if over is None or under is None:
            return None

        stat = _text(offer.get("label"))
        line = parse_line(over.get("line"))
        over_odds = parse_american_odds(over.get("oddsAmerican"))
        under_odds = parse_american_odds(under.get("oddsAmerican"))
        if None in (stat, line, over_odds, under_odds):
            logger.debug("Unparsable exchange offer for %s: %r", player_name, offer)
            return None

        return NormalizedProp(
            player_id=player_id,
            player_name=player_name,
            sport=sport,
            stat_type=stat,
            line=line,
            over_odds=over_odds,
            under_odds=under_odds,
            sportsbook=self.sportsbook,
            timestamp=self._now_iso(),
        )


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

FormatHint = Union[SportsbookFormat, str, None]


class OddsNormalizer:
    """Routes raw payloads to the matching adapter and validates the output.

    Usage::

        normalizer = OddsNormalizer()
        props = normalizer.normalize_batch(raw_payloads)
    """

    def __init__(
        self,
        config: Optional[MarketConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or MarketConfig()
        clock = clock or _utc_now
        # Detection priority order.
        self.adapters: Tuple[PayloadAdapter, ...] = (
            DFSAdapter(self.config, clock),
            AggregatorAdapter(self.config, clock),
            ExchangeAdapter(self.config, clock),
        )
        self._by_format = {adapter.format: adapter for adapter in self.adapters}

    def _run(self, adapter: PayloadAdapter, raw: Mapping) -> List[NormalizedProp]:
        try:
            return adapter.extract(raw)
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            logger.warning("%s normalization error: %s", adapter.format.value, e)
            return []

    def normalize_many(self, raw: Any, sportsbook_hint: FormatHint = None) -> List[NormalizedProp]:
        """All props carried by one payload; empty when nothing usable is found."""
        if not isinstance(raw, Mapping):
            logger.warning("Skipping non-object payload of type %s", type(raw).__name__)
            return []

        hinted = None
        if sportsbook_hint is not None:
            fmt = SportsbookFormat.from_hint(sportsbook_hint)
            if fmt is None:
                logger.warning("Unknown sportsbook hint: %s", sportsbook_hint)
            else:
                hinted = self._by_format[fmt]
                props = self._run(hinted, raw)
                if props:
                    return props

        for adapter in self.adapters:
            if adapter is hinted:
                continue
            if adapter.detect(raw):
                return self._run(adapter, raw)

        logger.warning("Unable to detect sportsbook format (keys: %s)", sorted(map(str, raw)))
        return []

    def normalize(self, raw: Any, sportsbook_hint: FormatHint = None) -> Optional[NormalizedProp]:
        """First prop in ``raw``, or ``None``.  Never raises on bad data."""
        props = self.normalize_many(raw, sportsbook_hint)
        return props[0] if props else None

    def normalize_batch(
        self, raws: Iterable[Any], sportsbook_hint: FormatHint = None
    ) -> List[NormalizedProp]:
        """Normalize every record independently, then drop invalid props."""
        normalized: List[NormalizedProp] = []
        n_records = 0
        n_failed = 0
        for raw in raws:
            n_records += 1
            props = self.normalize_many(raw, sportsbook_hint)
            if not props:
                n_failed += 1
            normalized.extend(props)

        valid = self.filter_valid(normalized)
        if n_failed or len(valid) != len(normalized):
            logger.info(
                "Normalized %d props from %d records (%d records unusable, %d props invalid)",
                len(valid), n_records, n_failed, len(normalized) - len(valid),
            )
        return valid

    @staticmethod
    def validate(prop: NormalizedProp) -> bool:
        """Check every NormalizedProp invariant."""
        for text in (
            prop.player_id, prop.player_name, prop.sport,
            prop.stat_type, prop.sportsbook, prop.timestamp,
        ):
            if not isinstance(text, str) or not text.strip():
                return False

        if isinstance(prop.line, bool) or not isinstance(prop.line, (int, float)):
            return False
        if not math.isfinite(prop.line):
            return False

        for odds in (prop.over_odds, prop.under_odds):
            if isinstance(odds, bool) or not isinstance(odds, int) or odds == 0:
                return False

        return _parse_timestamp(prop.timestamp) is not None

    def filter_valid(self, props: Iterable[NormalizedProp]) -> List[NormalizedProp]:
        return [prop for prop in props if self.validate(prop)]


def _parse_timestamp(value: str) -> Optional[datetime]:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
