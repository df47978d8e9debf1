"""
The Odds API integration for player-prop odds.
https://the-odds-api.com/

Player props are only served per event, so a slate is fetched in two steps:
``get_events`` lists the sport's upcoming events, then ``get_event_props``
pulls the prop markets for one event.  Each event payload is already in the
aggregator shape the normalizer understands.

This client does not cache, schedule, or retry.  A failed request is logged
and returns an empty result; deciding when to fetch again belongs to the
caller.
"""

import logging
import os
from typing import Dict, Iterable, List, Optional

import requests

logger = logging.getLogger(__name__)

API_KEY = os.getenv("THE_ODDS_API_KEY")
BASE_URL = os.getenv("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
REQUEST_TIMEOUT_S = float(os.getenv("ODDS_API_TIMEOUT_S", "10"))

#: Books requested by default.
TARGET_BOOKS = (
    "fanduel",
    "draftkings",
    "betmgm",
    "caesars",
    "pointsbetus",
    "prizepicks",
)

#: Prop markets requested per sport.
PROP_MARKETS: Dict[str, tuple] = {
    "basketball_nba": (
        "player_points",
        "player_rebounds",
        "player_assists",
        "player_threes",
        "player_blocks",
        "player_steals",
        "player_points_rebounds_assists",
    ),
    "americanfootball_nfl": (
        "player_pass_yds",
        "player_rush_yds",
        "player_pass_tds",
    ),
}


class PropOddsClient:
    """Client for The Odds API player-prop endpoints."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise ValueError("THE_ODDS_API_KEY not set in environment")
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict) -> Optional[object]:
        url = f"{BASE_URL}{path}"
        try:
            response = self.session.get(
                url, params={"apiKey": self.api_key, **params}, timeout=REQUEST_TIMEOUT_S
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Odds API error for %s: %s", path, e)
            return None
        except ValueError as e:
            logger.error("Odds API returned invalid JSON for %s: %s", path, e)
            return None

        logger.info(
            "Odds API %s: quota %s used, %s remaining",
            path,
            response.headers.get("x-requests-used"),
            response.headers.get("x-requests-remaining"),
        )
        return data

    def get_events(self, sport_key: str = "basketball_nba") -> List[Dict]:
        """Upcoming events for ``sport_key``."""
        data = self._get(f"/sports/{sport_key}/events", {})
        return data if isinstance(data, list) else []

    def get_event_props(
        self,
        event_id: str,
        sport_key: str = "basketball_nba",
        markets: Optional[Iterable[str]] = None,
        bookmakers: Iterable[str] = TARGET_BOOKS,
        regions: str = "us",
    ) -> Optional[Dict]:
        """Prop odds for one event, in the aggregator payload shape."""
        markets = tuple(markets) if markets is not None else PROP_MARKETS.get(sport_key, ())
        if not markets:
            logger.warning("No prop markets configured for %s", sport_key)
            return None
        data = self._get(
            f"/sports/{sport_key}/events/{event_id}/odds",
            {
                "regions": regions,
                "markets": ",".join(markets),
                "oddsFormat": "american",
                "bookmakers": ",".join(bookmakers),
            },
        )
        return data if isinstance(data, dict) else None

    def get_slate_props(self, sport_key: str = "basketball_nba", **kwargs) -> List[Dict]:
        """Prop payloads for every upcoming event; failed events are skipped."""
        payloads = []
        events = self.get_events(sport_key)
        for event in events:
            event_id = event.get("id")
            if not event_id:
                continue
            payload = self.get_event_props(event_id, sport_key, **kwargs)
            if payload:
                payloads.append(payload)
        logger.info("Fetched props for %d/%d %s events", len(payloads), len(events), sport_key)
        return payloads
