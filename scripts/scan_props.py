"""
scan_props.py — Rank player-prop EV across sportsbooks.

Sources
-------
  Files      One or more JSON files, each holding a single raw payload or a
             list of payloads in any supported shape (aggregator, exchange,
             DFS).
  --fetch    Pull the current slate from The Odds API for a sport key
             (requires THE_ODDS_API_KEY in the environment or .env).

Usage
-----
  python scripts/scan_props.py dumps/nba_props.json
  python scripts/scan_props.py dumps/*.json --min-ev 0 --json
  python scripts/scan_props.py --fetch basketball_nba --parlays 3
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List

from dotenv import load_dotenv

# Ensure the project root (one level up from scripts/) is on sys.path so that
# `from propedge.xxx import ...` resolves when the script is run directly.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from propedge.core.market_config import MarketConfig  # noqa: E402
from propedge.schemas import PropEVRecordOut  # noqa: E402
from propedge.services.analysis import scan_payloads  # noqa: E402
from propedge.services.parlay_engine import (  # noqa: E402
    build_parlay_tickets,
    format_parlay_summary,
    simulate_parlay_outcomes,
)

logger = logging.getLogger("scan_props")


def _load_payloads(paths: List[str]) -> List[Any]:
    payloads: List[Any] = []
    for path in paths:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if isinstance(data, list):
            payloads.extend(data)
        else:
            payloads.append(data)
        logger.info("Loaded %s", path)
    return payloads


def main() -> int:
    parser = argparse.ArgumentParser(description="Rank player-prop EV across sportsbooks.")
    parser.add_argument("files", nargs="*", help="JSON files with raw sportsbook payloads")
    parser.add_argument("--fetch", metavar="SPORT_KEY", help="Fetch the slate from The Odds API")
    parser.add_argument("--hint", help="Payload format hint (e.g. draftkings, prizepicks)")
    parser.add_argument("--min-ev", type=float, default=None, help="Minimum EV%% to report")
    parser.add_argument("--workers", type=int, default=None, help="Thread pool size for groups")
    parser.add_argument("--limit", type=int, default=25, help="Rows to print (table mode)")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    parser.add_argument(
        "--parlays", type=int, default=0, metavar="MAX_LEGS",
        help="Also suggest parlays of up to MAX_LEGS legs from +EV results",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    if not args.files and not args.fetch:
        parser.error("give at least one payload file or --fetch SPORT_KEY")

    payloads = _load_payloads(args.files)
    if args.fetch:
        from propedge.services.odds_client import PropOddsClient

        payloads.extend(PropOddsClient().get_slate_props(args.fetch))

    config = MarketConfig.from_env()
    records = scan_payloads(
        payloads, args.hint, config, min_ev=args.min_ev, max_workers=args.workers
    )

    if args.json:
        print(json.dumps([PropEVRecordOut.from_record(r).model_dump() for r in records], indent=2))
    else:
        print(f"{'Player':<24} {'Stat':<14} {'Line':>6} {'Side':<5} {'Book':<12} "
              f"{'Odds':>6} {'EV%':>7} {'Edge%':>7} {'Conf':>5} Rating")
        for r in records[: args.limit]:
            print(
                f"{r.player_name[:24]:<24} {r.stat_type[:14]:<14} {r.consensus_line:>6.1f} "
                f"{r.side.value:<5} {r.sportsbook[:12]:<12} {r.offered_odds:>+6d} "
                f"{r.ev_percent:>7.2f} {r.edge_percent:>7.2f} {r.confidence:>5.2f} {r.rating.value}"
            )

    if args.parlays >= 2:
        tickets = build_parlay_tickets(records, max_legs=args.parlays, min_ev_pct=0.0)
        for ticket in tickets:
            print()
            print(format_parlay_summary(ticket.calculation, ticket.legs))
            print(f"   Book price: {ticket.parlay_american_odds:+d}  "
                  f"EV: {ticket.ev.roi_percent:+.2f}%")
            sim = simulate_parlay_outcomes(ticket.legs, trials=config.mc_trials)
            print(f"   Simulated hit rate: {sim.hit_rate:.2%} over {sim.trials:,} trials")

    return 0


if __name__ == "__main__":
    sys.exit(main())
