"""
Prop-scan pipeline: normalized quotes → consensus → per-book EV → ranked records.

Steps
-----
1. :func:`group_quotes` builds an explicit ``(player_id, stat_type, line)`` →
   quotes mapping.  Lists are only appended to while grouping and frozen
   into tuples before anything reads them.
2. :func:`analyze_group` computes the consensus of one group and evaluates
   every quote on both sides; the best book/side becomes a
   :class:`PropEVRecord` carrying copies of the quotes.
3. :func:`analyze_props` runs step 2 over every group (groups share
   nothing, so any executor will do) then filters and ranks the records.

Groups with fewer books than ``MarketConfig.min_consensus_books`` are skipped:
a single book's de-vigged price is not a market consensus.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from propedge.core.market_config import MarketConfig
from propedge.core.models import GroupKey, NormalizedProp, PropEVRecord
from propedge.core.scoring import ConfidenceModel, SaturatingConfidence
from propedge.services.consensus import compute_consensus
from propedge.services.ev_engine import RatingThresholds, evaluate_group
from propedge.services.normalizer import FormatHint, OddsNormalizer

logger = logging.getLogger(__name__)


def group_quotes(
    props: Iterable[NormalizedProp],
) -> Dict[GroupKey, Tuple[NormalizedProp, ...]]:
    """Group quotes by ``(player_id, stat_type, line)``, preserving input order."""
    groups: Dict[GroupKey, List[NormalizedProp]] = {}
    for prop in props:
        groups.setdefault(prop.group_key, []).append(prop)
    return {key: tuple(quotes) for key, quotes in groups.items()}


def analyze_group(
    quotes: Sequence[NormalizedProp],
    config: Optional[MarketConfig] = None,
    confidence_model: Optional[ConfidenceModel] = None,
) -> Optional[PropEVRecord]:
    """Best book and side for one prop group, or ``None`` if it is too thin."""
    config = config or MarketConfig()
    if len(quotes) < config.min_consensus_books:
        return None

    consensus = compute_consensus(
        quotes,
        min_sample_size=config.min_consensus_books,
        confidence_model=confidence_model or SaturatingConfidence.from_config(config),
    )
    ranked = evaluate_group(
        quotes, consensus, thresholds=RatingThresholds.from_config(config)
    )
    best = ranked[0]
    head = quotes[0]

    return PropEVRecord(
        player_id=head.player_id,
        player_name=head.player_name,
        sport=head.sport,
        stat_type=head.stat_type,
        consensus_line=head.line,
        consensus_probability=consensus.probability_for(best.side),
        sportsbook=best.sportsbook,
        side=best.side,
        offered_odds=best.offered_odds,
        implied_probability=best.ev.implied_probability,
        edge_percent=best.ev.edge_percent,
        ev_percent=best.ev.expected_value,
        rating=best.ev.rating,
        confidence=consensus.confidence,
        kelly_fraction=best.kelly_fraction,
        sample_size=consensus.sample_size,
        quotes=tuple(quotes),
        book_evaluations=tuple(ranked),
    )


def _record_rank_key(record: PropEVRecord):
    return (
        -record.ev_percent,
        -record.confidence,
        record.sportsbook,
        record.player_name,
        record.stat_type,
        record.consensus_line,
    )


def rank_records(records: Iterable[PropEVRecord]) -> List[PropEVRecord]:
    """EV desc → confidence desc → sportsbook → player → stat → line."""
    return sorted(records, key=_record_rank_key)


def analyze_props(
    props: Iterable[NormalizedProp],
    config: Optional[MarketConfig] = None,
    *,
    min_ev: Optional[float] = None,
    max_workers: Optional[int] = None,
    executor: Optional[Executor] = None,
    confidence_model: Optional[ConfidenceModel] = None,
) -> List[PropEVRecord]:
    """Run consensus + EV over every prop group and rank the results.

    Group analysis is pure Python, so a thread pool only overlaps work when
    the caller is already juggling I/O; for CPU speed-up on a large slate
    pass a :class:`~concurrent.futures.ProcessPoolExecutor`.  The per-group
    callable is a :func:`functools.partial` over module-level functions and
    frozen inputs, so it pickles cleanly.

    Args:
        props: Normalized (and validated) quotes from any number of books.
        config: Tunables; defaults to :class:`MarketConfig` defaults.
        min_ev: Drop records whose EV percent is below this value.
        max_workers: When > 1 and no ``executor`` is given, evaluate groups
            on a private thread pool of this size.
        executor: Caller-owned executor to map groups over.  It is not shut
            down here.
        confidence_model: Override the confidence heuristic.

    Returns:
        One record per prop group that met the minimum book count, best first.
    """
    config = config or MarketConfig()
    groups = group_quotes(props)
    eligible = [q for q in groups.values() if len(q) >= config.min_consensus_books]
    skipped = len(groups) - len(eligible)
    if skipped:
        logger.debug(
            "Skipping %d prop groups with fewer than %d books",
            skipped, config.min_consensus_books,
        )

    run = partial(analyze_group, config=config, confidence_model=confidence_model)

    if executor is not None:
        results = list(executor.map(run, eligible))
    elif max_workers and max_workers > 1 and len(eligible) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(run, eligible))
    else:
        results = [run(q) for q in eligible]

    records = [r for r in results if r is not None]
    if min_ev is not None:
        records = [r for r in records if r.ev_percent >= min_ev]

    ranked = rank_records(records)
    logger.info(
        "Analyzed %d prop groups (%d skipped): %d records, %d +EV",
        len(groups), skipped, len(ranked), sum(1 for r in ranked if r.ev_percent > 0),
    )
    return ranked


def scan_payloads(
    raws: Iterable[Any],
    sportsbook_hint: FormatHint = None,
    config: Optional[MarketConfig] = None,
    *,
    min_ev: Optional[float] = None,
    max_workers: Optional[int] = None,
    normalizer: Optional[OddsNormalizer] = None,
) -> List[PropEVRecord]:
    """Normalize raw sportsbook payloads and run :func:`analyze_props` on them."""
    config = config or MarketConfig()
    normalizer = normalizer or OddsNormalizer(config)
    props = normalizer.normalize_batch(raws, sportsbook_hint)
    return analyze_props(props, config, min_ev=min_ev, max_workers=max_workers)
