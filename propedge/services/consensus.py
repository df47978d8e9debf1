"""
Market consensus for a prop group.

Each book's over/under pair is de-vigged on its own, then the fair "over"
probabilities are arithmetic-averaged across books.  This is the "average of
de-vigged lines" method: every book counts once regardless of its price, so
a single outlier book moves the consensus by 1/n of its disagreement.

The confidence attached to a consensus comes from a pluggable
:class:`~propedge.core.scoring.ConfidenceModel`.  The default is a monotone,
saturating function of how many books contributed — a heuristic for
"how much of the market have we seen", not a statistical estimator.
"""

import logging
from typing import Optional, Sequence

from propedge.core.exceptions import ConsensusError
from propedge.core.models import ConsensusResult, DeviggedMarket, NormalizedProp
from propedge.core.odds_math import devig_american
from propedge.core.scoring import ConfidenceModel, SaturatingConfidence

logger = logging.getLogger(__name__)

_DEFAULT_CONFIDENCE = SaturatingConfidence()


def devig_quote(quote: NormalizedProp) -> DeviggedMarket:
    """Fair over/under probabilities for one book's quote."""
    return devig_american(quote.over_odds, quote.under_odds)


def compute_consensus(
    quotes: Sequence[NormalizedProp],
    *,
    min_sample_size: int = 1,
    confidence_model: Optional[ConfidenceModel] = None,
) -> ConsensusResult:
    """Average the de-vigged probabilities of every quote in a prop group.

    Args:
        quotes: Quotes sharing one ``(player_id, stat_type, line)`` key.
        min_sample_size: Fewest quotes accepted.  The pipeline passes
            :attr:`MarketConfig.min_consensus_books`; direct callers may
            accept a single book.
        confidence_model: Strategy scoring the sample size.  Defaults to
            ``min(0.95, 0.5 + 0.1 * n)``.

    Returns:
        :class:`ConsensusResult` with ``over + under == 1``.

    Raises:
        ConsensusError: If ``quotes`` is empty or shorter than
            ``min_sample_size``.
        InvalidOddsError: If a quote carries zero odds.

    Example::

        DK -115/-105, FD +100/-120, MGM -110/-110
        → per-book over 0.5108, 0.4783, 0.5000
        → consensus over 0.4964, under 0.5036, confidence 0.8
    """
    n = len(quotes)
    if n == 0:
        raise ConsensusError("No quotes provided for consensus calculation")
    if n < min_sample_size:
        raise ConsensusError(
            f"Consensus needs at least {min_sample_size} quotes, got {n}"
        )

    markets = [devig_quote(q) for q in quotes]
    over = sum(m.over for m in markets) / n
    under = sum(m.under for m in markets) / n
    mean_vig = sum(m.vig_percent for m in markets) / n

    for quote, market in zip(quotes, markets):
        if market.vig_percent < 0:
            # Both sides priced as underdogs: an arbitrage, usually a stale quote.
            logger.warning(
                "Negative vig %.2f%% on %s %s %s at %s",
                market.vig_percent, quote.player_name, quote.stat_type,
                quote.line, quote.sportsbook,
            )

    model = confidence_model or _DEFAULT_CONFIDENCE
    return ConsensusResult(
        over_probability=over,
        under_probability=under,
        confidence=model.score(n),
        sample_size=n,
        mean_vig_percent=mean_vig,
    )
