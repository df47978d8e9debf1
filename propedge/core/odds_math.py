"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The two pillars exposed are:

1. **Odds conversion** — American ↔ decimal ↔ implied probability.
2. **Vig removal** — proportional normalisation of a two-way over/under
   market so the two sides sum to exactly 1.

Design decisions
----------------
* All functions accept ``int`` American odds because The Odds API and most
  US sportsbook APIs return integers.  Exchange feeds that quote odds as
  strings are parsed by the normalizer before they reach this module.
* Zero is the only American value rejected outright.  Prop markets on
  pick-em and exchange books occasionally carry short prices (``+50``) that a
  moneyline book would never post, so there is no magnitude floor.
* Proportional de-vig is used because the consensus step averages many
  books; per-book favourite-longshot corrections wash out in the mean at the
  near-even prices typical of player props.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final

from propedge.core.exceptions import InvalidOddsError, ProbabilityError
from propedge.core.models import DeviggedMarket

#: American odds are quoted against a notional 100-unit stake.
_ODDS_BASE: Final[float] = 100.0


def _check_odds(american: int | float) -> None:
    if american == 0 or not math.isfinite(american):
        raise InvalidOddsError(
            f"Invalid American odds {american!r}: odds must be a finite, "
            "non-zero number. Check upstream odds parsing."
        )


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_probability(american: int | float) -> float:
    """Raw implied probability from American odds (vig-inclusive).

    This is the bookmaker's *stated* probability and includes the overround.
    For fair probabilities pass both sides through :func:`remove_vig`.

    Args:
        american: American odds.  Negative = favourite (risk ``|odds|`` to
            win 100), positive = underdog (risk 100 to win ``odds``).

    Returns:
        Implied probability in ``(0, 1)``.

    Raises:
        InvalidOddsError: If ``american`` is zero or not finite.

    Examples::

        american_to_probability(-110) → 0.5238
        american_to_probability(+150) → 0.4000
    """
    _check_odds(american)
    if american > 0:
        return _ODDS_BASE / (american + _ODDS_BASE)
    risk = abs(american)
    return risk / (risk + _ODDS_BASE)


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Decimal odds are the total payout per unit staked, **including** the
    returned stake::

        american_to_decimal(-110) → 1.9091
        american_to_decimal(+150) → 2.5000

    Raises:
        InvalidOddsError: If ``american`` is zero or not finite.
    """
    _check_odds(american)
    if american > 0:
        return american / _ODDS_BASE + 1.0
    return _ODDS_BASE / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Inverse of :func:`american_to_decimal`.  Values ≥ 2.0 come back positive
    (underdog), values below 2.0 negative (favourite).

    Raises:
        InvalidOddsError: If ``decimal_odds <= 1.0`` (no profit on a win).
    """
    if not decimal_odds > 1.0:
        raise InvalidOddsError(
            f"Decimal odds {decimal_odds!r} must be > 1.0."
        )
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * _ODDS_BASE)
    return round(-_ODDS_BASE / (decimal_odds - 1.0))


def probability_to_american(probability: float) -> int:
    """Fair (no-vig) American odds for a probability.

    Same formula family as :func:`american_to_probability`, inverted::

        probability_to_american(0.55) → -122
        probability_to_american(0.40) → +150

    Raises:
        ProbabilityError: If ``probability`` is not in ``(0, 1)``.
    """
    if not (0.0 < probability < 1.0):
        raise ProbabilityError(
            f"probability must be in (0, 1), got {probability!r}."
        )
    if probability >= 0.5:
        return round(-_ODDS_BASE * probability / (1.0 - probability))
    return round(_ODDS_BASE * (1.0 - probability) / probability)


def breakeven_percent(american: int | float) -> float:
    """Win rate (in percent) needed to break even at ``american`` odds."""
    return american_to_probability(american) * 100.0


# ---------------------------------------------------------------------------
# Vig removal
# ---------------------------------------------------------------------------


def remove_vig(over_implied: float, under_implied: float) -> DeviggedMarket:
    """Normalise a two-way market's implied probabilities to sum to 1.

    A book quoting -110/-110 implies 52.38% on each side (104.76% total);
    the 4.76 points above 100 are the vig::

        remove_vig(0.5238, 0.5238) → DeviggedMarket(over=0.5, under=0.5,
                                                    vig_percent=4.76)

    Args:
        over_implied: Raw implied probability of the Over.
        under_implied: Raw implied probability of the Under.

    Returns:
        :class:`DeviggedMarket` whose ``over + under == 1`` to machine
        precision, with ``vig_percent = (sum - 1) * 100`` for diagnostics.

    Raises:
        InvalidOddsError: If the two probabilities sum to zero.
    """
    total = over_implied + under_implied
    if total == 0:
        raise InvalidOddsError(
            "Implied probabilities sum to zero; cannot remove vig."
        )
    return DeviggedMarket(
        over=over_implied / total,
        under=under_implied / total,
        vig_percent=(total - 1.0) * 100.0,
    )


def devig_american(over_odds: int | float, under_odds: int | float) -> DeviggedMarket:
    """Convenience wrapper: :func:`remove_vig` on a pair of American prices."""
    return remove_vig(
        american_to_probability(over_odds),
        american_to_probability(under_odds),
    )
