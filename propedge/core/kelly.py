"""Kelly criterion sizing — the single source of truth for stake sizing math.

All functions here are **pure**: no I/O, no logging.

1. :func:`kelly_fraction` — full Kelly for a win/loss prop at American odds,
   clamped at zero so a negative-EV side never gets a stake.
2. :func:`fractional_kelly` — full Kelly divided by a conservatism divisor and
   capped, for display alongside the EV table.

Units follow the convention used throughout the pipeline: one unit = 1% of
current bankroll.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

from propedge.core.exceptions import ProbabilityError
from propedge.core.odds_math import american_to_decimal

#: Default fractional divisor (half-Kelly).  Consensus probabilities are
#: averages of a handful of books and carry estimation error, so full Kelly
#: overbets.
DEFAULT_KELLY_DIVISOR: Final[float] = 2.0

#: Hard cap on any single fractional Kelly output.
MAX_KELLY_FRACTION: Final[float] = 0.20


def kelly_fraction(true_probability: float, american_odds: int | float) -> float:
    """Full Kelly stake as a fraction of bankroll.

    Solves ``max_f E[log(1 + f·X)]`` for a bet paying ``b`` per unit with
    probability ``p`` and losing the stake otherwise::

        f*  =  (b · p − q) / b,    b = decimal_odds − 1,  q = 1 − p

    Args:
        true_probability: Estimated fair probability of the side, in ``(0, 1)``.
        american_odds: Offered price.

    Returns:
        ``max(0, f*)`` — a negative-edge bet returns 0.0, never a negative stake.

    Raises:
        ProbabilityError: If ``true_probability`` is not in ``(0, 1)``.
        InvalidOddsError: If ``american_odds`` is zero.

    Examples::

        kelly_fraction(0.55, -110) → 0.0550
        kelly_fraction(0.45, -110) → 0.0
    """
    if not (0.0 < true_probability < 1.0):
        raise ProbabilityError(
            f"true_probability must be in (0, 1), got {true_probability!r}."
        )
    b = american_to_decimal(american_odds) - 1.0
    q = 1.0 - true_probability
    return max(0.0, (b * true_probability - q) / b)


def fractional_kelly(
    true_probability: float,
    american_odds: int | float,
    *,
    divisor: float = DEFAULT_KELLY_DIVISOR,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Fractional Kelly in ``[0, max_fraction]``.

    Raises:
        ValueError: If ``divisor`` is not positive.
    """
    if divisor <= 0.0:
        raise ValueError(f"divisor must be > 0, got {divisor!r}.")
    return min(kelly_fraction(true_probability, american_odds) / divisor, max_fraction)


def kelly_to_units(fraction: float) -> float:
    """Kelly fraction → units.  ``kelly_to_units(0.025) → 2.5``."""
    return fraction * 100.0


def units_to_dollars(units: float, bankroll: float) -> float:
    """Units → dollars.  ``units_to_dollars(2.5, 1000.0) → 25.0``."""
    return (units / 100.0) * bankroll
