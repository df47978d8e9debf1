"""Exception hierarchy for argument-level failures.

Record-level problems (a malformed sportsbook payload) never raise; the
normalizer drops the record.  The classes below are for programming errors
that reach a single-item API with bad arguments: they fail fast and are never
silently clamped.
"""


class PropEdgeError(Exception):
    """Base class for every error raised by ``propedge``."""


class InvalidOddsError(PropEdgeError, ValueError, ArithmeticError):
    """American odds of zero, non-finite odds, or a zero implied-probability sum."""


class ProbabilityError(PropEdgeError, ValueError):
    """A probability outside the open interval ``(0, 1)``."""


class ConsensusError(PropEdgeError, ValueError):
    """A quote group too small (or empty) to form a market consensus."""


class ParlayError(PropEdgeError, ValueError):
    """A parlay request with no legs or an unusable trial count."""
