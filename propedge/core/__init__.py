"""Core mathematics and configuration for the PropEdge prop scanner.

This package contains pure, sportsbook-agnostic building blocks:

- ``odds_math``     — odds conversion, vig removal, fair odds
- ``kelly``         — Kelly criterion sizing
- ``models``        — immutable value types shared by every stage
- ``market_config`` — tunable thresholds and sportsbook vocabulary
- ``scoring``       — swappable confidence and correlation heuristics
- ``exceptions``    — argument-level error classes

Nothing in this package imports from ``propedge.services``.
All modules are side-effect-free and unit-testable in isolation.
"""
