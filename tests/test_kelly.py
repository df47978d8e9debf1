"""
Tests for kelly.py

Run with: pytest tests/test_kelly.py -v
"""

import pytest

from propedge.core.exceptions import ProbabilityError
from propedge.core.kelly import (
    MAX_KELLY_FRACTION,
    fractional_kelly,
    kelly_fraction,
    kelly_to_units,
    units_to_dollars,
)


class TestKellyFraction:
    """Full Kelly sizing."""

    def test_positive_edge(self):
        """Test full Kelly for 55% at -110."""
        assert kelly_fraction(0.55, -110) == pytest.approx(0.055, abs=1e-6)

    def test_even_money(self):
        """Test full Kelly for 60% at even money."""
        assert kelly_fraction(0.60, 100) == pytest.approx(0.20)

    def test_no_edge_is_zero(self):
        """Test that a fair price gets no stake."""
        assert kelly_fraction(0.50, 100) == pytest.approx(0.0)

    def test_negative_edge_clamped(self):
        """A losing side never gets a negative stake."""
        assert kelly_fraction(0.45, -110) == 0.0

    @pytest.mark.parametrize("p", [0.0, 1.0, 1.2])
    def test_invalid_probability(self, p):
        """Test that probabilities outside (0, 1) are rejected."""
        with pytest.raises(ProbabilityError):
            kelly_fraction(p, -110)


class TestFractionalKelly:
    """Half-Kelly with a hard cap."""

    def test_default_divisor_halves(self):
        """Test that the default divisor is half-Kelly."""
        assert fractional_kelly(0.60, 100) == pytest.approx(0.10)

    def test_capped(self):
        """Test that fractional Kelly is capped at MAX_KELLY_FRACTION."""
        # Full Kelly 0.8 → half 0.4 → capped.
        assert fractional_kelly(0.90, 100) == pytest.approx(MAX_KELLY_FRACTION)

    def test_custom_divisor(self):
        """Test quarter-Kelly via a custom divisor."""
        assert fractional_kelly(0.60, 100, divisor=4.0) == pytest.approx(0.05)

    def test_non_positive_divisor(self):
        """Test that a zero divisor raises ValueError."""
        with pytest.raises(ValueError):
            fractional_kelly(0.60, 100, divisor=0.0)


class TestUnits:
    def test_fraction_to_units(self):
        """Test Kelly fraction to units conversion."""
        assert kelly_to_units(0.025) == pytest.approx(2.5)

    def test_units_to_dollars(self):
        """Test units to dollars at a $1000 bankroll."""
        assert units_to_dollars(2.5, 1000.0) == pytest.approx(25.0)
