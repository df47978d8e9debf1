"""
Tests for market_config.py

Run with: pytest tests/test_market_config.py -v
"""

import os
from dataclasses import replace
from unittest.mock import patch

import pytest

from propedge.core.market_config import (
    AGGREGATOR_MARKETS,
    DEFAULT_CORRELATED_STATS,
    MarketConfig,
    lookup,
    parse_correlated_stats,
)


class TestDefaults:
    def test_default_values(self):
        """Test the production defaults."""
        cfg = MarketConfig()
        assert cfg.min_consensus_books == 2
        assert cfg.confidence_base == pytest.approx(0.5)
        assert cfg.confidence_step == pytest.approx(0.1)
        assert cfg.confidence_cap == pytest.approx(0.95)
        assert cfg.strong_edge_pct == pytest.approx(5.0)
        assert cfg.moderate_edge_pct == pytest.approx(2.0)
        assert cfg.pickem_default_odds == -110
        assert cfg.correlated_stats == DEFAULT_CORRELATED_STATS

    def test_frozen(self):
        """Test that the config cannot be mutated in place."""
        cfg = MarketConfig()
        with pytest.raises(Exception):
            cfg.min_consensus_books = 5

    def test_replace(self):
        """Test single-field overrides via dataclasses.replace."""
        cfg = replace(MarketConfig(), min_consensus_books=3)
        assert cfg.min_consensus_books == 3


class TestValidation:
    def test_min_books_at_least_one(self):
        """Test that min_consensus_books below 1 is rejected."""
        with pytest.raises(ValueError):
            MarketConfig(min_consensus_books=0)

    def test_moderate_not_above_strong(self):
        """Test that the Moderate cut-off cannot exceed Strong."""
        with pytest.raises(ValueError):
            MarketConfig(strong_edge_pct=2.0, moderate_edge_pct=3.0)

    def test_pickem_odds_non_zero(self):
        """Test that zero pick-em odds are rejected."""
        with pytest.raises(ValueError):
            MarketConfig(pickem_default_odds=0)


class TestFromEnv:
    """Environment overrides."""

    def test_empty_environment_gives_defaults(self):
        """Test that no variables means default config."""
        assert MarketConfig.from_env({}) == MarketConfig()

    def test_overrides(self):
        """Test that recognised variables override defaults."""
        cfg = MarketConfig.from_env(
            {
                "MIN_CONSENSUS_BOOKS": "3",
                "STRONG_EDGE_PCT": "6.5",
                "PICKEM_DEFAULT_ODDS": "-119",
                "PARLAY_MC_TRIALS": "5000",
            }
        )
        assert cfg.min_consensus_books == 3
        assert cfg.strong_edge_pct == pytest.approx(6.5)
        assert cfg.pickem_default_odds == -119
        assert cfg.mc_trials == 5000

    def test_reads_os_environ(self):
        """Test that os.environ is read when no mapping is passed."""
        with patch.dict(os.environ, {"CONFIDENCE_CAP": "0.9"}):
            cfg = MarketConfig.from_env()
        assert cfg.confidence_cap == pytest.approx(0.9)

    def test_correlated_stats_appended(self):
        """Test that CORRELATED_STATS entries extend the built-in table."""
        cfg = MarketConfig.from_env(
            {"CORRELATED_STATS": '{"Rushing Yards": ["Touchdowns"]}'}
        )
        assert cfg.correlated_stats[: len(DEFAULT_CORRELATED_STATS)] == DEFAULT_CORRELATED_STATS
        anchor, partners, _ = cfg.correlated_stats[-1]
        assert anchor == "Rushing Yards"
        assert partners == frozenset({"Touchdowns"})

    def test_invalid_value_raises(self):
        """Test that a non-numeric override raises ValueError."""
        with pytest.raises(ValueError):
            MarketConfig.from_env({"MIN_CONSENSUS_BOOKS": "two"})


class TestParseCorrelatedStats:
    def test_blank(self):
        """Test that blank input yields no entries."""
        assert parse_correlated_stats("") == ()
        assert parse_correlated_stats("   ") == ()

    def test_not_an_object(self):
        """Test that a JSON list is rejected."""
        with pytest.raises(ValueError):
            parse_correlated_stats('["Points"]')

    def test_partners_must_be_strings(self):
        """Test that partners must be a list of strings."""
        with pytest.raises(ValueError):
            parse_correlated_stats('{"PRA": "Points"}')

    def test_malformed_json(self):
        """Test that malformed JSON raises ValueError."""
        with pytest.raises(ValueError):
            parse_correlated_stats("{")


class TestLookup:
    def test_known_key(self):
        """Test mapping a known market key."""
        assert lookup(AGGREGATOR_MARKETS, "player_points") == "Points"

    def test_unknown_key_passes_through(self):
        """Test that unknown keys come back unchanged."""
        assert lookup(AGGREGATOR_MARKETS, "player_turnovers") == "player_turnovers"
