"""
Tests for normalizer.py

Run with: pytest tests/test_normalizer.py -v
"""

from datetime import datetime, timezone

import pytest

from propedge.core.models import NormalizedProp
from propedge.services.normalizer import (
    OddsNormalizer,
    SportsbookFormat,
    parse_american_odds,
    player_slug,
)

FIXED_NOW = datetime(2026, 1, 15, 19, 0, tzinfo=timezone.utc)


def _dfs(**overrides):
    raw = {
        "player": {"id": "pp-2544", "name": "LeBron James"},
        "league": "NBA",
        "stat_type": "Points",
        "line_score": 24.5,
        "odds": {"over": -120, "under": 100},
    }
    raw.update(overrides)
    return raw


def _offer(label, over_odds, under_odds, line):
    return {
        "label": label,
        "outcomes": [
            {"label": "Over", "oddsAmerican": over_odds, "line": line},
            {"label": "Under", "oddsAmerican": under_odds, "line": line},
        ],
    }


def _exchange(over_odds="−115", under_odds="-105", line="24.5", offers=None):
    return {
        "participant": {"participantId": "dk-2544", "name": "LeBron James"},
        "subcategoryId": 4,
        "offers": offers if offers is not None else [_offer("Points", over_odds, under_odds, line)],
    }


def _aggregator():
    return {
        "sport_key": "basketball_nba",
        "commence_time": "2026-01-15T19:00:00Z",
        "bookmakers": [
            {
                "key": "fanduel",
                "title": "FanDuel",
                "markets": [
                    {
                        "key": "player_points",
                        "outcomes": [
                            {"name": "Over", "description": "LeBron James", "price": 100, "point": 24.5},
                            {"name": "Under", "description": "LeBron James", "price": -120, "point": 24.5},
                            {"name": "Over", "description": "Anthony Davis", "price": -110, "point": 26.5},
                            {"name": "Under", "description": "Anthony Davis", "price": -110, "point": 26.5},
                        ],
                    }
                ],
            },
            {
                "key": "betmgm",
                "markets": [
                    {
                        "key": "player_points",
                        "outcomes": [
                            {"name": "Over", "description": "LeBron James", "price": -110, "point": 24.5},
                            {"name": "Under", "description": "LeBron James", "price": -110, "point": 24.5},
                        ],
                    }
                ],
            },
        ],
    }


@pytest.fixture
def normalizer():
    return OddsNormalizer(clock=lambda: FIXED_NOW)


class TestDFSPayload:
    """PrizePicks-style pick-em records."""

    def test_basic(self, normalizer):
        """Test normalizing a pick-em record."""
        prop = normalizer.normalize(_dfs())
        assert prop == NormalizedProp(
            player_id="pp-2544",
            player_name="LeBron James",
            sport="NBA",
            stat_type="Points",
            line=24.5,
            over_odds=-120,
            under_odds=100,
            sportsbook="PrizePicks",
            timestamp=FIXED_NOW.isoformat(),
        )

    def test_missing_odds_defaults_to_pickem(self, normalizer):
        """Test that missing odds fall back to -110 both ways."""
        raw = _dfs()
        del raw["odds"]
        prop = normalizer.normalize(raw)
        assert prop.over_odds == -110
        assert prop.under_odds == -110

    def test_partial_odds_dropped(self, normalizer):
        """Test that one-sided odds drop the record."""
        assert normalizer.normalize(_dfs(odds={"over": -120})) is None

    def test_missing_player_id(self, normalizer):
        """Test that a record without a player id is dropped."""
        assert normalizer.normalize(_dfs(player={"name": "LeBron James"})) is None

    def test_unknown_league_passes_through(self, normalizer):
        """Test that unmapped leagues keep their raw name."""
        assert normalizer.normalize(_dfs(league="CBB")).sport == "CBB"

    def test_stat_alias(self, normalizer):
        """Test that stat aliases map to canonical names."""
        assert normalizer.normalize(_dfs(stat_type="Pts+Reb+Ast")).stat_type == "PRA"


class TestExchangePayload:
    """DraftKings-style offer trees with string odds."""

    def test_basic(self, normalizer):
        """Test normalizing a single Points offer."""
        prop = normalizer.normalize(_exchange())
        assert prop.player_id == "dk-2544"
        assert prop.sport == "NBA"
        assert prop.stat_type == "Points"
        assert prop.line == pytest.approx(24.5)
        assert prop.over_odds == -115
        assert prop.under_odds == -105
        assert prop.sportsbook == "DraftKings"

    def test_plus_sign(self, normalizer):
        """Test that '+120' parses as positive odds."""
        assert normalizer.normalize(_exchange(over_odds="+120")).over_odds == 120

    def test_unparsable_odds(self, normalizer):
        """Test that a lone offer with bad odds yields nothing."""
        assert normalizer.normalize(_exchange(over_odds="EVEN?")) is None

    def test_offer_without_both_sides_skipped(self, normalizer):
        """Test that milestone offers are skipped."""
        raw = _exchange()
        raw["offers"].insert(
            0,
            {"label": "Points Milestones", "outcomes": [{"label": "25+"}, {"label": "30+"}]},
        )
        assert normalizer.normalize(raw).over_odds == -115

    def test_every_offer_extracted(self, normalizer):
        """Test that each over/under offer becomes its own prop."""
        raw = _exchange(
            offers=[
                _offer("Points", "-115", "-105", "24.5"),
                _offer("Rebounds", "+105", "-125", "7.5"),
            ]
        )
        props = normalizer.normalize_many(raw)
        assert [p.stat_type for p in props] == ["Points", "Rebounds"]
        rebounds = props[1]
        assert rebounds.line == pytest.approx(7.5)
        assert rebounds.over_odds == 105
        assert rebounds.under_odds == -125
        assert rebounds.player_id == "dk-2544"

    def test_bad_offer_does_not_hide_later_offers(self, normalizer):
        """Test that an unparsable offer is skipped and later offers survive."""
        raw = _exchange(
            offers=[
                _offer("Points", "N/A", "-105", "24.5"),
                _offer("Rebounds", "+105", "-125", "7.5"),
            ]
        )
        props = normalizer.normalize_many(raw)
        assert len(props) == 1
        assert props[0].stat_type == "Rebounds"
        assert normalizer.normalize(raw).stat_type == "Rebounds"

    def test_batch_counts_every_offer(self, normalizer):
        """Test that normalize_batch keeps all offers from one payload."""
        raw = _exchange(
            offers=[
                _offer("Points", "-115", "-105", "24.5"),
                _offer("Assists", "-110", "-110", "8.5"),
                _offer("Rebounds", "+105", "-125", "7.5"),
            ]
        )
        assert len(normalizer.normalize_batch([raw])) == 3


class TestAggregatorPayload:
    """The Odds API event odds, one prop per book × market × player."""

    def test_normalize_many(self, normalizer):
        """Test one prop per book, market and player."""
        props = normalizer.normalize_many(_aggregator())
        assert len(props) == 3
        assert {p.sportsbook for p in props} == {"FanDuel", "BetMGM"}

        lebron_fd = props[0]
        assert lebron_fd.player_id == "lebron-james"
        assert lebron_fd.stat_type == "Points"
        assert lebron_fd.sport == "NBA"
        assert lebron_fd.over_odds == 100
        assert lebron_fd.under_odds == -120
        assert lebron_fd.timestamp == "2026-01-15T19:00:00Z"

    def test_normalize_returns_first(self, normalizer):
        """Test that normalize returns the first prop."""
        assert normalizer.normalize(_aggregator()).player_name == "LeBron James"

    def test_book_name_from_key(self, normalizer):
        """Test that a missing title falls back to the book key."""
        props = normalizer.normalize_many(_aggregator())
        assert props[-1].sportsbook == "BetMGM"

    def test_mismatched_lines_skipped(self, normalizer):
        """Test that an over/under pair on different lines is skipped."""
        raw = _aggregator()
        outcomes = raw["bookmakers"][0]["markets"][0]["outcomes"]
        outcomes[1]["point"] = 25.5
        props = normalizer.normalize_many(raw)
        assert [p.player_name for p in props] == ["Anthony Davis", "LeBron James"]

    def test_missing_commence_time_uses_clock(self, normalizer):
        """Test that the clock stamps payloads without a start time."""
        raw = _aggregator()
        del raw["commence_time"]
        assert normalizer.normalize(raw).timestamp == FIXED_NOW.isoformat()


class TestDispatch:
    """Format hints and structural detection."""

    def test_hint_aliases(self):
        """Test sportsbook hint aliases."""
        assert SportsbookFormat.from_hint("PrizePicks") is SportsbookFormat.DFS
        assert SportsbookFormat.from_hint("draftkings") is SportsbookFormat.EXCHANGE
        assert SportsbookFormat.from_hint("the_odds_api") is SportsbookFormat.AGGREGATOR
        assert SportsbookFormat.from_hint(SportsbookFormat.DFS) is SportsbookFormat.DFS
        assert SportsbookFormat.from_hint("bovada") is None

    def test_hint_used(self, normalizer):
        """Test that a matching hint picks the adapter."""
        assert normalizer.normalize(_exchange(), "draftkings").sportsbook == "DraftKings"

    def test_wrong_hint_falls_back_to_detection(self, normalizer):
        """Test that a wrong hint falls back to detection."""
        assert normalizer.normalize(_exchange(), "prizepicks").sportsbook == "DraftKings"

    def test_unknown_hint_falls_back_to_detection(self, normalizer):
        """Test that an unknown hint falls back to detection."""
        assert normalizer.normalize(_dfs(), "bovada").sportsbook == "PrizePicks"

    def test_unrecognised_shape(self, normalizer):
        """Test that an unknown payload shape yields nothing."""
        assert normalizer.normalize({"foo": 1}) is None

    def test_non_object(self, normalizer):
        """Test that non-mapping payloads yield nothing."""
        assert normalizer.normalize(["not", "a", "payload"]) is None
        assert normalizer.normalize(None) is None


class TestBatch:
    def test_bad_record_dropped(self, normalizer):
        """Test that one bad record does not sink the batch."""
        raws = [_dfs(), _dfs(player={"name": "No Id"}), _exchange(), _aggregator()]
        props = normalizer.normalize_batch(raws)
        assert len(props) == 5
        assert all(normalizer.validate(p) for p in props)

    def test_empty(self, normalizer):
        """Test an empty batch."""
        assert normalizer.normalize_batch([]) == []


class TestValidate:
    def _prop(self, **overrides):
        fields = dict(
            player_id="lebron",
            player_name="LeBron James",
            sport="NBA",
            stat_type="Points",
            line=24.5,
            over_odds=-110,
            under_odds=-110,
            sportsbook="FanDuel",
            timestamp="2026-01-15T19:00:00Z",
        )
        fields.update(overrides)
        return NormalizedProp(**fields)

    def test_valid(self):
        """Test a well-formed prop."""
        assert OddsNormalizer.validate(self._prop())

    def test_zero_odds(self):
        """Test that zero odds are invalid."""
        assert not OddsNormalizer.validate(self._prop(over_odds=0))

    def test_blank_name(self):
        """Test that a blank player name is invalid."""
        assert not OddsNormalizer.validate(self._prop(player_name="  "))

    def test_non_finite_line(self):
        """Test that a NaN line is invalid."""
        assert not OddsNormalizer.validate(self._prop(line=float("nan")))

    def test_bad_timestamp(self):
        """Test that a non-ISO timestamp is invalid."""
        assert not OddsNormalizer.validate(self._prop(timestamp="tonight"))

    def test_filter_valid(self, normalizer):
        """Test that filter_valid keeps only valid props."""
        props = [self._prop(), self._prop(under_odds=0)]
        assert normalizer.filter_valid(props) == [props[0]]


class TestParsing:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (-110, -110),
            ("+120", 120),
            ("−115", -115),
            (" -105 ", -105),
            (150.0, 150),
        ],
    )
    def test_american_odds(self, raw, expected):
        """Test parsing of numeric and string odds."""
        assert parse_american_odds(raw) == expected

    @pytest.mark.parametrize("raw", [0, "0", "abc", "", None, True, 110.5, float("inf")])
    def test_american_odds_rejected(self, raw):
        """Test that unusable odds parse to None."""
        assert parse_american_odds(raw) is None

    def test_player_slug(self):
        """Test player name slugging."""
        assert player_slug(" LeBron  James ") == "lebron-james"
