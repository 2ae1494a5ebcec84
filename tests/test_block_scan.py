"""Tests for the intraday block scan."""

import pytest

from chartlab.services.base import PatternDefinitionError
from chartlab.services.candles import aggregate_blocks
from chartlab.services.patterns.block_scan import alternating_points, scan_blocks
from chartlab.services.patterns.relationships import parse_relationships
from tests.helpers import block_closes, make_arrays


@pytest.fixture
def stepped_arrays():
    """Four 15-candle blocks closing at 110, 90, 110, 90."""
    return make_arrays(block_closes(110, 90, 110, 90))


class TestAlternatingPoints:

    def test_normal_and_reverse(self, stepped_arrays):
        blocks = aggregate_blocks(stepped_arrays, 0, 3, 15)

        normal = alternating_points(blocks, start_with_high=True)
        reverse = alternating_points(blocks, start_with_high=False)

        assert [p["type"] for p in normal] == ["high", "low", "high"]
        assert [p["price"] for p in normal] == [110.5, 89.5, 110.5]
        assert [p["price"] for p in reverse] == [109.5, 100.5, 99.5]
        assert [p["block_start"] for p in normal] == [0, 15, 30]


class TestScanBlocks:

    def test_double_top_windows(self, stepped_arrays):
        matches = scan_blocks(stepped_arrays, parse_relationships(["1>2", "2<3", "1=3"]))

        assert [(m.start_index, m.end_index) for m in matches] == [(0, 44), (15, 59)]
        assert all(m.orientation == "normal" and m.confidence == 1.0 for m in matches)
        assert matches[0].points[1]["index"] == 15

    def test_reverse_orientation(self, stepped_arrays):
        matches = scan_blocks(
            stepped_arrays, parse_relationships(["1>2", "2>3"]), min_confidence=1.0
        )

        assert len(matches) == 1
        assert matches[0].start_index == 0
        assert matches[0].orientation == "reverse"
        assert [p["type"] for p in matches[0].points] == ["low", "high", "low"]

    def test_partial_matches_ranked(self, stepped_arrays):
        matches = scan_blocks(
            stepped_arrays, parse_relationships(["1>2", "2>3"]), min_confidence=0.5
        )

        assert [m.confidence for m in matches] == [1.0, 0.5]
        assert [m.start_index for m in matches] == [0, 15]

    def test_normal_wins_orientation_tie(self, stepped_arrays):
        rels = parse_relationships(["1>3", "2<3"])
        blocks = aggregate_blocks(stepped_arrays, 0, 3, 15)
        reverse = [p["price"] for p in alternating_points(blocks, start_with_high=False)]

        # Reverse [109.5, 100.5, 99.5] also holds one of the two
        assert reverse == [109.5, 100.5, 99.5]
        matches = scan_blocks(stepped_arrays, rels, min_confidence=0.5)

        assert matches[0].start_index == 0
        assert matches[0].orientation == "normal"

    def test_equal_confidence_stays_chronological(self, stepped_arrays):
        matches = scan_blocks(stepped_arrays, parse_relationships(["1>3", "2<3"]), min_confidence=0.5)

        assert [m.confidence for m in matches] == [0.5, 0.5]
        assert [m.start_index for m in matches] == [0, 15]

    def test_start_index(self, stepped_arrays):
        matches = scan_blocks(
            stepped_arrays, parse_relationships(["1>2", "2<3", "1=3"]), start_index=15
        )
        assert [m.start_index for m in matches] == [15]

    def test_only_full_windows(self, stepped_arrays):
        rels = parse_relationships(["1>2", "2<3", "3>4", "4<5"])
        assert scan_blocks(stepped_arrays, rels, min_confidence=0.0) == []

    def test_point_count_below_references(self, stepped_arrays):
        with pytest.raises(PatternDefinitionError):
            scan_blocks(stepped_arrays, parse_relationships(["1>3"]), point_count=2)

    def test_requires_relationships(self, stepped_arrays):
        with pytest.raises(PatternDefinitionError):
            scan_blocks(stepped_arrays, [])

    def test_to_dict(self, stepped_arrays):
        match = scan_blocks(stepped_arrays, parse_relationships(["1>2", "2<3"]))[0]
        data = match.to_dict()

        assert data["orientation"] == "normal"
        assert len(data["points"]) == 3
        assert data["points"][2]["timestamp"] == int(stepped_arrays.timestamps[30])
