"""Tests for swing extraction, support/resistance and sequence matching."""

import pytest

from chartlab.services.patterns.relationships import parse_relationships
from chartlab.services.patterns.swings import (
    SwingPoint,
    extract_support_resistance_levels,
    extract_swing_points,
    find_pivots,
    find_relationship_sequences,
    pattern_confidence,
    zigzag_filter,
)
from tests.helpers import swing_points


class TestPivots:

    def test_strict_extremes_only(self):
        highs = [1.0, 2.0, 5.0, 2.0, 1.0, 3.0, 3.0, 1.0]
        lows = [h - 0.5 for h in highs]
        pivots = find_pivots(highs, lows, list(range(8)), lookback=1)

        # The flat top at 5/6 is not a strict pivot
        assert [(p.index, p.type) for p in pivots] == [(2, "high"), (4, "low")]
        assert pivots[0].strength == 1

    def test_zigzag_keeps_more_extreme_same_type(self):
        points = [
            SwingPoint(0, 0, 100.0, "high", 3),
            SwingPoint(5, 5, 104.0, "high", 3),
            SwingPoint(9, 9, 90.0, "low", 3),
        ]
        kept = zigzag_filter(points, 2.0)
        assert [(p.index, p.price) for p in kept] == [(5, 104.0), (9, 90.0)]

    def test_zigzag_drops_small_moves(self):
        points = [
            SwingPoint(0, 0, 100.0, "high", 3),
            SwingPoint(4, 4, 99.0, "low", 3),
            SwingPoint(8, 8, 95.0, "low", 3),
        ]
        kept = zigzag_filter(points, 2.0)
        # 99 is only 1% below the high, so the leg ends at 95
        assert [(p.index, p.price) for p in kept] == [(0, 100.0), (8, 95.0)]


class TestSwingExtraction:

    def test_wave_swings_alternate(self, wave_arrays):
        swings = swing_points(wave_arrays)

        assert [p.index for p in swings] == [10, 30, 50, 70, 90, 110]
        assert [p.type for p in swings] == ["high", "low"] * 3
        assert {p.price for p in swings if p.type == "high"} == {110.5}
        assert {p.price for p in swings if p.type == "low"} == {89.5}
        assert swings[0].timestamp == int(wave_arrays.timestamps[10])
        assert swings[0].volume == 1000.0

    def test_large_deviation_filters_everything_after_first(self, wave_arrays):
        swings = swing_points(wave_arrays, min_deviation_percent=50.0)
        assert len(swings) == 1

    def test_too_few_candles(self):
        assert extract_swing_points([1.0] * 9, [1.0] * 9, list(range(9)), lookback=5) == []

    def test_invalid_lookback(self, wave_arrays):
        with pytest.raises(ValueError):
            swing_points(wave_arrays, lookback=0)


class TestSupportResistance:

    def test_wave_levels(self, wave_arrays):
        levels = extract_support_resistance_levels(wave_arrays.highs, wave_arrays.lows)

        assert [(lvl.type, lvl.level, lvl.touches) for lvl in levels] == [
            ("resistance", 110.5, 3),
            ("support", 89.5, 3),
        ]
        assert levels[0].indices == [10, 50, 90]
        assert levels[0].to_dict()["strength"] == 3.6

    def test_touch_threshold(self, wave_arrays):
        assert extract_support_resistance_levels(wave_arrays.highs, wave_arrays.lows, min_touches=4) == []

    def test_short_series(self):
        assert extract_support_resistance_levels([1.0] * 5, [1.0] * 5) == []


class TestSequences:

    def test_double_top_sequences(self, wave_arrays):
        swings = swing_points(wave_arrays)
        matches = find_relationship_sequences(swings, parse_relationships(["1>2", "2<3", "1=3"]))

        assert [[p.index for p in window] for window in matches] == [[10, 30, 50], [50, 70, 90]]

    def test_not_enough_swings(self, wave_arrays):
        swings = swing_points(wave_arrays)[:2]
        assert find_relationship_sequences(swings, parse_relationships(["1>2", "2<3"])) == []

    def test_confidence(self, wave_arrays):
        window = swing_points(wave_arrays)[:3]

        # 70 + strength bonus 10 + range bonus 15
        assert pattern_confidence(window, wave_arrays.volumes) == 95.0
        assert pattern_confidence([]) == 0.0

    def test_volume_confirmation(self):
        points = [
            SwingPoint(0, 0, 100.0, "high", 1, volume=500.0),
            SwingPoint(5, 5, 99.0, "low", 1, volume=100.0),
        ]
        # 70 + strength 2 + half the points volume-confirmed
        assert pattern_confidence(points, [100.0, 100.0]) == pytest.approx(77.0)
