"""Tests for classic chart pattern detection."""

import pytest

from chartlab.services.base import PatternDefinitionError
from chartlab.services.patterns.classic import (
    PATTERNS,
    average_slope,
    detect_classic_patterns,
    generate_rays,
    pattern_volatility,
    resolve_patterns,
)
from chartlab.services.patterns.swings import SwingPoint
from tests.helpers import swing_points


def swings(*points, strength=2):
    """SwingPoints ten bars apart from (type, price) pairs."""
    return [
        SwingPoint(index=i * 10, timestamp=1000 + i * 600, price=price, type=kind, strength=strength)
        for i, (kind, price) in enumerate(points)
    ]


class TestDetection:

    def test_head_and_shoulders(self):
        points = swings(("high", 100.0), ("low", 90.0), ("high", 110.0), ("low", 91.0), ("high", 101.0))
        detected = detect_classic_patterns(points, keys=["head_shoulders"])

        assert len(detected) == 1
        pattern = detected[0]
        assert pattern.type == "head_shoulders"
        assert (pattern.start_index, pattern.end_index) == (0, 40)
        assert pattern.price_range == (90.0, 110.0)
        # 70 + strength 4 + range 15
        assert pattern.confidence == 89.0

    def test_head_must_be_highest(self):
        points = swings(("high", 100.0), ("low", 90.0), ("high", 99.0), ("low", 91.0), ("high", 101.0))
        assert detect_classic_patterns(points, keys=["head_shoulders"]) == []

    def test_double_top(self):
        points = swings(("high", 100.0), ("low", 95.0), ("high", 100.5))
        detected = detect_classic_patterns(points)

        assert [d.type for d in detected] == ["double_top"]
        assert detected[0].confidence == 84.0
        assert detected[0].time_range == (1000, 2200)

    def test_double_top_needs_a_deep_valley(self):
        points = swings(("high", 100.0), ("low", 99.0), ("high", 100.5))
        assert detect_classic_patterns(points) == []

    def test_double_bottom(self):
        points = swings(("low", 90.0), ("high", 96.0), ("low", 90.5))
        assert [d.type for d in detect_classic_patterns(points)] == ["double_bottom"]

    def test_ascending_triangle(self):
        points = swings(("low", 90.0), ("high", 100.0), ("low", 95.0), ("high", 100.5))
        assert "ascending_triangle" in [d.type for d in detect_classic_patterns(points)]

    def test_descending_triangle(self):
        points = swings(("high", 110.0), ("low", 100.0), ("high", 105.0), ("low", 100.2))
        assert "descending_triangle" in [d.type for d in detect_classic_patterns(points)]

    def test_swing_types_must_line_up(self):
        points = swings(("low", 100.0), ("high", 95.0), ("low", 100.5))
        assert detect_classic_patterns(points, keys=["double_top"]) == []

    def test_base_confidence_is_a_floor(self):
        points = swings(("high", 100.0), ("low", 95.0), ("high", 100.5), strength=0)

        assert detect_classic_patterns(points)[0].confidence == 80.0
        assert detect_classic_patterns(points, min_confidence=85.0) == []

    def test_wave_alternates_tops_and_bottoms(self, wave_arrays):
        detected = detect_classic_patterns(swing_points(wave_arrays), wave_arrays.volumes)

        assert [(d.type, d.start_index) for d in detected] == [
            ("double_top", 10),
            ("double_bottom", 30),
            ("double_top", 50),
            ("double_bottom", 70),
        ]
        assert all(d.confidence == 95.0 for d in detected)


class TestDefinitions:

    def test_resolve_all(self):
        assert len(resolve_patterns(None)) == len(PATTERNS) == 5

    def test_resolve_unknown(self):
        with pytest.raises(PatternDefinitionError) as exc:
            resolve_patterns(["double_top", "cup_handle"])
        assert "cup_handle" in exc.value.message
        assert "double_top" in exc.value.details["available"]

    def test_definition_dict(self):
        data = PATTERNS["head_shoulders"].to_dict()
        assert data["points"] == 5
        assert data["swing_types"][2] == "high"


class TestRays:

    def test_head_and_shoulders(self):
        rays = generate_rays("head_shoulders", [100.0, 90.0, 110.0, 91.0, 101.0])
        assert rays["neckline"]["price"] == 90.5
        assert rays["target"]["price"] == 71.0

    def test_double_top(self):
        rays = generate_rays("double_top", [100.0, 95.0, 100.5])
        assert rays["support"]["price"] == 95.0
        assert rays["target"]["price"] == 89.5

    def test_ascending_triangle(self):
        rays = generate_rays("ascending_triangle", [90.0, 100.0, 95.0, 100.5])
        assert rays["resistance"]["price"] == 100.5
        assert rays["target"]["price"] == 111.0

    def test_descending_triangle(self):
        rays = generate_rays("descending_triangle", [110.0, 100.0, 105.0, 100.2])
        assert rays["support"]["price"] == 100.0
        assert rays["target"]["price"] == 90.0

    def test_custom_pattern_has_no_rays(self):
        assert generate_rays("custom", [1.0, 2.0, 3.0]) == {}


class TestMetadata:

    def test_volatility(self):
        assert pattern_volatility([90.0, 110.0]) == 10.0
        assert pattern_volatility([100.0]) == 0.0

    def test_average_slope(self):
        assert average_slope([100.0, 110.0, 105.0], [0, 10, 20]) == 0.25
        assert average_slope([100.0, 110.0], [5, 5]) == 0.0

    def test_average_slope_keeps_small_intraday_moves(self):
        # 0.2 points over 15 minutes
        assert average_slope([100.0, 100.2], [0, 900]) == pytest.approx(0.000222, abs=1e-9)
