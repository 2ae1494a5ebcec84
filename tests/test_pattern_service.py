"""Tests for the pattern service."""

import pytest

from chartlab.schemas.patterns import (
    BlockScanRequest,
    PatternCaptureRequest,
    PatternDetectionRequest,
    RelationshipEvaluationRequest,
)
from chartlab.services.base import InsufficientDataError, PatternDefinitionError, ValidationError
from chartlab.services.patterns import get_pattern_service
from tests.helpers import block_closes, make_candles


@pytest.fixture
def service():
    return get_pattern_service()


class TestDetect:

    async def test_classic_patterns_on_wave(self, service, wave_candles):
        response = await service.execute(
            PatternDetectionRequest(symbol="NIFTY", candles=wave_candles, timeframe="1m")
        )

        assert response.total_candles == 120
        assert response.swing_points_extracted == 6
        assert response.patterns_after_filtering == 4
        assert len(response.support_resistance) == 2
        assert response.analysis_metadata.detection_method == "ZigZag Swing Points"

        top = response.patterns[0]
        assert top.id == "double_top_10_50"
        assert top.relationships == ["1>2", "2<3", "1=3"]
        assert [p.point_number for p in top.points] == [1, 2, 3]
        assert top.rays["target"]["price"] == 68.5
        assert top.metadata.time_range == 40 * 60
        assert top.metadata.price_range == 21.0
        assert top.metadata.symbol == "NIFTY"

    async def test_restrict_to_pattern_keys(self, service, wave_candles):
        response = await service.detect(
            PatternDetectionRequest(symbol="NIFTY", candles=wave_candles, patterns=["double_bottom"])
        )
        assert {p.type for p in response.patterns} == {"double_bottom"}

    async def test_relationship_sequences(self, service, wave_candles):
        response = await service.detect(
            PatternDetectionRequest(
                symbol="NIFTY", candles=wave_candles, relationships=["1>2", "2<3", "1=3"]
            )
        )

        assert [p.id for p in response.patterns] == [
            "relationship_sequence_10_50",
            "relationship_sequence_50_90",
        ]
        assert response.patterns[0].relationships == ["1>2", "2<3", "1=3"]
        assert response.patterns[0].rays == {}
        assert response.analysis_metadata.detection_method == "Relationship Sequence"

    async def test_min_confidence_filters(self, service, wave_candles):
        response = await service.detect(
            PatternDetectionRequest(symbol="NIFTY", candles=wave_candles, min_confidence=96)
        )
        assert response.patterns_detected == 4
        assert response.patterns_after_filtering == 0

    async def test_bad_relationship(self, service, wave_candles):
        with pytest.raises(PatternDefinitionError):
            await service.detect(
                PatternDetectionRequest(symbol="NIFTY", candles=wave_candles, relationships=["1>>2"])
            )

    async def test_too_few_candles(self, service):
        with pytest.raises(InsufficientDataError):
            await service.detect(
                PatternDetectionRequest(symbol="NIFTY", candles=make_candles([100.0] * 9))
            )

    async def test_too_few_swings(self, service):
        with pytest.raises(InsufficientDataError) as exc:
            await service.detect(
                PatternDetectionRequest(symbol="NIFTY", candles=make_candles([100.0] * 40))
            )
        assert exc.value.details["candles"] == 40


class TestBlockScan:

    async def test_anchors_to_market_open(self, service):
        # 15 pre-open candles from 09:00, then the session blocks
        candles = make_candles(block_closes(100, 110, 90, 110, 90))
        response = await service.block_scan(
            BlockScanRequest(candles=candles, relationships=["1>2", "2<3", "1=3"])
        )

        assert response.start_index == 15
        assert response.point_count == 3
        assert [m.start_index for m in response.matches] == [15, 30]
        assert response.best_match.start_index == 15

    async def test_explicit_start_overrides_anchor(self, service):
        candles = make_candles(block_closes(100, 110, 90, 110, 90))
        response = await service.block_scan(
            BlockScanRequest(candles=candles, relationships=["1>2", "2<3", "1=3"], start_index=30)
        )
        assert [m.start_index for m in response.matches] == [30]

    async def test_no_match(self, service):
        candles = make_candles(block_closes(100, 100, 100, 100))
        response = await service.block_scan(
            BlockScanRequest(candles=candles, relationships=["1=2", "2=3"], anchor_to_market_open=False)
        )

        assert response.matches == []
        assert response.best_match is None

    async def test_start_beyond_data(self, service):
        with pytest.raises(ValidationError):
            await service.block_scan(
                BlockScanRequest(
                    candles=make_candles([100.0] * 10), relationships=["1>2"], start_index=10
                )
            )


class TestUserPoints:

    async def test_evaluate(self, service):
        response = await service.evaluate(
            RelationshipEvaluationRequest(prices=[110.0, 100.0, 120.0], relationships=["1>2", "2>3"])
        )

        assert response.matched == 1
        assert response.confidence == 0.5
        assert response.matches is False
        assert response.results[1].actual == "<"

    async def test_capture(self, service):
        response = await service.capture(
            PatternCaptureRequest(
                name="Cup",
                symbol="NIFTY",
                points=[
                    {"price": 100.0, "timestamp": "2024-01-15T04:00:00Z"},
                    {"price": 110.0, "timestamp": "2024-01-15T04:10:00Z", "label": "Rim"},
                    {"price": 105.0, "timestamp": "2024-01-15T04:20:00Z"},
                ],
            )
        )

        assert response.relationships == ["1<2", "2>3", "1<3"]
        assert [p.relative_price for p in response.points] == [0.0, 1.0, 0.5]
        assert [p.label for p in response.points] == ["P1", "Rim", "P3"]
        assert response.metadata.time_range == 1200
        assert response.metadata.total_points == 3

    def test_definitions(self, service):
        keys = [d.key for d in service.definitions()]
        assert keys == [
            "head_shoulders",
            "double_top",
            "double_bottom",
            "ascending_triangle",
            "descending_triangle",
        ]

    async def test_health(self, service):
        assert await service.health_check() is True
