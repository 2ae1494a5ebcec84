"""
Pattern Service Implementation

Relationship-based and classic pattern detection over candles, block scans
over intraday data, and evaluation/capture of user-selected points.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from chartlab.core.market_hours import market_open_index
from chartlab.schemas.patterns import (
    AnalysisMetadata,
    BlockScanRequest,
    BlockScanResponse,
    CapturedPoint,
    DetectedPatternOut,
    PatternCaptureRequest,
    PatternCaptureResponse,
    PatternDefinitionOut,
    PatternDetectionRequest,
    PatternDetectionResponse,
    PatternMetadata,
    PatternPoint,
    RelationshipEvaluationRequest,
    RelationshipEvaluationResponse,
)
from chartlab.services.base import BaseService, InsufficientDataError, ValidationError
from chartlab.services.candles import to_arrays
from chartlab.services.patterns.block_scan import scan_blocks
from chartlab.services.patterns.classic import (
    PATTERNS,
    DetectedPattern,
    average_slope,
    detect_classic_patterns,
    generate_rays,
    pattern_volatility,
)
from chartlab.services.patterns.relationships import (
    derive_relationships,
    describe,
    evaluate_relationships,
    normalize_points,
    parse_relationships,
    required_points,
)
from chartlab.services.patterns.swings import (
    SwingPoint,
    extract_support_resistance_levels,
    extract_swing_points,
    find_relationship_sequences,
    pattern_confidence,
)

logger = logging.getLogger(__name__)

MIN_DETECTION_CANDLES = 10
MIN_SWING_POINTS = 3
RELATIONSHIP_PATTERN = "relationship_sequence"


def build_metadata(
    prices: Sequence[float],
    timestamps: Sequence[int],
    symbol: Optional[str],
    timeframe: Optional[str],
) -> PatternMetadata:
    return PatternMetadata(
        total_points=len(prices),
        price_range=round(max(prices) - min(prices), 4),
        time_range=max(timestamps) - min(timestamps),
        volatility=pattern_volatility(prices),
        avg_slope=average_slope(prices, timestamps),
        symbol=symbol,
        timeframe=timeframe,
        date_created=datetime.now(timezone.utc),
    )


class PatternService(BaseService[PatternDetectionRequest, PatternDetectionResponse]):
    """
    Pattern Service.

    Detection runs on ZigZag swing points, so noise below the minimum
    deviation never forms a pattern point.
    """

    @property
    def name(self) -> str:
        return "PatternService"

    async def execute(self, input_data: PatternDetectionRequest) -> PatternDetectionResponse:
        return await self.detect(input_data)

    async def detect(self, request: PatternDetectionRequest) -> PatternDetectionResponse:
        """Extract swing points and match relationships or classic patterns on them."""
        if len(request.candles) < MIN_DETECTION_CANDLES:
            raise InsufficientDataError(
                self.name,
                f"Need at least {MIN_DETECTION_CANDLES} candles, got {len(request.candles)}",
            )

        a = to_arrays(request.candles)
        swings = extract_swing_points(
            a.highs,
            a.lows,
            a.timestamps,
            min_deviation_percent=request.min_deviation_percent,
            lookback=request.lookback,
            volumes=a.volumes,
        )
        if len(swings) < MIN_SWING_POINTS:
            raise InsufficientDataError(
                self.name,
                f"Insufficient swing points: found {len(swings)}, need at least {MIN_SWING_POINTS}",
                {"candles": len(a), "min_deviation_percent": request.min_deviation_percent},
            )

        if request.relationships:
            relationships = parse_relationships(request.relationships)
            windows = find_relationship_sequences(swings, relationships, request.tolerance_percent)
            detected = [
                DetectedPattern(
                    RELATIONSHIP_PATTERN,
                    "Relationship Sequence",
                    window,
                    round(pattern_confidence(window, a.volumes), 2),
                )
                for window in windows
            ]
            method = "Relationship Sequence"
        else:
            detected = detect_classic_patterns(
                swings, a.volumes, request.patterns, min_confidence=0
            )
            method = "ZigZag Swing Points"

        filtered = [d for d in detected if d.confidence >= request.min_confidence]
        patterns = [self._format_pattern(d, request) for d in filtered]
        levels = extract_support_resistance_levels(a.highs, a.lows)

        logger.info(
            "Pattern detection for %s: %d candles -> %d swings -> %d patterns above %.0f%% confidence",
            request.symbol, len(a), len(swings), len(filtered), request.min_confidence,
        )

        return PatternDetectionResponse(
            symbol=request.symbol,
            timeframe=request.timeframe,
            total_candles=len(a),
            swing_points_extracted=len(swings),
            patterns_detected=len(detected),
            patterns_after_filtering=len(filtered),
            min_confidence=request.min_confidence,
            patterns=patterns,
            swing_points=[s.to_dict() for s in swings],
            support_resistance=[lvl.to_dict() for lvl in levels],
            analysis_metadata=AnalysisMetadata(
                detection_method=method,
                min_deviation_percent=request.min_deviation_percent,
                lookback=request.lookback,
                swing_points_extracted=len(swings),
                timestamp=datetime.now(timezone.utc),
            ),
        )

    def _format_pattern(
        self, pattern: DetectedPattern, request: PatternDetectionRequest
    ) -> DetectedPatternOut:
        prices = [p.price for p in pattern.points]
        timestamps = [p.timestamp for p in pattern.points]

        if pattern.type == RELATIONSHIP_PATTERN:
            relationships = list(request.relationships)
        else:
            relationships = describe(derive_relationships(prices, request.tolerance_percent))

        return DetectedPatternOut(
            id=f"{pattern.type}_{pattern.start_index}_{pattern.end_index}",
            type=pattern.type,
            name=pattern.name,
            confidence=pattern.confidence,
            relationships=relationships,
            points=[self._point(i, p) for i, p in enumerate(pattern.points, start=1)],
            rays=generate_rays(pattern.type, prices),
            metadata=build_metadata(prices, timestamps, request.symbol, request.timeframe),
        )

    @staticmethod
    def _point(number: int, swing: SwingPoint) -> PatternPoint:
        return PatternPoint(
            point_number=number,
            index=swing.index,
            timestamp=swing.timestamp,
            price=swing.price,
            type=swing.type,
            strength=swing.strength,
        )

    async def block_scan(self, request: BlockScanRequest) -> BlockScanResponse:
        """Scan candles block by block, anchored at the session open by default."""
        relationships = parse_relationships(request.relationships)
        a = to_arrays(request.candles)

        if request.start_index is not None:
            start = request.start_index
        elif request.anchor_to_market_open:
            start = market_open_index(a.timestamps.tolist())
        else:
            start = 0

        if start >= len(a):
            raise ValidationError(
                self.name, f"start_index {start} is beyond the last candle ({len(a) - 1})"
            )

        point_count = request.point_count or required_points(relationships)
        matches = scan_blocks(
            a,
            relationships,
            point_count=point_count,
            block_size=request.block_size,
            start_index=start,
            min_confidence=request.min_confidence,
            abs_tolerance=request.equality_tolerance,
        )
        results = [m.to_dict() for m in matches]

        return BlockScanResponse(
            symbol=request.symbol,
            total_candles=len(a),
            start_index=start,
            block_size=request.block_size,
            point_count=point_count,
            relationships=describe(relationships),
            matches=results,
            best_match=results[0] if results else None,
        )

    async def evaluate(
        self, request: RelationshipEvaluationRequest
    ) -> RelationshipEvaluationResponse:
        """Check user-selected point prices against relationships."""
        relationships = parse_relationships(request.relationships)
        evaluation = evaluate_relationships(
            request.prices, relationships, request.tolerance_percent, request.abs_tolerance
        )
        return RelationshipEvaluationResponse(**evaluation.to_dict())

    async def capture(self, request: PatternCaptureRequest) -> PatternCaptureResponse:
        """Derive relationships from selected points and normalize them."""
        raw = [p.model_dump() for p in request.points]
        normalized = normalize_points(raw)

        prices = [p.price for p in request.points]
        timestamps = [p.timestamp for p in request.points]
        relationships = derive_relationships(
            prices, request.tolerance_percent, request.abs_tolerance
        )

        logger.info("Captured pattern '%s' with %d points", request.name, len(prices))
        return PatternCaptureResponse(
            name=request.name,
            points=[CapturedPoint(**p) for p in normalized],
            relationships=describe(relationships),
            metadata=build_metadata(prices, timestamps, request.symbol, request.timeframe),
        )

    def definitions(self) -> list[PatternDefinitionOut]:
        return [PatternDefinitionOut(**d.to_dict()) for d in PATTERNS.values()]

    async def health_check(self) -> bool:
        return True


# Singleton instance
_service_instance: Optional[PatternService] = None


def get_pattern_service() -> PatternService:
    """Get or create pattern service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = PatternService()
    return _service_instance
