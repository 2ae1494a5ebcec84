"""
Pattern Contracts

Input: candles or user-selected points, plus relationship strings
Output: detected patterns with points, rays and metadata
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from chartlab.core.config import settings
from chartlab.schemas.candles import Candle, to_epoch_seconds


# =============================================================================
# SHARED
# =============================================================================


class PatternPoint(BaseModel):
    """One point of a detected pattern."""

    point_number: int = Field(..., ge=1)
    index: int
    timestamp: int
    price: float
    type: str = Field(..., description="high / low")
    strength: float = 0.0


class PatternMetadata(BaseModel):
    total_points: int
    price_range: float
    time_range: int
    volatility: float = Field(..., description="Coefficient of variation of point prices, %")
    avg_slope: float = Field(..., description="Mean price change per second between points")
    symbol: Optional[str] = None
    timeframe: Optional[str] = None
    date_created: datetime


class SelectedPoint(BaseModel):
    """A point the user clicked on the chart."""

    price: float = Field(..., gt=0)
    timestamp: int
    label: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _epoch(cls, value: Any) -> int:
        return to_epoch_seconds(value)


# =============================================================================
# DETECTION (swing points)
# =============================================================================


class PatternDetectionRequest(BaseModel):
    """
    Request for pattern detection over candles.

    With `relationships`, any window of consecutive swing points satisfying
    all of them is reported. Without, the classic patterns are searched
    (restricted to `patterns` when given).
    """

    symbol: str = Field(..., min_length=1, max_length=50)
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)
    timeframe: Optional[str] = None
    patterns: list[str] = Field(default_factory=list, description="Classic pattern keys")
    relationships: list[str] = Field(default_factory=list, description="e.g. ['1>2', '2<3']")
    tolerance_percent: float = Field(
        default_factory=lambda: settings.relationship_tolerance_percent, ge=0, le=50
    )
    min_confidence: float = Field(
        default_factory=lambda: settings.pattern_min_confidence, ge=0, le=100
    )
    min_deviation_percent: float = Field(
        default_factory=lambda: settings.swing_min_deviation_percent, ge=0
    )
    lookback: int = Field(default_factory=lambda: settings.swing_lookback, ge=1, le=100)


class DetectedPatternOut(BaseModel):
    id: str
    type: str
    name: str
    confidence: float = Field(..., ge=0, le=100)
    relationships: list[str]
    points: list[PatternPoint]
    rays: dict[str, Any]
    metadata: PatternMetadata


class SwingPointOut(BaseModel):
    index: int
    timestamp: int
    price: float
    type: str
    strength: float


class SupportResistanceOut(BaseModel):
    level: float
    type: str
    touches: int
    indices: list[int]
    strength: float


class AnalysisMetadata(BaseModel):
    detection_method: str
    min_deviation_percent: float
    lookback: int
    swing_points_extracted: int
    timestamp: datetime


class PatternDetectionResponse(BaseModel):
    success: bool = True
    symbol: str
    timeframe: Optional[str] = None
    total_candles: int
    swing_points_extracted: int
    patterns_detected: int
    patterns_after_filtering: int
    min_confidence: float
    patterns: list[DetectedPatternOut]
    swing_points: list[SwingPointOut]
    support_resistance: list[SupportResistanceOut]
    analysis_metadata: AnalysisMetadata


# =============================================================================
# BLOCK SCAN (intraday blocks)
# =============================================================================


class BlockScanRequest(BaseModel):
    """Request to scan 1m candles block by block for a relationship pattern."""

    symbol: str = Field(default="UNKNOWN", max_length=50)
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)
    relationships: list[str] = Field(..., min_length=1)
    point_count: Optional[int] = Field(
        default=None, ge=2, description="Blocks per window (default: highest referenced point)"
    )
    block_size: int = Field(default_factory=lambda: settings.block_size, ge=1, le=500)
    min_confidence: float = Field(
        default_factory=lambda: settings.block_min_confidence, ge=0, le=1
    )
    equality_tolerance: float = Field(
        default_factory=lambda: settings.equality_tolerance, ge=0
    )
    start_index: Optional[int] = Field(
        default=None, ge=0, description="Explicit first candle; overrides market-open anchoring"
    )
    anchor_to_market_open: bool = True


class BlockPointOut(BaseModel):
    point_number: int
    type: str
    price: float
    index: int
    timestamp: int
    block_start: int


class BlockMatchOut(BaseModel):
    start_index: int
    end_index: int
    orientation: str
    confidence: float
    points: list[BlockPointOut]


class BlockScanResponse(BaseModel):
    symbol: str
    total_candles: int
    start_index: int
    block_size: int
    point_count: int
    relationships: list[str]
    matches: list[BlockMatchOut]
    best_match: Optional[BlockMatchOut] = None


# =============================================================================
# USER-SELECTED POINTS
# =============================================================================


class RelationshipEvaluationRequest(BaseModel):
    """Check user-selected point prices against a relationship list."""

    prices: list[float] = Field(..., min_length=2)
    relationships: list[str] = Field(..., min_length=1)
    tolerance_percent: float = Field(default=0.0, ge=0, le=50)
    abs_tolerance: float = Field(default_factory=lambda: settings.equality_tolerance, ge=0)


class RelationshipResultOut(BaseModel):
    relationship: str
    expected: str
    actual: str
    satisfied: bool
    left_price: float
    right_price: float


class RelationshipEvaluationResponse(BaseModel):
    results: list[RelationshipResultOut]
    matched: int
    total: int
    confidence: float
    matches: bool


class PatternCaptureRequest(BaseModel):
    """Turn selected chart points into a reusable pattern definition."""

    name: str = Field(default="Custom Pattern", max_length=100)
    symbol: Optional[str] = None
    timeframe: Optional[str] = None
    points: list[SelectedPoint] = Field(..., min_length=2)
    tolerance_percent: float = Field(default=0.0, ge=0, le=50)
    abs_tolerance: float = Field(default_factory=lambda: settings.equality_tolerance, ge=0)


class CapturedPoint(BaseModel):
    point_number: int
    price: float
    timestamp: int
    relative_price: float = Field(..., ge=0, le=1)
    relative_time: float = Field(..., ge=0, le=1)
    label: str


class PatternCaptureResponse(BaseModel):
    name: str
    points: list[CapturedPoint]
    relationships: list[str]
    metadata: PatternMetadata


class PatternDefinitionOut(BaseModel):
    key: str
    name: str
    swing_types: list[str]
    points: int
    base_confidence: float
    description: str

