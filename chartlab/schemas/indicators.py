"""
Indicator Contracts

Input: candles + indicator specs
Output: aligned indicator series, or a latest-bar IndicatorOutput snapshot
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from chartlab.core.config import settings
from chartlab.schemas.candles import Candle, Timeframe


# =============================================================================
# ENUMS
# =============================================================================


class TrendDirection(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    SIDEWAYS = "SIDEWAYS"


class VolatilityZone(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class PositionSizingMethod(str, Enum):
    ATR = "ATR"
    PERCENT_RISK = "PERCENT_RISK"
    FIXED = "FIXED"


# =============================================================================
# INPUT: Series requests
# =============================================================================


class IndicatorSpec(BaseModel):
    """One indicator to compute, e.g. {"key": "ema", "params": {"period": 50}}."""

    key: str = Field(..., description="Catalog key (see /indicators/catalog)")
    params: dict[str, Any] = Field(default_factory=dict)
    alias: Optional[str] = Field(
        default=None,
        description="Name for this result; defaults to key plus non-default params",
    )


class IndicatorRequest(BaseModel):
    """
    Request for indicator series.
    Sent by: Dashboard chart
    Received by: Indicator Service
    """

    symbol: str = Field(default="UNKNOWN", max_length=50)
    timeframe: Timeframe = Timeframe.M15
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)
    indicators: list[IndicatorSpec] = Field(
        default_factory=list,
        description="Indicators to compute (default: EMA 9/21/50, SMA 20, Bollinger, RSI, MACD)",
    )


class SnapshotRequest(BaseModel):
    """Request for a latest-bar indicator snapshot."""

    symbol: str = Field(default="UNKNOWN", max_length=50)
    candles: list[Candle] = Field(..., min_length=20, max_length=settings.max_candles)
    portfolio_value: Optional[float] = Field(default=None, gt=0)
    risk_percent: float = Field(default=1.0, gt=0, le=100)


class ChartDataRequest(BaseModel):
    """Request for chart-ready candles, overlays and panels."""

    symbol: str = Field(default="UNKNOWN", max_length=50)
    timeframe: Timeframe = Timeframe.M15
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)


# =============================================================================
# OUTPUT: Series
# =============================================================================


class IndicatorSeries(BaseModel):
    """All output series of one computed indicator."""

    key: str
    name: str
    params: dict[str, Any]
    overlay: bool
    values: dict[str, list[Optional[float]]] = Field(
        ..., description="Output name -> values aligned with timestamps (null during warm-up)"
    )


class IndicatorSeriesResponse(BaseModel):
    """Indicator series aligned with the request candles."""

    symbol: str
    timeframe: Timeframe
    timestamps: list[int]
    indicators: list[IndicatorSeries]


# =============================================================================
# OUTPUT: Snapshot Components
# =============================================================================


class TrendIndicators(BaseModel):
    """Trend-following indicators."""

    ema_9: float
    ema_21: float
    ema_50: float
    ema_200: float
    sma_20: float
    sma_50: float
    sma_200: float
    trend_direction: TrendDirection
    trend_strength: float = Field(..., ge=0, le=100, description="ADX-based strength")
    adx: Optional[float] = None
    plus_di: Optional[float] = None
    minus_di: Optional[float] = None
    psar: Optional[float] = None
    psar_trend: Optional[TrendDirection] = None


class MACDData(BaseModel):
    """MACD indicator values."""

    macd_line: float
    signal_line: float
    histogram: float
    crossover: Optional[SignalType] = None


class StochasticData(BaseModel):
    """Stochastic oscillator values."""

    k: float
    d: float
    zone: str = Field(..., description="OVERBOUGHT / OVERSOLD / NEUTRAL")


class MomentumIndicators(BaseModel):
    """Momentum indicators."""

    rsi_14: float = Field(..., ge=0, le=100)
    rsi_divergence: Optional[SignalType] = None
    macd: MACDData
    stochastic: Optional[StochasticData] = None
    cci: Optional[float] = None
    mfi: Optional[float] = Field(default=None, ge=0, le=100)
    williams_r: Optional[float] = Field(default=None, ge=-100, le=0)
    roc: Optional[float] = None


class BollingerBandsData(BaseModel):
    """Bollinger Bands values."""

    upper: float
    middle: float
    lower: float
    bandwidth: float = Field(..., ge=0, description="Band width as ratio")
    percent_b: float = Field(..., description="Price position within bands (0-1)")


class VolatilityIndicators(BaseModel):
    """Volatility indicators."""

    atr_14: float = Field(..., ge=0)
    atr_percent: float = Field(..., ge=0, description="ATR as % of price")
    bollinger_bands: BollingerBandsData
    historical_volatility: Optional[float] = None


class VolumeIndicators(BaseModel):
    """Volume-based indicators."""

    current_volume: float
    avg_volume_20: float
    volume_ratio: float = Field(..., ge=0, description="Current/Avg ratio")
    vwap: float
    vwap_deviation: float = Field(..., description="% deviation from VWAP")
    obv: Optional[float] = None


class PivotPoints(BaseModel):
    """Pivot point levels."""

    pivot: float
    r1: float
    r2: float
    r3: float
    s1: float
    s2: float
    s3: float
    type: str = Field(default="standard", description="standard/fibonacci/camarilla")


class Levels(BaseModel):
    """Price levels and support/resistance."""

    support: list[float] = Field(..., description="Support levels (nearest first)")
    resistance: list[float] = Field(..., description="Resistance levels (nearest first)")
    pivot_points: PivotPoints
    day_high: float
    day_low: float


class PositionSizing(BaseModel):
    """Position sizing recommendation."""

    recommended_shares: int = Field(..., ge=0)
    recommended_value: float = Field(..., ge=0)
    risk_amount: float = Field(..., ge=0)
    risk_percent: float = Field(..., ge=0, le=100)
    method: PositionSizingMethod


class RiskMetrics(BaseModel):
    """Risk-based calculations."""

    atr: float = Field(..., ge=0)
    atr_percent: float = Field(..., ge=0)
    suggested_sl: float = Field(..., description="Stop loss price")
    suggested_sl_percent: float = Field(..., ge=0)
    suggested_tp: list[float] = Field(..., description="Take profit targets")
    risk_reward_ratios: list[float] = Field(..., description="R:R for each TP")
    position_sizing: PositionSizing
    volatility_zone: VolatilityZone


class PriceData(BaseModel):
    """Current price information."""

    current: float
    open: float
    high: float
    low: float
    previous_close: float
    change: float
    change_percent: float
    volume: float
    avg_volume: Optional[float] = None


# =============================================================================
# OUTPUT: IndicatorOutput (Complete Snapshot)
# =============================================================================


class IndicatorOutput(BaseModel):
    """
    Complete latest-bar indicator analysis for a symbol.
    Returned by: Indicator Service
    Consumed by: Dashboard indicator panel
    """

    symbol: str
    timestamp: datetime
    price: PriceData
    trend: TrendIndicators
    momentum: MomentumIndicators
    volatility: VolatilityIndicators
    volume: VolumeIndicators
    levels: Levels
    risk_metrics: RiskMetrics
