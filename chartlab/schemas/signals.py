"""
Signal Contracts

Input: candles plus detector selection or crossing indicators
Output: latest-bar signals, or chronological crossing events
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator

from chartlab.core.config import settings
from chartlab.schemas.candles import Candle


class DetectorType(str, Enum):
    EMA_CROSSOVER = "ema_crossover"
    MACD_CROSSOVER = "macd_crossover"
    RSI_EXTREME = "rsi_extreme"
    BB_SQUEEZE = "bb_squeeze"
    BREAKOUT = "breakout"
    VOLUME_SPIKE = "volume_spike"


# =============================================================================
# SCAN
# =============================================================================


class SignalScanRequest(BaseModel):
    symbol: str = Field(default="UNKNOWN", max_length=50)
    candles: list[Candle] = Field(..., min_length=2, max_length=settings.max_candles)
    detectors: list[DetectorType] = Field(
        default_factory=list, description="Detectors to run (default: all)"
    )
    min_score: float = Field(default=0.0, ge=0, le=100)


class SignalOut(BaseModel):
    detected: bool
    signal_type: str
    signal: str
    strength: str
    score: float = Field(..., ge=0, le=100)
    details: dict[str, Any]
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    target: Optional[float] = None


class SignalScanResponse(BaseModel):
    symbol: str
    current_price: float
    signals: list[SignalOut]
    total_score: float
    dominant_signal: str
    detectors_run: list[str]


# =============================================================================
# CROSSINGS
# =============================================================================


class CrossingsRequest(BaseModel):
    """At least one of ema_period, sma_period or rsi_period is required."""

    symbol: str = Field(default="UNKNOWN", max_length=50)
    candles: list[Candle] = Field(..., min_length=2, max_length=settings.max_candles)
    ema_period: Optional[int] = Field(default=None, ge=1, le=500)
    sma_period: Optional[int] = Field(default=None, ge=1, le=500)
    rsi_period: Optional[int] = Field(default=None, ge=1, le=500)
    overbought: float = Field(default=70, gt=0, lt=100)
    oversold: float = Field(default=30, gt=0, lt=100)

    @model_validator(mode="after")
    def _check(self) -> "CrossingsRequest":
        if not (self.ema_period or self.sma_period or self.rsi_period):
            raise ValueError("Specify at least one of ema_period, sma_period, rsi_period")
        if self.oversold >= self.overbought:
            raise ValueError("oversold must be below overbought")
        return self


class CrossingEventOut(BaseModel):
    index: int
    timestamp: int
    type: str
    price: float
    indicator: str
    indicator_value: float


class CrossingsResponse(BaseModel):
    symbol: str
    total_candles: int
    events: list[CrossingEventOut]
