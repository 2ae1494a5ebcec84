"""
ChartLab Schema Contracts

JSON contracts between the HTTP layer and the services.
"""

from chartlab.schemas.candles import Candle, Timeframe, normalize_candle
from chartlab.schemas.indicators import (
    IndicatorRequest,
    IndicatorSpec,
    IndicatorSeriesResponse,
    IndicatorOutput,
)
from chartlab.schemas.patterns import (
    PatternDetectionRequest,
    PatternDetectionResponse,
    BlockScanRequest,
    BlockScanResponse,
    RelationshipEvaluationRequest,
    PatternCaptureRequest,
)
from chartlab.schemas.backtest import BacktestRequest, BacktestResponse
from chartlab.schemas.options import OptionChainRequest, OptionsChainData
from chartlab.schemas.signals import SignalScanRequest, SignalScanResponse, CrossingsRequest

__all__ = [
    # Candles
    "Candle",
    "Timeframe",
    "normalize_candle",
    # Indicators
    "IndicatorRequest",
    "IndicatorSpec",
    "IndicatorSeriesResponse",
    "IndicatorOutput",
    # Patterns
    "PatternDetectionRequest",
    "PatternDetectionResponse",
    "BlockScanRequest",
    "BlockScanResponse",
    "RelationshipEvaluationRequest",
    "PatternCaptureRequest",
    # Backtest
    "BacktestRequest",
    "BacktestResponse",
    # Options
    "OptionChainRequest",
    "OptionsChainData",
    # Signals
    "SignalScanRequest",
    "SignalScanResponse",
    "CrossingsRequest",
]
