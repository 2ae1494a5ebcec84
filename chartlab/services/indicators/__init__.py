"""
Indicator Engine Service

CONTRACT:
    Input:  IndicatorRequest (candles + indicator specs)
    Output: IndicatorSeriesResponse

RESPONSIBILITIES:
    - Calculate any catalog indicator as a full aligned series
    - Build latest-bar snapshots (trend, momentum, volatility, volume)
    - Detect support/resistance and pivot levels
    - Compute risk metrics (ATR stop loss, take profit levels)

Uses NumPy for calculations. All math is deterministic and reproducible.
"""

from chartlab.services.indicators.interface import IndicatorServiceInterface
from chartlab.services.indicators.service import IndicatorService, get_indicator_service

__all__ = [
    "IndicatorServiceInterface",
    "IndicatorService",
    "get_indicator_service",
]
