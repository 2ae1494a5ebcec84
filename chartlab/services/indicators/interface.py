"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Optional

from chartlab.services.base import BaseService
from chartlab.schemas.candles import Candle, Timeframe
from chartlab.schemas.indicators import (
    IndicatorOutput,
    IndicatorRequest,
    IndicatorSeriesResponse,
)


class IndicatorServiceInterface(BaseService[IndicatorRequest, IndicatorSeriesResponse]):
    """
    Indicator Engine Service Contract.

    INPUT: IndicatorRequest
        - candles: OHLCV candles, oldest first
        - indicators: catalog keys with optional params

    OUTPUT: IndicatorSeriesResponse
        - One entry per requested indicator, every series aligned with
          the candle timestamps
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: IndicatorRequest) -> IndicatorSeriesResponse:
        """Compute the requested indicator series."""
        pass

    @abstractmethod
    async def calculate_snapshot(
        self,
        symbol: str,
        candles: list[Candle],
        portfolio_value: Optional[float] = None,
        risk_percent: float = 1.0,
    ) -> IndicatorOutput:
        """
        Calculate latest-bar indicators for a single symbol.

        Args:
            symbol: Symbol label for the output
            candles: At least 20 candles, oldest first
            portfolio_value: Portfolio value for position sizing (optional)
            risk_percent: % of portfolio to risk per trade

        Returns:
            Complete indicator analysis
        """
        pass

    @abstractmethod
    async def chart_data(
        self, symbol: str, candles: list[Candle], timeframe: Timeframe
    ) -> dict:
        """Candles plus chart overlays and indicator panels."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        pass
