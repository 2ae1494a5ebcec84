"""
Indicator API Endpoints

Endpoints for technical indicator calculations over caller-supplied candles.
"""

import logging

from fastapi import APIRouter, HTTPException

from chartlab.schemas.indicators import (
    ChartDataRequest,
    IndicatorOutput,
    IndicatorRequest,
    IndicatorSeriesResponse,
    SnapshotRequest,
)
from chartlab.services.base import ServiceError, ValidationError
from chartlab.services.indicators import get_indicator_service
from chartlab.services.indicators.registry import list_indicators

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/catalog")
async def get_catalog():
    """Every available indicator with its parameters, defaults and outputs."""
    indicators = list_indicators()
    return {"count": len(indicators), "indicators": indicators}


@router.post("/compute", response_model=IndicatorSeriesResponse)
async def compute_indicators(request: IndicatorRequest):
    """
    Compute indicator series aligned with the request candles.

    Example request:
    ```json
    {
        "symbol": "NIFTY",
        "candles": [[1700000000, 100, 101, 99, 100.5, 12000], ...],
        "indicators": [{"key": "ema", "params": {"period": 50}}, {"key": "rsi"}]
    }
    ```
    """
    service = get_indicator_service()
    try:
        return await service.execute(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Indicator calculation failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Indicator calculation failed: {e.message}")


@router.post("/snapshot", response_model=IndicatorOutput)
async def get_snapshot(request: SnapshotRequest):
    """
    Latest-bar indicators: trend, momentum, volatility, volume, levels and
    risk metrics.
    """
    service = get_indicator_service()
    try:
        return await service.calculate_snapshot(
            request.symbol,
            request.candles,
            portfolio_value=request.portfolio_value,
            risk_percent=request.risk_percent,
        )
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Snapshot failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Indicator calculation failed: {e.message}")


@router.post("/chart-data")
async def get_chart_data(request: ChartDataRequest):
    """
    Candles with overlays (EMA, SMA, Bollinger, PSAR) and RSI, MACD and
    volume panels, ready to plot.
    """
    service = get_indicator_service()
    try:
        return await service.chart_data(request.symbol, request.candles, request.timeframe)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
