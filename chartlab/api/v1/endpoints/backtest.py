"""
Backtesting API Endpoints

Run and compare trading strategy backtests.
"""

import logging

from fastapi import APIRouter, HTTPException

from chartlab.schemas.backtest import (
    BacktestRequest,
    BacktestResponse,
    CompareRequest,
    CompareResponse,
    StrategyInfo,
)
from chartlab.services.backtest import STRATEGIES, get_backtest_engine
from chartlab.services.base import ServiceError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/strategies")
async def get_available_strategies():
    """Available backtesting strategies with their parameters."""
    return {"strategies": [StrategyInfo(**cls.info()) for cls in STRATEGIES.values()]}


@router.post("/run", response_model=BacktestResponse)
async def run_backtest(request: BacktestRequest):
    """
    Run a backtest with the specified strategy.

    Returns detailed performance metrics, trade history and the equity curve.
    """
    engine = get_backtest_engine()
    try:
        result = engine.run(
            request.candles,
            request.strategy,
            params=request.strategy_params,
            symbol=request.symbol.upper(),
            timeframe=request.timeframe,
            initial_capital=request.initial_capital,
            position_size_percent=request.position_size_percent,
            stop_loss_enabled=request.stop_loss_enabled,
            take_profit_enabled=request.take_profit_enabled,
            allow_short=request.allow_short,
            stop_loss_percent=request.stop_loss_percent,
            take_profit_percent=request.take_profit_percent,
        )
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Backtest error for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Backtest failed for {request.symbol}")

    return result


@router.post("/compare", response_model=CompareResponse)
async def compare_strategies(request: CompareRequest):
    """Compare all strategies on the same candles, best return first."""
    engine = get_backtest_engine()
    try:
        results = engine.compare(
            request.candles,
            symbol=request.symbol.upper(),
            timeframe=request.timeframe,
            initial_capital=request.initial_capital,
            allow_short=request.allow_short,
        )
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "symbol": request.symbol.upper(),
        "timeframe": request.timeframe,
        "initial_capital": request.initial_capital,
        "comparison": results,
    }
