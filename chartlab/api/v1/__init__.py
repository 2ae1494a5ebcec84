"""
API v1 Router

All API endpoints for the dashboard.
"""

from fastapi import APIRouter

from chartlab.api.v1.endpoints import indicators, patterns, signals, backtest, options

router = APIRouter()

# Include all endpoint routers
router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
router.include_router(patterns.router, prefix="/patterns", tags=["Patterns"])
router.include_router(signals.router, prefix="/signals", tags=["Signals"])
router.include_router(backtest.router, prefix="/backtest", tags=["Backtesting"])
router.include_router(options.router, prefix="/options", tags=["Options"])
