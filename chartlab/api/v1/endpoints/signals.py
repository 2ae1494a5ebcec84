"""
Signal API Endpoints

Latest-bar signal scans and historical indicator crossings.
"""

import logging

from fastapi import APIRouter, HTTPException

from chartlab.schemas.signals import (
    CrossingsRequest,
    CrossingsResponse,
    SignalScanRequest,
    SignalScanResponse,
)
from chartlab.services.base import ServiceError, ValidationError
from chartlab.services.signals import get_signal_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/scan", response_model=SignalScanResponse)
async def scan(request: SignalScanRequest):
    """
    Run signal detectors on the latest bar.

    Detectors: ema_crossover, macd_crossover, rsi_extreme, bb_squeeze,
    breakout, volume_spike.
    """
    try:
        return await get_signal_service().scan(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceError as e:
        logger.error(f"Signal scan failed for {request.symbol}: {e}")
        raise HTTPException(status_code=500, detail=f"Signal scan failed: {e.message}")


@router.post("/crossings", response_model=CrossingsResponse)
async def crossings(request: CrossingsRequest):
    """Every bar where price crossed the EMA/SMA or RSI crossed 70/30."""
    try:
        return await get_signal_service().crossings(request)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
