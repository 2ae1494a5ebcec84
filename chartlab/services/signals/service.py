"""
Signal Service Implementation

Latest-bar detector scans and historical crossing events.
"""

import logging
from typing import Optional

from chartlab.schemas.signals import (
    CrossingsRequest,
    CrossingsResponse,
    SignalScanRequest,
    SignalScanResponse,
)
from chartlab.services.base import BaseService
from chartlab.services.candles import to_arrays
from chartlab.services.signals.crossings import find_crossings
from chartlab.services.signals.detectors import scan_signals

logger = logging.getLogger(__name__)


class SignalService(BaseService[SignalScanRequest, SignalScanResponse]):

    @property
    def name(self) -> str:
        return "SignalService"

    async def execute(self, input_data: SignalScanRequest) -> SignalScanResponse:
        return await self.scan(input_data)

    async def scan(self, request: SignalScanRequest) -> SignalScanResponse:
        a = to_arrays(request.candles)
        result = scan_signals(a, request.detectors, request.min_score)

        logger.info(
            "Signal scan for %s: %d signals, dominant %s",
            request.symbol, len(result["signals"]), result["dominant_signal"],
        )
        return SignalScanResponse(symbol=request.symbol, **result)

    async def crossings(self, request: CrossingsRequest) -> CrossingsResponse:
        a = to_arrays(request.candles)
        events = find_crossings(
            a,
            ema_period=request.ema_period,
            sma_period=request.sma_period,
            rsi_period=request.rsi_period,
            overbought=request.overbought,
            oversold=request.oversold,
        )
        return CrossingsResponse(
            symbol=request.symbol,
            total_candles=len(a),
            events=[e.to_dict() for e in events],
        )

    async def health_check(self) -> bool:
        return True


# Singleton instance
_service_instance: Optional[SignalService] = None


def get_signal_service() -> SignalService:
    """Get or create signal service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = SignalService()
    return _service_instance
