"""
Option Chain Summary

ATM strike, strike windowing, intrinsic-value fallback pricing, put-call
ratio and max pain over a caller-supplied chain.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from chartlab.schemas.options import (
    OptionChainRequest,
    OptionLeg,
    OptionsChainData,
    OptionType,
    StrikeData,
)

logger = logging.getLogger(__name__)


def find_atm_strike(strikes: Sequence[float], spot: float) -> float:
    """Nearest strike to spot; on a tie the lower strike wins."""
    if not strikes:
        return spot
    return min(sorted(strikes), key=lambda s: abs(s - spot))


def select_strike_window(strikes: Sequence[float], atm: float, width: int = 15) -> list[float]:
    """Sorted strikes within +/- width positions of the ATM strike."""
    ordered = sorted(strikes)
    if atm not in ordered:
        return ordered
    center = ordered.index(atm)
    return ordered[max(0, center - width) : center + width + 1]


def intrinsic_value(strike: float, spot: float, option_type: OptionType | str) -> float:
    if OptionType(option_type) == OptionType.CE:
        return max(0.0, spot - strike)
    return max(0.0, strike - spot)


def put_call_ratio(strikes: Sequence[StrikeData]) -> float:
    """Total put OI / total call OI (0 when there is no call OI)."""
    call_oi = sum(s.ce.oi for s in strikes if s.ce)
    put_oi = sum(s.pe.oi for s in strikes if s.pe)
    return round(put_oi / call_oi, 4) if call_oi > 0 else 0.0


def max_pain(strikes: Sequence[StrikeData]) -> Optional[float]:
    """
    Expiry price (among the strikes) minimising the total payout to holders.

    Payout at settlement S: sum of call OI * max(0, S - K) plus put OI *
    max(0, K - S). Ties go to the lower strike. None without any OI.
    """
    if not any((s.ce and s.ce.oi) or (s.pe and s.pe.oi) for s in strikes):
        return None

    best: Optional[tuple[float, float]] = None
    for settle in sorted(s.strike_price for s in strikes):
        payout = 0.0
        for s in strikes:
            if s.ce:
                payout += s.ce.oi * intrinsic_value(s.strike_price, settle, OptionType.CE)
            if s.pe:
                payout += s.pe.oi * intrinsic_value(s.strike_price, settle, OptionType.PE)
        if best is None or payout < best[1]:
            best = (settle, payout)
    return best[0]


def _fill_leg(leg: Optional[OptionLeg], strike: float, spot: float, kind: OptionType) -> Optional[OptionLeg]:
    if leg is None or leg.ltp is not None:
        return leg
    return leg.model_copy(
        update={"ltp": round(intrinsic_value(strike, spot, kind), 2), "theoretical": True}
    )


def summarize_chain(request: OptionChainRequest) -> OptionsChainData:
    """
    Window the chain around ATM and compute its summary statistics.

    PCR and max pain use the windowed strikes. Greeks pass through as
    supplied.
    """
    by_price = {s.strike_price: s for s in request.strikes}
    atm = find_atm_strike(list(by_price), request.spot_price)
    window = select_strike_window(list(by_price), atm, request.strike_window)

    strikes = [
        StrikeData(
            strike_price=price,
            ce=_fill_leg(by_price[price].ce, price, request.spot_price, OptionType.CE),
            pe=_fill_leg(by_price[price].pe, price, request.spot_price, OptionType.PE),
        )
        for price in window
    ]

    total_call_oi = sum(s.ce.oi for s in strikes if s.ce)
    total_put_oi = sum(s.pe.oi for s in strikes if s.pe)

    logger.info(
        "Option chain for %s: %d of %d strikes around ATM %.2f",
        request.underlying, len(strikes), len(request.strikes), atm,
    )

    return OptionsChainData(
        underlying=request.underlying.upper(),
        spot_price=request.spot_price,
        expiry=request.expiry,
        expiry_dates=request.expiry_dates,
        atm_strike=atm,
        strikes=strikes,
        put_call_ratio=put_call_ratio(strikes),
        max_pain=max_pain(strikes),
        total_call_oi=total_call_oi,
        total_put_oi=total_put_oi,
        timestamp=datetime.now(timezone.utc),
    )
