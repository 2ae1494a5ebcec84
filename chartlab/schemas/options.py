"""
Option Chain Contracts

Input: spot price + per-strike CE/PE quotes supplied by the caller
Output: windowed chain with ATM strike, put-call ratio and max pain
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from chartlab.core.config import settings


class OptionType(str, Enum):
    CE = "CE"  # call
    PE = "PE"  # put


class Greeks(BaseModel):
    delta: Optional[float] = None
    gamma: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    iv: Optional[float] = Field(default=None, ge=0, description="Implied volatility, %")


class OptionLeg(BaseModel):
    """Quote for one side (CE or PE) of a strike."""

    token: Optional[str] = None
    symbol: Optional[str] = None
    ltp: Optional[float] = Field(default=None, ge=0)
    volume: float = Field(default=0, ge=0)
    oi: float = Field(default=0, ge=0)
    change: Optional[float] = None
    greeks: Optional[Greeks] = None
    theoretical: bool = Field(
        default=False, description="True when ltp was filled from intrinsic value"
    )


class StrikeData(BaseModel):
    strike_price: float = Field(..., gt=0)
    ce: Optional[OptionLeg] = None
    pe: Optional[OptionLeg] = None


class OptionChainRequest(BaseModel):
    underlying: str = Field(..., min_length=1, max_length=50)
    spot_price: float = Field(..., gt=0)
    expiry: Optional[str] = None
    expiry_dates: list[str] = Field(default_factory=list)
    strikes: list[StrikeData] = Field(..., min_length=1)
    strike_window: int = Field(
        default_factory=lambda: settings.option_strike_window, ge=0, le=200,
        description="Strikes kept on each side of ATM",
    )

    @model_validator(mode="after")
    def _unique_strikes(self) -> "OptionChainRequest":
        prices = [s.strike_price for s in self.strikes]
        if len(set(prices)) != len(prices):
            raise ValueError("Duplicate strike_price in chain")
        return self


class OptionsChainData(BaseModel):
    underlying: str
    spot_price: float
    expiry: Optional[str] = None
    expiry_dates: list[str]
    atm_strike: float
    strikes: list[StrikeData]
    put_call_ratio: float
    max_pain: Optional[float] = None
    total_call_oi: float
    total_put_oi: float
    timestamp: datetime
