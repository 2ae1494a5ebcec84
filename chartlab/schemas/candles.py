"""
Candle Contracts

Candles arrive from the dashboard in three shapes:
    - tuple rows: [timestamp, open, high, low, close, volume?]
    - line points: {"time": ..., "price": ...}
    - OHLC objects keyed by "timestamp" or "time"

All of them are normalized into a single Candle model with epoch-second
timestamps.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from pydantic import BaseModel, Field, model_validator

from chartlab.core.market_hours import get_market_timezone


# Epoch values above this are treated as milliseconds
MS_THRESHOLD = 1e12


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


# =============================================================================
# NORMALIZATION
# =============================================================================


def _aware(dt: datetime) -> datetime:
    # Naive times are exchange-local
    if dt.tzinfo is None:
        return get_market_timezone().localize(dt)
    return dt


def to_epoch_seconds(value: Any) -> int:
    if isinstance(value, datetime):
        return int(_aware(value).timestamp())
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").replace(".", "", 1).isdigit():
            value = float(text)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return int(_aware(parsed).timestamp())
    if value is None:
        raise ValueError("candle is missing a timestamp")

    seconds = float(value)
    if seconds > MS_THRESHOLD:
        seconds /= 1000
    return int(seconds)


def normalize_candle(raw: Any) -> dict:
    """
    Convert any supported candle shape into a plain Candle dict.

    Raises:
        ValueError: If the shape is not recognised
    """
    if hasattr(raw, "model_dump"):
        return raw.model_dump()

    if isinstance(raw, (list, tuple)):
        if len(raw) < 5:
            raise ValueError(f"candle row needs at least 5 fields, got {len(raw)}")
        return {
            "timestamp": to_epoch_seconds(raw[0]),
            "open": float(raw[1]),
            "high": float(raw[2]),
            "low": float(raw[3]),
            "close": float(raw[4]),
            "volume": float(raw[5]) if len(raw) > 5 and raw[5] is not None else 0.0,
        }

    if isinstance(raw, Mapping):
        ts = raw.get("timestamp", raw.get("time"))

        # Line-chart point
        if "price" in raw and "close" not in raw:
            price = float(raw["price"])
            return {
                "timestamp": to_epoch_seconds(ts),
                "open": price,
                "high": price,
                "low": price,
                "close": price,
                "volume": float(raw.get("volume") or 0),
            }

        missing = [k for k in ("open", "high", "low", "close") if k not in raw]
        if missing:
            raise ValueError(f"candle object is missing {', '.join(missing)}")
        return {
            "timestamp": to_epoch_seconds(ts),
            "open": float(raw["open"]),
            "high": float(raw["high"]),
            "low": float(raw["low"]),
            "close": float(raw["close"]),
            "volume": float(raw.get("volume") or 0),
        }

    raise ValueError(f"unsupported candle format: {type(raw).__name__}")


# =============================================================================
# MODELS
# =============================================================================


class Candle(BaseModel):
    """Single candlestick data point."""

    timestamp: int = Field(..., description="Epoch seconds")
    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: float = Field(default=0.0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        return normalize_candle(data)

    @model_validator(mode="after")
    def _check_range(self) -> "Candle":
        if self.high < self.low:
            raise ValueError(f"high {self.high} is below low {self.low}")
        return self
