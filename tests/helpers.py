"""Synthetic candle builders shared by the tests."""

from typing import Optional, Sequence

import numpy as np

from chartlab.schemas.candles import Candle
from chartlab.services.candles import CandleArrays, to_arrays
from chartlab.services.patterns.swings import extract_swing_points

# 2024-01-15 09:00 IST (03:30 UTC), 15 minutes before the NSE open
SESSION_START = 1705289400


def make_candles(
    closes: Sequence[float],
    start: int = SESSION_START,
    step: int = 60,
    spread: float = 0.5,
    volumes: Optional[Sequence[float]] = None,
) -> list[Candle]:
    """
    Candles opening halfway from the previous close, with wicks `spread`
    beyond the body. Extremes of `closes` stay strict extremes of highs/lows.
    """
    volumes = volumes if volumes is not None else [1000.0] * len(closes)
    candles = []
    for i, close in enumerate(closes):
        open_ = (closes[i - 1] + close) / 2 if i else close
        candles.append(
            Candle(
                timestamp=start + i * step,
                open=open_,
                high=max(open_, close) + spread,
                low=min(open_, close) - spread,
                close=close,
                volume=volumes[i],
            )
        )
    return candles


def make_arrays(closes: Sequence[float], **kwargs) -> CandleArrays:
    return to_arrays(make_candles(closes, **kwargs))


def wave(n: int, base: float = 100.0, amplitude: float = 10.0, period: int = 40, drift: float = 0.0) -> list[float]:
    """Sine wave closes, optionally drifting."""
    return [
        round(base + amplitude * np.sin(2 * np.pi * i / period) + drift * i, 4)
        for i in range(n)
    ]


def candle_rows(closes: Sequence[float], start: int = SESSION_START, step: int = 60) -> list[list[float]]:
    """JSON tuple rows [timestamp, open, high, low, close, volume] for API tests."""
    return [
        [c.timestamp, c.open, c.high, c.low, c.close, c.volume]
        for c in make_candles(closes, start=start, step=step)
    ]


def swing_points(arrays: CandleArrays, **kwargs):
    """ZigZag swings of `arrays` with its volumes attached."""
    return extract_swing_points(
        arrays.highs, arrays.lows, arrays.timestamps, volumes=arrays.volumes, **kwargs
    )


def block_closes(*levels: float, size: int = 15) -> list[float]:
    """`size` flat closes per level, e.g. block_closes(110, 90) for two blocks."""
    return [float(level) for level in levels for _ in range(size)]
