"""
Candle Array Helpers

Conversion from Candle models to NumPy arrays, and aggregation of
consecutive candles into larger blocks.
"""

from dataclasses import dataclass, asdict
from typing import Sequence

import numpy as np

from chartlab.schemas.candles import Candle


@dataclass
class CandleArrays:
    """OHLCV data arrays for calculations."""

    timestamps: np.ndarray
    opens: np.ndarray
    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray

    def __len__(self) -> int:
        return len(self.closes)


@dataclass
class Block:
    """
    N consecutive candles folded into one.

    high_index/low_index point back into the source arrays so a matched
    pattern can be drawn at the exact candle where each extreme printed.
    """

    start_index: int
    end_index: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    high_index: int
    low_index: int
    high_timestamp: int
    low_timestamp: int

    def to_dict(self) -> dict:
        return asdict(self)


def to_arrays(candles: Sequence[Candle]) -> CandleArrays:
    """Convert candle models to float arrays (timestamps stay int64)."""
    return CandleArrays(
        timestamps=np.array([c.timestamp for c in candles], dtype=np.int64),
        opens=np.array([c.open for c in candles], dtype=float),
        highs=np.array([c.high for c in candles], dtype=float),
        lows=np.array([c.low for c in candles], dtype=float),
        closes=np.array([c.close for c in candles], dtype=float),
        volumes=np.array([c.volume for c in candles], dtype=float),
    )


def aggregate_blocks(
    arrays: CandleArrays, start: int, count: int, block_size: int
) -> list[Block]:
    """
    Aggregate `count` blocks of `block_size` candles starting at `start`.

    Stops early when the data runs out. A trailing partial block is kept
    as long as it holds at least one candle.
    """
    if block_size < 1:
        raise ValueError(f"block_size must be >= 1, got {block_size}")

    blocks: list[Block] = []
    n = len(arrays)

    for b in range(count):
        lo = start + b * block_size
        hi = min(lo + block_size, n)
        if lo >= n or lo < 0:
            break

        window_highs = arrays.highs[lo:hi]
        window_lows = arrays.lows[lo:hi]
        high_index = lo + int(np.argmax(window_highs))
        low_index = lo + int(np.argmin(window_lows))

        blocks.append(
            Block(
                start_index=lo,
                end_index=hi - 1,
                open=float(arrays.opens[lo]),
                high=float(arrays.highs[high_index]),
                low=float(arrays.lows[low_index]),
                close=float(arrays.closes[hi - 1]),
                volume=float(np.sum(arrays.volumes[lo:hi])),
                high_index=high_index,
                low_index=low_index,
                high_timestamp=int(arrays.timestamps[high_index]),
                low_timestamp=int(arrays.timestamps[low_index]),
            )
        )

    return blocks
