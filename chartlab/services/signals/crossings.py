"""
Indicator Crossings

Bar-by-bar events where price crosses a moving average or RSI crosses
its overbought/oversold thresholds.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

import numpy as np

from chartlab.services.candles import CandleArrays
from chartlab.services.indicators.calculations import crossovers, ema, rsi, sma


class CrossingType(str, Enum):
    EMA_CROSS_ABOVE = "EMA_CROSS_ABOVE"
    EMA_CROSS_BELOW = "EMA_CROSS_BELOW"
    SMA_CROSS_ABOVE = "SMA_CROSS_ABOVE"
    SMA_CROSS_BELOW = "SMA_CROSS_BELOW"
    RSI_OVERBOUGHT = "RSI_OVERBOUGHT"
    RSI_OVERSOLD = "RSI_OVERSOLD"


@dataclass
class CrossingEvent:
    index: int
    timestamp: int
    type: CrossingType
    price: float
    indicator: str
    indicator_value: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data


def _price_crossings(
    a: CandleArrays, line: np.ndarray, label: str, above: CrossingType, below: CrossingType
) -> list[CrossingEvent]:
    return [
        CrossingEvent(
            index=i,
            timestamp=int(a.timestamps[i]),
            type=above if direction == "above" else below,
            price=float(a.closes[i]),
            indicator=label,
            indicator_value=round(float(line[i]), 4),
        )
        for i, direction in crossovers(a.closes, line)
    ]


def find_crossings(
    a: CandleArrays,
    ema_period: Optional[int] = None,
    sma_period: Optional[int] = None,
    rsi_period: Optional[int] = None,
    overbought: float = 70,
    oversold: float = 30,
) -> list[CrossingEvent]:
    """
    Collect crossing events for the requested indicators.

    Events are ordered by bar index; on the same bar EMA comes before SMA
    before RSI.
    """
    events: list[CrossingEvent] = []

    if ema_period:
        events += _price_crossings(
            a, ema(a.closes, ema_period), f"EMA-{ema_period}",
            CrossingType.EMA_CROSS_ABOVE, CrossingType.EMA_CROSS_BELOW,
        )
    if sma_period:
        events += _price_crossings(
            a, sma(a.closes, sma_period), f"SMA-{sma_period}",
            CrossingType.SMA_CROSS_ABOVE, CrossingType.SMA_CROSS_BELOW,
        )
    if rsi_period:
        values = rsi(a.closes, rsi_period)
        label = f"RSI-{rsi_period}"
        for threshold, wanted, kind in (
            (overbought, "above", CrossingType.RSI_OVERBOUGHT),
            (oversold, "below", CrossingType.RSI_OVERSOLD),
        ):
            for i, direction in crossovers(values, threshold):
                if direction != wanted:
                    continue
                events.append(
                    CrossingEvent(
                        index=i,
                        timestamp=int(a.timestamps[i]),
                        type=kind,
                        price=float(a.closes[i]),
                        indicator=label,
                        indicator_value=round(float(values[i]), 2),
                    )
                )

    # sorted() is stable, so same-bar events keep the order above
    return sorted(events, key=lambda e: e.index)
