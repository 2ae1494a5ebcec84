"""
Swing Point Extraction

Turns raw candles into the alternating highs/lows (swing points) that
pattern detection runs over, and clusters pivots into support/resistance
levels.
"""

import logging
from dataclasses import dataclass, asdict, field
from typing import Optional, Sequence

import numpy as np

from chartlab.services.patterns.relationships import Relationship, required_points

logger = logging.getLogger(__name__)


@dataclass
class SwingPoint:
    """A local extreme confirmed by `strength` bars on each side."""

    index: int
    timestamp: int
    price: float
    type: str  # "high" or "low"
    strength: float
    volume: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SupportResistanceLevel:
    level: float
    type: str  # "support" or "resistance"
    touches: int
    indices: list[int] = field(default_factory=list)
    strength: float = 0.0

    def to_dict(self) -> dict:
        return {**asdict(self), "level": round(self.level, 4), "strength": round(self.strength, 2)}


def _pivot_flags(
    highs: np.ndarray, lows: np.ndarray, i: int, lookback: int
) -> tuple[bool, bool]:
    """(is_swing_high, is_swing_low) for bar i against +/- lookback neighbours."""
    window = np.r_[i - lookback : i, i + 1 : i + lookback + 1]
    return (
        bool(np.all(highs[window] < highs[i])),
        bool(np.all(lows[window] > lows[i])),
    )


def find_pivots(
    highs: Sequence[float],
    lows: Sequence[float],
    timestamps: Sequence[int],
    lookback: int,
    volumes: Optional[Sequence[float]] = None,
) -> list[SwingPoint]:
    """All local highs/lows strictly beyond every neighbour within +/- lookback bars."""
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    vols = np.zeros(len(highs)) if volumes is None else np.asarray(volumes, dtype=float)

    pivots = []
    for i in range(lookback, len(highs) - lookback):
        is_high, is_low = _pivot_flags(highs, lows, i, lookback)
        if is_high:
            pivots.append(
                SwingPoint(i, int(timestamps[i]), float(highs[i]), "high", lookback, float(vols[i]))
            )
        if is_low:
            pivots.append(
                SwingPoint(i, int(timestamps[i]), float(lows[i]), "low", lookback, float(vols[i]))
            )
    return pivots


def zigzag_filter(pivots: Sequence[SwingPoint], min_deviation_percent: float) -> list[SwingPoint]:
    """
    Keep only alternating swings that move at least min_deviation_percent.

    A same-type pivot more extreme than the last kept swing replaces it, so
    each leg ends at its true extreme.
    """
    ordered = sorted(pivots, key=lambda p: p.index)
    if len(ordered) < 2:
        return list(ordered)

    kept = [ordered[0]]
    for point in ordered[1:]:
        last = kept[-1]
        if point.type == last.type:
            more_extreme = point.price > last.price if point.type == "high" else point.price < last.price
            if more_extreme:
                kept[-1] = point
            continue

        deviation = abs(point.price - last.price) / last.price * 100
        if deviation >= min_deviation_percent:
            kept.append(point)

    return kept


def extract_swing_points(
    highs: Sequence[float],
    lows: Sequence[float],
    timestamps: Sequence[int],
    min_deviation_percent: float = 2.0,
    lookback: int = 5,
    volumes: Optional[Sequence[float]] = None,
) -> list[SwingPoint]:
    """
    Extract ZigZag-filtered swing points.

    Returns [] when there are fewer than 2 * lookback candles.
    """
    if lookback < 1:
        raise ValueError(f"lookback must be >= 1, got {lookback}")
    if len(highs) < lookback * 2:
        logger.debug("Insufficient data for swings: %d candles, need %d", len(highs), lookback * 2)
        return []

    pivots = find_pivots(highs, lows, timestamps, lookback, volumes)
    swings = zigzag_filter(pivots, min_deviation_percent)

    logger.debug(
        "Swing extraction: %d candles -> %d pivots -> %d swings",
        len(highs), len(pivots), len(swings),
    )
    return swings


def extract_support_resistance_levels(
    highs: Sequence[float],
    lows: Sequence[float],
    min_touches: int = 3,
    tolerance_percent: float = 0.5,
) -> list[SupportResistanceLevel]:
    """
    Cluster pivots into horizontal levels touched at least min_touches times.

    The pivot lookback adapts to the data size: max(5, n // 50).
    Sorted by strength (touches * n / 100), strongest first.
    """
    n = len(highs)
    if n < 10:
        return []

    lookback = max(5, n // 50)
    pivots = find_pivots(highs, lows, list(range(n)), lookback)

    levels: list[SupportResistanceLevel] = []
    touch_prices: list[list[float]] = []

    for pivot in sorted(pivots, key=lambda p: p.index):
        kind = "resistance" if pivot.type == "high" else "support"
        tolerance = pivot.price * tolerance_percent / 100

        for level, prices in zip(levels, touch_prices):
            if level.type == kind and abs(level.level - pivot.price) <= tolerance:
                prices.append(pivot.price)
                level.touches += 1
                level.indices.append(pivot.index)
                level.level = float(np.mean(prices))
                break
        else:
            levels.append(SupportResistanceLevel(pivot.price, kind, 1, [pivot.index]))
            touch_prices.append([pivot.price])

    valid = [lvl for lvl in levels if lvl.touches >= min_touches]
    for lvl in valid:
        lvl.strength = lvl.touches * n / 100

    return sorted(valid, key=lambda lvl: lvl.strength, reverse=True)


def find_relationship_sequences(
    swings: Sequence[SwingPoint],
    relationships: Sequence[Relationship],
    tolerance_percent: float = 3.0,
) -> list[list[SwingPoint]]:
    """Every window of consecutive swings on which all relationships hold."""
    size = required_points(relationships)
    if size == 0 or len(swings) < size:
        return []

    matches = []
    for start in range(len(swings) - size + 1):
        window = list(swings[start : start + size])
        prices = [p.price for p in window]
        if all(rel.holds(prices, tolerance_percent) for rel in relationships):
            matches.append(window)
    return matches


def pattern_confidence(points: Sequence[SwingPoint], volumes: Optional[Sequence[float]] = None) -> float:
    """
    Score a matched point window from 70 to 95.

    Bonuses: swing strength (up to 15), price range above 5% / 10% of the
    mean price (10 / +5), volume confirmation (up to 10).
    """
    if not points:
        return 0.0

    confidence = 70.0

    avg_strength = sum(p.strength for p in points) / len(points)
    confidence += min(avg_strength * 2, 15)

    prices = [p.price for p in points]
    mean_price = sum(prices) / len(prices)
    range_percent = (max(prices) - min(prices)) / mean_price * 100 if mean_price else 0.0
    if range_percent > 5:
        confidence += 10
    if range_percent > 10:
        confidence += 5

    if volumes is not None and len(volumes) > 0:
        avg_volume = float(np.mean(volumes))
        if avg_volume > 0:
            confirmed = sum(1 for p in points if p.volume > avg_volume * 1.2)
            confidence += confirmed / len(points) * 10

    return min(confidence, 95.0)
