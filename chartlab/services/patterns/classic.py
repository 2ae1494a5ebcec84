"""
Classic Chart Patterns

Head & shoulders, double top/bottom and ascending/descending triangles,
detected by sliding a window over alternating swing points.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from chartlab.services.base import PatternDefinitionError
from chartlab.services.patterns.swings import SwingPoint, pattern_confidence

logger = logging.getLogger(__name__)


def _within(a: float, b: float, percent: float) -> bool:
    return abs(a - b) / max(a, b) <= percent / 100


# =============================================================================
# VALIDATORS (prices in window order)
# =============================================================================


def _head_shoulders(p: Sequence[float]) -> bool:
    left, trough1, head, trough2, right = p
    return (
        head > left
        and head > right
        and _within(left, right, 5)
        and max(trough1, trough2) < min(left, right)
    )


def _double_top(p: Sequence[float]) -> bool:
    top1, valley, top2 = p
    peak = max(top1, top2)
    return _within(top1, top2, 3) and (peak - valley) / peak >= 0.02


def _double_bottom(p: Sequence[float]) -> bool:
    bottom1, peak, bottom2 = p
    return _within(bottom1, bottom2, 3) and (peak - min(bottom1, bottom2)) / peak >= 0.02


def _ascending_triangle(p: Sequence[float]) -> bool:
    low1, high1, low2, high2 = p
    return _within(high1, high2, 2) and low2 > low1


def _descending_triangle(p: Sequence[float]) -> bool:
    high1, low1, high2, low2 = p
    return _within(low1, low2, 2) and high2 < high1


@dataclass(frozen=True)
class PatternDefinition:
    key: str
    name: str
    swing_types: tuple[str, ...]
    base_confidence: float
    validator: Callable[[Sequence[float]], bool]
    description: str

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "swing_types": list(self.swing_types),
            "points": len(self.swing_types),
            "base_confidence": self.base_confidence,
            "description": self.description,
        }


PATTERNS: dict[str, PatternDefinition] = {
    d.key: d
    for d in (
        PatternDefinition(
            "head_shoulders", "Head and Shoulders",
            ("high", "low", "high", "low", "high"), 85, _head_shoulders,
            "Three peaks, the middle highest, shoulders within 5%",
        ),
        PatternDefinition(
            "double_top", "Double Top",
            ("high", "low", "high"), 80, _double_top,
            "Two peaks within 3% separated by a valley at least 2% lower",
        ),
        PatternDefinition(
            "double_bottom", "Double Bottom",
            ("low", "high", "low"), 80, _double_bottom,
            "Two troughs within 3% separated by a peak at least 2% higher",
        ),
        PatternDefinition(
            "ascending_triangle", "Ascending Triangle",
            ("low", "high", "low", "high"), 75, _ascending_triangle,
            "Flat highs within 2% with rising lows",
        ),
        PatternDefinition(
            "descending_triangle", "Descending Triangle",
            ("high", "low", "high", "low"), 75, _descending_triangle,
            "Flat lows within 2% with falling highs",
        ),
    )
}


@dataclass
class DetectedPattern:
    """A matched window of swing points."""

    type: str
    name: str
    points: list[SwingPoint]
    confidence: float

    @property
    def start_index(self) -> int:
        return self.points[0].index

    @property
    def end_index(self) -> int:
        return self.points[-1].index

    @property
    def time_range(self) -> tuple[int, int]:
        return self.points[0].timestamp, self.points[-1].timestamp

    @property
    def price_range(self) -> tuple[float, float]:
        prices = [p.price for p in self.points]
        return min(prices), max(prices)


def resolve_patterns(keys: Optional[Sequence[str]]) -> list[PatternDefinition]:
    """Definitions for `keys`, or all of them when keys is empty."""
    if not keys:
        return list(PATTERNS.values())

    unknown = [k for k in keys if k not in PATTERNS]
    if unknown:
        raise PatternDefinitionError(
            "ClassicPatterns",
            f"Unknown pattern(s): {', '.join(unknown)}",
            {"available": sorted(PATTERNS)},
        )
    return [PATTERNS[k] for k in keys]


def detect_classic_patterns(
    swings: Sequence[SwingPoint],
    volumes: Optional[Sequence[float]] = None,
    keys: Optional[Sequence[str]] = None,
    min_confidence: float = 75.0,
) -> list[DetectedPattern]:
    """
    Slide every pattern's window over the swings.

    A window matches when its swing types equal the pattern's sequence and
    the validator accepts its prices. Confidence is the larger of the
    computed score and the pattern's base confidence.
    """
    detected = []

    for definition in resolve_patterns(keys):
        size = len(definition.swing_types)
        for start in range(len(swings) - size + 1):
            window = list(swings[start : start + size])
            if tuple(p.type for p in window) != definition.swing_types:
                continue
            if not definition.validator([p.price for p in window]):
                continue

            confidence = max(pattern_confidence(window, volumes), definition.base_confidence)
            if confidence >= min_confidence:
                detected.append(
                    DetectedPattern(definition.key, definition.name, window, round(confidence, 2))
                )

    detected.sort(key=lambda d: (-d.confidence, d.start_index))
    logger.debug("Classic detection over %d swings found %d patterns", len(swings), len(detected))
    return detected


# =============================================================================
# RAYS & METADATA
# =============================================================================


def generate_rays(pattern_type: str, prices: Sequence[float]) -> dict:
    """Horizontal levels to draw for a classic pattern (empty for anything else)."""
    rays: dict = {}

    if pattern_type == "head_shoulders" and len(prices) >= 5:
        neckline = (prices[1] + prices[3]) / 2
        rays["neckline"] = {"price": round(neckline, 4), "color": "#8b5cf6"}
        rays["target"] = {"price": round(neckline - (prices[2] - neckline), 4), "color": "#10b981"}

    elif pattern_type == "double_top" and len(prices) >= 3:
        valley = prices[1]
        peak_height = max(prices[0], prices[2]) - valley
        rays["support"] = {"price": round(valley, 4), "color": "#10b981"}
        rays["target"] = {"price": round(valley - peak_height, 4), "color": "#ef4444"}

    elif pattern_type == "double_bottom" and len(prices) >= 3:
        peak = prices[1]
        depth = peak - min(prices[0], prices[2])
        rays["resistance"] = {"price": round(peak, 4), "color": "#ef4444"}
        rays["target"] = {"price": round(peak + depth, 4), "color": "#10b981"}

    elif pattern_type == "ascending_triangle" and len(prices) >= 4:
        resistance = max(prices[1], prices[3])
        height = resistance - min(prices[0], prices[2])
        rays["resistance"] = {"price": round(resistance, 4), "color": "#ef4444"}
        rays["target"] = {"price": round(resistance + height, 4), "color": "#10b981"}

    elif pattern_type == "descending_triangle" and len(prices) >= 4:
        support = min(prices[1], prices[3])
        height = max(prices[0], prices[2]) - support
        rays["support"] = {"price": round(support, 4), "color": "#10b981"}
        rays["target"] = {"price": round(support - height, 4), "color": "#ef4444"}

    return rays


def pattern_volatility(prices: Sequence[float]) -> float:
    """Coefficient of variation of the point prices, in %."""
    if len(prices) < 2:
        return 0.0
    values = np.asarray(prices, dtype=float)
    mean = float(np.mean(values))
    return round(float(np.std(values)) / mean * 100, 2) if mean else 0.0


def average_slope(prices: Sequence[float], timestamps: Sequence[int]) -> float:
    """Mean price change per second between consecutive points."""
    slopes = [
        (prices[i] - prices[i - 1]) / (timestamps[i] - timestamps[i - 1])
        for i in range(1, len(prices))
        if timestamps[i] - timestamps[i - 1] > 0
    ]
    return round(sum(slopes) / len(slopes), 6) if slopes else 0.0
