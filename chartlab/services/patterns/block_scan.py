"""
Block Pattern Scan

Walks intraday candles in fixed-size blocks (15 x 1m by default) and reads
one alternating extreme per block: high, low, high, ... ("normal") or
low, high, low, ... ("reverse"). Each block window is scored by the share
of pattern relationships its points satisfy.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from chartlab.services.base import PatternDefinitionError
from chartlab.services.candles import Block, CandleArrays, aggregate_blocks
from chartlab.services.patterns.relationships import (
    Relationship,
    match_fraction,
    required_points,
)

logger = logging.getLogger(__name__)


@dataclass
class BlockMatch:
    start_index: int
    end_index: int
    orientation: str  # "normal" (starts on a high) or "reverse"
    confidence: float
    points: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "start_index": self.start_index,
            "end_index": self.end_index,
            "orientation": self.orientation,
            "confidence": round(self.confidence, 4),
            "points": self.points,
        }


def alternating_points(blocks: Sequence[Block], start_with_high: bool) -> list[dict]:
    """One point per block, alternating between the block high and low."""
    points = []
    for i, block in enumerate(blocks):
        take_high = (i % 2 == 0) == start_with_high
        points.append(
            {
                "point_number": i + 1,
                "type": "high" if take_high else "low",
                "price": block.high if take_high else block.low,
                "index": block.high_index if take_high else block.low_index,
                "timestamp": block.high_timestamp if take_high else block.low_timestamp,
                "block_start": block.start_index,
            }
        )
    return points


def scan_blocks(
    arrays: CandleArrays,
    relationships: Sequence[Relationship],
    point_count: Optional[int] = None,
    block_size: int = 15,
    start_index: int = 0,
    min_confidence: float = 0.75,
    abs_tolerance: float = 0.01,
) -> list[BlockMatch]:
    """
    Score every block window against the relationships.

    Windows start at start_index and advance one block at a time; only
    windows with point_count full blocks are scored. Returns matches with
    confidence >= min_confidence, best first (ties stay chronological).
    """
    if not relationships:
        raise PatternDefinitionError("BlockScan", "At least one relationship is required")

    needed = required_points(relationships)
    point_count = point_count or needed
    if point_count < needed:
        raise PatternDefinitionError(
            "BlockScan",
            f"point_count {point_count} is below the {needed} points the relationships reference",
        )

    span = point_count * block_size
    matches = []

    for start in range(start_index, len(arrays) - span + 1, block_size):
        blocks = aggregate_blocks(arrays, start, point_count, block_size)

        best: Optional[BlockMatch] = None
        for orientation, start_with_high in (("normal", True), ("reverse", False)):
            points = alternating_points(blocks, start_with_high)
            prices = [p["price"] for p in points]
            confidence = match_fraction(prices, relationships, abs_tolerance=abs_tolerance)
            if best is None or confidence > best.confidence:
                best = BlockMatch(start, start + span - 1, orientation, confidence, points)

        if best.confidence >= min_confidence:
            matches.append(best)

    matches.sort(key=lambda m: -m.confidence)
    logger.info(
        "Block scan: %d candles, %d-point windows of %d, %d matches >= %.2f",
        len(arrays), point_count, block_size, len(matches), min_confidence,
    )
    return matches
