"""
Point Relationships

A relationship is an ordered comparison between two numbered price points,
written "1>2", "2<3" or "1=4" (1-indexed). A list of them describes the
shape of a chart pattern independently of price level, so the same
definition can be matched against any window of points.
"""

import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Sequence

from chartlab.services.base import PatternDefinitionError

_RELATIONSHIP_RE = re.compile(
    r"^\s*(?:p(?:oint)?\s*)?(\d+)\s*([<>=])\s*(?:p(?:oint)?\s*)?(\d+)\s*$",
    re.IGNORECASE,
)


class Comparison(str, Enum):
    GREATER = ">"
    LESS = "<"
    EQUAL = "="


@dataclass(frozen=True)
class Relationship:
    """left <op> right, both 1-indexed point numbers."""

    left: int
    op: Comparison
    right: int

    def __str__(self) -> str:
        return f"{self.left}{self.op.value}{self.right}"

    def holds(
        self,
        prices: Sequence[float],
        tolerance_percent: float = 0.0,
        abs_tolerance: float = 0.0,
    ) -> bool:
        """Check this relationship against a 1-indexed list of point prices."""
        highest = max(self.left, self.right)
        if highest > len(prices):
            raise PatternDefinitionError(
                "Relationships",
                f"{self} references point {highest} but only {len(prices)} points were given",
            )
        actual = compare_prices(
            prices[self.left - 1], prices[self.right - 1], tolerance_percent, abs_tolerance
        )
        return actual == self.op


@dataclass
class RelationshipResult:
    relationship: str
    expected: str
    actual: str
    satisfied: bool
    left_price: float
    right_price: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RelationshipEvaluation:
    results: list[RelationshipResult]
    matched: int
    total: int

    @property
    def confidence(self) -> float:
        return self.matched / self.total if self.total else 0.0

    def matches(self) -> bool:
        return self.total > 0 and self.matched == self.total

    def to_dict(self) -> dict:
        return {
            "results": [r.to_dict() for r in self.results],
            "matched": self.matched,
            "total": self.total,
            "confidence": round(self.confidence, 4),
            "matches": self.matches(),
        }


# =============================================================================
# PARSING
# =============================================================================


def parse_relationship(text: str) -> Relationship:
    """
    Parse "1>2", " 2 < 3 " or "point1 > point2".

    Raises:
        PatternDefinitionError: On unknown syntax, point numbers below 1,
            or a point compared with itself
    """
    match = _RELATIONSHIP_RE.match(text or "")
    if not match:
        raise PatternDefinitionError(
            "Relationships",
            f"Cannot parse relationship '{text}'",
            {"expected": "e.g. '1>2', '2<3', '1=4'"},
        )

    left, op, right = int(match.group(1)), match.group(2), int(match.group(3))
    if left < 1 or right < 1:
        raise PatternDefinitionError("Relationships", f"Point numbers start at 1: '{text}'")
    if left == right:
        raise PatternDefinitionError("Relationships", f"Point compared with itself: '{text}'")

    return Relationship(left, Comparison(op), right)


def parse_relationships(texts: Sequence[str]) -> list[Relationship]:
    return [parse_relationship(t) for t in texts]


def required_points(relationships: Sequence[Relationship]) -> int:
    """Highest point number referenced (0 for an empty list)."""
    return max((max(r.left, r.right) for r in relationships), default=0)


# =============================================================================
# COMPARISON
# =============================================================================


def compare_prices(
    a: float,
    b: float,
    tolerance_percent: float = 0.0,
    abs_tolerance: float = 0.0,
) -> Comparison:
    """
    Classify a vs b.

    Prices within max(abs_tolerance, max(|a|, |b|) * tolerance_percent / 100)
    of each other compare equal.
    """
    tolerance = max(abs_tolerance, max(abs(a), abs(b)) * tolerance_percent / 100)
    if abs(a - b) <= tolerance:
        return Comparison.EQUAL
    return Comparison.GREATER if a > b else Comparison.LESS


def derive_relationships(
    prices: Sequence[float],
    tolerance_percent: float = 0.0,
    abs_tolerance: float = 0.0,
) -> list[Relationship]:
    """
    Describe a point sequence as relationships.

    Adjacent pairs (1-2, 2-3, ...) plus first-vs-last when there are more
    than two points.
    """
    n = len(prices)
    pairs = [(i, i + 1) for i in range(1, n)]
    if n > 2:
        pairs.append((1, n))

    return [
        Relationship(
            left,
            compare_prices(prices[left - 1], prices[right - 1], tolerance_percent, abs_tolerance),
            right,
        )
        for left, right in pairs
    ]


def evaluate_relationships(
    prices: Sequence[float],
    relationships: Sequence[Relationship],
    tolerance_percent: float = 0.0,
    abs_tolerance: float = 0.0,
) -> RelationshipEvaluation:
    """Check every relationship and report per-relationship results."""
    needed = required_points(relationships)
    if needed > len(prices):
        raise PatternDefinitionError(
            "Relationships",
            f"Relationships reference point {needed} but only {len(prices)} points were given",
        )

    results = []
    for rel in relationships:
        a, b = prices[rel.left - 1], prices[rel.right - 1]
        actual = compare_prices(a, b, tolerance_percent, abs_tolerance)
        results.append(
            RelationshipResult(
                relationship=str(rel),
                expected=rel.op.value,
                actual=actual.value,
                satisfied=actual == rel.op,
                left_price=float(a),
                right_price=float(b),
            )
        )

    return RelationshipEvaluation(
        results=results,
        matched=sum(1 for r in results if r.satisfied),
        total=len(results),
    )


def match_fraction(
    prices: Sequence[float],
    relationships: Sequence[Relationship],
    tolerance_percent: float = 0.0,
    abs_tolerance: float = 0.0,
) -> float:
    """Fraction of relationships that hold (0.0 for an empty list)."""
    if not relationships:
        return 0.0
    held = sum(1 for r in relationships if r.holds(prices, tolerance_percent, abs_tolerance))
    return held / len(relationships)


# =============================================================================
# NORMALIZATION (captured user points)
# =============================================================================


def normalize_points(points: Sequence[dict]) -> list[dict]:
    """
    Map selected points to relative 0-1 price/time coordinates.

    Each point needs "price" and "timestamp"; "label" is optional.
    A flat price or time range maps to 0.
    """
    if not points:
        return []

    prices = [float(p["price"]) for p in points]
    times = [int(p["timestamp"]) for p in points]
    lo_price, hi_price = min(prices), max(prices)
    lo_time, hi_time = min(times), max(times)
    price_range = hi_price - lo_price
    time_range = hi_time - lo_time

    normalized = []
    for i, (point, price, ts) in enumerate(zip(points, prices, times), start=1):
        normalized.append(
            {
                "point_number": i,
                "price": price,
                "timestamp": ts,
                "relative_price": round((price - lo_price) / price_range, 6) if price_range else 0.0,
                "relative_time": round((ts - lo_time) / time_range, 6) if time_range else 0.0,
                "label": point.get("label") or f"P{i}",
            }
        )

    return normalized


def describe(relationships: Sequence[Relationship]) -> list[str]:
    return [str(r) for r in relationships]
