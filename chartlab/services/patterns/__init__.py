"""
Pattern Service

Matches ordered point relationships ("1>2", "2<3", "1=4") against
user-selected points, ZigZag swing points and intraday candle blocks, and
recognises classic chart patterns.
"""

from chartlab.services.patterns.service import PatternService, get_pattern_service

__all__ = ["PatternService", "get_pattern_service"]
