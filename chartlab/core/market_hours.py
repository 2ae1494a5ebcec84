"""
Market Hours Utility

Session-open lookup for intraday candle series.
"""

from datetime import datetime
from typing import Optional, Sequence

import pytz

from chartlab.core.config import settings


def get_market_timezone(name: Optional[str] = None):
    """Resolve a pytz timezone, defaulting to the configured market zone."""
    return pytz.timezone(name or settings.market_timezone)


def to_market_time(timestamp: int, tz=None) -> datetime:
    """Convert epoch seconds to an aware datetime in the market timezone."""
    tz = tz or get_market_timezone()
    return datetime.fromtimestamp(int(timestamp), tz=pytz.utc).astimezone(tz)


def market_open_index(
    timestamps: Sequence[int],
    tz=None,
    open_time: Optional[str] = None,
) -> int:
    """
    Index of the first candle at or after the session open.

    The session date is taken from the first candle. Returns 0 when no
    candle on that date reaches the open.
    """
    if len(timestamps) == 0:
        return 0

    tz = tz or get_market_timezone()
    open_time = open_time or settings.market_open
    hour, minute = (int(part) for part in open_time.split(":"))

    first = to_market_time(timestamps[0], tz)
    session_date = first.date()
    session_open = tz.localize(
        datetime(session_date.year, session_date.month, session_date.day, hour, minute)
    )

    for i, ts in enumerate(timestamps):
        dt = to_market_time(ts, tz)
        if dt.date() != session_date:
            break
        if dt >= session_open:
            return i

    return 0


def session_labels(timestamps: Sequence[int], tz=None) -> list[str]:
    """Trading-date label per candle, used to reset session VWAP."""
    tz = tz or get_market_timezone()
    return [to_market_time(ts, tz).strftime("%Y-%m-%d") for ts in timestamps]
