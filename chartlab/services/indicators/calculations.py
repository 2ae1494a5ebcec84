"""
Technical Indicator Calculations

Pure NumPy implementations of technical indicators.

Every series function returns a float array the same length as its input,
with NaN during warm-up. Smoothing functions skip leading NaNs, so they can
be chained (the MACD signal line is an EMA of the MACD line).
"""

from typing import Optional, Sequence, Union

import numpy as np

ArrayLike = Union[np.ndarray, Sequence[float]]


# =============================================================================
# INPUT CHECKS
# =============================================================================


def _as_array(data: ArrayLike) -> np.ndarray:
    return np.asarray(data, dtype=float)


def _check_period(period: int, label: str = "period") -> None:
    if int(period) != period or period < 1:
        raise ValueError(f"{label} must be a positive integer, got {period}")


def _check_lengths(*arrays: np.ndarray) -> None:
    lengths = {len(a) for a in arrays}
    if len(lengths) > 1:
        raise ValueError(f"input arrays differ in length: {sorted(lengths)}")


def _first_valid(data: np.ndarray) -> Optional[int]:
    valid = np.flatnonzero(~np.isnan(data))
    return int(valid[0]) if len(valid) else None


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: ArrayLike, period: int) -> np.ndarray:
    """Simple Moving Average."""
    _check_period(period)
    data = _as_array(data)
    result = np.full(len(data), np.nan)
    if len(data) < period:
        return result

    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def ema(data: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential Moving Average.

    Seeded with the SMA of the first `period` valid values.
    """
    _check_period(period)
    data = _as_array(data)
    result = np.full(len(data), np.nan)

    start = _first_valid(data)
    if start is None or len(data) - start < period:
        return result

    multiplier = 2 / (period + 1)
    seed = start + period - 1
    result[seed] = np.mean(data[start : seed + 1])

    for i in range(seed + 1, len(data)):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result


def wma(data: ArrayLike, period: int) -> np.ndarray:
    """Weighted Moving Average (newest value weighted highest)."""
    _check_period(period)
    data = _as_array(data)
    result = np.full(len(data), np.nan)
    if len(data) < period:
        return result

    weights = np.arange(1, period + 1)
    weight_sum = np.sum(weights)
    for i in range(period - 1, len(data)):
        result[i] = np.sum(data[i - period + 1 : i + 1] * weights) / weight_sum

    return result


def wilder_smooth(data: ArrayLike, period: int) -> np.ndarray:
    """Wilder's running moving average (RMA), seeded with an SMA."""
    _check_period(period)
    data = _as_array(data)
    result = np.full(len(data), np.nan)

    start = _first_valid(data)
    if start is None or len(data) - start < period:
        return result

    seed = start + period - 1
    result[seed] = np.mean(data[start : seed + 1])

    for i in range(seed + 1, len(data)):
        result[i] = (result[i - 1] * (period - 1) + data[i]) / period

    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def rsi(closes: ArrayLike, period: int = 14) -> np.ndarray:
    """Relative Strength Index (Wilder smoothing)."""
    _check_period(period)
    closes = _as_array(closes)
    result = np.full(len(closes), np.nan)
    if len(closes) < period + 1:
        return result

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = np.mean(gains[:period])
    avg_loss = np.mean(losses[:period])
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_value(avg_gain, avg_loss)

    return result


def macd(
    closes: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Returns: (macd_line, signal_line, histogram)
    """
    _check_period(fast_period, "fast_period")
    _check_period(slow_period, "slow_period")
    _check_period(signal_period, "signal_period")
    if fast_period >= slow_period:
        raise ValueError(
            f"fast_period ({fast_period}) must be below slow_period ({slow_period})"
        )

    closes = _as_array(closes)
    macd_line = ema(closes, fast_period) - ema(closes, slow_period)
    signal_line = ema(macd_line, signal_period)
    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


def stochastic(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic Oscillator.

    Returns: (k, d)
    """
    _check_period(k_period, "k_period")
    _check_period(d_period, "d_period")
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    _check_lengths(highs, lows, closes)

    k = np.full(len(closes), np.nan)
    if len(closes) < k_period:
        return k, np.full(len(closes), np.nan)

    for i in range(k_period - 1, len(closes)):
        highest_high = np.max(highs[i - k_period + 1 : i + 1])
        lowest_low = np.min(lows[i - k_period + 1 : i + 1])

        if highest_high == lowest_low:
            k[i] = 50
        else:
            k[i] = ((closes[i] - lowest_low) / (highest_high - lowest_low)) * 100

    d = sma(k, d_period)

    return k, d


def cci(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 20
) -> np.ndarray:
    """Commodity Channel Index."""
    _check_period(period)
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    _check_lengths(highs, lows, closes)

    typical_price = (highs + lows + closes) / 3
    tp_sma = sma(typical_price, period)

    mean_dev = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        mean_dev[i] = np.mean(
            np.abs(typical_price[i - period + 1 : i + 1] - tp_sma[i])
        )

    with np.errstate(divide="ignore", invalid="ignore"):
        result = (typical_price - tp_sma) / (0.015 * mean_dev)
    result[mean_dev == 0] = 0.0
    return result


def williams_r(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14
) -> np.ndarray:
    """Williams %R."""
    _check_period(period)
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    _check_lengths(highs, lows, closes)

    result = np.full(len(closes), np.nan)
    if len(closes) < period:
        return result

    for i in range(period - 1, len(closes)):
        highest_high = np.max(highs[i - period + 1 : i + 1])
        lowest_low = np.min(lows[i - period + 1 : i + 1])

        if highest_high == lowest_low:
            result[i] = -50
        else:
            result[i] = ((highest_high - closes[i]) / (highest_high - lowest_low)) * -100

    return result


def mfi(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    volumes: ArrayLike,
    period: int = 14,
) -> np.ndarray:
    """Money Flow Index."""
    _check_period(period)
    highs, lows = _as_array(highs), _as_array(lows)
    closes, volumes = _as_array(closes), _as_array(volumes)
    _check_lengths(highs, lows, closes, volumes)

    typical_price = (highs + lows + closes) / 3
    raw_money_flow = typical_price * volumes

    pos_flow = np.zeros(len(closes))
    neg_flow = np.zeros(len(closes))

    for i in range(1, len(closes)):
        if typical_price[i] > typical_price[i - 1]:
            pos_flow[i] = raw_money_flow[i]
        elif typical_price[i] < typical_price[i - 1]:
            neg_flow[i] = raw_money_flow[i]

    result = np.full(len(closes), np.nan)

    for i in range(period, len(closes)):
        pos_sum = np.sum(pos_flow[i - period + 1 : i + 1])
        neg_sum = np.sum(neg_flow[i - period + 1 : i + 1])

        if neg_sum == 0:
            result[i] = 50.0 if pos_sum == 0 else 100.0
        else:
            money_ratio = pos_sum / neg_sum
            result[i] = 100 - (100 / (1 + money_ratio))

    return result


def roc(closes: ArrayLike, period: int = 12) -> np.ndarray:
    """Rate of Change, in percent against the close `period` bars back."""
    _check_period(period)
    closes = _as_array(closes)
    result = np.full(len(closes), np.nan)

    for i in range(period, len(closes)):
        previous = closes[i - period]
        if previous != 0:
            result[i] = (closes[i] - previous) / previous * 100

    return result


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def true_range(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """True Range. The first bar has no previous close, so TR = high - low."""
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    _check_lengths(highs, lows, closes)

    tr = np.zeros(len(closes))
    if len(closes) == 0:
        return tr
    tr[0] = highs[0] - lows[0]

    for i in range(1, len(closes)):
        tr[i] = max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )

    return tr


def atr(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14
) -> np.ndarray:
    """Average True Range (Wilder smoothing of TR)."""
    _check_period(period)
    return wilder_smooth(true_range(highs, lows, closes), period)


def bollinger_bands(
    closes: ArrayLike, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands (population standard deviation).

    Returns: (upper, middle, lower, bandwidth, percent_b)
    """
    _check_period(period)
    closes = _as_array(closes)
    middle = sma(closes, period)

    std = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        std[i] = np.std(closes[i - period + 1 : i + 1])

    upper = middle + (std_dev * std)
    lower = middle - (std_dev * std)
    width = upper - lower

    with np.errstate(divide="ignore", invalid="ignore"):
        bandwidth = np.where(middle != 0, width / middle, np.nan)
        percent_b = np.where(width > 0, (closes - lower) / width, np.nan)

    return upper, middle, lower, bandwidth, percent_b


def historical_volatility(
    closes: ArrayLike, period: int = 20, periods_per_year: int = 252
) -> Optional[float]:
    """Annualized standard deviation of log returns over the last `period` bars, in %."""
    closes = _as_array(closes)
    if len(closes) < period + 1 or np.any(closes[-(period + 1):] <= 0):
        return None
    returns = np.diff(np.log(closes[-(period + 1):]))
    return float(np.std(returns) * np.sqrt(periods_per_year) * 100)


# =============================================================================
# VOLUME INDICATORS
# =============================================================================


def vwap(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    volumes: ArrayLike,
    sessions: Optional[Sequence] = None,
) -> np.ndarray:
    """
    Volume Weighted Average Price.

    Cumulative from the first bar, or from the start of each session when
    `sessions` labels are given (one label per bar).
    """
    highs, lows = _as_array(highs), _as_array(lows)
    closes, volumes = _as_array(closes), _as_array(volumes)
    _check_lengths(highs, lows, closes, volumes)
    if sessions is not None and len(sessions) != len(closes):
        raise ValueError("sessions must have one label per bar")

    typical_price = (highs + lows + closes) / 3
    tpv = typical_price * volumes
    result = np.full(len(closes), np.nan)

    cum_tpv = 0.0
    cum_vol = 0.0
    for i in range(len(closes)):
        if sessions is not None and i > 0 and sessions[i] != sessions[i - 1]:
            cum_tpv = 0.0
            cum_vol = 0.0
        cum_tpv += tpv[i]
        cum_vol += volumes[i]
        result[i] = cum_tpv / cum_vol if cum_vol > 0 else typical_price[i]

    return result


def obv(closes: ArrayLike, volumes: ArrayLike) -> np.ndarray:
    """On-Balance Volume."""
    closes, volumes = _as_array(closes), _as_array(volumes)
    _check_lengths(closes, volumes)

    result = np.zeros(len(closes))
    if len(closes) == 0:
        return result
    result[0] = volumes[0]

    for i in range(1, len(closes)):
        if closes[i] > closes[i - 1]:
            result[i] = result[i - 1] + volumes[i]
        elif closes[i] < closes[i - 1]:
            result[i] = result[i - 1] - volumes[i]
        else:
            result[i] = result[i - 1]

    return result


# =============================================================================
# TREND INDICATORS
# =============================================================================


def adx(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Average Directional Index (Wilder).

    +DI/-DI start at index `period`, ADX at index `2 * period - 1`.

    Returns: (adx, plus_di, minus_di)
    """
    _check_period(period)
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    _check_lengths(highs, lows, closes)

    n = len(closes)
    if n < period + 1:
        return np.full(n, np.nan), np.full(n, np.nan), np.full(n, np.nan)

    plus_dm = np.full(n, np.nan)
    minus_dm = np.full(n, np.nan)

    for i in range(1, n):
        up_move = highs[i] - highs[i - 1]
        down_move = lows[i - 1] - lows[i]
        plus_dm[i] = up_move if up_move > down_move and up_move > 0 else 0.0
        minus_dm[i] = down_move if down_move > up_move and down_move > 0 else 0.0

    # Bar 0 has no directional movement; drop its TR so all three align
    tr = true_range(highs, lows, closes)
    tr[0] = np.nan

    smoothed_plus_dm = wilder_smooth(plus_dm, period)
    smoothed_minus_dm = wilder_smooth(minus_dm, period)
    smoothed_tr = wilder_smooth(tr, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = 100 * (smoothed_plus_dm / smoothed_tr)
        minus_di = 100 * (smoothed_minus_dm / smoothed_tr)
    flat = smoothed_tr == 0
    plus_di[flat] = 0.0
    minus_di[flat] = 0.0

    di_sum = plus_di + minus_di
    with np.errstate(divide="ignore", invalid="ignore"):
        dx = 100 * np.abs(plus_di - minus_di) / di_sum
    dx[di_sum == 0] = 0.0

    adx_result = wilder_smooth(dx, period)

    return adx_result, plus_di, minus_di


def psar(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: Optional[ArrayLike] = None,
    step: float = 0.02,
    max_step: float = 0.2,
) -> np.ndarray:
    """
    Parabolic Stop-And-Reverse (Wilder).

    The first trend is up when close[1] >= close[0]. In an uptrend the SAR
    never rises above the two previous lows; in a downtrend it never falls
    below the two previous highs. Index 0 is NaN.
    """
    if step <= 0 or max_step < step:
        raise ValueError(f"invalid acceleration: step={step}, max_step={max_step}")

    highs, lows = _as_array(highs), _as_array(lows)
    closes = (highs + lows) / 2 if closes is None else _as_array(closes)
    _check_lengths(highs, lows, closes)

    n = len(closes)
    result = np.full(n, np.nan)
    if n < 2:
        return result

    uptrend = closes[1] >= closes[0]
    af = step
    sar = lows[0] if uptrend else highs[0]
    ep = highs[0] if uptrend else lows[0]

    for i in range(1, n):
        sar = sar + af * (ep - sar)
        prior = slice(max(i - 2, 0), i)

        if uptrend:
            sar = min(sar, np.min(lows[prior]))
            if lows[i] <= sar:
                uptrend = False
                sar = max(ep, highs[i])
                ep = lows[i]
                af = step
            elif highs[i] > ep:
                ep = highs[i]
                af = min(af + step, max_step)
        else:
            sar = max(sar, np.max(highs[prior]))
            if highs[i] >= sar:
                uptrend = True
                sar = min(ep, lows[i])
                ep = highs[i]
                af = step
            elif lows[i] < ep:
                ep = lows[i]
                af = min(af + step, max_step)

        result[i] = sar

    return result


# =============================================================================
# SUPPORT/RESISTANCE
# =============================================================================


def find_pivot_points(
    high: float, low: float, close: float, pivot_type: str = "standard"
) -> dict:
    """
    Calculate pivot points.

    Types: standard, fibonacci, camarilla
    """
    pivot = (high + low + close) / 3
    diff = high - low

    if pivot_type == "standard":
        r1, s1 = 2 * pivot - low, 2 * pivot - high
        r2, s2 = pivot + diff, pivot - diff
        r3, s3 = high + 2 * (pivot - low), low - 2 * (high - pivot)
    elif pivot_type == "fibonacci":
        r1, s1 = pivot + 0.382 * diff, pivot - 0.382 * diff
        r2, s2 = pivot + 0.618 * diff, pivot - 0.618 * diff
        r3, s3 = pivot + diff, pivot - diff
    elif pivot_type == "camarilla":
        r1, s1 = close + diff * 1.1 / 12, close - diff * 1.1 / 12
        r2, s2 = close + diff * 1.1 / 6, close - diff * 1.1 / 6
        r3, s3 = close + diff * 1.1 / 4, close - diff * 1.1 / 4
    else:
        raise ValueError(f"Unknown pivot type: {pivot_type}")

    levels = {"pivot": pivot, "r1": r1, "r2": r2, "r3": r3, "s1": s1, "s2": s2, "s3": s3}
    return {**{k: round(float(v), 2) for k, v in levels.items()}, "type": pivot_type}


def _is_local_extreme(values: np.ndarray, i: int, width: int, highest: bool) -> bool:
    neighbours = np.concatenate([values[i - width : i], values[i + 1 : i + width + 1]])
    if highest:
        return bool(np.all(values[i] > neighbours))
    return bool(np.all(values[i] < neighbours))


def find_support_resistance(
    highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, lookback: int = 50
) -> tuple[list[float], list[float]]:
    """
    Nearest support/resistance from 2-bar local extremes in the last `lookback` bars.

    Returns: (support_levels, resistance_levels), at most five each,
    ordered nearest-first.
    """
    highs, lows, closes = _as_array(highs), _as_array(lows), _as_array(closes)
    if len(closes) < lookback:
        return [], []

    recent_highs = highs[-lookback:]
    recent_lows = lows[-lookback:]
    current_price = closes[-1]

    resistance = {
        round(float(recent_highs[i]), 2)
        for i in range(2, lookback - 2)
        if _is_local_extreme(recent_highs, i, 2, highest=True) and recent_highs[i] > current_price
    }
    support = {
        round(float(recent_lows[i]), 2)
        for i in range(2, lookback - 2)
        if _is_local_extreme(recent_lows, i, 2, highest=False) and recent_lows[i] < current_price
    }

    return sorted(support, reverse=True)[:5], sorted(resistance)[:5]


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Get last non-NaN value from array."""
    arr = _as_array(arr)
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None


def crossovers(a: ArrayLike, b: ArrayLike) -> list[tuple[int, str]]:
    """
    Indices where series `a` crosses series `b`.

    Returns (index, "above" | "below") pairs. A pair of bars where either
    series is NaN never produces a crossing.
    """
    a, b = _as_array(a), _as_array(b)
    if b.ndim == 0:
        b = np.full(len(a), float(b))
    _check_lengths(a, b)

    events = []
    for i in range(1, len(a)):
        window = (a[i - 1], b[i - 1], a[i], b[i])
        if any(np.isnan(v) for v in window):
            continue
        if a[i - 1] <= b[i - 1] and a[i] > b[i]:
            events.append((i, "above"))
        elif a[i - 1] >= b[i - 1] and a[i] < b[i]:
            events.append((i, "below"))
    return events


def detect_divergence(
    prices: ArrayLike, indicator: ArrayLike, lookback: int = 14
) -> Optional[str]:
    """
    Detect bullish or bearish divergence over the last `lookback` bars.

    Returns: 'BULLISH', 'BEARISH', or None
    """
    prices, indicator = _as_array(prices), _as_array(indicator)
    if len(prices) < lookback or len(indicator) < lookback:
        return None

    recent_prices = prices[-lookback:]
    recent_indicator = indicator[-lookback:]
    valid_indicator = recent_indicator[~np.isnan(recent_indicator)]
    if len(valid_indicator) < 2:
        return None

    price_trend = recent_prices[-1] - recent_prices[0]
    indicator_trend = valid_indicator[-1] - valid_indicator[0]

    # Price falling while the oscillator rises, or the reverse
    if price_trend < 0 and indicator_trend > 0:
        return "BULLISH"
    if price_trend > 0 and indicator_trend < 0:
        return "BEARISH"

    return None
