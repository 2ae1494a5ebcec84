"""
Signal Detectors

Latest-bar technical signals: EMA/MACD crossovers, RSI extremes,
Bollinger squeezes, breakouts and volume spikes.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np

from chartlab.schemas.signals import DetectorType
from chartlab.services.candles import CandleArrays
from chartlab.services.indicators.calculations import (
    atr,
    bollinger_bands,
    ema,
    macd,
    rsi,
)

logger = logging.getLogger(__name__)


class SignalStrength(str, Enum):
    """Signal strength levels."""
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERY_STRONG = "very_strong"


@dataclass
class SignalResult:
    """Result of one detector on the latest bar."""
    detected: bool
    signal_type: str
    signal: str  # BULLISH, BEARISH, NEUTRAL
    strength: SignalStrength
    score: float  # 0-100
    details: dict[str, Any]
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    target: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["strength"] = self.strength.value
        return data


def _calculate_strength(score: float) -> SignalStrength:
    """Convert score to signal strength."""
    if score >= 80:
        return SignalStrength.VERY_STRONG
    elif score >= 60:
        return SignalStrength.STRONG
    elif score >= 40:
        return SignalStrength.MODERATE
    return SignalStrength.WEAK


def _neutral(signal_type: str, details: dict, signal: str = "NEUTRAL") -> SignalResult:
    return SignalResult(False, signal_type, signal, SignalStrength.WEAK, 0.0, details)


def _hit(signal_type: str, signal: str, score: float, details: dict, **levels) -> SignalResult:
    score = round(float(min(100.0, max(0.0, score))), 2)
    return SignalResult(True, signal_type, signal, _calculate_strength(score), score, details, **levels)


INSUFFICIENT = {"error": "Insufficient data"}


# =============================================================================
# DETECTORS
# =============================================================================


def detect_ema_crossover(
    closes: np.ndarray, fast_period: int = 9, slow_period: int = 21
) -> SignalResult:
    """
    Golden cross: fast EMA crosses above slow EMA.
    Death cross: fast EMA crosses below slow EMA.
    """
    kind = DetectorType.EMA_CROSSOVER.value
    if len(closes) < slow_period + 5:
        return _neutral(kind, INSUFFICIENT)

    fast_ema = ema(closes, fast_period)
    slow_ema = ema(closes, slow_period)
    fast, slow = fast_ema[-1], slow_ema[-1]
    prev_fast, prev_slow = fast_ema[-2], slow_ema[-2]
    price = float(closes[-1])

    separation = abs(fast - slow) / slow * 100
    details = {
        "fast_ema": round(fast, 2),
        "slow_ema": round(slow, 2),
        "separation_percent": round(separation, 2),
        "fast_period": fast_period,
        "slow_period": slow_period,
    }

    if prev_fast <= prev_slow and fast > slow:
        return _hit(
            kind, "BULLISH", 60 + separation * 10,
            {**details, "crossover_type": "golden_cross"},
            entry_price=price, stop_loss=round(slow * 0.98, 2),
        )
    if prev_fast >= prev_slow and fast < slow:
        return _hit(
            kind, "BEARISH", 60 + separation * 10,
            {**details, "crossover_type": "death_cross"},
            entry_price=price, stop_loss=round(slow * 1.02, 2),
        )

    # No cross: report the EMA stack as a trend hint
    trend = "BULLISH" if price > fast > slow else "BEARISH" if price < fast < slow else "NEUTRAL"
    return _neutral(kind, {**details, "price_vs_emas": trend}, signal=trend)


def detect_macd_crossover(
    closes: np.ndarray, fast: int = 12, slow: int = 26, signal_period: int = 9
) -> SignalResult:
    """MACD line crossing its signal line; stronger on the right side of zero."""
    kind = DetectorType.MACD_CROSSOVER.value
    if len(closes) < slow + signal_period + 5:
        return _neutral(kind, INSUFFICIENT)

    macd_line, signal_line, histogram = macd(closes, fast, slow, signal_period)
    current, prev = macd_line[-1], macd_line[-2]
    current_signal, prev_signal = signal_line[-1], signal_line[-2]
    expanding = abs(histogram[-1]) > abs(histogram[-2])
    details = {
        "macd": round(current, 4),
        "signal": round(current_signal, 4),
        "histogram": round(histogram[-1], 4),
        "histogram_expanding": bool(expanding),
    }
    momentum_bonus = 10 if expanding else 0

    if prev <= prev_signal and current > current_signal:
        zero_bonus = 15 if current > 0 else 0
        return _hit(kind, "BULLISH", 55 + zero_bonus + momentum_bonus,
                    {**details, "above_zero": bool(current > 0)}, entry_price=float(closes[-1]))
    if prev >= prev_signal and current < current_signal:
        zero_bonus = 15 if current < 0 else 0
        return _hit(kind, "BEARISH", 55 + zero_bonus + momentum_bonus,
                    {**details, "below_zero": bool(current < 0)}, entry_price=float(closes[-1]))

    return _neutral(kind, details)


def detect_rsi_extreme(
    closes: np.ndarray, period: int = 14, overbought: float = 70, oversold: float = 30
) -> SignalResult:
    """RSI in (or turning out of) the overbought/oversold zones."""
    kind = DetectorType.RSI_EXTREME.value
    if len(closes) < period + 5:
        return _neutral(kind, INSUFFICIENT)

    rsi_values = rsi(closes, period)
    current, prev = rsi_values[-1], rsi_values[-2]
    price = float(closes[-1])

    turning_up = prev < oversold and current > prev
    turning_down = prev > overbought and current < prev

    if current <= oversold or turning_up:
        score = 50 + max(0, oversold - current) * 2 + (15 if turning_up else 0)
        return _hit(kind, "BULLISH", score, {
            "rsi": round(current, 2),
            "condition": "oversold",
            "turning_up": bool(turning_up),
            "threshold": oversold,
        }, entry_price=price)
    if current >= overbought or turning_down:
        score = 50 + max(0, current - overbought) * 2 + (15 if turning_down else 0)
        return _hit(kind, "BEARISH", score, {
            "rsi": round(current, 2),
            "condition": "overbought",
            "turning_down": bool(turning_down),
            "threshold": overbought,
        }, entry_price=price)

    return _neutral(kind, {"rsi": round(current, 2), "condition": "neutral"})


def detect_bollinger_squeeze(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> SignalResult:
    """Bandwidth below 70% of its recent average (low volatility before a move)."""
    kind = DetectorType.BB_SQUEEZE.value
    if len(closes) < period + 10:
        return _neutral(kind, INSUFFICIENT)

    upper, _, lower, bandwidth, percent_b = bollinger_bands(closes, period, std_dev)
    current_bw = bandwidth[-1]
    avg_bw = float(np.nanmean(bandwidth[-50:]))

    if avg_bw > 0 and current_bw < avg_bw * 0.7:
        pb = percent_b[-1]
        signal = "BULLISH" if pb > 0.5 else "BEARISH" if pb < 0.5 else "NEUTRAL"
        intensity = (1 - current_bw / avg_bw) * 100
        return _hit(kind, signal, 50 + intensity, {
            "bandwidth": round(current_bw, 4),
            "avg_bandwidth": round(avg_bw, 4),
            "squeeze_intensity": round(intensity, 2),
            "percent_b": round(pb, 2) if np.isfinite(pb) else None,
            "upper_band": round(upper[-1], 2),
            "lower_band": round(lower[-1], 2),
        }, entry_price=float(closes[-1]))

    return _neutral(kind, {"bandwidth": round(current_bw, 4), "avg_bandwidth": round(avg_bw, 4)})


def detect_breakout(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    volumes: np.ndarray,
    lookback: int = 20,
) -> SignalResult:
    """Close beyond the recent range on 1.5x average volume."""
    kind = DetectorType.BREAKOUT.value
    if len(closes) < lookback + 5:
        return _neutral(kind, INSUFFICIENT)

    price = float(closes[-1])
    volume = float(volumes[-1])

    # Range excludes the last 3 bars so the breakout bar is not its own level
    recent_high = float(np.max(highs[-lookback:-3]))
    recent_low = float(np.min(lows[-lookback:-3]))
    avg_volume = float(np.mean(volumes[-lookback:-1]))

    atr_val = atr(highs, lows, closes, 14)[-1]
    current_atr = atr_val if np.isfinite(atr_val) else float(highs[-1] - lows[-1])
    range_details = {
        "recent_high": round(recent_high, 2),
        "recent_low": round(recent_low, 2),
        "current_price": round(price, 2),
    }

    if avg_volume <= 0 or volume <= avg_volume * 1.5:
        return _neutral(kind, range_details)

    volume_ratio = volume / avg_volume
    if price > recent_high:
        extension = (price - recent_high) / recent_high * 100
        return _hit(kind, "BULLISH", 50 + (volume_ratio - 1.5) * 20 + extension * 10, {
            "breakout_level": round(recent_high, 2),
            "current_price": round(price, 2),
            "volume_ratio": round(volume_ratio, 2),
            "price_extension_percent": round(extension, 2),
        },
            entry_price=price,
            stop_loss=round(recent_high - current_atr, 2),
            target=round(price + (price - recent_high) * 2, 2),
        )
    if price < recent_low:
        extension = (recent_low - price) / recent_low * 100
        return _hit(kind, "BEARISH", 50 + (volume_ratio - 1.5) * 20 + extension * 10, {
            "breakdown_level": round(recent_low, 2),
            "current_price": round(price, 2),
            "volume_ratio": round(volume_ratio, 2),
            "price_extension_percent": round(extension, 2),
        },
            entry_price=price,
            stop_loss=round(recent_low + current_atr, 2),
            target=round(price - (recent_low - price) * 2, 2),
        )

    return _neutral(kind, range_details)


def detect_volume_spike(
    closes: np.ndarray,
    volumes: np.ndarray,
    lookback: int = 20,
    spike_threshold: float = 2.0,
) -> SignalResult:
    """Volume at least spike_threshold x its recent average."""
    kind = DetectorType.VOLUME_SPIKE.value
    if len(volumes) < lookback + 1:
        return _neutral(kind, INSUFFICIENT)

    volume = float(volumes[-1])
    avg_volume = float(np.mean(volumes[-lookback:-1]))
    std_volume = float(np.std(volumes[-lookback:-1]))
    if avg_volume <= 0:
        return _neutral(kind, {"avg_volume": 0.0})

    ratio = volume / avg_volume
    if ratio < spike_threshold:
        return _neutral(kind, {"volume_ratio": round(ratio, 2), "avg_volume": round(avg_volume, 2)})

    price_change = (closes[-1] - closes[-2]) / closes[-2] * 100
    signal = "BULLISH" if price_change > 0.5 else "BEARISH" if price_change < -0.5 else "NEUTRAL"
    z_score = (volume - avg_volume) / std_volume if std_volume > 0 else 0.0

    return _hit(kind, signal, 30 + (ratio - 2) * 15 + abs(price_change) * 5, {
        "volume_ratio": round(ratio, 2),
        "z_score": round(z_score, 2),
        "current_volume": volume,
        "avg_volume": round(avg_volume, 2),
        "price_change_percent": round(float(price_change), 2),
    }, entry_price=float(closes[-1]) if signal != "NEUTRAL" else None)


# =============================================================================
# SCAN
# =============================================================================


def run_detector(detector: DetectorType, a: CandleArrays) -> SignalResult:
    runners = {
        DetectorType.EMA_CROSSOVER: lambda: detect_ema_crossover(a.closes),
        DetectorType.MACD_CROSSOVER: lambda: detect_macd_crossover(a.closes),
        DetectorType.RSI_EXTREME: lambda: detect_rsi_extreme(a.closes),
        DetectorType.BB_SQUEEZE: lambda: detect_bollinger_squeeze(a.closes),
        DetectorType.BREAKOUT: lambda: detect_breakout(a.highs, a.lows, a.closes, a.volumes),
        DetectorType.VOLUME_SPIKE: lambda: detect_volume_spike(a.closes, a.volumes),
    }
    return runners[detector]()


def scan_signals(
    a: CandleArrays,
    detectors: Optional[Sequence[DetectorType]] = None,
    min_score: float = 0.0,
) -> dict:
    """
    Run detectors on the latest bar and summarise.

    Returns the detected signals (score >= min_score), their total score
    and the dominant direction by count.
    """
    detectors = list(detectors) if detectors else list(DetectorType)

    found = []
    for detector in detectors:
        result = run_detector(detector, a)
        if result.detected and result.score >= min_score:
            found.append(result)

    bullish = sum(1 for r in found if r.signal == "BULLISH")
    bearish = sum(1 for r in found if r.signal == "BEARISH")
    dominant = "BULLISH" if bullish > bearish else "BEARISH" if bearish > bullish else "NEUTRAL"

    logger.debug("Signal scan: %d of %d detectors fired", len(found), len(detectors))
    return {
        "current_price": float(a.closes[-1]),
        "signals": [r.to_dict() for r in found],
        "total_score": round(sum(r.score for r in found), 2),
        "dominant_signal": dominant,
        "detectors_run": [d.value for d in detectors],
    }
