"""
Trading Strategies for Backtesting

Each strategy precomputes its indicator series once in prepare(), then
emits a BUY, SELL or HOLD signal per bar from those series. Every series
is causal, so bar idx never sees data after idx.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np

from chartlab.schemas.backtest import StrategyType
from chartlab.services.base import ValidationError
from chartlab.services.candles import CandleArrays
from chartlab.services.indicators.calculations import atr, ema, macd, rsi


class SignalType(str, Enum):
    """Trading signal types."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass
class Signal:
    """Trading signal from strategy."""
    signal_type: SignalType
    price: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reason: str = ""


class Strategy(ABC):
    """Base class for trading strategies."""

    key: str = ""
    label: str = ""
    description: str = ""
    # (name, type, default, description)
    PARAMS: tuple[tuple[str, str, Any, str], ...] = ()

    def __init__(self, atr_multiplier: float = 2.0):
        if atr_multiplier <= 0:
            raise ValueError("atr_multiplier must be positive")
        self.atr_multiplier = atr_multiplier
        self._atr: Optional[np.ndarray] = None
        self._a: Optional[CandleArrays] = None

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def prepare(self, a: CandleArrays) -> None:
        """Precompute the series generate_signal reads."""
        self._a = a
        self._atr = atr(a.highs, a.lows, a.closes, period=14)
        self._prepare(a)

    @abstractmethod
    def _prepare(self, a: CandleArrays) -> None:
        pass

    @abstractmethod
    def generate_signal(self, idx: int, position: int) -> Signal:
        """
        Generate trading signal at index idx.

        Args:
            idx: Current bar index
            position: Current position (1=long, -1=short, 0=flat)

        Returns:
            Signal with BUY, SELL, or HOLD
        """
        pass

    def get_params(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name, *_ in self.PARAMS}

    @classmethod
    def info(cls) -> dict:
        return {
            "id": cls.key,
            "name": cls.label,
            "description": cls.description,
            "params": [
                {"name": n, "type": t, "default": d, "description": desc}
                for n, t, d, desc in cls.PARAMS
            ],
        }

    # -------------------------------------------------------------------------

    def _current_atr(self, idx: int) -> float:
        value = self._atr[idx]
        return float(value) if not np.isnan(value) else float(self._a.highs[idx] - self._a.lows[idx])

    def _hold(self, idx: int, reason: str) -> Signal:
        return Signal(SignalType.HOLD, float(self._a.closes[idx]), reason=reason)

    def _buy(self, idx: int, reason: str) -> Signal:
        price = float(self._a.closes[idx])
        risk = self._current_atr(idx) * self.atr_multiplier
        return Signal(SignalType.BUY, price, price - risk, price + risk * 2, reason)

    def _sell(self, idx: int, reason: str) -> Signal:
        price = float(self._a.closes[idx])
        risk = self._current_atr(idx) * self.atr_multiplier
        return Signal(SignalType.SELL, price, price + risk, price - risk * 2, reason)


def _crossed(prev_a: float, prev_b: float, a: float, b: float) -> Optional[str]:
    if any(np.isnan(v) for v in (prev_a, prev_b, a, b)):
        return None
    if prev_a <= prev_b and a > b:
        return "above"
    if prev_a >= prev_b and a < b:
        return "below"
    return None


class EMACrossoverStrategy(Strategy):
    """
    EMA Crossover Strategy

    Buy when fast EMA crosses above slow EMA.
    Sell when fast EMA crosses below slow EMA.
    """

    key = StrategyType.EMA_CROSSOVER.value
    label = "EMA Crossover"
    description = "Buy when fast EMA crosses above slow EMA. Sell on opposite cross."
    PARAMS = (
        ("fast_period", "int", 9, "Fast EMA period"),
        ("slow_period", "int", 21, "Slow EMA period"),
        ("atr_multiplier", "float", 2.0, "ATR multiplier for stop loss"),
    )

    def __init__(self, fast_period: int = 9, slow_period: int = 21, atr_multiplier: float = 2.0):
        super().__init__(atr_multiplier)
        if not 1 <= fast_period < slow_period:
            raise ValueError("Need 1 <= fast_period < slow_period")
        self.fast_period = fast_period
        self.slow_period = slow_period

    def _prepare(self, a: CandleArrays) -> None:
        self._fast = ema(a.closes, self.fast_period)
        self._slow = ema(a.closes, self.slow_period)

    def generate_signal(self, idx: int, position: int) -> Signal:
        if idx < self.slow_period + 1:
            return self._hold(idx, "Insufficient data")

        cross = _crossed(self._fast[idx - 1], self._slow[idx - 1], self._fast[idx], self._slow[idx])
        if cross == "above" and position <= 0:
            return self._buy(
                idx, f"Golden cross: EMA{self.fast_period} crossed above EMA{self.slow_period}"
            )
        if cross == "below" and position >= 0:
            return self._sell(
                idx, f"Death cross: EMA{self.fast_period} crossed below EMA{self.slow_period}"
            )
        return self._hold(idx, "No crossover")


class RSIReversalStrategy(Strategy):
    """
    RSI Reversal Strategy

    Buy when RSI climbs back above oversold.
    Sell when RSI drops back below overbought.
    """

    key = StrategyType.RSI_REVERSAL.value
    label = "RSI Reversal"
    description = "Buy when RSI crosses above oversold. Sell when RSI crosses below overbought."
    PARAMS = (
        ("period", "int", 14, "RSI period"),
        ("overbought", "float", 70, "Overbought level"),
        ("oversold", "float", 30, "Oversold level"),
        ("atr_multiplier", "float", 1.5, "ATR multiplier for stop loss"),
    )

    def __init__(
        self,
        period: int = 14,
        overbought: float = 70,
        oversold: float = 30,
        atr_multiplier: float = 1.5,
    ):
        super().__init__(atr_multiplier)
        if period < 1:
            raise ValueError("period must be >= 1")
        if not 0 < oversold < overbought < 100:
            raise ValueError("Need 0 < oversold < overbought < 100")
        self.period = period
        self.overbought = overbought
        self.oversold = oversold

    def _prepare(self, a: CandleArrays) -> None:
        self._rsi = rsi(a.closes, self.period)

    def generate_signal(self, idx: int, position: int) -> Signal:
        if idx < self.period + 2:
            return self._hold(idx, "Insufficient data")

        current, prev = self._rsi[idx], self._rsi[idx - 1]

        if prev < self.oversold <= current and position <= 0:
            return self._buy(idx, f"RSI crossed above oversold ({self.oversold}): {current:.1f}")
        if prev > self.overbought >= current and position >= 0:
            return self._sell(idx, f"RSI crossed below overbought ({self.overbought}): {current:.1f}")
        return self._hold(idx, f"RSI: {current:.1f}")


class BreakoutStrategy(Strategy):
    """
    Breakout Strategy

    Buy when price breaks above recent high with volume.
    Sell when price breaks below recent low with volume.
    """

    key = StrategyType.BREAKOUT.value
    label = "Breakout"
    description = "Buy on breakout above resistance with volume. Sell on breakdown below support."
    PARAMS = (
        ("lookback", "int", 20, "Lookback period for high/low"),
        ("volume_threshold", "float", 1.5, "Volume spike threshold"),
        ("atr_multiplier", "float", 2.0, "ATR multiplier for stop loss"),
    )

    def __init__(self, lookback: int = 20, volume_threshold: float = 1.5, atr_multiplier: float = 2.0):
        super().__init__(atr_multiplier)
        if lookback < 5:
            raise ValueError("lookback must be >= 5")
        self.lookback = lookback
        self.volume_threshold = volume_threshold

    def _prepare(self, a: CandleArrays) -> None:
        pass

    def generate_signal(self, idx: int, position: int) -> Signal:
        if idx < self.lookback + 5:
            return self._hold(idx, "Insufficient data")

        a = self._a
        price = float(a.closes[idx])

        # Range excludes the last two bars before idx
        recent_high = float(np.max(a.highs[idx - self.lookback : idx - 2]))
        recent_low = float(np.min(a.lows[idx - self.lookback : idx - 2]))
        avg_volume = float(np.mean(a.volumes[idx - self.lookback : idx - 1]))
        volume_ratio = a.volumes[idx] / avg_volume if avg_volume > 0 else 1.0
        current_atr = self._current_atr(idx)

        if price > recent_high and volume_ratio >= self.volume_threshold and position <= 0:
            return Signal(
                SignalType.BUY,
                price,
                stop_loss=recent_high - current_atr,
                take_profit=price + (price - recent_high) * 2,
                reason=f"Bullish breakout above {recent_high:.2f} with {volume_ratio:.1f}x volume",
            )
        if price < recent_low and volume_ratio >= self.volume_threshold and position >= 0:
            return Signal(
                SignalType.SELL,
                price,
                stop_loss=recent_low + current_atr,
                take_profit=price - (recent_low - price) * 2,
                reason=f"Bearish breakdown below {recent_low:.2f} with {volume_ratio:.1f}x volume",
            )
        return self._hold(idx, "No breakout")


class MACDStrategy(Strategy):
    """
    MACD Crossover Strategy

    Buy when MACD crosses above signal line.
    Sell when MACD crosses below signal line.
    """

    key = StrategyType.MACD.value
    label = "MACD Crossover"
    description = "Buy when MACD crosses above signal line. Sell on opposite cross."
    PARAMS = (
        ("fast_period", "int", 12, "Fast EMA period"),
        ("slow_period", "int", 26, "Slow EMA period"),
        ("signal_period", "int", 9, "Signal line period"),
        ("atr_multiplier", "float", 2.0, "ATR multiplier for stop loss"),
    )

    def __init__(
        self,
        fast_period: int = 12,
        slow_period: int = 26,
        signal_period: int = 9,
        atr_multiplier: float = 2.0,
    ):
        super().__init__(atr_multiplier)
        if not 1 <= fast_period < slow_period or signal_period < 1:
            raise ValueError("Need 1 <= fast_period < slow_period and signal_period >= 1")
        self.fast_period = fast_period
        self.slow_period = slow_period
        self.signal_period = signal_period

    def _prepare(self, a: CandleArrays) -> None:
        self._macd, self._signal, _ = macd(
            a.closes, self.fast_period, self.slow_period, self.signal_period
        )

    def generate_signal(self, idx: int, position: int) -> Signal:
        if idx < self.slow_period + self.signal_period + 2:
            return self._hold(idx, "Insufficient data")

        cross = _crossed(self._macd[idx - 1], self._signal[idx - 1], self._macd[idx], self._signal[idx])
        if cross == "above" and position <= 0:
            return self._buy(idx, "MACD bullish crossover")
        if cross == "below" and position >= 0:
            return self._sell(idx, "MACD bearish crossover")
        return self._hold(idx, "No MACD crossover")


STRATEGIES: dict[str, type[Strategy]] = {
    cls.key: cls
    for cls in (EMACrossoverStrategy, RSIReversalStrategy, BreakoutStrategy, MACDStrategy)
}


def get_strategy(strategy_type: str, params: Optional[dict[str, Any]] = None) -> Strategy:
    """Build a strategy by key; bad keys or parameters raise ValidationError."""
    key = strategy_type.value if isinstance(strategy_type, StrategyType) else str(strategy_type).lower()
    if key not in STRATEGIES:
        raise ValidationError(
            "Backtest", f"Unknown strategy: {strategy_type}", {"available": list(STRATEGIES)}
        )

    try:
        return STRATEGIES[key](**(params or {}))
    except (TypeError, ValueError) as e:
        raise ValidationError("Backtest", f"Invalid parameters for {key}: {e}", {"params": params})
