"""
Backtesting Engine

Replays candles bar by bar through a strategy and calculates performance
metrics.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Optional, Sequence

import numpy as np

from chartlab.core.config import settings
from chartlab.schemas.backtest import StrategyType
from chartlab.schemas.candles import Candle
from chartlab.services.backtest.strategies import SignalType, Strategy, get_strategy
from chartlab.services.base import InsufficientDataError, ServiceError
from chartlab.services.candles import to_arrays

logger = logging.getLogger(__name__)

MIN_BACKTEST_CANDLES = 50


@dataclass
class Trade:
    """A completed trade."""
    entry_time: int
    entry_price: float
    exit_time: int
    exit_price: float
    direction: str  # LONG or SHORT
    quantity: int
    pnl: float
    pnl_percent: float
    hold_duration: int  # in bars
    exit_reason: str


@dataclass
class _Position:
    direction: int  # 1=long, -1=short
    entry_price: float
    entry_time: int
    entry_idx: int
    quantity: int
    stop_loss: float
    take_profit: float

    def pnl(self, price: float) -> float:
        return (price - self.entry_price) * self.quantity * self.direction

    def close(self, price: float, time: int, idx: int, reason: str) -> Trade:
        pnl = self.pnl(price)
        return Trade(
            entry_time=self.entry_time,
            entry_price=round(self.entry_price, 4),
            exit_time=time,
            exit_price=round(price, 4),
            direction="LONG" if self.direction == 1 else "SHORT",
            quantity=self.quantity,
            pnl=round(pnl, 2),
            pnl_percent=round(pnl / (self.entry_price * self.quantity) * 100, 2),
            hold_duration=idx - self.entry_idx,
            exit_reason=reason,
        )


def _stop_or_target(
    pos: _Position, high: float, low: float, stop_enabled: bool, target_enabled: bool
) -> Optional[tuple[float, str]]:
    """Exit (price, reason) if this bar touched the stop or target; stop wins."""
    if pos.direction == 1:
        if stop_enabled and low <= pos.stop_loss:
            return pos.stop_loss, "Stop loss hit"
        if target_enabled and high >= pos.take_profit:
            return pos.take_profit, "Take profit hit"
    else:
        if stop_enabled and high >= pos.stop_loss:
            return pos.stop_loss, "Stop loss hit"
        if target_enabled and low <= pos.take_profit:
            return pos.take_profit, "Take profit hit"
    return None


def _max_streaks(pnls: Sequence[float]) -> tuple[int, int]:
    """Longest runs of winning and losing trades (a flat trade breaks both)."""
    best_win = best_loss = win = loss = 0
    for pnl in pnls:
        win = win + 1 if pnl > 0 else 0
        loss = loss + 1 if pnl < 0 else 0
        best_win, best_loss = max(best_win, win), max(best_loss, loss)
    return best_win, best_loss


def calculate_metrics(
    trades: Sequence[Trade],
    equity_curve: Sequence[dict[str, Any]],
    initial_capital: float,
    periods_per_year: int = 252,
) -> dict[str, float]:
    """Performance metrics from trades and the per-bar equity curve."""
    pnls = [t.pnl for t in trades]
    winning = [p for p in pnls if p > 0]
    losing = [p for p in pnls if p < 0]

    total_return = sum(pnls)
    gross_profit = sum(winning)
    gross_loss = abs(sum(losing))
    profit_factor = gross_profit / gross_loss if gross_loss > 0 else gross_profit

    # Max drawdown on the equity curve
    equity = np.array([e["equity"] for e in equity_curve], dtype=float)
    max_drawdown = max_drawdown_percent = 0.0
    if len(equity):
        peaks = np.maximum.accumulate(equity)
        drawdowns = peaks - equity
        worst = int(np.argmax(drawdowns))
        max_drawdown = float(drawdowns[worst])
        if peaks[worst] > 0:
            max_drawdown_percent = max_drawdown / float(peaks[worst]) * 100

    # Sharpe ratio on per-bar returns
    sharpe_ratio = 0.0
    if len(equity) > 1 and np.all(equity[:-1] > 0):
        returns = np.diff(equity) / equity[:-1]
        std_return = float(np.std(returns))
        if std_return > 0:
            sharpe_ratio = float(np.mean(returns)) / std_return * np.sqrt(periods_per_year)

    max_wins, max_losses = _max_streaks(pnls)

    return {
        "total_return": round(total_return, 2),
        "total_return_percent": round(total_return / initial_capital * 100, 2),
        "total_trades": len(trades),
        "winning_trades": len(winning),
        "losing_trades": len(losing),
        "win_rate": round(len(winning) / len(trades) * 100, 2) if trades else 0.0,
        "profit_factor": round(profit_factor, 2),
        "max_drawdown": round(max_drawdown, 2),
        "max_drawdown_percent": round(max_drawdown_percent, 2),
        "sharpe_ratio": round(float(sharpe_ratio), 2),
        "avg_trade_pnl": round(float(np.mean(pnls)), 2) if pnls else 0.0,
        "avg_winning_trade": round(float(np.mean(winning)), 2) if winning else 0.0,
        "avg_losing_trade": round(float(np.mean(losing)), 2) if losing else 0.0,
        "largest_win": round(max(winning), 2) if winning else 0.0,
        "largest_loss": round(min(losing), 2) if losing else 0.0,
        "avg_hold_duration": round(float(np.mean([t.hold_duration for t in trades])), 1) if trades else 0.0,
        "max_consecutive_wins": max_wins,
        "max_consecutive_losses": max_losses,
    }


class BacktestEngine:
    """
    Backtesting engine for simulating trading strategies.

    Usage:
        engine = BacktestEngine()
        result = engine.run(
            candles,
            StrategyType.EMA_CROSSOVER,
            params={"fast_period": 9, "slow_period": 21},
            initial_capital=100000,
        )
    """

    def run(
        self,
        candles: Sequence[Candle],
        strategy: StrategyType | str,
        params: Optional[dict[str, Any]] = None,
        symbol: str = "UNKNOWN",
        timeframe: Optional[str] = None,
        initial_capital: Optional[float] = None,
        position_size_percent: float = 100,
        stop_loss_enabled: bool = True,
        take_profit_enabled: bool = True,
        allow_short: bool = False,
        periods_per_year: Optional[int] = None,
        stop_loss_percent: float = 5.0,
        take_profit_percent: float = 10.0,
    ) -> dict[str, Any]:
        """Run one strategy over the candles and return the result dict."""
        if len(candles) < MIN_BACKTEST_CANDLES:
            raise InsufficientDataError(
                "Backtest",
                f"Need at least {MIN_BACKTEST_CANDLES} candles, got {len(candles)}",
            )

        capital = initial_capital if initial_capital is not None else settings.backtest_initial_capital
        periods = periods_per_year or settings.backtest_periods_per_year
        strat = get_strategy(strategy, params)

        trades, equity_curve = self._simulate(
            candles, strat, capital, position_size_percent,
            stop_loss_enabled, take_profit_enabled, allow_short,
            stop_loss_percent, take_profit_percent,
        )
        metrics = calculate_metrics(trades, equity_curve, capital, periods)

        logger.info(
            "Backtest %s on %s: %d trades, return %.2f%%",
            strat.key, symbol, metrics["total_trades"], metrics["total_return_percent"],
        )

        return {
            "symbol": symbol,
            "strategy": strat.key,
            "strategy_params": strat.get_params(),
            "timeframe": timeframe,
            "start_time": int(candles[0].timestamp),
            "end_time": int(candles[-1].timestamp),
            "initial_capital": capital,
            "final_capital": round(capital + metrics["total_return"], 2),
            **metrics,
            "trades": [asdict(t) for t in trades],
            "equity_curve": equity_curve,
        }

    def compare(
        self,
        candles: Sequence[Candle],
        symbol: str = "UNKNOWN",
        timeframe: Optional[str] = None,
        initial_capital: Optional[float] = None,
        allow_short: bool = False,
    ) -> list[dict[str, Any]]:
        """Run every strategy with default parameters, best return first."""
        if len(candles) < MIN_BACKTEST_CANDLES:
            raise InsufficientDataError(
                "Backtest",
                f"Need at least {MIN_BACKTEST_CANDLES} candles, got {len(candles)}",
            )

        results = []
        for strategy_type in StrategyType:
            try:
                result = self.run(
                    candles,
                    strategy_type,
                    symbol=symbol,
                    timeframe=timeframe,
                    initial_capital=initial_capital,
                    allow_short=allow_short,
                )
            except ServiceError as e:
                logger.warning(f"Skipping {strategy_type.value} in comparison: {e}")
                continue
            results.append({
                "strategy": strategy_type.value,
                "total_return_percent": result["total_return_percent"],
                "win_rate": result["win_rate"],
                "profit_factor": result["profit_factor"],
                "max_drawdown_percent": result["max_drawdown_percent"],
                "sharpe_ratio": result["sharpe_ratio"],
                "total_trades": result["total_trades"],
            })

        results.sort(key=lambda x: x["total_return_percent"], reverse=True)
        return results

    def _simulate(
        self,
        candles: Sequence[Candle],
        strategy: Strategy,
        initial_capital: float,
        position_size_percent: float,
        stop_loss_enabled: bool,
        take_profit_enabled: bool,
        allow_short: bool,
        stop_loss_percent: float = 5.0,
        take_profit_percent: float = 10.0,
    ) -> tuple[list[Trade], list[dict[str, Any]]]:
        a = to_arrays(candles)
        strategy.prepare(a)

        trades: list[Trade] = []
        equity_curve: list[dict[str, Any]] = []
        capital = initial_capital
        pos: Optional[_Position] = None

        for idx in range(len(a)):
            price = float(a.closes[idx])
            time = int(a.timestamps[idx])

            if pos is not None:
                exit_ = _stop_or_target(
                    pos, float(a.highs[idx]), float(a.lows[idx]),
                    stop_loss_enabled, take_profit_enabled,
                )
                if exit_ is not None:
                    trade = pos.close(exit_[0], time, idx, exit_[1])
                    trades.append(trade)
                    capital += pos.pnl(exit_[0])
                    pos = None

            signal = strategy.generate_signal(idx, pos.direction if pos else 0)

            direction = 0
            if signal.signal_type == SignalType.BUY:
                direction = 1
            elif signal.signal_type == SignalType.SELL:
                direction = -1

            if direction and (pos is None or pos.direction != direction):
                # Opposite signal closes the open position first
                if pos is not None:
                    trades.append(pos.close(price, time, idx, signal.reason))
                    capital += pos.pnl(price)
                    pos = None

                if direction == 1 or allow_short:
                    quantity = int(capital * position_size_percent / 100 / price)
                    if quantity > 0:
                        # Fallback levels when the strategy sets none
                        default_stop = 1 - direction * stop_loss_percent / 100
                        default_target = 1 + direction * take_profit_percent / 100
                        pos = _Position(
                            direction=direction,
                            entry_price=price,
                            entry_time=time,
                            entry_idx=idx,
                            quantity=quantity,
                            stop_loss=signal.stop_loss or price * default_stop,
                            take_profit=signal.take_profit or price * default_target,
                        )

            unrealized = pos.pnl(price) if pos is not None else 0.0
            equity_curve.append({
                "timestamp": time,
                "price": price,
                "equity": round(capital + unrealized, 2),
                "position": pos.direction if pos is not None else 0,
            })

        # Close any open position at the end
        if pos is not None:
            last = len(a) - 1
            trades.append(
                pos.close(float(a.closes[last]), int(a.timestamps[last]), last, "End of backtest period")
            )

        return trades, equity_curve


# Singleton instance
_engine: Optional[BacktestEngine] = None


def get_backtest_engine() -> BacktestEngine:
    """Get the backtest engine singleton."""
    global _engine
    if _engine is None:
        _engine = BacktestEngine()
    return _engine
