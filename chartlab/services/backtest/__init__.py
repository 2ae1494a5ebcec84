"""
Backtesting Engine

Test trading strategies on candle history supplied by the caller.
"""

from chartlab.services.backtest.engine import (
    BacktestEngine,
    Trade,
    calculate_metrics,
    get_backtest_engine,
)
from chartlab.services.backtest.strategies import (
    STRATEGIES,
    Strategy,
    EMACrossoverStrategy,
    RSIReversalStrategy,
    BreakoutStrategy,
    MACDStrategy,
    get_strategy,
)

__all__ = [
    "BacktestEngine",
    "Trade",
    "calculate_metrics",
    "get_backtest_engine",
    "STRATEGIES",
    "Strategy",
    "EMACrossoverStrategy",
    "RSIReversalStrategy",
    "BreakoutStrategy",
    "MACDStrategy",
    "get_strategy",
]
