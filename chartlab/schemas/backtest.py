"""
Backtest Contracts

Input: candles + strategy and execution settings
Output: performance metrics, trade list and equity curve
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from chartlab.core.config import settings
from chartlab.schemas.candles import Candle


class StrategyType(str, Enum):
    """Available strategy types."""
    EMA_CROSSOVER = "ema_crossover"
    RSI_REVERSAL = "rsi_reversal"
    BREAKOUT = "breakout"
    MACD = "macd"


# =============================================================================
# INPUT
# =============================================================================


class BacktestRequest(BaseModel):
    """
    Request body for running a backtest.

    Example:
    ```json
    {
        "symbol": "RELIANCE",
        "strategy": "ema_crossover",
        "strategy_params": {"fast_period": 9, "slow_period": 21},
        "candles": [[1700000000, 100, 101, 99, 100.5, 12000], ...]
    }
    ```
    """

    symbol: str = Field(default="UNKNOWN", max_length=50)
    timeframe: Optional[str] = None
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)
    strategy: StrategyType
    strategy_params: dict[str, Any] = Field(default_factory=dict)
    initial_capital: float = Field(
        default_factory=lambda: settings.backtest_initial_capital, gt=0
    )
    position_size_percent: float = Field(100, ge=1, le=100, description="Position size as % of capital")
    stop_loss_enabled: bool = True
    take_profit_enabled: bool = True
    stop_loss_percent: float = Field(5.0, gt=0, lt=100, description="Fallback stop as % from entry")
    take_profit_percent: float = Field(10.0, gt=0, lt=100, description="Fallback target as % from entry")
    allow_short: bool = Field(False, description="Open shorts on SELL signals")


class CompareRequest(BaseModel):
    """Run every strategy with default parameters on the same candles."""

    symbol: str = Field(default="UNKNOWN", max_length=50)
    timeframe: Optional[str] = None
    candles: list[Candle] = Field(..., min_length=1, max_length=settings.max_candles)
    initial_capital: float = Field(
        default_factory=lambda: settings.backtest_initial_capital, gt=0
    )
    allow_short: bool = False


# =============================================================================
# OUTPUT
# =============================================================================


class TradeOut(BaseModel):
    entry_time: int
    entry_price: float
    exit_time: int
    exit_price: float
    direction: str  # LONG or SHORT
    quantity: int
    pnl: float
    pnl_percent: float
    hold_duration: int  # bars
    exit_reason: str


class EquityPoint(BaseModel):
    timestamp: int
    price: float
    equity: float
    position: int  # 1 long, -1 short, 0 flat


class BacktestResponse(BaseModel):
    symbol: str
    strategy: str
    strategy_params: dict[str, Any]
    timeframe: Optional[str] = None
    start_time: int
    end_time: int

    initial_capital: float
    final_capital: float
    total_return: float
    total_return_percent: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    profit_factor: float
    max_drawdown: float
    max_drawdown_percent: float
    sharpe_ratio: float
    avg_trade_pnl: float
    avg_winning_trade: float
    avg_losing_trade: float
    largest_win: float
    largest_loss: float
    avg_hold_duration: float
    max_consecutive_wins: int
    max_consecutive_losses: int

    trades: list[TradeOut]
    equity_curve: list[EquityPoint]


class StrategyComparison(BaseModel):
    strategy: str
    total_return_percent: float
    win_rate: float
    profit_factor: float
    max_drawdown_percent: float
    sharpe_ratio: float
    total_trades: int


class CompareResponse(BaseModel):
    symbol: str
    timeframe: Optional[str] = None
    initial_capital: float
    comparison: list[StrategyComparison]


class StrategyParam(BaseModel):
    name: str
    type: str
    default: Any
    description: str


class StrategyInfo(BaseModel):
    id: str
    name: str
    description: str
    params: list[StrategyParam]
