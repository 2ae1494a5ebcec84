"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "ChartLab Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # CORS (Frontend URL)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Market session (exchange local time)
    market_timezone: str = "Asia/Kolkata"
    market_open: str = "09:15"
    market_close: str = "15:30"

    # Pattern matching defaults
    relationship_tolerance_percent: float = 3.0
    equality_tolerance: float = 0.01  # absolute price points
    pattern_min_confidence: float = 75.0
    swing_min_deviation_percent: float = 2.0
    swing_lookback: int = 5
    block_size: int = 15  # 1m candles per block
    block_min_confidence: float = 0.75

    # Indicator limits
    max_candles: int = 10000

    # Backtest defaults
    backtest_initial_capital: float = 100000.0
    backtest_periods_per_year: int = 252

    # Options
    option_strike_window: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
