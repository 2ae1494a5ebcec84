"""
Indicator Registry

Catalog of every named indicator the dashboard can request, with its
inputs, default parameters and output series.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Optional

import numpy as np

from chartlab.core.market_hours import session_labels
from chartlab.services.base import UnknownIndicatorError, ValidationError
from chartlab.services.candles import CandleArrays
from chartlab.services.indicators import calculations as calc

logger = logging.getLogger(__name__)


@dataclass
class IndicatorDefinition:
    """Static description of one indicator."""

    key: str
    label: str
    category: str  # trend, momentum, volatility, volume
    inputs: list[str]
    defaults: dict[str, Any]
    outputs: list[str]
    overlay: bool
    compute: Callable[..., dict[str, np.ndarray]] = field(repr=False)

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("compute")
        return data


# =============================================================================
# ADAPTERS (CandleArrays + params -> named outputs)
# =============================================================================


def _named(names: list[str], values) -> dict[str, np.ndarray]:
    if isinstance(values, np.ndarray):
        values = (values,)
    return dict(zip(names, values))


def _vwap(a: CandleArrays, session_reset: bool = False) -> dict[str, np.ndarray]:
    sessions = session_labels(a.timestamps.tolist()) if session_reset else None
    return {"vwap": calc.vwap(a.highs, a.lows, a.closes, a.volumes, sessions)}


_DEFINITIONS = [
    IndicatorDefinition(
        "sma", "Simple Moving Average", "trend", ["close"], {"period": 20}, ["sma"], True,
        lambda a, period: {"sma": calc.sma(a.closes, period)},
    ),
    IndicatorDefinition(
        "ema", "Exponential Moving Average", "trend", ["close"], {"period": 21}, ["ema"], True,
        lambda a, period: {"ema": calc.ema(a.closes, period)},
    ),
    IndicatorDefinition(
        "wma", "Weighted Moving Average", "trend", ["close"], {"period": 20}, ["wma"], True,
        lambda a, period: {"wma": calc.wma(a.closes, period)},
    ),
    IndicatorDefinition(
        "rsi", "Relative Strength Index", "momentum", ["close"], {"period": 14}, ["rsi"], False,
        lambda a, period: {"rsi": calc.rsi(a.closes, period)},
    ),
    IndicatorDefinition(
        "macd", "MACD", "momentum", ["close"],
        {"fast_period": 12, "slow_period": 26, "signal_period": 9},
        ["macd", "signal", "histogram"], False,
        lambda a, **p: _named(["macd", "signal", "histogram"], calc.macd(a.closes, **p)),
    ),
    IndicatorDefinition(
        "bollinger", "Bollinger Bands", "volatility", ["close"],
        {"period": 20, "std_dev": 2.0},
        ["upper", "middle", "lower", "bandwidth", "percent_b"], True,
        lambda a, **p: _named(
            ["upper", "middle", "lower", "bandwidth", "percent_b"],
            calc.bollinger_bands(a.closes, **p),
        ),
    ),
    IndicatorDefinition(
        "atr", "Average True Range", "volatility", ["high", "low", "close"],
        {"period": 14}, ["atr"], False,
        lambda a, period: {"atr": calc.atr(a.highs, a.lows, a.closes, period)},
    ),
    IndicatorDefinition(
        "stochastic", "Stochastic Oscillator", "momentum", ["high", "low", "close"],
        {"k_period": 14, "d_period": 3}, ["k", "d"], False,
        lambda a, **p: _named(["k", "d"], calc.stochastic(a.highs, a.lows, a.closes, **p)),
    ),
    IndicatorDefinition(
        "cci", "Commodity Channel Index", "momentum", ["high", "low", "close"],
        {"period": 20}, ["cci"], False,
        lambda a, period: {"cci": calc.cci(a.highs, a.lows, a.closes, period)},
    ),
    IndicatorDefinition(
        "mfi", "Money Flow Index", "volume", ["high", "low", "close", "volume"],
        {"period": 14}, ["mfi"], False,
        lambda a, period: {"mfi": calc.mfi(a.highs, a.lows, a.closes, a.volumes, period)},
    ),
    IndicatorDefinition(
        "williams_r", "Williams %R", "momentum", ["high", "low", "close"],
        {"period": 14}, ["williams_r"], False,
        lambda a, period: {"williams_r": calc.williams_r(a.highs, a.lows, a.closes, period)},
    ),
    IndicatorDefinition(
        "roc", "Rate of Change", "momentum", ["close"], {"period": 12}, ["roc"], False,
        lambda a, period: {"roc": calc.roc(a.closes, period)},
    ),
    IndicatorDefinition(
        "adx", "Average Directional Index", "trend", ["high", "low", "close"],
        {"period": 14}, ["adx", "plus_di", "minus_di"], False,
        lambda a, period: _named(
            ["adx", "plus_di", "minus_di"], calc.adx(a.highs, a.lows, a.closes, period)
        ),
    ),
    IndicatorDefinition(
        "psar", "Parabolic SAR", "trend", ["high", "low", "close"],
        {"step": 0.02, "max_step": 0.2}, ["psar"], True,
        lambda a, **p: {"psar": calc.psar(a.highs, a.lows, a.closes, **p)},
    ),
    IndicatorDefinition(
        "vwap", "Volume Weighted Average Price", "volume",
        ["high", "low", "close", "volume"], {"session_reset": False}, ["vwap"], True,
        _vwap,
    ),
    IndicatorDefinition(
        "obv", "On-Balance Volume", "volume", ["close", "volume"], {}, ["obv"], False,
        lambda a: {"obv": calc.obv(a.closes, a.volumes)},
    ),
]

INDICATORS: dict[str, IndicatorDefinition] = {d.key: d for d in _DEFINITIONS}


def get_definition(key: str) -> IndicatorDefinition:
    """Look up an indicator by key (case-insensitive)."""
    definition = INDICATORS.get(key.lower())
    if definition is None:
        raise UnknownIndicatorError(
            "IndicatorRegistry",
            f"Unknown indicator: {key}",
            {"available": sorted(INDICATORS)},
        )
    return definition


def list_indicators() -> list[dict]:
    return [d.to_dict() for d in _DEFINITIONS]


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _coerce(value: Any, default: Any) -> Any:
    """Match the type of the default (JSON sends 14.0 for 14)."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
            return value.strip().lower() in _TRUE
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        raise ValueError(f"expected a boolean, got {value!r}")
    if default is None:
        return value
    if isinstance(default, int):
        if float(value) != int(float(value)):
            raise ValueError(f"expected an integer, got {value}")
        return int(float(value))
    if isinstance(default, float):
        return float(value)
    return value


def resolve_params(definition: IndicatorDefinition, params: Optional[dict]) -> dict:
    """Merge caller params over defaults, rejecting unknown names."""
    params = params or {}
    unknown = set(params) - set(definition.defaults)
    if unknown:
        raise ValidationError(
            "IndicatorRegistry",
            f"Unknown parameter(s) for {definition.key}: {', '.join(sorted(unknown))}",
            {"accepted": sorted(definition.defaults)},
        )

    merged = dict(definition.defaults)
    for name, value in params.items():
        try:
            merged[name] = _coerce(value, definition.defaults[name])
        except (TypeError, ValueError) as e:
            raise ValidationError(
                "IndicatorRegistry", f"Bad value for {definition.key}.{name}: {e}"
            ) from e
    return merged


def compute_indicator(
    key: str, arrays: CandleArrays, params: Optional[dict] = None
) -> dict[str, np.ndarray]:
    """
    Compute one catalog indicator.

    Returns:
        {output_name: series}, each series aligned with the candles

    Raises:
        UnknownIndicatorError: If the key is not in the catalog
        ValidationError: If a parameter is unknown or out of range
    """
    definition = get_definition(key)
    merged = resolve_params(definition, params)

    try:
        outputs = definition.compute(arrays, **merged)
    except ValueError as e:
        raise ValidationError("IndicatorRegistry", f"{definition.key}: {e}") from e

    logger.debug("Computed %s over %d candles with %s", definition.key, len(arrays), merged)
    return outputs
