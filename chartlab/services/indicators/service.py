"""
Indicator Engine Service Implementation

Calculates technical indicators from caller-supplied candles.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import numpy as np

from chartlab.schemas.candles import Candle, Timeframe
from chartlab.schemas.indicators import (
    IndicatorOutput,
    IndicatorRequest,
    IndicatorSeries,
    IndicatorSeriesResponse,
    IndicatorSpec,
    PriceData,
    TrendIndicators,
    MomentumIndicators,
    VolatilityIndicators,
    VolumeIndicators,
    Levels,
    RiskMetrics,
    MACDData,
    StochasticData,
    BollingerBandsData,
    PivotPoints,
    PositionSizing,
    PositionSizingMethod,
    TrendDirection,
    VolatilityZone,
    SignalType,
)
from chartlab.services.base import InsufficientDataError
from chartlab.services.candles import CandleArrays, to_arrays
from chartlab.services.indicators.interface import IndicatorServiceInterface
from chartlab.services.indicators.registry import compute_indicator, get_definition, resolve_params
from chartlab.services.indicators.calculations import (
    sma,
    ema,
    rsi,
    macd,
    stochastic,
    cci,
    williams_r,
    mfi,
    roc,
    atr,
    bollinger_bands,
    historical_volatility,
    vwap,
    obv,
    adx,
    psar,
    find_pivot_points,
    find_support_resistance,
    get_last_valid,
    detect_divergence,
)

logger = logging.getLogger(__name__)

MIN_SNAPSHOT_CANDLES = 20

DEFAULT_SPECS = [
    IndicatorSpec(key="ema", params={"period": 9}),
    IndicatorSpec(key="ema", params={"period": 21}),
    IndicatorSpec(key="ema", params={"period": 50}),
    IndicatorSpec(key="sma", params={"period": 20}),
    IndicatorSpec(key="bollinger"),
    IndicatorSpec(key="rsi"),
    IndicatorSpec(key="macd"),
]


def to_json_series(values: np.ndarray, digits: int = 6) -> list[Optional[float]]:
    """NaN/inf become None so the list stays aligned with the candles."""
    return [
        round(float(v), digits) if np.isfinite(v) else None
        for v in np.asarray(values, dtype=float)
    ]


def _series_name(spec: IndicatorSpec, params: dict, defaults: dict) -> str:
    if spec.alias:
        return spec.alias
    changed = [str(params[k]) for k in defaults if params[k] != defaults[k]]
    return "_".join([spec.key.lower(), *changed])


def _round(value: Optional[float], digits: int = 2) -> Optional[float]:
    return round(value, digits) if value is not None else None


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    Calculates technical indicators for charting and analysis.
    All calculations are deterministic and reproducible.
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def execute(self, input_data: IndicatorRequest) -> IndicatorSeriesResponse:
        """Compute every requested indicator over the request candles."""
        arrays = to_arrays(input_data.candles)
        specs = input_data.indicators or DEFAULT_SPECS

        results = []
        for spec in specs:
            definition = get_definition(spec.key)
            params = resolve_params(definition, spec.params)
            outputs = compute_indicator(definition.key, arrays, params)
            results.append(
                IndicatorSeries(
                    key=definition.key,
                    name=_series_name(spec, params, definition.defaults),
                    params=params,
                    overlay=definition.overlay,
                    values={k: to_json_series(v) for k, v in outputs.items()},
                )
            )

        logger.info(
            "Computed %d indicators over %d candles for %s",
            len(results), len(arrays), input_data.symbol,
        )
        return IndicatorSeriesResponse(
            symbol=input_data.symbol,
            timeframe=input_data.timeframe,
            timestamps=arrays.timestamps.tolist(),
            indicators=results,
        )

    async def calculate_snapshot(
        self,
        symbol: str,
        candles: list[Candle],
        portfolio_value: Optional[float] = None,
        risk_percent: float = 1.0,
    ) -> IndicatorOutput:
        """Calculate all latest-bar indicators for a single symbol."""
        if len(candles) < MIN_SNAPSHOT_CANDLES:
            raise InsufficientDataError(
                self.name,
                f"Insufficient data for {symbol}: need {MIN_SNAPSHOT_CANDLES} candles, got {len(candles)}",
            )

        a = to_arrays(candles)
        current = float(a.closes[-1])
        prev_close = float(a.closes[-2])

        price_data = PriceData(
            current=current,
            open=float(a.opens[-1]),
            high=float(a.highs[-1]),
            low=float(a.lows[-1]),
            previous_close=prev_close,
            change=round(current - prev_close, 2),
            change_percent=round((current - prev_close) / prev_close * 100, 2),
            volume=float(a.volumes[-1]),
            avg_volume=float(np.mean(a.volumes[-20:])),
        )

        return IndicatorOutput(
            symbol=symbol,
            timestamp=datetime.fromtimestamp(int(a.timestamps[-1]), tz=timezone.utc),
            price=price_data,
            trend=self._calculate_trend_indicators(a),
            momentum=self._calculate_momentum_indicators(a),
            volatility=self._calculate_volatility_indicators(a),
            volume=self._calculate_volume_indicators(a),
            levels=self._calculate_levels(a),
            risk_metrics=self._calculate_risk_metrics(a, portfolio_value, risk_percent),
        )

    def _calculate_trend_indicators(self, a: CandleArrays) -> TrendIndicators:
        """Calculate trend indicators."""
        current = float(a.closes[-1])

        def last_or_close(series: np.ndarray) -> float:
            value = get_last_valid(series)
            return value if value is not None else current

        ema_9 = last_or_close(ema(a.closes, 9))
        ema_21 = last_or_close(ema(a.closes, 21))
        ema_50 = last_or_close(ema(a.closes, 50))

        adx_arr, plus_di_arr, minus_di_arr = adx(a.highs, a.lows, a.closes, 14)
        adx_val = get_last_valid(adx_arr)

        if current > ema_21 and current > ema_50 and ema_21 > ema_50:
            direction = TrendDirection.BULLISH
        elif current < ema_21 and current < ema_50 and ema_21 < ema_50:
            direction = TrendDirection.BEARISH
        else:
            direction = TrendDirection.SIDEWAYS

        sar = get_last_valid(psar(a.highs, a.lows, a.closes))
        if sar is None:
            sar_trend = None
        else:
            sar_trend = TrendDirection.BULLISH if sar < current else TrendDirection.BEARISH

        return TrendIndicators(
            ema_9=round(ema_9, 2),
            ema_21=round(ema_21, 2),
            ema_50=round(ema_50, 2),
            ema_200=round(last_or_close(ema(a.closes, 200)), 2),
            sma_20=round(last_or_close(sma(a.closes, 20)), 2),
            sma_50=round(last_or_close(sma(a.closes, 50)), 2),
            sma_200=round(last_or_close(sma(a.closes, 200)), 2),
            trend_direction=direction,
            trend_strength=round(adx_val if adx_val is not None else 25.0, 1),
            adx=_round(adx_val),
            plus_di=_round(get_last_valid(plus_di_arr)),
            minus_di=_round(get_last_valid(minus_di_arr)),
            psar=_round(sar),
            psar_trend=sar_trend,
        )

    def _calculate_momentum_indicators(self, a: CandleArrays) -> MomentumIndicators:
        """Calculate momentum indicators."""
        rsi_arr = rsi(a.closes, 14)
        rsi_val = get_last_valid(rsi_arr)
        divergence = detect_divergence(a.closes, rsi_arr)
        rsi_divergence = {
            "BULLISH": SignalType.BUY,
            "BEARISH": SignalType.SELL,
        }.get(divergence)

        macd_line, signal_line, histogram = macd(a.closes, 12, 26, 9)
        hist_val = get_last_valid(histogram)

        # Crossover only when the last two histogram bars are both valid
        crossover = None
        if len(histogram) >= 2 and not np.isnan(histogram[-2]) and not np.isnan(histogram[-1]):
            if histogram[-1] > 0 >= histogram[-2]:
                crossover = SignalType.BUY
            elif histogram[-1] < 0 <= histogram[-2]:
                crossover = SignalType.SELL
            else:
                crossover = SignalType.NEUTRAL

        macd_data = MACDData(
            macd_line=round(get_last_valid(macd_line) or 0.0, 2),
            signal_line=round(get_last_valid(signal_line) or 0.0, 2),
            histogram=round(hist_val or 0.0, 2),
            crossover=crossover,
        )

        k_arr, d_arr = stochastic(a.highs, a.lows, a.closes, 14, 3)
        k_val = get_last_valid(k_arr)
        d_val = get_last_valid(d_arr)
        stoch_data = None
        if k_val is not None and d_val is not None:
            if k_val > 80:
                zone = "OVERBOUGHT"
            elif k_val < 20:
                zone = "OVERSOLD"
            else:
                zone = "NEUTRAL"
            stoch_data = StochasticData(k=round(k_val, 2), d=round(d_val, 2), zone=zone)

        return MomentumIndicators(
            rsi_14=round(rsi_val if rsi_val is not None else 50.0, 2),
            rsi_divergence=rsi_divergence,
            macd=macd_data,
            stochastic=stoch_data,
            cci=_round(get_last_valid(cci(a.highs, a.lows, a.closes, 20))),
            mfi=_round(get_last_valid(mfi(a.highs, a.lows, a.closes, a.volumes, 14))),
            williams_r=_round(get_last_valid(williams_r(a.highs, a.lows, a.closes, 14))),
            roc=_round(get_last_valid(roc(a.closes, 12))),
        )

    def _calculate_volatility_indicators(self, a: CandleArrays) -> VolatilityIndicators:
        """Calculate volatility indicators."""
        current = float(a.closes[-1])
        atr_val = get_last_valid(atr(a.highs, a.lows, a.closes, 14)) or 0.0
        atr_pct = atr_val / current * 100

        upper, middle, lower, bandwidth, percent_b = bollinger_bands(a.closes, 20, 2.0)
        bb_data = BollingerBandsData(
            upper=round(get_last_valid(upper) or current, 2),
            middle=round(get_last_valid(middle) or current, 2),
            lower=round(get_last_valid(lower) or current, 2),
            bandwidth=round(get_last_valid(bandwidth) or 0.0, 4),
            percent_b=round(get_last_valid(percent_b) or 0.5, 4),
        )

        return VolatilityIndicators(
            atr_14=round(atr_val, 2),
            atr_percent=round(atr_pct, 2),
            bollinger_bands=bb_data,
            historical_volatility=_round(historical_volatility(a.closes, 20)),
        )

    def _calculate_volume_indicators(self, a: CandleArrays) -> VolumeIndicators:
        """Calculate volume indicators."""
        current = float(a.closes[-1])
        current_vol = float(a.volumes[-1])
        avg_vol_20 = float(np.mean(a.volumes[-20:]))

        vwap_val = get_last_valid(vwap(a.highs, a.lows, a.closes, a.volumes)) or current
        vwap_dev = (current - vwap_val) / vwap_val * 100 if vwap_val > 0 else 0.0

        return VolumeIndicators(
            current_volume=current_vol,
            avg_volume_20=round(avg_vol_20, 2),
            volume_ratio=round(current_vol / avg_vol_20, 2) if avg_vol_20 > 0 else 1.0,
            vwap=round(vwap_val, 2),
            vwap_deviation=round(vwap_dev, 2),
            obv=get_last_valid(obv(a.closes, a.volumes)),
        )

    def _calculate_levels(self, a: CandleArrays) -> Levels:
        """Calculate support/resistance levels."""
        # Pivots from the previous bar
        pivots = find_pivot_points(float(a.highs[-2]), float(a.lows[-2]), float(a.closes[-2]))
        support, resistance = find_support_resistance(a.highs, a.lows, a.closes, 50)

        return Levels(
            support=support or [pivots["s1"], pivots["s2"]],
            resistance=resistance or [pivots["r1"], pivots["r2"]],
            pivot_points=PivotPoints(**pivots),
            day_high=round(float(a.highs[-1]), 2),
            day_low=round(float(a.lows[-1]), 2),
        )

    def _calculate_risk_metrics(
        self,
        a: CandleArrays,
        portfolio_value: Optional[float],
        risk_percent: float,
    ) -> RiskMetrics:
        """Calculate risk metrics and position sizing."""
        current_price = float(a.closes[-1])
        atr_val = get_last_valid(atr(a.highs, a.lows, a.closes, 14)) or (current_price * 0.02)
        atr_pct = atr_val / current_price * 100

        # Stop 1.5 ATR below, targets at 1.5R / 2.5R / 3.5R
        sl_distance = 1.5 * atr_val
        rr_ratios = [1.5, 2.5, 3.5]
        suggested_tp = [round(current_price + sl_distance * r, 2) for r in rr_ratios]

        if portfolio_value:
            risk_amount = portfolio_value * (risk_percent / 100)
            shares = int(risk_amount / sl_distance) if sl_distance > 0 else 0
        else:
            risk_amount = 0.0
            shares = 0

        position_sizing = PositionSizing(
            recommended_shares=shares,
            recommended_value=round(shares * current_price, 2),
            risk_amount=round(risk_amount, 2),
            risk_percent=risk_percent,
            method=PositionSizingMethod.ATR,
        )

        if atr_pct < 1.0:
            vol_zone = VolatilityZone.LOW
        elif atr_pct < 2.5:
            vol_zone = VolatilityZone.NORMAL
        elif atr_pct < 4.0:
            vol_zone = VolatilityZone.HIGH
        else:
            vol_zone = VolatilityZone.EXTREME

        return RiskMetrics(
            atr=round(atr_val, 2),
            atr_percent=round(atr_pct, 2),
            suggested_sl=round(current_price - sl_distance, 2),
            suggested_sl_percent=round(sl_distance / current_price * 100, 2),
            suggested_tp=suggested_tp,
            risk_reward_ratios=rr_ratios,
            position_sizing=position_sizing,
            volatility_zone=vol_zone,
        )

    async def chart_data(
        self, symbol: str, candles: list[Candle], timeframe: Timeframe
    ) -> dict:
        """
        Candles with indicator series for charting.

        Returns arrays that can be directly plotted:
        - Candles (OHLCV)
        - Moving averages (EMA 9, 21, 50 / SMA 20) and Bollinger Bands
        - RSI panel with 70/30 bands
        - MACD panel (line, signal, coloured histogram)
        - Volume bars
        """
        a = to_arrays(candles)
        times = a.timestamps.tolist()

        def to_points(values: np.ndarray, digits: int = 2) -> list[dict]:
            return [
                {"time": t, "value": round(float(v), digits)}
                for t, v in zip(times, values)
                if np.isfinite(v)
            ]

        upper, middle, lower, _, _ = bollinger_bands(a.closes, 20, 2.0)
        macd_line, macd_signal, macd_hist = macd(a.closes, 12, 26, 9)

        return {
            "symbol": symbol,
            "timeframe": timeframe.value,
            "current_price": float(a.closes[-1]),
            "candles": [c.model_dump() for c in candles],
            "overlays": {
                "ema9": to_points(ema(a.closes, 9)),
                "ema21": to_points(ema(a.closes, 21)),
                "ema50": to_points(ema(a.closes, 50)),
                "sma20": to_points(sma(a.closes, 20)),
                "bb_upper": to_points(upper),
                "bb_middle": to_points(middle),
                "bb_lower": to_points(lower),
                "psar": to_points(psar(a.highs, a.lows, a.closes)),
            },
            "panels": {
                "rsi": {
                    "data": to_points(rsi(a.closes, 14)),
                    "overbought": 70,
                    "oversold": 30,
                },
                "macd": {
                    "macd": to_points(macd_line, 4),
                    "signal": to_points(macd_signal, 4),
                    "histogram": [
                        {
                            "time": t,
                            "value": round(float(v), 4),
                            "color": "#22c55e" if v >= 0 else "#ef4444",
                        }
                        for t, v in zip(times, macd_hist)
                        if np.isfinite(v)
                    ],
                },
                "volume": [
                    {
                        "time": c.timestamp,
                        "value": c.volume,
                        "color": "#22c55e80" if c.close >= c.open else "#ef444480",
                    }
                    for c in candles
                ],
            },
        }

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
