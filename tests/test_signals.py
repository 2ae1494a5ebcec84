"""Tests for latest-bar signal detectors and crossing events."""

import numpy as np
import pytest
from pydantic import ValidationError as PydanticValidationError

from chartlab.schemas.signals import CrossingsRequest, DetectorType, SignalScanRequest
from chartlab.services.signals import get_signal_service
from chartlab.services.signals.crossings import CrossingType, find_crossings
from chartlab.services.signals.detectors import (
    SignalStrength,
    detect_bollinger_squeeze,
    detect_breakout,
    detect_ema_crossover,
    detect_macd_crossover,
    detect_rsi_extreme,
    detect_volume_spike,
    scan_signals,
)
from tests.helpers import make_arrays, make_candles

RISING = [100.0 + i for i in range(40)]


def closes(values):
    return np.asarray(values, dtype=float)


class TestEmaCrossover:

    def test_golden_cross(self):
        result = detect_ema_crossover(closes([100.0] * 30 + [110.0]))

        assert result.detected and result.signal == "BULLISH"
        assert result.details["crossover_type"] == "golden_cross"
        assert result.details["fast_ema"] == 102.0
        # 60 + separation (1.08%) * 10
        assert result.score == pytest.approx(70.81)
        assert result.strength == SignalStrength.STRONG
        assert result.entry_price == 110.0
        assert result.stop_loss == 98.89

    def test_death_cross(self):
        result = detect_ema_crossover(closes([100.0] * 30 + [90.0]))

        assert result.signal == "BEARISH"
        assert result.details["crossover_type"] == "death_cross"
        assert result.stop_loss == 101.07

    def test_trend_without_cross(self):
        result = detect_ema_crossover(closes(RISING))

        assert not result.detected
        assert result.signal == "BULLISH"
        assert result.details["price_vs_emas"] == "BULLISH"

    def test_insufficient_data(self):
        result = detect_ema_crossover(closes([100.0] * 20))
        assert not result.detected
        assert result.details == {"error": "Insufficient data"}


class TestMacdCrossover:

    def test_bullish_above_zero(self):
        result = detect_macd_crossover(closes([100.0] * 60 + [110.0]))

        assert result.signal == "BULLISH"
        assert result.details["above_zero"] is True
        assert result.details["histogram_expanding"] is True
        # 55 + zero-line bonus 15 + expanding histogram 10
        assert result.score == 80.0
        assert result.strength == SignalStrength.VERY_STRONG

    def test_bearish_below_zero(self):
        result = detect_macd_crossover(closes([100.0] * 60 + [90.0]))

        assert result.signal == "BEARISH"
        assert result.details["below_zero"] is True
        assert result.score == 80.0

    def test_no_cross(self):
        assert not detect_macd_crossover(closes([100.0] * 60)).detected

    def test_insufficient_data(self):
        assert detect_macd_crossover(closes([100.0] * 39)).details == {"error": "Insufficient data"}


class TestRsiExtreme:

    def test_overbought(self):
        result = detect_rsi_extreme(closes(RISING))

        assert result.signal == "BEARISH"
        assert result.details["condition"] == "overbought"
        assert result.details["rsi"] == 100.0
        assert result.score == 100.0

    def test_oversold(self):
        result = detect_rsi_extreme(closes([140.0 - i for i in range(40)]))

        assert result.signal == "BULLISH"
        assert result.details["condition"] == "oversold"
        assert result.details["turning_up"] is False

    def test_turning_up(self):
        falling = [140.0 - i for i in range(40)]
        result = detect_rsi_extreme(closes(falling + [falling[-1] + 1]))

        assert result.signal == "BULLISH"
        assert result.details["turning_up"] is True

    def test_neutral(self):
        result = detect_rsi_extreme(closes([100.0] * 30))

        assert not result.detected
        assert result.details["rsi"] == 50.0


class TestBollingerSqueeze:

    def test_squeeze_after_volatility(self):
        result = detect_bollinger_squeeze(closes([95.0, 105.0] * 20 + [100.0] * 20))

        assert result.detected
        assert result.details["bandwidth"] == 0.0
        assert result.details["squeeze_intensity"] == 100.0
        # Flat bands leave %B undefined, so there is no direction
        assert result.signal == "NEUTRAL"
        assert result.details["percent_b"] is None

    def test_constant_volatility(self):
        result = detect_bollinger_squeeze(closes([95.0, 105.0] * 30))

        assert not result.detected
        assert result.details["bandwidth"] == pytest.approx(0.2)


class TestBreakout:

    def test_bullish_breakout_on_volume(self):
        a = make_arrays([100.0] * 30 + [103.0], volumes=[1000.0] * 30 + [3000.0])
        result = detect_breakout(a.highs, a.lows, a.closes, a.volumes)

        assert result.signal == "BULLISH"
        assert result.details["breakout_level"] == 100.5
        assert result.details["volume_ratio"] == 3.0
        assert result.target == 108.0
        # Breakout level minus ATR(14)
        assert result.stop_loss == 99.32

    def test_bearish_breakdown(self):
        a = make_arrays([100.0] * 30 + [97.0], volumes=[1000.0] * 30 + [3000.0])
        result = detect_breakout(a.highs, a.lows, a.closes, a.volumes)

        assert result.signal == "BEARISH"
        assert result.details["breakdown_level"] == 99.5
        assert result.target == 92.0

    def test_needs_volume(self):
        a = make_arrays([100.0] * 30 + [103.0], volumes=[1000.0] * 30 + [1200.0])
        result = detect_breakout(a.highs, a.lows, a.closes, a.volumes)

        assert not result.detected
        assert result.details["recent_high"] == 100.5

    def test_zero_volume_history(self):
        a = make_arrays([100.0] * 30 + [103.0], volumes=[0.0] * 31)
        assert not detect_breakout(a.highs, a.lows, a.closes, a.volumes).detected


class TestVolumeSpike:

    def test_spike_with_price_move(self):
        a = make_arrays([100.0] * 24 + [101.0], volumes=[1000.0] * 24 + [3000.0])
        result = detect_volume_spike(a.closes, a.volumes)

        assert result.signal == "BULLISH"
        # 30 + (3 - 2) * 15 + 1% * 5
        assert result.score == 50.0
        assert result.strength == SignalStrength.MODERATE
        assert result.details["z_score"] == 0.0
        assert result.entry_price == 101.0

    def test_spike_without_direction(self):
        a = make_arrays([100.0] * 25, volumes=[1000.0] * 24 + [2500.0])
        result = detect_volume_spike(a.closes, a.volumes)

        assert result.signal == "NEUTRAL"
        assert result.entry_price is None

    def test_below_threshold(self):
        a = make_arrays([100.0] * 25, volumes=[1000.0] * 24 + [1500.0])
        result = detect_volume_spike(a.closes, a.volumes)

        assert not result.detected
        assert result.details["volume_ratio"] == 1.5


class TestScan:

    def test_selected_detectors(self):
        result = scan_signals(
            make_arrays(RISING), [DetectorType.RSI_EXTREME, DetectorType.EMA_CROSSOVER]
        )

        assert result["detectors_run"] == ["rsi_extreme", "ema_crossover"]
        assert [s["signal_type"] for s in result["signals"]] == ["rsi_extreme"]
        assert result["signals"][0]["strength"] == "very_strong"
        assert result["total_score"] == 100.0
        assert result["dominant_signal"] == "BEARISH"
        assert result["current_price"] == 139.0

    def test_min_score(self):
        result = scan_signals(make_arrays(RISING), [DetectorType.RSI_EXTREME], min_score=100.5)

        assert result["signals"] == []
        assert result["dominant_signal"] == "NEUTRAL"

    def test_all_detectors_by_default(self):
        result = scan_signals(make_arrays(RISING))
        assert result["detectors_run"] == [d.value for d in DetectorType]

    async def test_service(self):
        response = await get_signal_service().execute(
            SignalScanRequest(symbol="NIFTY", candles=make_candles(RISING), detectors=["rsi_extreme"])
        )

        assert response.symbol == "NIFTY"
        assert response.signals[0].signal == "BEARISH"


class TestCrossings:

    def test_price_crosses_averages(self):
        a = make_arrays([100.0] * 10 + [110.0, 90.0])
        events = find_crossings(a, ema_period=3, sma_period=3)

        assert [(e.index, e.type) for e in events] == [
            (10, CrossingType.EMA_CROSS_ABOVE),
            (10, CrossingType.SMA_CROSS_ABOVE),
            (11, CrossingType.EMA_CROSS_BELOW),
            (11, CrossingType.SMA_CROSS_BELOW),
        ]
        assert events[0].indicator == "EMA-3"
        assert events[0].indicator_value == 105.0
        assert events[2].indicator_value == 97.5
        assert events[3].to_dict()["type"] == "SMA_CROSS_BELOW"

    def test_rsi_thresholds(self):
        values = [100.0] * 20 + [101.0] + [101.0 - i for i in range(1, 30)]
        events = find_crossings(make_arrays(values), rsi_period=14)

        overbought = [e for e in events if e.type == CrossingType.RSI_OVERBOUGHT]
        oversold = [e for e in events if e.type == CrossingType.RSI_OVERSOLD]
        assert [e.index for e in overbought] == [20]
        assert overbought[0].indicator_value == 100.0
        assert len(oversold) == 1
        assert oversold[0].index > 20 and oversold[0].indicator_value < 30

    def test_nothing_requested(self):
        assert find_crossings(make_arrays([100.0] * 5)) == []

    def test_request_needs_an_indicator(self):
        with pytest.raises(PydanticValidationError):
            CrossingsRequest(candles=make_candles([100.0, 101.0]))

    def test_request_threshold_order(self):
        with pytest.raises(PydanticValidationError):
            CrossingsRequest(candles=make_candles([100.0, 101.0]), rsi_period=14, overbought=30, oversold=70)

    async def test_service(self):
        response = await get_signal_service().crossings(
            CrossingsRequest(candles=make_candles([100.0] * 10 + [110.0, 90.0]), ema_period=3)
        )

        assert response.total_candles == 12
        assert [e.type for e in response.events] == ["EMA_CROSS_ABOVE", "EMA_CROSS_BELOW"]
