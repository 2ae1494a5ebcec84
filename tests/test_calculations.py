"""Tests for indicator calculations."""

import numpy as np
import pytest

from chartlab.services.indicators.calculations import (
    adx,
    atr,
    bollinger_bands,
    cci,
    crossovers,
    detect_divergence,
    ema,
    find_pivot_points,
    find_support_resistance,
    get_last_valid,
    historical_volatility,
    macd,
    mfi,
    obv,
    psar,
    roc,
    rsi,
    sma,
    stochastic,
    true_range,
    vwap,
    williams_r,
    wma,
)


class TestMovingAverages:

    def test_sma_basic(self):
        result = sma(list(range(1, 11)), 3)

        assert np.isnan(result[0]) and np.isnan(result[1])
        assert result[2] == pytest.approx(2.0)
        assert result[9] == pytest.approx(9.0)

    def test_sma_insufficient_data(self):
        result = sma([1.0, 2.0], 5)
        assert len(result) == 2
        assert np.all(np.isnan(result))

    def test_ema_seeded_with_sma(self):
        result = ema(list(range(1, 11)), 5)

        assert np.all(np.isnan(result[:4]))
        # Seed = mean(1..5) = 3, then (6 - 3) * 2/6 + 3 = 4
        assert result[4] == pytest.approx(3.0)
        assert result[5] == pytest.approx(4.0)

    def test_ema_skips_leading_nan(self):
        result = ema([np.nan, np.nan, 1.0, 2.0, 3.0], 2)

        assert np.all(np.isnan(result[:3]))
        assert result[3] == pytest.approx(1.5)
        assert result[4] == pytest.approx(2.5)

    def test_wma_weights_newest_highest(self):
        result = wma([1.0, 2.0, 3.0], 3)
        assert result[2] == pytest.approx(14 / 6)

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            sma([1.0, 2.0, 3.0], 0)
        with pytest.raises(ValueError):
            ema([1.0, 2.0, 3.0], 2.5)


class TestMomentum:

    def test_rsi_all_gains_is_100(self):
        result = rsi(list(range(1, 31)), 14)

        assert np.all(np.isnan(result[:14]))
        assert result[14] == pytest.approx(100.0)
        assert result[-1] == pytest.approx(100.0)

    def test_rsi_flat_is_50(self):
        result = rsi([50.0] * 30, 14)
        assert result[-1] == pytest.approx(50.0)

    def test_rsi_bounds(self):
        closes = 100 + 10 * np.sin(np.arange(100) / 5)
        values = rsi(closes, 14)
        valid = values[~np.isnan(values)]
        assert np.all((valid >= 0) & (valid <= 100))

    def test_macd_histogram_is_difference(self):
        closes = 100 + np.cumsum(np.sin(np.arange(80) / 4))
        line, signal, hist = macd(closes)

        assert np.isnan(line[24]) and not np.isnan(line[25])
        # Signal seeds after `signal_period` valid MACD values
        assert np.isnan(signal[32]) and not np.isnan(signal[33])
        valid = ~np.isnan(hist)
        np.testing.assert_allclose(hist[valid], (line - signal)[valid])

    def test_macd_rejects_fast_above_slow(self):
        with pytest.raises(ValueError):
            macd([1.0] * 50, fast_period=26, slow_period=12)

    def test_stochastic_flat_range(self):
        k, d = stochastic([10.0] * 20, [10.0] * 20, [10.0] * 20, 14, 3)
        assert k[-1] == 50
        assert d[-1] == pytest.approx(50.0)

    def test_stochastic_close_at_high(self):
        highs = list(range(10, 30))
        lows = [h - 2 for h in highs]
        k, _ = stochastic(highs, lows, highs, 14, 3)
        assert k[-1] == pytest.approx(100.0)

    def test_williams_r_flat_range(self):
        result = williams_r([10.0] * 20, [10.0] * 20, [10.0] * 20, 14)
        assert result[-1] == -50

    def test_cci_flat_is_zero(self):
        result = cci([11.0] * 25, [9.0] * 25, [10.0] * 25, 20)
        assert result[-1] == 0.0
        assert np.isnan(result[18])

    def test_mfi_no_flow(self):
        result = mfi([11.0] * 20, [9.0] * 20, [10.0] * 20, [100.0] * 20, 14)
        assert result[-1] == 50.0

    def test_mfi_only_positive_flow(self):
        closes = list(range(10, 30))
        highs = [c + 1 for c in closes]
        lows = [c - 1 for c in closes]
        result = mfi(highs, lows, closes, [100.0] * 20, 14)
        assert result[-1] == 100.0

    def test_roc(self):
        result = roc([100.0, 105.0, 110.0], 2)
        assert np.isnan(result[1])
        assert result[2] == pytest.approx(10.0)


class TestVolatility:

    def test_true_range_uses_previous_close(self):
        tr = true_range([10.0, 12.0], [9.0, 11.0], [9.5, 11.5])

        assert tr[0] == pytest.approx(1.0)
        # Gap up: high - previous close = 12 - 9.5
        assert tr[1] == pytest.approx(2.5)

    def test_atr_constant_range(self):
        n = 30
        result = atr([11.0] * n, [9.0] * n, [10.0] * n, 14)

        assert np.all(np.isnan(result[:13]))
        assert result[13] == pytest.approx(2.0)
        assert result[-1] == pytest.approx(2.0)

    def test_bollinger_flat_series(self):
        upper, middle, lower, bandwidth, percent_b = bollinger_bands([100.0] * 25, 20, 2.0)

        assert upper[-1] == middle[-1] == lower[-1] == 100.0
        assert bandwidth[-1] == 0.0
        assert np.isnan(percent_b[-1])

    def test_bollinger_band_order(self):
        closes = 100 + 5 * np.sin(np.arange(60) / 3)
        upper, middle, lower, _, percent_b = bollinger_bands(closes, 20, 2.0)

        assert upper[-1] > middle[-1] > lower[-1]
        assert 0 <= percent_b[-1] <= 1

    def test_historical_volatility(self):
        assert historical_volatility([100.0] * 30) == 0.0
        assert historical_volatility([100.0] * 10) is None


class TestVolume:

    def test_vwap_cumulative(self):
        result = vwap([11.0, 13.0], [9.0, 11.0], [10.0, 12.0], [100.0, 300.0])

        assert result[0] == pytest.approx(10.0)
        # (10 * 100 + 12 * 300) / 400
        assert result[1] == pytest.approx(11.5)

    def test_vwap_session_reset(self):
        result = vwap(
            [11.0, 13.0, 21.0],
            [9.0, 11.0, 19.0],
            [10.0, 12.0, 20.0],
            [100.0, 300.0, 50.0],
            sessions=["d1", "d1", "d2"],
        )
        assert result[2] == pytest.approx(20.0)

    def test_vwap_zero_volume_falls_back_to_typical_price(self):
        result = vwap([11.0], [9.0], [10.0], [0.0])
        assert result[0] == pytest.approx(10.0)

    def test_obv(self):
        result = obv([1.0, 2.0, 1.0, 1.0], [10.0, 20.0, 30.0, 40.0])
        np.testing.assert_array_equal(result, [10.0, 30.0, 0.0, 0.0])


class TestTrend:

    def test_adx_warmup_and_strong_uptrend(self):
        n = 40
        highs = [100.0 + i + 1 for i in range(n)]
        lows = [100.0 + i - 1 for i in range(n)]
        closes = [100.0 + i for i in range(n)]
        adx_values, plus_di, minus_di = adx(highs, lows, closes, 14)

        assert np.isnan(plus_di[13]) and not np.isnan(plus_di[14])
        assert np.isnan(adx_values[26]) and not np.isnan(adx_values[27])
        assert plus_di[-1] > 0
        assert minus_di[-1] == 0.0
        assert adx_values[-1] == pytest.approx(100.0)

    def test_adx_insufficient_data(self):
        adx_values, _, _ = adx([1.0] * 5, [1.0] * 5, [1.0] * 5, 14)
        assert np.all(np.isnan(adx_values))

    def test_psar_stays_below_lows_in_uptrend(self):
        n = 30
        highs = np.array([100.0 + i + 1 for i in range(n)])
        lows = np.array([100.0 + i - 1 for i in range(n)])
        result = psar(highs, lows, (highs + lows) / 2)

        assert np.isnan(result[0])
        assert np.all(result[1:] < lows[1:])

    def test_psar_flips_on_reversal(self):
        up = [100.0 + i for i in range(15)]
        down = [114.0 - 3 * i for i in range(1, 10)]
        closes = np.array(up + down)
        result = psar(closes + 0.5, closes - 0.5, closes)

        assert result[10] < closes[10]
        assert result[-1] > closes[-1]

    def test_psar_invalid_step(self):
        with pytest.raises(ValueError):
            psar([2.0, 3.0], [1.0, 2.0], step=0.3, max_step=0.2)


class TestLevels:

    def test_standard_pivots(self):
        levels = find_pivot_points(110.0, 90.0, 100.0, "standard")

        assert levels["pivot"] == 100.0
        assert levels["r1"] == 110.0 and levels["s1"] == 90.0
        assert levels["r2"] == 120.0 and levels["s2"] == 80.0
        assert levels["r3"] == 130.0 and levels["s3"] == 70.0
        assert levels["type"] == "standard"

    def test_fibonacci_pivots(self):
        levels = find_pivot_points(110.0, 90.0, 100.0, "fibonacci")
        assert levels["r1"] == pytest.approx(107.64)
        assert levels["s3"] == pytest.approx(80.0)

    def test_unknown_pivot_type(self):
        with pytest.raises(ValueError):
            find_pivot_points(110.0, 90.0, 100.0, "woodie")

    def test_support_resistance_sides(self):
        closes = 100 + 5 * np.sin(np.arange(60) / 3)
        support, resistance = find_support_resistance(closes + 1, closes - 1, closes, 50)

        assert all(level < closes[-1] for level in support)
        assert all(level > closes[-1] for level in resistance)
        assert support == sorted(support, reverse=True)
        assert resistance == sorted(resistance)


class TestUtilities:

    def test_crossovers_against_series(self):
        events = crossovers([1.0, 2.0, 3.0, 1.0], [2.0, 2.0, 2.0, 2.0])
        assert events == [(2, "above"), (3, "below")]

    def test_crossovers_against_scalar_skip_nan(self):
        events = crossovers([np.nan, 80.0, 60.0, 75.0], 70)
        assert events == [(2, "below"), (3, "above")]

    def test_get_last_valid(self):
        assert get_last_valid(np.array([1.0, 2.0, np.nan])) == 2.0
        assert get_last_valid(np.array([np.nan])) is None

    def test_divergence(self):
        falling = list(range(30, 16, -1))
        rising = list(range(14))
        assert detect_divergence(falling, rising) == "BULLISH"
        assert detect_divergence(rising, falling) == "BEARISH"
        assert detect_divergence(rising, rising) is None
