import random
from statistics import mean

import pytest

from ihsg_screener import indicators


def test_sma_requires_full_window():
    assert indicators.sma([1.0, 2.0], 3) is None


def test_sma_of_exact_window_is_mean():
    prices = [10.0, 11.0, 12.0, 13.0, 14.0]
    assert indicators.sma(prices, 5) == pytest.approx(mean(prices))


def test_sma_uses_trailing_window_and_rounds():
    assert indicators.sma([100.0, 1.0, 2.0, 2.0], 3) == 1.67


def test_ema_requires_full_window():
    assert indicators.ema([1.0, 2.0, 3.0], 4) is None


def test_ema_seed_equals_sma_for_exact_window():
    prices = [3.0, 5.0, 4.0, 8.0]
    assert indicators.ema(prices, 4) == indicators.sma(prices, 4)


def test_ema_reacts_faster_than_sma_on_rising_series():
    prices = [100 * 1.05 ** i for i in range(60)]
    assert indicators.ema(prices, 10) > indicators.sma(prices, 10)


def test_rsi_known_value_uses_first_window_only():
    assert indicators.rsi([10.0, 12.0, 11.0], period=2) == pytest.approx(66.67)
    # Later bars do not move a single-window RSI.
    assert indicators.rsi([10.0, 12.0, 11.0, 1.0, 0.5], period=2) == pytest.approx(66.67)


def test_rsi_is_100_without_losses():
    prices = [1.0, 2.0, 2.0, 3.0, 4.0]
    assert indicators.rsi(prices, period=4) == 100.0


def test_rsi_is_0_without_gains():
    prices = [5.0, 4.0, 3.0, 2.0, 1.0]
    assert indicators.rsi(prices, period=4) == 0.0


def test_rsi_requires_period_deltas():
    assert indicators.rsi([1.0] * 14, period=14) is None
    assert indicators.rsi([1.0] * 15, period=14) is not None


def test_rsi_stays_within_bounds():
    rng = random.Random(7)
    for _ in range(50):
        prices = [rng.uniform(50, 150) for _ in range(30)]
        value = indicators.rsi(prices)
        assert 0.0 <= value <= 100.0


def test_macd_on_linear_series():
    prices = [float(i) for i in range(1, 41)]
    assert indicators.macd(prices) == pytest.approx(7.0)


def test_macd_requires_slow_window():
    assert indicators.macd([float(i) for i in range(25)]) is None


def test_macd_rejects_inverted_periods():
    with pytest.raises(ValueError):
        indicators.macd([1.0] * 40, fast=26, slow=12)


def test_bollinger_middle_matches_sma():
    rng = random.Random(3)
    prices = [rng.uniform(900, 1100) for _ in range(40)]
    bands = indicators.bollinger_bands(prices)
    assert bands.middle == indicators.sma(prices, 20)
    assert bands.lower <= bands.middle <= bands.upper


def test_bollinger_uses_population_deviation():
    bands = indicators.bollinger_bands([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0], period=8)
    assert bands == indicators.BollingerBands(upper=9.0, middle=5.0, lower=1.0)


def test_bollinger_insufficient_data():
    assert indicators.bollinger_bands([1.0] * 19) is None


def test_atr_seed_then_wilder_smoothing():
    highs = [11.0, 11.0, 12.0, 13.0]
    lows = [9.0, 9.0, 9.0, 9.0]
    closes = [10.0, 10.0, 10.0, 10.0]
    assert indicators.true_ranges(highs, lows, closes) == [2.0, 3.0, 4.0]
    assert indicators.atr(highs, lows, closes, period=2) == pytest.approx(3.25)


def test_atr_uses_previous_close_gaps():
    highs = [10.0, 15.0]
    lows = [9.0, 14.0]
    closes = [9.5, 14.5]
    assert indicators.atr(highs, lows, closes, period=1) == pytest.approx(5.5)


def test_atr_requires_period_plus_one_bars():
    bars = [10.0] * 14
    assert indicators.atr(bars, bars, bars, period=14) is None
    assert indicators.atr(bars + [10.0], bars + [10.0], bars + [10.0], period=14) == 0.0


@pytest.mark.parametrize("function", [indicators.sma, indicators.ema, indicators.rsi])
def test_non_positive_period_is_rejected(function):
    with pytest.raises(ValueError):
        function([1.0, 2.0, 3.0], 0)
