"""Technical indicator calculations over closing-price sequences.

Every public function returns ``None`` when the series is too short for its
look-back window instead of raising, so callers can treat the indicator as
"not yet computable". Values are rounded to two decimals on the way out; the
private helpers stay unrounded so that indicators built on top of other
indicators never compound rounding error.
"""
from __future__ import annotations

from statistics import mean, pstdev
from typing import NamedTuple, Sequence


PRECISION = 2


class BollingerBands(NamedTuple):
    upper: float
    middle: float
    lower: float


def _check_period(period: int) -> None:
    if period <= 0:
        raise ValueError(f"Indicator period must be positive, got {period}")


def _round(value: float) -> float:
    return round(value, PRECISION)


def _sma(prices: Sequence[float], period: int) -> float | None:
    if len(prices) < period:
        return None
    return mean(prices[-period:])


def _ema(prices: Sequence[float], period: int) -> float | None:
    if len(prices) < period:
        return None
    multiplier = 2 / (period + 1)
    ema = mean(prices[:period])
    for price in prices[period:]:
        ema = price * multiplier + ema * (1 - multiplier)
    return ema


def sma(prices: Sequence[float], period: int) -> float | None:
    """Arithmetic mean of the last ``period`` closes."""

    _check_period(period)
    value = _sma(prices, period)
    return None if value is None else _round(value)


def ema(prices: Sequence[float], period: int) -> float | None:
    """Exponential moving average seeded with the SMA of the first window."""

    _check_period(period)
    value = _ema(prices, period)
    return None if value is None else _round(value)


def rsi(prices: Sequence[float], period: int = 14) -> float | None:
    """Relative strength index over the first ``period`` price changes.

    Only the opening window of the series is used; the value is not
    re-smoothed across later bars. A window without losses yields 100.
    """

    _check_period(period)
    if len(prices) < period + 1:
        return None

    gains = 0.0
    losses = 0.0
    for previous, current in zip(prices[:period], prices[1 : period + 1]):
        change = current - previous
        if change > 0:
            gains += change
        else:
            losses += abs(change)

    average_gain = gains / period
    average_loss = losses / period
    if average_loss == 0:
        return 100.0

    relative_strength = average_gain / average_loss
    return _round(100 - 100 / (1 + relative_strength))


def macd(prices: Sequence[float], fast: int = 12, slow: int = 26) -> float | None:
    """MACD line: fast EMA minus slow EMA."""

    _check_period(fast)
    _check_period(slow)
    if fast >= slow:
        raise ValueError("MACD fast period must be shorter than the slow period")
    fast_ema = _ema(prices, fast)
    slow_ema = _ema(prices, slow)
    if fast_ema is None or slow_ema is None:
        return None
    return _round(fast_ema - slow_ema)


def bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    multiplier: float = 2.0,
) -> BollingerBands | None:
    """Bands at ``multiplier`` population standard deviations around the SMA."""

    _check_period(period)
    middle = _sma(prices, period)
    if middle is None:
        return None
    deviation = pstdev(prices[-period:], mu=middle)
    return BollingerBands(
        upper=_round(middle + multiplier * deviation),
        middle=_round(middle),
        lower=_round(middle - multiplier * deviation),
    )


def true_ranges(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """True range of every bar after the first."""

    ranges: list[float] = []
    for index in range(1, min(len(highs), len(lows), len(closes))):
        previous_close = closes[index - 1]
        ranges.append(
            max(
                highs[index] - lows[index],
                abs(highs[index] - previous_close),
                abs(lows[index] - previous_close),
            )
        )
    return ranges


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float | None:
    """Average true range with Wilder smoothing after a simple-mean seed."""

    _check_period(period)
    if min(len(highs), len(lows), len(closes)) < period + 1:
        return None

    ranges = true_ranges(highs, lows, closes)
    value = mean(ranges[:period])
    for true_range in ranges[period:]:
        value = (value * (period - 1) + true_range) / period
    return _round(value)


__all__ = [
    "BollingerBands",
    "PRECISION",
    "atr",
    "bollinger_bands",
    "ema",
    "macd",
    "rsi",
    "sma",
    "true_ranges",
]
