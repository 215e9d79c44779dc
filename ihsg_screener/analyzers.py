"""Analytics helpers for transforming raw price history into screenable indicators."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from . import indicators
from .indicators import BollingerBands
from .models import Indicator, IndicatorType, PriceSeries, Signal, Stock
from .signals import DEFAULT_SIGNAL_RULES, SignalRule, annotate


logger = logging.getLogger(__name__)


RSI_PERIOD = 14
SMA_PERIOD = 20
EMA_PERIOD = 12
MACD_FAST = 12
MACD_SLOW = 26
BOLLINGER_PERIOD = 20
BOLLINGER_MULTIPLIER = 2.0
ATR_PERIOD = 14

# Order in which computed indicators are attached to a stock.
ATTACHED_TYPES = (
    IndicatorType.RSI,
    IndicatorType.MACD,
    IndicatorType.SMA_20,
    IndicatorType.EMA_12,
)


@dataclass(frozen=True)
class TechnicalSnapshot:
    """Every indicator value derivable from one price series."""

    symbol: str
    last_close: float | None
    rsi: float | None
    macd: float | None
    sma_20: float | None
    ema_12: float | None
    bollinger: BollingerBands | None
    atr: float | None

    def value_for(self, indicator_type: IndicatorType) -> float | None:
        return {
            IndicatorType.RSI: self.rsi,
            IndicatorType.MACD: self.macd,
            IndicatorType.SMA_20: self.sma_20,
            IndicatorType.EMA_12: self.ema_12,
            IndicatorType.PRICE: self.last_close,
        }[indicator_type]


def build_technical_snapshot(series: PriceSeries) -> TechnicalSnapshot:
    """Run every indicator calculation over ``series``."""

    closes = series.closes
    snapshot = TechnicalSnapshot(
        symbol=series.symbol,
        last_close=closes[-1] if closes else None,
        rsi=indicators.rsi(closes, RSI_PERIOD),
        macd=indicators.macd(closes, MACD_FAST, MACD_SLOW),
        sma_20=indicators.sma(closes, SMA_PERIOD),
        ema_12=indicators.ema(closes, EMA_PERIOD),
        bollinger=indicators.bollinger_bands(closes, BOLLINGER_PERIOD, BOLLINGER_MULTIPLIER),
        atr=indicators.atr(series.highs, series.lows, closes, ATR_PERIOD),
    )
    missing = [
        indicator_type.value
        for indicator_type in ATTACHED_TYPES
        if snapshot.value_for(indicator_type) is None
    ]
    if missing:
        logger.debug(
            "Insufficient history for indicators",
            extra={"symbol": series.symbol, "bars": len(series), "missing": missing},
        )
    return snapshot


def build_indicators(
    stock_id: int,
    snapshot: TechnicalSnapshot,
    as_of: datetime,
    rules: Mapping[IndicatorType, SignalRule] = DEFAULT_SIGNAL_RULES,
) -> tuple[Indicator, ...]:
    """Create signal-tagged :class:`Indicator` records for the computable types."""

    records: list[Indicator] = []
    for ordinal, indicator_type in enumerate(ATTACHED_TYPES, start=1):
        value = snapshot.value_for(indicator_type)
        if value is None:
            continue
        records.append(
            Indicator(
                id=stock_id * 10 + ordinal,
                stock_id=stock_id,
                type=indicator_type,
                value=value,
                signal=annotate(indicator_type, value, snapshot.last_close, rules),
                timestamp=as_of,
            )
        )
    return tuple(records)


def build_quote(
    stock_id: int,
    series: PriceSeries,
    *,
    name: str | None = None,
    sector: str = "",
    market_cap: float = 0.0,
) -> Stock:
    """Factory that assembles a :class:`Stock` quote from the latest bars."""

    last = series.last
    if last is None:
        raise ValueError(f"Cannot build a quote for {series.symbol} from an empty series")
    previous_close = series.points[-2].close if len(series) > 1 else last.close
    change = last.close - previous_close
    change_percent = change / previous_close * 100 if previous_close else 0.0
    return Stock(
        id=stock_id,
        symbol=series.symbol,
        name=name or series.symbol,
        price=last.close,
        change=round(change, 2),
        change_percent=round(change_percent, 2),
        volume=last.volume,
        market_cap=market_cap,
        sector=sector,
    )


def price_signal(
    stock: Stock,
    rules: Mapping[IndicatorType, SignalRule] = DEFAULT_SIGNAL_RULES,
) -> Signal:
    """Classify the latest session move of ``stock`` against its previous close."""

    previous_close = stock.price - stock.change
    return annotate(IndicatorType.PRICE, stock.price, previous_close, rules)


__all__ = [
    "ATTACHED_TYPES",
    "TechnicalSnapshot",
    "build_indicators",
    "build_quote",
    "build_technical_snapshot",
    "price_signal",
]
