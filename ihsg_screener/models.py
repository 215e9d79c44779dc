"""Domain models for the stock screener."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from .analyzers import TechnicalSnapshot


logger = logging.getLogger(__name__)


class IndicatorType(str, Enum):
    """Closed set of values a filter criterion can be evaluated against."""

    RSI = "RSI"
    MACD = "MACD"
    SMA_20 = "SMA_20"
    EMA_12 = "EMA_12"
    PRICE = "PRICE"

    @classmethod
    def parse(cls, value: object) -> "IndicatorType | None":
        """Return the matching member or ``None`` for unknown names."""

        if isinstance(value, cls):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class Signal(str, Enum):
    """Discrete trading interpretation attached to an indicator value."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"


def parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        # datetime.fromisoformat only accepts the trailing "Z" from Python 3.11.
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise TypeError(f"Timestamps must be ISO strings or datetimes, got {type(value)!r}")


@dataclass(frozen=True)
class PricePoint:
    """Single OHLCV bar."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "PricePoint":
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            open=float(data["open"]),
            high=float(data["high"]),
            low=float(data["low"]),
            close=float(data["close"]),
            volume=int(float(data.get("volume", 0) or 0)),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class PriceSeries:
    """Chronologically ordered price history for one symbol.

    The series is the only input to the indicator math, so it must be fully
    materialised and ascending by timestamp.
    """

    symbol: str
    points: Sequence[PricePoint] = ()

    def __post_init__(self) -> None:
        points = tuple(self.points)
        for previous, current in zip(points, points[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError(
                    f"Price series for {self.symbol} is not ascending at {current.timestamp.isoformat()}"
                )
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def closes(self) -> tuple[float, ...]:
        return tuple(point.close for point in self.points)

    @property
    def highs(self) -> tuple[float, ...]:
        return tuple(point.high for point in self.points)

    @property
    def lows(self) -> tuple[float, ...]:
        return tuple(point.low for point in self.points)

    @property
    def volumes(self) -> tuple[int, ...]:
        return tuple(point.volume for point in self.points)

    @property
    def last(self) -> PricePoint | None:
        return self.points[-1] if self.points else None

    @classmethod
    def from_records(cls, symbol: str, records: Iterable[Mapping[str, object]]) -> "PriceSeries":
        return cls(symbol=symbol, points=tuple(PricePoint.from_dict(record) for record in records))


@dataclass(frozen=True)
class Indicator:
    """Computed, signal-tagged indicator value for one stock."""

    id: int
    stock_id: int
    type: IndicatorType
    value: float
    signal: Signal
    timestamp: datetime

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Indicator":
        indicator_type = IndicatorType.parse(data.get("type"))
        if indicator_type is None:
            raise ValueError(f"Unknown indicator type {data.get('type')!r}")
        stock_id = data.get("stockId", data.get("stock_id"))
        return cls(
            id=int(data.get("Id", data.get("id", 0)) or 0),
            stock_id=int(stock_id or 0),
            type=indicator_type,
            value=round(float(data["value"]), 2),
            signal=Signal(str(data.get("signal", Signal.NEUTRAL.value)).lower()),
            timestamp=parse_timestamp(data["timestamp"]),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "stockId": self.stock_id,
            "type": self.type.value,
            "value": self.value,
            "signal": self.signal.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Stock:
    """Quote and indicator data for a single listed equity."""

    id: int
    symbol: str
    name: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0
    market_cap: float = 0.0
    sector: str = ""
    indicators: Sequence[Indicator] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "indicators", tuple(self.indicators))

    def indicator(self, indicator_type: IndicatorType | str) -> Optional[Indicator]:
        """Look up the current indicator of ``indicator_type`` if present."""

        wanted = IndicatorType.parse(indicator_type)
        if wanted is None:
            return None
        for indicator in self.indicators:
            if indicator.type is wanted:
                return indicator
        return None

    def indicator_value(self, indicator_type: IndicatorType | str) -> Optional[float]:
        indicator = self.indicator(indicator_type)
        return None if indicator is None else indicator.value

    def with_indicators(self, indicators: Iterable[Indicator]) -> "Stock":
        """Return a copy holding at most one indicator per type."""

        kept: dict[IndicatorType, Indicator] = {}
        for indicator in indicators:
            if indicator.type in kept:
                logger.warning(
                    "Dropping duplicate indicator",
                    extra={"symbol": self.symbol, "type": indicator.type.value},
                )
                continue
            kept[indicator.type] = indicator
        return replace(self, indicators=tuple(kept.values()))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Stock":
        symbol = str(data["symbol"]).strip().upper()
        stock = cls(
            id=int(data.get("Id", data.get("id", 0)) or 0),
            symbol=symbol,
            name=str(data.get("name") or symbol),
            price=float(data["price"]),
            change=float(data.get("change", 0.0) or 0.0),
            change_percent=float(data.get("changePercent", data.get("change_percent", 0.0)) or 0.0),
            volume=int(float(data.get("volume", 0) or 0)),
            market_cap=float(data.get("marketCap", data.get("market_cap", 0.0)) or 0.0),
            sector=str(data.get("sector") or ""),
        )
        raw_indicators = data.get("indicators") or ()
        if not raw_indicators:
            return stock
        indicators: list[Indicator] = []
        for item in raw_indicators:
            if IndicatorType.parse(item.get("type")) is None:
                logger.warning(
                    "Skipping indicator of unknown type",
                    extra={"symbol": symbol, "type": item.get("type")},
                )
                continue
            indicators.append(Indicator.from_dict(item))
        return stock.with_indicators(indicators)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
            "marketCap": self.market_cap,
            "sector": self.sector,
            "indicators": [indicator.to_dict() for indicator in self.indicators],
        }


@dataclass(slots=True)
class ScreenerResult:
    """Outcome for a single symbol after applying all filters."""

    symbol: str
    stock: Stock | None
    passed_filters: Mapping[str, bool]
    error: Exception | None = None
    technicals: "TechnicalSnapshot | None" = None

    def is_match(self) -> bool:
        """Whether the stock satisfies every enabled criterion.

        An empty mapping means no enabled criteria were supplied, which keeps
        the stock in the result set.
        """

        return self.error is None and self.stock is not None and all(
            self.passed_filters.values()
        )
