from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ihsg_screener.models import Indicator, IndicatorType, PricePoint, PriceSeries, Signal, Stock


AS_OF = datetime(2024, 6, 28, 9, 0, tzinfo=timezone.utc)


def make_indicator(stock_id: int, indicator_type: IndicatorType, value: float) -> Indicator:
    return Indicator(
        id=stock_id * 10,
        stock_id=stock_id,
        type=indicator_type,
        value=value,
        signal=Signal.NEUTRAL,
        timestamp=AS_OF,
    )


def make_series(symbol: str, closes, spread: float = 1.0) -> PriceSeries:
    start = AS_OF - timedelta(days=len(closes))
    points = [
        PricePoint(
            timestamp=start + timedelta(days=index),
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=1_000 + index,
        )
        for index, close in enumerate(closes)
    ]
    return PriceSeries(symbol, points)


@pytest.fixture
def as_of() -> datetime:
    return AS_OF


@pytest.fixture
def universe() -> list[Stock]:
    return [
        Stock(
            id=1,
            symbol="AAA",
            name="Alpha",
            price=1000.0,
            indicators=(make_indicator(1, IndicatorType.RSI, 72.0),),
        ),
        Stock(
            id=2,
            symbol="BBB",
            name="Bravo",
            price=500.0,
            indicators=(make_indicator(2, IndicatorType.RSI, 40.0),),
        ),
    ]
