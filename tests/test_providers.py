import json
from datetime import datetime, timezone

import pytest

from ihsg_screener.config import DataAcquisition
from ihsg_screener.data_providers.file_provider import FileProvider
from ihsg_screener.data_providers.simulated_provider import SimulatedProvider
from ihsg_screener.factories import resolve_provider_factory
from ihsg_screener.models import IndicatorType, Signal


AS_OF = datetime(2024, 6, 28, tzinfo=timezone.utc)


def bar(day: int, close: float) -> dict:
    return {
        "timestamp": f"2024-06-{day:02d}T00:00:00Z",
        "open": close,
        "high": close + 5,
        "low": close - 5,
        "close": close,
        "volume": 1000,
    }


@pytest.fixture
def dataset(tmp_path):
    document = {
        "stocks": [
            {"Id": 1, "symbol": "bbca", "name": "Bank Central Asia", "price": 9850, "changePercent": 1.2, "sector": "Financials"},
            {"Id": 2, "symbol": "TLKM", "name": "Telkom Indonesia", "price": 3100},
        ],
        "indicators": [
            {"Id": 11, "stockId": 1, "type": "RSI", "value": 64.129, "signal": "neutral", "timestamp": "2024-06-27T00:00:00Z"},
            {"Id": 12, "stockId": 1, "type": "STOCH", "value": 12, "signal": "oversold", "timestamp": "2024-06-27T00:00:00Z"},
        ],
        "history": {"tlkm": [bar(day, 3000 + day) for day in range(1, 30)]},
    }
    path = tmp_path / "universe.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_file_provider_joins_indicators_by_stock_id(dataset):
    provider = FileProvider(DataAcquisition(provider="file", dataset_path=dataset))
    provider.warm_cache(provider.list_symbols(), AS_OF)

    assert list(provider.list_symbols()) == ["BBCA", "TLKM"]
    stock = provider.fetch_stock("BBCA", AS_OF)
    assert stock.change_percent == 1.2
    rsi = stock.indicator(IndicatorType.RSI)
    assert rsi.value == 64.13
    assert rsi.signal is Signal.NEUTRAL
    assert len(stock.indicators) == 1
    assert provider.fetch_history("BBCA", AS_OF) is None


def test_file_provider_history_is_cut_at_as_of(dataset):
    provider = FileProvider(DataAcquisition(provider="file", dataset_path=dataset))
    series = provider.fetch_history("TLKM", datetime(2024, 6, 10, 12, tzinfo=timezone.utc))
    assert len(series) == 10
    assert series.closes[-1] == 3010.0


def test_file_provider_unknown_symbol(dataset):
    provider = FileProvider(DataAcquisition(provider="file", dataset_path=dataset))
    with pytest.raises(KeyError):
        provider.fetch_stock("GOTO", AS_OF)


def test_file_provider_requires_a_path():
    with pytest.raises(RuntimeError):
        FileProvider(DataAcquisition(provider="file"))


def simulated(seed=1, period="1M"):
    return SimulatedProvider(
        DataAcquisition(
            provider="simulated",
            history_period=period,
            provider_options={
                "seed": seed,
                "stocks": {"bbri": {"name": "Bank Rakyat", "price": 4500, "volume": 90_000_000}},
            },
        )
    )


def test_simulated_history_is_reproducible():
    first = simulated().fetch_history("BBRI", AS_OF)
    second = simulated().fetch_history("BBRI", AS_OF)
    other_seed = simulated(seed=2).fetch_history("BBRI", AS_OF)

    assert first == second
    assert first.closes != other_seed.closes
    assert len(first) == 31
    assert first.last.timestamp == AS_OF
    assert all(point.low <= point.close <= point.high for point in first.points)


def test_simulated_quote_uses_profile():
    provider = simulated()
    provider.warm_cache(provider.list_symbols(), AS_OF)
    stock = provider.fetch_stock("BBRI", AS_OF)
    assert stock.id == 1
    assert stock.name == "Bank Rakyat"
    assert stock.price == provider.fetch_history("BBRI", AS_OF).closes[-1]


def test_resolve_provider_factory():
    assert resolve_provider_factory("simulated") is SimulatedProvider
    with pytest.raises(KeyError, match="Available"):
        resolve_provider_factory("polygon")
