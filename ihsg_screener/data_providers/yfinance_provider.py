"""Implementation of :class:`DataProvider` using the `yfinance` package."""
from __future__ import annotations

import logging
from datetime import datetime
from functools import cached_property
from typing import Mapping, Sequence

from ..analyzers import build_quote
from ..config import DataAcquisition
from ..models import PricePoint, PriceSeries, Stock
from .base import DataProvider

logger = logging.getLogger(__name__)

try:  # pragma: no cover - optional dependency
    import yfinance as yf
except Exception as exc:  # pragma: no cover - best effort import guard
    yf = None
    _IMPORT_ERROR = exc
else:  # pragma: no cover - no easy deterministic coverage
    _IMPORT_ERROR = None


_YF_PERIODS: Mapping[str, str] = {
    "1D": "5d",
    "1W": "5d",
    "1M": "1mo",
    "3M": "3mo",
    "6M": "6mo",
    "1Y": "1y",
}


class YFinanceProvider(DataProvider):
    """Loads daily history and company details via Yahoo Finance.

    IDX listings trade on Yahoo under a ``.JK`` suffix; set
    ``provider_options['symbol_suffix']`` to append it transparently.
    """

    def __init__(self, config: DataAcquisition) -> None:
        if yf is None:  # pragma: no cover - executed only without dependency
            raise RuntimeError(
                "yfinance is required for YFinanceProvider but could not be imported"
            ) from _IMPORT_ERROR
        self._config = config
        self._suffix = str(config.provider_options.get("symbol_suffix", "") or "")
        self._histories: dict[str, PriceSeries] = {}
        self._ids: dict[str, int] = {}

    @cached_property
    def _session_tz(self):  # pragma: no cover - timezone conversion not deterministic
        import pytz

        return pytz.timezone(self._config.timezone)

    def _ticker_symbol(self, symbol: str) -> str:
        if self._suffix and not symbol.endswith(self._suffix):
            return f"{symbol}{self._suffix}"
        return symbol

    def list_symbols(self) -> Sequence[str]:
        raise RuntimeError("YFinanceProvider requires universe.symbols to be configured")

    def warm_cache(self, symbols: Sequence[str], as_of: datetime) -> None:  # pragma: no cover - yfinance caches automatically
        for index, symbol in enumerate(symbols, start=1):
            self._ids.setdefault(symbol, index)

    def _localize(self, as_of: datetime) -> datetime:  # pragma: no cover - network bound callers
        if as_of.tzinfo is None:
            return self._session_tz.localize(as_of)
        return as_of.astimezone(self._session_tz)

    def fetch_history(self, symbol: str, as_of: datetime) -> PriceSeries:
        cached = self._histories.get(symbol)
        if cached is not None:
            return cached

        ticker_symbol = self._ticker_symbol(symbol)
        period = _YF_PERIODS[self._config.history_period]
        logger.debug(
            "Requesting yfinance historical data",
            extra={"symbol": ticker_symbol, "period": period, "interval": "1d"},
        )
        hist = yf.Ticker(ticker_symbol).history(period=period, interval="1d")
        logger.debug(
            "Received yfinance historical data",
            extra={"symbol": ticker_symbol, "rows": int(getattr(hist, "shape", (0, 0))[0])},
        )
        if hist.empty:
            logger.error("No historical data returned", extra={"symbol": ticker_symbol})
            raise RuntimeError(f"No historical data returned for {ticker_symbol}")

        cutoff = self._localize(as_of)
        hist = hist.tz_convert(self._config.timezone)
        points = [
            PricePoint(
                timestamp=index.to_pydatetime(),
                open=float(row["Open"]),
                high=float(row["High"]),
                low=float(row["Low"]),
                close=float(row["Close"]),
                volume=int(row["Volume"]),
            )
            for index, row in hist.loc[:cutoff].iterrows()
        ]
        if not points:
            raise RuntimeError(f"No historical data for {ticker_symbol} before {cutoff.isoformat()}")

        series = PriceSeries(symbol, points)
        self._histories[symbol] = series
        return series

    def fetch_stock(self, symbol: str, as_of: datetime) -> Stock:
        logger.info(
            "Fetching yfinance quote",
            extra={"symbol": symbol, "as_of": as_of.isoformat()},
        )
        series = self.fetch_history(symbol, as_of)

        logger.debug("Requesting yfinance ticker info", extra={"symbol": symbol})
        info = yf.Ticker(self._ticker_symbol(symbol)).get_info()
        if not isinstance(info, dict):
            info = {}

        return build_quote(
            self._ids.get(symbol, 0),
            series,
            name=str(info.get("longName") or info.get("shortName") or symbol),
            sector=str(info.get("sector") or ""),
            market_cap=float(info.get("marketCap") or 0.0),
        )
