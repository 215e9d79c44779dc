"""Implementation of :class:`DataProvider` backed by a JSON or YAML dataset.

The dataset mirrors the records the screener front end works with::

    stocks:      [{Id, symbol, name, price, change, changePercent, volume,
                   marketCap, sector, indicators?}]
    indicators:  [{Id, stockId, type, value, signal, timestamp}]
    history:     {SYMBOL: [{timestamp, open, high, low, close, volume}]}

Top-level ``indicators`` are joined onto their stock through ``stockId``.
"""
from __future__ import annotations

import logging
from datetime import datetime
from functools import cached_property
from pathlib import Path
from typing import Mapping, Sequence

from ..config import DataAcquisition, load_document
from ..models import PriceSeries, Stock
from .base import DataProvider


logger = logging.getLogger(__name__)


class FileProvider(DataProvider):
    """Serves quotes, stored indicators and history from a local file."""

    def __init__(self, config: DataAcquisition) -> None:
        path = config.dataset_path or config.provider_options.get("path")
        if not path:
            raise RuntimeError(
                "FileProvider requires data.dataset_path or provider_options['path']"
            )
        self._path = Path(str(path)).expanduser()
        self._config = config

    @cached_property
    def _document(self) -> Mapping[str, object]:
        logger.info("Loading dataset", extra={"path": str(self._path)})
        document = load_document(self._path)
        if not isinstance(document, Mapping):
            raise RuntimeError(f"Dataset {self._path} must contain a mapping at the top level")
        return document

    @cached_property
    def _stocks(self) -> dict[str, Stock]:
        raw_stocks = self._document.get("stocks") or []
        raw_indicators = self._document.get("indicators") or []

        by_stock_id: dict[int, list[Mapping[str, object]]] = {}
        for item in raw_indicators:
            stock_id = int(item.get("stockId", item.get("stock_id", 0)) or 0)
            by_stock_id.setdefault(stock_id, []).append(item)

        stocks: dict[str, Stock] = {}
        for item in raw_stocks:
            record = dict(item)
            stock_id = int(record.get("Id", record.get("id", 0)) or 0)
            joined = by_stock_id.get(stock_id)
            if joined:
                record["indicators"] = list(record.get("indicators") or []) + joined
            stock = Stock.from_dict(record)
            stocks[stock.symbol] = stock
        logger.debug("Parsed dataset stocks", extra={"count": len(stocks)})
        return stocks

    @cached_property
    def _histories(self) -> Mapping[str, object]:
        history = self._document.get("history") or {}
        if not isinstance(history, Mapping):
            raise RuntimeError("Dataset 'history' must map symbols to bar lists")
        return {str(symbol).upper(): bars for symbol, bars in history.items()}

    def list_symbols(self) -> Sequence[str]:
        return tuple(self._stocks)

    def warm_cache(self, symbols: Sequence[str], as_of: datetime) -> None:
        # Parse eagerly so worker threads only read.
        self._stocks
        self._histories

    def fetch_stock(self, symbol: str, as_of: datetime) -> Stock:
        try:
            return self._stocks[symbol]
        except KeyError as exc:
            logger.error("Symbol missing from dataset", extra={"symbol": symbol})
            raise KeyError(f"Symbol {symbol} not found in {self._path}") from exc

    def fetch_history(self, symbol: str, as_of: datetime) -> PriceSeries | None:
        bars = self._histories.get(symbol)
        if not bars:
            return None
        series = PriceSeries.from_records(symbol, bars)
        cutoff = _comparable(as_of, series)
        if cutoff is None:
            return series
        return PriceSeries(symbol, [point for point in series.points if point.timestamp <= cutoff])


def _comparable(as_of: datetime, series: PriceSeries) -> datetime | None:
    """Return ``as_of`` in the same awareness as the series timestamps."""

    last = series.last
    if last is None:
        return None
    if (last.timestamp.tzinfo is None) == (as_of.tzinfo is None):
        return as_of
    if as_of.tzinfo is None:
        return as_of.replace(tzinfo=last.timestamp.tzinfo)
    return as_of.replace(tzinfo=None)
