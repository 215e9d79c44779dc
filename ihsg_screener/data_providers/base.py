"""Abstract interfaces for sourcing market data."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Sequence

from ..models import PriceSeries, Stock


logger = logging.getLogger(__name__)


class DataProvider(ABC):
    """Interface for fetching the quotes and price history the screener needs.

    Providers hand over fully materialised data; the indicator math never sees
    a partial series.
    """

    @abstractmethod
    def list_symbols(self) -> Sequence[str]:
        """Symbols available when the configuration does not name any."""

    @abstractmethod
    def fetch_stock(self, symbol: str, as_of: datetime) -> Stock:
        """Load the latest quote for ``symbol``, with any stored indicators."""

    @abstractmethod
    def fetch_history(self, symbol: str, as_of: datetime) -> PriceSeries | None:
        """Load daily bars up to ``as_of``; ``None`` when no history is kept."""

    @abstractmethod
    def warm_cache(self, symbols: Sequence[str], as_of: datetime) -> None:
        """Optional hook to pre-fetch data for improved latency."""


class InMemoryProvider(DataProvider):
    """Test double that serves deterministic data from dictionaries."""

    def __init__(
        self,
        stocks: Mapping[str, Stock],
        histories: Mapping[str, PriceSeries] | None = None,
    ) -> None:
        self._stocks = dict(stocks)
        self._histories = dict(histories or {})

    def list_symbols(self) -> Sequence[str]:
        return tuple(self._stocks)

    def fetch_stock(self, symbol: str, as_of: datetime) -> Stock:
        try:
            return self._stocks[symbol]
        except KeyError as exc:
            logger.error("Stock missing from in-memory provider", extra={"symbol": symbol})
            raise KeyError(f"Missing stock for symbol {symbol}") from exc

    def fetch_history(self, symbol: str, as_of: datetime) -> PriceSeries | None:
        return self._histories.get(symbol)

    def warm_cache(self, symbols: Sequence[str], as_of: datetime) -> None:  # pragma: no cover - no-op
        return None
