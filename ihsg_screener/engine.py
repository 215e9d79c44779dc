"""Core orchestration logic for the screener."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Mapping, Protocol, Sequence

from .analyzers import TechnicalSnapshot, build_indicators, build_technical_snapshot
from .config import DataAcquisition, ScreenerConfig
from .data_providers.base import DataProvider
from .filters import FilterCriterion, apply_filters, build_filters
from .models import IndicatorType, ScreenerResult, Stock
from .signals import SignalRule


logger = logging.getLogger(__name__)


class ProviderFactory(Protocol):
    def __call__(self, config: DataAcquisition) -> DataProvider:
        ...


@dataclass(frozen=True)
class _LoadedStock:
    symbol: str
    stock: Stock | None
    technicals: TechnicalSnapshot | None = None
    error: Exception | None = None


def annotate_stock(
    stock: Stock,
    provider: DataProvider,
    as_of: datetime,
    rules: Mapping[IndicatorType, SignalRule],
) -> tuple[Stock, TechnicalSnapshot | None]:
    """Attach freshly computed indicators to ``stock`` when history is available."""

    series = provider.fetch_history(stock.symbol, as_of)
    if series is None or len(series) == 0:
        logger.debug(
            "No history available, keeping stored indicators",
            extra={"symbol": stock.symbol, "indicators": len(stock.indicators)},
        )
        return stock, None
    technicals = build_technical_snapshot(series)
    indicators = build_indicators(stock.id, technicals, as_of, rules)
    return stock.with_indicators(indicators), technicals


class ScreenerEngine:
    """Coordinates data fetching, indicator computation and filter evaluation."""

    def __init__(self, config: ScreenerConfig, provider_factory: ProviderFactory) -> None:
        self._config = config
        self._provider_factory = provider_factory

    def _load(
        self,
        provider: DataProvider,
        symbol: str,
        as_of: datetime,
        rules: Mapping[IndicatorType, SignalRule],
    ) -> _LoadedStock:
        try:
            logger.debug("Fetching stock", extra={"symbol": symbol})
            stock = provider.fetch_stock(symbol, as_of)
            stock, technicals = annotate_stock(stock, provider, as_of, rules)
        except Exception as exc:
            logger.exception(
                "Failed to load stock",
                extra={"symbol": symbol},
            )
            return _LoadedStock(symbol=symbol, stock=None, error=exc)
        return _LoadedStock(symbol=symbol, stock=stock, technicals=technicals)

    def run(
        self,
        as_of: datetime | None = None,
        criteria: Sequence[FilterCriterion] | None = None,
    ) -> List[ScreenerResult]:
        """Execute the screening workflow for the configured universe.

        Results are returned in universe order, one per symbol. ``criteria``
        defaults to the criteria declared in the configuration.
        """

        as_of = as_of or datetime.now(tz=timezone.utc)
        criteria = self._config.criteria if criteria is None else criteria
        logger.info("Running screener engine", extra={"as_of": as_of.isoformat()})

        provider = self._provider_factory(self._config.data)
        symbols = tuple(self._config.universe.symbols) or tuple(provider.list_symbols())
        logger.debug("Warming provider cache", extra={"symbols": list(symbols)})
        provider.warm_cache(symbols, as_of)

        filters = tuple(build_filters(criteria))
        logger.debug(
            "Constructed filters",
            extra={"filter_count": len(filters)},
        )

        rules = self._config.signals.rules
        workers = max(1, min(self._config.max_concurrent_requests, len(symbols)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            loaded = list(
                pool.map(lambda symbol: self._load(provider, symbol, as_of, rules), symbols)
            )

        results: List[ScreenerResult] = []
        for item in loaded:
            if item.stock is None:
                results.append(
                    ScreenerResult(
                        symbol=item.symbol,
                        stock=None,
                        passed_filters={},
                        error=item.error,
                    )
                )
                continue

            result = apply_filters(item.stock, filters)
            result.technicals = item.technicals
            results.append(result)
            logger.debug(
                "Evaluated stock",
                extra={"symbol": item.symbol, "match": result.is_match()},
            )

        logger.info(
            "Screening complete",
            extra={
                "universe": len(results),
                "matches": sum(1 for result in results if result.is_match()),
                "errors": sum(1 for result in results if result.error is not None),
            },
        )
        return results

    def screen(
        self,
        as_of: datetime | None = None,
        criteria: Sequence[FilterCriterion] | None = None,
    ) -> List[Stock]:
        """Return only the matching stocks, in universe order."""

        return [
            result.stock
            for result in self.run(as_of=as_of, criteria=criteria)
            if result.is_match() and result.stock is not None
        ]
