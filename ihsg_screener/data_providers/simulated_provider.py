"""Seeded OHLCV generator for demos and offline runs.

Bars are synthetic: each session opens near the previous close with a
randomised volatility between 2% and 5%, and the close lands somewhere inside
the session's high/low range. The generator is seeded per symbol, so the same
configuration always produces the same history.
"""
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Mapping, Sequence

from ..analyzers import build_quote
from ..config import DataAcquisition
from ..models import PricePoint, PriceSeries, Stock
from .base import DataProvider


logger = logging.getLogger(__name__)


DEFAULT_BASE_PRICE = 1000.0
DEFAULT_BASE_VOLUME = 1_000_000


class SimulatedProvider(DataProvider):
    """Generates reproducible random price histories.

    ``provider_options`` accepts ``seed`` and a ``stocks`` mapping of symbol to
    ``{name, sector, marketCap, price, volume}`` used as the starting point of
    each generated series.
    """

    def __init__(self, config: DataAcquisition) -> None:
        self._config = config
        options = dict(config.provider_options or {})
        self._seed = options.get("seed", 0)
        profiles = options.get("stocks") or {}
        if not isinstance(profiles, Mapping):
            raise TypeError("provider_options.stocks must map symbols to profiles")
        self._profiles: dict[str, Mapping[str, object]] = {
            str(symbol).upper(): dict(profile or {}) for symbol, profile in profiles.items()
        }
        self._ids: dict[str, int] = {symbol: index for index, symbol in enumerate(self._profiles, start=1)}
        self._cache: dict[str, PriceSeries] = {}

    def list_symbols(self) -> Sequence[str]:
        return tuple(self._profiles)

    def warm_cache(self, symbols: Sequence[str], as_of: datetime) -> None:
        for symbol in symbols:
            self._ids.setdefault(symbol, len(self._ids) + 1)

    def _profile(self, symbol: str) -> Mapping[str, object]:
        return self._profiles.get(symbol, {})

    def fetch_history(self, symbol: str, as_of: datetime) -> PriceSeries:
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        profile = self._profile(symbol)
        rng = random.Random(f"{self._seed}:{symbol}")
        price = float(profile.get("price", DEFAULT_BASE_PRICE))
        base_volume = float(profile.get("volume", DEFAULT_BASE_VOLUME))
        days = self._config.history_days

        points: list[PricePoint] = []
        for offset in range(days, -1, -1):
            volatility = 0.02 + rng.random() * 0.03
            open_ = price * (1 + (rng.random() - 0.5) * volatility)
            high = open_ * (1 + rng.random() * 0.02)
            low = open_ * (1 - rng.random() * 0.02)
            close = low + rng.random() * (high - low)
            points.append(
                PricePoint(
                    timestamp=as_of - timedelta(days=offset),
                    open=round(open_, 2),
                    high=round(high, 2),
                    low=round(low, 2),
                    close=round(close, 2),
                    volume=int(base_volume * (0.5 + rng.random())),
                )
            )
            price = close

        series = PriceSeries(symbol, points)
        self._cache[symbol] = series
        logger.debug(
            "Generated simulated history",
            extra={"symbol": symbol, "bars": len(series), "period": self._config.history_period},
        )
        return series

    def fetch_stock(self, symbol: str, as_of: datetime) -> Stock:
        profile = self._profile(symbol)
        return build_quote(
            self._ids.get(symbol, 0),
            self.fetch_history(symbol, as_of),
            name=str(profile.get("name") or symbol),
            sector=str(profile.get("sector") or ""),
            market_cap=float(profile.get("marketCap", 0.0) or 0.0),
        )
