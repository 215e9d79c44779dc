"""Configuration models for the technical stock screener.

These dataclasses capture both operational settings for running the screener
(where data comes from, how much history to load, how many symbols to process
at once) and the screening inputs themselves: the filter criteria, saved
presets and the thresholds used to tag indicators with signals. Everything can
be deserialised from a JSON or YAML document with :meth:`ScreenerConfig.from_dict`.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import yaml

from .filters import FilterCriterion
from .models import IndicatorType
from .presets import FilterPreset
from .signals import DEFAULT_SIGNAL_RULES, SignalRule, merge_rules


logger = logging.getLogger(__name__)


HISTORY_PERIODS: Mapping[str, int] = {
    "1D": 1,
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
}


def load_document(path: Path) -> object:
    """Parse a JSON or YAML file depending on its suffix."""

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    return json.loads(text)


@dataclass(frozen=True)
class SymbolUniverse:
    """Definition of which symbols should be evaluated.

    Attributes
    ----------
    symbols:
        Tickers to screen, in the order results should be reported. Leave
        empty to screen every symbol the data provider knows about.
    max_results:
        Optional cap on how many matches are displayed.
    """

    symbols: Sequence[str] = ()
    max_results: int | None = None

    def __post_init__(self) -> None:
        cleaned = tuple(dict.fromkeys(sym.strip().upper() for sym in self.symbols))
        if any(not sym for sym in cleaned):
            raise ValueError("Empty symbol detected after stripping whitespace")
        object.__setattr__(self, "symbols", cleaned)
        if self.max_results is not None and self.max_results <= 0:
            raise ValueError("max_results must be positive when provided")


@dataclass(frozen=True)
class SignalSettings:
    """Per-indicator overrides of the signal threshold table."""

    overrides: Mapping[IndicatorType, Mapping[str, object]] = field(default_factory=dict)

    @property
    def rules(self) -> Mapping[IndicatorType, SignalRule]:
        if not self.overrides:
            return DEFAULT_SIGNAL_RULES
        return merge_rules(self.overrides)

    def validate(self) -> None:
        for rule in self.rules.values():
            rule.validate()


@dataclass(frozen=True)
class DataAcquisition:
    """Instructions for sourcing quotes and historical data."""

    provider: str = "file"
    dataset_path: Path | None = None
    history_period: str = "3M"
    timezone: str = "Asia/Jakarta"
    provider_options: Mapping[str, object] = field(default_factory=dict)

    def validate(self) -> None:
        if self.history_period not in HISTORY_PERIODS:
            raise ValueError(
                f"Unknown history period '{self.history_period}'. "
                f"Expected one of: {', '.join(HISTORY_PERIODS)}"
            )

    @property
    def history_days(self) -> int:
        return HISTORY_PERIODS[self.history_period]


@dataclass(frozen=True)
class ScreenerConfig:
    """Primary configuration consumed by the application."""

    universe: SymbolUniverse = field(default_factory=SymbolUniverse)
    criteria: Sequence[FilterCriterion] = ()
    presets: Sequence[FilterPreset] = ()
    signals: SignalSettings = field(default_factory=SignalSettings)
    data: DataAcquisition = field(default_factory=DataAcquisition)
    max_concurrent_requests: int = 8

    def validate(self) -> None:
        self.signals.validate()
        self.data.validate()
        if self.max_concurrent_requests <= 0:
            raise ValueError("Concurrency must be positive")
        ids = [criterion.id for criterion in self.criteria]
        if len(ids) != len(set(ids)):
            raise ValueError("criteria ids must be unique")

    @classmethod
    def from_symbols(cls, symbols: Iterable[str], **overrides: object) -> "ScreenerConfig":
        """Helper for quick instantiation with minimal boilerplate."""

        universe = SymbolUniverse(tuple(symbols))
        return cls(universe=universe, **overrides)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], base_path: Path | None = None) -> "ScreenerConfig":
        """Deserialize configuration from a nested mapping.

        Relative dataset paths are resolved against ``base_path`` when given,
        which is normally the directory holding the configuration file.
        """

        def ensure_mapping(value: object, label: str) -> Mapping[str, object]:
            if value is None:
                return {}
            if not isinstance(value, Mapping):
                raise TypeError(f"Expected '{label}' to be a mapping, got {type(value)!r}")
            return value

        def ensure_list(value: object, label: str) -> list[Mapping[str, object]]:
            if value is None:
                return []
            if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
                raise TypeError(f"Expected '{label}' to be a list, got {type(value)!r}")
            items = list(value)
            for item in items:
                if not isinstance(item, Mapping):
                    raise TypeError(f"Entries of '{label}' must be mappings, got {type(item)!r}")
            return items

        def parse_optional_int(value: object, label: str) -> int | None:
            if value is None:
                return None
            if isinstance(value, (int, float)):
                candidate = int(value)
            else:
                text = str(value).strip()
                if not text:
                    return None
                try:
                    candidate = int(float(text))
                except ValueError as exc:
                    raise ValueError(f"{label} must be numeric, got {value!r}") from exc
            if candidate <= 0:
                raise ValueError(f"{label} must be positive")
            return candidate

        universe_map = ensure_mapping(data.get("universe"), "universe")
        signals_map = ensure_mapping(data.get("signals"), "signals")
        data_map = ensure_mapping(data.get("data"), "data")

        raw_symbols = universe_map.get("symbols")
        if raw_symbols is None:
            symbols: tuple[str, ...] = ()
        elif isinstance(raw_symbols, str):
            symbols = tuple(part for part in raw_symbols.split(",") if part.strip())
        elif isinstance(raw_symbols, Iterable):
            symbols = tuple(str(sym) for sym in raw_symbols)
        else:
            raise TypeError("universe.symbols must be an iterable of strings")

        universe = SymbolUniverse(
            symbols=symbols,
            max_results=parse_optional_int(universe_map.get("max_results"), "universe.max_results"),
        )

        criteria = tuple(
            FilterCriterion.from_dict(item) for item in ensure_list(data.get("criteria"), "criteria")
        )
        presets = tuple(
            FilterPreset.from_dict(item) for item in ensure_list(data.get("presets"), "presets")
        )

        overrides: dict[IndicatorType, Mapping[str, object]] = {}
        for key, value in signals_map.items():
            indicator_type = IndicatorType.parse(key)
            if indicator_type is None:
                raise ValueError(f"Unknown indicator type in signals: {key!r}")
            overrides[indicator_type] = dict(ensure_mapping(value, f"signals.{key}"))
        signals = SignalSettings(overrides=overrides)

        data_defaults = DataAcquisition()
        dataset_value = data_map.get("dataset_path")
        dataset_path = Path(str(dataset_value)).expanduser() if dataset_value else None
        if dataset_path is not None and base_path is not None and not dataset_path.is_absolute():
            dataset_path = base_path / dataset_path

        provider_options_map = ensure_mapping(
            data_map.get("provider_options"), "data.provider_options"
        )

        data_config = DataAcquisition(
            provider=str(data_map.get("provider", data_defaults.provider)),
            dataset_path=dataset_path,
            history_period=str(data_map.get("history_period", data_defaults.history_period)).upper(),
            timezone=str(data_map.get("timezone", data_defaults.timezone)),
            provider_options=dict(provider_options_map),
        )

        config = cls(
            universe=universe,
            criteria=criteria,
            presets=presets,
            signals=signals,
            data=data_config,
            max_concurrent_requests=int(data.get("max_concurrent_requests", 8)),
        )
        config.validate()
        logger.debug(
            "Loaded configuration",
            extra={
                "symbols": len(universe.symbols),
                "criteria": len(criteria),
                "presets": len(presets),
                "provider": data_config.provider,
            },
        )
        return config


def load_config(path: Path) -> ScreenerConfig:
    data = load_document(path)
    if not isinstance(data, Mapping):
        raise TypeError("Configuration file must contain a mapping at the top level")
    return ScreenerConfig.from_dict(data, base_path=path.parent)
