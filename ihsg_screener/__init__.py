"""Public package exports for the screener."""
from .config import ScreenerConfig, load_config
from .engine import ScreenerEngine
from .factories import resolve_provider_factory
from .filters import FilterCriterion, Operator, evaluate_criterion, screen_stocks
from .models import (
    Indicator,
    IndicatorType,
    PricePoint,
    PriceSeries,
    ScreenerResult,
    Signal,
    Stock,
)
from .presets import BUILTIN_PRESETS, FilterPreset, build_preset_catalogue, validate_presets
from .signals import DEFAULT_SIGNAL_RULES, annotate

__all__ = [
    "ScreenerConfig",
    "ScreenerEngine",
    "load_config",
    "resolve_provider_factory",
    "FilterCriterion",
    "Operator",
    "evaluate_criterion",
    "screen_stocks",
    "Indicator",
    "IndicatorType",
    "PricePoint",
    "PriceSeries",
    "ScreenerResult",
    "Signal",
    "Stock",
    "BUILTIN_PRESETS",
    "FilterPreset",
    "build_preset_catalogue",
    "validate_presets",
    "DEFAULT_SIGNAL_RULES",
    "annotate",
]
