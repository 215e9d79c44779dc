"""Signal annotation for computed indicator values.

The thresholds live in :data:`DEFAULT_SIGNAL_RULES`, a table keyed by
indicator type, so the mapping can be audited and overridden from the
configuration file without touching the annotation logic.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .models import IndicatorType, Signal


class RuleKind(str, Enum):
    OSCILLATOR = "oscillator"
    MOMENTUM = "momentum"
    TREND = "trend"
    CHANGE = "change"


@dataclass(frozen=True)
class SignalRule:
    """Thresholds used to translate one indicator type into a signal.

    Attributes
    ----------
    kind:
        ``oscillator`` rules compare the value against the overbought and
        oversold levels. ``momentum`` rules look at the sign of the value.
        ``trend`` rules measure how far the reference close sits from the
        indicator level, in percent. ``change`` rules measure how far the value
        moved from the reference, in percent.
    neutral_band:
        Half-width of the region around zero that is reported as neutral.
    """

    kind: RuleKind
    overbought: float = 70.0
    oversold: float = 30.0
    neutral_band: float = 0.0

    def validate(self) -> None:
        if self.neutral_band < 0:
            raise ValueError("Signal neutral band must be non-negative")
        if self.kind is RuleKind.OSCILLATOR and self.oversold >= self.overbought:
            raise ValueError("Oversold level must be below the overbought level")

    def with_overrides(self, **overrides: object) -> "SignalRule":
        return replace(self, **overrides)


DEFAULT_SIGNAL_RULES: Mapping[IndicatorType, SignalRule] = MappingProxyType(
    {
        IndicatorType.RSI: SignalRule(kind=RuleKind.OSCILLATOR, overbought=70.0, oversold=30.0),
        IndicatorType.MACD: SignalRule(kind=RuleKind.MOMENTUM, neutral_band=0.0),
        IndicatorType.SMA_20: SignalRule(kind=RuleKind.TREND, neutral_band=1.0),
        IndicatorType.EMA_12: SignalRule(kind=RuleKind.TREND, neutral_band=1.0),
        IndicatorType.PRICE: SignalRule(kind=RuleKind.CHANGE, neutral_band=0.5),
    }
)


def _directional(diff: float, band: float) -> Signal:
    if diff > band:
        return Signal.BULLISH
    if diff < -band:
        return Signal.BEARISH
    return Signal.NEUTRAL


def _percent_diff(value: float, base: float) -> float | None:
    if base == 0:
        return None
    return (value - base) / base * 100


def annotate(
    indicator_type: IndicatorType,
    value: float | None,
    reference: float | None = None,
    rules: Mapping[IndicatorType, SignalRule] = DEFAULT_SIGNAL_RULES,
) -> Signal:
    """Map an indicator value to exactly one :class:`Signal`.

    ``reference`` is the latest close for moving-average types and the
    previous close for ``PRICE``. Anything that cannot be classified, such as
    a missing value or reference, is reported as neutral.
    """

    rule = rules[indicator_type]
    if value is None:
        return Signal.NEUTRAL

    if rule.kind is RuleKind.OSCILLATOR:
        if value > rule.overbought:
            return Signal.OVERBOUGHT
        if value < rule.oversold:
            return Signal.OVERSOLD
        return Signal.NEUTRAL

    if rule.kind is RuleKind.MOMENTUM:
        return _directional(value, rule.neutral_band)

    if reference is None:
        return Signal.NEUTRAL

    if rule.kind is RuleKind.TREND:
        diff = _percent_diff(reference, value)
    else:
        diff = _percent_diff(value, reference)
    if diff is None:
        return Signal.NEUTRAL
    return _directional(diff, rule.neutral_band)


def merge_rules(
    overrides: Mapping[IndicatorType, Mapping[str, object]],
    base: Mapping[IndicatorType, SignalRule] = DEFAULT_SIGNAL_RULES,
) -> Mapping[IndicatorType, SignalRule]:
    """Apply per-type threshold overrides on top of ``base``."""

    merged = dict(base)
    for indicator_type, values in overrides.items():
        params = dict(values)
        if "kind" in params:
            params["kind"] = RuleKind(str(params["kind"]).lower())
        for key in ("overbought", "oversold", "neutral_band"):
            if key in params:
                params[key] = float(params[key])
        rule = merged[indicator_type].with_overrides(**params)
        rule.validate()
        merged[indicator_type] = rule
    return MappingProxyType(merged)


__all__ = ["DEFAULT_SIGNAL_RULES", "RuleKind", "SignalRule", "annotate", "merge_rules"]
