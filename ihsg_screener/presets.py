"""Named filter presets.

A preset is a saved bundle of filter criteria that can be applied in one go.
The catalogue below ships the presets most desks reach for first; user presets
declared in the configuration file are merged on top of it and win on name
clashes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Mapping, Tuple

from .filters import FilterCriterion, Operator
from .models import IndicatorType, parse_timestamp


@dataclass(frozen=True)
class FilterPreset:
    """Named, reusable list of filter criteria."""

    id: int
    name: str
    filters: Tuple[FilterCriterion, ...]
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "FilterPreset":
        created = data.get("createdAt")
        updated = data.get("updatedAt")
        raw_filters = data.get("filters") or ()
        if isinstance(raw_filters, (str, bytes)) or not isinstance(raw_filters, Iterable):
            raise TypeError("Preset filters must be a list of filter mappings")
        return cls(
            id=int(data.get("Id", data.get("id", 0)) or 0),
            name=str(data.get("name", "")).strip(),
            description=str(data.get("description") or ""),
            filters=tuple(FilterCriterion.from_dict(item) for item in raw_filters),
            created_at=parse_timestamp(created) if created else None,
            updated_at=parse_timestamp(updated) if updated else None,
        )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "Id": self.id,
            "name": self.name,
            "description": self.description,
            "filters": [criterion.to_dict() for criterion in self.filters],
        }
        if self.created_at is not None:
            payload["createdAt"] = self.created_at.isoformat()
        if self.updated_at is not None:
            payload["updatedAt"] = self.updated_at.isoformat()
        return payload


def _criterion(
    id: int,
    indicator_type: IndicatorType,
    operator: Operator,
    threshold: float,
    max_threshold: float | None = None,
) -> FilterCriterion:
    return FilterCriterion(
        id=id,
        indicator_type=indicator_type.value,
        operator=operator.value,
        threshold=threshold,
        max_threshold=max_threshold,
    )


BUILTIN_PRESETS: Dict[str, FilterPreset] = {
    "Oversold RSI": FilterPreset(
        id=1,
        name="Oversold RSI",
        description="RSI below 30, candidates for a bounce",
        filters=(_criterion(1, IndicatorType.RSI, Operator.LT, 30),),
    ),
    "Overbought RSI": FilterPreset(
        id=2,
        name="Overbought RSI",
        description="RSI above 70, stretched to the upside",
        filters=(_criterion(1, IndicatorType.RSI, Operator.GT, 70),),
    ),
    "Bullish MACD": FilterPreset(
        id=3,
        name="Bullish MACD",
        description="MACD line above zero with RSI not yet overbought",
        filters=(
            _criterion(1, IndicatorType.MACD, Operator.GT, 0),
            _criterion(2, IndicatorType.RSI, Operator.LE, 70),
        ),
    ),
    "Momentum Leaders": FilterPreset(
        id=4,
        name="Momentum Leaders",
        description="RSI between 50 and 70 with a positive MACD",
        filters=(
            _criterion(1, IndicatorType.RSI, Operator.GE, 50),
            _criterion(2, IndicatorType.RSI, Operator.LE, 70),
            _criterion(3, IndicatorType.MACD, Operator.GT, 0),
        ),
    ),
    "Mid Price Band": FilterPreset(
        id=5,
        name="Mid Price Band",
        description="Shares priced between 500 and 5,000",
        filters=(_criterion(1, IndicatorType.PRICE, Operator.BETWEEN, 500, 5000),),
    ),
}


def build_preset_catalogue(
    user_presets: Iterable[FilterPreset] = (),
) -> Dict[str, FilterPreset]:
    """Return built-in presets with ``user_presets`` layered on top."""

    catalogue = dict(BUILTIN_PRESETS)
    for preset in user_presets:
        catalogue[preset.name] = preset
    return catalogue


def validate_presets(presets: Mapping[str, FilterPreset] | None = None) -> None:
    """Verify that every preset is named and holds evaluable criteria."""

    presets = presets or build_preset_catalogue()
    if not presets:
        raise ValueError("At least one preset must be provided")

    for name, preset in presets.items():
        if not name:
            raise ValueError("Preset names must be non-empty")
        if not preset.filters:
            raise ValueError(f"Preset '{name}' must include at least one filter")
        ids = [criterion.id for criterion in preset.filters]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Preset '{name}' contains duplicate filter ids")
        for criterion in preset.filters:
            problem = criterion.problem()
            if problem is not None:
                raise ValueError(
                    f"Preset '{name}' filter {criterion.id} is invalid: {problem}"
                )


def resolve_preset(name: str, presets: Mapping[str, FilterPreset] | None = None) -> FilterPreset:
    catalogue = presets or build_preset_catalogue()
    try:
        return catalogue[name]
    except KeyError as exc:
        available = ", ".join(sorted(catalogue))
        raise KeyError(f"Unknown preset '{name}'. Available: {available}") from exc


__all__ = [
    "BUILTIN_PRESETS",
    "FilterPreset",
    "build_preset_catalogue",
    "resolve_preset",
    "validate_presets",
]
