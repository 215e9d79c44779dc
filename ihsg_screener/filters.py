"""Filter criteria and the predicates that decide whether a stock passes them."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Sequence

from .models import IndicatorType, ScreenerResult, Stock


logger = logging.getLogger(__name__)


EQUALITY_TOLERANCE = 0.01


class Operator(str, Enum):
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    EQ = "="
    BETWEEN = "between"

    @classmethod
    def parse(cls, value: object) -> "Operator | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


def _parse_number(value: object, label: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric filter value", extra={"field": label, "value": value})
        return None


def _parse_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class FilterCriterion:
    """One user-authored screening condition.

    ``indicator_type`` and ``operator`` keep the raw strings supplied by the
    caller so that malformed criteria can be reported when they are evaluated
    instead of failing the whole request at parse time.
    """

    id: int
    indicator_type: str
    operator: str | None
    threshold: float | None
    max_threshold: float | None = None
    enabled: bool = True

    @property
    def resolved_type(self) -> IndicatorType | None:
        return IndicatorType.parse(self.indicator_type)

    @property
    def bounds(self) -> tuple[float, float]:
        """Inclusive range for ``between``, tolerant of swapped inputs."""

        assert self.threshold is not None
        upper = self.threshold if self.max_threshold is None else self.max_threshold
        return min(self.threshold, upper), max(self.threshold, upper)

    def problem(self) -> str | None:
        """Describe why the criterion cannot be evaluated, if it cannot."""

        if self.operator is None or not str(self.operator).strip():
            return "missing operator"
        if self.threshold is None:
            return "missing threshold"
        if (
            Operator.parse(self.operator) is Operator.BETWEEN
            and self.resolved_type is not IndicatorType.PRICE
        ):
            return "between is only supported for PRICE"
        return None

    def describe(self) -> str:
        operator = self.operator or "?"
        if self.threshold is None:
            return f"{self.indicator_type} {operator} ?"
        if Operator.parse(operator) is Operator.BETWEEN:
            lower, upper = self.bounds
            return f"{self.indicator_type} between {lower:g} and {upper:g}"
        return f"{self.indicator_type} {operator} {self.threshold:g}"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "FilterCriterion":
        operator = data.get("operator")
        indicator_type = data.get("indicatorType", data.get("indicator_type"))
        return cls(
            id=int(data.get("id", data.get("Id", 0)) or 0),
            indicator_type="" if indicator_type is None else str(indicator_type).strip().upper(),
            operator=None if operator is None else str(operator).strip(),
            threshold=_parse_number(data.get("threshold"), "threshold"),
            max_threshold=_parse_number(
                data.get("maxThreshold", data.get("max_threshold")), "maxThreshold"
            ),
            enabled=_parse_bool(data.get("enabled", True)),
        )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "indicatorType": self.indicator_type,
            "operator": self.operator,
            "threshold": self.threshold,
            "enabled": self.enabled,
        }
        if self.max_threshold is not None:
            payload["maxThreshold"] = self.max_threshold
        return payload


def _subject_value(stock: Stock, indicator_type: IndicatorType) -> float | None:
    if indicator_type is IndicatorType.PRICE:
        return stock.price
    return stock.indicator_value(indicator_type)


def _compare(operator: Operator, value: float, criterion: FilterCriterion) -> bool:
    threshold = criterion.threshold
    assert threshold is not None
    if operator is Operator.GT:
        return value > threshold
    if operator is Operator.LT:
        return value < threshold
    if operator is Operator.GE:
        return value >= threshold
    if operator is Operator.LE:
        return value <= threshold
    if operator is Operator.EQ:
        return abs(value - threshold) < EQUALITY_TOLERANCE
    lower, upper = criterion.bounds
    return lower <= value <= upper


def _report_unusable(criterion: FilterCriterion) -> None:
    """Warn once about a criterion that cannot be evaluated as written."""

    problem = criterion.problem()
    if problem is not None:
        logger.warning(
            "Malformed filter criterion",
            extra={"criterion_id": criterion.id, "problem": problem},
        )
    elif Operator.parse(criterion.operator) is None:
        logger.warning(
            "Unrecognised filter operator treated as satisfied",
            extra={"criterion_id": criterion.id, "operator": criterion.operator},
        )


def evaluate_criterion(stock: Stock, criterion: FilterCriterion) -> bool:
    """Return whether ``stock`` satisfies ``criterion``.

    Disabled criteria always pass. Malformed criteria never pass. A stock
    without the indicator the criterion refers to never passes either, even
    when the operator is unrecognised.
    """

    if not criterion.enabled:
        return True

    if criterion.problem() is not None:
        return False

    indicator_type = criterion.resolved_type
    if indicator_type is None:
        logger.debug(
            "Unknown indicator type in filter",
            extra={"criterion_id": criterion.id, "indicator_type": criterion.indicator_type},
        )
        return False

    value = _subject_value(stock, indicator_type)
    if value is None:
        return False

    operator = Operator.parse(criterion.operator)
    if operator is None:
        # Permissive default for operators outside the supported set.
        return True
    return _compare(operator, value, criterion)


@dataclass(frozen=True)
class Filter:
    """Callable wrapper representing a single screening rule."""

    name: str
    predicate: Callable[[Stock], bool]

    def __call__(self, stock: Stock) -> bool:
        return self.predicate(stock)


def build_filters(criteria: Iterable[FilterCriterion]) -> Iterable[Filter]:
    """Yield one :class:`Filter` per enabled criterion."""

    seen: set[str] = set()
    for criterion in criteria:
        if not criterion.enabled:
            continue
        _report_unusable(criterion)
        name = criterion.describe()
        if name in seen:
            name = f"{name} #{criterion.id}"
        seen.add(name)
        yield Filter(
            name=name,
            predicate=lambda stock, criterion=criterion: evaluate_criterion(stock, criterion),
        )


def apply_filters(stock: Stock, filters: Iterable[Filter]) -> ScreenerResult:
    """Evaluate all filters and package results for downstream consumption."""

    outcomes: Dict[str, bool] = {}
    for filter_ in filters:
        outcomes[filter_.name] = filter_(stock)
    return ScreenerResult(symbol=stock.symbol, stock=stock, passed_filters=outcomes)


def evaluate_stock(stock: Stock, criteria: Sequence[FilterCriterion]) -> ScreenerResult:
    return apply_filters(stock, build_filters(criteria))


def screen_stocks(universe: Sequence[Stock], criteria: Sequence[FilterCriterion]) -> List[Stock]:
    """Return the stocks satisfying every enabled criterion, in input order."""

    active = [criterion for criterion in criteria if criterion.enabled]
    if not active:
        return list(universe)
    for criterion in active:
        _report_unusable(criterion)
    return [
        stock
        for stock in universe
        if all(evaluate_criterion(stock, criterion) for criterion in active)
    ]


def parse_criteria(raw: Iterable[Mapping[str, object]]) -> tuple[FilterCriterion, ...]:
    return tuple(FilterCriterion.from_dict(item) for item in raw)


__all__ = [
    "EQUALITY_TOLERANCE",
    "Filter",
    "FilterCriterion",
    "Operator",
    "apply_filters",
    "build_filters",
    "evaluate_criterion",
    "evaluate_stock",
    "parse_criteria",
    "screen_stocks",
]
