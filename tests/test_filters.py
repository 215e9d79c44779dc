import logging

import pytest

from conftest import make_indicator
from ihsg_screener.filters import (
    FilterCriterion,
    Operator,
    apply_filters,
    build_filters,
    evaluate_criterion,
    evaluate_stock,
    parse_criteria,
    screen_stocks,
)
from ihsg_screener.models import IndicatorType, Stock


def criterion(indicator_type, operator, threshold, max_threshold=None, enabled=True, id=1):
    return FilterCriterion(
        id=id,
        indicator_type=indicator_type,
        operator=operator,
        threshold=threshold,
        max_threshold=max_threshold,
        enabled=enabled,
    )


def symbols(stocks):
    return [stock.symbol for stock in stocks]


def test_rsi_greater_than_selects_overbought_stock(universe):
    result = screen_stocks(universe, [criterion("RSI", ">", 70)])
    assert symbols(result) == ["AAA"]


def test_price_between_is_inclusive(universe):
    result = screen_stocks(universe, [criterion("PRICE", "between", 400, 900)])
    assert symbols(result) == ["BBB"]
    edge = screen_stocks(universe, [criterion("PRICE", "between", 500, 1000)])
    assert symbols(edge) == ["AAA", "BBB"]


def test_between_is_symmetric_in_bounds(universe):
    forward = screen_stocks(universe, [criterion("PRICE", "between", 50, 100)])
    swapped = screen_stocks(universe, [criterion("PRICE", "between", 100, 50)])
    assert forward == swapped
    forward = screen_stocks(universe, [criterion("PRICE", "between", 450, 1200)])
    swapped = screen_stocks(universe, [criterion("PRICE", "between", 1200, 450)])
    assert symbols(forward) == symbols(swapped) == ["AAA", "BBB"]


def test_between_without_upper_bound_collapses_to_threshold(universe):
    result = screen_stocks(universe, [criterion("PRICE", "between", 500)])
    assert symbols(result) == ["BBB"]


def test_missing_indicator_fails_closed(universe):
    rich = Stock(
        id=3,
        symbol="CCC",
        name="Charlie",
        price=700.0,
        indicators=(
            make_indicator(3, IndicatorType.RSI, 90.0),
            make_indicator(3, IndicatorType.SMA_20, 650.0),
        ),
    )
    result = screen_stocks(universe + [rich], [criterion("MACD", ">", 0)])
    assert result == []


def test_empty_criteria_returns_universe_unchanged(universe):
    result = screen_stocks(universe, [])
    assert result == universe
    assert all(left is right for left, right in zip(result, universe))


def test_disabled_filter_never_changes_result(universe):
    disabled = criterion("RSI", ">", 99, enabled=False)
    assert screen_stocks(universe, [disabled]) == screen_stocks(universe, [])
    assert evaluate_criterion(universe[0], disabled) is True


def test_disabled_filter_does_not_affect_enabled_ones(universe):
    criteria = [criterion("RSI", ">", 70, id=1), criterion("PRICE", "<", 0, enabled=False, id=2)]
    assert symbols(screen_stocks(universe, criteria)) == ["AAA"]


def test_criteria_are_and_combined(universe):
    criteria = [criterion("RSI", "<", 80, id=1), criterion("PRICE", ">=", 600, id=2)]
    assert symbols(screen_stocks(universe, criteria)) == ["AAA"]


def test_output_follows_input_order(universe):
    reversed_universe = list(reversed(universe))
    result = screen_stocks(reversed_universe, [criterion("PRICE", ">", 0)])
    assert symbols(result) == ["BBB", "AAA"]


@pytest.mark.parametrize(
    "operator, threshold, expected",
    [
        (">", 72, False),
        (">=", 72, True),
        ("<", 72, False),
        ("<=", 72, True),
        ("=", 72.005, True),
        ("=", 72.02, False),
    ],
)
def test_indicator_operators(universe, operator, threshold, expected):
    assert evaluate_criterion(universe[0], criterion("RSI", operator, threshold)) is expected


def test_price_equality_uses_tolerance(universe):
    assert evaluate_criterion(universe[1], criterion("PRICE", "=", 500.009)) is True
    assert evaluate_criterion(universe[1], criterion("PRICE", "=", 500.02)) is False


def test_missing_operator_is_never_satisfied(universe, caplog):
    with caplog.at_level(logging.WARNING, logger="ihsg_screener.filters"):
        assert evaluate_criterion(universe[0], criterion("RSI", None, 10)) is False
        assert screen_stocks(universe, [criterion("RSI", None, 10)]) == []
    assert "Malformed filter criterion" in caplog.text


def test_missing_threshold_is_never_satisfied(universe):
    assert evaluate_criterion(universe[0], criterion("RSI", ">", None)) is False


def test_between_on_indicator_is_malformed(universe):
    assert evaluate_criterion(universe[0], criterion("RSI", "between", 0, 100)) is False


def test_malformed_filter_does_not_abort_screen(universe):
    criteria = [criterion("RSI", None, 70, id=1)]
    assert screen_stocks(universe, criteria) == []


def test_unrecognised_operator_is_permissive(universe, caplog):
    with caplog.at_level(logging.WARNING, logger="ihsg_screener.filters"):
        assert evaluate_criterion(universe[0], criterion("RSI", "!=", 72)) is True
        assert symbols(screen_stocks(universe, [criterion("RSI", "!=", 72)])) == ["AAA", "BBB"]
    assert "Unrecognised filter operator" in caplog.text


def test_unrecognised_operator_still_needs_the_indicator(universe):
    assert evaluate_criterion(universe[0], criterion("MACD", "!=", 0)) is False
    assert screen_stocks(universe, [criterion("MACD", "!=", 0)]) == []


def test_unusable_criterion_is_reported_once_per_screen(universe, caplog):
    criteria = [criterion("RSI", None, 70, id=1), criterion("RSI", "!=", 72, id=2)]
    with caplog.at_level(logging.WARNING, logger="ihsg_screener.filters"):
        screen_stocks(universe, criteria)
    messages = [record.getMessage() for record in caplog.records]
    assert messages.count("Malformed filter criterion") == 1
    assert messages.count("Unrecognised filter operator treated as satisfied") == 1

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="ihsg_screener.filters"):
        filters = tuple(build_filters(criteria))
        for stock in universe:
            assert not apply_filters(stock, filters).is_match()
    assert len(caplog.records) == 2


def test_unknown_indicator_type_fails_closed(universe):
    assert evaluate_criterion(universe[0], criterion("STOCHASTIC", ">", 0)) is False


def test_from_dict_reads_wire_shape():
    parsed = FilterCriterion.from_dict(
        {
            "id": 4,
            "indicatorType": "price",
            "operator": "between",
            "threshold": "100",
            "maxThreshold": 50,
            "enabled": "false",
        }
    )
    assert parsed == FilterCriterion(
        id=4,
        indicator_type="PRICE",
        operator="between",
        threshold=100.0,
        max_threshold=50.0,
        enabled=False,
    )
    assert parsed.bounds == (50.0, 100.0)
    assert parsed.to_dict() == {
        "id": 4,
        "indicatorType": "PRICE",
        "operator": "between",
        "threshold": 100.0,
        "maxThreshold": 50.0,
        "enabled": False,
    }


def test_from_dict_tolerates_garbage_threshold():
    parsed = FilterCriterion.from_dict({"id": 1, "indicatorType": "RSI", "operator": ">", "threshold": "abc"})
    assert parsed.threshold is None
    assert parsed.problem() == "missing threshold"


def test_parse_criteria_defaults_enabled():
    parsed = parse_criteria([{"Id": 2, "indicatorType": "RSI", "operator": ">", "threshold": 50}])
    assert parsed[0].id == 2
    assert parsed[0].enabled is True
    assert Operator.parse(parsed[0].operator) is Operator.GT


def test_build_filters_skips_disabled_and_labels_duplicates():
    filters = list(
        build_filters(
            [
                criterion("RSI", ">", 50, id=1),
                criterion("RSI", ">", 50, id=2),
                criterion("MACD", ">", 0, id=3, enabled=False),
            ]
        )
    )
    assert [filter_.name for filter_ in filters] == ["RSI > 50", "RSI > 50 #2"]


def test_evaluate_stock_reports_each_criterion(universe):
    result = evaluate_stock(
        universe[1],
        [criterion("RSI", "<", 50, id=1), criterion("PRICE", "between", 600, 400, id=2)],
    )
    assert result.passed_filters == {"RSI < 50": True, "PRICE between 400 and 600": True}
    assert result.is_match()


def test_evaluate_stock_without_criteria_matches(universe):
    assert evaluate_stock(universe[0], []).is_match()
