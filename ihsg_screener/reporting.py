"""Output helpers for presenting screener results."""
from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Mapping, Sequence

from .analyzers import price_signal
from .models import IndicatorType, ScreenerResult, Stock
from .signals import DEFAULT_SIGNAL_RULES, SignalRule


EXPORT_HEADERS = (
    "Symbol",
    "Name",
    "Price",
    "Change",
    "Change %",
    "Volume",
    "Market Cap",
    "Sector",
    "RSI",
    "MACD",
    "SMA 20",
    "EMA 12",
)

EXPORT_INDICATORS = (
    IndicatorType.RSI,
    IndicatorType.MACD,
    IndicatorType.SMA_20,
    IndicatorType.EMA_12,
)

SORTABLE_FIELDS = (
    "symbol",
    "name",
    "price",
    "change",
    "change_percent",
    "volume",
    "market_cap",
    "sector",
)


@dataclass(frozen=True)
class ReportRow:
    symbol: str
    price: float | None
    change_percent: float | None
    rsi: float | None
    macd: float | None
    sma_20: float | None
    ema_12: float | None
    trend: str
    notes: str


def summarize(
    result: ScreenerResult,
    rules: Mapping[IndicatorType, SignalRule] = DEFAULT_SIGNAL_RULES,
) -> ReportRow:
    """Condense a result into a table row; ``rules`` classify the price trend."""

    if result.error or result.stock is None:
        return ReportRow(
            symbol=result.symbol,
            price=None,
            change_percent=None,
            rsi=None,
            macd=None,
            sma_20=None,
            ema_12=None,
            trend="",
            notes=f"error: {result.error}",
        )
    stock = result.stock
    failing = [name for name, passed in result.passed_filters.items() if not passed]
    notes = "PASS" if not failing else "Fail: " + ", ".join(sorted(failing))
    return ReportRow(
        symbol=stock.symbol,
        price=stock.price,
        change_percent=stock.change_percent,
        rsi=stock.indicator_value(IndicatorType.RSI),
        macd=stock.indicator_value(IndicatorType.MACD),
        sma_20=stock.indicator_value(IndicatorType.SMA_20),
        ema_12=stock.indicator_value(IndicatorType.EMA_12),
        trend=price_signal(stock, rules).value,
        notes=notes,
    )


def _format_number(value: float | None, precision: int = 2) -> str:
    if value is None:
        return ""
    return f"{value:.{precision}f}"


def _format_plain(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_record(stock: Stock) -> Mapping[str, str]:
    """Flatten ``stock`` into one export row keyed by :data:`EXPORT_HEADERS`."""

    values: list[object] = [
        stock.symbol,
        stock.name,
        stock.price,
        stock.change,
        stock.change_percent,
        stock.volume,
        stock.market_cap,
        stock.sector,
    ]
    values.extend(stock.indicator_value(indicator_type) for indicator_type in EXPORT_INDICATORS)
    return dict(zip(EXPORT_HEADERS, (_format_plain(value) for value in values)))


def default_export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"ihsg-screener-{today.isoformat()}.csv"


def write_csv_export(stocks: Sequence[Stock], destination: Path) -> None:
    """Persist the screened stocks as a flat CSV file."""

    destination.parent.mkdir(parents=True, exist_ok=True)

    with destination.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(EXPORT_HEADERS))
        writer.writeheader()
        for stock in stocks:
            writer.writerow(export_record(stock))


def sort_stocks(stocks: Sequence[Stock], field: str = "symbol", descending: bool = False) -> list[Stock]:
    """Order stocks for display; text fields compare case-insensitively."""

    if field not in SORTABLE_FIELDS:
        raise ValueError(
            f"Cannot sort by '{field}'. Expected one of: {', '.join(SORTABLE_FIELDS)}"
        )

    def sort_key(stock: Stock) -> object:
        value = getattr(stock, field)
        if isinstance(value, str):
            return value.lower()
        return value

    return sorted(stocks, key=sort_key, reverse=descending)


def render_table(rows: Sequence[ReportRow]) -> str:
    """Render a human-readable table suitable for console output."""

    headers = ["Symbol", "Price", "Chg %", "RSI", "MACD", "SMA 20", "EMA 12", "Trend", "Notes"]
    column_widths = [len(h) for h in headers]
    formatted_rows = []
    for row in rows:
        formatted = [
            row.symbol,
            "" if row.price is None else f"{row.price:,.2f}",
            _format_number(row.change_percent),
            _format_number(row.rsi),
            _format_number(row.macd),
            _format_number(row.sma_20),
            _format_number(row.ema_12),
            row.trend,
            row.notes,
        ]
        column_widths = [max(w, len(value)) for w, value in zip(column_widths, formatted)]
        formatted_rows.append(formatted)

    def format_row(row: Sequence[str]) -> str:
        return " | ".join(value.ljust(width) for value, width in zip(row, column_widths))

    separator = "-+-".join("-" * width for width in column_widths)
    lines = [format_row(headers), separator]
    lines.extend(format_row(row) for row in formatted_rows)
    return "\n".join(lines)


def render_technicals(results: Sequence[ScreenerResult]) -> str:
    """Bollinger Bands and ATR for results that carry a technical snapshot."""

    lines = []
    for result in results:
        technicals = result.technicals
        if technicals is None:
            continue
        bands = technicals.bollinger
        band_text = (
            "n/a"
            if bands is None
            else f"{bands.lower:,.2f} / {bands.middle:,.2f} / {bands.upper:,.2f}"
        )
        atr_text = "n/a" if technicals.atr is None else f"{technicals.atr:,.2f}"
        lines.append(f"{result.symbol}: Bollinger(20, 2) {band_text}; ATR(14) {atr_text}")
    return "\n".join(lines)
