"""CLI entry point for running the screener."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from .config import load_config
from .engine import ScreenerEngine
from .factories import resolve_provider_factory
from .filters import FilterCriterion
from .models import parse_timestamp
from .presets import FilterPreset, build_preset_catalogue, resolve_preset, validate_presets
from .reporting import (
    SORTABLE_FIELDS,
    default_export_filename,
    render_table,
    render_technicals,
    sort_stocks,
    summarize,
    write_csv_export,
)


def _configure_logging(level: str = "INFO") -> None:
    """Initialise an application wide logger configuration."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Technical indicator stock screener")
    parser.add_argument("--config", type=Path, help="Path to JSON/YAML configuration file")
    parser.add_argument(
        "--as-of",
        type=str,
        default=None,
        help="Override timestamp in ISO format. Defaults to now (UTC).",
    )
    parser.add_argument(
        "--preset",
        dest="presets",
        action="append",
        default=None,
        help=(
            "Screen with the named preset instead of the configured criteria. "
            "May be repeated; criteria from every preset must hold."
        ),
    )
    parser.add_argument(
        "--list-presets",
        action="store_true",
        help="Print available presets and exit.",
    )
    parser.add_argument("--sort", choices=SORTABLE_FIELDS, default=None, help="Sort matches for display")
    parser.add_argument("--descending", action="store_true", help="Reverse the display sort order")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="CSV export destination. Defaults to ./ihsg-screener-<date>.csv",
    )
    parser.add_argument("--details", action="store_true", help="Print Bollinger Bands and ATR for matches")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args(argv)
    if args.config is None and not args.list_presets:
        parser.error("--config is required unless --list-presets is given")
    return args


def _render_preset_catalogue(catalogue: Mapping[str, FilterPreset]) -> str:
    lines: list[str] = ["Available presets:"]
    for name in sorted(catalogue):
        preset = catalogue[name]
        conditions = "; ".join(criterion.describe() for criterion in preset.filters)
        lines.append(f"- {name}: {conditions}")
    return "\n".join(lines)


def _preset_criteria(
    names: Sequence[str], catalogue: Mapping[str, FilterPreset]
) -> tuple[FilterCriterion, ...]:
    criteria: list[FilterCriterion] = []
    for name in names:
        preset = resolve_preset(name, catalogue)
        criteria.extend(preset.filters)
    # Renumber so criteria from different presets keep distinct ids.
    return tuple(
        FilterCriterion(
            id=index,
            indicator_type=criterion.indicator_type,
            operator=criterion.operator,
            threshold=criterion.threshold,
            max_threshold=criterion.max_threshold,
            enabled=criterion.enabled,
        )
        for index, criterion in enumerate(criteria, start=1)
    )


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.log_level)

    logger = logging.getLogger(__name__)

    config = None
    if args.config is not None:
        logger.info("Loading configuration", extra={"config_path": str(args.config)})
        config = load_config(args.config)

    catalogue = build_preset_catalogue(config.presets if config else ())
    validate_presets(catalogue)

    if args.list_presets:
        print(_render_preset_catalogue(catalogue))
        return 0

    if config is None:
        raise SystemExit("--config is required")
    criteria = None
    if args.presets:
        try:
            criteria = _preset_criteria(args.presets, catalogue)
        except KeyError as exc:
            raise SystemExit(str(exc.args[0])) from exc
        logger.info("Presets selected", extra={"presets": list(args.presets)})

    factory = resolve_provider_factory(config.data.provider)
    engine = ScreenerEngine(config, factory)

    as_of = parse_timestamp(args.as_of) if args.as_of else None
    logger.info(
        "Starting screener run",
        extra={"as_of": as_of.isoformat() if as_of else None},
    )
    results = engine.run(as_of=as_of, criteria=criteria)

    matches = [result for result in results if result.is_match()]
    if args.sort:
        order = {
            stock.symbol: position
            for position, stock in enumerate(
                sort_stocks([result.stock for result in matches], args.sort, args.descending)
            )
        }
        matches.sort(key=lambda result: order[result.symbol])

    rules = config.signals.rules
    max_results = config.universe.max_results
    display_results = matches if max_results is None else matches[:max_results]
    print(render_table([summarize(result, rules) for result in display_results]))
    if args.details:
        print()
        print(render_technicals(display_results))

    failures = [result for result in results if result.error is not None]
    if failures:
        print()
        print(render_table([summarize(result, rules) for result in failures]))

    output_path = args.output or Path.cwd() / default_export_filename()
    write_csv_export([result.stock for result in matches], output_path)
    logger.info(
        "Wrote CSV export",
        extra={"path": str(output_path), "rows": len(matches)},
    )

    return 0 if matches else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
