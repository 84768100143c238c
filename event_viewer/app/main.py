"""
Console entry point for the Event Viewer application.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

from ..core import (
    EventLogSource,
    Snapshot,
    ViewCoordinator,
    ViewerConfig,
    ViewResult,
    load_config,
    render_value,
)

logger = logging.getLogger(__name__)


def parse_filter(text: str) -> tuple[str, str]:
    """Split a COLUMN=TEXT filter argument."""
    column, sep, fragment = text.partition("=")
    if not sep or not column:
        raise argparse.ArgumentTypeError(f"expected COLUMN=TEXT, got '{text}'")
    return column, fragment


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="event-viewer",
        description="Browse an exported event log page by page"
    )
    parser.add_argument("path", type=Path, help="Event log file (.json, .jsonl, .csv, .tsv)")
    parser.add_argument("--page", "-p", type=int, default=1, help="Page to show (clamped to the valid range)")
    parser.add_argument("--page-size", type=int, help="Records per page (overrides the config file)")
    parser.add_argument("--columns", "-c", help="Comma-separated list of columns to show")
    parser.add_argument(
        "--filter", "-f",
        type=parse_filter,
        action="append",
        default=[],
        metavar="COLUMN=TEXT",
        help="Only show records whose COLUMN contains TEXT (repeatable)"
    )
    parser.add_argument("--sort", help="Sort the whole file by this column")
    parser.add_argument("--descending", action="store_true", help="Sort in descending order")
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--export-csv", type=Path, help="Write every record of the file to CSV")
    parser.add_argument("--export-json", type=Path, help="Write every record of the file to JSON")
    parser.add_argument("--json", action="store_true", help="Print the snapshot as JSON")
    return parser


def format_snapshot(snapshot: Snapshot) -> str:
    """Render a snapshot as a plain text table."""
    lines = [
        f"{snapshot.source_path or '-'}: page {snapshot.current_page_index} of "
        f"{snapshot.last_page} ({snapshot.total_records} records)"
    ]

    columns = list(snapshot.visible_columns)
    if not snapshot.displayed_records:
        lines.append("(no matching records)")
    elif not columns:
        lines.append("(no columns selected)")
    else:
        rows = [[render_value(r.get(c)) for c in columns] for r in snapshot.displayed_records]
        lines.append(pd.DataFrame(rows, columns=columns).to_string(index=False))

    active = {c.name: c.filter for c in snapshot.columns if c.filter}
    if active:
        lines.append("Filters: " + ", ".join(f"{k}={v!r}" for k, v in active.items()))
    return "\n".join(lines)


def _report(result: ViewResult) -> bool:
    if result.ok:
        return True
    print(f"error: {result.error}", file=sys.stderr)
    return False


async def run(args: argparse.Namespace, config: ViewerConfig) -> int:
    """Drive the coordinator through the requested operations."""
    source = EventLogSource(
        page_size=config.page_size,
        flag_column=config.flag_column,
        source_column=config.source_column,
        record_id_field=config.record_id_field
    )
    coordinator = ViewCoordinator(source, config)

    if not _report(await coordinator.request_open_file(args.path)):
        return 1
    if args.sort and not _report(await coordinator.request_sort(args.sort, not args.descending)):
        return 1
    if not _report(await coordinator.request_page(args.page)):
        return 1
    if args.columns:
        coordinator.set_column_selection(c.strip() for c in args.columns.split(","))
    for column, fragment in args.filter:
        if not _report(coordinator.append_column_filter(column, fragment)):
            return 1

    try:
        if args.export_csv:
            source.export_csv(args.export_csv)
        if args.export_json:
            source.export_json(args.export_json)
    except OSError as exc:
        print(f"error: export failed: {exc}", file=sys.stderr)
        return 1

    snapshot = coordinator.snapshot
    if args.json:
        print(json.dumps(snapshot.to_dict(), indent=2, default=str))
    else:
        print(format_snapshot(snapshot))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run the Event Viewer console."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config else ViewerConfig()
        if args.page_size is not None:
            config = ViewerConfig.from_dict({**config.to_dict(), "page_size": args.page_size})
    except (OSError, ValueError) as exc:
        parser.error(f"invalid configuration: {exc}")

    logging.basicConfig(
        level=config.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.debug("Configuration", extra={"config": config.to_dict()})

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
