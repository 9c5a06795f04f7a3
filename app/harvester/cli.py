from __future__ import annotations

"""Command-line entry point for headless harvesting runs."""

import argparse
from pathlib import Path
from typing import Sequence

from . import config
from .config_validation import validate_harvest_config
from .controller import IngestionController
from .export_excel import export_records_to_excel
from .exporter import EmptyExportError, write_csv_export
from .scheduling import InlineScheduler
from .utils import ensure_dirs, log_line, setup_run_logger


def _build_parser() -> argparse.ArgumentParser:
    """Return an argument parser for the harvester CLI."""

    parser = argparse.ArgumentParser(
        description="Harvest organization listings page by page and export them.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Harvest one batch of pages.")
    run_parser.add_argument("--source", choices=["html", "demo"], help="Page source to read from.")
    run_parser.add_argument("--base-url", help="Listing URL; the page number is appended.")
    run_parser.add_argument("--batch-limit", type=int, help="Records per batch before pausing.")
    run_parser.add_argument("--pacing-ms", type=int, help="Delay between page fetches.")
    run_parser.add_argument(
        "--export-dir",
        type=Path,
        help="Write the CSV export into this directory when the run halts.",
    )

    subparsers.add_parser("status", help="Show the stored records by region.")

    export_parser = subparsers.add_parser("export", help="Export the stored records.")
    export_parser.add_argument("--dest-dir", type=Path, default=None, help="Output directory.")
    export_parser.add_argument("--xlsx", action="store_true", help="Also write an Excel workbook.")

    subparsers.add_parser("reset", help="Delete the stored records.")
    return parser


def _harvest_config(args: argparse.Namespace) -> config.HarvestConfig:
    harvest_config = config.HarvestConfig.from_env()
    if getattr(args, "base_url", None):
        source = config.SourceConfig(
            base_url=args.base_url,
            item_selector=harvest_config.source.item_selector,
            name_selector=harvest_config.source.name_selector,
            address_selector=harvest_config.source.address_selector,
            website_selector=harvest_config.source.website_selector,
            next_selector=harvest_config.source.next_selector,
        )
        harvest_config = harvest_config.with_overrides(source=source)
    return harvest_config.with_overrides(
        source_kind=getattr(args, "source", None),
        batch_limit=getattr(args, "batch_limit", None),
        pacing_interval_ms=getattr(args, "pacing_ms", None),
    )


def _print_tally(controller: IngestionController) -> None:
    print(f"Records: {len(controller.records)}")
    for region, count in sorted(controller.tally.items()):
        print(f"  {region}: {count}")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the harvester CLI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        harvest_config = validate_harvest_config(_harvest_config(args), "cli")
    except ValueError as exc:
        parser.error(str(exc))

    ensure_dirs()
    controller = IngestionController.from_config(harvest_config, scheduler=InlineScheduler())
    controller.restore()

    if args.command == "reset":
        controller.reset()
        print("Stored records cleared.")
        return 0

    if args.command == "status":
        _print_tally(controller)
        return 0

    if args.command == "export":
        dest_dir = args.dest_dir or config.EXPORTS_DIR
        try:
            path = write_csv_export(controller.records, dest_dir)
        except EmptyExportError as exc:
            print(str(exc))
            return 0
        print(f"Wrote {path}")
        if args.xlsx:
            workbook = export_records_to_excel(controller.records, str(path.with_suffix(".xlsx")))
            print(f"Wrote {workbook}")
        return 0

    setup_run_logger()
    log_line(f"[CLI] Harvest run starting (source={harvest_config.source_kind})")
    controller.start()
    state = controller.state
    print(
        f"Status: {state.status.value} (cursor={state.cursor}, "
        f"processed={state.processed_count}/{controller.batch_limit})"
    )
    if controller.last_failure:
        print(f"Last error: {controller.last_failure.message}")
    _print_tally(controller)

    if args.export_dir:
        try:
            path = write_csv_export(controller.records, args.export_dir)
        except EmptyExportError as exc:
            print(str(exc))
        else:
            print(f"Wrote {path}")

    return 1 if controller.last_failure else 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
