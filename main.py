"""Ad performance engine entrypoint."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Sequence

from loguru import logger

from adperf.application import (
    build_performance_report,
    export_report,
    import_spreadsheet,
    import_text_report,
    undo_import,
)
from adperf.domain.errors import ImportRejectedError
from adperf.gate import NewAccountsDetected
from adperf.infrastructure.spreadsheet_reader import is_text_report
from adperf.infrastructure.stores import json_dataset, json_ledger, load_clients
from adperf.metrics import fmt_money, fmt_pct, fmt_ratio
from adperf.settings import DATA_DIR, DEFAULT_WINDOW_DAYS, LOG_LEVEL

CLIENTS_FILE = "clients.json"


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _iso_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM-DD, got {raw!r}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import ad performance exports and report on them.")
    parser.add_argument("--data-dir", type=Path, default=DATA_DIR)
    parser.add_argument("--log-level", default=LOG_LEVEL)
    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Import a spreadsheet export or a bitácora text report")
    import_cmd.add_argument("path", type=Path)
    import_cmd.add_argument("--client", help="Client id (required for text reports)")
    import_cmd.add_argument(
        "--proceed-with-known",
        action="store_true",
        help="Import rows of registered accounts and skip unknown ones",
    )

    undo_cmd = commands.add_parser("undo", help="Reverse one import batch")
    undo_cmd.add_argument("batch_id")

    history_cmd = commands.add_parser("history", help="List import batches, newest first")
    history_cmd.add_argument("--limit", type=int, default=20)

    summary_cmd = commands.add_parser("summary", help="Per-ad rollup and period comparison for a client")
    summary_cmd.add_argument("client")
    summary_cmd.add_argument("--start", type=_iso_date)
    summary_cmd.add_argument("--end", type=_iso_date)
    summary_cmd.add_argument("--days", type=int, default=DEFAULT_WINDOW_DAYS)
    summary_cmd.add_argument("--export-dir", type=Path)
    summary_cmd.add_argument("--excel", action="store_true")
    return parser


def _run_import(args: argparse.Namespace) -> int:
    clients = load_clients(args.data_dir / CLIENTS_FILE)
    dataset = json_dataset(args.data_dir)
    ledger = json_ledger(args.data_dir)
    data = args.path.read_bytes()

    if is_text_report(args.path.name):
        client = next((item for item in clients if item.id == args.client), None)
        if client is None:
            logger.error(f"Text reports need --client with a registered client id (got {args.client!r})")
            return 2
        result = import_text_report(data, args.path.name, client, dataset, ledger)
        print(f"Imported report {result.report.id}: {len(result.report.tables)} tables (batch {result.batch.id})")
        return 0

    outcome = import_spreadsheet(
        data,
        args.path.name,
        clients,
        dataset,
        ledger,
        proceed_with_known=args.proceed_with_known,
    )
    if isinstance(outcome, NewAccountsDetected):
        print("New accounts detected, nothing imported:")
        for name in outcome.new_account_names:
            print(f"  - {name}")
        print("Register them in clients.json or rerun with --proceed-with-known.")
        return 3
    for result in outcome:
        period = f"{result.period_start}..{result.period_end}" if result.period_start else "n/a"
        batch_id = result.batch.id if result.batch is not None else "-"
        print(
            f"{result.client.name}: +{result.inserted_count} ({result.source.value}) "
            f"period={period} days={result.days_detected} batch={batch_id}"
        )
    return 0


def _run_undo(args: argparse.Namespace) -> int:
    result = undo_import(args.batch_id, json_dataset(args.data_dir), json_ledger(args.data_dir))
    if not result.success:
        print(f"Batch not found: {args.batch_id}")
        return 1
    suffix = f" ({len(result.missing_keys)} key(s) were already gone)" if result.partial else ""
    print(f"Undone batch {result.batch_id}: removed {result.removed_count}{suffix}")
    return 0


def _run_history(args: argparse.Namespace) -> int:
    for batch in json_ledger(args.data_dir).history()[: args.limit]:
        print(f"{batch.timestamp}  {batch.id}  {batch.source.value:<6} {batch.client_name}: {batch.description} [{batch.file_name}]")
    return 0


def _run_summary(args: argparse.Namespace) -> int:
    clients = load_clients(args.data_dir / CLIENTS_FILE)
    client = next((item for item in clients if item.id == args.client), None)
    if client is None:
        logger.error(f"Unknown client id: {args.client}")
        return 2

    report = build_performance_report(
        client,
        json_dataset(args.data_dir),
        start=args.start,
        end=args.end,
        window_days=args.days,
    )
    totals = report.window_totals
    print(f"{client.name} {report.start.isoformat()}..{report.end.isoformat()}")
    print(
        f"Spend {fmt_money(totals.spend, client.currency)} | ROAS {fmt_ratio(totals.roas)} | "
        f"CPA {fmt_money(totals.cpa, client.currency)} | Purchases {totals.purchases:.0f}"
    )
    for metric, change in report.comparison.changes.items():
        print(f"  {metric:<20} {change.current:>14.2f} vs {change.previous:>14.2f}  {fmt_pct(change.pct_change)}")
    for ad in report.ads:
        print(
            f"  {ad.ad_name}: ROAS {fmt_ratio(ad.metrics.roas)} "
            f"spend {fmt_money(ad.metrics.spend, client.currency)} active_days={ad.active_days}"
        )
    if args.export_dir is not None:
        for path in export_report(report, args.export_dir, excel=args.excel):
            print(f"Saved: {path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    handlers = {
        "import": _run_import,
        "undo": _run_undo,
        "history": _run_history,
        "summary": _run_summary,
    }
    try:
        return handlers[args.command](args)
    except ImportRejectedError as exc:
        logger.error(f"Import rejected: {exc.reason}")
        return 1
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        logger.error(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
