"""Import use cases: spreadsheet and bitácora files into per-client datasets."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from loguru import logger

from adperf.bitacora import parse_bitacora_report
from adperf.domain.errors import EmptyFileError
from adperf.domain.models import ClientAccount, ImportBatch, PerformanceRecord, SourceKind
from adperf.domain.report import BitacoraReport
from adperf.gate import NewAccountsDetected, check_new_accounts
from adperf.infrastructure.spreadsheet_reader import decode_text_report, read_spreadsheet
from adperf.ledger import DEFAULT_LOCKS, ClientLocks, ProcessedFileLedger, compute_file_hash
from adperf.locale_values import parse_date
from adperf.merge import Dataset, MergeEngine, undo_import
from adperf.schema import (
    CanonicalRow,
    build_creative_link,
    build_performance_record,
    detect_source_kind,
    normalize_rows,
    row_account_name,
)

__all__ = [
    "ClientImportResult",
    "TextImportResult",
    "import_rows",
    "import_spreadsheet",
    "import_text_report",
    "undo_import",
]


@dataclass(frozen=True)
class ClientImportResult:
    client: ClientAccount
    source: SourceKind
    batch: ImportBatch | None
    inserted_count: int
    inserted_keys: tuple[str, ...]
    period_start: str | None = None
    period_end: str | None = None
    days_detected: int = 0


@dataclass(frozen=True)
class TextImportResult:
    report: BitacoraReport
    batch: ImportBatch


def _detect_period(records: Sequence[PerformanceRecord]) -> tuple[str | None, str | None, int]:
    days = {day for day in (parse_date(record.day) for record in records) if day is not None}
    if not days:
        return None, None, 0
    return min(days).isoformat(), max(days).isoformat(), len(days)


def _rows_by_client(
    rows: Sequence[CanonicalRow],
    known: Mapping[str, ClientAccount],
) -> dict[str, tuple[ClientAccount, list[CanonicalRow]]]:
    grouped: dict[str, tuple[ClientAccount, list[CanonicalRow]]] = {}
    for row in rows:
        client = known.get(row_account_name(row))
        if client is None:
            continue
        grouped.setdefault(client.id, (client, []))[1].append(row)
    return grouped


def import_rows(
    headers: Sequence[Any],
    rows: Sequence[Mapping[str, Any]],
    file_name: str,
    file_hash: str,
    clients: Sequence[ClientAccount],
    dataset: Dataset,
    ledger: ProcessedFileLedger,
    proceed_with_known: bool = False,
    locks: ClientLocks = DEFAULT_LOCKS,
) -> NewAccountsDetected | list[ClientImportResult]:
    """Normalize, gate and merge already-read spreadsheet rows.

    Unknown account names stop the import before anything is written, unless
    `proceed_with_known` is set, in which case their rows are skipped. One
    import batch is recorded per client that received at least one new key.
    """
    if not rows:
        raise EmptyFileError(file_name)
    kind = detect_source_kind(headers)
    canonical = normalize_rows(rows, kind, headers)

    partition = check_new_accounts(canonical, clients, proceed_with_known=proceed_with_known)
    if isinstance(partition, NewAccountsDetected):
        return partition

    targets = _rows_by_client(canonical, partition.known)
    if not targets:
        logger.warning(f"[import] {file_name}: no rows belong to a registered client")
        return []

    results: list[ClientImportResult] = []
    batches: list[ImportBatch] = []
    with locks.hold(targets):
        ledger.ensure_not_processed(targets, file_hash, file_name=file_name)
        engine = MergeEngine(dataset)
        for client_id, (client, client_rows) in targets.items():
            period_start = period_end = None
            days_detected = 0
            if kind is SourceKind.ADS_SPREADSHEET:
                records = [build_performance_record(client_id, row) for row in client_rows]
                merged = engine.merge_records(client_id, records)
                inserted = set(merged.inserted_keys)
                period_start, period_end, days_detected = _detect_period(
                    [record for record in records if record.unique_id in inserted]
                )
                description = f"{merged.inserted_count} new performance rows"
            else:
                links = [link for link in (build_creative_link(row) for row in client_rows) if link is not None]
                merged = engine.merge_creative_links(client_id, links)
                description = f"{merged.inserted_count} new creative links"

            batch: ImportBatch | None = None
            if merged.inserted_count:
                batch = ImportBatch.create(kind, file_name, file_hash, client, description, merged.inserted_keys)
                ledger.record(client_id, file_hash)
                batches.append(batch)
            results.append(
                ClientImportResult(
                    client=client,
                    source=kind,
                    batch=batch,
                    inserted_count=merged.inserted_count,
                    inserted_keys=merged.inserted_keys,
                    period_start=period_start,
                    period_end=period_end,
                    days_detected=days_detected,
                )
            )
        ledger.append_batches(batches)

    logger.info(
        f"[import] {file_name} ({kind.value}): "
        + ", ".join(f"{result.client.name}=+{result.inserted_count}" for result in results)
    )
    return results


def import_spreadsheet(
    data: bytes,
    file_name: str,
    clients: Sequence[ClientAccount],
    dataset: Dataset,
    ledger: ProcessedFileLedger,
    proceed_with_known: bool = False,
    locks: ClientLocks = DEFAULT_LOCKS,
) -> NewAccountsDetected | list[ClientImportResult]:
    file_hash = compute_file_hash(data)
    sheet = read_spreadsheet(data, file_name)
    return import_rows(
        sheet.headers,
        sheet.rows,
        file_name,
        file_hash,
        clients,
        dataset,
        ledger,
        proceed_with_known=proceed_with_known,
        locks=locks,
    )


def import_text_report(
    data: bytes,
    file_name: str,
    client: ClientAccount,
    dataset: Dataset,
    ledger: ProcessedFileLedger,
    locks: ClientLocks = DEFAULT_LOCKS,
) -> TextImportResult:
    """Parse a bitácora text report and store it as one undoable record for `client`."""
    text = decode_text_report(data)
    if not text.strip():
        raise EmptyFileError(file_name)
    file_hash = compute_file_hash(data)
    report = replace(
        parse_bitacora_report(text),
        id=str(uuid.uuid4()),
        client_id=client.id,
        file_name=file_name,
        import_date=datetime.now(timezone.utc).isoformat(),
    )

    with locks.hold([client.id]):
        ledger.ensure_not_processed([client.id], file_hash, file_name=file_name)
        MergeEngine(dataset).add_report(client.id, report)
        batch = ImportBatch.create(
            SourceKind.TEXT_REPORT,
            file_name,
            file_hash,
            client,
            f"report with {len(report.tables)} tables",
            [report.id],
        )
        ledger.record(client.id, file_hash)
        ledger.append_batches([batch])

    logger.info(f"[import] {file_name} (txt): {len(report.tables)} table(s) for {client.name}")
    return TextImportResult(report=report, batch=batch)
