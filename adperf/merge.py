"""Incremental merge of parsed rows into per-client datasets, and its undo."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Iterable, Protocol

from loguru import logger

from adperf.domain.errors import PartialUndoWarning
from adperf.domain.models import (
    CreativeLink,
    ImportBatch,
    MergeResult,
    PerformanceRecord,
    SourceKind,
    UndoResult,
)
from adperf.domain.report import BitacoraReport
from adperf.ledger import DEFAULT_LOCKS, ClientLocks, ProcessedFileLedger


class RecordStore(Protocol):
    def load(self, client_id: str) -> list[PerformanceRecord]: ...

    def save(self, client_id: str, records: list[PerformanceRecord]) -> None: ...


class CreativeLinkStore(Protocol):
    def load(self, client_id: str) -> dict[str, CreativeLink]: ...

    def save(self, client_id: str, links: dict[str, CreativeLink]) -> None: ...


class ReportStore(Protocol):
    def load(self, client_id: str) -> list[BitacoraReport]: ...

    def save(self, client_id: str, reports: list[BitacoraReport]) -> None: ...


@dataclass(frozen=True)
class Dataset:
    """Handle on the per-client stores an import writes to."""

    records: RecordStore
    creative_links: CreativeLinkStore
    reports: ReportStore


def snapshot_records(dataset: Dataset, client_id: str) -> tuple[PerformanceRecord, ...]:
    """Immutable copy of a client's rows for read-only aggregation."""
    return tuple(dataset.records.load(client_id))


class MergeEngine:
    def __init__(self, dataset: Dataset) -> None:
        self.dataset = dataset

    def merge_records(self, client_id: str, records: Iterable[PerformanceRecord]) -> MergeResult:
        """Append rows whose unique id is not present yet; repeated ids are skipped."""
        existing = self.dataset.records.load(client_id)
        seen = {record.unique_id for record in existing}
        inserted: list[PerformanceRecord] = []
        skipped = 0
        for record in records:
            if record.unique_id in seen:
                skipped += 1
                continue
            seen.add(record.unique_id)
            inserted.append(record)
        if inserted:
            self.dataset.records.save(client_id, [*existing, *inserted])
        logger.debug(f"[merge] client={client_id} inserted={len(inserted)} skipped={skipped}")
        return MergeResult(
            inserted_count=len(inserted),
            inserted_keys=tuple(record.unique_id for record in inserted),
        )

    def merge_creative_links(self, client_id: str, links: Iterable[CreativeLink]) -> MergeResult:
        """Add links for ad names that have none; existing links are never replaced."""
        existing = self.dataset.creative_links.load(client_id)
        patch: dict[str, CreativeLink] = {}
        for link in links:
            if link.ad_name in existing or link.ad_name in patch:
                continue
            patch[link.ad_name] = link
        if patch:
            self.dataset.creative_links.save(client_id, {**existing, **patch})
        return MergeResult(inserted_count=len(patch), inserted_keys=tuple(patch))

    def add_report(self, client_id: str, report: BitacoraReport) -> MergeResult:
        reports = self.dataset.reports.load(client_id)
        if any(existing.id == report.id for existing in reports):
            return MergeResult(inserted_count=0, inserted_keys=())
        self.dataset.reports.save(client_id, [*reports, report])
        return MergeResult(inserted_count=1, inserted_keys=(report.id,))

    def remove_keys(self, source: SourceKind, client_id: str, keys: Iterable[str]) -> tuple[int, list[str]]:
        """Remove the named keys; returns (removed count, keys that were already gone)."""
        wanted = list(dict.fromkeys(keys))
        if source is SourceKind.ADS_SPREADSHEET:
            records = self.dataset.records.load(client_id)
            present = {record.unique_id for record in records}
            doomed = present.intersection(wanted)
            if doomed:
                self.dataset.records.save(client_id, [r for r in records if r.unique_id not in doomed])
        elif source is SourceKind.CREATIVE_SPREADSHEET:
            links = self.dataset.creative_links.load(client_id)
            doomed = set(links).intersection(wanted)
            if doomed:
                self.dataset.creative_links.save(
                    client_id, {name: link for name, link in links.items() if name not in doomed}
                )
        else:
            reports = self.dataset.reports.load(client_id)
            doomed = {report.id for report in reports}.intersection(wanted)
            if doomed:
                self.dataset.reports.save(client_id, [report for report in reports if report.id not in doomed])
        missing = [key for key in wanted if key not in doomed]
        return len(doomed), missing


def undo_batch(batch: ImportBatch, engine: MergeEngine, ledger: ProcessedFileLedger) -> UndoResult:
    undo = batch.undo_data
    removed, missing = engine.remove_keys(undo.source, undo.client_id, undo.keys)
    ledger.forget(undo.client_id, batch.file_hash)
    ledger.remove_batch(batch.id)

    warning: PartialUndoWarning | None = None
    if missing:
        warning = PartialUndoWarning(batch.id, missing)
        warnings.warn(warning, stacklevel=2)
        logger.warning(f"[merge] partial undo of {batch.id}: {len(missing)} key(s) already removed")
    logger.info(f"[merge] undone batch {batch.id} ({undo.source.value}) removed={removed}")
    return UndoResult(
        success=True,
        partial=bool(missing),
        batch_id=batch.id,
        removed_count=removed,
        missing_keys=tuple(missing),
        warning=warning,
    )


def undo_import(
    batch_id: str,
    dataset: Dataset,
    ledger: ProcessedFileLedger,
    locks: ClientLocks = DEFAULT_LOCKS,
) -> UndoResult:
    """Reverse one import batch: drop its keys, its ledger hash and the batch itself."""
    batch = ledger.find_batch(batch_id)
    if batch is None:
        logger.warning(f"[merge] undo requested for unknown batch {batch_id}")
        return UndoResult(success=False, partial=False, batch_id=batch_id)
    with locks.hold([batch.undo_data.client_id]):
        return undo_batch(batch, MergeEngine(dataset), ledger)
