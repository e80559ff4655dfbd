"""Persistence adapters for the per-client dataset and the import ledger."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from adperf.domain.models import ClientAccount, CreativeLink, ImportBatch, PerformanceRecord
from adperf.domain.report import BitacoraReport
from adperf.ledger import ProcessedFileLedger
from adperf.merge import Dataset

T = TypeVar("T")


class InMemoryListStore(Generic[T]):
    def __init__(self) -> None:
        self._data: dict[str, list[T]] = {}

    def load(self, client_id: str) -> list[T]:
        return list(self._data.get(client_id, []))

    def save(self, client_id: str, items: list[T]) -> None:
        self._data[client_id] = list(items)


class InMemoryCreativeLinkStore:
    def __init__(self) -> None:
        self._data: dict[str, dict[str, CreativeLink]] = {}

    def load(self, client_id: str) -> dict[str, CreativeLink]:
        return dict(self._data.get(client_id, {}))

    def save(self, client_id: str, links: dict[str, CreativeLink]) -> None:
        self._data[client_id] = dict(links)


class InMemoryLedgerStore:
    def __init__(self) -> None:
        self._hashes: dict[str, set[str]] = {}
        self._history: list[ImportBatch] = []

    def get_processed_hashes(self, client_id: str) -> set[str]:
        return set(self._hashes.get(client_id, set()))

    def save_processed_hashes(self, client_id: str, hashes: set[str]) -> None:
        self._hashes[client_id] = set(hashes)

    def get_import_history(self) -> list[ImportBatch]:
        return list(self._history)

    def save_import_history(self, batches: list[ImportBatch]) -> None:
        self._history = list(batches)


def in_memory_dataset() -> Dataset:
    return Dataset(
        records=InMemoryListStore[PerformanceRecord](),
        creative_links=InMemoryCreativeLinkStore(),
        reports=InMemoryListStore[BitacoraReport](),
    )


def in_memory_ledger() -> ProcessedFileLedger:
    return ProcessedFileLedger(InMemoryLedgerStore())


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    tmp_path.replace(path)


class JsonListStore(Generic[T]):
    """One JSON array per client under `root/<client_id>.json`."""

    def __init__(
        self,
        root: Path,
        decode: Callable[[dict[str, Any]], T],
        encode: Callable[[T], dict[str, Any]],
    ) -> None:
        self.root = root
        self._decode = decode
        self._encode = encode

    def _path(self, client_id: str) -> Path:
        return self.root / f"{client_id}.json"

    def load(self, client_id: str) -> list[T]:
        return [self._decode(item) for item in _read_json(self._path(client_id), [])]

    def save(self, client_id: str, items: list[T]) -> None:
        _write_json(self._path(client_id), [self._encode(item) for item in items])


class JsonCreativeLinkStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, client_id: str) -> Path:
        return self.root / f"{client_id}.json"

    def load(self, client_id: str) -> dict[str, CreativeLink]:
        raw = _read_json(self._path(client_id), {})
        return {name: CreativeLink.from_dict(item) for name, item in raw.items()}

    def save(self, client_id: str, links: dict[str, CreativeLink]) -> None:
        _write_json(self._path(client_id), {name: link.to_dict() for name, link in links.items()})


class JsonLedgerStore:
    def __init__(self, root: Path) -> None:
        self.hashes_path = root / "processed_hashes.json"
        self.history_path = root / "import_history.json"

    def get_processed_hashes(self, client_id: str) -> set[str]:
        return set(_read_json(self.hashes_path, {}).get(client_id, []))

    def save_processed_hashes(self, client_id: str, hashes: set[str]) -> None:
        payload = _read_json(self.hashes_path, {})
        payload[client_id] = sorted(hashes)
        _write_json(self.hashes_path, payload)

    def get_import_history(self) -> list[ImportBatch]:
        return [ImportBatch.from_dict(item) for item in _read_json(self.history_path, [])]

    def save_import_history(self, batches: list[ImportBatch]) -> None:
        _write_json(self.history_path, [batch.to_dict() for batch in batches])


def json_dataset(data_dir: Path) -> Dataset:
    return Dataset(
        records=JsonListStore(data_dir / "records", PerformanceRecord.from_dict, PerformanceRecord.to_dict),
        creative_links=JsonCreativeLinkStore(data_dir / "creative_links"),
        reports=JsonListStore(data_dir / "reports", BitacoraReport.from_dict, BitacoraReport.to_dict),
    )


def json_ledger(data_dir: Path) -> ProcessedFileLedger:
    return ProcessedFileLedger(JsonLedgerStore(data_dir / "ledger"))


def load_clients(path: Path) -> list[ClientAccount]:
    if not path.exists():
        raise FileNotFoundError(f"Client registry not found: {path}")
    return [ClientAccount.from_dict(item) for item in json.loads(path.read_text(encoding="utf-8"))]
