"""Content addressing for uploaded files and the per-client processed-file ledger."""

from __future__ import annotations

import hashlib
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Protocol, Sequence

from loguru import logger

from adperf.domain.errors import DuplicateFileError
from adperf.domain.models import ImportBatch


class LedgerStore(Protocol):
    """Persistence contract for processed hashes and import history."""

    def get_processed_hashes(self, client_id: str) -> set[str]: ...

    def save_processed_hashes(self, client_id: str, hashes: set[str]) -> None: ...

    def get_import_history(self) -> list[ImportBatch]: ...

    def save_import_history(self, batches: list[ImportBatch]) -> None: ...


def compute_file_hash(data: bytes) -> str:
    """SHA-256 hex digest of the raw file bytes."""
    return hashlib.sha256(data).hexdigest()


class ProcessedFileLedger:
    """Per-client hashes of merged files plus the append-only batch history.

    The history and the hash file are shared by every client, so each read and
    read-modify-write goes through one ledger-wide lock. Callers take it after
    their client locks.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store
        self._lock = threading.Lock()

    def is_processed(self, client_id: str, file_hash: str) -> bool:
        with self._lock:
            return file_hash in self.store.get_processed_hashes(client_id)

    def ensure_not_processed(self, client_ids: Iterable[str], file_hash: str, file_name: str = "") -> None:
        duplicates = [client_id for client_id in client_ids if self.is_processed(client_id, file_hash)]
        if duplicates:
            raise DuplicateFileError(file_hash, duplicates, file_name=file_name)

    def record(self, client_id: str, file_hash: str) -> None:
        with self._lock:
            hashes = self.store.get_processed_hashes(client_id)
            hashes.add(file_hash)
            self.store.save_processed_hashes(client_id, hashes)

    def forget(self, client_id: str, file_hash: str) -> bool:
        with self._lock:
            hashes = self.store.get_processed_hashes(client_id)
            if file_hash not in hashes:
                return False
            hashes.discard(file_hash)
            self.store.save_processed_hashes(client_id, hashes)
            return True

    def history(self) -> list[ImportBatch]:
        with self._lock:
            return self.store.get_import_history()

    def find_batch(self, batch_id: str) -> ImportBatch | None:
        return next((batch for batch in self.history() if batch.id == batch_id), None)

    def append_batches(self, batches: Sequence[ImportBatch]) -> None:
        if not batches:
            return
        with self._lock:
            # newest first
            self.store.save_import_history([*reversed(batches), *self.store.get_import_history()])
        logger.info(f"[ledger] recorded {len(batches)} import batch(es)")

    def remove_batch(self, batch_id: str) -> None:
        with self._lock:
            remaining = [batch for batch in self.store.get_import_history() if batch.id != batch_id]
            self.store.save_import_history(remaining)


class ClientLocks:
    """One lock per client; ledger check and merge run while holding them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, client_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(client_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[client_id] = lock
            return lock

    @contextmanager
    def hold(self, client_ids: Iterable[str]) -> Iterator[None]:
        ordered = sorted(set(client_ids))
        acquired: list[threading.Lock] = []
        try:
            for client_id in ordered:
                lock = self._lock_for(client_id)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


DEFAULT_LOCKS = ClientLocks()
