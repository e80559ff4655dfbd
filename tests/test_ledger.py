"""File hashing, processed-file ledger and per-client locks."""

import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from adperf.domain.errors import DuplicateFileError
from adperf.domain.models import ClientAccount, ImportBatch, SourceKind
from adperf.ledger import ClientLocks, compute_file_hash


def test_hash_is_content_addressed():
    assert compute_file_hash(b"abc") == compute_file_hash(b"abc")
    assert compute_file_hash(b"abc") != compute_file_hash(b"abd")
    assert len(compute_file_hash(b"")) == 64


def test_ensure_not_processed_rejects_any_target_client(ledger):
    file_hash = compute_file_hash(b"file")
    ledger.record("acme", file_hash)
    ledger.ensure_not_processed(["globex"], file_hash)
    with pytest.raises(DuplicateFileError) as exc_info:
        ledger.ensure_not_processed(["globex", "acme"], file_hash, file_name="export.csv")
    assert exc_info.value.client_ids == ["acme"]
    assert "export.csv" in exc_info.value.reason


def test_forget_reports_whether_hash_was_present(ledger):
    ledger.record("acme", "h1")
    assert ledger.forget("acme", "h1") is True
    assert ledger.forget("acme", "h1") is False
    assert not ledger.is_processed("acme", "h1")


def test_history_is_newest_first(ledger):
    client = ClientAccount(id="acme", name="Acme")
    first = ImportBatch.create(SourceKind.ADS_SPREADSHEET, "a.csv", "h1", client, "first", ["k1"])
    second = ImportBatch.create(SourceKind.ADS_SPREADSHEET, "b.csv", "h2", client, "second", ["k2"])
    ledger.append_batches([first])
    ledger.append_batches([second])
    assert [batch.id for batch in ledger.history()] == [second.id, first.id]
    assert ledger.find_batch(first.id) == first

    ledger.remove_batch(second.id)
    assert [batch.id for batch in ledger.history()] == [first.id]


def test_batch_dict_round_trip():
    client = ClientAccount(id="acme", name="Acme")
    batch = ImportBatch.create(SourceKind.CREATIVE_SPREADSHEET, "links.xlsx", "h", client, "links", ["Ad 1"])
    payload = batch.to_dict()
    assert payload["undo_data"] == {"type": "looker", "keys": ["Ad 1"], "client_id": "acme"}
    assert ImportBatch.from_dict(payload) == batch


def test_client_locks_serialize_same_client():
    locks = ClientLocks()
    entered = threading.Event()
    release = threading.Event()
    order = []

    def holder():
        with locks.hold(["acme"]):
            entered.set()
            release.wait(timeout=5)
            order.append("first")

    thread = threading.Thread(target=holder)
    thread.start()
    entered.wait(timeout=5)

    waiter_done = threading.Event()

    def waiter():
        with locks.hold(["acme", "globex"]):
            order.append("second")
        waiter_done.set()

    second = threading.Thread(target=waiter)
    second.start()
    assert not waiter_done.wait(timeout=0.2)
    release.set()
    thread.join(timeout=5)
    second.join(timeout=5)
    assert order == ["first", "second"]


def test_client_locks_allow_other_clients():
    locks = ClientLocks()
    with locks.hold(["acme"]):
        done = threading.Event()

        def other():
            with locks.hold(["globex"]):
                done.set()

        thread = threading.Thread(target=other)
        thread.start()
        assert done.wait(timeout=5)
        thread.join(timeout=5)
