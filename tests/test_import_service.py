"""End-to-end import pipeline over in-memory stores."""

import sys
import threading
import time
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from adperf.application.import_service import (
    import_rows,
    import_spreadsheet,
    import_text_report,
    undo_import,
)
from adperf.domain.errors import (
    DuplicateFileError,
    EmptyFileError,
    SchemaValidationError,
    UnsupportedFileError,
)
from adperf.domain.models import SourceKind
from adperf.gate import NewAccountsDetected
from adperf.infrastructure.stores import InMemoryLedgerStore
from adperf.ledger import ProcessedFileLedger, compute_file_hash


def _row(account="Acme", day="10/05/2024", ad="Ad 1", age="25-34", spend="10,5", impressions="1.000"):
    return (account, "Verano", "Set A", ad, day, age, "female", "Activo", "Activo", "Activo", spend, impressions, "1", "50,25")


def test_reimporting_the_same_file_is_rejected(ads_csv, clients, dataset, ledger, locks):
    data = ads_csv(_row(day="10/05/2024"), _row(day="11/05/2024"))
    (result,) = import_spreadsheet(data, "week.csv", clients, dataset, ledger, locks=locks)
    assert result.inserted_count == 2
    assert result.client.id == "acme"
    assert result.source is SourceKind.ADS_SPREADSHEET
    assert result.period_start == "2024-05-10"
    assert result.period_end == "2024-05-11"
    assert result.days_detected == 2
    assert ledger.is_processed("acme", compute_file_hash(data))

    with pytest.raises(DuplicateFileError):
        import_spreadsheet(data, "week.csv", clients, dataset, ledger, locks=locks)
    assert len(dataset.records.load("acme")) == 2
    assert len(ledger.history()) == 1


def test_numbers_are_parsed_with_european_separators(ads_csv, clients, dataset, ledger, locks):
    import_spreadsheet(ads_csv(_row(spend="1.234,56", impressions="12.000")), "a.csv", clients, dataset, ledger, locks=locks)
    (record,) = dataset.records.load("acme")
    assert record.spend == pytest.approx(1234.56)
    assert record.impressions == pytest.approx(12000.0)
    assert record.purchase_value == pytest.approx(50.25)


def test_overlapping_files_only_add_new_rows(ads_csv, clients, dataset, ledger, locks):
    import_spreadsheet(ads_csv(_row(day="10/05/2024"), _row(day="11/05/2024")), "a.csv", clients, dataset, ledger, locks=locks)
    (result,) = import_spreadsheet(
        ads_csv(_row(day="11/05/2024"), _row(day="12/05/2024")), "b.csv", clients, dataset, ledger, locks=locks
    )
    assert result.inserted_count == 1
    assert result.inserted_keys == ("2024-05-12|Verano|Ad 1|25-34|female",)
    assert len(dataset.records.load("acme")) == 3


def test_unknown_account_blocks_every_write(ads_csv, clients, dataset, ledger, locks):
    data = ads_csv(_row(account="Acme"), _row(account="Nueva Cuenta"))
    outcome = import_spreadsheet(data, "mixed.csv", clients, dataset, ledger, locks=locks)
    assert isinstance(outcome, NewAccountsDetected)
    assert outcome.new_account_names == ["Nueva Cuenta"]
    assert dataset.records.load("acme") == []
    assert ledger.history() == []
    assert not ledger.is_processed("acme", compute_file_hash(data))


def test_proceed_with_known_skips_unknown_rows(ads_csv, clients, dataset, ledger, locks):
    data = ads_csv(_row(account="Acme"), _row(account="Nueva Cuenta", ad="Ad 9"))
    (result,) = import_spreadsheet(data, "mixed.csv", clients, dataset, ledger, proceed_with_known=True, locks=locks)
    assert result.client.id == "acme"
    assert [record.ad_name for record in dataset.records.load("acme")] == ["Ad 1"]


def test_multi_client_file_creates_one_batch_per_client(ads_csv, clients, dataset, ledger, locks):
    data = ads_csv(_row(account="Acme"), _row(account="Globex"), _row(account="Globex", age="35-44"))
    results = import_spreadsheet(data, "all.csv", clients, dataset, ledger, locks=locks)
    counts = {result.client.id: result.inserted_count for result in results}
    assert counts == {"acme": 1, "globex": 2}
    assert {batch.undo_data.client_id for batch in ledger.history()} == {"acme", "globex"}
    with pytest.raises(DuplicateFileError):
        import_spreadsheet(data, "all.csv", clients, dataset, ledger, locks=locks)


def test_client_without_new_rows_gets_no_batch(clients, dataset, ledger, locks):
    headers = ["Account name", "Day", "Ad name", "Amount spent"]
    rows = [{"Account name": "Acme", "Day": "2024-05-10", "Ad name": "Ad 1", "Amount spent": "5"}]
    import_rows(headers, rows, "a.csv", "hash-1", clients, dataset, ledger, locks=locks)

    (result,) = import_rows(headers, rows, "a-copy.csv", "hash-2", clients, dataset, ledger, locks=locks)
    assert result.inserted_count == 0
    assert result.batch is None
    assert not ledger.is_processed("acme", "hash-2")
    assert len(ledger.history()) == 1


def test_undo_then_reimport(ads_csv, clients, dataset, ledger, locks):
    data = ads_csv(_row(day="10/05/2024"), _row(day="11/05/2024"))
    (result,) = import_spreadsheet(data, "week.csv", clients, dataset, ledger, locks=locks)

    undone = undo_import(result.batch.id, dataset, ledger, locks=locks)
    assert undone.success and not undone.partial
    assert dataset.records.load("acme") == []
    assert ledger.history() == []

    (again,) = import_spreadsheet(data, "week.csv", clients, dataset, ledger, locks=locks)
    assert again.inserted_count == 2


def test_creative_link_export(clients, dataset, ledger, locks):
    data = (
        "Account name;Ad name;Ad creative thumbnail URL;Ad preview link\n"
        "Acme;Ad 1;https://img/1.jpg;https://fb/preview/1\n"
        "Acme;Ad 2;;\n"
    ).encode("utf-8")
    (result,) = import_spreadsheet(data, "links.csv", clients, dataset, ledger, locks=locks)
    assert result.source is SourceKind.CREATIVE_SPREADSHEET
    assert result.inserted_keys == ("Ad 1",)
    link = dataset.creative_links.load("acme")["Ad 1"]
    assert link.ad_preview_link == "https://fb/preview/1"


def test_missing_account_column_rejects_file(clients, dataset, ledger, locks):
    data = "Día;Nombre del anuncio\n10/05/2024;Ad 1\n".encode("utf-8")
    with pytest.raises(SchemaValidationError):
        import_spreadsheet(data, "bad.csv", clients, dataset, ledger, locks=locks)
    assert ledger.history() == []


def test_unsupported_and_empty_files(ads_csv, clients, dataset, ledger, locks):
    with pytest.raises(UnsupportedFileError):
        import_spreadsheet(b"%PDF", "report.pdf", clients, dataset, ledger, locks=locks)
    with pytest.raises(EmptyFileError):
        import_spreadsheet(ads_csv(), "empty.csv", clients, dataset, ledger, locks=locks)


def test_text_report_import_and_undo(clients, dataset, ledger, locks):
    text = "**Resumen Cuenta Completa**\n| Métrica | Valor |\n|---|---|\n| Gasto | 1.234,56 € (+12,3% ▲) |\n"
    client = clients[0]
    result = import_text_report(text.encode("utf-8"), "bitacora.txt", client, dataset, ledger, locks=locks)
    assert result.batch.source is SourceKind.TEXT_REPORT
    assert result.batch.undo_data.keys == (result.report.id,)
    (stored,) = dataset.reports.load("acme")
    assert stored.main_summary_table is not None
    assert stored.client_id == "acme"

    with pytest.raises(DuplicateFileError):
        import_text_report(text.encode("utf-8"), "bitacora.txt", client, dataset, ledger, locks=locks)

    assert undo_import(result.batch.id, dataset, ledger, locks=locks).success
    assert dataset.reports.load("acme") == []


def test_blank_text_report_is_rejected(clients, dataset, ledger, locks):
    with pytest.raises(EmptyFileError):
        import_text_report(b"  \n", "empty.txt", clients[0], dataset, ledger, locks=locks)


def test_excel_and_csv_days_share_one_key(clients, dataset, ledger, locks):
    headers = ["Account name", "Day", "Campaign name", "Ad name", "Age", "Gender", "Amount spent"]

    def row(day):
        return {
            "Account name": "Acme",
            "Day": day,
            "Campaign name": "Verano",
            "Ad name": "Ad 1",
            "Age": "25-34",
            "Gender": "female",
            "Amount spent": "10",
        }

    import_rows(headers, [row("10/05/2024")], "week.csv", "hash-csv", clients, dataset, ledger, locks=locks)
    (result,) = import_rows(headers, [row(datetime(2024, 5, 10))], "week.xlsx", "hash-xlsx", clients, dataset, ledger, locks=locks)
    assert result.inserted_count == 0
    assert [record.unique_id for record in dataset.records.load("acme")] == ["2024-05-10|Verano|Ad 1|25-34|female"]


def test_days_detected_counts_every_new_day(ads_csv, clients, dataset, ledger, locks):
    paused = ("Acme", "Verano", "Set A", "Ad 1", "11/05/2024", "25-34", "female", "Pausado", "Pausado", "Pausado", "1", "10", "0", "0")
    (result,) = import_spreadsheet(ads_csv(_row(day="10/05/2024"), paused), "week.csv", clients, dataset, ledger, locks=locks)
    assert result.days_detected == 2


class SlowHistoryStore(InMemoryLedgerStore):
    def get_import_history(self):
        history = super().get_import_history()
        time.sleep(0.05)
        return history


def _run_concurrently(*jobs):
    barrier = threading.Barrier(len(jobs))
    outcomes = [None] * len(jobs)

    def run(index, job):
        barrier.wait(timeout=5)
        try:
            outcomes[index] = job()
        except Exception as exc:
            outcomes[index] = exc

    threads = [threading.Thread(target=run, args=(index, job)) for index, job in enumerate(jobs)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return outcomes


def test_concurrent_imports_for_different_clients_keep_both_batches(clients, dataset, locks):
    ledger = ProcessedFileLedger(SlowHistoryStore())
    headers = ["Account name", "Day", "Ad name", "Amount spent"]

    def job(account, file_hash):
        rows = [{"Account name": account, "Day": "2024-05-10", "Ad name": "Ad 1", "Amount spent": "5"}]
        return lambda: import_rows(headers, rows, f"{account}.csv", file_hash, clients, dataset, ledger, locks=locks)

    outcomes = _run_concurrently(job("Acme", "hash-acme"), job("Globex", "hash-globex"))
    assert all(isinstance(outcome, list) for outcome in outcomes)
    assert len(dataset.records.load("acme")) == 1
    assert len(dataset.records.load("globex")) == 1
    assert {batch.undo_data.client_id for batch in ledger.history()} == {"acme", "globex"}


def test_concurrent_imports_of_one_file_merge_once(ads_csv, clients, dataset, locks):
    ledger = ProcessedFileLedger(SlowHistoryStore())
    data = ads_csv(_row(day="10/05/2024"), _row(day="11/05/2024"))

    def job():
        return import_spreadsheet(data, "week.csv", clients, dataset, ledger, locks=locks)

    outcomes = _run_concurrently(job, job)
    assert sum(isinstance(outcome, list) for outcome in outcomes) == 1
    assert sum(isinstance(outcome, DuplicateFileError) for outcome in outcomes) == 1
    assert len(dataset.records.load("acme")) == 2
    assert len(ledger.history()) == 1
