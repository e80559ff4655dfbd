"""Ad performance import and aggregation package."""

from .aggregation import aggregate_ads, compare_periods, summarize
from .application import (
    ClientImportResult,
    TextImportResult,
    build_performance_report,
    import_rows,
    import_spreadsheet,
    import_text_report,
    undo_import,
)
from .bitacora import parse_bitacora_report
from .gate import NewAccountsDetected
from .ledger import ProcessedFileLedger, compute_file_hash
from .merge import Dataset, MergeEngine

__all__ = [
    "ClientImportResult",
    "Dataset",
    "MergeEngine",
    "NewAccountsDetected",
    "ProcessedFileLedger",
    "TextImportResult",
    "aggregate_ads",
    "build_performance_report",
    "compare_periods",
    "compute_file_hash",
    "import_rows",
    "import_spreadsheet",
    "import_text_report",
    "parse_bitacora_report",
    "summarize",
    "undo_import",
]
