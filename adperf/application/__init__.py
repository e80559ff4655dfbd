"""Application layer package."""

from .import_service import (
    ClientImportResult,
    TextImportResult,
    import_rows,
    import_spreadsheet,
    import_text_report,
    undo_import,
)
from .performance_service import PerformanceReport, build_performance_report, export_report

__all__ = [
    "ClientImportResult",
    "TextImportResult",
    "import_rows",
    "import_spreadsheet",
    "import_text_report",
    "undo_import",
    "PerformanceReport",
    "build_performance_report",
    "export_report",
]
