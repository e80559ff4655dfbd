"""Domain layer package."""

from .errors import (
    DuplicateFileError,
    EmptyFileError,
    ImportRejectedError,
    PartialUndoWarning,
    SchemaValidationError,
    UnknownAccountsError,
    UnsupportedFileError,
)
from .fields import CanonicalField
from .models import ClientAccount, CreativeLink, ImportBatch, PerformanceRecord, SourceKind, UndoResult
from .report import BitacoraReport, ParsedMetricValue, ReportTable

__all__ = [
    "BitacoraReport",
    "CanonicalField",
    "ClientAccount",
    "CreativeLink",
    "DuplicateFileError",
    "EmptyFileError",
    "ImportBatch",
    "ImportRejectedError",
    "ParsedMetricValue",
    "PartialUndoWarning",
    "PerformanceRecord",
    "ReportTable",
    "SchemaValidationError",
    "SourceKind",
    "UndoResult",
    "UnknownAccountsError",
    "UnsupportedFileError",
]
