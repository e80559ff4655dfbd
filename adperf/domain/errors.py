"""Import rejection reasons and undo warnings."""

from __future__ import annotations

from typing import Sequence


class ImportRejectedError(Exception):
    """A whole file was rejected; nothing was written."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class SchemaValidationError(ImportRejectedError):
    def __init__(self, missing_concept: str, source_kind: str = "") -> None:
        label = f" in {source_kind} export" if source_kind else ""
        super().__init__(f"Required column missing{label}: {missing_concept}")
        self.missing_concept = missing_concept
        self.source_kind = source_kind


class DuplicateFileError(ImportRejectedError):
    def __init__(self, file_hash: str, client_ids: Sequence[str], file_name: str = "") -> None:
        shown = file_name or file_hash[:12]
        super().__init__(f"File {shown} was already imported for client(s): {', '.join(client_ids)}")
        self.file_hash = file_hash
        self.client_ids = list(client_ids)


class UnknownAccountsError(ImportRejectedError):
    def __init__(self, account_names: Sequence[str]) -> None:
        super().__init__(f"Unknown accounts in file: {', '.join(account_names)}")
        self.account_names = list(account_names)


class EmptyFileError(ImportRejectedError):
    def __init__(self, file_name: str = "") -> None:
        super().__init__(f"File {file_name or '<rows>'} has no data rows")


class UnsupportedFileError(ImportRejectedError):
    def __init__(self, file_name: str) -> None:
        super().__init__(f"Unsupported file type: {file_name}")


class PartialUndoWarning(UserWarning):
    """Some undo keys were already gone; the rest were removed."""

    def __init__(self, batch_id: str, missing_keys: Sequence[str]) -> None:
        super().__init__(f"Batch {batch_id}: {len(missing_keys)} key(s) were already removed")
        self.batch_id = batch_id
        self.missing_keys = list(missing_keys)
