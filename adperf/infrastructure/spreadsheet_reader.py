"""Spreadsheet reading helpers with Polars-first and openpyxl fallback."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import polars as pl
from loguru import logger

from adperf.domain.errors import EmptyFileError, UnsupportedFileError

EXCEL_SUFFIXES: tuple[str, ...] = (".xlsx", ".xlsm", ".xls")
CSV_SUFFIXES: tuple[str, ...] = (".csv",)
TEXT_SUFFIXES: tuple[str, ...] = (".txt", ".md")


@dataclass(frozen=True)
class SheetRows:
    headers: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)


def _import_openpyxl() -> Any:
    try:
        from openpyxl import load_workbook
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("openpyxl is required for Excel fallback I/O.") from exc
    return load_workbook


def _normalize_headers(raw_headers: Sequence[Any]) -> list[str]:
    headers: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(raw_headers):
        base = str(value).strip() if value not in (None, "") else f"column_{idx + 1}"
        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count + 1}"
        seen[base] = count + 1
        headers.append(name)
    return headers


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _rows_from_frame(frame: pl.DataFrame) -> SheetRows:
    headers = _normalize_headers(frame.columns)
    rows: list[dict[str, Any]] = []
    for values in frame.iter_rows(named=False):
        if all(_is_blank(value) for value in values):
            continue
        rows.append(dict(zip(headers, values)))
    return SheetRows(headers=headers, rows=rows)


def _read_excel_polars(data: bytes) -> pl.DataFrame:
    frame = pl.read_excel(io.BytesIO(data), sheet_id=1)
    if isinstance(frame, dict):
        frame = next(iter(frame.values()), pl.DataFrame())
    return frame


def _read_with_openpyxl(data: bytes) -> SheetRows:
    load_workbook = _import_openpyxl()
    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        worksheet = workbook[workbook.sheetnames[0]]
        row_iter = worksheet.iter_rows(values_only=True)
        header_row = next(row_iter, None)
        if header_row is None:
            return SheetRows(headers=[])

        headers = _normalize_headers(header_row)
        rows: list[dict[str, Any]] = []
        for values in row_iter:
            if values is None or all(_is_blank(value) for value in values):
                continue
            rows.append({name: values[idx] if idx < len(values) else None for idx, name in enumerate(headers)})
        return SheetRows(headers=headers, rows=rows)
    finally:
        workbook.close()


def read_excel_rows(data: bytes) -> SheetRows:
    """First worksheet as header list + row mappings, cells in their native types."""
    try:
        return _rows_from_frame(_read_excel_polars(data))
    except Exception as exc:
        logger.debug(f"[reader] polars read_excel failed ({exc}); falling back to openpyxl")
        return _read_with_openpyxl(data)


def read_csv_rows(data: bytes) -> SheetRows:
    text = data.decode("utf-8-sig", errors="replace")
    if not text.strip():
        return SheetRows(headers=[])
    first_line = text.splitlines()[0]
    separator = ";" if first_line.count(";") > first_line.count(",") else ","
    frame = pl.read_csv(io.BytesIO(text.encode("utf-8")), separator=separator, infer_schema_length=0)
    return _rows_from_frame(frame)


def read_spreadsheet(data: bytes, file_name: str) -> SheetRows:
    """Read an uploaded spreadsheet by extension; raises when the file has no data rows."""
    suffix = Path(file_name).suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        sheet = read_excel_rows(data)
    elif suffix in CSV_SUFFIXES:
        sheet = read_csv_rows(data)
    else:
        raise UnsupportedFileError(file_name)
    if not sheet.rows:
        raise EmptyFileError(file_name)
    logger.debug(f"[reader] {file_name}: {len(sheet.rows)} row(s), {len(sheet.headers)} column(s)")
    return sheet


def is_text_report(file_name: str) -> bool:
    return Path(file_name).suffix.lower() in TEXT_SUFFIXES


def decode_text_report(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")
