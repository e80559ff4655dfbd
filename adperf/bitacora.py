"""Tokenizer for the bitácora text report: titled pipe tables plus a few metadata lines."""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Sequence

from adperf.domain.report import (
    BitacoraReport,
    CellValue,
    Direction,
    ParsedMetricValue,
    ReportMetadata,
    ReportTable,
)
from adperf.locale_values import parse_number

UP_GLYPHS = frozenset({"🔺", "▲", "✅", "🏆", "⬆", "↑"})
DOWN_GLYPHS = frozenset({"🔻", "▼", "⬇", "↓"})

_NUMBER = r"[-+]?\d[\d.,]*"
_METRIC_RE = re.compile(
    rf"^(?P<prefix>[€$£])?\s*(?P<number>{_NUMBER})\s*(?P<unit>%|x|s|[€$£])?"
    rf"\s*(?:\(\s*(?P<change>{_NUMBER})\s*%\s*(?P<glyph>[^\s()]+)?\s*\))?$",
    re.IGNORECASE,
)
_STABILITY_RE = re.compile(rf"^(?P<number>{_NUMBER})\s*%\s*(?P<glyph>[^\s\d()]+)$")

_TITLE_PATTERNS = (
    re.compile(r"^\s*\*{2}\s*(.*?)\s*\*{2}\s*$"),
    re.compile(r"^\s*-{3,}\s*(.*?)\s*-{3,}\s*$"),
    re.compile(r"^\s*={3,}\s*(.*?)\s*={3,}\s*$"),
    re.compile(r"^\s*TABLA:\s*(.*?)\s*$", re.IGNORECASE),
)
_SEPARATOR_CELL = re.compile(r"^:?-{2,}:?$")
_REPORT_LINE = re.compile(r"^\s*(?:Reporte Bitácora|Bitacora Report|Bitácora Report)\s*(?:\((?P<type>[^)]*)\))?\s*(?P<date>.*)$", re.IGNORECASE)

_METADATA_LABELS: dict[str, tuple[str, ...]] = {
    "currency": ("moneda detectada", "detected currency"),
    "campaign_filter": ("campaña filtrada", "campaign filter"),
    "ad_set_filter": ("adsets filtrados", "ad sets filtered", "adset filter"),
}

_AD_SET_NEEDLES = ("top 20 adsets", "top 20 ad sets")

# report field -> (title needles, many tables?, title needles that rule a table out)
NAMED_TABLES: dict[str, tuple[tuple[str, ...], bool, tuple[str, ...]]] = {
    "main_summary_table": (("cuenta completa", "full account"), False, ()),
    "funnel_analysis_table": (("análisis de embudo", "analisis de embudo", "funnel analysis"), False, ()),
    "top_ads_tables": (("top 20 ads",), True, _AD_SET_NEEDLES),
    "top_ad_sets_tables": (_AD_SET_NEEDLES, True, ()),
    "top_campaigns_tables": (("top 10 campañas", "top 10 campaigns"), True, ()),
    "audience_performance_table": (("performance_publico", "audience performance"), False, ()),
    "ratio_trends_table": (("tendencia_ratios", "ratio trends"), False, ()),
}

PLACEHOLDER_TITLE = "Tabla Sin Título {index}"


class TableState(Enum):
    OUTSIDE_TABLE = "outside"
    INSIDE_TABLE = "inside"


def _direction(glyph: str | None, change: float | None) -> Direction | None:
    if glyph:
        glyph = glyph.replace("\ufe0f", "")
        if glyph in UP_GLYPHS:
            return "up"
        if glyph in DOWN_GLYPHS:
            return "down"
        return "stable"
    if change is None:
        return None
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "stable"


def parse_metric_value(text: str) -> CellValue:
    """Parse `€ 1.234,56 (+12,3% ▲)`-style cells; anything else stays a string."""
    cleaned = (text or "").strip()
    if not cleaned or cleaned == "-":
        return cleaned

    match = _METRIC_RE.match(cleaned)
    if match:
        value = parse_number(match.group("number"))
        symbol = (match.group("prefix") or "") + (match.group("unit") or "")
        change: float | None = None
        direction: Direction | None = None
        if match.group("change") is not None:
            change = parse_number(match.group("change")) / 100
            direction = _direction(match.group("glyph"), change)
        return ParsedMetricValue(value=value, symbol=symbol or None, change=change, direction=direction)

    stability = _STABILITY_RE.match(cleaned)
    if stability:
        glyph = stability.group("glyph")
        return ParsedMetricValue(
            value=parse_number(stability.group("number")),
            symbol=f"% {glyph}",
            direction=_direction(glyph, None),
        )
    return cleaned


def _split_cells(line: str) -> list[str]:
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|"):
        body = body[:-1]
    return [cell.strip() for cell in body.split("|")]


def _is_separator(line: str) -> bool:
    cells = [cell for cell in _split_cells(line) if cell]
    return bool(cells) and all(_SEPARATOR_CELL.match(cell) for cell in cells)


def parse_markdown_table(lines: Sequence[str], title: str) -> ReportTable:
    rows_text = [line for line in lines if not _is_separator(line)]
    if not rows_text:
        return ReportTable(title=title, headers=[], rows=[])
    headers = [cell for cell in _split_cells(rows_text[0]) if cell]
    rows: list[dict[str, CellValue]] = []
    for line in rows_text[1:]:
        cells = _split_cells(line)
        if not any(cells):
            continue
        rows.append(
            {header: parse_metric_value(cells[idx] if idx < len(cells) else "") for idx, header in enumerate(headers)}
        )
    return ReportTable(title=title, headers=headers, rows=rows)


def _match_title(line: str) -> str | None:
    for pattern in _TITLE_PATTERNS:
        match = pattern.match(line)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def tokenize_tables(text: str) -> list[ReportTable]:
    """Split the document into titled tables.

    A table starts at the first pipe-led line and ends at the first line that
    is not pipe-led; the most recent title seen before or inside it names it.
    """
    tables: list[ReportTable] = []
    state = TableState.OUTSIDE_TABLE
    title = ""
    buffer: list[str] = []

    def _flush() -> None:
        if len(buffer) > 1:
            name = title or PLACEHOLDER_TITLE.format(index=len(tables) + 1)
            tables.append(parse_markdown_table(buffer, name))

    for raw_line in text.splitlines():
        line = raw_line.strip()
        is_pipe_line = line.startswith("|")

        if state is TableState.OUTSIDE_TABLE:
            if is_pipe_line and not _is_separator(line):
                state = TableState.INSIDE_TABLE
                buffer = [line]
                continue
            found = _match_title(line)
            if found:
                title = found
            continue

        if is_pipe_line:
            buffer.append(line)
            continue

        _flush()
        buffer = []
        title = ""
        state = TableState.OUTSIDE_TABLE
        found = _match_title(line)
        if found:
            title = found

    if state is TableState.INSIDE_TABLE:
        _flush()
    return tables


def parse_metadata(lines: Iterable[str]) -> ReportMetadata:
    values: dict[str, str | None] = {
        "report_type": None,
        "date": None,
        "currency": None,
        "campaign_filter": None,
        "ad_set_filter": None,
    }
    for raw_line in lines:
        line = raw_line.strip()
        report_match = _REPORT_LINE.match(line)
        if report_match and values["report_type"] is None:
            values["report_type"] = (report_match.group("type") or "Unknown").strip()
            values["date"] = report_match.group("date").strip() or None
            continue
        if ":" not in line:
            continue
        label, _, value = line.partition(":")
        label = label.strip().lower()
        for key, labels in _METADATA_LABELS.items():
            if label in labels and values[key] is None:
                values[key] = value.strip() or None
    return ReportMetadata(**values)


def find_table(
    tables: Sequence[ReportTable], needles: Sequence[str], exclude: Sequence[str] = ()
) -> ReportTable | None:
    found = find_tables(tables, needles, exclude)
    return found[0] if found else None


def find_tables(
    tables: Sequence[ReportTable], needles: Sequence[str], exclude: Sequence[str] = ()
) -> list[ReportTable]:
    """Tables whose title contains any needle and none of the `exclude` needles."""
    wanted = [needle.lower() for needle in needles]
    unwanted = [needle.lower() for needle in exclude]
    found = []
    for table in tables:
        title = table.title.lower()
        if any(needle in title for needle in wanted) and not any(needle in title for needle in unwanted):
            found.append(table)
    return found


def parse_bitacora_report(text: str) -> BitacoraReport:
    tables = tokenize_tables(text)
    named: dict[str, object] = {}
    for key, (needles, many, exclude) in NAMED_TABLES.items():
        named[key] = find_tables(tables, needles, exclude) if many else find_table(tables, needles, exclude)
    return BitacoraReport(metadata=parse_metadata(text.splitlines()), tables=tables, **named)  # type: ignore[arg-type]
