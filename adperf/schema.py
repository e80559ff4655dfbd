"""Schema normalization for the ads-platform and creative-link spreadsheet exports."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from loguru import logger

from adperf.domain.errors import SchemaValidationError
from adperf.domain.fields import (
    CREATIVE_LINK_LOOKUP,
    NUMERIC_FIELDS,
    PERFORMANCE_LOOKUP,
    CanonicalField,
    normalize_header,
)
from adperf.domain.models import CreativeLink, PerformanceRecord, SourceKind, make_unique_id
from adperf.locale_values import format_day, is_unparseable_number, parse_number, to_text
from adperf.settings import PARSE_WARN_THRESHOLD

F = CanonicalField
CanonicalRow = dict[CanonicalField, Any]

LOOKUPS: dict[SourceKind, dict[str, CanonicalField]] = {
    SourceKind.ADS_SPREADSHEET: PERFORMANCE_LOOKUP,
    SourceKind.CREATIVE_SPREADSHEET: CREATIVE_LINK_LOOKUP,
}

# Each requirement is satisfied when any of its fields is present.
REQUIRED_CONCEPTS: dict[SourceKind, list[tuple[str, tuple[CanonicalField, ...]]]] = {
    SourceKind.ADS_SPREADSHEET: [
        ("account name", (F.ACCOUNT_NAME,)),
        ("ad name or day", (F.AD_NAME, F.DAY)),
    ],
    SourceKind.CREATIVE_SPREADSHEET: [
        ("account name", (F.ACCOUNT_NAME,)),
        ("ad name", (F.AD_NAME,)),
        ("ad creative thumbnail url", (F.THUMBNAIL_URL,)),
    ],
}

_CREATIVE_MARKERS = frozenset(
    header for header, field in CREATIVE_LINK_LOOKUP.items() if field in (F.THUMBNAIL_URL, F.PREVIEW_LINK)
)


def detect_source_kind(headers: Iterable[Any]) -> SourceKind:
    """Pick the export schema whose header dictionary matches the file."""
    normalized = {normalize_header(header) for header in headers}
    if normalized & _CREATIVE_MARKERS:
        return SourceKind.CREATIVE_SPREADSHEET
    return SourceKind.ADS_SPREADSHEET


def map_headers(headers: Iterable[Any], kind: SourceKind) -> dict[str, CanonicalField]:
    """Original header -> canonical field, dropping headers the dictionary does not know."""
    lookup = LOOKUPS[kind]
    mapping: dict[str, CanonicalField] = {}
    for header in headers:
        field = lookup.get(normalize_header(header))
        if field is not None and field not in mapping.values():
            mapping[str(header)] = field
    return mapping


def validate_headers(headers: Iterable[Any], kind: SourceKind) -> dict[str, CanonicalField]:
    mapping = map_headers(headers, kind)
    present = set(mapping.values())
    for concept, candidates in REQUIRED_CONCEPTS[kind]:
        if not present.intersection(candidates):
            raise SchemaValidationError(concept, source_kind=kind.value)
    return mapping


def normalize_rows(
    rows: Sequence[Mapping[str, Any]],
    kind: SourceKind,
    headers: Sequence[Any] | None = None,
) -> list[CanonicalRow]:
    """Re-key raw sheet rows into canonical field names."""
    if headers is None:
        headers = list(rows[0].keys()) if rows else []
    mapping = validate_headers(headers, kind)
    normalized: list[CanonicalRow] = []
    for row in rows:
        normalized.append({field: row.get(header) for header, field in mapping.items()})
    _warn_on_degraded_numbers(normalized)
    return normalized


def _warn_on_degraded_numbers(rows: Sequence[CanonicalRow], threshold: float = PARSE_WARN_THRESHOLD) -> None:
    if not rows or threshold <= 0:
        return
    row_count = len(rows)
    noisy: list[str] = []
    numeric_present = [field for field in NUMERIC_FIELDS if field in rows[0]]
    for field in sorted(numeric_present, key=lambda item: item.value):
        failures = sum(1 for row in rows if is_unparseable_number(row.get(field)))
        ratio = failures / row_count
        if ratio > threshold:
            noisy.append(f"{field.value}={ratio:.2%} ({failures}/{row_count})")
    if noisy:
        logger.warning(f"[schema] numeric cells degraded to 0 above {threshold:.2%}: {', '.join(noisy)}")


def row_account_name(row: Mapping[CanonicalField, Any]) -> str:
    return to_text(row.get(F.ACCOUNT_NAME))


def build_performance_record(client_id: str, row: Mapping[CanonicalField, Any]) -> PerformanceRecord:
    day = format_day(row.get(F.DAY))
    campaign_name = to_text(row.get(F.CAMPAIGN_NAME))
    ad_name = to_text(row.get(F.AD_NAME))
    age = to_text(row.get(F.AGE))
    gender = to_text(row.get(F.GENDER))
    numbers = {field.value: parse_number(row.get(field)) for field in NUMERIC_FIELDS}
    return PerformanceRecord(
        client_id=client_id,
        unique_id=make_unique_id(day, campaign_name, ad_name, age, gender),
        day=day,
        campaign_name=campaign_name,
        ad_set_name=to_text(row.get(F.AD_SET_NAME)),
        ad_name=ad_name,
        age=age,
        gender=gender,
        account_name=row_account_name(row),
        campaign_delivery=to_text(row.get(F.CAMPAIGN_DELIVERY)),
        ad_set_delivery=to_text(row.get(F.AD_SET_DELIVERY)),
        ad_delivery=to_text(row.get(F.AD_DELIVERY)),
        included_custom_audiences=to_text(row.get(F.INCLUDED_AUDIENCES)),
        excluded_custom_audiences=to_text(row.get(F.EXCLUDED_AUDIENCES)),
        video_file_name=to_text(row.get(F.VIDEO_FILE_NAME)),
        image_name=to_text(row.get(F.IMAGE_NAME)),
        currency=to_text(row.get(F.CURRENCY)).upper(),
        objective=to_text(row.get(F.OBJECTIVE)),
        report_start=format_day(row.get(F.REPORT_START)),
        report_end=format_day(row.get(F.REPORT_END)),
        **numbers,
    )


def build_creative_link(row: Mapping[CanonicalField, Any]) -> CreativeLink | None:
    ad_name = to_text(row.get(F.AD_NAME))
    image_url = to_text(row.get(F.THUMBNAIL_URL))
    if not ad_name or not image_url:
        return None
    preview = to_text(row.get(F.PREVIEW_LINK)) or None
    return CreativeLink(ad_name=ad_name, image_url=image_url, ad_preview_link=preview)
