"""Bilingual header mapping and canonical row building."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from adperf.domain.errors import SchemaValidationError
from adperf.domain.fields import CanonicalField, build_header_lookup
from adperf.domain.models import SourceKind
from adperf.schema import (
    build_creative_link,
    build_performance_record,
    detect_source_kind,
    map_headers,
    normalize_rows,
    validate_headers,
)

F = CanonicalField


def test_spanish_and_english_headers_map_to_same_fields():
    spanish = map_headers(["Nombre de la cuenta", "Día", "Importe gastado (EUR)"], SourceKind.ADS_SPREADSHEET)
    english = map_headers(["Account name", "Day", "Amount spent (USD)"], SourceKind.ADS_SPREADSHEET)
    assert set(spanish.values()) == set(english.values()) == {F.ACCOUNT_NAME, F.DAY, F.SPEND}


def test_header_matching_ignores_case_and_extra_spaces():
    mapping = map_headers(["  NOMBRE   del anuncio "], SourceKind.ADS_SPREADSHEET)
    assert list(mapping.values()) == [F.AD_NAME]


def test_unknown_headers_are_ignored():
    mapping = map_headers(["Account name", "Something else"], SourceKind.ADS_SPREADSHEET)
    assert "Something else" not in mapping


def test_missing_account_column_names_the_concept():
    with pytest.raises(SchemaValidationError) as exc_info:
        validate_headers(["Day", "Ad name"], SourceKind.ADS_SPREADSHEET)
    assert exc_info.value.missing_concept == "account name"


def test_ad_name_or_day_satisfies_requirement():
    validate_headers(["Account name", "Day"], SourceKind.ADS_SPREADSHEET)
    with pytest.raises(SchemaValidationError) as exc_info:
        validate_headers(["Account name", "Impressions"], SourceKind.ADS_SPREADSHEET)
    assert exc_info.value.missing_concept == "ad name or day"


def test_creative_export_detected_by_thumbnail_header():
    headers = ["Account name", "Ad name", "Ad creative thumbnail URL"]
    assert detect_source_kind(headers) is SourceKind.CREATIVE_SPREADSHEET
    assert detect_source_kind(["Account name", "Day"]) is SourceKind.ADS_SPREADSHEET


def test_lookup_rejects_header_mapped_twice():
    with pytest.raises(ValueError):
        build_header_lookup({F.AD_NAME: ("name",), F.CAMPAIGN_NAME: ("name",)}, "broken")


def test_lookup_rejects_unnormalized_header():
    with pytest.raises(ValueError):
        build_header_lookup({F.AD_NAME: ("Ad Name",)}, "broken")


def test_performance_record_from_spanish_row():
    rows = normalize_rows(
        [
            {
                "Nombre de la cuenta": "Acme",
                "Nombre de la campaña": "Verano",
                "Nombre del anuncio": "Ad 1",
                "Día": "10/05/2024",
                "Edad": "25-34",
                "Sexo": "female",
                "Importe gastado (EUR)": "1.234,56",
                "Impresiones": "10.000",
            }
        ],
        SourceKind.ADS_SPREADSHEET,
    )
    record = build_performance_record("acme", rows[0])
    assert record.unique_id == "2024-05-10|Verano|Ad 1|25-34|female"
    assert record.spend == 1234.56
    assert record.impressions == 10000.0
    assert record.purchases == 0.0
    assert record.account_name == "Acme"


def test_performance_record_keeps_export_context_columns():
    rows = normalize_rows(
        [
            {
                "Account name": "Acme",
                "Ad name": "Ad 1",
                "Day": "2024-05-10",
                "Currency": "eur",
                "Objective": "Sales",
                "Image name": "summer.jpg",
                "Reporting starts": "01/05/2024",
                "Reporting ends": "31/05/2024",
            }
        ],
        SourceKind.ADS_SPREADSHEET,
    )
    record = build_performance_record("acme", rows[0])
    assert record.currency == "EUR"
    assert record.objective == "Sales"
    assert record.image_name == "summer.jpg"
    assert (record.report_start, record.report_end) == ("2024-05-01", "2024-05-31")


def test_creative_link_requires_ad_name_and_url():
    rows = normalize_rows(
        [
            {"Account name": "Acme", "Ad name": "Ad 1", "Ad creative thumbnail URL": "https://img/1.jpg"},
            {"Account name": "Acme", "Ad name": "Ad 2", "Ad creative thumbnail URL": ""},
        ],
        SourceKind.CREATIVE_SPREADSHEET,
    )
    link = build_creative_link(rows[0])
    assert link is not None
    assert link.image_url == "https://img/1.jpg"
    assert build_creative_link(rows[1]) is None
