"""Bitácora text report tokenizer."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from adperf.bitacora import parse_bitacora_report, parse_metadata, parse_metric_value, tokenize_tables
from adperf.domain.report import BitacoraReport, ParsedMetricValue

REPORT = """Reporte Bitácora (Semanal) 2024-05-14
Moneda Detectada: EUR
Campaña Filtrada: Verano

**Resumen Cuenta Completa**
| Métrica | Valor |
|---|---|
| Gasto | 1.234,56 € (+12,3% ▲) |
| ROAS | 3,5x (-4,0% 🔻) |
Este párrafo describe la semana.
| Anuncio | ROAS |
|---|---|
| Ad 1 | 3,5x |

--- Top 20 Ads por ROAS ---
| Anuncio | Estabilidad |
|---|---|
| Ad 1 | 77% 🏆 |
"""


def test_metric_with_currency_and_change():
    parsed = parse_metric_value("1.234,56 € (+12,3% ▲)")
    assert isinstance(parsed, ParsedMetricValue)
    assert parsed.value == pytest.approx(1234.56)
    assert parsed.symbol == "€"
    assert parsed.change == pytest.approx(0.123)
    assert parsed.direction == "up"


def test_metric_glyph_directions():
    assert parse_metric_value("10% (-5% 🔻)").direction == "down"
    assert parse_metric_value("10% (+0% ➖)").direction == "stable"
    assert parse_metric_value("10% (+2%)").direction == "up"


def test_stability_value_with_trophy():
    parsed = parse_metric_value("77% 🏆")
    assert isinstance(parsed, ParsedMetricValue)
    assert parsed.value == 77.0
    assert parsed.direction == "up"


def test_non_metric_cells_stay_strings():
    assert parse_metric_value("Ad 1") == "Ad 1"
    assert parse_metric_value("-") == "-"


def test_two_tables_split_by_narrative_line():
    tables = tokenize_tables(REPORT)
    assert [table.title for table in tables] == [
        "Resumen Cuenta Completa",
        "Tabla Sin Título 2",
        "Top 20 Ads por ROAS",
    ]
    first = tables[0]
    assert first.headers == ["Métrica", "Valor"]
    assert len(first.rows) == 2
    gasto = first.rows[0]["Valor"]
    assert isinstance(gasto, ParsedMetricValue)
    assert gasto.change == pytest.approx(0.123)
    assert tables[1].rows[0]["Anuncio"] == "Ad 1"


def test_table_at_end_of_input_is_flushed():
    tables = tokenize_tables("TABLA: Final\n| a | b |\n|---|---|\n| 1 | 2 |")
    assert len(tables) == 1
    assert tables[0].title == "Final"


def test_single_line_pipe_block_is_not_a_table():
    assert tokenize_tables("| lonely |\ntext") == []


def test_metadata_lines():
    metadata = parse_metadata(REPORT.splitlines())
    assert metadata.report_type == "Semanal"
    assert metadata.date == "2024-05-14"
    assert metadata.currency == "EUR"
    assert metadata.campaign_filter == "Verano"
    assert metadata.ad_set_filter is None


def test_named_tables_and_dict_round_trip():
    report = parse_bitacora_report(REPORT)
    assert report.main_summary_table is not None
    assert report.main_summary_table.title == "Resumen Cuenta Completa"
    assert [table.title for table in report.top_ads_tables] == ["Top 20 Ads por ROAS"]
    assert report.funnel_analysis_table is None
    assert report.top_campaigns_tables == []

    restored = BitacoraReport.from_dict(report.to_dict())
    assert restored.to_dict() == report.to_dict()


def test_ad_set_tables_are_not_top_ads():
    text = (
        "--- Top 20 Ads ---\n| Anuncio | ROAS |\n|---|---|\n| Ad 1 | 3x |\n\n"
        "--- Top 20 AdSets ---\n| Conjunto | ROAS |\n|---|---|\n| Set A | 2x |\n"
    )
    report = parse_bitacora_report(text)
    assert [table.title for table in report.top_ads_tables] == ["Top 20 Ads"]
    assert [table.title for table in report.top_ad_sets_tables] == ["Top 20 AdSets"]
