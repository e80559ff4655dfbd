"""Reporting use case: per-ad rollup, account totals and period comparison for one client."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger

from adperf.aggregation import (
    AggregatedAdPerformance,
    ClientSummary,
    FunnelStep,
    PeriodComparison,
    PerformanceTotals,
    aggregate_ads,
    build_funnel,
    client_summary,
    compare_periods,
    summarize,
)
from adperf.domain.models import ClientAccount
from adperf.infrastructure.report_exporter import save_summary_json, write_output_excel
from adperf.locale_values import parse_date
from adperf.merge import Dataset, snapshot_records
from adperf.metrics import fmt_money, fmt_pct, fmt_ratio
from adperf.settings import DEFAULT_WINDOW_DAYS


@dataclass(frozen=True)
class PerformanceReport:
    client: ClientAccount
    start: date
    end: date
    summary: ClientSummary
    window_totals: PerformanceTotals
    account_averages: PerformanceTotals
    funnel: list[FunnelStep]
    comparison: PeriodComparison
    ads: list[AggregatedAdPerformance]


def default_window(days_seen: list[date], window_days: int = DEFAULT_WINDOW_DAYS) -> tuple[date, date]:
    """Last `window_days` days ending on the most recent day with data (today when there is none)."""
    end = max(days_seen) if days_seen else date.today()
    return end - timedelta(days=window_days - 1), end


def build_performance_report(
    client: ClientAccount,
    dataset: Dataset,
    start: date | None = None,
    end: date | None = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> PerformanceReport:
    records = snapshot_records(dataset, client.id)
    links = dataset.creative_links.load(client.id)
    if start is None or end is None:
        days_seen = [day for day in (parse_date(record.day) for record in records) if day is not None]
        start, end = default_window(days_seen, window_days)

    window_totals = summarize(records, start, end)
    report = PerformanceReport(
        client=client,
        start=start,
        end=end,
        summary=client_summary(client, records, start, end, links),
        window_totals=window_totals,
        account_averages=summarize(records),
        funnel=build_funnel(window_totals),
        comparison=compare_periods(records, start, end),
        ads=aggregate_ads(records, start, end, creative_links=links, currency=client.currency),
    )
    logger.info(
        f"[report] {client.name} {start.isoformat()}..{end.isoformat()}: "
        f"ads={len(report.ads)} spend={fmt_money(window_totals.spend, client.currency)} "
        f"roas={fmt_ratio(window_totals.roas)}"
    )
    return report


def to_summary_dict(report: PerformanceReport) -> dict[str, Any]:
    comparison = report.comparison
    return {
        "client": {"id": report.client.id, "name": report.client.name, "currency": report.client.currency},
        "window": {"start": report.start.isoformat(), "end": report.end.isoformat()},
        "previous_window": {
            "start": comparison.previous_start.isoformat(),
            "end": comparison.previous_end.isoformat(),
        },
        "summary": asdict(report.summary),
        "totals": asdict(report.window_totals),
        "account_averages": asdict(report.account_averages),
        "funnel": [asdict(step) for step in report.funnel],
        "changes": {
            metric: {**asdict(change), "display": fmt_pct(change.pct_change)}
            for metric, change in comparison.changes.items()
        },
        "ads": [asdict(ad) for ad in report.ads],
    }


def report_frames(report: PerformanceReport) -> dict[str, pl.DataFrame]:
    """Flat frames per export sheet."""
    ads_rows = [
        {
            "ad_name": ad.ad_name,
            **asdict(ad.metrics),
            "active_days": ad.active_days,
            "ad_sets": ", ".join(ad.ad_set_names),
            "campaigns": ", ".join(ad.campaign_names),
            "in_multiple_ad_sets": ad.in_multiple_ad_sets,
            "creative_type": ad.creative_type,
            "is_matched": ad.is_matched,
            "image_url": ad.image_url,
        }
        for ad in report.ads
    ]
    changes_rows = [asdict(change) for change in report.comparison.changes.values()]
    return {
        "ads": pl.DataFrame(ads_rows, infer_schema_length=None) if ads_rows else pl.DataFrame({"ad_name": []}),
        "funnel": pl.DataFrame([asdict(step) for step in report.funnel], infer_schema_length=None)
        if report.funnel
        else pl.DataFrame({"key": []}),
        "changes": pl.DataFrame(changes_rows, infer_schema_length=None),
        "totals": pl.DataFrame([asdict(report.window_totals)]),
    }


def export_report(report: PerformanceReport, output_dir: Path, excel: bool = False) -> list[Path]:
    stem = f"{report.client.id}_{report.start.isoformat()}_{report.end.isoformat()}"
    json_path = output_dir / f"{stem}.json"
    save_summary_json(json_path, to_summary_dict(report))
    written = [json_path]
    if excel:
        excel_path = output_dir / f"{stem}.xlsx"
        write_output_excel(excel_path, report_frames(report))
        written.append(excel_path)
    return written
