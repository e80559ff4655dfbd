"""Rollup of per-slice performance rows into per-ad and per-account metrics.

Counters are summed first and every ratio is derived from the sums; per-row
ratios (frequency, average video play time) are combined impression-weighted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Sequence

import polars as pl

from adperf.domain.fields import NUMERIC_FIELDS
from adperf.domain.models import ClientAccount, CreativeLink, PerformanceRecord
from adperf.locale_values import parse_date
from adperf.metrics import ratio_or_zero, safe_pct_change, safe_ratio_expr, trend, weighted_mean_expr
from adperf.settings import ACTIVE_STATUSES

NUMERIC_COLUMNS: list[str] = sorted(item.value for item in NUMERIC_FIELDS)
TEXT_COLUMNS: list[str] = [f.name for f in fields(PerformanceRecord) if f.name not in NUMERIC_COLUMNS]
FRAME_SCHEMA: dict[str, Any] = {
    **{name: pl.Utf8 for name in TEXT_COLUMNS},
    **{name: pl.Float64 for name in NUMERIC_COLUMNS},
    "date": pl.Date,
}
WEIGHTED_COLUMNS: tuple[str, ...] = ("frequency", "video_average_play_time")
SUM_COLUMNS: list[str] = [name for name in NUMERIC_COLUMNS if name not in WEIGHTED_COLUMNS]

FUNNEL_STEPS: tuple[tuple[str, str], ...] = (
    ("impressions", "Impresiones"),
    ("reach", "Alcance"),
    ("landing_page_views", "Visitas"),
    ("attention", "Atención"),
    ("interest", "Interés"),
    ("desire", "Deseo"),
    ("adds_to_cart", "AddToCart"),
    ("checkouts_initiated", "Inicio Pago"),
    ("purchases", "Compras"),
)
COMPARED_METRICS: tuple[str, ...] = (
    "spend",
    "purchases",
    "purchase_value",
    "impressions",
    "reach",
    "link_clicks",
    "landing_page_views",
    "roas",
    "cpa",
    "cpm",
    "ctr_link",
    "frequency",
    "purchase_rate",
)


@dataclass(frozen=True)
class PerformanceTotals:
    spend: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    purchases: float = 0.0
    purchase_value: float = 0.0
    clicks_all: float = 0.0
    link_clicks: float = 0.0
    landing_page_views: float = 0.0
    attention: float = 0.0
    interest: float = 0.0
    desire: float = 0.0
    adds_to_cart: float = 0.0
    checkouts_initiated: float = 0.0
    thruplays: float = 0.0
    video_plays_3s: float = 0.0
    post_interactions: float = 0.0
    post_reactions: float = 0.0
    post_comments: float = 0.0
    post_shares: float = 0.0
    page_likes: float = 0.0
    frequency: float = 0.0
    video_average_play_time: float = 0.0
    roas: float = 0.0
    cpa: float = 0.0
    cpm: float = 0.0
    ctr: float = 0.0
    ctr_link: float = 0.0
    cpc: float = 0.0
    average_ticket: float = 0.0
    landing_view_rate: float = 0.0
    purchase_rate: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PerformanceTotals":
        return cls(**{f.name: float(row.get(f.name) or 0.0) for f in fields(cls)})


@dataclass(frozen=True)
class AggregatedAdPerformance:
    ad_name: str
    metrics: PerformanceTotals
    currency: str = ""
    ad_set_names: list[str] = field(default_factory=list)
    campaign_names: list[str] = field(default_factory=list)
    included_custom_audiences: list[str] = field(default_factory=list)
    excluded_custom_audiences: list[str] = field(default_factory=list)
    active_days: int = 0
    in_multiple_ad_sets: bool = False
    video_file_name: str | None = None
    creative_type: str | None = None
    is_matched: bool = False
    image_url: str | None = None
    ad_preview_link: str | None = None
    creative_description: str | None = None


@dataclass(frozen=True)
class DemographicSlice:
    age: str
    gender: str
    spend: float
    purchases: float
    purchase_value: float
    link_clicks: float
    impressions: float


@dataclass(frozen=True)
class FunnelStep:
    key: str
    label: str
    value: float
    cost_per_step: float = 0.0
    drop_off: float | None = None


@dataclass(frozen=True)
class MetricChange:
    metric: str
    current: float
    previous: float
    pct_change: float | None
    direction: str


@dataclass(frozen=True)
class PeriodComparison:
    start: date
    end: date
    previous_start: date
    previous_end: date
    current: PerformanceTotals
    previous: PerformanceTotals
    changes: dict[str, MetricChange]
    current_funnel: list[FunnelStep]
    previous_funnel: list[FunnelStep]


@dataclass(frozen=True)
class ClientSummary:
    client_id: str
    name: str
    currency: str
    spend: float
    roas: float
    total_ads: int
    matched_ads: int


def records_frame(records: Iterable[PerformanceRecord]) -> pl.DataFrame:
    """Typed frame of a record snapshot with a parsed `date` column (null when unparseable)."""
    snapshot = tuple(records)
    if not snapshot:
        return pl.DataFrame(schema=FRAME_SCHEMA)
    data: dict[str, list[Any]] = {name: [getattr(record, name) for record in snapshot] for name in TEXT_COLUMNS}
    for name in NUMERIC_COLUMNS:
        data[name] = [float(getattr(record, name)) for record in snapshot]
    data["date"] = [parse_date(record.day) for record in snapshot]
    return pl.DataFrame(data, schema=FRAME_SCHEMA)


def filter_window(frame: pl.DataFrame, start: date | None, end: date | None) -> pl.DataFrame:
    """Rows whose day falls inside [start, end]; rows without a parseable day are dropped."""
    condition = pl.col("date").is_not_null()
    if start is not None:
        condition = condition & (pl.col("date") >= pl.lit(start))
    if end is not None:
        condition = condition & (pl.col("date") <= pl.lit(end))
    return frame.filter(condition)


def _active_expr(column: str) -> pl.Expr:
    return pl.col(column).str.strip_chars().str.to_lowercase().is_in(sorted(ACTIVE_STATUSES))


def _sum_aggregations() -> list[pl.Expr]:
    video_weight = pl.when(pl.col("video_average_play_time") > 0).then(pl.col("impressions")).otherwise(0.0)
    return [pl.col(name).sum().alias(name) for name in SUM_COLUMNS] + [
        weighted_mean_expr(pl.col("frequency"), pl.col("impressions")).alias("frequency"),
        weighted_mean_expr(pl.col("video_average_play_time"), video_weight).alias("video_average_play_time"),
    ]


def _ratio_columns() -> list[pl.Expr]:
    return [
        safe_ratio_expr(pl.col("purchase_value"), pl.col("spend")).alias("roas"),
        safe_ratio_expr(pl.col("spend"), pl.col("purchases")).alias("cpa"),
        (safe_ratio_expr(pl.col("spend"), pl.col("impressions")) * 1000).alias("cpm"),
        safe_ratio_expr(pl.col("clicks_all"), pl.col("impressions")).alias("ctr"),
        safe_ratio_expr(pl.col("link_clicks"), pl.col("impressions")).alias("ctr_link"),
        safe_ratio_expr(pl.col("spend"), pl.col("clicks_all")).alias("cpc"),
        safe_ratio_expr(pl.col("purchase_value"), pl.col("purchases")).alias("average_ticket"),
        safe_ratio_expr(pl.col("landing_page_views"), pl.col("link_clicks")).alias("landing_view_rate"),
        safe_ratio_expr(pl.col("purchases"), pl.col("landing_page_views")).alias("purchase_rate"),
    ]


def summarize_frame(frame: pl.DataFrame) -> PerformanceTotals:
    row = frame.select(_sum_aggregations()).with_columns(_ratio_columns()).to_dicts()[0]
    return PerformanceTotals.from_row(row)


def summarize(records: Iterable[PerformanceRecord], start: date | None = None, end: date | None = None) -> PerformanceTotals:
    """Account-level totals and ratios, optionally limited to a day window."""
    frame = records_frame(records)
    if start is not None or end is not None:
        frame = filter_window(frame, start, end)
    return summarize_frame(frame)


def _split_audiences(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        for part in (value or "").split(","):
            name = part.strip()
            if name:
                seen.setdefault(name, None)
    return list(seen)


def _history_by_ad(records: Sequence[PerformanceRecord]) -> dict[str, dict[str, Any]]:
    history: dict[str, dict[str, Any]] = {}
    for record in records:
        info = history.setdefault(
            record.ad_name,
            {"ad_sets": {}, "campaigns": {}, "included": [], "excluded": [], "active_days": set()},
        )
        if record.ad_set_name:
            info["ad_sets"].setdefault(record.ad_set_name, None)
        if record.campaign_name:
            info["campaigns"].setdefault(record.campaign_name, None)
        info["included"].append(record.included_custom_audiences)
        info["excluded"].append(record.excluded_custom_audiences)
        statuses = (record.campaign_delivery, record.ad_set_delivery, record.ad_delivery)
        if all(status.strip().lower() in ACTIVE_STATUSES for status in statuses):
            info["active_days"].add(record.day)
    return history


def aggregate_ads(
    records: Iterable[PerformanceRecord],
    start: date | None = None,
    end: date | None = None,
    creative_links: Mapping[str, CreativeLink] | None = None,
    currency: str = "",
) -> list[AggregatedAdPerformance]:
    """Per-ad rollup over active, delivering rows in the window, best ROAS first.

    Active days, ad set / campaign names and audiences come from the whole
    history of each ad, not just the window.
    """
    snapshot = tuple(records)
    links = creative_links or {}
    window = filter_window(records_frame(snapshot), start, end)
    eligible = window.filter(_active_expr("ad_delivery") & (pl.col("impressions") > 0) & (pl.col("ad_name") != ""))
    if eligible.is_empty():
        return []

    grouped = (
        eligible.group_by("ad_name")
        .agg(
            _sum_aggregations()
            + [
                pl.col("ad_set_name").filter(pl.col("ad_set_name") != "").n_unique().alias("window_ad_set_count"),
                pl.col("video_file_name").filter(pl.col("video_file_name") != "").first().alias("video_file_name"),
            ]
        )
        .with_columns(_ratio_columns())
    )
    history = _history_by_ad(snapshot)

    output: list[AggregatedAdPerformance] = []
    for row in grouped.to_dicts():
        ad_name = str(row["ad_name"])
        metrics = PerformanceTotals.from_row(row)
        info = history.get(ad_name, {})
        link = links.get(ad_name)
        video_file_name = row.get("video_file_name") or None
        is_video = bool(video_file_name) or (metrics.thruplays > 0 and metrics.video_average_play_time > 1)
        creative_type = "video" if is_video else ("image" if link is not None and link.image_url else None)
        output.append(
            AggregatedAdPerformance(
                ad_name=ad_name,
                metrics=metrics,
                currency=currency,
                ad_set_names=list(info.get("ad_sets", {})),
                campaign_names=list(info.get("campaigns", {})),
                included_custom_audiences=_split_audiences(info.get("included", [])),
                excluded_custom_audiences=_split_audiences(info.get("excluded", [])),
                active_days=len(info.get("active_days", ())),
                in_multiple_ad_sets=int(row.get("window_ad_set_count") or 0) > 1,
                video_file_name=video_file_name,
                creative_type=creative_type,
                is_matched=link is not None,
                image_url=link.image_url if link is not None else None,
                ad_preview_link=link.ad_preview_link if link is not None else None,
                creative_description=link.creative_description if link is not None else None,
            )
        )
    output.sort(key=lambda ad: (-ad.metrics.roas, ad.ad_name))
    return output


def demographic_breakdown(records: Iterable[PerformanceRecord], ad_name: str) -> list[DemographicSlice]:
    """Full-history sums per (age, gender) slice for one ad."""
    frame = records_frame(records).filter(pl.col("ad_name") == ad_name)
    if frame.is_empty():
        return []
    grouped = (
        frame.with_columns(
            [
                pl.when(pl.col(name).str.strip_chars() == "").then(pl.lit("Unknown")).otherwise(pl.col(name)).alias(name)
                for name in ("age", "gender")
            ]
        )
        .group_by(["age", "gender"])
        .agg([pl.col(name).sum() for name in ("spend", "purchases", "purchase_value", "link_clicks", "impressions")])
        .sort(["gender", "age"])
    )
    return [DemographicSlice(**row) for row in grouped.to_dicts()]


def compute_drop_offs(steps: Sequence[FunnelStep]) -> list[FunnelStep]:
    """Drop-off of each step versus the one before it; None when that one is 0."""
    output: list[FunnelStep] = []
    for idx, step in enumerate(steps):
        if idx == 0:
            output.append(replace(step, drop_off=None))
            continue
        previous = steps[idx - 1].value
        drop_off = None if previous == 0 else 1 - (step.value / previous)
        output.append(replace(step, drop_off=drop_off))
    return output


def build_funnel(totals: PerformanceTotals) -> list[FunnelStep]:
    steps = [
        FunnelStep(key=key, label=label, value=value, cost_per_step=ratio_or_zero(totals.spend, value))
        for key, label in FUNNEL_STEPS
        if (value := getattr(totals, key)) != 0
    ]
    return compute_drop_offs(steps)


def previous_window(start: date, end: date) -> tuple[date, date]:
    """The window of equal length that ends the day before `start`."""
    length = (end - start).days + 1
    previous_end = start - timedelta(days=1)
    return previous_end - timedelta(days=length - 1), previous_end


def metric_change(metric: str, current: float, previous: float) -> MetricChange:
    pct = safe_pct_change(current, previous)
    return MetricChange(metric=metric, current=current, previous=previous, pct_change=pct, direction=trend(pct))


def compare_periods(
    records: Iterable[PerformanceRecord],
    start: date,
    end: date,
    ad_name: str | None = None,
) -> PeriodComparison:
    """Aggregate the window and the preceding window of equal length side by side."""
    if end < start:
        raise ValueError(f"Window end {end} is before start {start}")
    frame = records_frame(records)
    if ad_name is not None:
        frame = frame.filter(pl.col("ad_name") == ad_name)
    previous_start, previous_end = previous_window(start, end)
    current = summarize_frame(filter_window(frame, start, end))
    previous = summarize_frame(filter_window(frame, previous_start, previous_end))
    changes = {
        metric: metric_change(metric, getattr(current, metric), getattr(previous, metric))
        for metric in COMPARED_METRICS
    }
    return PeriodComparison(
        start=start,
        end=end,
        previous_start=previous_start,
        previous_end=previous_end,
        current=current,
        previous=previous,
        changes=changes,
        current_funnel=build_funnel(current),
        previous_funnel=build_funnel(previous),
    )


def client_summary(
    client: ClientAccount,
    records: Iterable[PerformanceRecord],
    start: date | None = None,
    end: date | None = None,
    creative_links: Mapping[str, CreativeLink] | None = None,
) -> ClientSummary:
    frame = filter_window(records_frame(records), start, end)
    totals = summarize_frame(frame)
    ad_names = {name for name in frame.get_column("ad_name").to_list() if name}
    links = creative_links or {}
    matched = sum(1 for name in ad_names if name in links and links[name].image_url)
    return ClientSummary(
        client_id=client.id,
        name=client.name,
        currency=client.currency,
        spend=totals.spend,
        roas=totals.roas,
        total_ads=len(ad_names),
        matched_ads=matched,
    )
