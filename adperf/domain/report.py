"""Structured form of the bitácora text report."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Union

Direction = Literal["up", "down", "stable"]


@dataclass(frozen=True)
class ParsedMetricValue:
    value: float
    symbol: str | None = None
    change: float | None = None
    direction: Direction | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"value": self.value}
        if self.symbol is not None:
            payload["symbol"] = self.symbol
        if self.change is not None:
            payload["change"] = self.change
        if self.direction is not None:
            payload["direction"] = self.direction
        return payload


CellValue = Union[ParsedMetricValue, str]


@dataclass(frozen=True)
class ReportTable:
    title: str
    headers: list[str]
    rows: list[dict[str, CellValue]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "headers": list(self.headers),
            "rows": [
                {key: cell.to_dict() if isinstance(cell, ParsedMetricValue) else cell for key, cell in row.items()}
                for row in self.rows
            ],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReportTable":
        rows: list[dict[str, CellValue]] = []
        for raw_row in data.get("rows", []):
            row: dict[str, CellValue] = {}
            for key, cell in raw_row.items():
                if isinstance(cell, Mapping):
                    row[key] = ParsedMetricValue(
                        value=float(cell["value"]),
                        symbol=cell.get("symbol"),
                        change=cell.get("change"),
                        direction=cell.get("direction"),
                    )
                else:
                    row[key] = str(cell)
            rows.append(row)
        return cls(title=str(data.get("title", "")), headers=list(data.get("headers", [])), rows=rows)


@dataclass(frozen=True)
class ReportMetadata:
    report_type: str | None = None
    date: str | None = None
    currency: str | None = None
    campaign_filter: str | None = None
    ad_set_filter: str | None = None


@dataclass(frozen=True)
class BitacoraReport:
    metadata: ReportMetadata
    tables: list[ReportTable]
    main_summary_table: ReportTable | None = None
    funnel_analysis_table: ReportTable | None = None
    top_ads_tables: list[ReportTable] = field(default_factory=list)
    top_ad_sets_tables: list[ReportTable] = field(default_factory=list)
    top_campaigns_tables: list[ReportTable] = field(default_factory=list)
    audience_performance_table: ReportTable | None = None
    ratio_trends_table: ReportTable | None = None
    id: str = ""
    client_id: str = ""
    file_name: str = ""
    import_date: str = ""

    def to_dict(self) -> dict[str, Any]:
        def _table(table: ReportTable | None) -> dict[str, Any] | None:
            return table.to_dict() if table is not None else None

        return {
            "id": self.id,
            "client_id": self.client_id,
            "file_name": self.file_name,
            "import_date": self.import_date,
            "metadata": {
                "report_type": self.metadata.report_type,
                "date": self.metadata.date,
                "currency": self.metadata.currency,
                "campaign_filter": self.metadata.campaign_filter,
                "ad_set_filter": self.metadata.ad_set_filter,
            },
            "tables": [table.to_dict() for table in self.tables],
            "main_summary_table": _table(self.main_summary_table),
            "funnel_analysis_table": _table(self.funnel_analysis_table),
            "top_ads_tables": [table.to_dict() for table in self.top_ads_tables],
            "top_ad_sets_tables": [table.to_dict() for table in self.top_ad_sets_tables],
            "top_campaigns_tables": [table.to_dict() for table in self.top_campaigns_tables],
            "audience_performance_table": _table(self.audience_performance_table),
            "ratio_trends_table": _table(self.ratio_trends_table),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BitacoraReport":
        def _table(raw: Any) -> ReportTable | None:
            return ReportTable.from_dict(raw) if raw else None

        meta = data.get("metadata") or {}
        return cls(
            metadata=ReportMetadata(**{key: meta.get(key) for key in ReportMetadata.__dataclass_fields__}),
            tables=[ReportTable.from_dict(raw) for raw in data.get("tables", [])],
            main_summary_table=_table(data.get("main_summary_table")),
            funnel_analysis_table=_table(data.get("funnel_analysis_table")),
            top_ads_tables=[ReportTable.from_dict(raw) for raw in data.get("top_ads_tables", [])],
            top_ad_sets_tables=[ReportTable.from_dict(raw) for raw in data.get("top_ad_sets_tables", [])],
            top_campaigns_tables=[ReportTable.from_dict(raw) for raw in data.get("top_campaigns_tables", [])],
            audience_performance_table=_table(data.get("audience_performance_table")),
            ratio_trends_table=_table(data.get("ratio_trends_table")),
            id=str(data.get("id", "")),
            client_id=str(data.get("client_id", "")),
            file_name=str(data.get("file_name", "")),
            import_date=str(data.get("import_date", "")),
        )
