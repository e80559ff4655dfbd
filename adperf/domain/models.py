"""Domain records: performance rows, clients, creative links and import batches."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class SourceKind(str, Enum):
    ADS_SPREADSHEET = "meta"
    CREATIVE_SPREADSHEET = "looker"
    TEXT_REPORT = "txt"


def make_unique_id(day: str, campaign_name: str, ad_name: str, age: str, gender: str) -> str:
    return "|".join([day, campaign_name, ad_name, age, gender])


@dataclass(frozen=True)
class ClientAccount:
    id: str
    name: str
    currency: str = "EUR"
    external_account_name: str | None = None

    def matches(self, account_name: str) -> bool:
        if self.external_account_name:
            return self.external_account_name == account_name
        return self.name == account_name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientAccount":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "") or ""),
            currency=str(data.get("currency", "EUR") or "EUR"),
            external_account_name=data.get("external_account_name") or None,
        )


@dataclass(frozen=True)
class PerformanceRecord:
    """One (day, campaign, ad, age, gender) slice for one client."""

    client_id: str
    unique_id: str
    day: str
    campaign_name: str = ""
    ad_set_name: str = ""
    ad_name: str = ""
    age: str = ""
    gender: str = ""
    account_name: str = ""
    campaign_delivery: str = ""
    ad_set_delivery: str = ""
    ad_delivery: str = ""
    included_custom_audiences: str = ""
    excluded_custom_audiences: str = ""
    video_file_name: str = ""
    image_name: str = ""
    currency: str = ""
    objective: str = ""
    report_start: str = ""
    report_end: str = ""
    spend: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    frequency: float = 0.0
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
    video_average_play_time: float = 0.0
    post_interactions: float = 0.0
    post_reactions: float = 0.0
    post_comments: float = 0.0
    post_shares: float = 0.0
    page_likes: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PerformanceRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class CreativeLink:
    ad_name: str
    image_url: str
    ad_preview_link: str | None = None
    creative_description: str | None = None
    analysis: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CreativeLink":
        return cls(
            ad_name=str(data["ad_name"]),
            image_url=str(data.get("image_url", "") or ""),
            ad_preview_link=data.get("ad_preview_link"),
            creative_description=data.get("creative_description"),
            analysis=data.get("analysis"),
        )


@dataclass(frozen=True)
class UndoData:
    source: SourceKind
    keys: tuple[str, ...]
    client_id: str


@dataclass(frozen=True)
class ImportBatch:
    id: str
    timestamp: str
    source: SourceKind
    file_name: str
    file_hash: str
    client_name: str
    description: str
    undo_data: UndoData

    @classmethod
    def create(
        cls,
        source: SourceKind,
        file_name: str,
        file_hash: str,
        client: ClientAccount,
        description: str,
        keys: list[str] | tuple[str, ...],
    ) -> "ImportBatch":
        return cls(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=source,
            file_name=file_name,
            file_hash=file_hash,
            client_name=client.name,
            description=description,
            undo_data=UndoData(source=source, keys=tuple(keys), client_id=client.id),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "source": self.source.value,
            "file_name": self.file_name,
            "file_hash": self.file_hash,
            "client_name": self.client_name,
            "description": self.description,
            "undo_data": {
                "type": self.undo_data.source.value,
                "keys": list(self.undo_data.keys),
                "client_id": self.undo_data.client_id,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportBatch":
        undo = data.get("undo_data") or {}
        source = SourceKind(data["source"])
        return cls(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            source=source,
            file_name=str(data.get("file_name", "")),
            file_hash=str(data.get("file_hash", "")),
            client_name=str(data.get("client_name", "")),
            description=str(data.get("description", "")),
            undo_data=UndoData(
                source=SourceKind(undo.get("type", source.value)),
                keys=tuple(str(key) for key in undo.get("keys", [])),
                client_id=str(undo.get("client_id", "")),
            ),
        )


@dataclass(frozen=True)
class MergeResult:
    inserted_count: int
    inserted_keys: tuple[str, ...]


@dataclass(frozen=True)
class UndoResult:
    success: bool
    partial: bool
    batch_id: str
    removed_count: int = 0
    missing_keys: tuple[str, ...] = field(default_factory=tuple)
    warning: Warning | None = None
