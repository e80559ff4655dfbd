"""Environment-driven settings for the import and aggregation engine."""

from __future__ import annotations

import os
from pathlib import Path


def _parse_warn_threshold() -> float:
    raw = os.getenv("ADPERF_PARSE_WARN_THRESHOLD", "0.01")
    try:
        threshold = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid ADPERF_PARSE_WARN_THRESHOLD: {raw}") from exc
    if threshold < 0 or threshold > 1:
        raise ValueError(f"ADPERF_PARSE_WARN_THRESHOLD must be in [0, 1], got {threshold}")
    return threshold


def _parse_window_days() -> int:
    raw = os.getenv("ADPERF_DEFAULT_WINDOW_DAYS", "7")
    try:
        days = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid ADPERF_DEFAULT_WINDOW_DAYS: {raw}") from exc
    if days < 1:
        raise ValueError(f"ADPERF_DEFAULT_WINDOW_DAYS must be >= 1, got {days}")
    return days


def _parse_active_statuses() -> frozenset[str]:
    raw = os.getenv("ADPERF_ACTIVE_STATUSES", "active,activo,activa")
    statuses = frozenset(part.strip().lower() for part in raw.split(",") if part.strip())
    if not statuses:
        raise ValueError("ADPERF_ACTIVE_STATUSES must name at least one delivery status")
    return statuses


DATA_DIR = Path(os.getenv("ADPERF_DATA_DIR", "data"))
LOG_LEVEL = os.getenv("ADPERF_LOG_LEVEL", "INFO").upper()
PARSE_WARN_THRESHOLD = _parse_warn_threshold()
ACTIVE_STATUSES = _parse_active_statuses()
DEFAULT_WINDOW_DAYS = _parse_window_days()
