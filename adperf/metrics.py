"""Shared numeric and formatting helpers for aggregation."""

from __future__ import annotations

import polars as pl

CURRENCY_SYMBOLS: dict[str, str] = {"EUR": "€", "USD": "$", "GBP": "£"}


def safe_ratio(num: float, den: float) -> float | None:
    if den <= 0:
        return None
    return num / den


def ratio_or_zero(num: float, den: float) -> float:
    ratio = safe_ratio(num, den)
    return 0.0 if ratio is None else ratio


def safe_pct_change(curr: float | None, prev: float | None) -> float | None:
    if curr is None or prev is None or prev <= 0:
        return None
    return (curr - prev) / prev


def safe_ratio_expr(num: pl.Expr, den: pl.Expr) -> pl.Expr:
    safe_den = pl.when(den > 0).then(den).otherwise(None)
    return (num / safe_den).fill_null(0.0)


def weighted_mean_expr(metric: pl.Expr, weight: pl.Expr) -> pl.Expr:
    """Σ(metric × weight) / Σ weight, 0 when the weights sum to 0."""
    return safe_ratio_expr((metric * weight).sum(), weight.sum())


def trend(value: float | None, eps: float = 1e-9) -> str:
    if value is None:
        return "undefined"
    if value > eps:
        return "up"
    if value < -eps:
        return "down"
    return "flat"


def fmt_money(value: float | None, currency: str = "EUR") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency} ")
    if value is None:
        return f"{symbol}0"
    return f"{symbol}{value:,.2f}"


def fmt_pct(value: float | None, signed: bool = True) -> str:
    if value is None:
        return "N/A"
    pct = value * 100
    if signed:
        return f"{pct:+.1f}%"
    return f"{pct:.1f}%"


def fmt_ratio(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f}"
