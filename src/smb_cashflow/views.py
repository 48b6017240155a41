# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB CashFlow.

This module turns pipeline results (items, buckets, metrics, KPIs and
projections) into pandas DataFrames ready for display or CSV export. It
is the presentation boundary: defaults such as "Unknown client" and the
"∞" runway symbol are applied here, never in the engine.
"""

from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .engine import ClientBucket, CategoryBucket, MonthlyBucket
from .metrics import CashFlowMetrics, KpiResult
from .projections import ProjectionPoint
from .records import UNKNOWN_CLIENT, CashFlowItem

ITEM_COLUMNS = [
    "date",
    "description",
    "type",
    "category",
    "client",
    "payment_method",
    "amount",
    "original_amount",
    "original_currency",
    "balance",
]


def _round(value: Optional[float], decimals: int) -> float:
    if value is None:
        return float("nan")
    return round(value, decimals)


def items_to_dataframe(items: Sequence[CashFlowItem], decimals: int = 0) -> pd.DataFrame:
    """One row per cash-flow item, in the given (most-recent-first) order."""
    rows = [
        {
            "date": item.date.isoformat(),
            "description": item.description,
            "type": item.type,
            "category": item.category,
            "client": item.client or UNKNOWN_CLIENT,
            "payment_method": item.payment_method,
            "amount": _round(item.amount, decimals),
            "original_amount": _round(item.original_amount, 2),
            "original_currency": item.original_currency or "",
            "balance": _round(item.balance, decimals),
        }
        for item in items
    ]
    return pd.DataFrame(rows, columns=ITEM_COLUMNS)


def monthly_to_dataframe(buckets: Sequence[MonthlyBucket], decimals: int = 0) -> pd.DataFrame:
    """Monthly buckets, newest-first."""
    columns = ["period", "income", "expense", "balance"]
    rows = [
        {
            "period": b.period_key,
            "income": round(b.total_income, decimals),
            "expense": round(b.total_expense, decimals),
            "balance": round(b.balance, decimals),
        }
        for b in buckets
    ]
    return pd.DataFrame(rows, columns=columns)


def _groups_to_dataframe(
    buckets: Sequence[CategoryBucket],
    label_column: str,
    grand_total: Optional[float],
    decimals: int,
) -> pd.DataFrame:
    columns = [label_column, "total", "count", "average", "share_pct"]
    if not buckets:
        return pd.DataFrame(columns=columns)

    if grand_total is None:
        grand_total = sum(b.total for b in buckets)

    rows = [
        {
            label_column: b.label,
            "total": round(b.total, decimals),
            "count": b.count,
            "average": round(b.average, decimals),
            "share_pct": round(b.total / grand_total * 100.0, 1) if grand_total else 0.0,
        }
        for b in buckets
    ]
    return pd.DataFrame(rows, columns=columns)


def categories_to_dataframe(
    buckets: Sequence[CategoryBucket], decimals: int = 0
) -> pd.DataFrame:
    """Expenses by category with their share of total expenses."""
    return _groups_to_dataframe(buckets, "category", None, decimals)


def clients_to_dataframe(
    buckets: Sequence[ClientBucket],
    total_income: Optional[float] = None,
    decimals: int = 0,
) -> pd.DataFrame:
    """
    Income by client with their share of ``total_income``.

    When ``total_income`` is not given, the share is computed against the
    sum of the client buckets.
    """
    return _groups_to_dataframe(buckets, "client", total_income, decimals)


def metrics_to_dataframe(metrics: CashFlowMetrics, decimals: int = 0) -> pd.DataFrame:
    """Headline metrics as (metric, value) rows."""
    rows = [
        ("Total income", round(metrics.total_income, decimals)),
        ("Total expense", round(metrics.total_expense, decimals)),
        ("Current balance", round(metrics.current_balance, decimals)),
        ("Average monthly income", round(metrics.avg_income, decimals)),
        ("Average monthly expense", round(metrics.avg_expense, decimals)),
        ("Burn rate", round(metrics.burn_rate, decimals)),
        ("Runway (months)", metrics.runway.display()),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def kpis_to_dataframe(kpis: Sequence[KpiResult], decimals: int = 1) -> pd.DataFrame:
    """
    Convert KPI results into a DataFrame.

    Columns: key, label, value, previous_value, unit, trend, description.
    A runway without spending is shown as "∞"; other missing values become
    NaN.
    """
    columns = ["key", "label", "value", "previous_value", "unit", "trend", "description"]
    if not kpis:
        return pd.DataFrame(columns=columns)

    rows: list[dict[str, object]] = []
    for k in kpis:
        if k.value is None:
            value: object = "∞" if k.key == "runway" else float("nan")
        else:
            value = round(k.value, decimals)
        rows.append(
            {
                "key": k.key,
                "label": k.label,
                "value": value,
                "previous_value": (
                    float("nan")
                    if k.previous_value is None
                    else round(k.previous_value, decimals)
                ),
                "unit": k.unit,
                "trend": k.trend,
                "description": k.description,
            }
        )
    return pd.DataFrame(rows, columns=columns)


def projections_to_dataframe(
    points: Sequence[ProjectionPoint], decimals: int = 0
) -> pd.DataFrame:
    """Projection points, chronological."""
    columns = ["period", "income", "expense", "balance"]
    rows = [
        {
            "period": p.period_key,
            "income": round(p.income, decimals),
            "expense": round(p.expense, decimals),
            "balance": round(p.balance, decimals),
        }
        for p in points
    ]
    return pd.DataFrame(rows, columns=columns)
