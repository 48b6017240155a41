# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Aggregation engine for SMB CashFlow.

This module buckets deduplicated cash-flow items into the series consumed
by charts and tables. Three independent aggregations are provided, each one
re-filterable by an optional date range, flow type and category (see
``CashFlowFilter`` / ``filter_items``):

1. Monthly
   -------
   ``aggregate_monthly()`` buckets items by (year, month). For a trailing
   window of N months every month is pre-seeded with zeros so that months
   without activity still render. Income is summed into ``total_income``,
   expenses into ``total_expense`` and ``balance`` is the net of that month
   only (not cumulative). Buckets are returned newest-first: index 0 is the
   most recent month of the window.

2. By category
   -----------
   ``aggregate_by_category()`` groups Expense items by category and sorts
   the groups by descending total.

3. By client
   ---------
   ``aggregate_by_client()`` groups Income items having a non-empty client
   by client name, with total, count and average. The share of the grand
   total income is computed at presentation time (views.py).

The group-bys run on a pandas DataFrame built from the items; results are
returned as frozen dataclasses.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from .periods import _today, month_key, months_between, trailing_months
from .records import CashFlowItem, FlowType

FRAME_COLUMNS = ["date", "type", "amount", "category", "client"]


@dataclass(frozen=True)
class CashFlowFilter:
    """
    Filters applied to cash-flow items before aggregation.

    Attributes
    ----------
    start, end:
        Inclusive date bounds.
    flow_type:
        "Income" or "Expense" to keep a single direction.
    category:
        Exact category match (case-insensitive).
    """

    start: date | None = None
    end: date | None = None
    flow_type: FlowType | None = None
    category: str | None = None


@dataclass(frozen=True)
class MonthlyBucket:
    """Totals for one calendar month; ``balance`` is the month net."""

    period_key: str
    year: int
    month: int
    total_income: float
    total_expense: float
    balance: float

    @property
    def has_data(self) -> bool:
        return self.total_income != 0.0 or self.total_expense != 0.0


@dataclass(frozen=True)
class GroupBucket:
    """Total, count and average of the items sharing a label."""

    label: str
    total: float
    count: int
    average: float


CategoryBucket = GroupBucket
ClientBucket = GroupBucket


def filter_items(
    items: Iterable[CashFlowItem],
    cash_filter: Optional[CashFlowFilter] = None,
) -> list[CashFlowItem]:
    """Return the items matching every criterion of ``cash_filter``."""
    items = list(items)
    if cash_filter is None:
        return items

    category = (
        cash_filter.category.strip().casefold() if cash_filter.category else None
    )

    out = []
    for item in items:
        if cash_filter.start is not None and item.date < cash_filter.start:
            continue
        if cash_filter.end is not None and item.date > cash_filter.end:
            continue
        if cash_filter.flow_type is not None and item.type != cash_filter.flow_type:
            continue
        if category is not None and item.category.strip().casefold() != category:
            continue
        out.append(item)
    return out


def items_to_frame(items: Iterable[CashFlowItem]) -> pd.DataFrame:
    """Build the DataFrame used by the group-bys (one row per item)."""
    rows = [
        {
            "date": item.date,
            "type": item.type,
            "amount": float(item.amount),
            "category": item.category,
            "client": item.client,
        }
        for item in items
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    df["amount"] = df["amount"].astype(float)
    return df


def aggregate_monthly(
    items: Iterable[CashFlowItem],
    months: Optional[int] = 12,
    end: Optional[date] = None,
) -> list[MonthlyBucket]:
    """
    Aggregate items into calendar-month buckets.

    Args:
        items: Cash-flow items (already filtered if needed).
        months: Size of the trailing window. Every month of the window is
            present, zero-filled when empty, and items outside the window
            are ignored. ``None`` covers every month between the oldest and
            the newest item instead.
        end: Last month of the trailing window (default: today).

    Returns:
        A list of MonthlyBucket, newest-first.
    """
    df = items_to_frame(items)

    if months is None:
        if df.empty:
            return []
        window = months_between(df["date"].min().date(), df["date"].max().date())
    else:
        window = trailing_months(end or _today(), months)

    totals: dict[tuple[int, int], dict[str, float]] = {
        ym: {"Income": 0.0, "Expense": 0.0} for ym in window
    }

    if not df.empty:
        df["year"] = df["date"].dt.year
        df["month"] = df["date"].dt.month
        grouped = df.groupby(["year", "month", "type"])["amount"].sum()
        for (year, month, flow_type), total in grouped.items():
            ym = (int(year), int(month))
            if ym in totals:
                totals[ym][str(flow_type)] += float(total)

    buckets = []
    for year, month in window:
        income = totals[(year, month)]["Income"]
        expense = totals[(year, month)]["Expense"]
        buckets.append(
            MonthlyBucket(
                period_key=month_key(year, month),
                year=year,
                month=month,
                total_income=income,
                total_expense=expense,
                balance=income - expense,
            )
        )
    return buckets


def _group(df: pd.DataFrame, column: str) -> list[GroupBucket]:
    if df.empty:
        return []

    grouped = df.groupby(column)["amount"].agg(["sum", "count"])
    grouped = grouped.sort_values("sum", ascending=False, kind="stable")

    out = []
    for label, row in grouped.iterrows():
        total = float(row["sum"])
        count = int(row["count"])
        out.append(
            GroupBucket(
                label=str(label),
                total=total,
                count=count,
                average=total / count if count else 0.0,
            )
        )
    return out


def aggregate_by_category(items: Iterable[CashFlowItem]) -> list[CategoryBucket]:
    """Group Expense items by category, sorted by descending total."""
    df = items_to_frame(items)
    return _group(df[df["type"] == "Expense"], "category")


def aggregate_by_client(items: Iterable[CashFlowItem]) -> list[ClientBucket]:
    """Group Income items with a non-empty client, sorted by descending total."""
    df = items_to_frame(items)
    df["client"] = df["client"].fillna("").astype(str).str.strip()
    return _group(df[(df["type"] == "Income") & (df["client"] != "")], "client")
