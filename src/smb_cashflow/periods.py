# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB CashFlow.

This module defines a Period value object, calendar-month helpers used by
the monthly aggregation (month keys, trailing windows) and the logic
deriving a reporting period from CLI arguments (month to date, last
month, year to date, trailing 3/6/12 months, custom dates).
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

YearMonth = tuple[int, int]


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def month_key(year: int, month: int) -> str:
    """Return the 'YYYY-MM' key of a calendar month."""
    return f"{year:04d}-{month:02d}"


def shift_month(year: int, month: int, delta: int) -> YearMonth:
    """Move a (year, month) pair by ``delta`` months (negative goes back)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(end: date, count: int) -> list[YearMonth]:
    """
    Return ``count`` calendar months ending with the month of ``end``.

    The list is newest-first: index 0 is the month of ``end``.
    """
    return [shift_month(end.year, end.month, -i) for i in range(count)]


def months_between(start: date, end: date) -> list[YearMonth]:
    """Return every month from ``start`` to ``end`` (inclusive), newest-first."""
    span = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return trailing_months(end, max(span, 0))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def period_mtd() -> Period:
    """Month to date."""
    today = _today()
    return Period(start=today.replace(day=1), end=today, label="Month to date")


def period_last_month() -> Period:
    """Full previous calendar month."""
    today = _today()
    year, month = shift_month(today.year, today.month, -1)
    start, end = month_bounds(year, month)
    return Period(start=start, end=end, label="Last month")


def period_ytd() -> Period:
    """Calendar year to date."""
    today = _today()
    return Period(start=date(today.year, 1, 1), end=today, label="Year to date")


def period_trailing(months: int) -> Period:
    """The last ``months`` calendar months, current month included."""
    today = _today()
    year, month = shift_month(today.year, today.month, -(months - 1))
    return Period(
        start=date(year, month, 1),
        end=today,
        label=f"Last {months} months",
    )


def determine_period_from_args(args) -> Optional[Period]:
    """
    Determine the reporting period from CLI args.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom period)
        2. args.period (mtd, last-month, ytd, last-3m, last-6m, last-12m, all)
        3. no restriction (None)
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else date.min
        end = date.fromisoformat(to_raw) if to_raw else _today()

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({from_raw or '…'} → {end})"
        return Period(start=start, end=end, label=label)

    p = getattr(args, "period", None)
    if not p or p == "all":
        return None
    if p == "mtd":
        return period_mtd()
    if p == "last-month":
        return period_last_month()
    if p == "ytd":
        return period_ytd()
    if p == "last-3m":
        return period_trailing(3)
    if p == "last-6m":
        return period_trailing(6)
    if p == "last-12m":
        return period_trailing(12)
    raise ValueError(f"Unknown period: {p!r}")
