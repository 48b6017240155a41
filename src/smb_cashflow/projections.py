# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow projections for SMB CashFlow.

Two projection models coexist and are intentionally kept separate:

- ``project_flat()``: repeats the average monthly income and expense for
  each future month and accumulates the balance month over month, starting
  from the current balance.
- ``project_growth()``: derives one growth rate per series from the
  newest-first monthly history and compounds the newest bucket by it. The
  balance of each projected month is that month's income minus expense
  (not cumulative).

Scenarios (``apply_scenario``) scale the projected income/expense of each
point and recompute the per-period balance; ``projected_runway`` divides
the final projected balance by the average projected expense.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .engine import MonthlyBucket
from .metrics import Runway, compute_runway
from .periods import _today, month_key, shift_month


@dataclass(frozen=True)
class ProjectionPoint:
    """Projected totals for one future calendar month."""

    period_key: str
    year: int
    month: int
    income: float
    expense: float
    balance: float


@dataclass(frozen=True)
class Scenario:
    """Multipliers applied to projected income and expense."""

    name: str
    label: str
    income_factor: float = 1.0
    expense_factor: float = 1.0


SCENARIOS: dict[str, Scenario] = {
    "base": Scenario("base", "Base (current trend)"),
    "optimistic": Scenario("optimistic", "Optimistic (+15% income)", income_factor=1.15),
    "pessimistic": Scenario(
        "pessimistic",
        "Pessimistic (-15% income, +10% expenses)",
        income_factor=0.85,
        expense_factor=1.10,
    ),
    "cost_cutting": Scenario(
        "cost_cutting", "Cost cutting (-10% expenses)", expense_factor=0.90
    ),
}


def _future_months(start: Optional[date], months: int) -> list[tuple[int, int]]:
    """The ``months`` calendar months following the month of ``start``."""
    ref = start or _today()
    return [shift_month(ref.year, ref.month, i) for i in range(1, months + 1)]


def project_flat(
    avg_income: float,
    avg_expense: float,
    current_balance: float,
    months: int = 6,
    start: Optional[date] = None,
) -> list[ProjectionPoint]:
    """
    Flat projection from monthly averages.

    Each future month gets ``avg_income`` and ``avg_expense``; the balance
    starts at ``current_balance`` and accumulates the monthly net. Points are
    chronological (first point = month after ``start``, default today).
    """
    points = []
    balance = current_balance
    for year, month in _future_months(start, months):
        balance += avg_income - avg_expense
        points.append(
            ProjectionPoint(
                period_key=month_key(year, month),
                year=year,
                month=month,
                income=avg_income,
                expense=avg_expense,
                balance=balance,
            )
        )
    return points


def growth_rate(values: Sequence[float]) -> float:
    """
    Average growth rate of a newest-first series.

    Defined as ``(newest / oldest - 1) / len(values)``; 0 when fewer than
    two values are given or when the oldest value is 0.
    """
    if len(values) < 2:
        return 0.0
    newest = values[0]
    oldest = values[-1]
    if oldest == 0:
        return 0.0
    return (newest / oldest - 1) / len(values)


def project_growth(
    history: Sequence[MonthlyBucket],
    months: int = 6,
    start: Optional[date] = None,
) -> list[ProjectionPoint]:
    """
    Growth-rate projection from a newest-first monthly history.

    Income and expense of the newest bucket are compounded by their own
    growth rate: month i (1-based) gets ``newest * (1 + rate) ** i``.
    Returns an empty list when the history is empty.
    """
    if not history:
        return []

    income_rate = growth_rate([b.total_income for b in history])
    expense_rate = growth_rate([b.total_expense for b in history])
    newest = history[0]

    points = []
    for i, (year, month) in enumerate(_future_months(start, months), start=1):
        income = newest.total_income * (1 + income_rate) ** i
        expense = newest.total_expense * (1 + expense_rate) ** i
        points.append(
            ProjectionPoint(
                period_key=month_key(year, month),
                year=year,
                month=month,
                income=income,
                expense=expense,
                balance=income - expense,
            )
        )
    return points


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def apply_scenario(points: Sequence[ProjectionPoint], name: str) -> list[ProjectionPoint]:
    """
    Apply a named scenario to projection points.

    The "base" scenario returns the points unchanged. Other scenarios scale
    income and expense, round them to whole units (halves round up) and set
    ``balance`` to the period net of the rounded values.

    Raises:
        ValueError: if ``name`` is not a known scenario.
    """
    try:
        scenario = SCENARIOS[name]
    except KeyError:
        known = ", ".join(SCENARIOS)
        raise ValueError(f"Unknown scenario {name!r}. Expected one of: {known}.") from None

    if name == "base":
        return list(points)

    out = []
    for p in points:
        income = _round_half_up(p.income * scenario.income_factor)
        expense = _round_half_up(p.expense * scenario.expense_factor)
        out.append(
            ProjectionPoint(
                period_key=p.period_key,
                year=p.year,
                month=p.month,
                income=income,
                expense=expense,
                balance=income - expense,
            )
        )
    return out


def projected_runway(points: Sequence[ProjectionPoint]) -> Runway:
    """Final projected balance divided by the average projected expense."""
    if not points:
        return Runway.infinite()
    avg_expense = sum(p.expense for p in points) / len(points)
    return compute_runway(points[-1].balance, avg_expense)


def projection_risks(points: Sequence[ProjectionPoint]) -> list[str]:
    """
    Return human-readable warnings for a projection.

    Checks for a negative projected balance, a projected runway under three
    months and a balance decreasing between the first and last point.
    """
    if not points:
        return []

    risks = []
    if any(p.balance < 0 for p in points):
        risks.append("Negative balance projected")
    runway = projected_runway(points)
    if not runway.is_infinite and runway.months < 3:
        risks.append("Projected runway under 3 months")
    if points[-1].balance < points[0].balance:
        risks.append("Decreasing balance trend")
    return risks
