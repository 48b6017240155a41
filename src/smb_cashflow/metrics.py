# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Derived metrics and KPIs for SMB CashFlow.

This module complements the aggregation engine (engine.py) by providing:

1. Averages and burn rate
   -----------------------
   ``average_monthly()`` averages income and expense over the most recent
   monthly buckets that have data. ``burn_rate()`` is the average monthly
   expense over the same window.

2. Runway
   ------
   ``compute_runway()`` divides the current balance by the average monthly
   expense. When the average expense is zero the runway is the explicit
   infinite sentinel ``Runway.infinite()``: never ``inf``, ``NaN`` or an
   exception. Callers display it as "∞" and treat it as greater than any
   finite threshold (``Runway.exceeds``).

3. MRR
   ---
   ``calculate_mrr()`` adds operational income (partner contributions
   excluded) and recurring fees brought to a monthly equivalent through a
   fixed months-per-cycle table.

4. Metrics object & KPI set
   ------------------------
   ``compute_metrics()`` builds the metrics object shown next to the cash
   flow (totals, current balance, averages, burn rate, runway).
   ``compute_kpis()`` returns the dashboard KPI list (MRR, ARR, profit
   margin, active clients, LTV, marketing ROI, ...), each with a trend hint.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal, Optional

from .currency import BASE_CURRENCY, ConversionResult, convert
from .engine import MonthlyBucket
from .records import CashFlowItem, ManualIncomeRecord, RecurringPaymentRecord

Trend = Literal["up", "down", "neutral"]

# Income types excluded from operational income (and therefore from MRR).
NON_OPERATIONAL_INCOME_TYPES: frozenset[str] = frozenset(
    {"partner contribution", "aporte de socio"}
)

# Expected client lifetime used for the LTV estimate.
CLIENT_LIFETIME_MONTHS = 12.0

# Expense categories counted as marketing spend.
MARKETING_CATEGORIES: frozenset[str] = frozenset(
    {"marketing", "advertising", "publicidad", "mercadeo"}
)

# Number of months covered by one billing cycle.
MONTHS_PER_CYCLE: dict[str, float] = {
    "weekly": 0.25,
    "semanal": 0.25,
    "biweekly": 0.5,
    "quincenal": 0.5,
    "monthly": 1.0,
    "mensual": 1.0,
    "bimonthly": 2.0,
    "bimensual": 2.0,
    "bimestral": 2.0,
    "quarterly": 3.0,
    "trimestral": 3.0,
    "semiannual": 6.0,
    "semestral": 6.0,
    "annual": 12.0,
    "anual": 12.0,
}


@dataclass(frozen=True)
class Runway:
    """
    Months of operation the current balance covers.

    ``months`` is None for the infinite sentinel (no spending).
    """

    months: Optional[float]

    @classmethod
    def infinite(cls) -> "Runway":
        return cls(months=None)

    @property
    def is_infinite(self) -> bool:
        return self.months is None

    def exceeds(self, threshold: float) -> bool:
        """True if the runway is longer than ``threshold`` months."""
        return self.is_infinite or self.months > threshold

    def display(self, decimals: int = 1) -> str:
        if self.is_infinite:
            return "∞"
        return f"{self.months:.{decimals}f}"


@dataclass(frozen=True)
class CashFlowMetrics:
    """Headline figures for a (filtered) cash flow."""

    total_income: float
    total_expense: float
    current_balance: float
    avg_income: float
    avg_expense: float
    burn_rate: float
    runway: Runway


@dataclass(frozen=True)
class KpiResult:
    """
    Computed KPI, in the same spirit as a ratio result.

    Attributes:
        key: Internal identifier (e.g. 'mrr').
        label: Human-readable label.
        value: Numeric value, or None if not computable.
        unit: Unit hint (currency code, '%', 'months', 'x', 'clients').
        trend: 'up', 'down' or 'neutral'.
        description: Short explanation of the formula.
        previous_value: Figure of the previous period the trend compares
            with, when tracked.
    """

    key: str
    label: str
    value: Optional[float]
    unit: str
    trend: Trend
    description: str
    previous_value: Optional[float] = None


def average_monthly(
    buckets: Sequence[MonthlyBucket],
    window: int = 6,
) -> tuple[float, float]:
    """
    Average income and expense over the ``window`` most recent buckets
    that have data.

    ``buckets`` must be newest-first (as returned by aggregate_monthly).
    Returns (0.0, 0.0) when no bucket has data.
    """
    active = [b for b in buckets[:window] if b.has_data]
    if not active:
        return 0.0, 0.0
    avg_income = sum(b.total_income for b in active) / len(active)
    avg_expense = sum(b.total_expense for b in active) / len(active)
    return avg_income, avg_expense


def burn_rate(buckets: Sequence[MonthlyBucket], window: int = 6) -> float:
    """Average monthly expense over the selected window."""
    return average_monthly(buckets, window)[1]


def compute_runway(current_balance: float, avg_monthly_expense: float) -> Runway:
    """Return ``current_balance / avg_monthly_expense`` or the infinite sentinel."""
    if avg_monthly_expense == 0:
        return Runway.infinite()
    return Runway(months=current_balance / avg_monthly_expense)


def monthly_variation(current: float, previous: float) -> float:
    """Percentage change from ``previous`` to ``current`` (0 when previous is 0)."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100.0


def is_operational_income(income_type: Optional[str]) -> bool:
    return str(income_type or "").strip().casefold() not in NON_OPERATIONAL_INCOME_TYPES


def monthly_equivalent(amount: float, frequency: Optional[str]) -> float:
    """Bring a per-cycle amount to a monthly value (unknown frequency = monthly)."""
    months = MONTHS_PER_CYCLE.get(str(frequency or "").strip().casefold(), 1.0)
    return amount / months


def _to_reporting(
    amount: float,
    currency: Optional[str],
    reporting_currency: str,
    rates: Optional[Mapping[str, float]],
    base_currency: str,
    unsupported: Optional[list[ConversionResult]],
) -> float:
    result = convert(
        amount, currency or reporting_currency, reporting_currency, rates, base_currency
    )
    if not result.converted and unsupported is not None:
        unsupported.append(result)
    return result.amount


def operational_income(
    incomes: Iterable[ManualIncomeRecord],
    reporting_currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    base_currency: str = BASE_CURRENCY,
    unsupported: Optional[list[ConversionResult]] = None,
) -> float:
    """Sum of incomes excluding partner contributions, in the reporting currency."""
    return sum(
        _to_reporting(
            income.amount, income.currency, reporting_currency, rates, base_currency,
            unsupported,
        )
        for income in incomes
        if is_operational_income(income.type)
    )


def calculate_mrr(
    incomes: Iterable[ManualIncomeRecord],
    recurring_payments: Iterable[RecurringPaymentRecord],
    reporting_currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    base_currency: str = BASE_CURRENCY,
    unsupported: Optional[list[ConversionResult]] = None,
) -> float:
    """
    Monthly Recurring Revenue.

    MRR = operational income (partner contributions excluded) converted to
    the reporting currency + recurring fees normalized to a monthly value
    (weekly x4, biweekly x2, quarterly /3, annual /12, ...).

    ``unsupported`` collects the unsupported conversions of recurring
    payments. Manual incomes are left out of it: ``unify_records()``
    already reports them.
    """
    recurring = sum(
        monthly_equivalent(
            _to_reporting(
                p.amount, p.currency, reporting_currency, rates, base_currency,
                unsupported,
            ),
            p.frequency,
        )
        for p in recurring_payments
    )
    return operational_income(incomes, reporting_currency, rates, base_currency) + recurring


def compute_metrics(
    items: Iterable[CashFlowItem],
    monthly: Sequence[MonthlyBucket],
    window: int = 6,
) -> CashFlowMetrics:
    """
    Build the metrics object for a set of deduplicated items.

    ``current_balance`` is always the sum of signed amounts of ``items``,
    independent of the balance order used for display.
    """
    items = list(items)
    total_income = sum(i.amount for i in items if i.type == "Income")
    total_expense = sum(i.amount for i in items if i.type == "Expense")
    current_balance = total_income - total_expense
    avg_income, avg_expense = average_monthly(monthly, window)

    return CashFlowMetrics(
        total_income=total_income,
        total_expense=total_expense,
        current_balance=current_balance,
        avg_income=avg_income,
        avg_expense=avg_expense,
        burn_rate=avg_expense,
        runway=compute_runway(current_balance, avg_expense),
    )


def _trend(current: float, previous: Optional[float]) -> Trend:
    if previous is None or current == previous:
        return "neutral"
    return "up" if current > previous else "down"


def compute_kpis(
    metrics: CashFlowMetrics,
    mrr: float,
    operational_income_total: float,
    active_clients: int = 0,
    active_projects: int = 0,
    current_period_income: Optional[float] = None,
    previous_period_income: Optional[float] = None,
    previous_burn_rate: Optional[float] = None,
    previous_income: Optional[float] = None,
    previous_expense: Optional[float] = None,
    current_period_clients: Optional[int] = None,
    previous_active_clients: Optional[int] = None,
    marketing_expense: Optional[float] = None,
    client_lifetime_months: float = CLIENT_LIFETIME_MONTHS,
    currency: str = BASE_CURRENCY,
) -> list[KpiResult]:
    """
    Compute the dashboard KPI list.

    Profit margin is net income over operational income. Ratios whose
    denominator is zero fall back to 0 rather than raising.

    Trends compare with the previous period when its figures are given
    (``previous_*`` arguments) and are neutral otherwise:

    - MRR is "up" only when it exceeds the previous operational income,
    - profit margin compares with ``(previous_income - previous_expense)``
      over the previous operational income,
    - active clients follow the variation from ``previous_active_clients``
      to ``current_period_clients`` (``active_clients`` when not given).

    Marketing ROI (operational income / marketing expense) is only part of
    the list when there is marketing expense.
    """
    net_income = metrics.total_income - metrics.total_expense
    profit_margin = (
        net_income / operational_income_total * 100.0
        if operational_income_total > 0
        else 0.0
    )
    previous_margin: Optional[float] = None
    if (
        previous_income is not None
        and previous_expense is not None
        and previous_period_income is not None
        and previous_period_income > 0
    ):
        previous_margin = (
            (previous_income - previous_expense) / previous_period_income * 100.0
        )

    average_ticket = (
        operational_income_total / active_clients if active_clients > 0 else 0.0
    )
    projects_per_client = active_projects / active_clients if active_clients > 0 else 0.0
    income_variation = (
        monthly_variation(current_period_income, previous_period_income)
        if current_period_income is not None and previous_period_income is not None
        else 0.0
    )
    clients_now = active_clients if current_period_clients is None else current_period_clients
    clients_variation = (
        monthly_variation(clients_now, previous_active_clients)
        if previous_active_clients is not None
        else 0.0
    )

    if previous_period_income is None:
        mrr_trend: Trend = "neutral"
    else:
        mrr_trend = "up" if mrr > previous_period_income else "down"

    runway = metrics.runway
    if runway.exceeds(6):
        runway_trend: Trend = "up"
    elif runway.months < 3:
        runway_trend = "down"
    else:
        runway_trend = "neutral"

    kpis = [
        KpiResult(
            "mrr", "MRR", mrr, currency, mrr_trend, "Monthly recurring revenue",
        ),
        KpiResult("arr", "ARR", mrr * 12, currency, "neutral", "MRR x 12"),
        KpiResult(
            "profit_margin", "Profit margin", profit_margin, "%",
            _trend(profit_margin, previous_margin),
            "Net income / operational income",
            previous_value=previous_margin,
        ),
        KpiResult(
            "active_clients", "Active clients", float(active_clients), "clients",
            _trend(clients_variation, 0.0),
            "Clients with income in the period",
        ),
        KpiResult(
            "active_projects", "Active projects", float(active_projects), "projects",
            "neutral", "Projects with paid installments",
        ),
        KpiResult(
            "projects_per_client", "Projects per client", projects_per_client, "x",
            "neutral", "Active projects / active clients",
        ),
    ]
    if marketing_expense is not None and marketing_expense > 0:
        marketing_roi = operational_income_total / marketing_expense
        kpis.append(
            KpiResult(
                "marketing_roi", "Marketing ROI", marketing_roi, "x",
                "up" if marketing_roi > 1 else "down",
                "Operational income / marketing expense",
            )
        )
    kpis += [
        KpiResult(
            "average_ticket", "Average ticket", average_ticket, currency, "neutral",
            "Operational income / active clients",
        ),
        KpiResult(
            "ltv", "Lifetime value (LTV)", average_ticket * client_lifetime_months,
            currency, "neutral",
            f"Average ticket x {client_lifetime_months:g} months",
        ),
        KpiResult(
            "cash_balance", "Cash balance", metrics.current_balance, currency,
            "up" if metrics.current_balance > 0 else "down",
            "Accumulated balance",
        ),
        KpiResult(
            "runway", "Runway", runway.months, "months", runway_trend,
            "Cash balance / monthly burn rate",
        ),
        KpiResult(
            "burn_rate", "Monthly burn rate", metrics.burn_rate, currency,
            _trend(metrics.burn_rate, previous_burn_rate),
            "Average monthly expense",
            previous_value=previous_burn_rate,
        ),
        KpiResult(
            "income_variation", "Income variation", income_variation, "%",
            _trend(income_variation, 0.0),
            "Variation vs previous period",
        ),
    ]
    return kpis
