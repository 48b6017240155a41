# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Reconciliation pipeline for SMB CashFlow.

``run_pipeline()`` chains the stages of the engine:

    unify -> deduplicate -> running balance -> filter -> aggregate -> metrics

It is stateless and idempotent: every call recomputes everything from the
immutable inputs it receives and returns a new ``CashFlowReport``. Running
it twice on the same inputs yields identical reports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .balance import BalanceOrder, apply_running_balance
from .config import AppConfig
from .currency import BASE_CURRENCY, DEFAULT_RATES, ConversionResult
from .dedup import KEY_STRATEGIES, deduplicate
from .engine import (
    CashFlowFilter,
    ClientBucket,
    CategoryBucket,
    MonthlyBucket,
    aggregate_by_category,
    aggregate_by_client,
    aggregate_monthly,
    filter_items,
)
from .metrics import (
    CashFlowMetrics,
    MARKETING_CATEGORIES,
    KpiResult,
    calculate_mrr,
    compute_kpis,
    compute_metrics,
    is_operational_income,
)
from .periods import month_bounds
from .records import (
    CashFlowItem,
    ExpenseRecord,
    ManualIncomeRecord,
    ProjectPaymentRecord,
    RecurringPaymentRecord,
)
from .unifier import is_paid, unify_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineInputs:
    """The record sets fetched for one pipeline run."""

    incomes: tuple[ManualIncomeRecord, ...] = ()
    payments: tuple[ProjectPaymentRecord, ...] = ()
    expenses: tuple[ExpenseRecord, ...] = ()
    recurring: tuple[RecurringPaymentRecord, ...] = ()


@dataclass(frozen=True)
class PipelineSettings:
    """Options driving a pipeline run."""

    reporting_currency: str = BASE_CURRENCY
    base_currency: str = BASE_CURRENCY
    rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATES))
    dedup_strategy: str = "day_amount"
    balance_order: BalanceOrder = "descending"
    average_window: int = 6
    trailing_months: Optional[int] = 12
    as_of: Optional[date] = None

    @classmethod
    def from_config(cls, config: AppConfig, as_of: Optional[date] = None) -> "PipelineSettings":
        return cls(
            reporting_currency=config.reporting_currency,
            base_currency=config.base_currency,
            rates=dict(config.rates),
            dedup_strategy=config.dedup_strategy,
            balance_order=config.balance_order,
            average_window=config.average_window,
            trailing_months=config.trailing_months,
            as_of=as_of,
        )


@dataclass(frozen=True)
class CashFlowReport:
    """
    Output of one pipeline run.

    Attributes
    ----------
    items:
        Deduplicated, balanced and filtered items, most-recent-first.
    monthly:
        Monthly buckets, newest-first.
    categories, clients:
        Expense-by-category and income-by-client buckets.
    metrics:
        Headline figures computed on ``items``.
    kpis:
        Dashboard KPI list.
    mrr:
        Monthly recurring revenue in the reporting currency.
    dropped:
        Manual incomes removed as duplicates of a project payment.
    unsupported:
        Conversions that could not be performed (amounts left unchanged).
    """

    items: list[CashFlowItem]
    monthly: list[MonthlyBucket]
    categories: list[CategoryBucket]
    clients: list[ClientBucket]
    metrics: CashFlowMetrics
    kpis: list[KpiResult]
    mrr: float
    dropped: list[CashFlowItem] = field(default_factory=list)
    unsupported: list[ConversionResult] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        """User-facing notices about unsupported currency conversions."""
        return [
            f"Unsupported currency pair {r.from_currency or '?'} -> {r.to_currency}: "
            f"amount {r.original_amount:,.2f} left unconverted"
            for r in self.unsupported
        ]


def _operational_income_between(
    items: list[CashFlowItem], start: date, end: date
) -> float:
    return sum(
        item.amount
        for item in items
        if item.type == "Income"
        and start <= item.date <= end
        and is_operational_income(item.category)
    )


def _clients_between(items: list[CashFlowItem], start: date, end: date) -> int:
    return len(
        {
            item.client
            for item in items
            if item.type == "Income" and item.client and start <= item.date <= end
        }
    )


def _build_kpis(
    inputs: PipelineInputs,
    items: list[CashFlowItem],
    monthly: list[MonthlyBucket],
    clients: list[ClientBucket],
    metrics: CashFlowMetrics,
    mrr: float,
    currency: str,
) -> list[KpiResult]:
    operational_total = sum(
        i.amount for i in items if i.type == "Income" and is_operational_income(i.category)
    )
    active_projects = len(
        {p.project_name for p in inputs.payments if is_paid(p.status) and p.project_name}
    )
    marketing_expense = sum(
        i.amount
        for i in items
        if i.type == "Expense" and i.category.strip().casefold() in MARKETING_CATEGORIES
    )

    previous: dict[str, Optional[float]] = {}
    current_income = current_clients = None
    if len(monthly) >= 2:
        current_bounds = month_bounds(monthly[0].year, monthly[0].month)
        previous_bounds = month_bounds(monthly[1].year, monthly[1].month)
        current_income = _operational_income_between(items, *current_bounds)
        current_clients = _clients_between(items, *current_bounds)
        previous = {
            "previous_period_income": _operational_income_between(items, *previous_bounds),
            "previous_active_clients": _clients_between(items, *previous_bounds),
            "previous_income": monthly[1].total_income,
            "previous_expense": monthly[1].total_expense,
            "previous_burn_rate": monthly[1].total_expense,
        }

    return compute_kpis(
        metrics,
        mrr=mrr,
        operational_income_total=operational_total,
        active_clients=len(clients),
        active_projects=active_projects,
        current_period_income=current_income,
        current_period_clients=current_clients,
        marketing_expense=marketing_expense,
        currency=currency,
        **previous,
    )


def run_pipeline(
    inputs: PipelineInputs,
    settings: Optional[PipelineSettings] = None,
    cash_filter: Optional[CashFlowFilter] = None,
) -> CashFlowReport:
    """
    Run the full reconciliation pipeline on freshly fetched inputs.

    Args:
        inputs: Record sets fetched for this run.
        settings: Pipeline options (defaults to COP reporting, USD=4000).
        cash_filter: Optional filter applied after the running balance.

    Returns:
        A new CashFlowReport.

    Raises:
        ValueError: if the dedup strategy or balance order is unknown.
    """
    settings = settings or PipelineSettings()

    try:
        event_key = KEY_STRATEGIES[settings.dedup_strategy]
    except KeyError:
        raise ValueError(f"Unknown dedup strategy: {settings.dedup_strategy!r}") from None

    unsupported: list[ConversionResult] = []
    unified = unify_records(
        inputs.incomes,
        inputs.payments,
        inputs.expenses,
        reporting_currency=settings.reporting_currency,
        rates=settings.rates,
        base_currency=settings.base_currency,
        unsupported=unsupported,
    )

    dedup = deduplicate(unified, event_key=event_key)
    balanced = apply_running_balance(dedup.items, order=settings.balance_order)
    items = filter_items(balanced, cash_filter)

    end = settings.as_of
    if cash_filter is not None and cash_filter.end is not None:
        end = cash_filter.end

    monthly = aggregate_monthly(items, months=settings.trailing_months, end=end)
    categories = aggregate_by_category(items)
    clients = aggregate_by_client(items)
    metrics = compute_metrics(items, monthly, window=settings.average_window)

    mrr = calculate_mrr(
        inputs.incomes,
        inputs.recurring,
        reporting_currency=settings.reporting_currency,
        rates=settings.rates,
        base_currency=settings.base_currency,
        unsupported=unsupported,
    )
    kpis = _build_kpis(
        inputs, items, monthly, clients, metrics, mrr, settings.reporting_currency
    )

    logger.debug(
        "Pipeline run: %d unified, %d dropped, %d kept after filter",
        len(unified),
        len(dedup.dropped),
        len(items),
    )

    return CashFlowReport(
        items=items,
        monthly=monthly,
        categories=categories,
        clients=clients,
        metrics=metrics,
        kpis=kpis,
        mrr=mrr,
        dropped=dedup.dropped,
        unsupported=unsupported,
    )
