# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record unifier for SMB CashFlow.

Maps the three heterogeneous source record sets into a single list of
``CashFlowItem`` expressed in the reporting currency.

Mapping rules
-------------
1) Manual income
   - type=Income, source=ManualIncome
   - date = nominal date
   - category = recorded income type
   - source_id = native id (no offset)

2) Project payment (status Paid only)
   - type=Income, source=ProjectPayment
   - date = paid date if present, else nominal date
   - description = "<project> - <Implementation|Recurring> Fee"
     (+ " (Installment N)" when an installment number exists)
   - category = "Implementation Income" | "Recurring Income"
   - source_id = native id + 100000

3) Expense (status Paid only)
   - type=Expense, source=Expense
   - date = paid date if present, else nominal date
   - source_id = native id + 200000

Every amount goes through the currency normalizer. ``original_amount`` and
``original_currency`` are kept only when a conversion actually happened.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Optional

from .currency import BASE_CURRENCY, ConversionResult, convert
from .records import (
    DEFAULT_CATEGORY,
    DEFAULT_PAYMENT_METHOD,
    EXPENSE_ID_OFFSET,
    PROJECT_PAYMENT_ID_OFFSET,
    CashFlowItem,
    ExpenseRecord,
    ManualIncomeRecord,
    ProjectPaymentRecord,
)

# Status labels meaning "paid" (English and Spanish).
PAID_STATUSES: frozenset[str] = frozenset({"paid", "pagado"})

_RECURRING_PAYMENT_TYPES = frozenset({"recurring", "recurrente"})

IMPLEMENTATION_CATEGORY = "Implementation Income"
RECURRING_CATEGORY = "Recurring Income"


def is_paid(status: Optional[str]) -> bool:
    """Return True if ``status`` denotes a paid record (case-insensitive)."""
    return str(status or "").strip().lower() in PAID_STATUSES


def is_recurring_payment(payment_type: Optional[str]) -> bool:
    return str(payment_type or "").strip().lower() in _RECURRING_PAYMENT_TYPES


def payment_description(payment: ProjectPaymentRecord) -> str:
    """Build the synthesized description of a project payment."""
    fee = "Recurring Fee" if is_recurring_payment(payment.type) else "Implementation Fee"
    label = f"{payment.project_name} - {fee}"
    if payment.installment_number:
        label += f" (Installment {payment.installment_number})"
    return label


def _text(value: Optional[str], default: str) -> str:
    text = str(value).strip() if value is not None else ""
    return text or default


class _Converter:
    """Small helper bundling conversion settings and unsupported-pair tracking."""

    def __init__(
        self,
        reporting_currency: str,
        rates: Optional[Mapping[str, float]],
        base_currency: str,
        unsupported: Optional[list[ConversionResult]],
    ) -> None:
        self.reporting_currency = reporting_currency
        self.rates = rates
        self.base_currency = base_currency
        self.unsupported = unsupported

    def __call__(self, amount: float, currency: str) -> dict:
        result = convert(
            abs(float(amount)),
            currency or self.reporting_currency,
            self.reporting_currency,
            rates=self.rates,
            base_currency=self.base_currency,
        )
        if not result.converted and self.unsupported is not None:
            self.unsupported.append(result)

        fields: dict = {"amount": result.amount}
        if result.changed_currency:
            fields["original_amount"] = result.original_amount
            fields["original_currency"] = result.from_currency
        return fields


def unify_records(
    incomes: Iterable[ManualIncomeRecord],
    payments: Iterable[ProjectPaymentRecord],
    expenses: Iterable[ExpenseRecord],
    reporting_currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    base_currency: str = BASE_CURRENCY,
    unsupported: Optional[list[ConversionResult]] = None,
) -> list[CashFlowItem]:
    """
    Unify manual incomes, paid project payments and paid expenses.

    Args:
        incomes: Manual income records.
        payments: Project payment records (non-paid rows are skipped).
        expenses: Caused expense records (non-paid rows are skipped).
        reporting_currency: Currency every amount is expressed in.
        rates: Optional fixed rate table (see ``currency.convert``).
        base_currency: Currency the rate table is expressed against.
        unsupported: Optional list collecting the ConversionResult of every
            unsupported currency pair met during unification.

    Returns:
        A new list of CashFlowItem: manual incomes first, then payments,
        then expenses, each in input order. ``balance`` is not set yet.
    """
    to_reporting = _Converter(reporting_currency, rates, base_currency, unsupported)
    items: list[CashFlowItem] = []

    for income in incomes:
        items.append(
            CashFlowItem(
                id=int(income.id),
                date=income.date,
                description=_text(income.description, ""),
                category=_text(income.type, DEFAULT_CATEGORY),
                payment_method=_text(income.payment_method, DEFAULT_PAYMENT_METHOD),
                type="Income",
                source="ManualIncome",
                source_id=int(income.id),
                client=_text(income.client, "") or None,
                **to_reporting(income.amount, income.currency),
            )
        )

    for payment in payments:
        if not is_paid(payment.status):
            continue
        offset_id = int(payment.id) + PROJECT_PAYMENT_ID_OFFSET
        category = (
            RECURRING_CATEGORY
            if is_recurring_payment(payment.type)
            else IMPLEMENTATION_CATEGORY
        )
        items.append(
            CashFlowItem(
                id=offset_id,
                date=payment.paid_date or payment.date,
                description=payment_description(payment),
                category=category,
                payment_method=DEFAULT_PAYMENT_METHOD,
                type="Income",
                source="ProjectPayment",
                source_id=offset_id,
                client=_text(payment.client_name, "") or None,
                **to_reporting(payment.amount, payment.currency),
            )
        )

    for expense in expenses:
        if not is_paid(expense.status):
            continue
        offset_id = int(expense.id) + EXPENSE_ID_OFFSET
        items.append(
            CashFlowItem(
                id=offset_id,
                date=expense.paid_date or expense.date,
                description=_text(expense.description, ""),
                category=_text(expense.category, DEFAULT_CATEGORY),
                payment_method=_text(expense.payment_method, DEFAULT_PAYMENT_METHOD),
                type="Expense",
                source="Expense",
                source_id=offset_id,
                **to_reporting(expense.amount, expense.currency),
            )
        )

    return items
