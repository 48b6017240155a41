# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record shapes for SMB CashFlow.

This module defines the typed dataclasses exchanged between the fetch
boundary (CSV readers, API clients, test fixtures) and the reconciliation
engine:

- ManualIncomeRecord      : income entered by hand (incl. partner contributions),
- ProjectPaymentRecord    : project installment joined with project/client names,
- ExpenseRecord           : caused/realized expense (variable or recurring),
- RecurringPaymentRecord  : recurring fee definition used for MRR,
- CashFlowItem            : the unified record produced by the unifier.

All records are frozen. Pipeline stages never mutate their inputs: the
balance stage, for instance, returns new CashFlowItem instances built with
``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal

FlowType = Literal["Income", "Expense"]
"""Direction of a cash-flow item. The sign of an amount is carried here."""

Source = Literal["ManualIncome", "ProjectPayment", "Expense"]
"""
Provenance of a cash-flow item.

Values
------
- "ManualIncome"   : manual income entry.
- "ProjectPayment" : realized project payment (authoritative for dedup).
- "Expense"        : caused/realized expense.
"""

ExpenseSourceType = Literal["Variable", "Recurring"]

# Offsets applied to native ids so that items coming from different record
# sets never share an identifier.
PROJECT_PAYMENT_ID_OFFSET = 100_000
EXPENSE_ID_OFFSET = 200_000

DEFAULT_PAYMENT_METHOD = "N/A"
DEFAULT_CATEGORY = "Uncategorized"
UNKNOWN_CLIENT = "Unknown client"


@dataclass(frozen=True)
class ManualIncomeRecord:
    """Income entered manually (``type`` is the income type, e.g. 'Client')."""

    id: int
    description: str
    date: date
    amount: float
    type: str
    payment_method: str | None = None
    currency: str = "COP"
    client: str | None = None


@dataclass(frozen=True)
class ProjectPaymentRecord:
    """
    Project payment installment joined with its project and client names.

    ``type`` is either "Implementation" or "Recurring" (the Spanish labels
    "Implementación" and "Recurrente" are accepted by the unifier). ``paid_date``
    is the actual payment date when known, ``date`` the scheduled one.
    """

    id: int
    project_name: str
    client_name: str | None
    date: date
    amount: float
    currency: str
    type: str
    status: str
    paid_date: date | None = None
    installment_number: int | None = None


@dataclass(frozen=True)
class ExpenseRecord:
    """Caused expense. Only rows with status Paid reach the cash flow."""

    id: int
    description: str
    date: date
    amount: float
    currency: str
    category: str | None
    status: str
    payment_method: str | None = None
    paid_date: date | None = None
    source_type: ExpenseSourceType = "Variable"


@dataclass(frozen=True)
class RecurringPaymentRecord:
    """Recurring fee (amount per cycle) used to compute MRR."""

    amount: float
    currency: str
    frequency: str
    type: str = "Recurring"


@dataclass(frozen=True)
class CashFlowItem:
    """
    Unified cash-flow record in the reporting currency.

    Attributes
    ----------
    id:
        Identifier unique across sources (native id + source offset).
    date:
        Effective date: paid date when available, nominal date otherwise.
    amount:
        Non-negative amount in the reporting currency.
    original_amount, original_currency:
        Amount/currency before conversion. Both are None when no
        conversion took place.
    source, source_id:
        Provenance and identifier in the originating record set.
    balance:
        Running balance, assigned by ``balance.apply_running_balance``.
    """

    id: int
    date: date
    description: str
    category: str
    payment_method: str
    type: FlowType
    amount: float
    source: Source
    source_id: int
    client: str | None = None
    original_amount: float | None = None
    original_currency: str | None = None
    balance: float | None = None

    @property
    def signed_amount(self) -> float:
        """Amount with the sign implied by ``type``."""
        return self.amount if self.type == "Income" else -self.amount
