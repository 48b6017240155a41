# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB CashFlow.

This module reads the record sets consumed by the pipeline from CSV files
and writes the unified cash flow back to CSV.

Expected input formats
----------------------
Column names are case-insensitive; columns in brackets are optional.

1) Manual incomes
       id, description, date, amount, type,
       [payment_method, currency, client]

2) Project payments
       id, project_name, client_name, date, amount, currency, type, status,
       [paid_date, installment_number]

   ``project`` and ``client`` are accepted as aliases for ``project_name``
   and ``client_name``.

3) Expenses
       id, description, date, amount, currency, category, status,
       [payment_method, paid_date, source_type]

4) Recurring payments (MRR input)
       amount, currency, frequency, [type]

Dates are parsed strictly (YYYY-MM-DD) and amounts must be numeric. If a
file does not contain the required columns or holds invalid values, a clear
ValueError is raised.

Export format
-------------
``write_cash_flow_csv`` writes one header row followed by one row per item:

    Date, Description, Type, Category, PaymentMethod, Amount(<CUR>),
    OriginalAmount, OriginalCurrency, Balance
"""

import os
from collections.abc import Iterable
from typing import Any, Optional, Union

import pandas as pd

from .currency import BASE_CURRENCY
from .records import (
    CashFlowItem,
    ExpenseRecord,
    ManualIncomeRecord,
    ProjectPaymentRecord,
    RecurringPaymentRecord,
)

PathLike = Union[str, "os.PathLike[str]"]

INCOME_COLUMNS = {"id", "description", "date", "amount", "type"}
PAYMENT_COLUMNS = {
    "id",
    "project_name",
    "client_name",
    "date",
    "amount",
    "currency",
    "type",
    "status",
}
EXPENSE_COLUMNS = {"id", "description", "date", "amount", "currency", "category", "status"}
RECURRING_COLUMNS = {"amount", "currency", "frequency"}

_DESCRIPTION_ALIASES = {"label": "description"}
_PAYMENT_ALIASES = {"project": "project_name", "client": "client_name"}


def _read_table(
    path: PathLike,
    required: set[str],
    label: str,
    aliases: Optional[dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Read a CSV file, normalize its headers and check the required columns.

    Raises:
        ValueError: if a required column is missing.
    """
    df = pd.read_csv(path)
    df.columns = [str(c).lower().strip() for c in df.columns]

    for alias, canonical in (aliases or {}).items():
        if alias in df.columns and canonical not in df.columns:
            df = df.rename(columns={alias: canonical})

    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {label} structure. Missing column(s): "
            f"{', '.join(sorted(missing))}. Expected: {', '.join(sorted(required))} "
            "(column names are case-insensitive)."
        )
    return df


def _parse_dates(df: pd.DataFrame, column: str, required: bool = True) -> None:
    if column not in df.columns:
        if required:
            raise ValueError(f"Missing '{column}' column.")
        df[column] = pd.NaT
        return
    try:
        df[column] = pd.to_datetime(df[column], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Invalid values in '{column}' column.") from exc
    if required and df[column].isna().any():
        raise ValueError(f"Missing values in '{column}' column.")


def _parse_numbers(df: pd.DataFrame, *columns: str) -> None:
    for col in columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")
        if df[col].isna().any():
            raise ValueError(f"Invalid numeric values in '{col}' column.")


def _text(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _day(value: Any):
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).date()


def _int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def read_incomes(path: PathLike) -> list[ManualIncomeRecord]:
    """Read manual income records from a CSV file."""
    df = _read_table(path, INCOME_COLUMNS, "incomes", aliases=_DESCRIPTION_ALIASES)
    _parse_dates(df, "date")
    _parse_numbers(df, "id", "amount")

    return [
        ManualIncomeRecord(
            id=int(row["id"]),
            description=_text(row["description"]) or "",
            date=_day(row["date"]),
            amount=float(row["amount"]),
            type=_text(row["type"]) or "",
            payment_method=_text(row.get("payment_method")),
            currency=_text(row.get("currency")) or BASE_CURRENCY,
            client=_text(row.get("client")),
        )
        for row in df.to_dict("records")
    ]


def read_project_payments(path: PathLike) -> list[ProjectPaymentRecord]:
    """Read project payment records from a CSV file (all statuses)."""
    df = _read_table(path, PAYMENT_COLUMNS, "project payments", aliases=_PAYMENT_ALIASES)
    _parse_dates(df, "date")
    _parse_dates(df, "paid_date", required=False)
    _parse_numbers(df, "id", "amount")

    return [
        ProjectPaymentRecord(
            id=int(row["id"]),
            project_name=_text(row["project_name"]) or "",
            client_name=_text(row["client_name"]),
            date=_day(row["date"]),
            amount=float(row["amount"]),
            currency=_text(row["currency"]) or BASE_CURRENCY,
            type=_text(row["type"]) or "",
            status=_text(row["status"]) or "",
            paid_date=_day(row.get("paid_date")),
            installment_number=_int(row.get("installment_number")),
        )
        for row in df.to_dict("records")
    ]


def read_expenses(path: PathLike) -> list[ExpenseRecord]:
    """Read expense records from a CSV file (all statuses)."""
    df = _read_table(path, EXPENSE_COLUMNS, "expenses", aliases=_DESCRIPTION_ALIASES)
    _parse_dates(df, "date")
    _parse_dates(df, "paid_date", required=False)
    _parse_numbers(df, "id", "amount")

    return [
        ExpenseRecord(
            id=int(row["id"]),
            description=_text(row["description"]) or "",
            date=_day(row["date"]),
            amount=float(row["amount"]),
            currency=_text(row["currency"]) or BASE_CURRENCY,
            category=_text(row["category"]),
            status=_text(row["status"]) or "",
            payment_method=_text(row.get("payment_method")),
            paid_date=_day(row.get("paid_date")),
            source_type="Recurring"
            if (_text(row.get("source_type")) or "").lower() == "recurring"
            else "Variable",
        )
        for row in df.to_dict("records")
    ]


def read_recurring_payments(path: PathLike) -> list[RecurringPaymentRecord]:
    """Read recurring fee definitions (MRR input) from a CSV file."""
    df = _read_table(path, RECURRING_COLUMNS, "recurring payments")
    _parse_numbers(df, "amount")

    return [
        RecurringPaymentRecord(
            amount=float(row["amount"]),
            currency=_text(row["currency"]) or BASE_CURRENCY,
            frequency=_text(row["frequency"]) or "monthly",
            type=_text(row.get("type")) or "Recurring",
        )
        for row in df.to_dict("records")
    ]


def cash_flow_export_frame(
    items: Iterable[CashFlowItem],
    currency: str = BASE_CURRENCY,
) -> pd.DataFrame:
    """Build the export DataFrame (one row per item, export column names)."""
    amount_col = f"Amount({currency})"
    columns = [
        "Date",
        "Description",
        "Type",
        "Category",
        "PaymentMethod",
        amount_col,
        "OriginalAmount",
        "OriginalCurrency",
        "Balance",
    ]
    rows = [
        {
            "Date": item.date.isoformat(),
            "Description": item.description,
            "Type": item.type,
            "Category": item.category,
            "PaymentMethod": item.payment_method,
            amount_col: item.amount,
            "OriginalAmount": item.original_amount,
            "OriginalCurrency": item.original_currency,
            "Balance": item.balance,
        }
        for item in items
    ]
    return pd.DataFrame(rows, columns=columns)


def write_cash_flow_csv(
    items: Iterable[CashFlowItem],
    path: PathLike,
    currency: str = BASE_CURRENCY,
) -> None:
    """
    Write cash-flow items to a comma-separated file with a single header row.

    Items are written in the order given (most-recent-first after the
    balance stage). Missing original amounts/currencies are left empty.
    """
    cash_flow_export_frame(items, currency).to_csv(path, index=False)
