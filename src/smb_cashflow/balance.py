# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Running balance for SMB CashFlow.

Items are displayed most-recent-first. Two balance semantics exist:

- "descending" (default): the cumulative sum is computed in display order,
  newest item first. The balance of item N is the balance of item N-1 plus
  (Income) or minus (Expense) its amount. This reproduces the historical
  reports; it is NOT a chronological running total.
- "chronological": the cumulative sum is computed oldest first, so every
  item carries the balance as of its own date, and the newest item holds
  the current balance. The returned list is still most-recent-first.

The balance is recomputed in full on every call and new items are returned.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Literal

from .records import CashFlowItem

BalanceOrder = Literal["descending", "chronological"]


def sort_most_recent_first(items: Iterable[CashFlowItem]) -> list[CashFlowItem]:
    """Stable sort by date, newest first. Ties keep their input order."""
    return sorted(items, key=lambda item: item.date, reverse=True)


def apply_running_balance(
    items: Iterable[CashFlowItem],
    order: BalanceOrder = "descending",
) -> list[CashFlowItem]:
    """
    Return the items sorted most-recent-first with ``balance`` assigned.

    Args:
        items: Deduplicated cash-flow items.
        order: "descending" (display-order cumulative sum) or
            "chronological" (true running total as of each date).

    Raises:
        ValueError: if ``order`` is unknown.
    """
    display = sort_most_recent_first(items)

    if order == "descending":
        sequence = display
    elif order == "chronological":
        sequence = list(reversed(display))
    else:
        raise ValueError(f"Unknown balance order: {order!r}")

    balances: list[float] = []
    running = 0.0
    for item in sequence:
        running += item.signed_amount
        balances.append(running)

    if order == "chronological":
        balances.reverse()

    return [replace(item, balance=bal) for item, bal in zip(display, balances)]
