# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income deduplication for SMB CashFlow.

When a project payment is marked as paid, the application also records an
income entry for it. The same economic event can therefore appear twice:
once as a manual income and once as a realized project payment.

Algorithm
---------
Items are inserted into a keyed table in a fixed precedence order:

1. Expense items, unconditionally. They live in their own namespace and are
   never subject to this dedup path.
2. ProjectPayment items, overwriting any existing key collision: project
   payments are authoritative.
3. ManualIncome items:
   - unseen key                     -> inserted;
   - key held by a ProjectPayment   -> if the descriptions are unrelated
     (neither contains the other) the collision is considered coincidental
     and both are kept (the manual item goes under a suffixed key);
     otherwise the manual item is dropped as a duplicate;
   - key held by another manual item -> both are kept (suffixed key).

Event identity
--------------
The key is produced by a pluggable ``EventKey`` callable. The default,
``day_amount_key``, uses (date truncated to day, amount in cents); the
description only takes part through the relatedness test. Swapping the
strategy (for instance for an explicit payment/income foreign key) leaves
the rest of the pipeline untouched.

The substring heuristic is currency-insensitive: amounts are compared after
normalization to the reporting currency.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable

from .records import CashFlowItem

logger = logging.getLogger(__name__)

EventKey = Callable[[CashFlowItem], Hashable]


def _day(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def day_amount_key(item: CashFlowItem) -> Hashable:
    """Default identity: (day, amount rounded to cents)."""
    return (_day(item.date), round(item.amount, 2))


def day_amount_description_key(item: CashFlowItem) -> Hashable:
    """Strict identity: (day, amount rounded to cents, normalized description)."""
    return (_day(item.date), round(item.amount, 2), item.description.strip().casefold())


KEY_STRATEGIES: dict[str, EventKey] = {
    "day_amount": day_amount_key,
    "day_amount_description": day_amount_description_key,
}


def descriptions_related(a: str, b: str) -> bool:
    """True if one description contains the other (case-insensitive)."""
    left = a.strip().casefold()
    right = b.strip().casefold()
    return left in right or right in left


@dataclass(frozen=True)
class DedupResult:
    """Surviving items (in insertion order) and the manual items dropped."""

    items: list[CashFlowItem]
    dropped: list[CashFlowItem] = field(default_factory=list)


def deduplicate(
    items: Iterable[CashFlowItem],
    event_key: EventKey = day_amount_key,
) -> DedupResult:
    """
    Remove manual incomes that duplicate a realized project payment.

    Args:
        items: Unified cash-flow items (any order).
        event_key: Identity strategy mapping an item to a hashable key.

    Returns:
        A DedupResult. Survivors are ordered expenses, then project
        payments, then manual incomes (the insertion precedence).
    """
    items = list(items)
    table: dict[Hashable, CashFlowItem] = {}
    dropped: list[CashFlowItem] = []

    # 1) Expenses: own namespace, never deduplicated here.
    for item in items:
        if item.source == "Expense":
            table[("Expense", item.source_id)] = item

    # 2) Project payments: authoritative, last one wins on collision.
    for item in items:
        if item.source != "ProjectPayment":
            continue
        key = ("Income", event_key(item))
        previous = table.get(key)
        if previous is not None:
            logger.warning(
                "Project payment %s overwrites %s (same event key %r)",
                item.source_id,
                previous.source_id,
                key[1],
            )
        table[key] = item

    # 3) Manual incomes.
    for item in items:
        if item.source != "ManualIncome":
            continue
        key = ("Income", event_key(item))
        existing = table.get(key)

        if existing is None:
            table[key] = item
            continue

        if existing.source == "ProjectPayment" and descriptions_related(
            item.description, existing.description
        ):
            logger.info(
                "Manual income %s dropped as duplicate of project payment %s",
                item.source_id,
                existing.source_id,
            )
            dropped.append(item)
            continue

        table[key + ("ManualIncome", item.source_id)] = item

    return DedupResult(items=list(table.values()), dropped=dropped)
