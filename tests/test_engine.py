from datetime import date

import pytest

import smb_cashflow.engine as engine
from smb_cashflow.engine import (
    CashFlowFilter,
    aggregate_by_category,
    aggregate_by_client,
    aggregate_monthly,
    filter_items,
)
from smb_cashflow.records import CashFlowItem


def _item(item_id, day, flow_type, amount, category="Misc", client=None):
    return CashFlowItem(
        id=item_id,
        date=day,
        description=f"item {item_id}",
        category=category,
        payment_method="N/A",
        type=flow_type,
        amount=amount,
        source="ManualIncome" if flow_type == "Income" else "Expense",
        source_id=item_id,
        client=client,
    )


def test_monthly_window_is_zero_filled() -> None:
    """A 12-month window keeps empty months with zero totals."""
    end = date(2024, 12, 31)
    items = [
        _item(i, date(2024, month, 15), "Income", 100.0)
        for i, month in enumerate(range(1, 13), start=1)
        if month not in (3, 7)
    ]

    buckets = aggregate_monthly(items, months=12, end=end)

    assert len(buckets) == 12
    by_key = {b.period_key: b for b in buckets}
    for key in ("2024-03", "2024-07"):
        assert by_key[key].total_income == 0
        assert by_key[key].total_expense == 0
        assert not by_key[key].has_data
    assert by_key["2024-05"].total_income == pytest.approx(100.0)


def test_monthly_buckets_are_newest_first_with_month_net() -> None:
    items = [
        _item(1, date(2024, 3, 2), "Income", 500.0),
        _item(2, date(2024, 3, 20), "Expense", 200.0),
        _item(3, date(2023, 1, 1), "Income", 999.0),  # outside the window
    ]

    buckets = aggregate_monthly(items, months=3, end=date(2024, 4, 10))

    assert [b.period_key for b in buckets] == ["2024-04", "2024-03", "2024-02"]
    march = buckets[1]
    assert march.total_income == pytest.approx(500.0)
    assert march.total_expense == pytest.approx(200.0)
    assert march.balance == pytest.approx(300.0)
    assert sum(b.total_income for b in buckets) == pytest.approx(500.0)


def test_monthly_window_defaults_to_today(monkeypatch) -> None:
    monkeypatch.setattr(engine, "_today", lambda: date(2025, 2, 14))

    buckets = aggregate_monthly([], months=2)

    assert [b.period_key for b in buckets] == ["2025-02", "2025-01"]


def test_monthly_without_window_spans_all_items() -> None:
    items = [
        _item(1, date(2024, 1, 5), "Income", 10.0),
        _item(2, date(2024, 4, 5), "Expense", 5.0),
    ]

    buckets = aggregate_monthly(items, months=None)

    assert [b.period_key for b in buckets] == ["2024-04", "2024-03", "2024-02", "2024-01"]
    assert aggregate_monthly([], months=None) == []


def test_category_aggregation_uses_expenses_sorted_by_total() -> None:
    items = [
        _item(1, date(2024, 1, 1), "Expense", 50.0, category="Software"),
        _item(2, date(2024, 1, 2), "Expense", 300.0, category="Payroll"),
        _item(3, date(2024, 1, 3), "Expense", 70.0, category="Software"),
        _item(4, date(2024, 1, 4), "Income", 1000.0, category="Client"),
    ]

    buckets = aggregate_by_category(items)

    assert [b.label for b in buckets] == ["Payroll", "Software"]
    software = buckets[1]
    assert software.total == pytest.approx(120.0)
    assert software.count == 2
    assert software.average == pytest.approx(60.0)


def test_client_aggregation_skips_items_without_client() -> None:
    items = [
        _item(1, date(2024, 1, 1), "Income", 100.0, client="Acme"),
        _item(2, date(2024, 1, 2), "Income", 300.0, client="Globex"),
        _item(3, date(2024, 1, 3), "Income", 50.0, client="Acme"),
        _item(4, date(2024, 1, 4), "Income", 80.0, client=None),
        _item(5, date(2024, 1, 5), "Expense", 80.0, client="Acme"),
    ]

    buckets = aggregate_by_client(items)

    assert [(b.label, b.total, b.count) for b in buckets] == [
        ("Globex", 300.0, 1),
        ("Acme", 150.0, 2),
    ]


def test_filter_items_by_range_type_and_category() -> None:
    items = [
        _item(1, date(2024, 1, 1), "Income", 1.0, category="Client"),
        _item(2, date(2024, 2, 1), "Expense", 1.0, category="Software"),
        _item(3, date(2024, 3, 1), "Expense", 1.0, category="Payroll"),
    ]

    in_range = filter_items(items, CashFlowFilter(start=date(2024, 2, 1), end=date(2024, 3, 1)))
    expenses = filter_items(items, CashFlowFilter(flow_type="Expense"))
    software = filter_items(items, CashFlowFilter(category="software"))

    assert [i.id for i in in_range] == [2, 3]
    assert [i.id for i in expenses] == [2, 3]
    assert [i.id for i in software] == [2]
    assert filter_items(items) == items
