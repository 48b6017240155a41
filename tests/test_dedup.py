from datetime import date

from smb_cashflow.dedup import (
    day_amount_description_key,
    deduplicate,
    descriptions_related,
)
from smb_cashflow.records import CashFlowItem


def _item(source, source_id, description, amount=5_000_000, day=date(2024, 3, 10)):
    return CashFlowItem(
        id=source_id,
        date=day,
        description=description,
        category="Test",
        payment_method="N/A",
        type="Expense" if source == "Expense" else "Income",
        amount=amount,
        source=source,
        source_id=source_id,
    )


def test_descriptions_related_is_case_insensitive_substring() -> None:
    assert descriptions_related(" Website - Implementation Fee", "payment for WEBSITE - implementation fee")
    assert not descriptions_related("Hosting", "Website - Implementation Fee")


def test_manual_income_duplicating_payment_is_dropped() -> None:
    manual = _item("ManualIncome", 1, "Payment for Website - Implementation Fee")
    payment = _item("ProjectPayment", 100_001, "Website - Implementation Fee")

    result = deduplicate([manual, payment])

    assert result.items == [payment]
    assert result.dropped == [manual]


def test_unrelated_descriptions_both_survive() -> None:
    manual = _item("ManualIncome", 1, "Partner loan")
    payment = _item("ProjectPayment", 100_001, "Website - Implementation Fee")

    result = deduplicate([manual, payment])

    assert len(result.items) == 2
    assert result.dropped == []


def test_manual_incomes_colliding_with_each_other_both_survive() -> None:
    first = _item("ManualIncome", 1, "Consulting")
    second = _item("ManualIncome", 2, "Consulting")

    result = deduplicate([first, second])

    assert result.items == [first, second]


def test_expenses_are_never_deduplicated_against_incomes() -> None:
    expense = _item("Expense", 200_001, "Website - Implementation Fee")
    payment = _item("ProjectPayment", 100_001, "Website - Implementation Fee")

    result = deduplicate([payment, expense])

    assert result.items == [expense, payment]


def test_different_amount_or_day_is_not_a_collision() -> None:
    payment = _item("ProjectPayment", 100_001, "Website - Implementation Fee")
    other_amount = _item("ManualIncome", 1, "Website - Implementation Fee", amount=4_999_999)
    other_day = _item("ManualIncome", 2, "Website - Implementation Fee", day=date(2024, 3, 11))

    result = deduplicate([payment, other_amount, other_day])

    assert len(result.items) == 3


def test_payment_collision_last_one_wins() -> None:
    first = _item("ProjectPayment", 100_001, "Website - Implementation Fee")
    second = _item("ProjectPayment", 100_002, "App - Implementation Fee")

    result = deduplicate([first, second])

    assert result.items == [second]


def test_strict_key_keeps_related_but_different_descriptions() -> None:
    manual = _item("ManualIncome", 1, "Payment for Website - Implementation Fee")
    payment = _item("ProjectPayment", 100_001, "Website - Implementation Fee")

    result = deduplicate([manual, payment], event_key=day_amount_description_key)

    assert len(result.items) == 2
