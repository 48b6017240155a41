from datetime import date

import pytest

from smb_cashflow.engine import MonthlyBucket
from smb_cashflow.metrics import (
    CashFlowMetrics,
    Runway,
    average_monthly,
    calculate_mrr,
    compute_kpis,
    compute_metrics,
    compute_runway,
    monthly_equivalent,
    monthly_variation,
)
from smb_cashflow.records import CashFlowItem, ManualIncomeRecord, RecurringPaymentRecord


def _bucket(year, month, income, expense):
    return MonthlyBucket(
        period_key=f"{year:04d}-{month:02d}",
        year=year,
        month=month,
        total_income=income,
        total_expense=expense,
        balance=income - expense,
    )


def _income(amount, income_type="Client", currency="COP"):
    return ManualIncomeRecord(
        id=1,
        description="x",
        date=date(2024, 1, 1),
        amount=amount,
        type=income_type,
        currency=currency,
    )


def test_runway_sentinel_when_no_expense() -> None:
    runway = compute_runway(1_000_000, 0)

    assert runway == Runway.infinite()
    assert runway.is_infinite
    assert runway.display() == "∞"
    assert runway.exceeds(10_000)


def test_runway_is_balance_over_average_expense() -> None:
    runway = compute_runway(1000, 250)

    assert runway.months == pytest.approx(4.0)
    assert runway.display() == "4.0"
    assert runway.exceeds(3)
    assert not runway.exceeds(6)


def test_average_monthly_skips_empty_buckets() -> None:
    buckets = [
        _bucket(2024, 6, 300, 100),
        _bucket(2024, 5, 0, 0),
        _bucket(2024, 4, 100, 50),
        _bucket(2024, 3, 9_999, 9_999),
    ]

    assert average_monthly(buckets, window=3) == pytest.approx((200.0, 75.0))
    assert average_monthly([_bucket(2024, 1, 0, 0)]) == (0.0, 0.0)


def test_compute_metrics_conserves_balance() -> None:
    items = [
        CashFlowItem(1, date(2024, 3, 1), "a", "c", "N/A", "Income", 500.0, "ManualIncome", 1),
        CashFlowItem(2, date(2024, 3, 2), "b", "c", "N/A", "Expense", 200.0, "Expense", 200_002),
    ]
    monthly = [_bucket(2024, 3, 500, 200)]

    metrics = compute_metrics(items, monthly)

    assert metrics.total_income == pytest.approx(500.0)
    assert metrics.total_expense == pytest.approx(200.0)
    assert metrics.current_balance == pytest.approx(300.0)
    assert metrics.burn_rate == pytest.approx(200.0)
    assert metrics.runway.months == pytest.approx(1.5)


def test_compute_metrics_without_expense_has_infinite_runway() -> None:
    items = [
        CashFlowItem(1, date(2024, 3, 1), "a", "c", "N/A", "Income", 500.0, "ManualIncome", 1),
    ]

    metrics = compute_metrics(items, [_bucket(2024, 3, 500, 0)])

    assert metrics.runway.is_infinite


@pytest.mark.parametrize(
    "frequency, expected",
    [
        ("weekly", 400.0),
        ("Quincenal", 200.0),
        ("monthly", 100.0),
        ("quarterly", 100.0 / 3),
        ("annual", 100.0 / 12),
        ("whenever", 100.0),
    ],
)
def test_monthly_equivalent(frequency, expected) -> None:
    assert monthly_equivalent(100.0, frequency) == pytest.approx(expected)


def test_mrr_excludes_partner_contributions_and_converts() -> None:
    incomes = [
        _income(1_000_000),
        _income(5_000_000, income_type="Aporte de socio"),
        _income(100, currency="USD"),
    ]
    recurring = [RecurringPaymentRecord(amount=300_000, currency="COP", frequency="quarterly")]

    mrr = calculate_mrr(incomes, recurring)

    assert mrr == pytest.approx(1_000_000 + 400_000 + 100_000)


def test_monthly_variation() -> None:
    assert monthly_variation(150, 100) == pytest.approx(50.0)
    assert monthly_variation(150, 0) == 0.0


def test_kpis_derive_from_metrics() -> None:
    metrics = CashFlowMetrics(
        total_income=1000.0,
        total_expense=600.0,
        current_balance=400.0,
        avg_income=1000.0,
        avg_expense=600.0,
        burn_rate=600.0,
        runway=Runway.infinite(),
    )

    kpis = {
        k.key: k
        for k in compute_kpis(
            metrics,
            mrr=250.0,
            operational_income_total=800.0,
            active_clients=4,
            active_projects=6,
            current_period_income=120.0,
            previous_period_income=100.0,
        )
    }

    assert kpis["arr"].value == pytest.approx(3000.0)
    assert kpis["profit_margin"].value == pytest.approx(50.0)
    assert kpis["average_ticket"].value == pytest.approx(200.0)
    assert kpis["projects_per_client"].value == pytest.approx(1.5)
    assert kpis["income_variation"].value == pytest.approx(20.0)
    assert kpis["income_variation"].trend == "up"
    assert kpis["runway"].value is None
    assert kpis["runway"].trend == "up"
    assert kpis["burn_rate"].trend == "neutral"


def test_kpis_with_zero_denominators_fall_back_to_zero() -> None:
    metrics = CashFlowMetrics(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, Runway.infinite())

    kpis = {k.key: k for k in compute_kpis(metrics, mrr=0.0, operational_income_total=0.0)}

    assert kpis["profit_margin"].value == 0.0
    assert kpis["average_ticket"].value == 0.0
    assert kpis["projects_per_client"].value == 0.0
    assert kpis["income_variation"].value == 0.0


def test_mrr_records_unsupported_recurring_conversions() -> None:
    unsupported = []
    recurring = [
        RecurringPaymentRecord(amount=100, currency="USD", frequency="monthly"),
        RecurringPaymentRecord(amount=90, currency="EUR", frequency="quarterly"),
    ]

    mrr = calculate_mrr([], recurring, unsupported=unsupported)

    assert mrr == pytest.approx(400_000 + 30)
    assert [r.from_currency for r in unsupported] == ["EUR"]


def _metrics(total_income=1000.0, total_expense=600.0):
    return CashFlowMetrics(
        total_income=total_income,
        total_expense=total_expense,
        current_balance=total_income - total_expense,
        avg_income=total_income,
        avg_expense=total_expense,
        burn_rate=total_expense,
        runway=compute_runway(total_income - total_expense, total_expense),
    )


def test_kpis_compare_with_previous_period() -> None:
    kpis = {
        k.key: k
        for k in compute_kpis(
            _metrics(),
            mrr=250.0,
            operational_income_total=800.0,
            active_clients=4,
            active_projects=6,
            previous_period_income=500.0,
            previous_income=500.0,
            previous_expense=400.0,
            current_period_clients=3,
            previous_active_clients=2,
        )
    }

    # 400 / 800 = 50% now, 100 / 500 = 20% before
    assert kpis["profit_margin"].value == pytest.approx(50.0)
    assert kpis["profit_margin"].previous_value == pytest.approx(20.0)
    assert kpis["profit_margin"].trend == "up"
    assert kpis["active_clients"].value == 4
    assert kpis["active_clients"].trend == "up"
    assert kpis["active_projects"].value == 6
    assert kpis["active_projects"].trend == "neutral"
    assert kpis["mrr"].trend == "down"


def test_mrr_trend_is_down_unless_above_previous_income() -> None:
    def mrr_trend(mrr, previous):
        kpis = compute_kpis(
            _metrics(), mrr=mrr, operational_income_total=800.0,
            previous_period_income=previous,
        )
        return next(k.trend for k in kpis if k.key == "mrr")

    assert mrr_trend(100.0, 100.0) == "down"
    assert mrr_trend(101.0, 100.0) == "up"
    assert mrr_trend(100.0, None) == "neutral"


def test_ltv_and_marketing_roi() -> None:
    kpis = {
        k.key: k
        for k in compute_kpis(
            _metrics(),
            mrr=0.0,
            operational_income_total=800.0,
            active_clients=4,
            marketing_expense=200.0,
        )
    }

    assert kpis["ltv"].value == pytest.approx(200.0 * 12)
    assert kpis["marketing_roi"].value == pytest.approx(4.0)
    assert kpis["marketing_roi"].trend == "up"


def test_marketing_roi_needs_marketing_expense() -> None:
    for marketing_expense in (None, 0.0):
        keys = [
            k.key
            for k in compute_kpis(
                _metrics(), mrr=0.0, operational_income_total=800.0,
                marketing_expense=marketing_expense,
            )
        ]
        assert "marketing_roi" not in keys
        assert "ltv" in keys
