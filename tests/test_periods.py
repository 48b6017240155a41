from datetime import date
from types import SimpleNamespace

import pytest

import smb_cashflow.periods as periods


@pytest.fixture
def fixed_today(monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 3, 18))


def test_trailing_months_crosses_year_boundary() -> None:
    assert periods.trailing_months(date(2025, 2, 10), 4) == [
        (2025, 2),
        (2025, 1),
        (2024, 12),
        (2024, 11),
    ]


def test_month_key_and_bounds() -> None:
    assert periods.month_key(2024, 3) == "2024-03"
    assert periods.month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.parametrize(
    "name, start, end",
    [
        ("mtd", date(2025, 3, 1), date(2025, 3, 18)),
        ("last-month", date(2025, 2, 1), date(2025, 2, 28)),
        ("ytd", date(2025, 1, 1), date(2025, 3, 18)),
        ("last-3m", date(2025, 1, 1), date(2025, 3, 18)),
        ("last-12m", date(2024, 4, 1), date(2025, 3, 18)),
    ],
)
def test_named_periods(fixed_today, name, start, end) -> None:
    period = periods.determine_period_from_args(SimpleNamespace(period=name))

    assert (period.start, period.end) == (start, end)


def test_custom_dates_take_priority(fixed_today) -> None:
    args = SimpleNamespace(period="ytd", from_date="2024-06-01", to_date=None)

    period = periods.determine_period_from_args(args)

    assert period.start == date(2024, 6, 1)
    assert period.end == date(2025, 3, 18)


def test_no_period_means_no_restriction() -> None:
    assert periods.determine_period_from_args(SimpleNamespace(period=None)) is None
    assert periods.determine_period_from_args(SimpleNamespace(period="all")) is None


def test_invalid_custom_range_raises() -> None:
    args = SimpleNamespace(from_date="2025-02-01", to_date="2025-01-01")

    with pytest.raises(ValueError):
        periods.determine_period_from_args(args)
