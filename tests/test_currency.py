import pytest

from smb_cashflow.currency import convert, normalize


def test_usd_to_cop_and_back_round_trip() -> None:
    """100 USD -> 400,000 COP -> 100 USD with the default rate."""
    cop = normalize(100, "USD", "COP")
    assert cop == pytest.approx(400_000.0, abs=1e-6)

    usd = normalize(cop, "COP", "USD")
    assert usd == pytest.approx(100.0, abs=1e-6)


def test_same_currency_is_unchanged() -> None:
    result = convert(1234.5, "COP", "COP")

    assert result.converted is True
    assert result.amount == 1234.5
    assert result.changed_currency is False


def test_currency_codes_are_case_insensitive() -> None:
    assert normalize(2, " usd ", "cop") == pytest.approx(8000.0)


def test_unsupported_pair_passes_through_with_tag() -> None:
    result = convert(50, "EUR", "COP")

    assert result.converted is False
    assert result.amount == 50
    assert result.original_amount == 50
    assert normalize(50, "EUR", "COP") == 50


def test_custom_rate_table() -> None:
    rates = {"USD": 4200, "EUR": 4500}

    assert normalize(10, "EUR", "COP", rates=rates) == pytest.approx(45_000.0)
    assert normalize(8400, "COP", "USD", rates=rates) == pytest.approx(2.0)
