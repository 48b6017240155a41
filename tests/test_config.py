from pathlib import Path

import pytest

from smb_cashflow.config import AppConfig, load_app_config


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "smb_cashflow_config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_full_config_is_parsed(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[reporting]
currency = "usd"

[currency.rates]
usd = 4100
EUR = 4400.5

[inputs]
incomes = "data/incomes.csv"
expenses = "data/expenses.csv"

[pipeline]
dedup_strategy = "day_amount_description"
balance_order = "chronological"

[metrics]
average_window = 3
trailing_months = 6
projection_months = 12

[display]
mode = "both"
decimals = 2
""",
    )

    config = load_app_config(str(path))

    assert config.reporting_currency == "USD"
    assert config.rates == {"USD": 4100.0, "EUR": 4400.5}
    assert config.inputs.incomes == (tmp_path / "data/incomes.csv").resolve()
    assert config.inputs.payments is None
    assert config.dedup_strategy == "day_amount_description"
    assert config.balance_order == "chronological"
    assert (config.average_window, config.trailing_months, config.projection_months) == (
        3,
        6,
        12,
    )
    assert config.display_mode == "both"
    assert config.decimals == 2


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    config = load_app_config(str(_write(tmp_path, "")))

    assert config == AppConfig()
    assert config.rates == {"USD": 4000.0}


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


@pytest.mark.parametrize(
    "text",
    [
        "[pipeline]\ndedup_strategy = 'fuzzy'\n",
        "[pipeline]\nbalance_order = 'sideways'\n",
        "[metrics]\naverage_window = 0\n",
        "[metrics]\ntrailing_months = 'many'\n",
        "[currency.rates]\nUSD = -1\n",
        "this is = not [ toml",
    ],
)
def test_invalid_values_raise(tmp_path: Path, text: str) -> None:
    with pytest.raises(ValueError):
        load_app_config(str(_write(tmp_path, text)))
