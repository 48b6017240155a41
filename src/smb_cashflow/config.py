# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB CashFlow.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating the pipeline options (dedup strategy, balance order),
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .balance import BalanceOrder
from .currency import BASE_CURRENCY, DEFAULT_RATES
from .dedup import KEY_STRATEGIES

DEFAULT_CONFIG_FILE = "smb_cashflow_config.toml"

BALANCE_ORDERS = ("descending", "chronological")
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class InputsConfig:
    """CSV sources for the record sets (None when not configured)."""

    incomes: Optional[Path] = None
    payments: Optional[Path] = None
    expenses: Optional[Path] = None
    recurring: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB CashFlow.

    This aggregates:
    - the reporting currency and the fixed conversion rate table,
    - the CSV inputs,
    - the pipeline options (dedup strategy, balance order),
    - the metrics windows (averages, monthly series, projections),
    - display options for tables.
    """

    reporting_currency: str = BASE_CURRENCY
    base_currency: str = BASE_CURRENCY
    rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATES))
    inputs: InputsConfig = field(default_factory=InputsConfig)
    dedup_strategy: str = "day_amount"
    balance_order: BalanceOrder = "descending"
    average_window: int = 6
    trailing_months: int = 12
    projection_months: int = 6
    display_mode: str = "table"
    decimals: int = 0


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _positive_int(section: Mapping[str, Any], key: str, default: int, label: str) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{label}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value <= 0:
        raise ValueError(f"'{label}.{key}' must be a positive integer, got {value}.")
    return value


def _parse_rates(currency_section: Mapping[str, Any]) -> dict[str, float]:
    """
    Parse [currency.rates] into {CODE: units of base currency}.

    Raises:
        ValueError: if a rate is not a strictly positive number.
    """
    rates_section = currency_section.get("rates")
    if not isinstance(rates_section, Mapping) or not rates_section:
        return dict(DEFAULT_RATES)

    rates: dict[str, float] = {}
    for code, value in rates_section.items():
        try:
            rate = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid rate for currency {code!r}: {value!r}") from exc
        if rate <= 0:
            raise ValueError(f"Rate for currency {code!r} must be positive, got {rate}.")
        rates[str(code).strip().upper()] = rate
    return rates


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB CashFlow application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [reporting]
        ``currency``: reporting currency (default "COP").

    [currency]
        ``base``: currency the rates are expressed against (default "COP").

    [currency.rates]
        Fixed rates, one unit of the key currency = value units of base
        (default ``USD = 4000``).

    [inputs]
        Optional CSV paths: ``incomes``, ``payments``, ``expenses``,
        ``recurring``.

    [pipeline]
        ``dedup_strategy`` ("day_amount" or "day_amount_description") and
        ``balance_order`` ("descending" or "chronological").

    [metrics]
        ``average_window``, ``trailing_months``, ``projection_months``.

    [display]
        ``mode`` ("table", "csv" or "both") and ``decimals``.

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself. Every section is optional.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Currency
    reporting_section = _section(raw, "reporting")
    currency_section = _section(raw, "currency")

    reporting_currency = str(reporting_section.get("currency") or BASE_CURRENCY).upper()
    base_currency = str(currency_section.get("base") or BASE_CURRENCY).upper()
    rates = _parse_rates(currency_section)

    # 2) Inputs
    inputs_section = _section(raw, "inputs")

    def _resolve_optional(rel: Optional[str]) -> Optional[Path]:
        if not rel:
            return None
        return (base_dir / str(rel)).resolve()

    inputs = InputsConfig(
        incomes=_resolve_optional(inputs_section.get("incomes")),
        payments=_resolve_optional(inputs_section.get("payments")),
        expenses=_resolve_optional(inputs_section.get("expenses")),
        recurring=_resolve_optional(inputs_section.get("recurring")),
    )

    # 3) Pipeline options
    pipeline_section = _section(raw, "pipeline")

    dedup_strategy = str(pipeline_section.get("dedup_strategy", "day_amount"))
    if dedup_strategy not in KEY_STRATEGIES:
        raise ValueError(
            f"Unknown dedup_strategy {dedup_strategy!r}. "
            f"Expected one of: {', '.join(KEY_STRATEGIES)}."
        )

    balance_order = str(pipeline_section.get("balance_order", "descending"))
    if balance_order not in BALANCE_ORDERS:
        raise ValueError(
            f"Unknown balance_order {balance_order!r}. "
            f"Expected one of: {', '.join(BALANCE_ORDERS)}."
        )

    # 4) Metrics windows
    metrics_section = _section(raw, "metrics")

    average_window = _positive_int(metrics_section, "average_window", 6, "metrics")
    trailing = _positive_int(metrics_section, "trailing_months", 12, "metrics")
    projection_months = _positive_int(
        metrics_section, "projection_months", 6, "metrics"
    )

    # 5) Display options
    display_section = _section(raw, "display")

    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        display_mode = "table"
    try:
        decimals = int(display_section.get("decimals", 0))
    except (TypeError, ValueError):
        decimals = 0

    return AppConfig(
        reporting_currency=reporting_currency,
        base_currency=base_currency,
        rates=rates,
        inputs=inputs,
        dedup_strategy=dedup_strategy,
        balance_order=balance_order,  # type: ignore[arg-type]
        average_window=average_window,
        trailing_months=trailing,
        projection_months=projection_months,
        display_mode=display_mode,
        decimals=decimals,
    )
