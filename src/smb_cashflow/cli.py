# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB CashFlow.

This module wires together the main building blocks of SMB CashFlow:

- configuration (reporting currency, rates, inputs, pipeline options),
- CSV readers for the record sets,
- the reconciliation pipeline (unify, deduplicate, balance, aggregate),
- metrics, KPIs and projections,
- view helpers (tabular rendering and CSV export).

The CLI is intentionally thin: it does not implement reconciliation or
financial logic itself. It orchestrates the underlying modules based on
command-line arguments and the configuration file.


High-level pipeline
-------------------

1) Load the TOML configuration (smb_cashflow_config.toml by default) using
   ``load_app_config()``. When no configuration file exists, built-in
   defaults are used (COP reporting, USD = 4000 COP).

2) Resolve the CSV inputs, CLI overrides taking precedence over the
   ``[inputs]`` section. At least one of incomes, payments or expenses
   must be available.

3) Determine the reporting period and filters (flow type, category).

4) Run the pipeline and render the selected scope as console tables
   and/or CSV files depending on the display mode.


Scopes
------
- ``movements``:   deduplicated items with running balance,
- ``monthly``:     monthly income/expense/net buckets,
- ``categories``:  expenses by category,
- ``clients``:     income by client,
- ``metrics``:     headline metrics and KPIs,
- ``projections``: flat and growth projections (optionally a scenario),
- ``all``:         everything above.


Examples
--------
    python -m smb_cashflow.cli --incomes data/incomes.csv \\
        --payments data/payments.csv --expenses data/expenses.csv

    python -m smb_cashflow.cli --config smb_cashflow_config.toml \\
        --scope metrics --period last-6m

    python -m smb_cashflow.cli --scope projections --scenario pessimistic

    python -m smb_cashflow.cli --scope movements --type expense \\
        --category Software --export-csv cash_flow.csv
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import DEFAULT_CONFIG_FILE, AppConfig, load_app_config
from .engine import CashFlowFilter
from .io import (
    read_expenses,
    read_incomes,
    read_project_payments,
    read_recurring_payments,
    write_cash_flow_csv,
)
from .periods import determine_period_from_args
from .pipeline import PipelineInputs, PipelineSettings, run_pipeline
from .projections import SCENARIOS, apply_scenario, project_flat, project_growth
from .views import (
    categories_to_dataframe,
    clients_to_dataframe,
    items_to_dataframe,
    kpis_to_dataframe,
    metrics_to_dataframe,
    monthly_to_dataframe,
    projections_to_dataframe,
)

SCOPES = ["movements", "monthly", "categories", "clients", "metrics", "projections", "all"]


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_cashflow.cli",
        description=(
            "SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs. "
            "Unifies manual incomes, paid project payments and paid expenses, "
            "removes duplicates, computes running balances, monthly/category/"
            "client aggregates, KPIs and projections."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_cashflow and exit.",
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline diagnostics (dropped duplicates, conversions) to stderr.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when present."
        ),
    )

    # Input overrides
    ap.add_argument("--incomes", help="Manual incomes CSV (overrides [inputs].incomes).")
    ap.add_argument(
        "--payments", help="Project payments CSV (overrides [inputs].payments)."
    )
    ap.add_argument("--expenses", help="Expenses CSV (overrides [inputs].expenses).")
    ap.add_argument(
        "--recurring",
        help="Recurring payments CSV used for MRR (overrides [inputs].recurring).",
    )

    # Period selection
    ap.add_argument(
        "--period",
        choices=["all", "mtd", "last-month", "ytd", "last-3m", "last-6m", "last-12m"],
        help=(
            "Predefined reporting period. "
            "If not provided, every record is taken into account."
        ),
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD).",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD). Defaults to today.",
    )

    # Filters
    ap.add_argument(
        "--type",
        dest="flow_type",
        choices=["income", "expense"],
        help="Keep only incomes or only expenses.",
    )
    ap.add_argument("--category", help="Keep only items of this category.")

    # Scope
    ap.add_argument(
        "--scope",
        choices=SCOPES,
        default="all",
        help="Select what to render (default: all).",
    )
    ap.add_argument(
        "--scenario",
        choices=list(SCENARIOS),
        default="base",
        help="Projection scenario applied in the 'projections' scope.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )
    ap.add_argument(
        "--export-csv",
        dest="export_csv",
        metavar="CSV_PATH",
        help="Write the deduplicated cash flow to this CSV file.",
    )

    return ap


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return AppConfig()


def _resolve_input(cli_value: Optional[str], configured: Optional[Path]) -> Optional[Path]:
    if cli_value:
        return Path(cli_value)
    return configured


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB CashFlow CLI.

    This function parses command-line arguments, loads the configuration,
    reads the CSV record sets, runs the reconciliation pipeline for the
    selected period and filters, and renders the selected scope as console
    tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_cashflow version {__version__}")
        return

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )

    # 1) Load configuration
    config = _load_config(args.config_path)

    # 2) Resolve and read inputs
    paths = {
        "incomes": _resolve_input(args.incomes, config.inputs.incomes),
        "payments": _resolve_input(args.payments, config.inputs.payments),
        "expenses": _resolve_input(args.expenses, config.inputs.expenses),
        "recurring": _resolve_input(args.recurring, config.inputs.recurring),
    }
    if not any(paths[name] for name in ("incomes", "payments", "expenses")):
        parser.error(
            "No input files. Provide --incomes, --payments and/or --expenses, "
            "or configure them in the [inputs] section."
        )
    for name, path in paths.items():
        if path is not None and not path.is_file():
            parser.error(f"CSV file for --{name} not found: {path}")

    inputs = PipelineInputs(
        incomes=tuple(read_incomes(paths["incomes"])) if paths["incomes"] else (),
        payments=(
            tuple(read_project_payments(paths["payments"])) if paths["payments"] else ()
        ),
        expenses=tuple(read_expenses(paths["expenses"])) if paths["expenses"] else (),
        recurring=(
            tuple(read_recurring_payments(paths["recurring"]))
            if paths["recurring"]
            else ()
        ),
    )

    # 3) Period and filters
    try:
        period = determine_period_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))

    cash_filter = CashFlowFilter(
        start=period.start if period else None,
        end=period.end if period else None,
        flow_type=args.flow_type.capitalize() if args.flow_type else None,
        category=args.category,
    )

    if period is not None:
        print(
            f"Applied period: {period.label} "
            f"({period.start.isoformat()} → {period.end.isoformat()})"
        )
    else:
        print("Applied period: all records")

    # 4) Run the pipeline
    settings = PipelineSettings.from_config(config)
    report = run_pipeline(inputs, settings, cash_filter)

    print(f"Cash-flow items: {len(report.items)} (duplicates removed: {len(report.dropped)})")
    for warning in report.warnings:
        print(f"Warning: {warning}")

    # 5) Build the requested views
    decimals = config.decimals
    scope = args.scope
    frames: list[tuple[str, str, pd.DataFrame]] = []

    if scope in {"movements", "all"}:
        frames.append(
            ("Cash flow movements", "movements", items_to_dataframe(report.items, decimals))
        )
    if scope in {"monthly", "all"}:
        frames.append(
            ("Monthly summary", "monthly", monthly_to_dataframe(report.monthly, decimals))
        )
    if scope in {"categories", "all"}:
        frames.append(
            (
                "Expenses by category",
                "categories",
                categories_to_dataframe(report.categories, decimals),
            )
        )
    if scope in {"clients", "all"}:
        frames.append(
            (
                "Income by client",
                "clients",
                clients_to_dataframe(
                    report.clients, report.metrics.total_income, decimals
                ),
            )
        )
    if scope in {"metrics", "all"}:
        frames.append(
            ("Cash flow metrics", "metrics", metrics_to_dataframe(report.metrics, decimals))
        )
        frames.append(("KPIs", "kpis", kpis_to_dataframe(report.kpis)))
    if scope in {"projections", "all"}:
        metrics = report.metrics
        flat = project_flat(
            metrics.avg_income,
            metrics.avg_expense,
            metrics.current_balance,
            months=config.projection_months,
        )
        growth = project_growth(report.monthly, months=config.projection_months)
        label = SCENARIOS[args.scenario].label
        frames.append(
            (
                f"Projection (averages, {label})",
                "projection_flat",
                projections_to_dataframe(apply_scenario(flat, args.scenario), decimals),
            )
        )
        frames.append(
            (
                f"Projection (growth trend, {label})",
                "projection_growth",
                projections_to_dataframe(apply_scenario(growth, args.scenario), decimals),
            )
        )

    # 6) Resolve display mode: config value overridden by CLI if provided.
    display_mode = args.display_mode or config.display_mode

    # 7) Render to console (table mode).
    if display_mode in {"table", "both"}:
        for title, _, df in frames:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

    # 8) Render to CSV files (csv mode).
    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for _, name, df in frames:
            path = output_dir / f"{name}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")

    # 9) Optional export of the reconciled cash flow.
    if args.export_csv:
        export_path = Path(args.export_csv)
        write_cash_flow_csv(report.items, export_path, currency=settings.reporting_currency)
        print(f"Wrote {export_path} ({len(report.items)} rows)")


if __name__ == "__main__":
    main()
