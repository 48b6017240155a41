# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB CashFlow
------------

A Python cash-flow reconciliation and metrics engine for services SMBs.
It unifies three record sets (manual incomes, paid project payments and
paid expenses) into a single cash flow expressed in one reporting
currency, and derives the figures a small services business follows.

Main capabilities:
- fixed-rate currency normalization (USD <-> COP by default),
- unification of heterogeneous records into cash-flow items,
- deduplication of manual incomes mirroring realized project payments,
- running balance computation,
- monthly, by-category and by-client aggregation (pandas),
- burn rate, runway, MRR and dashboard KPIs,
- flat and growth-rate projections with scenarios,
- a refreshable store driven by explicit invalidation events,
- a command-line interface with table and CSV output.

SMB CashFlow separates computation (engine, metrics), configuration (TOML)
and presentation (CLI), making it suitable for scripting and automation.


Version: 0.1.0

Usage:
    python -m smb_cashflow.cli --help
"""

__all__ = [
    "balance",
    "cli",
    "config",
    "currency",
    "dedup",
    "engine",
    "io",
    "metrics",
    "periods",
    "pipeline",
    "projections",
    "records",
    "store",
    "unifier",
    "views",
]

__version__ = "0.1.0"
