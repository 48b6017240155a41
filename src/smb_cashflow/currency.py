# SMB CashFlow - Cash-flow reconciliation & metrics for services SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Currency normalization for SMB CashFlow.

All amounts are reported in a single reporting currency (COP by default).
Conversion uses a fixed rate table: one unit of a foreign currency equals
``K`` units of the base currency, and the reverse direction divides by the
same ``K``. There are no time-varying rates and no rounding configuration,
so existing report outputs are reproduced exactly.

Two entry points are provided:

- ``convert()`` returns a tagged ``ConversionResult`` telling whether the
  pair was supported, so callers can surface a warning instead of silently
  misreporting figures;
- ``normalize()`` returns a bare float and passes unsupported pairs through
  unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

BASE_CURRENCY = "COP"

# 1 unit of the key currency = value units of BASE_CURRENCY.
DEFAULT_RATES: dict[str, float] = {"USD": 4000.0}


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a currency conversion.

    ``converted`` is True when a rate was applied (``Converted(amount)``)
    and False when the pair was unsupported (``Unsupported(original)``),
    in which case ``amount`` equals ``original_amount``. Same-currency
    requests are reported as converted with an unchanged amount.
    """

    amount: float
    original_amount: float
    from_currency: str
    to_currency: str
    converted: bool

    @property
    def changed_currency(self) -> bool:
        """True when the amount was actually expressed in another currency."""
        return self.converted and self.from_currency != self.to_currency


def _code(currency: Optional[str]) -> str:
    return str(currency or "").strip().upper()


def convert(
    amount: float,
    from_currency: str,
    to_currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    base_currency: str = BASE_CURRENCY,
) -> ConversionResult:
    """
    Convert ``amount`` between two currencies using a fixed rate table.

    Args:
        amount: Amount expressed in ``from_currency``.
        from_currency: Source currency code (case-insensitive).
        to_currency: Target currency code (case-insensitive).
        rates: Mapping {foreign currency -> units of base currency}.
            Defaults to ``DEFAULT_RATES``.
        base_currency: Currency the rates are expressed against.

    Returns:
        A ConversionResult. Unsupported pairs are returned unconverted
        (``converted=False``) and never raise.
    """
    src = _code(from_currency)
    dst = _code(to_currency)
    base = _code(base_currency)
    table = {_code(k): float(v) for k, v in (rates or DEFAULT_RATES).items()}
    value = float(amount)

    if src == dst:
        return ConversionResult(value, value, src, dst, converted=True)

    if dst == base and src in table:
        return ConversionResult(value * table[src], value, src, dst, converted=True)

    if src == base and dst in table and table[dst] != 0:
        return ConversionResult(value / table[dst], value, src, dst, converted=True)

    logger.warning(
        "Unsupported currency pair %s -> %s, amount %.2f left unchanged",
        src or "?",
        dst or "?",
        value,
    )
    return ConversionResult(value, value, src, dst, converted=False)


def normalize(
    amount: float,
    from_currency: str,
    to_currency: str = BASE_CURRENCY,
    rates: Optional[Mapping[str, float]] = None,
    base_currency: str = BASE_CURRENCY,
) -> float:
    """
    Return ``amount`` expressed in ``to_currency``.

    Same currencies return the input unchanged. Unsupported pairs also
    return the input unchanged: this is a known limitation, not an error.
    Use ``convert()`` to detect it.
    """
    return convert(amount, from_currency, to_currency, rates, base_currency).amount
