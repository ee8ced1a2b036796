"""Money utilities for KitchenMode.

All monetary amounts are ``decimal.Decimal`` quantized to 2 places (major
currency unit, e.g. Naira). Paystack expects the minor unit (kobo).

Conversion chain
----------------
Naira × 100 → Kobo
Kobo  ÷ 100 → Naira
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

# ─── constants ───────────────────────────────────────────────────────────────

MINOR_UNITS_PER_MAJOR: int = 100
CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, float, str]


# ─── helpers ─────────────────────────────────────────────────────────────────


def to_money(value: Amount) -> Decimal:
    """Coerce to a Decimal quantized to 2 places (round half-up).

    Floats go through ``str`` so 0.1 becomes Decimal("0.10"), not its binary expansion.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[Amount]) -> Decimal:
    """Sum amounts exactly and quantize once."""
    total = Decimal("0")
    for value in values:
        total += to_money(value)
    return to_money(total)


def line_total(unit_price: Amount, quantity: int) -> Decimal:
    """Price × quantity for one line."""
    return to_money(to_money(unit_price) * quantity)


def percent_of(amount: Amount, rate_percent: Amount) -> Decimal:
    """``rate_percent`` % of ``amount``, e.g. percent_of(200, 15) == Decimal("30.00")."""
    return to_money(to_money(amount) * Decimal(str(rate_percent)) / 100)


def net_of_commission(amount: Amount, commission_rate_percent: Amount) -> Decimal:
    """Amount kept by the vendor after the platform commission."""
    return to_money(amount) - percent_of(amount, commission_rate_percent)


def to_minor_units(amount: Amount) -> int:
    """Convert Naira to kobo. ₦1 = 100 kobo."""
    return int(to_money(amount) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(minor: int) -> Decimal:
    """Convert kobo to Naira. 100 kobo = ₦1."""
    return to_money(Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR)
