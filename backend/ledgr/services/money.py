"""Invoice totals in integer minor units.

All arithmetic runs on ``Decimal`` values built from the decimal text of each
input, and the grand total is rounded exactly once (half-up, to the cent).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol, Union

from ledgr.core.errors import InvalidAmount


Number = Union[int, float, Decimal, str]

HUNDRED = Decimal("100")
ONE = Decimal("1")


class PricedItem(Protocol):
    quantity: float
    rate: float


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    subtotal_minor_units: int
    tax_minor_units: int
    total_minor_units: int

    @property
    def total(self) -> Decimal:
        return Decimal(self.total_minor_units) / HUNDRED


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() of a float is its shortest round-tripping repr, i.e. the decimal the caller typed.
    return Decimal(str(value))


def to_minor_units(value: Decimal) -> int:
    return int((value * HUNDRED).quantize(ONE, rounding=ROUND_HALF_UP))


def line_total(quantity: Number, rate: Number) -> Decimal:
    return to_decimal(quantity) * to_decimal(rate)


def compute_totals(items: Iterable[PricedItem], tax_rate_percent: Number | None = 0) -> Totals:
    subtotal = sum((line_total(item.quantity, item.rate) for item in items), start=Decimal("0"))
    rate = to_decimal(tax_rate_percent or 0)
    tax = subtotal * rate / HUNDRED

    total_minor = to_minor_units(subtotal + tax)
    subtotal_minor = to_minor_units(subtotal)
    return Totals(
        subtotal=subtotal,
        tax=tax,
        subtotal_minor_units=subtotal_minor,
        tax_minor_units=total_minor - subtotal_minor,
        total_minor_units=total_minor,
    )


def require_positive_amount(amount: object) -> int:
    """Validate a caller-supplied amount for invoices without line items."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount()
    return amount
