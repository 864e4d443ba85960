"""
Money arithmetic for bills.

All amounts are ``Decimal`` quantised to cents with ROUND_HALF_UP. Tax is
charged on the amount left after the bill-level discount.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


class LineAmounts(NamedTuple):
    discount_amount: Decimal
    line_total: Decimal


class BillTotals(NamedTuple):
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value) -> Decimal:
    return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(amount, percentage) -> Decimal:
    return to_money(as_decimal(amount) * as_decimal(percentage) / HUNDRED)


def calculate_line(unit_price, quantity, discount_percentage=0) -> LineAmounts:
    """Discount and total of one line: ``gross - round(gross * pct / 100)``."""
    gross = as_decimal(unit_price) * quantity
    discount_amount = percentage_of(gross, discount_percentage)
    return LineAmounts(discount_amount, to_money(gross - discount_amount))


def calculate_totals(
    line_totals: Iterable[Decimal], discount_percentage=0, tax_percentage=0
) -> BillTotals:
    subtotal = to_money(sum(line_totals, Decimal("0")))
    discount_amount = percentage_of(subtotal, discount_percentage)
    taxable = subtotal - discount_amount
    tax_amount = percentage_of(taxable, tax_percentage)
    return BillTotals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total_amount=to_money(taxable + tax_amount),
    )
