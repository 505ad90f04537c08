"""Rate resolution and money math for entries, charges and invoices.

Everything here is pure: callers pass in models (or anything with the same
attributes) and persist the results themselves.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from backend.app.core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def get_effective_rate(entry, invoice, customer) -> Decimal:
    """Resolve the hourly rate for an entry.

    Entry override wins, then the invoice override, then the customer's
    default rate. ``invoice`` may be None for unassigned entries.
    """
    entry_override = getattr(entry, "hourly_rate_override", None)
    if entry_override is not None:
        return to_decimal(entry_override)
    if invoice is not None:
        invoice_override = getattr(invoice, "hourly_rate_override", None)
        if invoice_override is not None:
            return to_decimal(invoice_override)
    return to_decimal(customer.default_hourly_rate)


def calculate_cost(total_minutes: int, hourly_rate: Decimal | float | int | str) -> Decimal:
    """Cost of ``total_minutes`` at ``hourly_rate``, rounded half-up to cents."""
    if total_minutes is None or total_minutes < 0:
        raise ValidationError("total_minutes must be zero or greater")
    rate = to_decimal(hourly_rate)
    if rate is None or rate < 0:
        raise ValidationError("hourly rate must be zero or greater")
    hours = Decimal(total_minutes) / Decimal("60")
    return round_money(hours * rate)


def calculate_entry_cost(entry, invoice, customer) -> Decimal:
    return calculate_cost(entry.total_minutes, get_effective_rate(entry, invoice, customer))


def calculate_charge_total(quantity, unit_price) -> Decimal:
    qty = to_decimal(quantity)
    price = to_decimal(unit_price)
    if qty is None or qty <= 0:
        raise ValidationError("quantity must be greater than zero")
    if price is None or price < 0:
        raise ValidationError("unit price must be zero or greater")
    return round_money(qty * price)


def calculate_tax(subtotal: Decimal, tax_rate) -> Decimal:
    rate = to_decimal(tax_rate) or ZERO
    if rate < 0 or rate > 1:
        raise ValidationError("tax rate must be between 0 and 1")
    return round_money(subtotal * rate)


def calculate_invoice_totals(entries: Iterable, charges: Iterable, invoice, customer) -> InvoiceTotals:
    """Subtotal, tax and total for an invoice's current composition.

    Each entry is costed and rounded on its own before summing, so the
    subtotal always equals the sum of the line amounts shown on documents.
    """
    subtotal = ZERO
    for entry in entries:
        subtotal += calculate_entry_cost(entry, invoice, customer)
    for charge in charges:
        subtotal += to_decimal(charge.total) or ZERO
    subtotal = round_money(subtotal)
    tax_amount = calculate_tax(subtotal, getattr(invoice, "tax_rate", None))
    total = round_money(subtotal + tax_amount)
    return InvoiceTotals(subtotal=subtotal, tax_amount=tax_amount, total=total)
