from decimal import Decimal
from types import SimpleNamespace

import pytest

from backend.app.core.errors import ValidationError
from backend.app.services.rates import (
    calculate_charge_total,
    calculate_cost,
    calculate_invoice_totals,
    calculate_tax,
    get_effective_rate,
)


def _customer(rate="100.00"):
    return SimpleNamespace(default_hourly_rate=Decimal(rate))


def _entry(minutes, override=None):
    return SimpleNamespace(total_minutes=minutes, hourly_rate_override=override)


def test_effective_rate_prefers_entry_then_invoice_then_customer():
    customer = _customer("100.00")
    invoice = SimpleNamespace(hourly_rate_override=Decimal("80.00"))

    assert get_effective_rate(_entry(60, Decimal("120.00")), invoice, customer) == Decimal("120.00")
    assert get_effective_rate(_entry(60), invoice, customer) == Decimal("80.00")
    assert get_effective_rate(_entry(60), None, customer) == Decimal("100.00")
    no_override = SimpleNamespace(hourly_rate_override=None)
    assert get_effective_rate(_entry(60), no_override, customer) == Decimal("100.00")


def test_zero_entry_override_is_not_ignored():
    assert get_effective_rate(_entry(60, Decimal("0")), None, _customer()) == Decimal("0")


def test_calculate_cost_rounds_half_up_to_cents():
    assert calculate_cost(90, Decimal("100")) == Decimal("150.00")
    assert calculate_cost(1, Decimal("10")) == Decimal("0.17")
    # 1/60 * 0.30 = 0.005 exactly at the half cent
    assert calculate_cost(1, Decimal("0.30")) == Decimal("0.01")
    assert calculate_cost(0, Decimal("100")) == Decimal("0.00")


def test_calculate_cost_rejects_negative_input():
    with pytest.raises(ValidationError):
        calculate_cost(-5, Decimal("100"))
    with pytest.raises(ValidationError):
        calculate_cost(60, Decimal("-1"))


def test_charge_total_and_validation():
    assert calculate_charge_total(Decimal("3"), Decimal("4.99")) == Decimal("14.97")
    assert calculate_charge_total(Decimal("0.5"), Decimal("0.01")) == Decimal("0.01")
    with pytest.raises(ValidationError):
        calculate_charge_total(Decimal("0"), Decimal("10"))
    with pytest.raises(ValidationError):
        calculate_charge_total(Decimal("1"), Decimal("-10"))


def test_calculate_tax():
    assert calculate_tax(Decimal("150.00"), Decimal("0.08")) == Decimal("12.00")
    assert calculate_tax(Decimal("150.00"), Decimal("0")) == Decimal("0.00")
    with pytest.raises(ValidationError):
        calculate_tax(Decimal("150.00"), Decimal("1.5"))


def test_invoice_totals_sum_rounded_lines():
    customer = _customer("0.30")
    invoice = SimpleNamespace(hourly_rate_override=None, tax_rate=Decimal("0"))
    entries = [_entry(1), _entry(1), _entry(1)]

    totals = calculate_invoice_totals(entries, [], invoice, customer)

    # Each line rounds to 0.01; costing the 3 summed minutes would give 0.02.
    assert totals.subtotal == Decimal("0.03")
    assert totals.total == Decimal("0.03")


def test_invoice_totals_with_charges_and_tax():
    customer = _customer("100.00")
    invoice = SimpleNamespace(hourly_rate_override=None, tax_rate=Decimal("0.08"))
    charges = [SimpleNamespace(total=Decimal("0.00"))]

    totals = calculate_invoice_totals([_entry(90)], charges, invoice, customer)

    assert totals.subtotal == Decimal("150.00")
    assert totals.tax_amount == Decimal("12.00")
    assert totals.total == Decimal("162.00")
