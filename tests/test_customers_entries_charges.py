from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError

from backend.app.core.errors import InvalidStateError, NotFoundError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.charge import ChargeCreate, ChargeUpdate
from backend.app.schemas.customer import CustomerCreate, CustomerUpdate
from backend.app.schemas.entry import EntryCreate, EntryUpdate
from backend.app.schemas.invoice import InvoiceCreate, InvoiceUpdate
from backend.app.services.charges import create_charge, delete_charge, list_charges, update_charge
from backend.app.services.customers import (
    create_customer,
    delete_customer,
    find_or_create_customer_by_name,
    get_customer,
    get_customer_with_stats,
    list_customers,
    update_customer,
)
from backend.app.services.entries import (
    create_entry,
    delete_entry,
    get_unbilled_entries,
    list_entries,
    update_entry,
)
from backend.app.services.invoices import create_invoice, update_invoice


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _customer(db, name="Acme", rate="100.00"):
    return create_customer(db, CustomerCreate(name=name, default_hourly_rate=Decimal(rate)))


def test_customer_crud_and_blank_email_normalized():
    db = SessionLocal()
    try:
        customer = create_customer(
            db, CustomerCreate(name="Globex", email="ap@globex.com", address="", default_hourly_rate=Decimal("75"))
        )
        assert customer.address is None
        _customer(db, name="Acme")

        assert [c.name for c in list_customers(db)] == ["Acme", "Globex"]

        updated = update_customer(db, customer.id, CustomerUpdate(default_hourly_rate=Decimal("80")))
        assert updated.default_hourly_rate == Decimal("80.00")
        assert updated.email == "ap@globex.com"

        with pytest.raises(NotFoundError):
            get_customer(db, "missing")
    finally:
        db.close()


def test_customer_email_is_validated():
    with pytest.raises(SchemaValidationError):
        CustomerCreate(name="Bad", email="not-an-email", default_hourly_rate=Decimal("10"))


def test_find_or_create_customer_by_name_is_case_insensitive():
    db = SessionLocal()
    try:
        existing = _customer(db, name="Initech")
        found = find_or_create_customer_by_name(db, "  initech ", Decimal("90"))
        assert found.id == existing.id

        created = find_or_create_customer_by_name(db, "Umbrella", Decimal("90"))
        assert created.default_hourly_rate == Decimal("90.00")
        assert len(list_customers(db)) == 2
    finally:
        db.close()


def test_entry_cost_uses_customer_rate_or_override():
    db = SessionLocal()
    try:
        customer = _customer(db)
        plain = create_entry(
            db,
            EntryCreate(
                customer_id=customer.id,
                entry_date=date(2024, 1, 8),
                total_minutes=90,
                task_description="  Replace switch  ",
            ),
        )
        assert plain.task_description == "Replace switch"
        assert plain.calculated_cost == Decimal("150.00")

        premium = create_entry(
            db,
            EntryCreate(
                customer_id=customer.id,
                entry_date=date(2024, 1, 9),
                total_minutes=90,
                task_description="After-hours outage",
                hourly_rate_override=Decimal("120"),
            ),
        )
        assert premium.calculated_cost == Decimal("180.00")

        edited = update_entry(db, plain.id, EntryUpdate(total_minutes=30))
        assert edited.calculated_cost == Decimal("50.00")
    finally:
        db.close()


def test_entry_for_unknown_customer_is_rejected():
    db = SessionLocal()
    try:
        with pytest.raises(NotFoundError):
            create_entry(
                db,
                EntryCreate(customer_id="nope", entry_date=date(2024, 1, 1), total_minutes=10, task_description="x"),
            )
    finally:
        db.close()


def test_blank_task_description_is_rejected():
    with pytest.raises(SchemaValidationError):
        EntryCreate(customer_id="c", entry_date=date(2024, 1, 1), total_minutes=10, task_description="   ")


def test_billed_entries_and_charges_are_locked():
    db = SessionLocal()
    try:
        customer = _customer(db)
        entry = create_entry(
            db,
            EntryCreate(customer_id=customer.id, entry_date=date(2024, 1, 8), total_minutes=60, task_description="Patch"),
        )
        charge = create_charge(
            db,
            ChargeCreate(
                customer_id=customer.id,
                charge_type="hardware",
                description="SSD",
                quantity=Decimal("2"),
                unit_price=Decimal("49.99"),
                charge_date=date(2024, 1, 8),
            ),
        )
        assert charge.total == Decimal("99.98")

        create_invoice(db, InvoiceCreate(customer_id=customer.id, entry_ids=[entry.id], charge_ids=[charge.id]))

        with pytest.raises(InvalidStateError):
            update_entry(db, entry.id, EntryUpdate(total_minutes=5))
        with pytest.raises(InvalidStateError):
            delete_entry(db, entry.id)
        with pytest.raises(InvalidStateError):
            update_charge(db, charge.id, ChargeUpdate(quantity=Decimal("1")))
        with pytest.raises(InvalidStateError):
            delete_charge(db, charge.id)

        assert get_unbilled_entries(db, customer.id) == []
        assert list_charges(db, unbilled_only=True) == []
    finally:
        db.close()


def test_entry_listing_filters():
    db = SessionLocal()
    try:
        acme = _customer(db)
        globex = _customer(db, name="Globex")
        for day, customer in [(1, acme), (5, acme), (9, globex)]:
            create_entry(
                db,
                EntryCreate(
                    customer_id=customer.id,
                    entry_date=date(2024, 2, day),
                    total_minutes=30,
                    task_description=f"Visit {day}",
                ),
            )

        assert len(list_entries(db, customer_id=acme.id)) == 2
        window = list_entries(db, start_date=date(2024, 2, 2), end_date=date(2024, 2, 9))
        assert [e.task_description for e in window] == ["Visit 9", "Visit 5"]
        assert [e.task_description for e in get_unbilled_entries(db, acme.id)] == ["Visit 1", "Visit 5"]
    finally:
        db.close()


def test_charge_update_recomputes_total_and_filters_by_type():
    db = SessionLocal()
    try:
        customer = _customer(db)
        charge = create_charge(
            db,
            ChargeCreate(
                customer_id=customer.id,
                charge_type="software",
                description="License",
                unit_price=Decimal("30"),
                charge_date=date(2024, 3, 1),
            ),
        )
        assert charge.total == Decimal("30.00")

        updated = update_charge(db, charge.id, ChargeUpdate(quantity=Decimal("3")))
        assert updated.total == Decimal("90.00")

        assert len(list_charges(db, charge_type="software")) == 1
        assert list_charges(db, charge_type="hardware") == []
    finally:
        db.close()


def test_customer_stats_and_delete_rules():
    db = SessionLocal()
    try:
        customer = _customer(db)
        billed = create_entry(
            db,
            EntryCreate(customer_id=customer.id, entry_date=date(2024, 1, 8), total_minutes=60, task_description="A"),
        )
        create_entry(
            db,
            EntryCreate(customer_id=customer.id, entry_date=date(2024, 1, 9), total_minutes=30, task_description="B"),
        )
        invoice = create_invoice(db, InvoiceCreate(customer_id=customer.id, entry_ids=[billed.id]))
        update_invoice(db, invoice.id, InvoiceUpdate(status="sent"))
        update_invoice(db, invoice.id, InvoiceUpdate(status="paid"))

        stats = get_customer_with_stats(db, customer.id)
        assert stats.total_invoices == 1
        assert stats.total_revenue == Decimal("100.00")
        assert stats.unbilled_entries == 1
        assert stats.unbilled_amount == Decimal("50.00")

        with pytest.raises(InvalidStateError):
            delete_customer(db, customer.id)

        other = _customer(db, name="Globex")
        create_entry(
            db,
            EntryCreate(customer_id=other.id, entry_date=date(2024, 1, 8), total_minutes=60, task_description="C"),
        )
        delete_customer(db, other.id)
        with pytest.raises(NotFoundError):
            get_customer(db, other.id)
        assert db.query(TimesheetEntry).filter(TimesheetEntry.customer_id == other.id).count() == 0
    finally:
        db.close()
