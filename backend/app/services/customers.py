"""Customer service helpers."""

import logging
from decimal import Decimal
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, NotFoundError
from backend.app.db.session import unit_of_work
from backend.app.models.charge import Charge
from backend.app.models.customer import Customer
from backend.app.models.import_batch import ImportBatch
from backend.app.models.invoice import Invoice
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate, CustomerWithStats

logger = logging.getLogger(__name__)


def get_customer(db: Session, customer_id: str) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(db: Session) -> List[Customer]:
    return db.query(Customer).order_by(Customer.name.asc()).all()


def get_customer_with_stats(db: Session, customer_id: str) -> CustomerWithStats:
    customer = get_customer(db, customer_id)
    invoices = db.query(Invoice).filter(Invoice.customer_id == customer_id).all()
    unbilled = (
        db.query(TimesheetEntry)
        .filter(TimesheetEntry.customer_id == customer_id, TimesheetEntry.invoice_id.is_(None))
        .all()
    )
    total_revenue = sum((inv.total for inv in invoices if inv.status == "paid"), Decimal("0.00"))
    unbilled_amount = sum((entry.calculated_cost for entry in unbilled), Decimal("0.00"))
    return CustomerWithStats(
        **CustomerRead.model_validate(customer).model_dump(),
        total_invoices=len(invoices),
        total_revenue=total_revenue,
        unbilled_entries=len(unbilled),
        unbilled_amount=unbilled_amount,
    )


def create_customer(db: Session, customer_in: CustomerCreate) -> Customer:
    data = customer_in.model_dump()
    data["email"] = data["email"] or None
    data["address"] = data["address"] or None
    customer = Customer(**data)
    db.add(customer)
    db.commit()
    db.refresh(customer)
    return customer


def update_customer(db: Session, customer_id: str, customer_in: CustomerUpdate) -> Customer:
    """Apply a partial update.

    Stored entry costs are not touched: a new default rate applies to
    entries created or recalculated afterwards.
    """
    customer = get_customer(db, customer_id)
    for field, value in customer_in.model_dump(exclude_unset=True).items():
        setattr(customer, field, value)
    db.commit()
    db.refresh(customer)
    return customer


def delete_customer(db: Session, customer_id: str) -> None:
    customer = get_customer(db, customer_id)
    invoice_count = db.query(func.count(Invoice.id)).filter(Invoice.customer_id == customer_id).scalar()
    if invoice_count:
        raise InvalidStateError("Cannot delete customer with existing invoices")

    with unit_of_work(db):
        unbilled_entries = db.query(TimesheetEntry).filter(
            TimesheetEntry.customer_id == customer_id, TimesheetEntry.invoice_id.is_(None)
        )
        unbilled_charges = db.query(Charge).filter(Charge.customer_id == customer_id, Charge.invoice_id.is_(None))
        batches = db.query(ImportBatch).filter(ImportBatch.customer_id == customer_id)
        for obj in [*unbilled_entries, *unbilled_charges, *batches]:
            db.delete(obj)
        db.flush()
        db.delete(customer)
    logger.info("Deleted customer %s", customer_id)


def find_or_create_customer_by_name(db: Session, name: str, default_rate) -> Customer:
    customer = db.query(Customer).filter(func.lower(Customer.name) == name.strip().lower()).first()
    if customer is not None:
        return customer
    return create_customer(db, CustomerCreate(name=name.strip(), default_hourly_rate=default_rate))
