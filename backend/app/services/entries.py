"""Timesheet entry service helpers."""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, NotFoundError
from backend.app.models.customer import Customer
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.entry import EntryCreate, EntryUpdate
from backend.app.services.rates import calculate_entry_cost

logger = logging.getLogger(__name__)

MAX_LIST_RESULTS = 500


def get_entry(db: Session, entry_id: str) -> TimesheetEntry:
    entry = db.get(TimesheetEntry, entry_id)
    if entry is None:
        raise NotFoundError("Entry not found")
    return entry


def list_entries(
    db: Session,
    *,
    customer_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
    unbilled_only: bool = False,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[TimesheetEntry]:
    query = db.query(TimesheetEntry)
    if customer_id:
        query = query.filter(TimesheetEntry.customer_id == customer_id)
    if invoice_id:
        query = query.filter(TimesheetEntry.invoice_id == invoice_id)
    if unbilled_only:
        query = query.filter(TimesheetEntry.invoice_id.is_(None))
    if start_date:
        query = query.filter(TimesheetEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(TimesheetEntry.entry_date <= end_date)
    return (
        query.order_by(TimesheetEntry.entry_date.desc(), TimesheetEntry.created_at.desc())
        .limit(MAX_LIST_RESULTS)
        .all()
    )


def get_unbilled_entries(db: Session, customer_id: str) -> List[TimesheetEntry]:
    return (
        db.query(TimesheetEntry)
        .filter(TimesheetEntry.customer_id == customer_id, TimesheetEntry.invoice_id.is_(None))
        .order_by(TimesheetEntry.entry_date.asc(), TimesheetEntry.created_at.asc())
        .all()
    )


def create_entry(db: Session, entry_in: EntryCreate) -> TimesheetEntry:
    customer = db.get(Customer, entry_in.customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    entry = TimesheetEntry(**entry_in.model_dump())
    # Unbilled entries have no invoice tier in the rate hierarchy.
    entry.calculated_cost = calculate_entry_cost(entry, None, customer)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def update_entry(db: Session, entry_id: str, entry_in: EntryUpdate) -> TimesheetEntry:
    entry = get_entry(db, entry_id)
    if entry.invoice_id is not None:
        raise InvalidStateError("Cannot modify entry that is part of an invoice")
    for field, value in entry_in.model_dump(exclude_unset=True).items():
        setattr(entry, field, value)
    entry.calculated_cost = calculate_entry_cost(entry, None, entry.customer)
    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry_id: str) -> None:
    entry = get_entry(db, entry_id)
    if entry.invoice_id is not None:
        raise InvalidStateError("Cannot delete entry that is part of an invoice")
    db.delete(entry)
    db.commit()
    logger.info("Deleted entry %s", entry_id)
