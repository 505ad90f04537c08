"""Charge service helpers."""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, NotFoundError
from backend.app.models.charge import Charge
from backend.app.models.customer import Customer
from backend.app.schemas.charge import ChargeCreate, ChargeUpdate
from backend.app.services.rates import calculate_charge_total

logger = logging.getLogger(__name__)


def get_charge(db: Session, charge_id: str) -> Charge:
    charge = db.get(Charge, charge_id)
    if charge is None:
        raise NotFoundError("Charge not found")
    return charge


def list_charges(
    db: Session,
    *,
    customer_id: Optional[str] = None,
    charge_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    unbilled_only: bool = False,
) -> List[Charge]:
    query = db.query(Charge)
    if customer_id:
        query = query.filter(Charge.customer_id == customer_id)
    if charge_type:
        query = query.filter(Charge.charge_type == charge_type)
    if start_date:
        query = query.filter(Charge.charge_date >= start_date)
    if end_date:
        query = query.filter(Charge.charge_date <= end_date)
    if unbilled_only:
        query = query.filter(Charge.invoice_id.is_(None))
    return query.order_by(Charge.charge_date.desc(), Charge.created_at.desc()).all()


def create_charge(db: Session, charge_in: ChargeCreate) -> Charge:
    if db.get(Customer, charge_in.customer_id) is None:
        raise NotFoundError("Customer not found")
    charge = Charge(**charge_in.model_dump())
    charge.total = calculate_charge_total(charge.quantity, charge.unit_price)
    db.add(charge)
    db.commit()
    db.refresh(charge)
    return charge


def update_charge(db: Session, charge_id: str, charge_in: ChargeUpdate) -> Charge:
    charge = get_charge(db, charge_id)
    if charge.invoice_id is not None:
        raise InvalidStateError("Cannot modify charge that is part of an invoice")
    for field, value in charge_in.model_dump(exclude_unset=True).items():
        setattr(charge, field, value)
    charge.total = calculate_charge_total(charge.quantity, charge.unit_price)
    db.commit()
    db.refresh(charge)
    return charge


def delete_charge(db: Session, charge_id: str) -> None:
    charge = get_charge(db, charge_id)
    if charge.invoice_id is not None:
        raise InvalidStateError("Cannot delete charge that is part of an invoice")
    db.delete(charge)
    db.commit()
    logger.info("Deleted charge %s", charge_id)
