"""Invoice aggregation: assembling, numbering, editing and recalculating invoices.

Every operation that writes more than one row runs inside ``unit_of_work``.
Derived amounts (entry ``calculated_cost`` and the invoice subtotal, tax and
total) are only ever written by ``refresh_invoice_amounts``.
"""

import logging
import re
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from backend.app.core.errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from backend.app.core.time import utc_now
from backend.app.db.session import unit_of_work
from backend.app.models.charge import Charge
from backend.app.models.customer import Customer
from backend.app.models.invoice import Invoice
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.invoice import InvoiceCreate, InvoiceSummary, InvoiceUpdate
from backend.app.services.formatters import generate_invoice_number
from backend.app.services.rates import calculate_entry_cost, calculate_invoice_totals
from backend.app.services.settings import get_settings

logger = logging.getLogger(__name__)

MAX_LIST_RESULTS = 500

ALLOWED_TRANSITIONS = {
    "draft": {"sent", "cancelled"},
    "sent": {"paid", "overdue", "cancelled"},
    "overdue": {"paid", "cancelled"},
    "paid": set(),
    "cancelled": {"draft"},
}

_TRAILING_DIGITS_RE = re.compile(r"(\d+)$")


def _unique(ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(ids))


def get_invoice(db: Session, invoice_id: str) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def get_invoice_with_details(db: Session, invoice_id: str) -> Invoice:
    """Invoice with customer, entries and charges loaded for rendering."""
    invoice = get_invoice(db, invoice_id)
    # Touch relationships so callers can use them after the session closes.
    _ = invoice.customer, list(invoice.entries), list(invoice.charges)
    return invoice


def list_invoices(db: Session, *, customer_id: Optional[str] = None, status: Optional[str] = None) -> List[Invoice]:
    query = db.query(Invoice)
    if customer_id:
        query = query.filter(Invoice.customer_id == customer_id)
    if status:
        query = query.filter(Invoice.status == status)
    return query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).limit(MAX_LIST_RESULTS).all()


def get_next_invoice_number(db: Session, prefix: str) -> str:
    """Next number for ``prefix``: highest existing numeric suffix plus one."""
    numbers = (
        db.query(Invoice.invoice_number)
        .filter(Invoice.invoice_number.startswith(prefix, autoescape=True))
        .all()
    )
    highest = 0
    for (number,) in numbers:
        match = _TRAILING_DIGITS_RE.search(number[len(prefix):])
        if match:
            highest = max(highest, int(match.group(1)))
    return generate_invoice_number(prefix, highest + 1)


def refresh_invoice_amounts(db: Session, invoice: Invoice) -> None:
    """Recompute entry costs and invoice totals from the current composition."""
    db.flush()
    db.expire(invoice, ["entries", "charges"])
    customer = invoice.customer
    for entry in invoice.entries:
        entry.calculated_cost = calculate_entry_cost(entry, invoice, customer)
    totals = calculate_invoice_totals(invoice.entries, invoice.charges, invoice, customer)
    invoice.subtotal = totals.subtotal
    invoice.tax_amount = totals.tax_amount
    invoice.total = totals.total
    db.flush()


def _release_entries(db: Session, entries: Iterable[TimesheetEntry]) -> None:
    # Back to unbilled: the invoice tier no longer applies to the cost.
    for entry in entries:
        entry.invoice_id = None
        entry.calculated_cost = calculate_entry_cost(entry, None, entry.customer)
    db.flush()


def _claim_entries(db: Session, invoice: Invoice, entry_ids: List[str]) -> None:
    if not entry_ids:
        return
    result = db.execute(
        update(TimesheetEntry)
        .where(
            TimesheetEntry.id.in_(entry_ids),
            TimesheetEntry.customer_id == invoice.customer_id,
            TimesheetEntry.invoice_id.is_(None),
        )
        .values(invoice_id=invoice.id)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != len(entry_ids):
        raise ConflictError("Some entries are not available for invoicing")


def _claim_charges(db: Session, invoice: Invoice, charge_ids: List[str]) -> None:
    if not charge_ids:
        return
    result = db.execute(
        update(Charge)
        .where(
            Charge.id.in_(charge_ids),
            Charge.customer_id == invoice.customer_id,
            Charge.invoice_id.is_(None),
        )
        .values(invoice_id=invoice.id)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != len(charge_ids):
        raise ConflictError("Some charges are not available for invoicing")


def _require_draft(invoice: Invoice, action: str) -> None:
    if invoice.status != "draft":
        raise InvalidStateError(f"Can only {action} draft invoices")


def apply_status_transition(invoice: Invoice, new_status: str) -> None:
    """Move ``invoice`` to ``new_status`` if the lifecycle allows it."""
    if new_status == invoice.status:
        return
    if new_status not in ALLOWED_TRANSITIONS.get(invoice.status, set()):
        raise InvalidStateError(f"Cannot change invoice status from {invoice.status} to {new_status}")
    old_status = invoice.status
    invoice.status = new_status
    if new_status == "sent":
        invoice.sent_at = utc_now()
    elif new_status == "paid":
        invoice.paid_at = utc_now()
    logger.info("Invoice %s status %s -> %s", invoice.invoice_number, old_status, new_status)


def create_invoice(db: Session, invoice_in: InvoiceCreate) -> Invoice:
    """Create a draft invoice that claims the given unbilled entries and charges.

    Either every requested entry and charge is attached and the invoice row
    exists, or nothing is written.
    """
    customer = db.get(Customer, invoice_in.customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")

    entry_ids = _unique(invoice_in.entry_ids)
    charge_ids = _unique(invoice_in.charge_ids)
    if not entry_ids and not charge_ids:
        raise ValidationError("Invoice must have at least one entry or charge")

    settings = get_settings(db)
    tax_rate = invoice_in.tax_rate if invoice_in.tax_rate is not None else settings.default_tax_rate

    with unit_of_work(db):
        invoice = Invoice(
            invoice_number=get_next_invoice_number(db, settings.invoice_prefix),
            customer_id=customer.id,
            status="draft",
            hourly_rate_override=invoice_in.hourly_rate_override,
            tax_rate=tax_rate,
            subtotal=Decimal("0.00"),
            tax_amount=Decimal("0.00"),
            total=Decimal("0.00"),
            notes=invoice_in.notes or None,
            due_date=invoice_in.due_date,
        )
        db.add(invoice)
        db.flush()
        _claim_entries(db, invoice, entry_ids)
        _claim_charges(db, invoice, charge_ids)
        refresh_invoice_amounts(db, invoice)

    logger.info(
        "Created invoice %s for customer %s with %d entries and %d charges",
        invoice.invoice_number,
        customer.id,
        len(entry_ids),
        len(charge_ids),
    )
    return get_invoice_with_details(db, invoice.id)


def update_invoice(db: Session, invoice_id: str, invoice_in: InvoiceUpdate) -> Invoice:
    """Edit a draft invoice, or change the status of any invoice."""
    invoice = get_invoice(db, invoice_id)
    changes = invoice_in.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)

    if changes and invoice.status != "draft":
        raise InvalidStateError("Can only update draft invoices")
    if "tax_rate" in changes and changes["tax_rate"] is None:
        raise ValidationError("tax_rate cannot be null")

    with unit_of_work(db):
        for field, value in changes.items():
            setattr(invoice, field, value)
        if "hourly_rate_override" in changes or "tax_rate" in changes:
            refresh_invoice_amounts(db, invoice)
        if new_status is not None:
            apply_status_transition(invoice, new_status)

    return get_invoice_with_details(db, invoice.id)


def delete_invoice(db: Session, invoice_id: str) -> None:
    invoice = get_invoice(db, invoice_id)
    _require_draft(invoice, "delete")

    with unit_of_work(db):
        _release_entries(db, list(invoice.entries))
        for charge in list(invoice.charges):
            charge.invoice_id = None
        for log in list(invoice.email_logs):
            db.delete(log)
        db.flush()
        db.expire(invoice, ["entries", "charges", "email_logs"])
        db.delete(invoice)
    logger.info("Deleted draft invoice %s", invoice.invoice_number)


def add_entries_to_invoice(db: Session, invoice_id: str, entry_ids: List[str]) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    _require_draft(invoice, "modify")
    entry_ids = _unique(entry_ids)
    if not entry_ids:
        raise ValidationError("No entries given")

    with unit_of_work(db):
        _claim_entries(db, invoice, entry_ids)
        refresh_invoice_amounts(db, invoice)
    return get_invoice_with_details(db, invoice.id)


def remove_entry_from_invoice(db: Session, invoice_id: str, entry_id: str) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    _require_draft(invoice, "modify")
    entry = db.get(TimesheetEntry, entry_id)
    if entry is None or entry.invoice_id != invoice.id:
        raise NotFoundError("Entry not found on this invoice")

    with unit_of_work(db):
        _release_entries(db, [entry])
        refresh_invoice_amounts(db, invoice)
    return get_invoice_with_details(db, invoice.id)


def add_charges_to_invoice(db: Session, invoice_id: str, charge_ids: List[str]) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    _require_draft(invoice, "modify")
    charge_ids = _unique(charge_ids)
    if not charge_ids:
        raise ValidationError("No charges given")

    with unit_of_work(db):
        _claim_charges(db, invoice, charge_ids)
        refresh_invoice_amounts(db, invoice)
    return get_invoice_with_details(db, invoice.id)


def remove_charge_from_invoice(db: Session, invoice_id: str, charge_id: str) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    _require_draft(invoice, "modify")
    charge = db.get(Charge, charge_id)
    if charge is None or charge.invoice_id != invoice.id:
        raise NotFoundError("Charge not found on this invoice")

    with unit_of_work(db):
        charge.invoice_id = None
        refresh_invoice_amounts(db, invoice)
    return get_invoice_with_details(db, invoice.id)


def recalculate_invoice_totals(db: Session, invoice_id: str) -> Invoice:
    """Rebuild derived amounts from stored entries, charges and rates, in any status."""
    invoice = get_invoice(db, invoice_id)
    with unit_of_work(db):
        refresh_invoice_amounts(db, invoice)
    return get_invoice_with_details(db, invoice.id)


def get_invoice_summary(db: Session) -> InvoiceSummary:
    summary = InvoiceSummary()
    for status, total in db.query(Invoice.status, Invoice.total).all():
        count_field = f"total_{status}"
        amount_field = f"amount_{status}"
        if not hasattr(summary, count_field):
            continue
        setattr(summary, count_field, getattr(summary, count_field) + 1)
        setattr(summary, amount_field, getattr(summary, amount_field) + Decimal(str(total)))
    return summary
