"""Invoice model for billing."""

import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base

INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)

    status = Column(String(20), default="draft", nullable=False)
    hourly_rate_override = Column(Numeric(10, 2), nullable=True)
    subtotal = Column(Numeric(10, 2), default=0, nullable=False)
    tax_rate = Column(Numeric(5, 4), default=0, nullable=False)
    tax_amount = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    notes = Column(Text, nullable=True)

    due_date = Column(Date, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    customer = relationship("Customer", back_populates="invoices")
    entries = relationship(
        "TimesheetEntry",
        back_populates="invoice",
        order_by="[TimesheetEntry.entry_date, TimesheetEntry.created_at]",
    )
    charges = relationship(
        "Charge",
        back_populates="invoice",
        order_by="[Charge.charge_date, Charge.created_at]",
    )
    email_logs = relationship("EmailLog", back_populates="invoice")
