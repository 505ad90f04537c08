"""Timesheet entry model: one billable block of time."""

import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class TimesheetEntry(Base):
    __tablename__ = "timesheet_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=True, index=True)
    import_batch_id = Column(String(36), ForeignKey("import_batches.id"), nullable=True, index=True)

    entry_date = Column(Date, nullable=False)
    # Display only; cost is driven by total_minutes.
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    total_minutes = Column(Integer, nullable=False)
    task_description = Column(Text, nullable=False)
    requestor = Column(String(255), nullable=True)
    hourly_rate_override = Column(Numeric(10, 2), nullable=True)
    calculated_cost = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    customer = relationship("Customer", back_populates="entries")
    invoice = relationship("Invoice", back_populates="entries")
    import_batch = relationship("ImportBatch", back_populates="entries")
