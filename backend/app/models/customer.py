"""Customer model: who gets billed and at what default rate."""

import uuid

from sqlalchemy import Column, DateTime, Numeric, String, Text
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    default_hourly_rate = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    entries = relationship("TimesheetEntry", back_populates="customer")
    charges = relationship("Charge", back_populates="customer")
    invoices = relationship("Invoice", back_populates="customer")
    import_batches = relationship("ImportBatch", back_populates="customer")
