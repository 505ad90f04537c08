"""Write-once audit record of a CSV import."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class ImportBatch(Base):
    __tablename__ = "import_batches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    filename = Column(String(255), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    entries_count = Column(Integer, nullable=False)
    total_minutes = Column(Integer, nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    imported_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    customer = relationship("Customer", back_populates="import_batches")
    entries = relationship("TimesheetEntry", back_populates="import_batch")
