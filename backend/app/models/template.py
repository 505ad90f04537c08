"""Stored override of a built-in document template."""

import uuid

from sqlalchemy import Column, DateTime, String, Text

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base

TEMPLATE_TYPES = ("invoice_email", "reminder_email", "invoice_pdf")


class Template(Base):
    __tablename__ = "templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(30), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=True)
    html_content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
