"""Invoice schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.schemas.charge import ChargeRead
from backend.app.schemas.customer import CustomerRead
from backend.app.schemas.entry import EntryRead

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "cancelled"]


class InvoiceCreate(BaseModel):
    customer_id: str
    entry_ids: List[str] = Field(default_factory=list)
    charge_ids: List[str] = Field(default_factory=list)
    hourly_rate_override: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    notes: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[date] = None


class InvoiceUpdate(BaseModel):
    status: Optional[InvoiceStatus] = None
    hourly_rate_override: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    notes: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[date] = None


class InvoiceEntryIds(BaseModel):
    entry_ids: List[str] = Field(min_length=1)


class InvoiceChargeIds(BaseModel):
    charge_ids: List[str] = Field(min_length=1)


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    customer_id: str
    status: InvoiceStatus
    hourly_rate_override: Optional[Decimal]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: Optional[str]
    due_date: Optional[date]
    sent_at: Optional[datetime]
    paid_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class InvoiceDetail(InvoiceRead):
    customer: CustomerRead
    entries: List[EntryRead]
    charges: List[ChargeRead]


class InvoiceSummary(BaseModel):
    total_draft: int = 0
    total_sent: int = 0
    total_paid: int = 0
    total_overdue: int = 0
    total_cancelled: int = 0
    amount_draft: Decimal = Decimal("0.00")
    amount_sent: Decimal = Decimal("0.00")
    amount_paid: Decimal = Decimal("0.00")
    amount_overdue: Decimal = Decimal("0.00")
    amount_cancelled: Decimal = Decimal("0.00")
