"""Customer schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CustomerBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=1000)
    default_hourly_rate: Decimal = Field(ge=0, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=5000)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=1000)
    default_hourly_rate: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=5000)


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: Optional[str]
    address: Optional[str]
    default_hourly_rate: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class CustomerWithStats(CustomerRead):
    total_invoices: int
    total_revenue: Decimal
    unbilled_entries: int
    unbilled_amount: Decimal
