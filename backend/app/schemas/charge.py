"""Charge schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ChargeType = Literal["service", "software", "hardware", "consulting", "expense", "other"]


class ChargeCreate(BaseModel):
    customer_id: str
    charge_type: ChargeType = "other"
    description: str = Field(min_length=1, max_length=2000)
    quantity: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=2)
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    charge_date: date
    notes: Optional[str] = Field(default=None, max_length=5000)


class ChargeUpdate(BaseModel):
    charge_type: Optional[ChargeType] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    quantity: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    charge_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class ChargeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    invoice_id: Optional[str]
    charge_type: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    charge_date: date
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
