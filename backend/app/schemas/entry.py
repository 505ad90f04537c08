"""Timesheet entry schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntryBase(BaseModel):
    entry_date: date
    start_time: Optional[str] = Field(default=None, max_length=5)
    end_time: Optional[str] = Field(default=None, max_length=5)
    total_minutes: int = Field(ge=1)
    task_description: str = Field(min_length=1, max_length=2000)
    requestor: Optional[str] = Field(default=None, max_length=255)
    hourly_rate_override: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)

    @field_validator("task_description")
    @classmethod
    def task_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Task description is required")
        return value.strip()


class EntryCreate(EntryBase):
    customer_id: str


class EntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    start_time: Optional[str] = Field(default=None, max_length=5)
    end_time: Optional[str] = Field(default=None, max_length=5)
    total_minutes: Optional[int] = Field(default=None, ge=1)
    task_description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    requestor: Optional[str] = Field(default=None, max_length=255)
    hourly_rate_override: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)

    @field_validator("task_description")
    @classmethod
    def task_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Task description is required")
        return value.strip() if value is not None else value


class EntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    invoice_id: Optional[str]
    import_batch_id: Optional[str]
    entry_date: date
    start_time: Optional[str]
    end_time: Optional[str]
    total_minutes: int
    task_description: str
    requestor: Optional[str]
    hourly_rate_override: Optional[Decimal]
    calculated_cost: Decimal
    created_at: datetime
    updated_at: datetime
