"""CSV import schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.schemas.entry import EntryRead


class ParsedCsvEntry(BaseModel):
    entry_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    total_minutes: int = Field(ge=1)
    task_description: str = Field(min_length=1)
    requestor: Optional[str] = None
    # Cost as printed in the sheet; never used for billing.
    original_cost: Decimal = Decimal("0")


class CsvImportPreview(BaseModel):
    entries: List[ParsedCsvEntry]
    row_count: int
    skipped_rows: int
    total_minutes: int
    total_cost: Decimal


class CsvImportRequest(BaseModel):
    customer_id: str
    hourly_rate: Decimal = Field(ge=0, decimal_places=2)
    filename: str = Field(min_length=1, max_length=255)
    entries: List[ParsedCsvEntry] = Field(min_length=1)


class ImportResult(BaseModel):
    batch_id: str
    entries: List[EntryRead]


class ImportBatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    customer_id: str
    entries_count: int
    total_minutes: int
    total_cost: Decimal
    imported_at: datetime
