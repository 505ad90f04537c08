"""CSV timesheet import endpoints."""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.csv_import import CsvImportPreview, CsvImportRequest, ImportBatchRead, ImportResult
from backend.app.services.csv_import import (
    import_csv_entries,
    list_import_batches,
    parse_csv_file,
    preview_csv_import,
)

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("/preview", response_model=CsvImportPreview)
async def preview_import(
    file: UploadFile = File(...),
    hourly_rate: Decimal = Form(..., ge=0, decimal_places=2),
):
    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="CSV file must be UTF-8 encoded")
    return preview_csv_import(parse_csv_file(content), hourly_rate)


@router.post("/", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
async def import_entries(import_in: CsvImportRequest, db: Session = Depends(get_db)):
    return import_csv_entries(
        db,
        customer_id=import_in.customer_id,
        hourly_rate=import_in.hourly_rate,
        entries=import_in.entries,
        filename=import_in.filename,
    )


@router.get("/batches", response_model=List[ImportBatchRead])
async def list_batches(customer_id: Optional[str] = None, db: Session = Depends(get_db)):
    return list_import_batches(db, customer_id)
