"""Timesheet entry endpoints."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.entry import EntryCreate, EntryRead, EntryUpdate
from backend.app.services import entries as entry_service

router = APIRouter(prefix="/entries", tags=["entries"])


@router.get("/", response_model=List[EntryRead])
async def list_entries(
    customer_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
    unbilled: bool = False,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return entry_service.list_entries(
        db,
        customer_id=customer_id,
        invoice_id=invoice_id,
        unbilled_only=unbilled,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/unbilled/{customer_id}", response_model=List[EntryRead])
async def list_unbilled_entries(customer_id: str, db: Session = Depends(get_db)):
    return entry_service.get_unbilled_entries(db, customer_id)


@router.post("/", response_model=EntryRead, status_code=status.HTTP_201_CREATED)
async def create_entry(entry_in: EntryCreate, db: Session = Depends(get_db)):
    return entry_service.create_entry(db, entry_in)


@router.get("/{entry_id}", response_model=EntryRead)
async def get_entry(entry_id: str, db: Session = Depends(get_db)):
    return entry_service.get_entry(db, entry_id)


@router.patch("/{entry_id}", response_model=EntryRead)
async def update_entry(entry_id: str, entry_in: EntryUpdate, db: Session = Depends(get_db)):
    return entry_service.update_entry(db, entry_id, entry_in)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(entry_id: str, db: Session = Depends(get_db)):
    entry_service.delete_entry(db, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
