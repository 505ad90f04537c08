"""Ad-hoc charge endpoints."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.charge import ChargeCreate, ChargeRead, ChargeUpdate
from backend.app.services import charges as charge_service

router = APIRouter(prefix="/charges", tags=["charges"])


@router.get("/", response_model=List[ChargeRead])
async def list_charges(
    customer_id: Optional[str] = None,
    charge_type: Optional[str] = None,
    unbilled: bool = False,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return charge_service.list_charges(
        db,
        customer_id=customer_id,
        charge_type=charge_type,
        start_date=start_date,
        end_date=end_date,
        unbilled_only=unbilled,
    )


@router.post("/", response_model=ChargeRead, status_code=status.HTTP_201_CREATED)
async def create_charge(charge_in: ChargeCreate, db: Session = Depends(get_db)):
    return charge_service.create_charge(db, charge_in)


@router.get("/{charge_id}", response_model=ChargeRead)
async def get_charge(charge_id: str, db: Session = Depends(get_db)):
    return charge_service.get_charge(db, charge_id)


@router.patch("/{charge_id}", response_model=ChargeRead)
async def update_charge(charge_id: str, charge_in: ChargeUpdate, db: Session = Depends(get_db)):
    return charge_service.update_charge(db, charge_id, charge_in)


@router.delete("/{charge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_charge(charge_id: str, db: Session = Depends(get_db)):
    charge_service.delete_charge(db, charge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
