"""Customer endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate, CustomerWithStats
from backend.app.services import customers as customer_service

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=List[CustomerRead])
async def list_customers(db: Session = Depends(get_db)):
    return customer_service.list_customers(db)


@router.post("/", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(customer_in: CustomerCreate, db: Session = Depends(get_db)):
    return customer_service.create_customer(db, customer_in)


@router.get("/{customer_id}", response_model=CustomerWithStats)
async def get_customer(customer_id: str, db: Session = Depends(get_db)):
    return customer_service.get_customer_with_stats(db, customer_id)


@router.patch("/{customer_id}", response_model=CustomerRead)
async def update_customer(customer_id: str, customer_in: CustomerUpdate, db: Session = Depends(get_db)):
    return customer_service.update_customer(db, customer_id, customer_in)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    customer_service.delete_customer(db, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
