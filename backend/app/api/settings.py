"""Business settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.schemas.settings import AppSettings, AppSettingsUpdate, PublicSettings
from backend.app.services import settings as settings_service

router = APIRouter(prefix="/settings", tags=["settings"])

PASSWORD_MASK = "********"


def _masked(settings: AppSettings) -> AppSettings:
    return settings.model_copy(update={"smtp_password": PASSWORD_MASK if settings.smtp_password else ""})


@router.get("/", response_model=AppSettings)
async def read_settings(db: Session = Depends(get_db)):
    return _masked(settings_service.get_settings(db))


@router.get("/public", response_model=PublicSettings)
async def read_public_settings(db: Session = Depends(get_db)):
    settings = settings_service.get_settings(db)
    return PublicSettings(**settings.model_dump(include=set(PublicSettings.model_fields)))


@router.patch("/", response_model=AppSettings)
async def update_settings(changes: AppSettingsUpdate, db: Session = Depends(get_db)):
    if changes.smtp_password == PASSWORD_MASK:
        # Form round-trip of the masked value; keep the stored password.
        changes = changes.model_copy(update={"smtp_password": None})
    return _masked(settings_service.update_settings(db, changes))
