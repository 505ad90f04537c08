"""Business settings stored as key/value rows over built-in defaults."""

import logging
from typing import Any

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from backend.app.models.app_setting import AppSetting
from backend.app.schemas.settings import AppSettings, AppSettingsUpdate

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = AppSettings()


def get_settings(db: Session) -> AppSettings:
    stored = {row.key: row.value for row in db.query(AppSetting).all()}
    values = DEFAULT_SETTINGS.model_dump()
    values.update({key: value for key, value in stored.items() if key in AppSettings.model_fields})
    return AppSettings.model_validate(values)


def get_setting(db: Session, key: str) -> Any:
    if key not in AppSettings.model_fields:
        raise KeyError(key)
    row = db.get(AppSetting, key)
    if row is None:
        return getattr(DEFAULT_SETTINGS, key)
    annotation = AppSettings.model_fields[key].annotation
    return TypeAdapter(annotation).validate_python(row.value)


def update_settings(db: Session, changes: AppSettingsUpdate) -> AppSettings:
    updates = changes.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    for key, value in updates.items():
        row = db.get(AppSetting, key)
        if row is None:
            db.add(AppSetting(key=key, value=value))
        else:
            row.value = value
    db.commit()
    logger.info("Updated settings: %s", sorted(updates))
    return get_settings(db)


def initialize_settings(db: Session) -> None:
    if db.query(AppSetting).count():
        return
    for key, value in DEFAULT_SETTINGS.model_dump(mode="json").items():
        db.add(AppSetting(key=key, value=value))
    db.commit()
    logger.info("Initialized default settings")
