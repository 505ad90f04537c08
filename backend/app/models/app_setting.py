from sqlalchemy import JSON, Column, DateTime, String

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
