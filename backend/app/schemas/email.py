"""Email sending schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SendEmailRequest(BaseModel):
    recipient_email: Optional[str] = Field(default=None, max_length=255)


class SendResultRead(BaseModel):
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_id: str
    recipient_email: str
    subject: str
    status: str
    provider_message_id: Optional[str]
    error_message: Optional[str]
    sent_at: datetime
