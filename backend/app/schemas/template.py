"""Document template schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

TemplateType = Literal["invoice_email", "reminder_email", "invoice_pdf"]


class TemplateRead(BaseModel):
    type: TemplateType
    name: str
    subject: Optional[str] = None
    html_content: str
    is_default: bool = True
    updated_at: Optional[datetime] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    subject: Optional[str] = Field(default=None, max_length=500)
    html_content: Optional[str] = Field(default=None, min_length=1)


class TemplatePreviewRequest(BaseModel):
    html_content: str = Field(min_length=1)
    subject: Optional[str] = None


class RenderedDocumentRead(BaseModel):
    subject: Optional[str] = None
    html: str
