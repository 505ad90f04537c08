"""Application settings schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class AppSettings(BaseModel):
    company_name: str = "Your Company"
    company_address: str = ""
    company_logo: Optional[str] = None
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    default_hourly_rate: Decimal = Decimal("90")
    default_tax_rate: Decimal = Decimal("0")
    invoice_prefix: str = "INV-"
    invoice_terms: str = "Payment due within 30 days."
    smtp_host: str = "smtp.mailgun.org"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from_email: str = ""


class AppSettingsUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    company_address: Optional[str] = Field(default=None, max_length=1000)
    company_logo: Optional[str] = Field(default=None, max_length=255)
    company_email: Optional[str] = Field(default=None, max_length=255)
    company_phone: Optional[str] = Field(default=None, max_length=50)
    default_hourly_rate: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    default_tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1, decimal_places=4)
    invoice_prefix: Optional[str] = Field(default=None, max_length=20)
    invoice_terms: Optional[str] = Field(default=None, max_length=5000)
    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = Field(default=None, ge=1, le=65535)
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: Optional[str] = None


class PublicSettings(BaseModel):
    company_name: str
    company_logo: Optional[str]
    default_hourly_rate: Decimal
    default_tax_rate: Decimal
    invoice_prefix: str
