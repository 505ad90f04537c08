"""Invoice and reminder email delivery with a PDF attachment.

Every send attempt, successful or not, leaves an ``EmailLog`` row. Transport
failures are recorded and reported in the returned ``SendResult``; they are
not retried.
"""

import logging
import re
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError, ValidationError
from backend.app.db.session import unit_of_work
from backend.app.models.email_log import EmailLog
from backend.app.schemas.settings import AppSettings
from backend.app.services.documents import render_invoice_email, render_reminder_email
from backend.app.services.invoices import apply_status_transition, get_invoice_with_details
from backend.app.services.pdf import HtmlPdfRenderer, generate_invoice_pdf
from backend.app.services.settings import get_settings

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
HEADER_INJECTION_RE = re.compile(r"[\r\n,;]")
SMTP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass(frozen=True)
class MailMessage:
    from_address: str
    to: str
    subject: str
    html: str
    attachments: Tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MailTransport(Protocol):
    def send(self, message: MailMessage) -> str:
        """Deliver ``message`` and return the provider message id."""
        ...


class SmtpMailTransport:
    """STARTTLS + login SMTP delivery."""

    def __init__(self, host: str, port: int, user: str, password: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "SmtpMailTransport":
        if not settings.smtp_user or not settings.smtp_password:
            raise ValidationError("Email not configured. Please set up SMTP in settings.")
        return cls(settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_password)

    def build_mime(self, message: MailMessage) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = message.from_address
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(message.html, "html", "utf-8"))
        for attachment in message.attachments:
            subtype = attachment.content_type.split("/", 1)[-1]
            part = MIMEApplication(attachment.content, _subtype=subtype, Name=attachment.filename)
            part["Content-Disposition"] = f'attachment; filename="{attachment.filename}"'
            msg.attach(part)
        return msg

    def send(self, message: MailMessage) -> str:
        msg = self.build_mime(message)
        with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            server.login(self.user, self.password)
            server.send_message(msg)
        return msg["Message-ID"]


def validate_email(address: str) -> None:
    if not EMAIL_RE.match(address) or HEADER_INJECTION_RE.search(address):
        raise ValidationError("Invalid email address")


def _from_address(settings: AppSettings) -> str:
    sender = settings.smtp_from_email or settings.company_email or settings.smtp_user
    return formataddr((settings.company_name, sender))


def _resolve_recipient(invoice, recipient_email: Optional[str]) -> str:
    to_email = (recipient_email or invoice.customer.email or "").strip()
    if not to_email:
        raise ValidationError("No recipient email address provided")
    validate_email(to_email)
    return to_email


def _deliver(
    db: Session,
    invoice,
    *,
    to_email: str,
    subject: str,
    html: str,
    pdf_bytes: bytes,
    settings: AppSettings,
    transport: MailTransport,
    mark_sent: bool,
) -> SendResult:
    message = MailMessage(
        from_address=_from_address(settings),
        to=to_email,
        subject=subject,
        html=html,
        attachments=(Attachment(filename=f"{invoice.invoice_number}.pdf", content=pdf_bytes),),
    )
    try:
        message_id = transport.send(message)
    except Exception as exc:
        error = str(exc) or exc.__class__.__name__
        logger.warning("Email for invoice %s to %s failed: %s", invoice.invoice_number, to_email, error)
        with unit_of_work(db):
            db.add(
                EmailLog(
                    invoice_id=invoice.id,
                    recipient_email=to_email,
                    subject=subject,
                    status="failed",
                    error_message=error,
                )
            )
        return SendResult(success=False, error=error)

    with unit_of_work(db):
        db.add(
            EmailLog(
                invoice_id=invoice.id,
                recipient_email=to_email,
                subject=subject,
                status="sent",
                provider_message_id=message_id,
            )
        )
        if mark_sent and invoice.status == "draft":
            apply_status_transition(invoice, "sent")
    logger.info("Emailed invoice %s to %s", invoice.invoice_number, to_email)
    return SendResult(success=True, message_id=message_id)


def send_invoice_email(
    db: Session,
    invoice_id: str,
    recipient_email: Optional[str] = None,
    *,
    transport: Optional[MailTransport] = None,
    renderer: Optional[HtmlPdfRenderer] = None,
) -> SendResult:
    invoice = get_invoice_with_details(db, invoice_id)
    if invoice.status == "cancelled":
        raise InvalidStateError("Cannot email a cancelled invoice")
    to_email = _resolve_recipient(invoice, recipient_email)
    settings = get_settings(db)
    transport = transport or SmtpMailTransport.from_settings(settings)

    document = render_invoice_email(db, invoice_id)
    pdf_bytes = generate_invoice_pdf(db, invoice_id, renderer=renderer)
    return _deliver(
        db,
        invoice,
        to_email=to_email,
        subject=document.subject or f"Invoice {invoice.invoice_number}",
        html=document.html,
        pdf_bytes=pdf_bytes,
        settings=settings,
        transport=transport,
        mark_sent=True,
    )


def send_reminder_email(
    db: Session,
    invoice_id: str,
    recipient_email: Optional[str] = None,
    *,
    transport: Optional[MailTransport] = None,
    renderer: Optional[HtmlPdfRenderer] = None,
) -> SendResult:
    document = render_reminder_email(db, invoice_id)
    invoice = get_invoice_with_details(db, invoice_id)
    to_email = _resolve_recipient(invoice, recipient_email)
    settings = get_settings(db)
    transport = transport or SmtpMailTransport.from_settings(settings)

    pdf_bytes = generate_invoice_pdf(db, invoice_id, renderer=renderer)
    return _deliver(
        db,
        invoice,
        to_email=to_email,
        subject=document.subject or f"Friendly Reminder: Invoice {invoice.invoice_number}",
        html=document.html,
        pdf_bytes=pdf_bytes,
        settings=settings,
        transport=transport,
        mark_sent=False,
    )


def list_email_logs(db: Session, invoice_id: Optional[str] = None) -> List[EmailLog]:
    query = db.query(EmailLog)
    if invoice_id:
        query = query.filter(EmailLog.invoice_id == invoice_id)
    return query.order_by(EmailLog.sent_at.desc()).all()
