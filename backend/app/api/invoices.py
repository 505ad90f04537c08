"""Invoice endpoints: composition, lifecycle, documents and email."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from backend.app.core.errors import ExternalServiceError
from backend.app.db.session import get_db
from backend.app.dependencies.documents import get_mail_transport, get_pdf_renderer
from backend.app.schemas.email import EmailLogRead, SendEmailRequest, SendResultRead
from backend.app.schemas.invoice import (
    InvoiceChargeIds,
    InvoiceCreate,
    InvoiceDetail,
    InvoiceEntryIds,
    InvoiceRead,
    InvoiceStatus,
    InvoiceSummary,
    InvoiceUpdate,
)
from backend.app.schemas.template import RenderedDocumentRead
from backend.app.services import invoices as invoice_service
from backend.app.services.documents import render_invoice_pdf_html
from backend.app.services.email import list_email_logs, send_invoice_email, send_reminder_email
from backend.app.services.pdf import generate_invoice_pdf

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/", response_model=List[InvoiceRead])
async def list_invoices(
    customer_id: Optional[str] = None,
    status: Optional[InvoiceStatus] = None,
    db: Session = Depends(get_db),
):
    return invoice_service.list_invoices(db, customer_id=customer_id, status=status)


@router.get("/summary", response_model=InvoiceSummary)
async def get_invoice_summary(db: Session = Depends(get_db)):
    return invoice_service.get_invoice_summary(db)


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
async def create_invoice(invoice_in: InvoiceCreate, db: Session = Depends(get_db)):
    return invoice_service.create_invoice(db, invoice_in)


@router.get("/{invoice_id}", response_model=InvoiceDetail)
async def get_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return invoice_service.get_invoice_with_details(db, invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceDetail)
async def update_invoice(invoice_id: str, invoice_in: InvoiceUpdate, db: Session = Depends(get_db)):
    return invoice_service.update_invoice(db, invoice_id, invoice_in)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: str, db: Session = Depends(get_db)):
    invoice_service.delete_invoice(db, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{invoice_id}/recalculate", response_model=InvoiceDetail)
async def recalculate_invoice(invoice_id: str, db: Session = Depends(get_db)):
    return invoice_service.recalculate_invoice_totals(db, invoice_id)


@router.post("/{invoice_id}/entries", response_model=InvoiceDetail)
async def add_entries(invoice_id: str, payload: InvoiceEntryIds, db: Session = Depends(get_db)):
    return invoice_service.add_entries_to_invoice(db, invoice_id, payload.entry_ids)


@router.delete("/{invoice_id}/entries/{entry_id}", response_model=InvoiceDetail)
async def remove_entry(invoice_id: str, entry_id: str, db: Session = Depends(get_db)):
    return invoice_service.remove_entry_from_invoice(db, invoice_id, entry_id)


@router.post("/{invoice_id}/charges", response_model=InvoiceDetail)
async def add_charges(invoice_id: str, payload: InvoiceChargeIds, db: Session = Depends(get_db)):
    return invoice_service.add_charges_to_invoice(db, invoice_id, payload.charge_ids)


@router.delete("/{invoice_id}/charges/{charge_id}", response_model=InvoiceDetail)
async def remove_charge(invoice_id: str, charge_id: str, db: Session = Depends(get_db)):
    return invoice_service.remove_charge_from_invoice(db, invoice_id, charge_id)


@router.get("/{invoice_id}/pdf")
def download_invoice_pdf(
    invoice_id: str,
    db: Session = Depends(get_db),
    renderer=Depends(get_pdf_renderer),
):
    invoice = invoice_service.get_invoice(db, invoice_id)
    pdf_bytes = generate_invoice_pdf(db, invoice_id, renderer=renderer)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
    )


@router.get("/{invoice_id}/pdf-html", response_model=RenderedDocumentRead)
async def preview_invoice_pdf_html(invoice_id: str, db: Session = Depends(get_db)):
    document = render_invoice_pdf_html(db, invoice_id)
    return RenderedDocumentRead(subject=document.subject, html=document.html)


@router.post("/{invoice_id}/send", response_model=SendResultRead)
def send_invoice(
    invoice_id: str,
    payload: SendEmailRequest,
    db: Session = Depends(get_db),
    transport=Depends(get_mail_transport),
    renderer=Depends(get_pdf_renderer),
):
    result = send_invoice_email(db, invoice_id, payload.recipient_email, transport=transport, renderer=renderer)
    if not result.success:
        # Attempt is already logged; report the transport failure to the caller.
        raise ExternalServiceError(f"Failed to send email: {result.error}")
    return SendResultRead(success=result.success, message_id=result.message_id, error=result.error)


@router.post("/{invoice_id}/remind", response_model=SendResultRead)
def send_reminder(
    invoice_id: str,
    payload: SendEmailRequest,
    db: Session = Depends(get_db),
    transport=Depends(get_mail_transport),
    renderer=Depends(get_pdf_renderer),
):
    result = send_reminder_email(db, invoice_id, payload.recipient_email, transport=transport, renderer=renderer)
    if not result.success:
        # Attempt is already logged; report the transport failure to the caller.
        raise ExternalServiceError(f"Failed to send email: {result.error}")
    return SendResultRead(success=result.success, message_id=result.message_id, error=result.error)


@router.get("/{invoice_id}/email-logs", response_model=List[EmailLogRead])
async def get_email_logs(invoice_id: str, db: Session = Depends(get_db)):
    invoice_service.get_invoice(db, invoice_id)
    return list_email_logs(db, invoice_id)
