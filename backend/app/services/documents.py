"""Render the three invoice documents from stored templates."""

import base64
import logging
import mimetypes
import os
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import InvalidStateError
from backend.app.core.settings import get_settings as get_app_config
from backend.app.schemas.settings import AppSettings
from backend.app.services.invoices import get_invoice_with_details
from backend.app.services.settings import get_settings
from backend.app.services.templates import (
    RenderedDocument,
    TemplateContext,
    build_template_context,
    process_template,
    resolve_template,
)

logger = logging.getLogger(__name__)

REMINDER_STATUSES = ("sent", "overdue")


def load_logo_data_uri(filename: Optional[str], logos_dir: Optional[str] = None) -> Optional[str]:
    """Inline a stored logo as a ``data:`` URI; None if it cannot be read."""
    if not filename:
        return None
    logos_dir = logos_dir or get_app_config().logos_dir
    path = os.path.join(logos_dir, os.path.basename(filename))
    if not os.path.isfile(path):
        logger.warning("Logo file %s not found in %s", filename, logos_dir)
        return None
    mime_type = mimetypes.guess_type(path)[0] or "image/png"
    with open(path, "rb") as handle:
        encoded = base64.b64encode(handle.read()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _context_for(db: Session, invoice_id: str, *, inline_logo: bool) -> tuple:
    invoice = get_invoice_with_details(db, invoice_id)
    settings: AppSettings = get_settings(db)
    logo_data_uri = load_logo_data_uri(settings.company_logo) if inline_logo else None
    context = build_template_context(
        invoice,
        settings,
        base_url=get_app_config().base_url,
        logo_data_uri=logo_data_uri,
    )
    return invoice, context


def _render(db: Session, template_type: str, context: TemplateContext) -> RenderedDocument:
    template = resolve_template(db, template_type)
    subject = process_template(template.subject, context) if template.subject else None
    return RenderedDocument(subject=subject, html=process_template(template.html_content, context))


def render_invoice_email(db: Session, invoice_id: str) -> RenderedDocument:
    _, context = _context_for(db, invoice_id, inline_logo=False)
    return _render(db, "invoice_email", context)


def render_reminder_email(db: Session, invoice_id: str) -> RenderedDocument:
    invoice, context = _context_for(db, invoice_id, inline_logo=False)
    if invoice.status not in REMINDER_STATUSES:
        raise InvalidStateError("Can only send reminders for sent or overdue invoices")
    return _render(db, "reminder_email", context)


def render_invoice_pdf_html(db: Session, invoice_id: str) -> RenderedDocument:
    _, context = _context_for(db, invoice_id, inline_logo=True)
    return _render(db, "invoice_pdf", context)
