"""Invoice PDF generation.

With an ``HtmlPdfRenderer`` the stored ``invoice_pdf`` template is rendered
to HTML and handed to it. Without one, a fixed reportlab layout is drawn
from the same template context.
"""

import io
import logging
import os
from typing import Optional, Protocol
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from backend.app.core.errors import ExternalServiceError
from backend.app.core.settings import get_settings as get_app_config
from backend.app.services.documents import render_invoice_pdf_html
from backend.app.services.formatters import format_currency, format_duration, format_short_date
from backend.app.services.invoices import get_invoice_with_details
from backend.app.services.settings import get_settings
from backend.app.services.templates import (
    TemplateContext,
    build_template_context,
    format_quantity,
    truncate_description,
)

logger = logging.getLogger(__name__)

ACCENT = colors.HexColor("#4f46e5")
ROW_ALT = colors.HexColor("#f3f4f6")
MUTED = colors.HexColor("#6b7280")


class HtmlPdfRenderer(Protocol):
    def render(self, html: str) -> bytes:
        ...


def _text(value: str) -> str:
    # Paragraph markup: escape, keep line breaks.
    return escape(value).replace("\n", "<br/>")


def _logo_flowable(filename: Optional[str]):
    if not filename:
        return ""
    path = os.path.join(get_app_config().logos_dir, os.path.basename(filename))
    if not os.path.isfile(path):
        return ""
    return Image(path, width=160, height=55, kind="proportional")


def build_invoice_pdf(invoice, context: TemplateContext, logo_filename: Optional[str] = None) -> bytes:
    """Draw the invoice with reportlab platypus flowables."""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=letter,
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
        title=f"Invoice {context.invoice.invoice_number}",
    )
    styles = getSampleStyleSheet()
    left = ParagraphStyle(name="InvoiceLeft", parent=styles["Normal"], alignment=TA_LEFT, fontSize=9, leading=12)
    right = ParagraphStyle(name="InvoiceRight", parent=left, alignment=TA_RIGHT)
    muted = ParagraphStyle(name="InvoiceMuted", parent=left, textColor=MUTED, fontSize=8)
    title = ParagraphStyle(name="InvoiceTitle", parent=styles["Title"], alignment=TA_LEFT, textColor=ACCENT)
    story = []

    company = context.company
    contact = " | ".join(part for part in (company.email, company.phone) if part)
    company_block = f"<b>{_text(company.name)}</b><br/>{_text(company.address)}"
    if contact:
        company_block += f"<br/>{_text(contact)}"
    header = Table(
        [[_logo_flowable(logo_filename), Paragraph(company_block, right)]],
        colWidths=[260, 272],
    )
    header.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 0),
                ("RIGHTPADDING", (0, 0), (-1, -1), 0),
                ("LINEABOVE", (0, 0), (-1, 0), 4, ACCENT),
                ("TOPPADDING", (0, 0), (-1, -1), 10),
            ]
        )
    )
    story.append(header)
    story.append(Spacer(1, 18))

    meta = f"#{_text(context.invoice.invoice_number)}<br/>Date: {_text(context.invoice.created_at)}"
    if context.invoice.due_date:
        meta += f"<br/>Due: {_text(context.invoice.due_date)}"
    customer = context.customer
    bill_to = f"<b>BILL TO</b><br/><b>{_text(customer.name)}</b>"
    for line in (customer.email, customer.address):
        if line:
            bill_to += f"<br/>{_text(line)}"
    info = Table(
        [[[Paragraph("INVOICE", title), Paragraph(meta, muted)], Paragraph(bill_to, left)]],
        colWidths=[282, 250],
    )
    info.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("BACKGROUND", (1, 0), (1, 0), ROW_ALT),
                ("LINEBEFORE", (1, 0), (1, 0), 3, ACCENT),
            ]
        )
    )
    story.append(info)
    story.append(Spacer(1, 18))

    rows = [["Date", "Description", "Qty", "Amount"]]
    for entry in invoice.entries:
        rows.append(
            [
                format_short_date(entry.entry_date),
                Paragraph(_text(truncate_description(entry.task_description)), left),
                format_duration(entry.total_minutes),
                format_currency(entry.calculated_cost),
            ]
        )
    for charge in invoice.charges:
        rows.append(
            [
                format_short_date(charge.charge_date),
                Paragraph(_text(truncate_description(charge.description)), left),
                format_quantity(charge.quantity),
                format_currency(charge.total),
            ]
        )
    items = Table(rows, colWidths=[60, 322, 60, 90], repeatRows=1)
    items.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), ROW_ALT),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LINEBELOW", (0, 0), (-1, -1), 0.5, colors.lightgrey),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, ROW_ALT]),
            ]
        )
    )
    story.append(items)
    story.append(Spacer(1, 12))

    totals = [["Subtotal", context.invoice.subtotal]]
    if context.invoice.tax_rate:
        totals.append([f"Tax ({context.invoice.tax_rate})", context.invoice.tax_amount])
    totals.append(["TOTAL", context.invoice.total])
    totals_table = Table(totals, colWidths=[100, 90], hAlign="RIGHT")
    totals_table.setStyle(
        TableStyle(
            [
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, -1), (-1, -1), 12),
                ("LINEABOVE", (0, -1), (-1, -1), 1, ACCENT),
            ]
        )
    )
    story.append(totals_table)
    story.append(Spacer(1, 24))

    if context.invoice.notes:
        story.append(Paragraph("<b>Terms &amp; Conditions</b>", muted))
        story.append(Paragraph(_text(context.invoice.notes), muted))
        story.append(Spacer(1, 12))
    story.append(Paragraph("<b>Thank you for your business!</b>", left))

    doc.build(story)
    return buf.getvalue()


def generate_invoice_pdf(db: Session, invoice_id: str, renderer: Optional[HtmlPdfRenderer] = None) -> bytes:
    """PDF bytes for an invoice. Renderer failures surface as ExternalServiceError."""
    if renderer is not None:
        document = render_invoice_pdf_html(db, invoice_id)
        try:
            return renderer.render(document.html)
        except Exception as exc:
            logger.error("PDF renderer failed for invoice %s: %s", invoice_id, exc)
            raise ExternalServiceError("Failed to render invoice PDF") from exc

    invoice = get_invoice_with_details(db, invoice_id)
    settings = get_settings(db)
    context = build_template_context(invoice, settings)
    return build_invoice_pdf(invoice, context, logo_filename=settings.company_logo)
