"""Template storage and the ``{{path}}`` substitution engine.

Templates are HTML with two constructs:

* ``{{group.field}}`` scalar placeholders, replaced by the HTML-escaped value
  found at that path in a ``TemplateContext`` (missing paths render empty).
* ``{{#if group.field}}...{{/if}}`` blocks, kept only when the value is
  non-empty.

``{{lineItems}}`` is the one placeholder inserted without escaping: it holds
the table produced by ``build_line_items_html``, whose cells are escaped as
they are built.
"""

import logging
import re
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType, SimpleNamespace
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from backend.app.core.errors import NotFoundError
from backend.app.models.template import TEMPLATE_TYPES, Template
from backend.app.schemas.settings import AppSettings
from backend.app.schemas.template import TemplateRead, TemplateUpdate
from backend.app.services.formatters import (
    format_currency,
    format_date_long,
    format_duration,
    format_short_date,
)
from backend.app.services.rates import to_decimal

logger = logging.getLogger(__name__)

LINE_ITEMS_PLACEHOLDER = "lineItems"
DESCRIPTION_MAX_LENGTH = 55
DESCRIPTION_TRUNCATE_AT = 52

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")
_IF_BLOCK_RE = re.compile(r"\{\{#if ([^}]+)\}\}([\s\S]*?)\{\{/if\}\}")

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}


@dataclass(frozen=True)
class InvoiceFields:
    invoice_number: str = ""
    created_at: str = ""
    due_date: str = ""
    subtotal: str = ""
    tax_rate: str = ""
    tax_amount: str = ""
    total: str = ""
    notes: str = ""
    sent_at: str = ""


@dataclass(frozen=True)
class CustomerFields:
    name: str = ""
    email: str = ""
    address: str = ""


@dataclass(frozen=True)
class CompanyFields:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    logo: str = ""


@dataclass(frozen=True)
class TemplateContext:
    invoice: InvoiceFields = field(default_factory=InvoiceFields)
    customer: CustomerFields = field(default_factory=CustomerFields)
    company: CompanyFields = field(default_factory=CompanyFields)
    line_items: str = ""


@dataclass(frozen=True)
class RenderedDocument:
    subject: Optional[str]
    html: str


_EMAIL_FOOTER = """
  <p style="margin-top: 30px;">
    Best regards,<br>
    <strong>{{company.name}}</strong><br>
    {{company.email}}<br>
    {{company.phone}}
  </p>
</div>"""

_EMAIL_SUMMARY_BOX = """
  <div style="background: #f5f5f5; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <p style="margin: 5px 0;"><strong>Invoice Number:</strong> {{invoice.invoice_number}}</p>
    <p style="margin: 5px 0;"><strong>Date:</strong> {{invoice.created_at}}</p>
    {{#if invoice.due_date}}<p style="margin: 5px 0;"><strong>Due Date:</strong> {{invoice.due_date}}</p>{{/if}}
    <p style="margin: 15px 0 5px 0; font-size: 18px;"><strong>Amount Due: {{invoice.total}}</strong></p>
  </div>
"""

_INVOICE_EMAIL_HTML = (
    """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Invoice {{invoice.invoice_number}}</h2>

  <p>Dear {{customer.name}},</p>

  <p>Please find attached invoice <strong>{{invoice.invoice_number}}</strong> for services rendered.</p>
"""
    + _EMAIL_SUMMARY_BOX
    + """
  <p>If you have any questions about this invoice, please don't hesitate to contact us.</p>

  <p>Thank you for your business!</p>
"""
    + _EMAIL_FOOTER
)

_REMINDER_EMAIL_HTML = (
    """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Friendly Reminder: Invoice {{invoice.invoice_number}}</h2>

  <p>Dear {{customer.name}},</p>

  <p>This is a friendly reminder regarding invoice <strong>{{invoice.invoice_number}}</strong>,
  which was sent on {{invoice.sent_at}}.</p>
"""
    + _EMAIL_SUMMARY_BOX
    + """
  <p>We would appreciate it if you could process this payment at your earliest convenience.
  If you have already sent the payment, please disregard this reminder.</p>
"""
    + _EMAIL_FOOTER
)

_INVOICE_PDF_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    body { font-family: Arial, sans-serif; color: #1f2933; padding: 40px; font-size: 12px; }
    .header { display: flex; justify-content: space-between; border-top: 5px solid #4f46e5; padding-top: 20px; margin-bottom: 40px; }
    .logo img { max-height: 55px; }
    .company-info { text-align: right; }
    .company-name { font-size: 18px; font-weight: 700; margin-bottom: 8px; }
    .muted { color: #6b7280; font-size: 10px; line-height: 1.6; white-space: pre-line; }
    .invoice-title { font-size: 32px; font-weight: 700; color: #4f46e5; margin-bottom: 10px; }
    .bill-to-section { display: flex; justify-content: space-between; margin-bottom: 30px; }
    .bill-to { background: #f3f4f6; padding: 15px 20px; border-left: 4px solid #4f46e5; min-width: 250px; }
    .label { color: #4f46e5; font-size: 8px; font-weight: 600; text-transform: uppercase; margin-bottom: 8px; }
    .line-items { width: 100%; border-collapse: collapse; margin-bottom: 30px; }
    .line-items th { background: #f3f4f6; font-size: 9px; text-align: left; padding: 12px 10px; text-transform: uppercase; }
    .line-items td { padding: 10px; border-bottom: 1px solid #e5e7eb; font-size: 9px; }
    .line-items th:nth-child(3), .line-items th:nth-child(4),
    .line-items td:nth-child(3), .line-items td:nth-child(4) { text-align: right; }
    .line-items .amount { font-weight: 700; }
    .totals { display: flex; justify-content: flex-end; margin-bottom: 40px; }
    .total-row { display: flex; justify-content: space-between; padding: 8px 0; min-width: 200px; }
    .total-final { border-left: 4px solid #4f46e5; padding: 12px 15px; font-size: 14px; font-weight: 700; }
    .footer { border-top: 1px solid #e5e7eb; padding-top: 20px; display: flex; justify-content: space-between; }
  </style>
</head>
<body>
  <div class="header">
    <div class="logo">
      {{#if company.logo}}<img src="{{company.logo}}" alt="Logo">{{/if}}
    </div>
    <div class="company-info">
      <div class="company-name">{{company.name}}</div>
      <div class="muted">{{company.address}}<br>{{company.email}} {{company.phone}}</div>
    </div>
  </div>

  <div class="bill-to-section">
    <div>
      <div class="invoice-title">INVOICE</div>
      <div class="muted">
        #{{invoice.invoice_number}}<br>
        Date: {{invoice.created_at}}<br>
        {{#if invoice.due_date}}Due: {{invoice.due_date}}{{/if}}
      </div>
    </div>
    <div class="bill-to">
      <div class="label">Bill To</div>
      <div class="company-name">{{customer.name}}</div>
      <div class="muted">{{customer.email}}<br>{{customer.address}}</div>
    </div>
  </div>

  {{lineItems}}

  <div class="totals">
    <div>
      <div class="total-row"><span>Subtotal</span><span>{{invoice.subtotal}}</span></div>
      {{#if invoice.tax_rate}}
      <div class="total-row"><span>Tax ({{invoice.tax_rate}})</span><span>{{invoice.tax_amount}}</span></div>
      {{/if}}
      <div class="total-final">TOTAL: {{invoice.total}}</div>
    </div>
  </div>

  <div class="footer">
    <div>
      <div class="label">Terms &amp; Conditions</div>
      <div class="muted">{{invoice.notes}}</div>
    </div>
    <div><strong>Thank you for your business!</strong></div>
  </div>
</body>
</html>"""

DEFAULT_TEMPLATES = MappingProxyType(
    {
        "invoice_email": MappingProxyType(
            {
                "name": "Invoice Email",
                "subject": "Invoice {{invoice.invoice_number}} from {{company.name}}",
                "html_content": _INVOICE_EMAIL_HTML,
            }
        ),
        "reminder_email": MappingProxyType(
            {
                "name": "Payment Reminder Email",
                "subject": "Friendly Reminder: Invoice {{invoice.invoice_number}} from {{company.name}}",
                "html_content": _REMINDER_EMAIL_HTML,
            }
        ),
        "invoice_pdf": MappingProxyType(
            {
                "name": "Invoice PDF",
                "subject": None,
                "html_content": _INVOICE_PDF_HTML,
            }
        ),
    }
)


def escape_html(value: str) -> str:
    return "".join(_HTML_ESCAPES.get(char, char) for char in value)


def get_context_value(context: TemplateContext, path: str) -> Optional[str]:
    """Resolve a dotted path such as ``customer.name``; None when it does not exist."""
    current = context
    for part in path.strip().split("."):
        if not is_dataclass(current) or part not in {f.name for f in fields(current)}:
            return None
        current = getattr(current, part)
    if is_dataclass(current):
        return None
    return current


def process_template(html: str, context: TemplateContext) -> str:
    """Render ``html`` against ``context``.

    Conditional blocks are resolved first, then every placeholder is replaced
    in a single pass, so substituted values are never themselves scanned for
    placeholders.
    """

    def _resolve_if(match: re.Match) -> str:
        return match.group(2) if get_context_value(context, match.group(1)) else ""

    def _substitute(match: re.Match) -> str:
        path = match.group(1)
        if path == LINE_ITEMS_PLACEHOLDER:
            return context.line_items
        value = get_context_value(context, path)
        return escape_html(value) if value else ""

    result = _IF_BLOCK_RE.sub(_resolve_if, html)
    return _PLACEHOLDER_RE.sub(_substitute, result)


def truncate_description(text: str) -> str:
    if len(text) > DESCRIPTION_MAX_LENGTH:
        return text[:DESCRIPTION_TRUNCATE_AT] + "..."
    return text


def format_quantity(quantity) -> str:
    qty = to_decimal(quantity) or Decimal("0")
    if qty == 1:
        return "1"
    return f"{qty.normalize():f}"


def build_line_items_html(entries: Iterable, charges: Iterable = ()) -> str:
    """Pre-escaped ``<table>`` of entry rows followed by charge rows."""
    rows: List[str] = []
    for entry in entries:
        rows.append(
            "      <tr>\n"
            f"        <td>{format_short_date(entry.entry_date)}</td>\n"
            f"        <td>{escape_html(truncate_description(entry.task_description))}</td>\n"
            f'        <td class="qty">{format_duration(entry.total_minutes)}</td>\n'
            f'        <td class="amount">{format_currency(entry.calculated_cost)}</td>\n'
            "      </tr>"
        )
    for charge in charges:
        rows.append(
            "      <tr>\n"
            f"        <td>{format_short_date(charge.charge_date)}</td>\n"
            f"        <td>{escape_html(truncate_description(charge.description))}</td>\n"
            f'        <td class="qty">{format_quantity(charge.quantity)}</td>\n'
            f'        <td class="amount">{format_currency(charge.total)}</td>\n'
            "      </tr>"
        )
    body = "\n".join(rows)
    return (
        '<table class="line-items">\n'
        "    <thead>\n"
        "      <tr>\n"
        "        <th>Date</th>\n"
        "        <th>Description</th>\n"
        "        <th>Qty</th>\n"
        "        <th>Amount</th>\n"
        "      </tr>\n"
        "    </thead>\n"
        "    <tbody>\n"
        f"{body}\n"
        "    </tbody>\n"
        "  </table>"
    )


def format_tax_rate(tax_rate) -> str:
    """``0.08`` -> ``8.0%``; zero renders as an empty string."""
    rate = to_decimal(tax_rate) or Decimal("0")
    if rate <= 0:
        return ""
    return f"{(rate * 100).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"


def _company_logo(settings: AppSettings, base_url: Optional[str], logo_data_uri: Optional[str]) -> str:
    if not settings.company_logo:
        return ""
    if logo_data_uri:
        return logo_data_uri
    return f"{(base_url or '').rstrip('/')}/uploads/logos/{settings.company_logo}"


def build_template_context(
    invoice,
    settings: AppSettings,
    base_url: Optional[str] = None,
    logo_data_uri: Optional[str] = None,
) -> TemplateContext:
    """Display-ready context for an invoice loaded with customer, entries and charges."""
    customer = invoice.customer
    sent_at = invoice.sent_at or invoice.created_at
    return TemplateContext(
        invoice=InvoiceFields(
            invoice_number=invoice.invoice_number,
            created_at=format_date_long(invoice.created_at),
            due_date=format_date_long(invoice.due_date) if invoice.due_date else "",
            subtotal=format_currency(invoice.subtotal),
            tax_rate=format_tax_rate(invoice.tax_rate),
            tax_amount=format_currency(invoice.tax_amount),
            total=format_currency(invoice.total),
            notes=invoice.notes or settings.invoice_terms or "",
            sent_at=format_date_long(sent_at),
        ),
        customer=CustomerFields(
            name=customer.name,
            email=customer.email or "",
            address=customer.address or "",
        ),
        company=CompanyFields(
            name=settings.company_name,
            email=settings.company_email or "",
            phone=settings.company_phone or "",
            address=settings.company_address or "",
            logo=_company_logo(settings, base_url, logo_data_uri),
        ),
        line_items=build_line_items_html(invoice.entries, invoice.charges),
    )


def get_sample_context() -> TemplateContext:
    """Fixed context used by the template editor preview."""
    sample_entries = [
        SimpleNamespace(
            entry_date=date(2024, 1, 10),
            task_description="Website development - Homepage design",
            total_minutes=240,
            calculated_cost=Decimal("400.00"),
        ),
        SimpleNamespace(
            entry_date=date(2024, 1, 11),
            task_description="Website development - Backend API setup",
            total_minutes=360,
            calculated_cost=Decimal("600.00"),
        ),
        SimpleNamespace(
            entry_date=date(2024, 1, 12),
            task_description="Server configuration and deployment",
            total_minutes=300,
            calculated_cost=Decimal("500.00"),
        ),
    ]
    return TemplateContext(
        invoice=InvoiceFields(
            invoice_number="INV-00001",
            created_at="January 15, 2024",
            due_date="February 14, 2024",
            subtotal="$1,500.00",
            tax_rate="8.0%",
            tax_amount="$120.00",
            total="$1,620.00",
            notes="Payment due within 30 days. Thank you for your business!",
            sent_at="January 15, 2024",
        ),
        customer=CustomerFields(
            name="Acme Corporation",
            email="billing@acme.com",
            address="123 Business Ave\nSuite 100\nNew York, NY 10001",
        ),
        company=CompanyFields(
            name="Your Company",
            email="invoices@yourcompany.com",
            phone="(555) 123-4567",
            address="456 Tech Blvd\nSan Francisco, CA 94102",
        ),
        line_items=build_line_items_html(sample_entries),
    )


def preview_template(html_content: str, subject: Optional[str] = None) -> RenderedDocument:
    context = get_sample_context()
    return RenderedDocument(
        subject=process_template(subject, context) if subject else None,
        html=process_template(html_content, context),
    )


def _check_type(template_type: str) -> None:
    if template_type not in TEMPLATE_TYPES:
        raise NotFoundError(f"Unknown template type: {template_type}")


def _to_read(template_type: str, stored: Optional[Template]) -> TemplateRead:
    if stored is None:
        default = DEFAULT_TEMPLATES[template_type]
        return TemplateRead(type=template_type, is_default=True, **default)
    return TemplateRead(
        type=template_type,
        name=stored.name,
        subject=stored.subject,
        html_content=stored.html_content,
        is_default=False,
        updated_at=stored.updated_at,
    )


def resolve_template(db: Session, template_type: str) -> TemplateRead:
    """Stored template of ``template_type``, or the built-in default when none is stored."""
    _check_type(template_type)
    stored = db.query(Template).filter(Template.type == template_type).first()
    return _to_read(template_type, stored)


def list_templates(db: Session) -> List[TemplateRead]:
    stored = {row.type: row for row in db.query(Template).all()}
    return [_to_read(template_type, stored.get(template_type)) for template_type in TEMPLATE_TYPES]


def update_template(db: Session, template_type: str, template_in: TemplateUpdate) -> TemplateRead:
    _check_type(template_type)
    changes = template_in.model_dump(exclude_unset=True)
    if template_type == "invoice_pdf":
        changes.pop("subject", None)
    stored = db.query(Template).filter(Template.type == template_type).first()
    if stored is None:
        stored = Template(type=template_type, **DEFAULT_TEMPLATES[template_type])
        db.add(stored)
    for key, value in changes.items():
        if value is None and key != "subject":
            continue
        setattr(stored, key, value)
    db.commit()
    db.refresh(stored)
    logger.info("Updated template %s", template_type)
    return _to_read(template_type, stored)


def reset_template_to_default(db: Session, template_type: str) -> TemplateRead:
    _check_type(template_type)
    db.query(Template).filter(Template.type == template_type).delete(synchronize_session=False)
    db.commit()
    logger.info("Reset template %s to default", template_type)
    return _to_read(template_type, None)


def initialize_default_templates(db: Session) -> int:
    """Store a copy of each built-in template that has no stored row yet."""
    existing = {row.type for row in db.query(Template.type).all()}
    created = 0
    for template_type, default in DEFAULT_TEMPLATES.items():
        if template_type in existing:
            continue
        db.add(Template(type=template_type, **default))
        created += 1
    db.commit()
    if created:
        logger.info("Created %d default templates", created)
    return created
