from datetime import date
from decimal import Decimal

import pytest

from backend.app.core.errors import ExternalServiceError, InvalidStateError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.customer import Customer
from backend.app.models.timesheet_entry import TimesheetEntry
from backend.app.schemas.invoice import InvoiceCreate, InvoiceUpdate
from backend.app.schemas.settings import AppSettingsUpdate
from backend.app.schemas.template import TemplateUpdate
from backend.app.services.documents import (
    load_logo_data_uri,
    render_invoice_email,
    render_invoice_pdf_html,
    render_reminder_email,
)
from backend.app.services.invoices import create_invoice, update_invoice
from backend.app.services.pdf import generate_invoice_pdf
from backend.app.services.settings import update_settings
from backend.app.services.templates import update_template


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


class RecordingRenderer:
    def __init__(self):
        self.html = None

    def render(self, html):
        self.html = html
        return b"%PDF-fake"


class BrokenRenderer:
    def render(self, html):
        raise RuntimeError("renderer crashed")


def _draft_invoice(db, customer_name="Acme Corporation"):
    customer = Customer(name=customer_name, email="billing@acme.test", default_hourly_rate=Decimal("100.00"))
    db.add(customer)
    db.commit()
    entry = TimesheetEntry(
        customer_id=customer.id,
        entry_date=date(2024, 1, 10),
        total_minutes=90,
        task_description="Router replacement",
        calculated_cost=Decimal("150.00"),
    )
    db.add(entry)
    db.commit()
    return create_invoice(
        db, InvoiceCreate(customer_id=customer.id, entry_ids=[entry.id], tax_rate=Decimal("0.08"))
    )


def test_invoice_email_subject_and_body():
    db = SessionLocal()
    try:
        update_settings(db, AppSettingsUpdate(company_name="Fixit LLC"))
        invoice = _draft_invoice(db)

        document = render_invoice_email(db, invoice.id)

        assert document.subject == f"Invoice {invoice.invoice_number} from Fixit LLC"
        assert "Dear Acme Corporation," in document.html
        assert "$162.00" in document.html
    finally:
        db.close()


def test_stored_template_overrides_default():
    db = SessionLocal()
    try:
        invoice = _draft_invoice(db, customer_name="Tom & Jerry")
        update_template(
            db,
            "invoice_email",
            TemplateUpdate(subject="Bill for {{customer.name}}", html_content="<p>{{customer.name}}</p>"),
        )

        document = render_invoice_email(db, invoice.id)

        assert document.subject == "Bill for Tom &amp; Jerry"
        assert document.html == "<p>Tom &amp; Jerry</p>"
    finally:
        db.close()


def test_reminder_requires_sent_or_overdue():
    db = SessionLocal()
    try:
        invoice = _draft_invoice(db)
        with pytest.raises(InvalidStateError):
            render_reminder_email(db, invoice.id)

        update_invoice(db, invoice.id, InvoiceUpdate(status="sent"))
        document = render_reminder_email(db, invoice.id)
        assert document.subject.startswith("Friendly Reminder: Invoice")

        update_invoice(db, invoice.id, InvoiceUpdate(status="overdue"))
        assert render_reminder_email(db, invoice.id).html
    finally:
        db.close()


def test_pdf_html_has_no_subject_and_tax_row():
    db = SessionLocal()
    try:
        invoice = _draft_invoice(db)
        document = render_invoice_pdf_html(db, invoice.id)
        assert document.subject is None
        assert "Tax (8.0%)" in document.html
        assert "Router replacement" in document.html
    finally:
        db.close()


def test_generate_pdf_with_renderer_and_default_layout():
    db = SessionLocal()
    try:
        invoice = _draft_invoice(db)
        renderer = RecordingRenderer()

        assert generate_invoice_pdf(db, invoice.id, renderer=renderer) == b"%PDF-fake"
        assert invoice.invoice_number in renderer.html

        pdf_bytes = generate_invoice_pdf(db, invoice.id)
        assert pdf_bytes.startswith(b"%PDF")
    finally:
        db.close()


def test_renderer_failure_is_external_service_error():
    db = SessionLocal()
    try:
        invoice = _draft_invoice(db)
        with pytest.raises(ExternalServiceError):
            generate_invoice_pdf(db, invoice.id, renderer=BrokenRenderer())
    finally:
        db.close()


def test_load_logo_data_uri(tmp_path):
    (tmp_path / "logo.png").write_bytes(b"\x89PNG")
    assert load_logo_data_uri("logo.png", str(tmp_path)) == "data:image/png;base64,iVBORw=="
    assert load_logo_data_uri("missing.png", str(tmp_path)) is None
    assert load_logo_data_uri(None, str(tmp_path)) is None
