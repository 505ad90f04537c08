from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backend.app.core.errors import NotFoundError
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.models.template import Template
from backend.app.schemas.settings import AppSettings
from backend.app.schemas.template import TemplateUpdate
from backend.app.services.templates import (
    DEFAULT_TEMPLATES,
    CompanyFields,
    CustomerFields,
    InvoiceFields,
    TemplateContext,
    build_line_items_html,
    build_template_context,
    escape_html,
    format_tax_rate,
    get_context_value,
    initialize_default_templates,
    list_templates,
    preview_template,
    process_template,
    reset_template_to_default,
    resolve_template,
    update_template,
)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _invoice(tax_rate="0.08", notes=None, due_date=date(2024, 2, 14), customer_name="Acme Corporation"):
    customer = SimpleNamespace(name=customer_name, email="billing@acme.test", address=None)
    entry = SimpleNamespace(
        entry_date=date(2024, 1, 10),
        task_description="Rebuilt the firewall rules & documented <everything>",
        total_minutes=90,
        calculated_cost=Decimal("150.00"),
    )
    charge = SimpleNamespace(
        charge_date=date(2024, 1, 11),
        description="x" * 60,
        quantity=Decimal("2.00"),
        total=Decimal("20.00"),
    )
    return SimpleNamespace(
        invoice_number="INV-00001",
        created_at=datetime(2024, 1, 15, 9, 0),
        due_date=due_date,
        subtotal=Decimal("170.00"),
        tax_rate=Decimal(tax_rate),
        tax_amount=Decimal("13.60"),
        total=Decimal("183.60"),
        notes=notes,
        sent_at=None,
        customer=customer,
        entries=[entry],
        charges=[charge],
    )


def test_escape_html_covers_all_five_characters():
    assert escape_html("<a href=\"x\">Tom's & Jerry's</a>") == (
        "&lt;a href=&quot;x&quot;&gt;Tom&#39;s &amp; Jerry&#39;s&lt;/a&gt;"
    )


def test_scalar_placeholders_are_escaped():
    context = TemplateContext(customer=CustomerFields(name="<script>alert(1)</script>"))
    html = process_template("<p>{{customer.name}}</p>", context)
    assert html == "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>"
    assert "<script>" not in html


def test_line_items_are_inserted_verbatim():
    context = TemplateContext(line_items="<table><tr><td>&amp;</td></tr></table>")
    assert process_template("{{lineItems}}", context) == "<table><tr><td>&amp;</td></tr></table>"
    assert process_template("[{{ lineItems }}]", TemplateContext(line_items="<table>X</table>")) == "[<table>X</table>]"


def test_missing_paths_render_empty():
    context = TemplateContext()
    assert process_template("[{{customer.nope}}][{{nothing.here}}][{{invoice}}]", context) == "[][][]"
    assert get_context_value(context, "customer.name") == ""
    assert get_context_value(context, "customer.missing") is None


def test_substituted_values_are_not_rescanned():
    context = TemplateContext(
        customer=CustomerFields(name="{{company.name}}"),
        company=CompanyFields(name="Secret Co"),
    )
    assert process_template("{{customer.name}}", context) == "{{company.name}}"


def test_if_blocks_follow_value_presence():
    template = "{{#if company.logo}}<img src=\"{{company.logo}}\">{{/if}}|{{#if invoice.tax_rate}}Tax {{invoice.tax_rate}}{{/if}}"
    with_values = TemplateContext(
        invoice=InvoiceFields(tax_rate="8.0%"),
        company=CompanyFields(logo="data:image/png;base64,AAA"),
    )
    assert process_template(template, with_values) == '<img src="data:image/png;base64,AAA">|Tax 8.0%'
    assert process_template(template, TemplateContext()) == "|"


def test_build_line_items_html_rows():
    invoice = _invoice()
    html = build_line_items_html(invoice.entries, invoice.charges)

    assert "<th>Date</th>" in html
    assert "<td>1/10/24</td>" in html
    assert "Rebuilt the firewall rules &amp; documented &lt;everything&gt;" in html
    assert '<td class="qty">1h 30m</td>' in html
    assert '<td class="amount">$150.00</td>' in html
    assert "<td>" + "x" * 52 + "...</td>" in html
    assert '<td class="qty">2</td>' in html


def test_build_template_context_formats_values():
    settings = AppSettings(company_name="Fixit LLC", company_logo="logo.png", invoice_terms="Net 30")
    context = build_template_context(_invoice(), settings, base_url="https://billing.example.com/")

    assert context.invoice.created_at == "January 15, 2024"
    assert context.invoice.due_date == "February 14, 2024"
    assert context.invoice.sent_at == "January 15, 2024"
    assert context.invoice.total == "$183.60"
    assert context.invoice.tax_rate == "8.0%"
    assert context.invoice.notes == "Net 30"
    assert context.customer.address == ""
    assert context.company.logo == "https://billing.example.com/uploads/logos/logo.png"
    assert "<table" in context.line_items


def test_zero_tax_rate_is_omitted_from_pdf():
    settings = AppSettings()
    context = build_template_context(_invoice(tax_rate="0", due_date=None), settings)
    assert context.invoice.tax_rate == ""
    assert context.invoice.due_date == ""

    html = process_template(DEFAULT_TEMPLATES["invoice_pdf"]["html_content"], context)
    assert "Tax (" not in html
    assert "Due:" not in html
    assert "$183.60" in html


def test_logo_data_uri_wins_over_url():
    settings = AppSettings(company_logo="logo.png")
    context = build_template_context(_invoice(), settings, logo_data_uri="data:image/png;base64,AAA")
    assert context.company.logo == "data:image/png;base64,AAA"


def test_customer_name_is_escaped_in_default_email():
    settings = AppSettings()
    context = build_template_context(_invoice(customer_name="<script>alert(1)</script>"), settings)
    html = process_template(DEFAULT_TEMPLATES["invoice_email"]["html_content"], context)
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<script>" not in html


def test_resolve_falls_back_to_default_and_update_upserts():
    db = SessionLocal()
    try:
        default = resolve_template(db, "invoice_email")
        assert default.is_default is True
        assert default.subject == DEFAULT_TEMPLATES["invoice_email"]["subject"]

        updated = update_template(db, "invoice_email", TemplateUpdate(subject="Bill {{invoice.invoice_number}}"))
        assert updated.is_default is False
        assert updated.subject == "Bill {{invoice.invoice_number}}"
        assert updated.html_content == DEFAULT_TEMPLATES["invoice_email"]["html_content"]
        assert db.query(Template).count() == 1

        reset = reset_template_to_default(db, "invoice_email")
        assert reset.is_default is True
        assert db.query(Template).count() == 0
    finally:
        db.close()


def test_pdf_template_never_gets_a_subject():
    db = SessionLocal()
    try:
        updated = update_template(db, "invoice_pdf", TemplateUpdate(subject="ignored", html_content="<p>hi</p>"))
        assert updated.subject is None
        assert updated.html_content == "<p>hi</p>"
    finally:
        db.close()


def test_unknown_template_type():
    db = SessionLocal()
    try:
        with pytest.raises(NotFoundError):
            resolve_template(db, "invoice_sms")
    finally:
        db.close()


def test_initialize_and_list_templates():
    db = SessionLocal()
    try:
        assert initialize_default_templates(db) == 3
        assert initialize_default_templates(db) == 0
        templates = list_templates(db)
        assert [t.type for t in templates] == ["invoice_email", "reminder_email", "invoice_pdf"]
        assert all(t.is_default is False for t in templates)
    finally:
        db.close()


def test_preview_template_uses_sample_context():
    document = preview_template("<h1>{{customer.name}}</h1>{{lineItems}}", subject="Invoice {{invoice.invoice_number}}")
    assert document.subject == "Invoice INV-00001"
    assert document.html.startswith("<h1>Acme Corporation</h1><table")


def test_format_tax_rate_rounds_half_up():
    assert format_tax_rate(Decimal("0.08")) == "8.0%"
    assert format_tax_rate(Decimal("0.0825")) == "8.3%"
    assert format_tax_rate(Decimal("0.0875")) == "8.8%"
    assert format_tax_rate(Decimal("0")) == ""
