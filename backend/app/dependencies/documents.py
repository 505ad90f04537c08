"""Collaborators injected into the document endpoints.

Both return None by default: email then goes out over SMTP built from the
stored settings, and PDFs are drawn with the built-in reportlab layout.
Tests and deployments swap them via ``app.dependency_overrides``.
"""

from typing import Optional

from backend.app.services.email import MailTransport
from backend.app.services.pdf import HtmlPdfRenderer


def get_mail_transport() -> Optional[MailTransport]:
    return None


def get_pdf_renderer() -> Optional[HtmlPdfRenderer]:
    return None
