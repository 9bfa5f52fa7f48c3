"""Invitation email rendering and delivery.

No mail provider is wired in yet: :class:`LoggingEmailSender` writes the
rendered message to the log, which is what both the worker and the manual
send endpoint use.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from vendor_mdm.core.clock import ensure_utc, utcnow
from vendor_mdm.schemas.invitation import InvitationEmailMessage

logger = logging.getLogger(__name__)

DEFAULT_COMPANY = "Our Company"
SUPPORT_EMAIL = "vendorsupport@company.com"


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html: str
    link: str
    expires: str


def registration_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/invitation/register/{token}"


def format_expiry(message: InvitationEmailMessage) -> str:
    return ensure_utc(message.expires_at).strftime("%B %d, %Y at %I:%M %p UTC")


REQUIREMENTS = (
    "Tax ID (W-9/W-8) or VAT Number",
    "Legal Entity Information",
    "Banking Details (IBAN, Account Number)",
    "Certificate of Insurance",
    "Primary Contact Information",
)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

# .html templates are autoescaped
templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(),
)


def render_invitation_email(message: InvitationEmailMessage, base_url: str) -> RenderedEmail:
    company = message.company_name or DEFAULT_COMPANY
    link = registration_link(base_url, message.token)
    expires = format_expiry(message)
    body = templates.get_template("invitation_email.html").render(
        vendor_name=message.vendor_name,
        invited_by=message.invited_by_name,
        company=company,
        notes=message.notes,
        link=link,
        expires=expires,
        requirements=REQUIREMENTS,
        support=SUPPORT_EMAIL,
        email=message.email,
        year=utcnow().year,
    )
    return RenderedEmail(
        to=message.email,
        subject=f"Action Required: Invitation to Register as Vendor with {company}",
        html=body,
        link=link,
        expires=expires,
    )


class EmailSender(ABC):
    @abstractmethod
    async def send(self, email: RenderedEmail) -> None: ...


class LoggingEmailSender(EmailSender):
    """Mock delivery: log the rendered email instead of sending it."""

    async def send(self, email: RenderedEmail) -> None:
        logger.info("===== INVITATION EMAIL =====")
        logger.info("To: %s", email.to)
        logger.info("Subject: %s", email.subject)
        logger.info("Invitation Link: %s", email.link)
        logger.info("Expires: %s", email.expires)
        logger.debug("Body:\n%s", email.html)
        logger.info("============================")
