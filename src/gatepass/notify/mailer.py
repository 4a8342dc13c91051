"""Approval-request and pass mails, delivered through an HTTP mail relay."""

import base64
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from gatepass.config import Settings, settings
from gatepass.errors import NotificationError
from gatepass.registry.models import ForeignVisitor, Intern, PersonRecord, Visitor

logger = logging.getLogger(__name__)

_template_dir = Path(__file__).parent / "templates"
_env = Environment(
    loader=FileSystemLoader(str(_template_dir)),
    autoescape=select_autoescape(["html"]),
)

_VERIFY_PATHS: dict[type, str] = {
    Visitor: "/api/verify/",
    ForeignVisitor: "/api/verify-foreign/",
    Intern: "/api/verify-intern/",
}

_LABELS: dict[type, str] = {
    Visitor: "Visitor",
    ForeignVisitor: "Foreign Visitor",
    Intern: "Intern",
}


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "image/png"


@dataclass
class MailMessage:
    to: str
    subject: str
    html: str
    attachments: list[MailAttachment] = field(default_factory=list)

    def to_payload(self, sender: str) -> dict[str, Any]:
        """JSON body accepted by the mail relay."""
        return {
            "from": sender,
            "to": self.to,
            "subject": self.subject,
            "html": self.html,
            "attachments": [
                {
                    "filename": a.filename,
                    "content_type": a.content_type,
                    "content": base64.b64encode(a.content).decode("ascii"),
                }
                for a in self.attachments
            ],
        }


def verification_link(record: PersonRecord, base_url: str | None = None) -> str:
    base = base_url if base_url is not None else settings.public_base_url
    return f"{base}{_VERIFY_PATHS[type(record)]}{record.id}"


def approval_request(record: PersonRecord, base_url: str | None = None) -> MailMessage:
    """Mail asking the host employee to verify a new registration."""
    label = _LABELS[type(record)]
    html = _env.get_template("approval_request.html").render(
        label=label,
        person=record,
        link=verification_link(record, base_url),
    )
    return MailMessage(
        to=record.employee_email,
        subject=f"New {label} Details - Verification Required",
        html=html,
    )


def pass_mail(record: PersonRecord, qr_png: bytes) -> MailMessage:
    """Mail delivering the QR pass to a verified person."""
    pass_date = datetime.now(UTC).date().isoformat()
    if isinstance(record, Intern):
        template, subject, filename = (
            "intern_pass.html",
            "Your Intern Verification",
            "intern_verification.png",
        )
    else:
        template, subject, filename = "visitor_pass.html", "Your Visitor Pass", "visitor_pass.png"
    html = _env.get_template(template).render(person=record, pass_date=pass_date)
    return MailMessage(
        to=record.email,
        subject=subject,
        html=html,
        attachments=[MailAttachment(filename=filename, content=qr_png)],
    )


def send_mail(message: MailMessage, cfg: Settings | None = None) -> dict[str, Any] | None:
    """POST a message to the mail relay.

    Returns the delivery result, or None when no relay is configured.

    Raises:
        NotificationError: If the relay is unreachable or rejects the message.
    """
    cfg = cfg or settings
    if not cfg.mail_relay_url:
        logger.warning(
            "Mail relay not configured, skipping '%s' to %s", message.subject, message.to
        )
        return None

    url = cfg.mail_relay_url
    try:
        with httpx.Client(timeout=cfg.mail_timeout) as client:
            response = client.post(url, json=message.to_payload(cfg.mail_sender))
    except Exception as e:
        logger.error("Mail dispatch error: %s → %s: %s", message.subject, url, e)
        raise NotificationError(f"Error sending email to {message.to}") from e

    if not response.is_success:
        logger.warning(
            "Mail rejected: %s → %s (HTTP %d)", message.subject, url, response.status_code
        )
        raise NotificationError(f"Mail relay rejected message (HTTP {response.status_code})")

    logger.info(
        "Mail delivered: %s → %s (HTTP %d)", message.subject, message.to, response.status_code
    )
    return {"to": message.to, "status_code": response.status_code, "success": True}
