"""SMTP delivery for transactional email."""

from __future__ import annotations

import logging
import smtplib
import ssl
import uuid
from email.message import EmailMessage
from email.utils import make_msgid

from app.core.config import settings

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT_SECONDS = 30


def send_email(to: str, subject: str, body: str) -> tuple[str, dict]:
    """Send a plain-text email, returning ``(message_id, payload)``."""

    payload = {"to": to, "from": settings.email_from, "subject": subject, "body": body}
    if settings.notifications_mock_mode:
        message_id = f"mocked-{uuid.uuid4()}"
        logger.debug("Mocking email send to %s", to)
        return message_id, payload

    if not settings.smtp_host:
        raise RuntimeError("SMTP_HOST is not configured")

    message = EmailMessage()
    message["From"] = settings.email_from
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=settings.email_from.rsplit("@", 1)[-1].strip(">"))
    message.set_content(body)

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=_SMTP_TIMEOUT_SECONDS) as server:
        if settings.smtp_use_tls:
            server.starttls(context=ssl.create_default_context())
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(message)

    return message["Message-ID"], payload
