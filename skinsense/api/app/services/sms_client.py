"""Thin wrapper around the Twilio Messages REST API."""

from __future__ import annotations

import logging
import re
import uuid
from urllib.parse import quote

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_TIMEOUT = httpx.Timeout(connect=5.0, read=10.0, write=10.0, pool=5.0)


def format_phone_number(phone: str) -> str:
    """Normalise a phone number to E.164, assuming North America when unprefixed."""

    if phone.strip().startswith("+"):
        return "+" + re.sub(r"\D", "", phone)
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return f"+1{digits}"


def _build_twilio_url() -> str:
    account_sid = settings.twilio_account_sid
    if not account_sid:
        raise RuntimeError("TWILIO_ACCOUNT_SID is not configured")
    base_url = settings.twilio_api_base_url.rstrip("/")
    return f"{base_url}/Accounts/{quote(account_sid)}/Messages.json"


def _mock_send(payload: dict) -> tuple[str, dict]:
    message_id = f"mocked-{uuid.uuid4()}"
    logger.debug("Mocking SMS send with payload: %s", payload)
    return message_id, {"sid": message_id, "status": "queued", "mocked": True}


def send_sms(to: str, body: str) -> tuple[str, dict, dict]:
    """Send a text message, returning ``(message_id, response, payload)``."""

    payload = {"To": format_phone_number(to), "From": settings.twilio_phone_number, "Body": body}
    if settings.notifications_mock_mode:
        message_id, response = _mock_send(payload)
        return message_id, response, payload

    if not settings.twilio_auth_token or not settings.twilio_phone_number:
        raise RuntimeError("Twilio credentials are not configured")

    url = _build_twilio_url()
    with httpx.Client(timeout=_TIMEOUT) as client:
        response = client.post(
            url,
            auth=(settings.twilio_account_sid, settings.twilio_auth_token),
            data=payload,
        )
    response.raise_for_status()
    data = response.json()
    message_id = data.get("sid")
    if not message_id:
        raise RuntimeError("Twilio response did not include a message SID")

    logger.debug("Twilio responded with %s", data)
    return message_id, data, payload
