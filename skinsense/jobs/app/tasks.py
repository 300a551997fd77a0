from __future__ import annotations

from typing import Any

import httpx
from celery.utils.log import get_task_logger

from jobs.app.celery_app import celery_app
from jobs.app.config import settings

logger = get_task_logger(__name__)

REMINDER_PATH = "/api/v1/admin/reminders/dispatch"


def _build_url(path: str) -> str:
    return f"{settings.api_base_url.rstrip('/')}{path}"


def _request_reminders(client: httpx.Client) -> dict[str, Any]:
    response = client.post(
        _build_url(REMINDER_PATH),
        headers={"X-User-ID": settings.reminder_actor_id},
    )
    response.raise_for_status()
    return response.json()


@celery_app.task(name="jobs.dispatch_due_reminders")
def dispatch_due_reminders(client: httpx.Client | None = None) -> dict[str, Any]:
    """Ask the API to send every appointment reminder that is due."""

    if not settings.reminder_actor_id:
        logger.warning("REMINDER_ACTOR_ID is not configured; skipping reminder run")
        return {"skipped": True}

    if client is not None:
        report = _request_reminders(client)
    else:
        with httpx.Client(timeout=settings.api_timeout_seconds) as http_client:
            report = _request_reminders(http_client)

    logger.info(
        "Reminder run finished: %s checked, %s sent, %s failed",
        report.get("checked"),
        report.get("sent"),
        report.get("failed"),
    )
    return report
