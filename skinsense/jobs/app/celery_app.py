from __future__ import annotations

from celery import Celery

from jobs.app.config import settings

celery_app = Celery(
    "skinsense",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["jobs.app.tasks"],
)

celery_app.conf.timezone = settings.timezone
celery_app.conf.broker_connection_retry_on_startup = True
celery_app.conf.beat_schedule = {
    "dispatch-due-reminders": {
        "task": "jobs.dispatch_due_reminders",
        "schedule": settings.reminder_interval_minutes * 60.0,
    },
}
