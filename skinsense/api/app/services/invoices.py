"""Sequential invoice numbers backed by a per-month counter row."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import InvoiceCounter
from app.models.base import utcnow

_UPSERT_DIALECTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def _increment(db: Session, period: str) -> int:
    insert_fn = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert_fn is not None:
        now = utcnow()
        stmt = (
            insert_fn(InvoiceCounter)
            .values(period=period, last_value=1, created_at=now, updated_at=now)
            .on_conflict_do_update(
                index_elements=[InvoiceCounter.period],
                set_={"last_value": InvoiceCounter.last_value + 1, "updated_at": now},
            )
            .returning(InvoiceCounter.last_value)
        )
        return int(db.execute(stmt).scalar_one())

    counter = db.execute(
        select(InvoiceCounter).where(InvoiceCounter.period == period).with_for_update()
    ).scalar_one_or_none()
    if counter is None:
        counter = InvoiceCounter(period=period, last_value=0)
        db.add(counter)
    counter.last_value += 1
    db.flush()
    return counter.last_value


def next_invoice_number(db: Session, issued_at: datetime) -> str:
    """Return the next ``SS-YYYYMM-NNNN`` number for the month of ``issued_at``."""

    period = issued_at.strftime("%Y%m")
    sequence = _increment(db, period)
    return f"{settings.invoice_prefix}-{period}-{sequence:04d}"
