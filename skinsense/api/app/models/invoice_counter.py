from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class InvoiceCounter(Base, TimestampMixin):
    """Last invoice sequence number handed out for a ``YYYYMM`` period."""

    __tablename__ = "invoice_counters"

    period: Mapped[str] = mapped_column(String(6), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
