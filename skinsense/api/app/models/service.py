from __future__ import annotations

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Boolean, Enum, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, enum_values


class ServiceCategory(str, enum.Enum):
    """Closed set of catalog categories."""

    FACIAL_TREATMENTS = "facial-treatments"
    BODY_TREATMENTS = "body-treatments"
    ANTI_AGING = "anti-aging"
    ACNE_TREATMENTS = "acne-treatments"
    SKIN_ANALYSIS = "skin-analysis"
    CHEMICAL_PEELS = "chemical-peels"
    MICRODERMABRASION = "microdermabrasion"
    LASER_TREATMENTS = "laser-treatments"
    CONSULTATION = "consultation"
    PACKAGES = "packages"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


class Service(Base, TimestampMixin):
    """Bookable treatment offered by the clinic."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category: Mapped[ServiceCategory] = mapped_column(
        Enum(ServiceCategory, name="service_category", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    preparation_time: Mapped[int] = mapped_column(Integer, default=15)
    cleanup_time: Mapped[int] = mapped_column(Integer, default=15)
    booking_advance_notice: Mapped[int] = mapped_column(Integer, default=24)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_popular: Mapped[bool] = mapped_column(Boolean, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    @property
    def total_duration(self) -> int:
        """Minutes the clinic is blocked, including preparation and cleanup."""

        return self.duration + (self.preparation_time or 0) + (self.cleanup_time or 0)
