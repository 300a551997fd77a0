from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select

from app.db.session import SessionLocal
from app.logging_utils import configure_logging
from app.models import Service, ServiceCategory, User, UserRole

logger = logging.getLogger(__name__)

# name, category, treatment minutes, price, advance notice hours, popular
SERVICE_CATALOG: list[tuple[str, ServiceCategory, int, str, int, bool]] = [
    ("Signature Hydrating Facial", ServiceCategory.FACIAL_TREATMENTS, 60, "120.00", 24, True),
    ("Deep Cleansing Acne Facial", ServiceCategory.ACNE_TREATMENTS, 75, "135.00", 24, True),
    ("Glycolic Chemical Peel", ServiceCategory.CHEMICAL_PEELS, 45, "150.00", 48, False),
    ("Diamond Microdermabrasion", ServiceCategory.MICRODERMABRASION, 45, "110.00", 24, False),
    ("Collagen Renewal Treatment", ServiceCategory.ANTI_AGING, 90, "220.00", 48, True),
    ("Advanced Skin Analysis", ServiceCategory.SKIN_ANALYSIS, 30, "60.00", 12, False),
    ("New Client Consultation", ServiceCategory.CONSULTATION, 30, "0.00", 4, False),
]

STAFF: list[tuple[str, str, str, UserRole]] = [
    ("Clinic", "Admin", "admin@skinsense.com", UserRole.ADMIN),
    ("Dana", "Reyes", "dana.reyes@skinsense.com", UserRole.STAFF),
]

CLIENTS: list[tuple[str, str, str, str]] = [
    ("Maria", "Silva", "maria.silva@example.com", "+15555550101"),
    ("James", "Porter", "james.porter@example.com", "+15555550102"),
]


def ensure_services(session) -> list[Service]:
    created = 0
    services: list[Service] = []
    for order, (name, category, duration, price, notice, popular) in enumerate(SERVICE_CATALOG):
        service = session.execute(
            select(Service).where(Service.name == name)
        ).scalar_one_or_none()
        if not service:
            service = Service(
                name=name,
                category=category,
                duration=duration,
                price=Decimal(price),
                booking_advance_notice=notice,
                is_popular=popular,
                is_featured=popular,
                display_order=order,
            )
            session.add(service)
            session.flush()
            created += 1
        services.append(service)

    logger.info("ensured services", extra={"created_count": created, "total": len(services)})
    return services


def ensure_users(session) -> list[User]:
    created = 0
    users: list[User] = []
    accounts = [(first, last, email, None, role) for first, last, email, role in STAFF]
    accounts += [(first, last, email, phone, UserRole.CLIENT) for first, last, email, phone in CLIENTS]

    for first_name, last_name, email, phone, role in accounts:
        user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if not user:
            user = User(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                role=role,
            )
            session.add(user)
            session.flush()
            created += 1
        users.append(user)

    logger.info("ensured users", extra={"created_count": created, "total": len(users)})
    return users


def seed() -> None:
    configure_logging()
    logger.info("starting seed process")

    session = SessionLocal()
    try:
        ensure_services(session)
        users = ensure_users(session)
        session.commit()
        logger.info(
            "seed complete",
            extra={"admin_id": str(users[0].id)},
        )
    except Exception:
        session.rollback()
        logger.exception("seed failed")
        raise
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    seed()
