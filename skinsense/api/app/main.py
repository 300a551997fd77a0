from __future__ import annotations

import logging
import time
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.db.session import get_db
from app.metrics import REQUEST_COUNTER, REQUEST_LATENCY
from app.models import (
    Booking,
    BookingPhoto,
    BookingSource,
    BookingStatus,
    PaymentStatus,
    PhotoKind,
    Service,
    ServiceCategory,
    User,
    UserRole,
)
from app.models.base import utcnow
from app.services import bookings as booking_service
from app.services.booking_lock import calendar_lock
from app.services.errors import (
    BookingError,
    InsufficientNotice,
    InvalidTransition,
    PastAppointment,
    ServiceUnavailable,
    SlotConflict,
)
from app.services.notifications import notify_booking
from app.services.reminders import dispatch_due_reminders
from app.services.scheduling import (
    TIME_PATTERN,
    available_slots,
    clinic_timezone,
    earliest_bookable,
    ensure_utc,
    format_time,
    parse_time,
)
from app.logging_utils import (
    configure_logging,
    get_current_user_id,
    set_user_context,
    _request_id_ctx_var,
    _user_id_ctx_var,
)

configure_logging()

app = FastAPI(title=settings.app_name, version="0.1.0")

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

ERROR_STATUS_CODES: dict[type[BookingError], int] = {
    ServiceUnavailable: status.HTTP_404_NOT_FOUND,
    SlotConflict: status.HTTP_409_CONFLICT,
    InsufficientNotice: status.HTTP_400_BAD_REQUEST,
    PastAppointment: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_409_CONFLICT,
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Populate request and user context for logging."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        user_hint = request.headers.get("X-User-ID")

        request.state.request_id = request_id
        request_id_token = _request_id_ctx_var.set(request_id)
        user_token = _user_id_ctx_var.set(user_hint)

        try:
            response = await call_next(request)
        finally:
            _request_id_ctx_var.reset(request_id_token)
            _user_id_ctx_var.reset(user_token)

        response.headers["X-Request-ID"] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs and feed metrics."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start_time = time.perf_counter()
        path = request.scope.get("root_path", "") + request.scope.get("path", request.url.path)
        method = request.method

        try:
            response = await call_next(request)
        except Exception:
            elapsed = time.perf_counter() - start_time
            REQUEST_COUNTER.labels(method=method, path=path, status="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)
            logger.exception(
                "request failed",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": round(elapsed * 1000, 2),
                },
            )
            raise

        elapsed = time.perf_counter() - start_time
        status_code = response.status_code

        REQUEST_COUNTER.labels(method=method, path=path, status=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(elapsed)

        logger.info(
            "request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
                "actor": get_current_user_id(),
            },
        )

        return response


app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AccessLogMiddleware)


class UserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    sms_notifications: bool = True
    appointment_reminders: bool = True


class PreferencesUpdate(BaseModel):
    phone: str | None = Field(default=None, max_length=32)
    sms_notifications: bool | None = None
    appointment_reminders: bool | None = None


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=200)
    category: ServiceCategory
    duration: int = Field(ge=15, le=480)
    price: Decimal = Field(ge=0)
    preparation_time: int = Field(default=15, ge=0)
    cleanup_time: int = Field(default=15, ge=0)
    booking_advance_notice: int = Field(default=24, ge=0)
    is_active: bool = True
    is_popular: bool = False
    is_featured: bool = False
    display_order: int = 0


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    short_description: str | None = Field(default=None, max_length=200)
    category: ServiceCategory | None = None
    duration: int | None = Field(default=None, ge=15, le=480)
    price: Decimal | None = Field(default=None, ge=0)
    preparation_time: int | None = Field(default=None, ge=0)
    cleanup_time: int | None = Field(default=None, ge=0)
    booking_advance_notice: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_popular: bool | None = None
    is_featured: bool | None = None
    display_order: int | None = None


class BookingCreate(BaseModel):
    service_id: UUID
    appointment_date: date
    appointment_time: str = Field(pattern=TIME_PATTERN.pattern)
    client_notes: str | None = Field(default=None, max_length=500)
    source: BookingSource = BookingSource.WEBSITE


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: str = Field(pattern=TIME_PATTERN.pattern)
    reason: str | None = Field(default=None, max_length=500)


class VisitNotes(BaseModel):
    staff_notes: str | None = Field(default=None, max_length=500)


class PhotoCreate(BaseModel):
    kind: PhotoKind
    url: str = Field(min_length=1, max_length=500)
    public_id: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=500)


def http_error(exc: BookingError) -> HTTPException:
    """Translate a booking policy error into its HTTP response."""

    return HTTPException(
        status_code=ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST),
        detail=str(exc),
    )


def current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the identity header set by the gateway."""

    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required"
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user identifier"
        ) from exc

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown or inactive user"
        )

    set_user_context(user.id)
    return user


def require_staff(user: User = Depends(current_user)) -> User:
    if not user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "email": user.email,
        "phone": user.phone,
        "role": UserRole(user.role).value,
        "preferences": {
            "sms_notifications": user.sms_notifications,
            "appointment_reminders": user.appointment_reminders,
        },
    }


def serialize_service(service: Service) -> dict[str, Any]:
    category = ServiceCategory(service.category)
    return {
        "id": str(service.id),
        "name": service.name,
        "description": service.description,
        "short_description": service.short_description,
        "category": category.value,
        "category_label": category.label,
        "duration": service.duration,
        "total_duration": service.total_duration,
        "price": f"{Decimal(service.price):.2f}",
        "booking_advance_notice": service.booking_advance_notice,
        "is_active": service.is_active,
        "is_popular": service.is_popular,
        "is_featured": service.is_featured,
    }


def _isoformat(value: datetime | None) -> str | None:
    return ensure_utc(value).isoformat() if value else None


def serialize_booking(booking: Booking, *, staff_view: bool = False) -> dict[str, Any]:
    """Convert a booking into a JSON serializable dict."""

    cancellation = booking.cancellation
    rescheduling = booking.rescheduling
    service = booking.service
    data: dict[str, Any] = {
        "id": str(booking.id),
        "user_id": str(booking.user_id),
        "service": (
            {"id": str(service.id), "name": service.name, "category": ServiceCategory(service.category).value}
            if service
            else None
        ),
        "appointment_date": booking.appointment_date.isoformat(),
        "appointment_time": booking.appointment_time,
        "duration": booking.duration,
        "status": BookingStatus(booking.status).value,
        "payment_status": PaymentStatus(booking.payment_status).value,
        "total_amount": f"{Decimal(booking.total_amount):.2f}",
        "deposit_amount": f"{Decimal(booking.deposit_amount or 0):.2f}",
        "invoice_number": booking.invoice_number,
        "source": BookingSource(booking.source).value,
        "client_notes": booking.client_notes,
        "is_first_time_client": booking.is_first_time_client,
        "reminders": {
            "email": {
                "sent": bool(booking.reminder_email_sent),
                "sent_at": _isoformat(booking.reminder_email_sent_at),
            },
            "sms": {
                "sent": bool(booking.reminder_sms_sent),
                "sent_at": _isoformat(booking.reminder_sms_sent_at),
            },
        },
        "cancellation": (
            {
                "reason": cancellation.reason,
                "cancelled_at": _isoformat(cancellation.cancelled_at),
                "cancelled_by": str(cancellation.cancelled_by) if cancellation.cancelled_by else None,
                "refund_amount": f"{cancellation.refund_amount:.2f}",
            }
            if cancellation
            else None
        ),
        "rescheduling": (
            {
                "original_date": rescheduling.original_date.isoformat(),
                "original_time": rescheduling.original_time,
                "reason": rescheduling.reason,
                "rescheduled_at": _isoformat(rescheduling.rescheduled_at),
                "rescheduled_by": str(rescheduling.rescheduled_by) if rescheduling.rescheduled_by else None,
            }
            if rescheduling
            else None
        ),
        "checked_in_at": _isoformat(booking.checked_in_at),
        "checked_out_at": _isoformat(booking.checked_out_at),
        "staff_member_id": str(booking.staff_member_id) if booking.staff_member_id else None,
        "photos": [
            {
                "id": str(photo.id),
                "kind": PhotoKind(photo.kind).value,
                "url": photo.url,
                "description": photo.description,
                "taken_at": _isoformat(photo.taken_at),
            }
            for photo in booking.photos
        ],
    }
    if staff_view:
        data["staff_notes"] = booking.staff_notes
    return data


def load_booking(db: Session, booking_id: UUID) -> Booking:
    booking = db.get(Booking, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


def ensure_booking_access(booking: Booking, user: User) -> None:
    """Only the booking's client or clinic staff may touch it."""

    if booking.user_id != user.id and not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this booking",
        )


def clinic_today(now: datetime) -> date:
    return ensure_utc(now).astimezone(clinic_timezone()).date()


def validate_requested_slot(appointment_date: date, appointment_time: str, now: datetime) -> str:
    """Check the request against the booking window and opening hours.

    Returns the time normalised to ``HH:MM``.
    """

    last_day = clinic_today(now) + timedelta(days=settings.max_advance_days)
    if appointment_date > last_day:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Appointments can be booked at most {settings.max_advance_days} days in advance",
        )
    if appointment_date.weekday() in settings.closed_weekdays:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The clinic is closed on the selected date",
        )

    minutes = parse_time(appointment_time)
    opens = settings.business_open_hour * 60
    closes = settings.business_close_hour * 60
    if not opens <= minutes < closes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Appointments are available between {format_time(opens)} "
                f"and {format_time(closes)}"
            ),
        )
    return format_time(minutes)


def booking_page(items: list[Booking], total: int, page: int, limit: int, *, staff_view: bool) -> dict[str, Any]:
    return {
        "bookings": [serialize_booking(item, staff_view=staff_view) for item in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@app.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics for scraping."""

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint used by infrastructure probes."""

    return {"status": "ok"}


@app.post("/api/v1/users", status_code=status.HTTP_201_CREATED)
def register_user(payload: UserCreate, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Register a client profile."""

    email = payload.email.strip().lower()
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    user = User(
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        email=email,
        phone=payload.phone,
        role=UserRole.CLIENT,
        sms_notifications=payload.sms_notifications,
        appointment_reminders=payload.appointment_reminders,
        is_active=True,
    )
    db.add(user)
    db.flush()
    logger.info("user registered", extra={"user_id": str(user.id)})
    return {"user": serialize_user(user)}


@app.get("/api/v1/users/me")
def read_profile(user: User = Depends(current_user)) -> dict[str, Any]:
    return {"user": serialize_user(user)}


@app.patch("/api/v1/users/me/preferences")
def update_preferences(
    payload: PreferencesUpdate,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Update contact details and notification opt-ins."""

    for field_name, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field_name, value)
    db.flush()
    return {"user": serialize_user(user)}


@app.get("/api/v1/services")
def list_services(
    category: ServiceCategory | None = None,
    featured: bool | None = None,
    popular: bool | None = None,
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """List the active catalog."""

    stmt = select(Service).where(Service.is_active.is_(True))
    if category is not None:
        stmt = stmt.where(Service.category == category)
    if featured is not None:
        stmt = stmt.where(Service.is_featured.is_(featured))
    if popular is not None:
        stmt = stmt.where(Service.is_popular.is_(popular))
    stmt = stmt.order_by(Service.display_order, Service.name)

    services = db.execute(stmt).scalars().all()
    return {"services": [serialize_service(service) for service in services]}


@app.get("/api/v1/services/categories")
def list_categories(db: Session = Depends(get_db)) -> dict[str, Any]:
    """Active service counts per catalog category."""

    rows = db.execute(
        select(Service.category, func.count(Service.id))
        .where(Service.is_active.is_(True))
        .group_by(Service.category)
    ).all()
    counts = {ServiceCategory(category): int(count) for category, count in rows}
    return {
        "categories": [
            {"value": category.value, "label": category.label, "count": counts.get(category, 0)}
            for category in ServiceCategory
        ]
    }


@app.get("/api/v1/services/{service_id}")
def read_service(service_id: UUID, db: Session = Depends(get_db)) -> dict[str, Any]:
    service = db.get(Service, service_id)
    if not service or not service.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"service": serialize_service(service)}


@app.post("/api/v1/services", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServiceCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    service = Service(**payload.model_dump())
    db.add(service)
    db.flush()
    logger.info("service created", extra={"service_id": str(service.id), "actor": str(admin.id)})
    return {"service": serialize_service(service)}


@app.patch("/api/v1/services/{service_id}")
def update_service(
    service_id: UUID,
    payload: ServiceUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Edit a catalog entry; existing bookings keep their snapshot."""

    service = db.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")

    for field_name, value in payload.model_dump(exclude_unset=True).items():
        setattr(service, field_name, value)
    db.flush()
    logger.info("service updated", extra={"service_id": str(service.id), "actor": str(admin.id)})
    return {"service": serialize_service(service)}


@app.get("/api/v1/bookings/available-slots")
def read_available_slots(
    service_id: UUID,
    on_date: date = Query(alias="date"),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Return open start times for a service on a given date."""

    try:
        service = booking_service.get_bookable_service(db, service_id)
    except BookingError as exc:
        raise http_error(exc) from exc

    now = clock()
    tz = clinic_timezone()
    last_day = clinic_today(now) + timedelta(days=settings.max_advance_days)
    if on_date.weekday() in settings.closed_weekdays or on_date > last_day:
        slots: list[str] = []
    else:
        slots = available_slots(
            booking_service.bookings_on(db, on_date),
            on_date,
            service.total_duration,
            earliest_start=earliest_bookable(now, service.booking_advance_notice),
            tz=tz,
        )

    return {
        "service_id": str(service.id),
        "date": on_date.isoformat(),
        "timezone": getattr(tz, "key", str(tz)),
        "duration": service.total_duration,
        "slots": slots,
    }


@app.post("/api/v1/bookings", status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Book a service for the calling client."""

    now = clock()
    appointment_time = validate_requested_slot(
        payload.appointment_date, payload.appointment_time, now
    )

    try:
        with calendar_lock(payload.appointment_date):
            booking = booking_service.create_booking(
                db,
                user=user,
                service_id=payload.service_id,
                appointment_date=payload.appointment_date,
                appointment_time=appointment_time,
                now=now,
                client_notes=payload.client_notes,
                source=payload.source,
            )
            db.commit()
    except BookingError as exc:
        raise http_error(exc) from exc

    notify_booking(db, booking, "confirmation")
    return {"booking": serialize_booking(booking)}


@app.get("/api/v1/bookings/mine")
def list_my_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    items, total = booking_service.list_bookings(
        db, user_id=user.id, status=status_filter, page=page, limit=limit
    )
    return booking_page(items, total, page, limit, staff_view=False)


@app.get("/api/v1/bookings/{booking_id}")
def read_booking(
    booking_id: UUID,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    booking = load_booking(db, booking_id)
    ensure_booking_access(booking, user)
    return {"booking": serialize_booking(booking, staff_view=user.is_staff)}


@app.post("/api/v1/bookings/{booking_id}/cancel")
def cancel_booking(
    booking_id: UUID,
    payload: CancelRequest,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Cancel a booking, refunding according to the notice given."""

    booking = load_booking(db, booking_id)
    ensure_booking_access(booking, user)

    try:
        record = booking_service.cancel_booking(
            db, booking, actor_id=user.id, reason=payload.reason, now=clock()
        )
        db.commit()
    except BookingError as exc:
        raise http_error(exc) from exc

    notify_booking(db, booking, "cancellation")
    return {
        "booking": serialize_booking(booking, staff_view=user.is_staff),
        "refund_amount": f"{record.refund_amount:.2f}",
    }


@app.post("/api/v1/bookings/{booking_id}/reschedule")
def reschedule_booking(
    booking_id: UUID,
    payload: RescheduleRequest,
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Move a booking to another free slot."""

    booking = load_booking(db, booking_id)
    ensure_booking_access(booking, user)

    now = clock()
    new_time = validate_requested_slot(payload.new_date, payload.new_time, now)

    try:
        with calendar_lock(booking.appointment_date, payload.new_date):
            booking_service.reschedule_booking(
                db,
                booking,
                actor_id=user.id,
                new_date=payload.new_date,
                new_time=new_time,
                reason=payload.reason,
                now=now,
            )
            db.commit()
    except BookingError as exc:
        raise http_error(exc) from exc

    notify_booking(db, booking, "rescheduled")
    return {"booking": serialize_booking(booking, staff_view=user.is_staff)}


@app.post("/api/v1/bookings/{booking_id}/confirm")
def confirm_booking(
    booking_id: UUID,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    booking = load_booking(db, booking_id)
    try:
        booking_service.confirm_booking(db, booking, actor_id=staff.id, now=clock())
        db.commit()
    except BookingError as exc:
        raise http_error(exc) from exc

    notify_booking(db, booking, "confirmed")
    return {"booking": serialize_booking(booking, staff_view=True)}


@app.post("/api/v1/bookings/{booking_id}/start")
def start_booking(
    booking_id: UUID,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Check the client in."""

    booking = load_booking(db, booking_id)
    try:
        booking_service.start_booking(db, booking, actor_id=staff.id, now=clock())
    except BookingError as exc:
        raise http_error(exc) from exc
    return {"booking": serialize_booking(booking, staff_view=True)}


@app.post("/api/v1/bookings/{booking_id}/complete")
def complete_booking(
    booking_id: UUID,
    payload: VisitNotes | None = None,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Check the client out, optionally leaving treatment notes."""

    booking = load_booking(db, booking_id)
    try:
        booking_service.complete_booking(
            db,
            booking,
            actor_id=staff.id,
            now=clock(),
            staff_notes=payload.staff_notes if payload else None,
        )
    except BookingError as exc:
        raise http_error(exc) from exc
    return {"booking": serialize_booking(booking, staff_view=True)}


@app.post("/api/v1/bookings/{booking_id}/no-show")
def mark_no_show(
    booking_id: UUID,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    booking = load_booking(db, booking_id)
    try:
        booking_service.mark_no_show(db, booking, actor_id=staff.id, now=clock())
    except BookingError as exc:
        raise http_error(exc) from exc
    return {"booking": serialize_booking(booking, staff_view=True)}


@app.post("/api/v1/bookings/{booking_id}/photos", status_code=status.HTTP_201_CREATED)
def add_booking_photo(
    booking_id: UUID,
    payload: PhotoCreate,
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    """Attach before/after photo metadata to a booking."""

    booking = load_booking(db, booking_id)
    photo = BookingPhoto(
        booking_id=booking.id,
        kind=payload.kind,
        url=payload.url,
        public_id=payload.public_id,
        description=payload.description,
        taken_at=utcnow(),
    )
    db.add(photo)
    db.flush()
    db.refresh(booking)
    logger.info(
        "booking photo added",
        extra={"booking_id": str(booking.id), "kind": payload.kind.value, "actor": str(staff.id)},
    )
    return {"booking": serialize_booking(booking, staff_view=True)}


@app.get("/api/v1/admin/bookings")
def admin_list_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    on_date: date | None = Query(default=None, alias="date"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    items, total = booking_service.list_bookings(
        db, status=status_filter, on_date=on_date, page=page, limit=limit
    )
    return booking_page(items, total, page, limit, staff_view=True)


@app.get("/api/v1/admin/bookings/today")
def admin_today_bookings(
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Today's schedule in clinic time, released bookings included."""

    today = clinic_today(clock())
    items = booking_service.bookings_on(db, today, exclude_statuses=())
    return {
        "date": today.isoformat(),
        "bookings": [serialize_booking(item, staff_view=True) for item in items],
    }


@app.get("/api/v1/admin/stats")
def admin_stats(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return booking_service.booking_stats(db)


@app.post("/api/v1/admin/reminders/dispatch")
def admin_dispatch_reminders(
    staff: User = Depends(require_staff),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Send every reminder that is currently due."""

    report = dispatch_due_reminders(db, clock())
    return {
        "checked": report.checked,
        "sent": report.sent,
        "failed": report.failed,
        "booking_ids": report.booking_ids,
    }
