"""Initial SkinSense schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20250301001"
down_revision = None
branch_labels = None
depends_on = None

SERVICE_CATEGORIES = (
    "facial-treatments",
    "body-treatments",
    "anti-aging",
    "acne-treatments",
    "skin-analysis",
    "chemical-peels",
    "microdermabrasion",
    "laser-treatments",
    "consultation",
    "packages",
)
BOOKING_STATUSES = (
    "pending",
    "confirmed",
    "in-progress",
    "completed",
    "cancelled",
    "no-show",
    "rescheduled",
)
PAYMENT_STATUSES = ("pending", "paid", "partial", "refunded", "failed")
BOOKING_SOURCES = ("website", "phone", "walk-in", "referral", "social-media", "admin")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column(
            "role",
            sa.Enum("client", "staff", "admin", name="user_role"),
            nullable=False,
            server_default="client",
        ),
        sa.Column("sms_notifications", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "appointment_reminders", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "services",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("short_description", sa.String(length=200), nullable=True),
        sa.Column("category", sa.Enum(*SERVICE_CATEGORIES, name="service_category"), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("preparation_time", sa.Integer(), nullable=False, server_default=sa.text("15")),
        sa.Column("cleanup_time", sa.Integer(), nullable=False, server_default=sa.text("15")),
        sa.Column(
            "booking_advance_notice", sa.Integer(), nullable=False, server_default=sa.text("24")
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_popular", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_services_category", "services", ["category"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("staff_member_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(length=5), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*BOOKING_STATUSES, name="booking_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "payment_status",
            sa.Enum(*PAYMENT_STATUSES, name="payment_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("invoice_number", sa.String(length=32), nullable=False),
        sa.Column(
            "source",
            sa.Enum(*BOOKING_SOURCES, name="booking_source"),
            nullable=False,
            server_default="website",
        ),
        sa.Column("client_notes", sa.Text(), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        sa.Column(
            "is_first_time_client", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("reminder_hours", sa.Integer(), nullable=False, server_default=sa.text("24")),
        sa.Column(
            "reminder_email_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("reminder_email_sent_at", sa.DateTime(), nullable=True),
        sa.Column("reminder_sms_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reminder_sms_sent_at", sa.DateTime(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("rescheduled_from_date", sa.Date(), nullable=True),
        sa.Column("rescheduled_from_time", sa.String(length=5), nullable=True),
        sa.Column("reschedule_reason", sa.Text(), nullable=True),
        sa.Column("rescheduled_at", sa.DateTime(), nullable=True),
        sa.Column("rescheduled_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(), nullable=True),
        sa.Column("checked_out_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["staff_member_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["cancelled_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["rescheduled_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("invoice_number", name="uq_bookings_invoice_number"),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_service_id", "bookings", ["service_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index(
        "ix_bookings_appointment_slot",
        "bookings",
        ["appointment_date", "appointment_time"],
        unique=False,
    )

    op.create_table(
        "booking_photos",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("kind", sa.Enum("before", "after", name="photo_kind"), nullable=False),
        sa.Column("url", sa.String(length=500), nullable=False),
        sa.Column("public_id", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("taken_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_booking_photos_booking_id", "booking_photos", ["booking_id"], unique=False)

    op.create_table(
        "invoice_counters",
        sa.Column("period", sa.String(length=6), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("last_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "message_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("recipient", sa.String(length=255), nullable=True),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_message_logs_booking_id", "message_logs", ["booking_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("resource", sa.String(length=255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_actor_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_message_logs_booking_id", table_name="message_logs")
    op.drop_table("message_logs")
    op.drop_table("invoice_counters")
    op.drop_index("ix_booking_photos_booking_id", table_name="booking_photos")
    op.drop_table("booking_photos")
    op.drop_index("ix_bookings_appointment_slot", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_service_id", table_name="bookings")
    op.drop_index("ix_bookings_user_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_services_category", table_name="services")
    op.drop_table("services")
    op.drop_table("users")

    for enum_name in (
        "photo_kind",
        "booking_source",
        "payment_status",
        "booking_status",
        "service_category",
        "user_role",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
