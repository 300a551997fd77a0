"""Plain-text bodies for booking notifications."""

from __future__ import annotations

from typing import Any, Dict

EMAIL_TEMPLATES: Dict[str, Dict[str, str]] = {
    "confirmation": {
        "subject": "Appointment Confirmed - {business_name}",
        "body": (
            "Hi {first_name},\n\n"
            "Your {service_name} appointment is booked for {appointment_date} at "
            "{appointment_time} ({duration} minutes).\n"
            "Total: {total_amount}  Invoice: {invoice_number}\n\n"
            "Manage your booking: {manage_url}\n\n{business_name}"
        ),
    },
    "cancellation": {
        "subject": "Appointment Cancelled - {business_name}",
        "body": (
            "Hi {first_name},\n\n"
            "Your {service_name} appointment on {appointment_date} at "
            "{appointment_time} has been cancelled.{refund_note}\n\n{business_name}"
        ),
    },
    "rescheduled": {
        "subject": "Appointment Rescheduled - {business_name}",
        "body": (
            "Hi {first_name},\n\n"
            "Your {service_name} appointment has moved to {appointment_date} at "
            "{appointment_time}.\n\nManage your booking: {manage_url}\n\n{business_name}"
        ),
    },
    "confirmed": {
        "subject": "See You Soon - {business_name}",
        "body": (
            "Hi {first_name},\n\n"
            "The clinic has confirmed your {service_name} appointment on "
            "{appointment_date} at {appointment_time}.\n\n{business_name}"
        ),
    },
    "reminder": {
        "subject": "Appointment Reminder - {business_name}",
        "body": (
            "Hi {first_name},\n\n"
            "This is a reminder of your {service_name} appointment on "
            "{appointment_date} at {appointment_time}. Please arrive 15 minutes early."
            "\n\n{business_name}"
        ),
    },
}

SMS_TEMPLATES: Dict[str, str] = {
    "confirmation": (
        "{business_name}: Your {service_name} appointment is booked for "
        "{appointment_date} at {appointment_time}. Reply STOP to opt out."
    ),
    "cancellation": (
        "{business_name}: Your {service_name} appointment on {appointment_date} at "
        "{appointment_time} has been cancelled.{refund_note} Reply STOP to opt out."
    ),
    "rescheduled": (
        "{business_name}: Your {service_name} appointment has been rescheduled to "
        "{appointment_date} at {appointment_time}. Reply STOP to opt out."
    ),
    "confirmed": (
        "{business_name}: Your {service_name} appointment on {appointment_date} at "
        "{appointment_time} is confirmed. Reply STOP to opt out."
    ),
    "reminder": (
        "{business_name} Reminder: {service_name} on {appointment_date} at "
        "{appointment_time}. Please arrive 15 minutes early. Reply STOP to opt out."
    ),
}


def render_email(kind: str, variables: dict[str, Any]) -> tuple[str, str]:
    """Return ``(subject, body)`` for the given notification kind."""

    template = EMAIL_TEMPLATES[kind]
    return template["subject"].format(**variables), template["body"].format(**variables)


def render_sms(kind: str, variables: dict[str, Any]) -> str:
    return SMS_TEMPLATES[kind].format(**variables)


__all__ = ["EMAIL_TEMPLATES", "SMS_TEMPLATES", "render_email", "render_sms"]
