"""Prometheus collectors shared across the API."""

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
    "skinsense_api_requests_total",
    "Total number of processed HTTP requests.",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "skinsense_api_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
)
BOOKING_TRANSITIONS = Counter(
    "skinsense_booking_transitions_total",
    "Booking lifecycle operations by outcome.",
    ["action", "outcome"],
)
NOTIFICATIONS_SENT = Counter(
    "skinsense_notifications_total",
    "Outbound notifications by channel and status.",
    ["channel", "kind", "status"],
)
