from datetime import datetime, timezone

import pytest

from app.models import ServiceCategory, UserRole

DAY = "2025-03-10"


def auth(user):
    return {"X-User-ID": str(user.id)}


@pytest.fixture
def customer(make_user):
    return make_user(first_name="Maria", email="maria@example.com")


@pytest.fixture
def staff(make_user):
    return make_user(UserRole.STAFF, email="staff@skinsense.com")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@skinsense.com")


@pytest.fixture
def facial(make_service):
    return make_service(name="Signature Facial")


def create(client, user, service, time, day=DAY):
    return client.post(
        "/api/v1/bookings",
        json={"service_id": str(service.id), "appointment_date": day, "appointment_time": time},
        headers=auth(user),
    )


def test_register_and_read_profile(client):
    response = client.post(
        "/api/v1/users",
        json={"first_name": "Ana", "last_name": "Lopez", "email": "Ana@Example.com"},
    )
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["email"] == "ana@example.com"
    assert user["role"] == "client"

    duplicate = client.post(
        "/api/v1/users",
        json={"first_name": "Ana", "last_name": "Lopez", "email": "ana@example.com"},
    )
    assert duplicate.status_code == 409

    me = client.get("/api/v1/users/me", headers={"X-User-ID": user["id"]})
    assert me.status_code == 200
    assert me.json()["user"]["full_name"] == "Ana Lopez"


def test_invalid_email_is_rejected(client):
    response = client.post(
        "/api/v1/users", json={"first_name": "Ana", "last_name": "Lopez", "email": "not-an-email"}
    )
    assert response.status_code == 422


@pytest.mark.parametrize("header", [None, "not-a-uuid", "00000000-0000-0000-0000-000000000000"])
def test_identity_is_required(client, header):
    headers = {"X-User-ID": header} if header else {}
    assert client.get("/api/v1/users/me", headers=headers).status_code == 401


def test_update_preferences(client, customer):
    response = client.patch(
        "/api/v1/users/me/preferences",
        json={"sms_notifications": True, "phone": "+15555550199"},
        headers=auth(customer),
    )

    assert response.status_code == 200
    body = response.json()["user"]
    assert body["preferences"]["sms_notifications"] is True
    assert body["phone"] == "+15555550199"


def test_catalog_lists_active_services(client, make_service):
    make_service(
        name="Glycolic Peel", category=ServiceCategory.CHEMICAL_PEELS, is_featured=True
    )
    make_service(name="Retired Facial", is_active=False)
    make_service(name="Hydrating Facial")

    names = [item["name"] for item in client.get("/api/v1/services").json()["services"]]
    assert sorted(names) == ["Glycolic Peel", "Hydrating Facial"]

    featured = client.get("/api/v1/services", params={"featured": "true"}).json()["services"]
    assert [item["name"] for item in featured] == ["Glycolic Peel"]

    peels = client.get("/api/v1/services", params={"category": "chemical-peels"}).json()
    assert len(peels["services"]) == 1

    categories = client.get("/api/v1/services/categories").json()["categories"]
    counts = {item["value"]: item["count"] for item in categories}
    assert counts["chemical-peels"] == 1
    assert counts["facial-treatments"] == 1


def test_inactive_service_detail_is_not_found(client, make_service):
    retired = make_service(is_active=False)
    assert client.get(f"/api/v1/services/{retired.id}").status_code == 404


def test_only_admins_manage_the_catalog(client, customer, admin):
    payload = {
        "name": "Laser Resurfacing",
        "category": "laser-treatments",
        "duration": 45,
        "price": "250.00",
        "booking_advance_notice": 48,
    }

    assert client.post("/api/v1/services", json=payload, headers=auth(customer)).status_code == 403

    created = client.post("/api/v1/services", json=payload, headers=auth(admin))
    assert created.status_code == 201
    service = created.json()["service"]
    assert service["total_duration"] == 75

    updated = client.patch(
        f"/api/v1/services/{service['id']}", json={"price": "275.00"}, headers=auth(admin)
    )
    assert updated.json()["service"]["price"] == "275.00"


def test_booking_scenario_over_http(client, clock, customer, facial):
    first = create(client, customer, facial, "10:00")
    assert first.status_code == 201
    booking = first.json()["booking"]
    assert booking["status"] == "pending"
    assert booking["duration"] == 60
    assert booking["total_amount"] == "100.00"
    assert booking["invoice_number"] == "SS-202503-0001"

    assert create(client, customer, facial, "11:00").status_code == 201

    conflict = create(client, customer, facial, "10:59")
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == "Selected time slot is not available"

    clock.set(datetime(2025, 3, 9, 12, 0, tzinfo=timezone.utc))
    short_notice = create(client, customer, facial, "09:00")
    assert short_notice.status_code == 400
    assert short_notice.json()["detail"] == "This service requires at least 24 hours advance notice"

    past = create(client, customer, facial, "10:00", day="2025-03-08")
    assert past.status_code == 400
    assert past.json()["detail"] == "Appointment date must be in the future"


def test_unknown_service_is_not_found(client, customer):
    response = client.post(
        "/api/v1/bookings",
        json={
            "service_id": "00000000-0000-0000-0000-000000000001",
            "appointment_date": DAY,
            "appointment_time": "10:00",
        },
        headers=auth(customer),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Service not found or not available"


@pytest.mark.parametrize(
    "day, time, status_code",
    [
        ("2025-03-09", "10:00", 400),
        (DAY, "18:00", 400),
        (DAY, "08:30", 400),
        (DAY, "25:00", 422),
        (DAY, "10am", 422),
        ("2025-12-01", "10:00", 400),
    ],
)
def test_request_validation(client, customer, facial, day, time, status_code):
    assert create(client, customer, facial, time, day=day).status_code == status_code


def test_available_slots(client, customer, facial):
    create(client, customer, facial, "10:00")

    response = client.get(
        "/api/v1/bookings/available-slots",
        params={"date": DAY, "service_id": str(facial.id)},
        headers=auth(customer),
    )
    assert response.status_code == 200
    slots = response.json()["slots"]
    assert "09:00" not in slots
    assert "10:30" not in slots
    assert slots[0] == "11:00"
    assert slots[-1] == "16:30"

    sunday = client.get(
        "/api/v1/bookings/available-slots",
        params={"date": "2025-03-09", "service_id": str(facial.id)},
        headers=auth(customer),
    )
    assert sunday.json()["slots"] == []


def test_cancel_refunds_and_blocks_second_cancel(client, customer, facial, make_user):
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]
    stranger = make_user()

    forbidden = client.post(f"/api/v1/bookings/{booking_id}/cancel", json={}, headers=auth(stranger))
    assert forbidden.status_code == 403

    response = client.post(
        f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "Travel"}, headers=auth(customer)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["refund_amount"] == "100.00"
    assert body["booking"]["status"] == "cancelled"
    assert body["booking"]["payment_status"] == "refunded"
    assert body["booking"]["cancellation"]["reason"] == "Travel"

    again = client.post(f"/api/v1/bookings/{booking_id}/cancel", json={}, headers=auth(customer))
    assert again.status_code == 409


def test_cancel_survives_a_broken_notification(client, customer, facial, monkeypatch):
    from app.services import notifications

    def broken_render(kind, variables):
        raise KeyError("refund_note")

    monkeypatch.setattr(notifications, "render_email", broken_render)
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]

    response = client.post(f"/api/v1/bookings/{booking_id}/cancel", json={}, headers=auth(customer))

    assert response.status_code == 200
    stored = client.get(f"/api/v1/bookings/{booking_id}", headers=auth(customer)).json()["booking"]
    assert stored["status"] == "cancelled"


def test_reschedule_over_http(client, customer, facial):
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]

    response = client.post(
        f"/api/v1/bookings/{booking_id}/reschedule",
        json={"new_date": "2025-03-11", "new_time": "14:00", "reason": "Work"},
        headers=auth(customer),
    )

    assert response.status_code == 200
    booking = response.json()["booking"]
    assert booking["status"] == "rescheduled"
    assert booking["appointment_date"] == "2025-03-11"
    assert booking["rescheduling"]["original_time"] == "10:00"


def test_staff_drive_the_visit(client, customer, staff, facial):
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]

    assert client.post(f"/api/v1/bookings/{booking_id}/confirm", headers=auth(customer)).status_code == 403

    confirmed = client.post(f"/api/v1/bookings/{booking_id}/confirm", headers=auth(staff))
    assert confirmed.json()["booking"]["status"] == "confirmed"

    started = client.post(f"/api/v1/bookings/{booking_id}/start", headers=auth(staff))
    assert started.json()["booking"]["status"] == "in-progress"
    assert started.json()["booking"]["staff_member_id"] == str(staff.id)

    photo = client.post(
        f"/api/v1/bookings/{booking_id}/photos",
        json={"kind": "before", "url": "https://img.example.com/before.jpg"},
        headers=auth(staff),
    )
    assert photo.status_code == 201
    assert photo.json()["booking"]["photos"][0]["kind"] == "before"

    completed = client.post(
        f"/api/v1/bookings/{booking_id}/complete",
        json={"staff_notes": "Mild redness, advised SPF"},
        headers=auth(staff),
    )
    assert completed.json()["booking"]["status"] == "completed"
    assert completed.json()["booking"]["staff_notes"] == "Mild redness, advised SPF"

    late_cancel = client.post(f"/api/v1/bookings/{booking_id}/cancel", json={}, headers=auth(customer))
    assert late_cancel.status_code == 409
    assert late_cancel.json()["detail"] == "Cannot cancel a booking that is already completed"


def test_no_show(client, customer, staff, facial):
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]

    response = client.post(f"/api/v1/bookings/{booking_id}/no-show", headers=auth(staff))

    assert response.json()["booking"]["status"] == "no-show"
    assert create(client, customer, facial, "10:00").status_code == 201


def test_booking_visibility(client, customer, facial, make_user):
    booking_id = create(client, customer, facial, "10:00").json()["booking"]["id"]

    mine = client.get("/api/v1/bookings/mine", headers=auth(customer)).json()
    assert mine["pagination"]["total"] == 1
    assert mine["bookings"][0]["id"] == booking_id

    detail = client.get(f"/api/v1/bookings/{booking_id}", headers=auth(customer))
    assert detail.status_code == 200
    assert "staff_notes" not in detail.json()["booking"]

    assert client.get(f"/api/v1/bookings/{booking_id}", headers=auth(make_user())).status_code == 403
    missing = client.get(
        "/api/v1/bookings/00000000-0000-0000-0000-000000000002", headers=auth(customer)
    )
    assert missing.status_code == 404


def test_admin_views(client, clock, customer, staff, admin, facial):
    create(client, customer, facial, "10:00")

    assert client.get("/api/v1/admin/stats", headers=auth(staff)).status_code == 403

    stats = client.get("/api/v1/admin/stats", headers=auth(admin)).json()
    assert stats["by_status"]["pending"] == 1

    listing = client.get(
        "/api/v1/admin/bookings", params={"status": "pending"}, headers=auth(admin)
    ).json()
    assert listing["pagination"]["total"] == 1

    clock.set(datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc))
    today = client.get("/api/v1/admin/bookings/today", headers=auth(staff)).json()
    assert today["date"] == DAY
    assert len(today["bookings"]) == 1


def test_reminder_dispatch_endpoint(client, clock, customer, staff, facial):
    create(client, customer, facial, "10:00")
    clock.set(datetime(2025, 3, 9, 14, 0, tzinfo=timezone.utc))

    assert client.post("/api/v1/admin/reminders/dispatch", headers=auth(customer)).status_code == 403

    report = client.post("/api/v1/admin/reminders/dispatch", headers=auth(staff)).json()
    assert report["checked"] == 1
    assert report["sent"] == 1

    again = client.post("/api/v1/admin/reminders/dispatch", headers=auth(staff)).json()
    assert again["checked"] == 0
