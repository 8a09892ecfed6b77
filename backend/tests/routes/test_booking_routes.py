from datetime import datetime, timedelta, timezone

from app.core.enums import UserStatus
from tests.factories import booking_builders
from tests.factories.booking_builders import auth_headers


def _book(client, user, slot, service_type):
    return client.post(
        "/api/v1/bookings",
        json={"slot_id": slot.id, "service_type_id": service_type.id},
        headers=auth_headers(user),
    )


def test_requires_gateway_identity(client, db, member):
    response = client.get("/api/v1/bookings/summary")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"

    response = client.get("/api/v1/bookings/summary", headers={"X-User-Id": "nobody"})
    assert response.status_code == 401


def test_suspended_account_is_forbidden(client, db):
    user = booking_builders.create_user(db, user_status=UserStatus.SUSPENDED.value)
    db.commit()

    response = client.get("/api/v1/bookings/summary", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["code"] == "ACCOUNT_SUSPENDED"


def test_book_list_summarize_and_cancel(client, db, member):
    slot = booking_builders.create_slot(db, member["service_type"], capacity=3)
    db.commit()
    user = member["user"]

    created = _book(client, user, slot, member["service_type"])
    assert created.status_code == 201
    booking_id = created.json()["booking_id"]

    summary = client.get("/api/v1/bookings/summary", headers=auth_headers(user)).json()
    assert summary["sessions_used"] == 1
    assert summary["sessions_remaining"] == 2
    assert summary["weekly_limit"] == 3
    assert summary["can_book"] is True

    listing = client.get("/api/v1/bookings", headers=auth_headers(user)).json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == booking_id
    assert listing["items"][0]["status"] == "confirmed"

    cancelled = client.post(
        f"/api/v1/bookings/{booking_id}/cancel",
        json={"reason": "Running late"},
        headers=auth_headers(user),
    )
    assert cancelled.status_code == 200
    assert cancelled.json() == {"success": True, "refund_eligible": True}

    again = client.post(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers(user))
    assert again.status_code == 409
    assert again.json()["code"] == "ALREADY_CANCELLED"


def test_booking_errors_use_error_envelope(client, db, member):
    stranger = booking_builders.create_user(db)
    full = booking_builders.create_slot(db, member["service_type"], capacity=1, booked_count=1)
    db.commit()

    response = _book(client, stranger, full, member["service_type"])
    assert response.status_code == 402
    body = response.json()
    assert body["status"] == 402
    assert body["code"] == "NO_ACTIVE_SUBSCRIPTION"
    assert body["message"] == "Payment required to book"

    response = _book(client, member["user"], full, member["service_type"])
    assert response.status_code == 409
    assert response.json()["code"] == "SLOT_FULL_CONCURRENT"
    assert response.json()["details"] == {"slot_id": full.id}


def test_quota_exceeded_is_422(client, db):
    user, _tier, _sub = booking_builders.create_entitled_member(db, sessions_per_week=1)
    service_type = booking_builders.create_service_type(db)
    first = booking_builders.create_slot(db, service_type)
    second = booking_builders.create_slot(
        db, service_type, starts_at=datetime.now(timezone.utc) + timedelta(days=2)
    )
    db.commit()

    assert _book(client, user, first, service_type).status_code == 201
    response = _book(client, user, second, service_type)

    assert response.status_code == 422
    assert response.json()["code"] == "QUOTA_EXCEEDED"


def test_malformed_request(client, db, member):
    response = client.post(
        "/api/v1/bookings", json={"notes": "no slot"}, headers=auth_headers(member["user"])
    )

    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_upcoming_slots(client, db, member):
    slot = booking_builders.create_slot(db, member["service_type"], capacity=5, booked_count=2)
    booking_builders.create_slot(
        db, member["service_type"], starts_at=datetime.now(timezone.utc) - timedelta(hours=1)
    )
    db.commit()

    response = client.get("/api/v1/slots", headers=auth_headers(member["user"]))

    assert response.status_code == 200
    slots = response.json()
    assert [item["id"] for item in slots] == [slot.id]
    assert slots[0]["seats_remaining"] == 3
