from datetime import datetime, timedelta, timezone

from tests.factories import booking_builders
from tests.factories.booking_builders import auth_headers


def test_admin_routes_require_admin_role(client, db, member):
    response = client.get(
        f"/api/v1/admin/members/{member['user'].id}", headers=auth_headers(member["user"])
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_apply_override_and_read_history(client, db, member, admin_user):
    response = client.post(
        "/api/v1/admin/overrides",
        json={
            "user_id": member["user"].id,
            "change_type": "add_sessions",
            "session_delta": 2,
            "reason": "Studio closed Tuesday",
        },
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Added 2 bonus sessions for this week"}

    history = client.get(
        f"/api/v1/admin/members/{member['user'].id}/overrides", headers=auth_headers(admin_user)
    ).json()
    assert len(history) == 1
    assert history[0]["admin_user_id"] == admin_user.id
    assert history[0]["session_delta"] == 2

    detail = client.get(
        f"/api/v1/admin/members/{member['user'].id}", headers=auth_headers(admin_user)
    ).json()
    assert detail["current_week"]["sessions_limit"] == 5
    assert detail["entitlement"]["tier_name"] == "Core"


def test_override_request_validation(client, db, member, admin_user):
    response = client.post(
        "/api/v1/admin/overrides",
        json={"user_id": member["user"].id, "change_type": "add_sessions", "reason": "Bonus"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422

    response = client.post(
        "/api/v1/admin/overrides",
        json={"user_id": member["user"].id, "change_type": "suspend", "reason": ""},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422


def test_override_unknown_member(client, db, admin_user):
    response = client.post(
        "/api/v1/admin/overrides",
        json={"user_id": "missing", "change_type": "suspend", "reason": "Chargeback"},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 404


def test_publish_and_deactivate_slot(client, db, member, admin_user):
    starts_at = datetime.now(timezone.utc) + timedelta(days=2)
    response = client.post(
        "/api/v1/admin/slots",
        json={
            "service_type_id": member["service_type"].id,
            "name": "Evening sauna",
            "starts_at": starts_at.isoformat(),
            "ends_at": (starts_at + timedelta(hours=1)).isoformat(),
            "capacity": 4,
        },
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 201
    slot = response.json()
    assert slot["capacity"] == 4
    assert slot["booked_count"] == 0
    assert slot["is_active"] is True

    response = client.post(
        f"/api/v1/admin/slots/{slot['id']}/active",
        json={"is_active": False},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = client.post(
        "/api/v1/bookings",
        json={"slot_id": slot["id"], "service_type_id": member["service_type"].id},
        headers=auth_headers(member["user"]),
    )
    assert response.status_code == 404


def test_slot_times_must_be_ordered(client, db, member, admin_user):
    starts_at = datetime.now(timezone.utc) + timedelta(days=2)
    response = client.post(
        "/api/v1/admin/slots",
        json={
            "service_type_id": member["service_type"].id,
            "name": "Backwards",
            "starts_at": starts_at.isoformat(),
            "ends_at": (starts_at - timedelta(hours=1)).isoformat(),
        },
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SLOT_TIMES"


def test_booking_status_edit(client, db, member, admin_user):
    slot = booking_builders.create_slot(db, member["service_type"])
    db.commit()
    booking_id = client.post(
        "/api/v1/bookings",
        json={"slot_id": slot.id, "service_type_id": member["service_type"].id},
        headers=auth_headers(member["user"]),
    ).json()["booking_id"]

    response = client.patch(
        f"/api/v1/admin/bookings/{booking_id}/status",
        json={"status": "no_show"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "no_show"

    response = client.patch(
        f"/api/v1/admin/bookings/{booking_id}/status",
        json={"status": "confirmed"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_STATUS_TRANSITION"
