from types import SimpleNamespace
from unittest.mock import patch

from pydantic import SecretStr
import pytest

from app.core.config import settings
from app.core.enums import BookingStatus
from app.models.booking import Booking
from tests.factories.booking_builders import auth_headers

SESSION_CREATE = "app.services.checkout_service.stripe.checkout.Session.create"


@pytest.fixture
def stripe_key(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", SecretStr("sk_test_123"))


def _fake_session(**_kwargs):
    return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.test/cs_test_1")


def test_subscription_checkout(client, member, stripe_key):
    with patch(SESSION_CREATE, side_effect=_fake_session) as create:
        response = client.post(
            "/api/v1/checkout/subscription",
            json={"tier_id": member["tier"].id},
            headers=auth_headers(member["user"]),
        )

    assert response.status_code == 200
    assert response.json() == {
        "session_id": "cs_test_1",
        "url": "https://checkout.stripe.test/cs_test_1",
    }
    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "subscription"
    assert kwargs["metadata"]["user_id"] == member["user"].id
    assert kwargs["metadata"]["purchase_type"] == "subscription"
    assert kwargs["metadata"]["tier_id"] == member["tier"].id
    recurring = kwargs["line_items"][0]["price_data"]["recurring"]
    assert recurring == {"interval": "month", "interval_count": 1}


def test_gift_voucher_amount_is_sent_in_minor_units(client, member, stripe_key):
    with patch(SESSION_CREATE, side_effect=_fake_session) as create:
        response = client.post(
            "/api/v1/checkout/gift_voucher",
            json={"voucher_amount": "49.50", "recipient_email": "friend@example.com"},
            headers=auth_headers(member["user"]),
        )

    assert response.status_code == 200
    kwargs = create.call_args.kwargs
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 4950
    assert kwargs["metadata"]["recipient_email"] == "friend@example.com"


def test_booking_checkout_creates_pending_booking(client, db, member, stripe_key):
    with patch(SESSION_CREATE, side_effect=_fake_session) as create:
        response = client.post(
            "/api/v1/checkout/booking",
            json={
                "service_type_id": member["service_type"].id,
                "booking_date": "2026-11-02T09:00:00Z",
            },
            headers=auth_headers(member["user"]),
        )

    assert response.status_code == 200
    booking_id = create.call_args.kwargs["metadata"]["booking_id"]
    booking = db.get(Booking, booking_id)
    assert booking.status == BookingStatus.PENDING.value
    assert booking.session_slot_id is None


def test_unknown_purchase_type(client, member, stripe_key):
    response = client.post(
        "/api/v1/checkout/timeshare", json={}, headers=auth_headers(member["user"])
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PURCHASE_TYPE"


def test_unknown_tier(client, member, stripe_key):
    response = client.post(
        "/api/v1/checkout/membership",
        json={"tier_id": "missing"},
        headers=auth_headers(member["user"]),
    )

    assert response.status_code == 404


def test_checkout_disabled_without_stripe_key(client, member, monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", SecretStr(""))

    response = client.post(
        "/api/v1/checkout/subscription",
        json={"tier_id": member["tier"].id},
        headers=auth_headers(member["user"]),
    )

    assert response.status_code == 500
    assert response.json()["code"] == "STRIPE_NOT_CONFIGURED"
