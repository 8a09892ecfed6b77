import json
from unittest.mock import patch

from pydantic import SecretStr
import pytest
import stripe

from app.core.config import settings

STRIPE_ROUTE = "/api/v1/webhooks/stripe"
CONSTRUCT_EVENT = "app.services.stripe_webhook_service.stripe.Webhook.construct_event"


@pytest.fixture
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))


def _deliver(client, event):
    return client.post(
        STRIPE_ROUTE,
        content=json.dumps(event).encode(),
        headers={"stripe-signature": "t=1,v1=abc", "content-type": "application/json"},
    )


def test_missing_signature_is_rejected(client, webhook_secret):
    response = client.post(STRIPE_ROUTE, content=b"{}")

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_SIGNATURE"


def test_invalid_signature_is_rejected(client, webhook_secret):
    with patch(CONSTRUCT_EVENT, side_effect=stripe.SignatureVerificationError("bad", "sig")):
        response = _deliver(client, {"id": "evt_1", "type": "invoice.paid"})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SIGNATURE"


def test_unconfigured_secret_is_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr(""))

    response = _deliver(client, {"id": "evt_1", "type": "invoice.paid"})

    assert response.status_code == 500
    assert response.json()["code"] == "WEBHOOK_NOT_CONFIGURED"


def test_test_event_is_acknowledged_as_verified(client, webhook_secret):
    with patch(CONSTRUCT_EVENT):
        response = _deliver(client, {"id": "evt_test_webhook", "type": "ping"})

    assert response.status_code == 200
    assert response.json() == {"verified": True}


def test_replayed_event_is_acknowledged_once(client, webhook_secret):
    event = {"id": "evt_replay", "type": "customer.created", "data": {"object": {}}}

    with patch(CONSTRUCT_EVENT):
        first = _deliver(client, event)
        second = _deliver(client, event)

    assert first.json() == {"received": True}
    assert second.json() == {"received": True, "duplicate": True}


def test_processing_failure_asks_for_retry(client, webhook_secret):
    event = {"id": "evt_fail", "type": "customer.created", "data": {"object": {}}}

    with patch(CONSTRUCT_EVENT), patch(
        "app.services.stripe_webhook_service.StripeWebhookService.process_event",
        side_effect=RuntimeError("downstream unavailable"),
    ):
        response = _deliver(client, event)

    assert response.status_code == 500
    assert response.json()["code"] == "WEBHOOK_PROCESSING_FAILED"

    with patch(CONSTRUCT_EVENT):
        retried = _deliver(client, event)

    assert retried.json() == {"received": True}
