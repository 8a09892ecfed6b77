from __future__ import annotations

from app.core.enums import WebhookEventStatus
from app.services.webhook_ledger_service import MAX_ERROR_LENGTH, WebhookLedgerService


def _claim(service: WebhookLedgerService, event_id: str = "evt_ledger_1"):
    return service.claim(
        provider="stripe",
        event_id=event_id,
        event_type="invoice.paid",
        payload={"id": "in_1"},
    )


def test_first_claim_owns_processing(db):
    row, is_new = _claim(WebhookLedgerService(db))

    assert is_new is True
    assert row.status == WebhookEventStatus.PROCESSING.value
    assert row.attempts == 1


def test_processed_event_is_a_duplicate(db):
    service = WebhookLedgerService(db)
    row, _ = _claim(service)
    service.mark_processed(row)

    again, is_new = _claim(service)

    assert is_new is False
    assert again.id == row.id
    assert again.status == WebhookEventStatus.PROCESSED.value
    assert again.processed_at is not None


def test_in_flight_event_is_a_duplicate(db):
    service = WebhookLedgerService(db)
    _claim(service)

    _row, is_new = _claim(service)

    assert is_new is False


def test_failed_event_is_reclaimed(db):
    service = WebhookLedgerService(db)
    row, _ = _claim(service)
    service.mark_failed(row, error="x" * (MAX_ERROR_LENGTH + 50))
    assert len(row.processing_error) == MAX_ERROR_LENGTH

    again, is_new = _claim(service)

    assert is_new is True
    assert again.status == WebhookEventStatus.PROCESSING.value
    assert again.processing_error is None
    assert again.attempts == 2
