"""Service for claiming and settling webhook ledger entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.core.enums import WebhookEventStatus
from app.models.webhook_event import WebhookEvent
from app.repositories.factory import RepositoryFactory
from app.services.base import BaseService

# Stored error text is truncated to keep ledger rows bounded
MAX_ERROR_LENGTH = 2000


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class WebhookLedgerService(BaseService):
    """Business logic for webhook ledger entries."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repository = RepositoryFactory.create_webhook_event_repository(db)

    @BaseService.measure_operation("webhook_ledger.claim")
    def claim(
        self,
        *,
        provider: str,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> tuple[WebhookEvent | None, bool]:
        """
        Claim an event for processing.

        Returns ``(event, True)`` when this caller owns processing, either as a
        first delivery or by re-claiming a previously failed attempt.
        Returns ``(existing, False)`` for duplicates.
        """
        with self.transaction():
            created = self.repository.insert_processing(
                provider=provider,
                event_id=event_id,
                event_type=event_type or "unknown",
                payload=payload,
            )
        if created is not None:
            return created, True

        existing = self.repository.get_by_provider_event(provider, event_id)
        if existing is None:
            # Conflict without a visible row; treat as a duplicate in flight
            self.logger.warning("Ledger conflict for %s:%s with no readable row", provider, event_id)
            return None, False

        if existing.status != WebhookEventStatus.FAILED.value:
            self.logger.info(
                "Duplicate webhook %s:%s ignored (status=%s)", provider, event_id, existing.status
            )
            return existing, False

        with self.transaction():
            reclaimed = self.repository.reclaim_failed(existing.id)
        if not reclaimed:
            self.logger.info("Lost re-claim race for failed webhook %s:%s", provider, event_id)
            return existing, False

        self.logger.info("Re-attempting previously failed webhook %s:%s", provider, event_id)
        return self.repository.get_by_id(existing.id), True

    @BaseService.measure_operation("webhook_ledger.mark_processed")
    def mark_processed(self, event: WebhookEvent) -> WebhookEvent:
        """Mark webhook as successfully processed."""
        with self.transaction():
            event.status = WebhookEventStatus.PROCESSED.value
            event.processed_at = _now_utc()
            event.processing_error = None
            self.db.add(event)
        return event

    @BaseService.measure_operation("webhook_ledger.mark_failed")
    def mark_failed(self, event: WebhookEvent, *, error: str) -> WebhookEvent:
        """Mark webhook as failed; a later redelivery may re-claim it."""
        with self.transaction():
            event.status = WebhookEventStatus.FAILED.value
            event.processing_error = (error or "unknown error")[:MAX_ERROR_LENGTH]
            event.processed_at = _now_utc()
            self.db.add(event)
        return event
