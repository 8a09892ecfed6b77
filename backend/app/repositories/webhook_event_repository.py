"""Repository helpers for webhook event ledger."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.enums import WebhookEventStatus
from app.models.webhook_event import WebhookEvent
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WebhookEventRepository(BaseRepository[WebhookEvent]):
    """Repository for webhook ledger queries."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, WebhookEvent)

    def get_by_provider_event(self, provider: str, event_id: str) -> WebhookEvent | None:
        return self.find_one_by(provider=provider, event_id=event_id)

    def insert_processing(
        self,
        *,
        provider: str,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
    ) -> WebhookEvent | None:
        """
        Insert a ``processing`` row for the event.

        Returns None when (provider, event_id) is already in the ledger.
        """
        try:
            with self.savepoint():
                return self.create(
                    provider=provider,
                    event_id=event_id,
                    event_type=event_type,
                    payload=payload,
                    status=WebhookEventStatus.PROCESSING.value,
                )
        except IntegrityError:
            return None

    def reclaim_failed(self, event_row_id: str) -> bool:
        """Move a failed row back to processing. Only one concurrent caller wins."""
        affected = self._conditional_update(
            WebhookEvent.id == event_row_id,
            WebhookEvent.status == WebhookEventStatus.FAILED.value,
            status=WebhookEventStatus.PROCESSING.value,
            processing_error=None,
            attempts=WebhookEvent.attempts + 1,
        )
        return affected == 1
