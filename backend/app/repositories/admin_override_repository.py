"""Append-only access to admin override records."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.admin_override import AdminOverride
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AdminOverrideRepository(BaseRepository[AdminOverride]):
    """No update or delete helpers: override rows are immutable."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, AdminOverride)

    def record(
        self,
        *,
        user_id: str,
        admin_user_id: str,
        change_type: str,
        reason: str,
        session_delta: Optional[int] = None,
    ) -> AdminOverride:
        return self.create(
            user_id=user_id,
            admin_user_id=admin_user_id,
            change_type=change_type,
            session_delta=session_delta,
            reason=reason,
        )

    def list_for_user(self, user_id: str, limit: int = 50) -> list[AdminOverride]:
        query = (
            self._build_query()
            .filter(AdminOverride.user_id == user_id)
            .order_by(AdminOverride.created_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)
