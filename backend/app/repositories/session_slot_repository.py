# backend/app/repositories/session_slot_repository.py
"""
Session slot repository: the seat admission-control primitives.

``reserve_seat`` and ``release_seat`` are each one conditional UPDATE. They
never read the counter into Python, so concurrent callers cannot overbook a
slot or drive the counter below zero regardless of isolation level.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.session_slot import ServiceType, SessionSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SessionSlotRepository(BaseRepository[SessionSlot]):
    def __init__(self, db: Session):
        super().__init__(db, SessionSlot)

    def get_slot_by_id(self, slot_id: str) -> Optional[SessionSlot]:
        return self.get_by_id(slot_id)

    def reserve_seat(self, slot_id: str) -> bool:
        """Take one seat if the slot is active and not full. True if a seat was taken."""
        affected = self._conditional_update(
            SessionSlot.id == slot_id,
            SessionSlot.booked_count < SessionSlot.capacity,
            SessionSlot.is_active.is_(True),
            booked_count=SessionSlot.booked_count + 1,
        )
        return affected == 1

    def release_seat(self, slot_id: str) -> bool:
        """Give one seat back, never going below zero. True if the counter moved."""
        affected = self._conditional_update(
            SessionSlot.id == slot_id,
            SessionSlot.booked_count > 0,
            booked_count=SessionSlot.booked_count - 1,
        )
        if affected == 0:
            self.logger.warning("Seat release on slot %s found nothing to release", slot_id)
        return affected == 1

    def set_active(self, slot_id: str, is_active: bool) -> bool:
        affected = self._conditional_update(SessionSlot.id == slot_id, is_active=is_active)
        return affected == 1

    def list_upcoming(
        self,
        now: datetime,
        *,
        until: Optional[datetime] = None,
        include_inactive: bool = False,
        limit: int = 100,
    ) -> List[SessionSlot]:
        query = self._build_query().filter(SessionSlot.starts_at_utc > now)
        if until is not None:
            query = query.filter(SessionSlot.starts_at_utc < until)
        if not include_inactive:
            query = query.filter(SessionSlot.is_active.is_(True))
        return self._execute_query(query.order_by(SessionSlot.starts_at_utc.asc()).limit(limit))

    def get_service_type(self, service_type_id: str) -> Optional[ServiceType]:
        try:
            return self.db.query(ServiceType).filter(ServiceType.id == service_type_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading service type {service_type_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve service type: {str(e)}")
