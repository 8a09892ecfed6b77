# backend/app/repositories/booking_repository.py
"""
Booking Repository for the studio booking engine

Data access for bookings. Status flips that race with other requests
(cancellation, payment confirmation) are single conditional UPDATEs so two
concurrent callers cannot both win.
"""

from datetime import datetime
import logging
from typing import Any, List

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def has_active_booking_for_slot(self, user_id: str, slot_id: str) -> bool:
        query = self._build_query().filter(
            Booking.user_id == user_id,
            Booking.session_slot_id == slot_id,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        return self.db.query(query.exists()).scalar() is True

    def create_booking(self, **kwargs: Any) -> Booking:
        """Insert a booking; a duplicate active (user, slot) pair raises IntegrityError."""
        return self.create(**kwargs)

    def mark_cancelled(self, booking_id: str, cancelled_at: datetime, reason: str) -> bool:
        """Flip a non-cancelled booking to cancelled. False if someone else got there first."""
        affected = self._conditional_update(
            Booking.id == booking_id,
            Booking.status != BookingStatus.CANCELLED.value,
            status=BookingStatus.CANCELLED.value,
            cancelled_at=cancelled_at,
            cancellation_reason=reason,
            updated_at=cancelled_at,
        )
        return affected == 1

    def transition_status(
        self,
        booking_id: str,
        from_statuses: List[str],
        to_status: str,
        **extra: Any,
    ) -> bool:
        affected = self._conditional_update(
            Booking.id == booking_id,
            Booking.status.in_(from_statuses),
            status=to_status,
            **extra,
        )
        return affected == 1

    def list_for_user(self, user_id: str, limit: int = 100) -> List[Booking]:
        query = (
            self._build_query()
            .filter(Booking.user_id == user_id)
            .order_by(Booking.booking_date.desc())
            .limit(limit)
        )
        return self._execute_query(query)
