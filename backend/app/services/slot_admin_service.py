# backend/app/services/slot_admin_service.py
"""
Slot publishing for admins, plus the public upcoming-slots listing.

Capacity is fixed at creation; there is no resize operation. Deactivating a
slot stops new seat reservations but leaves existing bookings alone.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.session_slot import SessionSlot
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotAdminService(BaseService):
    def __init__(self, db: Session, audit_service: Optional[AuditService] = None):
        super().__init__(db)
        self.slot_repository = RepositoryFactory.create_session_slot_repository(db)
        self.audit_service = audit_service or AuditService(db)

    @BaseService.measure_operation("create_slot")
    def create_slot(
        self,
        *,
        service_type_id: str,
        name: str,
        starts_at: datetime,
        ends_at: datetime,
        capacity: Optional[int] = None,
        trainer_name: Optional[str] = None,
        admin_user_id: Optional[str] = None,
    ) -> SessionSlot:
        starts_at_utc = ensure_utc(starts_at)
        ends_at_utc = ensure_utc(ends_at)
        if starts_at_utc is None or ends_at_utc is None or starts_at_utc >= ends_at_utc:
            raise ValidationException("Slot must end after it starts", code="INVALID_SLOT_TIMES")
        seats = capacity if capacity is not None else settings.default_slot_capacity
        if seats < 1:
            raise ValidationException("Capacity must be at least 1", code="INVALID_CAPACITY")

        service_type = self.slot_repository.get_service_type(service_type_id)
        if service_type is None:
            raise NotFoundException("Service type not found", code="NOT_FOUND")

        with self.transaction():
            slot = self.slot_repository.create(
                service_type_id=service_type.id,
                name=name,
                starts_at_utc=starts_at_utc,
                ends_at_utc=ends_at_utc,
                capacity=seats,
                booked_count=0,
                trainer_name=trainer_name,
                is_active=True,
            )
            self.audit_service.record(
                "slot.created",
                "session_slot",
                slot.id,
                actor_id=admin_user_id,
                details={"capacity": seats, "starts_at": starts_at_utc.isoformat()},
            )
        self.logger.info("Slot %s created (%s, capacity %d)", slot.id, name, seats)
        return slot

    @BaseService.measure_operation("set_slot_active")
    def set_active(
        self, slot_id: str, is_active: bool, *, admin_user_id: Optional[str] = None
    ) -> SessionSlot:
        with self.transaction():
            if not self.slot_repository.set_active(slot_id, is_active):
                raise NotFoundException(
                    "Slot not found", code="SLOT_NOT_FOUND", details={"slot_id": slot_id}
                )
            self.audit_service.record(
                "slot.activated" if is_active else "slot.deactivated",
                "session_slot",
                slot_id,
                actor_id=admin_user_id,
            )
        slot = self.slot_repository.get_slot_by_id(slot_id)
        assert slot is not None
        return slot

    def list_upcoming(
        self, *, days: int = 14, now: Optional[datetime] = None
    ) -> List[SessionSlot]:
        now = now or utc_now()
        return self.slot_repository.list_upcoming(now, until=now + timedelta(days=days))
