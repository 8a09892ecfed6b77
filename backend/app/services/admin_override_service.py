# backend/app/services/admin_override_service.py
"""
Admin Override Service

Applies privileged, audited changes to a member: bonus or penalty sessions
for the current week, and subscription suspension/reactivation.

The AdminOverride row is committed before the effect runs, so the audit
trail exists even when the effect fails. Validation of the change itself
(delta sign, known change type) happens before that write, so a rejected
request leaves no row behind.

Suspend and reactivate are plain keyed status writes; two admins racing on
the same member resolve last-write-wins.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import RECENT_BOOKINGS_LIMIT
from ..core.enums import OverrideChangeType, SubscriptionStatus
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService
from .base import BaseService
from .entitlement_service import EntitlementService
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class AdminOverrideService(BaseService):
    def __init__(
        self,
        db: Session,
        entitlement_service: Optional[EntitlementService] = None,
        audit_service: Optional[AuditService] = None,
        *,
        studio_timezone: Optional[str] = None,
    ):
        super().__init__(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.override_repository = RepositoryFactory.create_admin_override_repository(db)
        self.usage_repository = RepositoryFactory.create_weekly_usage_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.membership_repository = RepositoryFactory.create_membership_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.entitlement_service = entitlement_service or EntitlementService(db)
        self.audit_service = audit_service or AuditService(db)
        self.studio_timezone = studio_timezone or settings.studio_timezone

    @staticmethod
    def _validate(change_type: str, session_delta: Optional[int]) -> OverrideChangeType:
        try:
            parsed = OverrideChangeType(change_type)
        except ValueError:
            raise ValidationException(
                f"Unknown change type: {change_type}",
                code="INVALID_CHANGE_TYPE",
                details={"change_type": change_type},
            )
        if parsed.requires_delta and (session_delta is None or session_delta <= 0):
            raise ValidationException(
                f"Session delta must be positive for {parsed.value}",
                code="INVALID_SESSION_DELTA",
                details={"change_type": parsed.value, "session_delta": session_delta},
            )
        return parsed

    @BaseService.measure_operation("apply_override")
    def apply_override(
        self,
        user_id: str,
        admin_user_id: str,
        change_type: str,
        reason: str,
        session_delta: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Dict[str, str]:
        """
        Record and apply one admin override.

        Returns:
            ``{"message": ...}`` describing what happened.

        Raises:
            NotFoundException: target user does not exist
            ValidationException: unknown change type or non-positive delta
        """
        now = now or utc_now()
        if self.user_repository.get_by_id(user_id) is None:
            raise NotFoundException("User not found", code="NOT_FOUND", details={"user_id": user_id})
        parsed = self._validate(change_type, session_delta)

        with self.transaction():
            self.override_repository.record(
                user_id=user_id,
                admin_user_id=admin_user_id,
                change_type=parsed.value,
                session_delta=session_delta if parsed.requires_delta else None,
                reason=reason,
            )

        with self.transaction():
            if parsed is OverrideChangeType.ADD_SESSIONS:
                message = self._adjust_sessions(user_id, int(session_delta or 0), now)
            elif parsed is OverrideChangeType.REMOVE_SESSIONS:
                message = self._adjust_sessions(user_id, -int(session_delta or 0), now)
            elif parsed is OverrideChangeType.SUSPEND:
                message = self._suspend(user_id, now)
            else:
                message = self._reactivate(user_id, now)
            self.audit_service.record(
                f"admin.{parsed.value}",
                "user",
                user_id,
                actor_id=admin_user_id,
                details={"session_delta": session_delta, "reason": reason, "result": message},
            )

        prometheus_metrics.record_admin_override(parsed.value)
        self.logger.info(
            "[Admin] %s for user %s by %s: %s", parsed.value, user_id, admin_user_id, message
        )
        return {"message": message}

    def _adjust_sessions(self, user_id: str, delta: int, now: datetime) -> str:
        week_start = TimezoneService.week_start_for(now, self.studio_timezone)
        entitlement = self.entitlement_service.resolve(user_id, now)
        seed_limit = entitlement.weekly_limit if entitlement else 0
        self.usage_repository.ensure_row(user_id, week_start, seed_limit)
        self.usage_repository.adjust_limit(user_id, week_start, delta)
        if delta > 0:
            return f"Added {delta} bonus sessions for this week"
        return f"Removed {abs(delta)} sessions from this week's limit"

    def _suspend(self, user_id: str, now: datetime) -> str:
        subscription = self.subscription_repository.get_active_for_user(user_id)
        if subscription is not None:
            self.subscription_repository.set_status(
                subscription.id,
                SubscriptionStatus.SUSPENDED.value,
                suspended_at=now,
                updated_at=now,
            )
        self.membership_repository.cancel_active_for_user(user_id)
        return "User subscription suspended"

    def _reactivate(self, user_id: str, now: datetime) -> str:
        subscription = self.subscription_repository.get_latest_suspended_for_user(user_id)
        if subscription is None:
            return "No suspended subscription found to reactivate"
        self.subscription_repository.set_status(
            subscription.id,
            SubscriptionStatus.ACTIVE.value,
            suspended_at=None,
            updated_at=now,
        )
        return "User subscription reactivated"

    def list_overrides_for_user(self, user_id: str) -> list:
        return self.override_repository.list_for_user(user_id)

    @BaseService.measure_operation("get_member_detail")
    def get_member_detail(self, user_id: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Admin drill-down for one member."""
        now = now or utc_now()
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundException("User not found", code="NOT_FOUND", details={"user_id": user_id})

        entitlement = self.entitlement_service.resolve(user_id, now)
        week_start = TimezoneService.current_week_start(self.studio_timezone, now)
        current = self.usage_repository.get(user_id, week_start)

        return {
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.name,
                "role": user.role,
                "user_status": user.user_status,
            },
            "entitlement": None
            if entitlement is None
            else {
                "source": entitlement.source,
                "status": entitlement.status,
                "tier_name": entitlement.tier_name,
                "weekly_limit": entitlement.weekly_limit,
            },
            "current_week": {
                "week_start": week_start.isoformat(),
                "sessions_used": current.sessions_used if current else 0,
                "sessions_limit": current.sessions_limit_snapshot
                if current
                else (entitlement.weekly_limit if entitlement else 0),
            },
            "usage_history": [
                {
                    "week_start": row.week_start_date.isoformat(),
                    "sessions_used": row.sessions_used,
                    "sessions_limit": row.sessions_limit_snapshot,
                }
                for row in self.usage_repository.list_for_user(user_id)
            ],
            "recent_bookings": [
                booking.to_dict()
                for booking in self.booking_repository.list_for_user(
                    user_id, RECENT_BOOKINGS_LIMIT
                )
            ],
            "overrides": [o.to_dict() for o in self.override_repository.list_for_user(user_id)],
        }
