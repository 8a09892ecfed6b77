# backend/app/services/weekly_reset_service.py
"""
Weekly quota materialization.

At each studio week boundary every entitled member gets a quota row for the
new week, seeded with their tier limit. Seeding is create-if-absent, so the
sweep is safe to repeat and safe to run alongside booking requests.

The last swept week is persisted in ``scheduler_markers``; a process restart
does not lose it.
"""

from datetime import datetime
import logging
import threading
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import WEEKLY_RESET_MARKER
from ..core.timezone_utils import utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class WeeklyResetService(BaseService):
    def __init__(self, db: Session, *, studio_timezone: Optional[str] = None):
        super().__init__(db)
        self.marker_repository = RepositoryFactory.create_scheduler_marker_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)
        self.membership_repository = RepositoryFactory.create_membership_repository(db)
        self.tier_repository = RepositoryFactory.create_membership_tier_repository(db)
        self.usage_repository = RepositoryFactory.create_weekly_usage_repository(db)
        self.studio_timezone = studio_timezone or settings.studio_timezone

    def _entitled_limits(self, now: datetime) -> Dict[str, int]:
        """user_id -> weekly limit. Subscriptions win over legacy memberships."""
        tier_limits: Dict[str, int] = {}

        def limit_for(tier_id: str) -> Optional[int]:
            if tier_id not in tier_limits:
                tier = self.tier_repository.get_tier_by_id(tier_id)
                if tier is None:
                    return None
                tier_limits[tier_id] = int(tier.sessions_per_week or 0)
            return tier_limits[tier_id]

        limits: Dict[str, int] = {}
        for membership in self.membership_repository.list_active(now):
            limit = limit_for(membership.tier_id)
            if limit is not None:
                limits[membership.user_id] = limit
        for subscription in self.subscription_repository.list_active():
            limit = limit_for(subscription.tier_id)
            if limit is None:
                self.logger.warning(
                    "Subscription %s references missing tier %s",
                    subscription.id,
                    subscription.tier_id,
                )
                continue
            limits[subscription.user_id] = limit
        return limits

    @BaseService.measure_operation("weekly_reset.run_check")
    def run_check(self, now: Optional[datetime] = None) -> Optional[int]:
        """
        Materialize quota rows for the current week if not done yet.

        Returns the number of members swept, or None when the current week
        was already materialized.
        """
        now = now or utc_now()
        week_start = TimezoneService.week_start_for(now, self.studio_timezone)

        last_week = self.marker_repository.get_week(WEEKLY_RESET_MARKER)
        if last_week is not None and last_week >= week_start:
            return None

        self.logger.info("[WeeklyReset] Processing week starting %s", week_start.isoformat())
        with self.transaction():
            limits = self._entitled_limits(now)
            for user_id, limit in limits.items():
                self.usage_repository.ensure_row(user_id, week_start, limit)
            advanced = self.marker_repository.advance_week(WEEKLY_RESET_MARKER, week_start)

        if not advanced:
            self.logger.info("[WeeklyReset] Week %s was materialized concurrently", week_start)
        prometheus_metrics.record_quota_rows_materialized(len(limits))
        self.logger.info(
            "[WeeklyReset] Initialized %d weekly usage rows for week %s",
            len(limits),
            week_start.isoformat(),
        )
        return len(limits)


class WeeklyResetScheduler:
    """
    Recurring in-process ticker for ``WeeklyResetService.run_check``.

    ``stop()`` sets the cancellation event and joins the thread, so tests can
    start and stop it deterministically. ``tick()`` can also be driven
    directly without starting the thread.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        interval_seconds: Optional[float] = None,
        initial_delay_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.weekly_reset_interval_seconds
        )
        self.initial_delay_seconds = (
            initial_delay_seconds
            if initial_delay_seconds is not None
            else settings.weekly_reset_initial_delay_seconds
        )
        self.clock = clock
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="weekly-reset-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(
            "[WeeklyReset] Scheduler started (checking every %.0f seconds)", self.interval_seconds
        )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("[WeeklyReset] Scheduler stopped")

    def tick(self) -> Optional[int]:
        """Run one check in its own session. Errors are logged, not raised."""
        db = self.session_factory()
        try:
            return WeeklyResetService(db).run_check(self.clock())
        except Exception as e:
            logger.error(f"[WeeklyReset] Error during weekly reset: {str(e)}")
            return None
        finally:
            db.close()

    def _run(self) -> None:
        if self._stop_event.wait(self.initial_delay_seconds):
            return
        while not self._stop_event.is_set():
            self.tick()
            if self._stop_event.wait(self.interval_seconds):
                break
