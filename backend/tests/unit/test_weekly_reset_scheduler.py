"""Start/stop and tick behavior of the in-process weekly reset ticker."""

from __future__ import annotations

from datetime import datetime, timezone
import threading
from unittest.mock import Mock, patch

from app.core.constants import WEEKLY_RESET_MARKER
from app.repositories.scheduler_marker_repository import SchedulerMarkerRepository
from app.services.timezone_service import TimezoneService
from app.services.weekly_reset_service import WeeklyResetScheduler

NOW = datetime(2026, 10, 21, 3, 0, tzinfo=timezone.utc)


def test_tick_runs_check_once_per_week(db, session_factory, member):
    scheduler = WeeklyResetScheduler(session_factory, clock=lambda: NOW)

    assert scheduler.tick() == 1
    assert scheduler.tick() is None
    assert not scheduler.is_running


def test_tick_logs_and_swallows_errors():
    session = Mock()
    scheduler = WeeklyResetScheduler(lambda: session, clock=lambda: NOW)

    with patch(
        "app.services.weekly_reset_service.WeeklyResetService.run_check",
        side_effect=RuntimeError("database unavailable"),
    ):
        assert scheduler.tick() is None

    session.close.assert_called_once()


def test_start_and_stop(db, session_factory, member):
    second_tick_started = threading.Event()
    calls = {"count": 0}

    def counting_factory():
        calls["count"] += 1
        if calls["count"] >= 2:
            second_tick_started.set()
        return session_factory()

    scheduler = WeeklyResetScheduler(
        counting_factory,
        interval_seconds=0.05,
        initial_delay_seconds=0,
        clock=lambda: NOW,
    )
    scheduler.start()
    try:
        assert scheduler.is_running
        assert second_tick_started.wait(timeout=10)
    finally:
        scheduler.stop()

    assert not scheduler.is_running
    marker = SchedulerMarkerRepository(db).get_week(WEEKLY_RESET_MARKER)
    assert marker == TimezoneService.week_start_for(NOW)


def test_stop_during_initial_delay_skips_first_tick():
    factory = Mock()
    scheduler = WeeklyResetScheduler(factory, interval_seconds=60, initial_delay_seconds=60)

    scheduler.start()
    scheduler.stop(timeout=5)

    assert not scheduler.is_running
    factory.assert_not_called()


def test_start_is_idempotent():
    scheduler = WeeklyResetScheduler(Mock(), interval_seconds=60, initial_delay_seconds=60)
    scheduler.start()
    try:
        first_thread = scheduler._thread
        scheduler.start()
        assert scheduler._thread is first_thread
    finally:
        scheduler.stop()
