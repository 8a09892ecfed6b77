from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.core.constants import WEEKLY_RESET_MARKER
from app.core.enums import SubscriptionStatus
from app.models.weekly_usage import WeeklyUsage
from app.repositories.scheduler_marker_repository import SchedulerMarkerRepository
from app.repositories.weekly_usage_repository import WeeklyUsageRepository
from app.services.timezone_service import TimezoneService
from app.services.weekly_reset_service import WeeklyResetService
from tests.factories import booking_builders

NOW = datetime(2026, 10, 21, 3, 0, tzinfo=timezone.utc)


def _limit(db, user_id, now=NOW):
    row = WeeklyUsageRepository(db).get(user_id, TimezoneService.week_start_for(now))
    return None if row is None else row.sessions_limit_snapshot


def test_materializes_rows_for_entitled_members(db):
    subscriber, _tier, _sub = booking_builders.create_entitled_member(db, sessions_per_week=4)
    legacy = booking_builders.create_user(db)
    booking_builders.create_membership(
        db, legacy, booking_builders.create_tier(db, sessions_per_week=2)
    )
    booking_builders.create_user(db)
    db.commit()

    swept = WeeklyResetService(db).run_check(NOW)

    assert swept == 2
    assert _limit(db, subscriber.id) == 4
    assert _limit(db, legacy.id) == 2
    assert db.query(WeeklyUsage).count() == 2
    marker = SchedulerMarkerRepository(db).get_week(WEEKLY_RESET_MARKER)
    assert marker == TimezoneService.week_start_for(NOW)


def test_runs_once_per_week(db, member):
    assert WeeklyResetService(db).run_check(NOW) == 1

    later_same_week = NOW + timedelta(days=2)
    assert WeeklyResetService(db).run_check(later_same_week) is None
    assert db.query(WeeklyUsage).count() == 1


def test_existing_rows_are_not_overwritten(db, member):
    week_start = TimezoneService.week_start_for(NOW)
    WeeklyUsageRepository(db).ensure_row(member["user"].id, week_start, 7)
    db.commit()

    WeeklyResetService(db).run_check(NOW)

    assert _limit(db, member["user"].id) == 7


def test_next_week_gets_fresh_rows(db, member):
    service = WeeklyResetService(db)
    service.run_check(NOW)

    next_week = NOW + timedelta(days=7)
    assert service.run_check(next_week) == 1

    rows = WeeklyUsageRepository(db).list_for_user(member["user"].id)
    assert [row.week_start_date for row in rows] == [
        TimezoneService.week_start_for(next_week),
        TimezoneService.week_start_for(NOW),
    ]
    assert all(row.sessions_used == 0 for row in rows)


def test_subscription_limit_wins_over_membership(db):
    user = booking_builders.create_user(db)
    booking_builders.create_membership(
        db, user, booking_builders.create_tier(db, sessions_per_week=2)
    )
    booking_builders.create_subscription(
        db, user, booking_builders.create_tier(db, sessions_per_week=6)
    )
    db.commit()

    WeeklyResetService(db).run_check(NOW)

    assert _limit(db, user.id) == 6


def test_inactive_subscriptions_are_skipped(db):
    user = booking_builders.create_user(db)
    booking_builders.create_subscription(
        db,
        user,
        booking_builders.create_tier(db),
        status=SubscriptionStatus.SUSPENDED.value,
    )
    db.commit()

    assert WeeklyResetService(db).run_check(NOW) == 0
    assert _limit(db, user.id) is None


def test_marker_survives_new_service_instances(db, session_factory, member):
    WeeklyResetService(db).run_check(NOW)
    db.commit()

    other_session = session_factory()
    try:
        assert WeeklyResetService(other_session).run_check(NOW) is None
    finally:
        other_session.close()
