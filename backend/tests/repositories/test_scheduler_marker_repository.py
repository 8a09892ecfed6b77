from datetime import date

from app.repositories.scheduler_marker_repository import SchedulerMarkerRepository


def test_marker_starts_empty_and_advances(db):
    repo = SchedulerMarkerRepository(db)

    assert repo.get_week("weekly_reset") is None
    assert repo.advance_week("weekly_reset", date(2026, 10, 12)) is True
    assert repo.get_week("weekly_reset") == date(2026, 10, 12)
    assert repo.advance_week("weekly_reset", date(2026, 10, 19)) is True
    assert repo.get_week("weekly_reset") == date(2026, 10, 19)


def test_marker_never_moves_backwards(db):
    repo = SchedulerMarkerRepository(db)
    repo.advance_week("weekly_reset", date(2026, 10, 19))

    assert repo.advance_week("weekly_reset", date(2026, 10, 19)) is False
    assert repo.advance_week("weekly_reset", date(2026, 10, 5)) is False
    assert repo.get_week("weekly_reset") == date(2026, 10, 19)
