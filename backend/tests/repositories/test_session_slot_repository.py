from datetime import datetime, timedelta, timezone

from app.models.session_slot import SessionSlot
from app.repositories.session_slot_repository import SessionSlotRepository
from tests.factories import booking_builders


def _booked(db, slot_id):
    db.expire_all()
    return db.get(SessionSlot, slot_id).booked_count


def test_reserve_stops_at_capacity(db):
    slot = booking_builders.create_slot(db, booking_builders.create_service_type(db), capacity=2)
    repo = SessionSlotRepository(db)

    assert repo.reserve_seat(slot.id) is True
    assert repo.reserve_seat(slot.id) is True
    assert repo.reserve_seat(slot.id) is False
    assert _booked(db, slot.id) == 2


def test_reserve_refuses_inactive_or_missing_slot(db):
    slot = booking_builders.create_slot(
        db, booking_builders.create_service_type(db), is_active=False
    )
    repo = SessionSlotRepository(db)

    assert repo.reserve_seat(slot.id) is False
    assert repo.reserve_seat("missing") is False
    assert _booked(db, slot.id) == 0


def test_release_never_goes_below_zero(db):
    slot = booking_builders.create_slot(db, booking_builders.create_service_type(db))
    repo = SessionSlotRepository(db)
    repo.reserve_seat(slot.id)

    assert repo.release_seat(slot.id) is True
    assert repo.release_seat(slot.id) is False
    assert _booked(db, slot.id) == 0


def test_list_upcoming_excludes_past_and_inactive(db):
    service_type = booking_builders.create_service_type(db)
    now = datetime.now(timezone.utc)
    soon = booking_builders.create_slot(db, service_type, starts_at=now + timedelta(hours=2))
    later = booking_builders.create_slot(db, service_type, starts_at=now + timedelta(days=3))
    booking_builders.create_slot(db, service_type, starts_at=now - timedelta(hours=2))
    booking_builders.create_slot(
        db, service_type, starts_at=now + timedelta(hours=5), is_active=False
    )
    booking_builders.create_slot(db, service_type, starts_at=now + timedelta(days=30))

    upcoming = SessionSlotRepository(db).list_upcoming(now, until=now + timedelta(days=14))

    assert [slot.id for slot in upcoming] == [soon.id, later.id]
