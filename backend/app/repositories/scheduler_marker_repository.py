"""Persisted "latest materialized week" markers for recurring jobs."""

from __future__ import annotations

from datetime import date, datetime, timezone
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.scheduler_marker import SchedulerMarker
from app.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SchedulerMarkerRepository(BaseRepository[SchedulerMarker]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, SchedulerMarker)

    def get_week(self, name: str) -> date | None:
        marker = self.db.get(SchedulerMarker, name)
        return marker.week_start_date if marker is not None else None

    def advance_week(self, name: str, week_start: date) -> bool:
        """
        Move the marker forward to ``week_start``.

        Never moves it backwards; returns False when the marker already
        covers that week.
        """
        now = datetime.now(timezone.utc)
        affected = self._conditional_update(
            SchedulerMarker.name == name,
            or_(
                SchedulerMarker.week_start_date.is_(None),
                SchedulerMarker.week_start_date < week_start,
            ),
            week_start_date=week_start,
            updated_at=now,
        )
        if affected == 1:
            return True
        if self.db.get(SchedulerMarker, name) is not None:
            return False
        try:
            with self.savepoint():
                self.create(name=name, week_start_date=week_start, updated_at=now)
        except IntegrityError:
            return False
        return True
