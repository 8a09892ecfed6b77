# backend/app/repositories/weekly_usage_repository.py
"""
Weekly quota tracker.

Rows are created lazily and never overwritten: the first writer for a
(user, week) pair fixes the seed limit. Counters only move through single
conditional UPDATE statements.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.weekly_usage import WeeklyUsage
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WeeklyUsageRepository(BaseRepository[WeeklyUsage]):
    def __init__(self, db: Session):
        super().__init__(db, WeeklyUsage)

    def get(self, user_id: str, week_start: date) -> Optional[WeeklyUsage]:
        return self.find_one_by(user_id=user_id, week_start_date=week_start)

    def ensure_row(self, user_id: str, week_start: date, seed_limit: int) -> WeeklyUsage:
        """
        Return the row for (user, week), creating it with ``seed_limit`` if absent.

        A unique-key collision means a concurrent writer created the row
        first; its snapshot is kept and the existing row is returned.
        """
        existing = self.get(user_id, week_start)
        if existing is not None:
            return existing

        try:
            with self.savepoint():
                return self.create(
                    user_id=user_id,
                    week_start_date=week_start,
                    sessions_used=0,
                    sessions_limit_snapshot=max(0, int(seed_limit)),
                )
        except IntegrityError:
            self.logger.debug(
                "Weekly usage row for %s/%s created concurrently", user_id, week_start
            )

        row = self.get(user_id, week_start)
        if row is None:
            raise RepositoryException(
                f"Weekly usage row for {user_id}/{week_start} vanished after insert conflict"
            )
        return row

    def adjust_limit(self, user_id: str, week_start: date, delta: int) -> bool:
        """Add ``delta`` to the limit snapshot; the result is clamped at zero."""
        new_limit = WeeklyUsage.sessions_limit_snapshot + int(delta)
        if delta >= 0:
            value = new_limit
        else:
            value = case((new_limit < 0, 0), else_=new_limit)
        affected = self._conditional_update(
            WeeklyUsage.user_id == user_id,
            WeeklyUsage.week_start_date == week_start,
            sessions_limit_snapshot=value,
        )
        return affected == 1

    def increment_used(self, user_id: str, week_start: date, *, enforce_limit: bool) -> bool:
        """
        Count one session against the week.

        With ``enforce_limit`` the update only applies while usage is below
        the snapshot, which makes the quota check and the increment one step.
        """
        criteria = [
            WeeklyUsage.user_id == user_id,
            WeeklyUsage.week_start_date == week_start,
        ]
        if enforce_limit:
            criteria.append(WeeklyUsage.sessions_used < WeeklyUsage.sessions_limit_snapshot)
        affected = self._conditional_update(
            *criteria, sessions_used=WeeklyUsage.sessions_used + 1
        )
        return affected == 1

    def decrement_used(self, user_id: str, week_start: date) -> bool:
        """Return one session credit, never going below zero."""
        affected = self._conditional_update(
            WeeklyUsage.user_id == user_id,
            WeeklyUsage.week_start_date == week_start,
            WeeklyUsage.sessions_used > 0,
            sessions_used=WeeklyUsage.sessions_used - 1,
        )
        return affected == 1

    def list_for_user(self, user_id: str, limit: int = 12) -> List[WeeklyUsage]:
        query = (
            self._build_query()
            .filter(WeeklyUsage.user_id == user_id)
            .order_by(WeeklyUsage.week_start_date.desc())
            .limit(limit)
        )
        return self._execute_query(query)

    def list_for_week(self, week_start: date) -> List[WeeklyUsage]:
        query = self._build_query().filter(WeeklyUsage.week_start_date == week_start)
        return self._execute_query(query.order_by(WeeklyUsage.user_id.asc()))
