# backend/app/tasks/quota_tasks.py
"""Celery entry point for the weekly quota sweep."""

import logging
from typing import Any, Dict

from app.database import SessionLocal
from app.services.weekly_reset_service import WeeklyResetService
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.quota_tasks.materialize_weekly_quotas")  # type: ignore[misc]
def materialize_weekly_quotas() -> Dict[str, Any]:
    """Seed this week's quota rows for every entitled member, once per week."""
    db = SessionLocal()
    try:
        swept = WeeklyResetService(db).run_check()
    finally:
        db.close()

    if swept is None:
        return {"status": "skipped"}
    logger.info("Weekly quota sweep materialized %d rows", swept)
    return {"status": "completed", "rows": swept}
