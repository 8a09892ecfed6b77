# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration.

The weekly quota sweep is idempotent, so beat runs it on a short cadence
rather than exactly at the week boundary; the persisted marker turns every
run after the first one in a week into a no-op.
"""

from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    "materialize-weekly-quotas": {
        "task": "app.tasks.quota_tasks.materialize_weekly_quotas",
        "schedule": crontab(minute="*/15"),
        "options": {"queue": "maintenance", "expires": 14 * 60},
    },
}


def get_beat_schedule(environment: str) -> Dict[str, Dict[str, Any]]:
    """Return the beat schedule for ``environment``."""
    schedule = dict(CELERYBEAT_SCHEDULE)
    if environment == "local":
        # Catch the Monday 00:00 boundary promptly on dev machines
        schedule["materialize-weekly-quotas"] = {
            **schedule["materialize-weekly-quotas"],
            "schedule": crontab(minute="*/5"),
        }
    return schedule
