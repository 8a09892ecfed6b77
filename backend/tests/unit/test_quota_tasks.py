from unittest.mock import Mock, patch

from app.tasks.quota_tasks import materialize_weekly_quotas


def test_task_reports_materialized_rows():
    session = Mock()
    with patch("app.tasks.quota_tasks.SessionLocal", return_value=session), patch(
        "app.tasks.quota_tasks.WeeklyResetService.run_check", return_value=4
    ):
        result = materialize_weekly_quotas.run()

    assert result == {"status": "completed", "rows": 4}
    session.close.assert_called_once()


def test_task_skips_when_week_already_swept():
    session = Mock()
    with patch("app.tasks.quota_tasks.SessionLocal", return_value=session), patch(
        "app.tasks.quota_tasks.WeeklyResetService.run_check", return_value=None
    ):
        result = materialize_weekly_quotas.run()

    assert result == {"status": "skipped"}
    session.close.assert_called_once()


def test_beat_runs_the_sweep_on_the_maintenance_queue():
    from app.tasks.celery_app import celery_app

    entry = celery_app.conf.beat_schedule["materialize-weekly-quotas"]
    assert entry["task"] == "app.tasks.quota_tasks.materialize_weekly_quotas"
    routes = celery_app.conf.task_routes
    assert routes["app.tasks.quota_tasks.*"] == {"queue": "maintenance"}
