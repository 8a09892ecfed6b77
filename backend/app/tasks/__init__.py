# backend/app/tasks/__init__.py
"""Celery tasks for the studio booking engine."""

from app.tasks.celery_app import celery_app

__all__ = ["celery_app"]
