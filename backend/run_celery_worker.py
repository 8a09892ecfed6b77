#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker runner
Use this instead of the in-process ticker when SCHEDULER_ENABLED=false
"""
import os
from pathlib import Path
import subprocess
import sys

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "local")

if __name__ == "__main__":
    # Allow both CELERY_QUEUE and CELERY_QUEUES; prefer CELERY_QUEUES if provided
    queues = os.getenv("CELERY_QUEUES") or os.getenv("CELERY_QUEUE") or "celery,maintenance"
    print(f"🚀 Starting Celery worker, consuming queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "app.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--max-tasks-per-child=100",
        "-Q",
        queues,
    ]

    subprocess.run(cmd)
