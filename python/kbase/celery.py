"""Celery application configuration.

Central configuration for Celery used by the worker, beat, and anything that
wants to enqueue a repair run.

Usage:
    from kbase.celery import celery_app

    # Enqueue task:
    celery_app.send_task("sweep_orphaned_shells")

    # Or import task directly:
    from kbase.tasks import sweep_orphaned_shells
    sweep_orphaned_shells.apply_async(kwargs={"request_id": request_id})
"""

from celery import Celery

from kbase.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery("kbase")

# Configure from settings
celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

# Task configuration
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

# Repair tasks run on their own queue
celery_app.conf.task_routes = {
    "sweep_orphaned_shells": {"queue": "maintenance"},
    "audit_article_content": {"queue": "maintenance"},
}

# Default queue
celery_app.conf.task_default_queue = "default"

# Periodic orphaned-shell sweep (run `celery beat` alongside the worker)
celery_app.conf.beat_schedule = {
    "sweep-orphaned-shells": {
        "task": "sweep_orphaned_shells",
        "schedule": float(settings.sweep_interval_seconds),
    },
}

# For testing: allow eager mode (synchronous execution)
celery_app.conf.task_always_eager = False
