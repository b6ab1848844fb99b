"""Celery worker entrypoint.

Run the worker with:
    celery -A apps.worker.main:celery_app worker -Q maintenance,default --loglevel=info
Run the scheduler (orphaned-shell sweep) with:
    celery -A apps.worker.main:celery_app beat --loglevel=info

This module imports the Celery app and explicitly registers all tasks.
Task definitions are in the kbase.tasks package - no autodiscovery.

Logging Convention:
- All task log entries include request_id, task_name, task_id when available
- Tasks accept `request_id: str | None = None` parameter for correlation
"""

from celery.signals import worker_process_init

from kbase.celery import celery_app
from kbase.config import get_settings
from kbase.logging import configure_logging, get_logger

# =============================================================================
# Task Registration (explicit imports - no autodiscovery)
# =============================================================================

from kbase.tasks import audit_article_content, sweep_orphaned_shells  # noqa: F401

# =============================================================================
# Worker Lifecycle
# =============================================================================


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when a worker process starts.

    Worker logs use the same structured format as the API, with task_name and
    task_id added by configure_task_logging().
    """
    configure_logging(json_format=get_settings().log_json)
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queue="maintenance")


# Export celery_app for Celery to find
__all__ = ["celery_app"]
