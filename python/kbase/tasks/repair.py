"""Celery tasks for article repair.

- sweep_orphaned_shells: beat job that settles article rows left without
  content by an interrupted two-phase create
- audit_article_content: on-demand check of every stored blob against its
  recorded hash and size

Both tasks open their own session (workers do not use FastAPI DI) and build
the content store from settings.
"""

from kbase.celery import celery_app
from kbase.config import get_settings
from kbase.db.repository import MetadataRepository
from kbase.db.session import get_session_factory
from kbase.logging import clear_task_context, configure_task_logging, get_logger
from kbase.services.repair import audit_content, sweep_orphaned_shells as run_sweep
from kbase.storage.client import get_blob_store
from kbase.storage.content import ArticleContentStore

logger = get_logger(__name__)


def _content_store() -> ArticleContentStore:
    settings = get_settings()
    return ArticleContentStore(get_blob_store(settings), key_prefix=settings.storage_key_prefix)


@celery_app.task(bind=True, max_retries=0, name="sweep_orphaned_shells")
def sweep_orphaned_shells(self, request_id: str | None = None) -> dict:
    """Re-attach or trash article shells older than ORPHAN_SHELL_THRESHOLD_MINUTES.

    Returns:
        Dict with the ids that were re-attached, trashed, or failed.
    """
    configure_task_logging(request_id, task_name="sweep_orphaned_shells", task_id=self.request.id)
    settings = get_settings()

    session_factory = get_session_factory()
    db = session_factory()

    try:
        result = run_sweep(
            MetadataRepository(db),
            _content_store(),
            threshold_minutes=settings.orphan_shell_threshold_minutes,
        )
        return {
            "reattached": result.reattached,
            "trashed": result.trashed,
            "failed": result.failed,
        }
    except Exception as e:
        logger.error("sweeper_error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()
        clear_task_context()


@celery_app.task(bind=True, max_retries=0, name="audit_article_content")
def audit_article_content(self, request_id: str | None = None) -> dict:
    """Verify every active article's blob and report the ones that do not match.

    Returns:
        Dict with the problem reports (missing or mismatched blobs).
    """
    configure_task_logging(request_id, task_name="audit_article_content", task_id=self.request.id)

    session_factory = get_session_factory()
    db = session_factory()

    try:
        problems = audit_content(MetadataRepository(db), _content_store())
        return {"problems": [report.model_dump(mode="json") for report in problems]}
    finally:
        db.close()
        clear_task_context()
