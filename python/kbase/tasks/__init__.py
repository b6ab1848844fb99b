"""Celery tasks for kbase.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.

Usage in worker:
    from kbase.tasks import sweep_orphaned_shells

Usage elsewhere (enqueue):
    from kbase.tasks import audit_article_content
    audit_article_content.apply_async(kwargs={"request_id": request_id})
"""

from kbase.tasks.repair import audit_article_content, sweep_orphaned_shells

__all__ = ["sweep_orphaned_shells", "audit_article_content"]
