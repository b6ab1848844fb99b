"""Repair routines for partially written articles.

Create is two-phase (shell row first, then blob, then content metadata), so a
crash between phases leaves an active row with no content fields. The sweep
settles every such shell older than a threshold:

- A blob exists under the article's deterministic key: the blob was written
  but the metadata attach failed. Re-attach size/hash from the blob.
- No blob: the content was never stored. Soft-delete the shell so it shows
  up in the trash for a human to inspect or restore.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from kbase.db.repository import MetadataRepository
from kbase.logging import get_logger
from kbase.schemas.article import IntegrityReport
from kbase.services.articles import check_content
from kbase.storage.client import StorageError, compute_sha256
from kbase.storage.content import ArticleContentStore

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one orphaned-shell sweep."""

    reattached: list[int] = field(default_factory=list)
    trashed: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    oldest_age_seconds: int = 0

    @property
    def total(self) -> int:
        return len(self.reattached) + len(self.trashed) + len(self.failed)


def _age_seconds(created_at: datetime, now: datetime) -> int:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return int((now - created_at).total_seconds())


def sweep_orphaned_shells(
    metadata: MetadataRepository,
    content_store: ArticleContentStore,
    threshold_minutes: int,
    now: datetime | None = None,
) -> SweepResult:
    """Re-attach or trash article shells older than threshold_minutes.

    Storage errors for one shell are logged and the sweep moves on; that shell
    is retried on the next run.
    """
    now = now or datetime.now(UTC)
    shells = metadata.find_orphaned_shells(now - timedelta(minutes=threshold_minutes))
    result = SweepResult()

    for shell in shells:
        age_seconds = _age_seconds(shell.created_at, now)
        result.oldest_age_seconds = max(result.oldest_age_seconds, age_seconds)
        key = content_store.key_for(shell.id)

        try:
            data = content_store.get_bytes(key)
        except StorageError as e:
            logger.warning(
                "sweeper_storage_error", article_id=shell.id, error=e.message, code=e.code
            )
            result.failed.append(shell.id)
            continue

        if data is not None:
            metadata.attach_content_metadata(shell.id, key, len(data), compute_sha256(data))
            result.reattached.append(shell.id)
            logger.info("sweeper_reattached", article_id=shell.id, age_seconds=age_seconds)
        else:
            metadata.soft_delete(shell.id)
            result.trashed.append(shell.id)
            logger.info("sweeper_trashed", article_id=shell.id, age_seconds=age_seconds)

    if result.total > 0:
        logger.info(
            "sweeper_complete",
            reattached_count=len(result.reattached),
            trashed_count=len(result.trashed),
            failed_count=len(result.failed),
            oldest_age_seconds=result.oldest_age_seconds,
        )

    return result


def audit_content(
    metadata: MetadataRepository, content_store: ArticleContentStore
) -> list[IntegrityReport]:
    """Check every active article with content and return the reports that are not ok."""
    problems = []
    for article in metadata.list_articles_with_content():
        report = check_content(article, content_store)
        if report.status != "ok":
            problems.append(report)

    logger.info("content_audit_complete", problem_count=len(problems))
    return problems
