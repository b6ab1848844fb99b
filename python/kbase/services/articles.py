"""Article service layer.

Orchestrates the metadata repository and the content store. Routes call this
service and never touch either store directly.

Key invariants:
- title/content are validated before any store I/O
- Create is two-phase: insert a shell row to obtain the id, write the blob
  under the id-derived key, then attach content metadata. A failure after the
  shell insert leaves an orphaned shell that the repair sweep picks up later.
- Updates re-save content under the same key (the key never changes)
- Remove/restore only touch deleted_at; the blob is preserved
"""

from kbase.db.repository import MetadataRepository
from kbase.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from kbase.logging import get_logger
from kbase.schemas.article import (
    ArticleCreate,
    ArticleMetadata,
    ArticleOut,
    ArticleUpdate,
    IntegrityReport,
)
from kbase.storage.client import compute_sha256
from kbase.storage.content import ArticleContentStore

logger = get_logger(__name__)

# Metadata fields forwarded to MetadataRepository.update_fields when present
METADATA_FIELDS = ("title", "memo", "category_id")


class ArticleService:
    """Article operations across the relational and blob stores."""

    def __init__(self, metadata: MetadataRepository, content: ArticleContentStore):
        self.metadata = metadata
        self.content = content

    def create(self, data: ArticleCreate) -> int:
        """Create an article and return its id.

        Raises:
            InvalidRequestError: If title or content is empty after trimming.
            NotFoundError: If category_id names no category.
            StorageError: If the blob write fails (shell row is left behind).
        """
        if not data.title or not data.title.strip():
            raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Title is required")
        if not data.content or not data.content.strip():
            raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Content is required")
        self._check_category(data.category_id)

        article_id = self.metadata.insert_article_shell(data.title, data.memo, data.category_id)

        try:
            stored = self.content.save(article_id, data.content)
            self.metadata.attach_content_metadata(
                article_id, stored.key, stored.size, stored.hash
            )
            if data.tags:
                self.metadata.replace_tags(article_id, data.tags)
        except Exception as exc:
            logger.error(
                "article_create_partial",
                article_id=article_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

        logger.info("article_created", article_id=article_id, content_size=stored.size)
        return article_id

    def get(self, article_id: int) -> ArticleOut | None:
        """Load an active article with its content.

        A missing blob degrades to content=None instead of failing the read.
        """
        meta = self.metadata.get_by_id(article_id)
        if meta is None:
            return None

        content = None
        if meta.has_content:
            content = self.content.get(meta.content_key)
            if content is None:
                logger.warning(
                    "article_content_missing",
                    article_id=article_id,
                    content_key=meta.content_key,
                )

        return ArticleOut(**meta.model_dump(), content=content)

    def list_active(self) -> list[ArticleMetadata]:
        return self.metadata.list_active()

    def list_trashed(self) -> list[ArticleMetadata]:
        return self.metadata.list_trashed()

    def search(self, query: str, tag: str | None = None) -> list[ArticleMetadata]:
        return self.metadata.search(query, tag=tag)

    def update(self, article_id: int, data: ArticleUpdate) -> ArticleOut | None:
        """Apply a partial update and return the reloaded article.

        Only fields present in the request are applied. Returns None if the
        article does not exist or is in the trash.

        category_id is checked before any write, so an unknown category
        leaves the article untouched.
        """
        if self.metadata.get_by_id(article_id) is None:
            return None

        provided = data.model_fields_set
        if "category_id" in provided:
            self._check_category(data.category_id)

        if data.content is not None:
            stored = self.content.save(article_id, data.content)
            self.metadata.attach_content_metadata(
                article_id, stored.key, stored.size, stored.hash
            )

        field_updates = {name: getattr(data, name) for name in METADATA_FIELDS if name in provided}
        if field_updates:
            self.metadata.update_fields(article_id, **field_updates)

        if data.tags is not None:
            self.metadata.replace_tags(article_id, data.tags)

        logger.info("article_updated", article_id=article_id, fields=sorted(provided))
        return self.get(article_id)

    def remove(self, article_id: int) -> bool:
        """Move an article to the trash. The blob stays in place."""
        removed = self.metadata.soft_delete(article_id)
        if removed:
            logger.info("article_trashed", article_id=article_id)
        return removed

    def restore(self, article_id: int) -> bool:
        restored = self.metadata.restore(article_id)
        if restored:
            logger.info("article_restored", article_id=article_id)
        return restored

    def _check_category(self, category_id: int | None) -> None:
        if category_id is not None and self.metadata.get_category(category_id) is None:
            raise NotFoundError(ApiErrorCode.E_CATEGORY_NOT_FOUND, "Category not found")

    def verify_integrity(self, article_id: int) -> IntegrityReport | None:
        """Compare the stored blob against the article's recorded hash and size.

        Returns None if the article does not exist or is in the trash.
        """
        meta = self.metadata.get_by_id(article_id)
        if meta is None:
            return None

        return check_content(meta, self.content)


def check_content(meta: ArticleMetadata, content_store: ArticleContentStore) -> IntegrityReport:
    """Build an IntegrityReport for one article row.

    Compares raw stored bytes, so undecodable content reports as a mismatch.
    """
    report = IntegrityReport(
        article_id=meta.id,
        status="no_content",
        content_key=meta.content_key,
        expected_hash=meta.content_hash,
        expected_size=meta.content_size,
    )
    if not meta.has_content:
        return report

    data = content_store.get_bytes(meta.content_key)
    if data is None:
        report.status = "missing"
        logger.warning("article_integrity_failed", article_id=meta.id, status=report.status)
        return report

    report.actual_hash = compute_sha256(data)
    report.actual_size = len(data)

    if report.actual_hash == meta.content_hash and report.actual_size == meta.content_size:
        report.status = "ok"
    else:
        report.status = "mismatch"
        logger.warning("article_integrity_failed", article_id=meta.id, status=report.status)

    return report
