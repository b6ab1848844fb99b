"""Article-related Pydantic schemas.

Contains request and response models for article, trash and search endpoints.

ArticleMetadata is the metadata-only shape used by list views (no content).
ArticleOut adds the Markdown content fetched from the blob store.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from kbase.schemas.tag import TagOut

__all__ = [
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleMetadata",
    "ArticleOut",
    "IntegrityReport",
    "IntegrityStatus",
]

IntegrityStatus = Literal["ok", "missing", "mismatch", "no_content"]


# =============================================================================
# Request Schemas
# =============================================================================


class ArticleCreate(BaseModel):
    """Request body for creating an article.

    Non-empty title/content is checked by the service so that direct callers
    get the same validation as HTTP callers.
    """

    title: str = ""
    content: str = ""
    memo: str | None = None
    tags: list[str] | None = None
    category_id: int | None = None


class ArticleUpdate(BaseModel):
    """Request body for a partial article update.

    Only fields present in the request are applied (see model_fields_set).
    category_id may be sent as null to uncategorize an article.
    """

    title: str | None = None
    content: str | None = None
    memo: str | None = None
    tags: list[str] | None = None
    category_id: int | None = None


# =============================================================================
# Response Schemas
# =============================================================================


class ArticleMetadata(BaseModel):
    """Article row without content, with tags attached."""

    id: int
    title: str
    content_key: str | None = None
    content_size: int | None = None
    content_hash: str | None = None
    memo: str | None = None
    category_id: int | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    tags: list[TagOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_content(self) -> bool:
        return self.content_key is not None


class ArticleOut(ArticleMetadata):
    """Full article. content is None when no blob could be loaded."""

    content: str | None = None


class IntegrityReport(BaseModel):
    """Result of comparing an article's blob with its stored digest."""

    article_id: int
    status: IntegrityStatus
    content_key: str | None = None
    expected_hash: str | None = None
    actual_hash: str | None = None
    expected_size: int | None = None
    actual_size: int | None = None
