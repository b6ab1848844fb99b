"""Test helpers for common test operations.

Provides:
- Basic Auth header generation
- SQL statement counting on an engine
- Article creation and timestamp backdating
- A blob store that fails on demand
"""

import base64
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import Engine, event, update
from sqlalchemy.orm import Session

from kbase.db.models import Article
from kbase.schemas.article import ArticleCreate
from kbase.services.articles import ArticleService
from kbase.storage.client import FakeBlobStore, StorageError

TEST_USER = "editor"
TEST_PASSWORD = "s3cret"


def basic_auth_headers(username: str = TEST_USER, password: str = TEST_PASSWORD) -> dict[str, str]:
    """Generate an Authorization: Basic header."""
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@contextmanager
def count_statements(engine: Engine) -> Iterator[list[str]]:
    """Record every SQL statement sent to the database inside the block."""
    statements: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", before_cursor_execute)


def select_statements(statements: list[str]) -> list[str]:
    return [s for s in statements if s.lstrip().upper().startswith("SELECT")]


def create_article(
    service: ArticleService,
    title: str = "Untitled",
    content: str = "# Body\n",
    memo: str | None = None,
    tags: list[str] | None = None,
    category_id: int | None = None,
) -> int:
    """Create an article through the service and return its id."""
    return service.create(
        ArticleCreate(
            title=title, content=content, memo=memo, tags=tags, category_id=category_id
        )
    )


def set_created_at(db: Session, article_id: int, created_at: datetime) -> None:
    """Backdate an article row."""
    db.execute(update(Article).where(Article.id == article_id).values(created_at=created_at))
    db.commit()


class FailingBlobStore(FakeBlobStore):
    """FakeBlobStore whose writes (and optionally reads) raise StorageError."""

    def __init__(self, fail_reads: bool = False):
        super().__init__()
        self.fail_writes = True
        self.fail_reads = fail_reads

    def put_object(self, key, data, *, content_type, metadata=None):
        if self.fail_writes:
            raise StorageError("upload rejected", code="E_STORAGE_UPLOAD_FAILED")
        return super().put_object(key, data, content_type=content_type, metadata=metadata)

    def get_object(self, key):
        if self.fail_reads:
            raise StorageError("backend unavailable")
        return super().get_object(key)
