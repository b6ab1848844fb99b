"""FastAPI dependencies for route handlers.

Builds the per-request repository and service from the request's database
session and the app-wide content store.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from kbase.db.repository import MetadataRepository
from kbase.db.session import get_db, get_session_factory
from kbase.services.articles import ArticleService
from kbase.storage.content import ArticleContentStore

__all__ = [
    "get_db",
    "get_session_factory",
    "get_content_store",
    "get_metadata_repository",
    "get_article_service",
]


def get_content_store(request: Request) -> ArticleContentStore:
    """Get the shared content store from app state.

    The store (and its backend client) is created once by create_app.
    """
    return request.app.state.content_store


def get_metadata_repository(db: Annotated[Session, Depends(get_db)]) -> MetadataRepository:
    return MetadataRepository(db)


def get_article_service(
    metadata: Annotated[MetadataRepository, Depends(get_metadata_repository)],
    content: Annotated[ArticleContentStore, Depends(get_content_store)],
) -> ArticleService:
    return ArticleService(metadata, content)
