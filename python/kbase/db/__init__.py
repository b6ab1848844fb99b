"""Database module for kbase.

Provides engine creation, session management, transaction helpers, ORM models
and the metadata repository.
"""

from kbase.db.engine import create_db_engine, get_engine
from kbase.db.models import (
    DEFAULT_CATEGORY_COLOR,
    Article,
    ArticleTag,
    Base,
    Category,
    Tag,
    utcnow,
)
from kbase.db.repository import UNSET, MetadataRepository
from kbase.db.session import create_session_factory, get_db, get_session_factory, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "create_session_factory",
    "get_session_factory",
    "get_db",
    "transaction",
    # Models
    "Base",
    "Article",
    "Category",
    "Tag",
    "ArticleTag",
    "DEFAULT_CATEGORY_COLOR",
    "utcnow",
    # Repository
    "MetadataRepository",
    "UNSET",
]
