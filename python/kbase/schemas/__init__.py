"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from kbase.schemas.article import (
    ArticleCreate,
    ArticleMetadata,
    ArticleOut,
    ArticleUpdate,
    IntegrityReport,
)
from kbase.schemas.category import (
    CategoryCreate,
    CategoryNode,
    CategoryOut,
    CategoryUpdate,
    MoveCategoryRequest,
    ReorderCategoriesRequest,
)
from kbase.schemas.tag import TagOut, TagWithCount

__all__ = [
    # Article schemas
    "ArticleCreate",
    "ArticleUpdate",
    "ArticleMetadata",
    "ArticleOut",
    "IntegrityReport",
    # Tag schemas
    "TagOut",
    "TagWithCount",
    # Category schemas
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryOut",
    "CategoryNode",
    "ReorderCategoriesRequest",
    "MoveCategoryRequest",
]
