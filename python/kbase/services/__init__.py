"""Business logic services.

This module contains the service layer that implements business logic.
Services are called by route handlers and tasks and orchestrate the metadata
repository and the content store.
"""

from kbase.services.articles import ArticleService, check_content
from kbase.services.category_tree import build_tree, flatten_order, move_category
from kbase.services.repair import SweepResult, audit_content, sweep_orphaned_shells

__all__ = [
    "ArticleService",
    "check_content",
    "build_tree",
    "flatten_order",
    "move_category",
    "SweepResult",
    "sweep_orphaned_shells",
    "audit_content",
]
