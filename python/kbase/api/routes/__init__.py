"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from kbase.api.routes.articles import router as articles_router
from kbase.api.routes.categories import router as categories_router
from kbase.api.routes.health import router as health_router
from kbase.api.routes.search import router as search_router
from kbase.api.routes.tags import router as tags_router
from kbase.api.routes.trash import router as trash_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(articles_router, tags=["articles"])
    api_router.include_router(trash_router, tags=["trash"])
    api_router.include_router(search_router, tags=["search"])
    api_router.include_router(tags_router, tags=["tags"])
    api_router.include_router(categories_router, tags=["categories"])
    return api_router


__all__ = ["create_api_router"]
