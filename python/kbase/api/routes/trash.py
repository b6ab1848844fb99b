"""Trash routes: list soft-deleted articles and restore them."""

from typing import Annotated

from fastapi import APIRouter, Depends

from kbase.api.deps import get_article_service
from kbase.errors import ApiErrorCode, NotFoundError
from kbase.responses import success_response
from kbase.services.articles import ArticleService

router = APIRouter()


@router.get("/trash")
def list_trash(service: Annotated[ArticleService, Depends(get_article_service)]) -> dict:
    """List trashed articles, most recently deleted first."""
    articles = service.list_trashed()
    return success_response([a.model_dump(mode="json") for a in articles])


@router.post("/trash/{article_id}")
def restore_article(
    article_id: int,
    service: Annotated[ArticleService, Depends(get_article_service)],
) -> dict:
    """Restore an article from the trash."""
    if not service.restore(article_id):
        raise NotFoundError(ApiErrorCode.E_ARTICLE_NOT_FOUND, "Article not found")
    return success_response({"success": True})
