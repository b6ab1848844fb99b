"""Search routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from kbase.api.deps import get_article_service
from kbase.responses import success_response
from kbase.services.articles import ArticleService

router = APIRouter()


@router.get("/search")
def search_articles(
    service: Annotated[ArticleService, Depends(get_article_service)],
    q: Annotated[str, Query(description="Substring matched against title and memo")] = "",
    tag: Annotated[str | None, Query(description="Only articles carrying this tag")] = None,
) -> dict:
    """Case-insensitive substring search over active articles.

    Content is not searched.
    """
    articles = service.search(q, tag=tag)
    return success_response(
        {"articles": [a.model_dump(mode="json") for a in articles], "query": q}
    )
