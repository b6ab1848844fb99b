"""Article routes.

Routes are transport-only:
- Call exactly one ArticleService method
- Return success_response(...) or raise ApiError

No domain logic or raw DB access in routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from kbase.api.deps import get_article_service
from kbase.errors import ApiErrorCode, NotFoundError
from kbase.responses import success_response
from kbase.schemas.article import ArticleCreate, ArticleUpdate
from kbase.services.articles import ArticleService

router = APIRouter()

ArticleServiceDep = Annotated[ArticleService, Depends(get_article_service)]


def _article_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_ARTICLE_NOT_FOUND, "Article not found")


@router.get("/articles")
def list_articles(service: ArticleServiceDep) -> dict:
    """List active articles, newest first. Metadata and tags only, no content."""
    articles = service.list_active()
    return success_response([a.model_dump(mode="json") for a in articles])


@router.post("/articles", status_code=201)
def create_article(body: ArticleCreate, service: ArticleServiceDep) -> dict:
    """Create an article.

    Requires non-empty title and content. Returns the new article id.
    """
    article_id = service.create(body)
    return success_response({"id": article_id})


@router.get("/articles/{article_id}")
def get_article(article_id: int, service: ArticleServiceDep) -> dict:
    """Get an active article with its content.

    content is null when the stored blob cannot be found.
    """
    article = service.get(article_id)
    if article is None:
        raise _article_not_found()
    return success_response(article.model_dump(mode="json"))


@router.put("/articles/{article_id}")
def update_article(article_id: int, body: ArticleUpdate, service: ArticleServiceDep) -> dict:
    """Partially update an article. Only fields present in the body are applied."""
    article = service.update(article_id, body)
    if article is None:
        raise _article_not_found()
    return success_response(article.model_dump(mode="json"))


@router.delete("/articles/{article_id}")
def delete_article(article_id: int, service: ArticleServiceDep) -> dict:
    """Move an article to the trash."""
    if not service.remove(article_id):
        raise _article_not_found()
    return success_response({"success": True})


@router.get("/articles/{article_id}/integrity")
def verify_article_content(article_id: int, service: ArticleServiceDep) -> dict:
    """Compare the stored blob with the article's recorded hash and size."""
    report = service.verify_integrity(article_id)
    if report is None:
        raise _article_not_found()
    return success_response(report.model_dump(mode="json"))
