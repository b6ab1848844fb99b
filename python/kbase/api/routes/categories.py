"""Category routes.

Routes are transport-only; validation and cascade behavior live in
kbase.services.categories and the schema.

Static routes (/categories/tree, /categories/reorder) are registered before
the /categories/{category_id} routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from kbase.api.deps import get_metadata_repository
from kbase.db.repository import MetadataRepository
from kbase.errors import ApiErrorCode, NotFoundError
from kbase.responses import success_response
from kbase.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    MoveCategoryRequest,
    ReorderCategoriesRequest,
)
from kbase.services import categories as categories_service

router = APIRouter()

RepositoryDep = Annotated[MetadataRepository, Depends(get_metadata_repository)]


def _category_not_found() -> NotFoundError:
    return NotFoundError(ApiErrorCode.E_CATEGORY_NOT_FOUND, "Category not found")


@router.get("/categories")
def list_categories(repo: RepositoryDep) -> dict:
    """List categories ordered by display_order, then name."""
    result = categories_service.list_categories(repo)
    return success_response([c.model_dump(mode="json") for c in result])


@router.get("/categories/tree")
def get_category_tree(repo: RepositoryDep) -> dict:
    """Categories nested under their parents."""
    tree = categories_service.get_category_tree(repo)
    return success_response([node.model_dump(mode="json") for node in tree])


@router.post("/categories/reorder")
def reorder_categories(body: ReorderCategoriesRequest, repo: RepositoryDep) -> dict:
    """Set display_order 1..N following category_ids."""
    categories_service.reorder_categories(repo, body.category_ids)
    return success_response({"success": True})


@router.post("/categories", status_code=201)
def create_category(body: CategoryCreate, repo: RepositoryDep) -> dict:
    """Create a category at the end of the display order."""
    category_id = categories_service.create_category(repo, body)
    return success_response({"id": category_id})


@router.put("/categories/{category_id}")
def update_category(category_id: int, body: CategoryUpdate, repo: RepositoryDep) -> dict:
    """Rename/recolor a category. An omitted color resets to the default."""
    if not categories_service.update_category(repo, category_id, body):
        raise _category_not_found()
    return success_response({"success": True})


@router.delete("/categories/{category_id}")
def delete_category(category_id: int, repo: RepositoryDep) -> dict:
    """Delete a category, its descendants, and uncategorize their articles."""
    if not categories_service.delete_category(repo, category_id):
        raise _category_not_found()
    return success_response({"success": True})


@router.post("/categories/{category_id}/move")
def move_category(category_id: int, body: MoveCategoryRequest, repo: RepositoryDep) -> dict:
    """Move a category up or down among its siblings."""
    order = categories_service.move_category_by(repo, category_id, body.offset)
    return success_response({"category_ids": order})
