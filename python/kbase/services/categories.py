"""Category service layer.

Validation and orchestration for category endpoints. Deletion cascades are
handled by foreign keys (descendants removed, articles uncategorized).
"""

from kbase.db.repository import MetadataRepository
from kbase.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from kbase.logging import get_logger
from kbase.schemas.category import CategoryCreate, CategoryNode, CategoryOut, CategoryUpdate
from kbase.services.category_tree import build_tree, move_category

logger = get_logger(__name__)


def _validate_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise InvalidRequestError(ApiErrorCode.E_NAME_INVALID, "Name is required")
    return name.strip()


def list_categories(repo: MetadataRepository) -> list[CategoryOut]:
    return repo.list_categories()


def get_category_tree(repo: MetadataRepository) -> list[CategoryNode]:
    """Categories nested under their parents, in display order."""
    return build_tree(repo.list_categories())


def create_category(repo: MetadataRepository, data: CategoryCreate) -> int:
    """Create a category at the end of the display order.

    Raises:
        InvalidRequestError: If the name is empty.
        NotFoundError: If parent_id does not refer to an existing category.
    """
    name = _validate_name(data.name)

    if data.parent_id is not None and repo.get_category(data.parent_id) is None:
        raise NotFoundError(ApiErrorCode.E_CATEGORY_NOT_FOUND, "Parent category not found")

    category_id = repo.create_category(name, data.parent_id, data.color)
    logger.info("category_created", category_id=category_id, parent_id=data.parent_id)
    return category_id


def update_category(repo: MetadataRepository, category_id: int, data: CategoryUpdate) -> bool:
    """Rename/recolor a category. Returns False if it does not exist."""
    name = _validate_name(data.name)
    return repo.update_category(category_id, name, data.color)


def delete_category(repo: MetadataRepository, category_id: int) -> bool:
    deleted = repo.delete_category(category_id)
    if deleted:
        logger.info("category_deleted", category_id=category_id)
    return deleted


def reorder_categories(repo: MetadataRepository, category_ids: list[int]) -> None:
    repo.reorder_categories(category_ids)
    logger.info("categories_reordered", count=len(category_ids))


def move_category_by(repo: MetadataRepository, category_id: int, offset: int) -> list[int]:
    """Move a category among its siblings and persist the resulting order.

    Returns:
        The full category id order that was written.
    """
    order = move_category(get_category_tree(repo), category_id, offset)
    repo.reorder_categories(order)
    logger.info("category_moved", category_id=category_id, offset=offset)
    return order
