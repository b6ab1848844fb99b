"""Category Pydantic schemas.

Categories form a tree via parent_id. The admin UI works with two levels,
but nothing here limits depth.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Request Schemas
# =============================================================================


class CategoryCreate(BaseModel):
    """Request body for creating a category."""

    name: str = ""
    parent_id: int | None = None
    color: str | None = None


class CategoryUpdate(BaseModel):
    """Request body for updating a category. Omitted color resets to the default."""

    name: str = ""
    color: str | None = None


class ReorderCategoriesRequest(BaseModel):
    """Request body for reordering categories.

    display_order is assigned 1..N following category_ids.
    """

    category_ids: list[int]


class MoveCategoryRequest(BaseModel):
    """Request body for moving a category among its siblings.

    Negative offsets move up, positive offsets move down.
    """

    offset: int


# =============================================================================
# Response Schemas
# =============================================================================


class CategoryOut(BaseModel):
    """A category row."""

    id: int
    name: str
    parent_id: int | None = None
    color: str
    display_order: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryNode(CategoryOut):
    """A category with its nested children."""

    children: list["CategoryNode"] = Field(default_factory=list)
