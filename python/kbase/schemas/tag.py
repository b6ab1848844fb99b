"""Tag Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class TagOut(BaseModel):
    """A tag as attached to an article."""

    id: int
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TagWithCount(TagOut):
    """A tag with the number of non-deleted articles using it."""

    article_count: int = 0
