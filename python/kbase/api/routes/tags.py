"""Tag routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from kbase.api.deps import get_metadata_repository
from kbase.db.repository import MetadataRepository
from kbase.responses import success_response

router = APIRouter()


@router.get("/tags")
def list_tags(repo: Annotated[MetadataRepository, Depends(get_metadata_repository)]) -> dict:
    """All tags with their active-article counts, most used first."""
    tags = repo.list_tags_with_counts()
    return success_response([t.model_dump(mode="json") for t in tags])
