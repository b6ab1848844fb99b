"""Health check endpoints."""

from fastapi import APIRouter

from kbase.responses import success_response

router = APIRouter()


@router.get("/health")
def health_check() -> dict:
    """Liveness check endpoint.

    Returns 200 if the process is running.
    Does not check the database or the blob store. Not behind auth.
    """
    return success_response({"status": "ok"})
