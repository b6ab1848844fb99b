"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, Basic Auth middleware, request-id middleware,
and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. BasicAuthMiddleware (checks credentials)
3. Route handler
4. BasicAuthMiddleware (returns response)
5. RequestIDMiddleware (logs, sets response header)

Content store lifecycle:
- The blob store backend is built once in create_app and kept on app.state
- Per-request dependencies wrap it with a fresh repository/service
"""

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kbase.api.routes import create_api_router
from kbase.auth.middleware import BasicAuthMiddleware
from kbase.config import get_settings
from kbase.errors import ApiError, ApiErrorCode
from kbase.logging import configure_logging, get_logger
from kbase.middleware.request_id import RequestIDMiddleware
from kbase.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    storage_error_handler,
    unhandled_exception_handler,
)
from kbase.storage.client import BlobStoreBase, StorageError, get_blob_store
from kbase.storage.content import ArticleContentStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup/shutdown with the active configuration."""
    settings = get_settings()
    logger.info(
        "app_started",
        env=settings.kbase_env.value,
        blob_backend=settings.blob_backend.value,
        key_prefix=app.state.content_store.key_prefix,
    )

    yield

    logger.info("app_stopped")


def create_app(
    skip_auth_middleware: bool = False,
    blob_store: BlobStoreBase | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding Basic Auth middleware (for testing).
        blob_store: Optional blob store backend (for testing). Defaults to the
            backend selected by BLOB_BACKEND.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="kbase API",
        description="Knowledge-base article store: Markdown articles, tags and categories",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.content_store = ArticleContentStore(
        blob_store or get_blob_store(settings),
        key_prefix=settings.storage_key_prefix,
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors (including malformed JSON)."""
        return JSONResponse(
            status_code=400,
            content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Invalid request body"),
        )

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Catch JSON decode errors before they reach route handlers."""
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except json.JSONDecodeError:
                        return JSONResponse(
                            status_code=400,
                            content=error_response(
                                ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                            ),
                        )
        return await call_next(request)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        app.add_middleware(
            BasicAuthMiddleware,
            username=settings.effective_basic_auth_user,
            password=settings.effective_basic_auth_password,
        )
        if settings.basic_auth_user is None:
            logger.warning("basic_auth_default_credentials", env=settings.kbase_env.value)
        logger.info("auth_middleware_enabled", env=settings.kbase_env.value)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
