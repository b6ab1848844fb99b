"""HTTP Basic Auth middleware for FastAPI.

Single shared credential pair (one admin user). Every path except the public
ones requires an Authorization: Basic header matching the configured
username/password; failures get a 401 with a WWW-Authenticate challenge so
browsers show their login prompt.
"""

import base64
import binascii
import hmac
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from kbase.errors import UnauthenticatedError
from kbase.responses import error_response

logger = logging.getLogger(__name__)

# Header names
AUTHORIZATION_HEADER = "authorization"
WWW_AUTHENTICATE_HEADER = "WWW-Authenticate"
BASIC_REALM = 'Basic realm="Secure Area"'

# Paths that don't require authentication
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def parse_basic_credentials(auth_header: str | None) -> tuple[str, str] | None:
    """Decode an Authorization: Basic header into (username, password).

    Returns:
        The credential pair, or None if the header is missing or malformed.
    """
    if not auth_header or not auth_header.lower().startswith("basic "):
        return None

    encoded = auth_header[6:].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Basic Auth gate in front of every non-public path.

    On success the username is attached to request.state.auth_user.
    """

    def __init__(self, app: ASGIApp, username: str, password: str):
        """Initialize the auth middleware.

        Args:
            app: The ASGI application.
            username: Expected username.
            password: Expected password.
        """
        super().__init__(app)
        self.username = username
        self.password = password

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        """Process the request through the credential check."""
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        credentials = parse_basic_credentials(request.headers.get(AUTHORIZATION_HEADER))
        if credentials is None:
            logger.warning(
                "auth_failure",
                extra={"reason": "missing_or_malformed_header", "request_path": request.url.path},
            )
            return self._challenge()

        username, password = credentials
        # Constant-time comparison to prevent timing attacks
        user_ok = hmac.compare_digest(username.encode(), self.username.encode())
        password_ok = hmac.compare_digest(password.encode(), self.password.encode())
        if not (user_ok and password_ok):
            logger.warning(
                "auth_failure",
                extra={"reason": "invalid_credentials", "request_path": request.url.path},
            )
            return self._challenge()

        request.state.auth_user = username
        return await call_next(request)

    def _challenge(self) -> JSONResponse:
        """Create the 401 response with a Basic challenge."""
        error = UnauthenticatedError()
        return JSONResponse(
            status_code=error.status_code,
            content=error_response(error.code, error.message),
            headers={WWW_AUTHENTICATE_HEADER: BASIC_REALM},
        )
