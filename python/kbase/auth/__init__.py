"""Authentication module.

This module provides the HTTP Basic Auth middleware that guards the API.
"""

from kbase.auth.middleware import BasicAuthMiddleware, parse_basic_credentials

__all__ = [
    "BasicAuthMiddleware",
    "parse_basic_credentials",
]
