"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_ARTICLE_NOT_FOUND = "E_ARTICLE_NOT_FOUND"
    E_CATEGORY_NOT_FOUND = "E_CATEGORY_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_NAME_INVALID = "E_NAME_INVALID"

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500
    E_STORAGE_ERROR = "E_STORAGE_ERROR"  # 500
    E_CATEGORY_TREE_INVALID = "E_CATEGORY_TREE_INVALID"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_ARTICLE_NOT_FOUND: 404,
    ApiErrorCode.E_CATEGORY_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
    ApiErrorCode.E_CATEGORY_TREE_INVALID: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class UnauthenticatedError(ApiError):
    """Missing or invalid credentials."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_UNAUTHENTICATED,
        message: str = "Authentication required",
    ):
        super().__init__(code, message)


class CategoryTreeError(ApiError):
    """Category rows do not form a tree (a parent chain loops back on itself)."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_CATEGORY_TREE_INVALID,
        message: str = "Category hierarchy contains a cycle",
    ):
        super().__init__(code, message)
