"""API error definitions.

All pipeline errors are defined here with their corresponding HTTP status codes.

The pipeline contract consumed by the UI reports every hard failure as HTTP 500
with ``success: false``; the error code tells the categories apart.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Configuration errors
    E_CONFIG_MISSING = "E_CONFIG_MISSING"

    # Validation errors
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_PROJECT_NOT_FOUND = "E_PROJECT_NOT_FOUND"
    E_CONVERSATION_NOT_FOUND = "E_CONVERSATION_NOT_FOUND"
    E_FILE_NOT_FOUND = "E_FILE_NOT_FOUND"

    # Storage errors
    E_STORAGE_MISSING = "E_STORAGE_MISSING"
    E_STORAGE_ERROR = "E_STORAGE_ERROR"

    # Persistence errors
    E_PERSISTENCE_FAILED = "E_PERSISTENCE_FAILED"
    E_ANSWER_NOT_RECORDED = "E_ANSWER_NOT_RECORDED"

    # Generic
    E_NOT_FOUND = "E_NOT_FOUND"
    E_INTERNAL = "E_INTERNAL"


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_CONFIG_MISSING: 500,
    ApiErrorCode.E_INVALID_REQUEST: 500,
    ApiErrorCode.E_PROJECT_NOT_FOUND: 500,
    ApiErrorCode.E_CONVERSATION_NOT_FOUND: 500,
    ApiErrorCode.E_FILE_NOT_FOUND: 500,
    ApiErrorCode.E_STORAGE_MISSING: 500,
    ApiErrorCode.E_STORAGE_ERROR: 500,
    ApiErrorCode.E_PERSISTENCE_FAILED: 500,
    ApiErrorCode.E_ANSWER_NOT_RECORDED: 500,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_INTERNAL: 500,
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
    """Referenced project, conversation or file could not be resolved."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ConfigurationError(ApiError):
    """Required credential or environment data is missing."""

    def __init__(self, message: str = "Server configuration is incomplete"):
        super().__init__(ApiErrorCode.E_CONFIG_MISSING, message)


class PersistenceError(ApiError):
    """A database write the pipeline depends on was rejected."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_PERSISTENCE_FAILED, message: str = "Write failed"
    ):
        super().__init__(code, message)
