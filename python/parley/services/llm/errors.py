"""LLM error classification and normalization.

- Classifies provider-specific errors into normalized error classes
- Called by router after catching adapter exceptions
- OpenAI and OpenRouter share the OpenAI error envelope

Error classes:
- E_LLM_INVALID_KEY: Authentication failure (401/403)
- E_LLM_RATE_LIMIT: Rate limit or exhausted quota (429, insufficient_quota)
- E_LLM_CONTEXT_TOO_LARGE: Context length exceeded
- E_LLM_TIMEOUT: Request timed out
- E_LLM_PROVIDER_DOWN: Provider unavailable (5xx, network error)
- E_MODEL_NOT_AVAILABLE: Model not found or disabled
"""

from enum import Enum

from parley.logging import get_logger

logger = get_logger(__name__)

# Error codes/types OpenAI-compatible providers use for exhausted credit or throttling
QUOTA_ERROR_CODES = frozenset({"insufficient_quota", "rate_limit_exceeded"})


class LLMErrorClass(str, Enum):
    """Normalized LLM error classifications."""

    INVALID_KEY = "E_LLM_INVALID_KEY"
    RATE_LIMIT = "E_LLM_RATE_LIMIT"
    CONTEXT_TOO_LARGE = "E_LLM_CONTEXT_TOO_LARGE"
    TIMEOUT = "E_LLM_TIMEOUT"
    PROVIDER_DOWN = "E_LLM_PROVIDER_DOWN"
    MODEL_NOT_AVAILABLE = "E_MODEL_NOT_AVAILABLE"


class LLMError(Exception):
    """Exception for LLM-related errors.

    Attributes:
        error_class: The normalized error classification
        message: Human-readable error message
        provider: The provider that returned the error (if known)
    """

    def __init__(
        self,
        error_class: LLMErrorClass,
        message: str,
        provider: str | None = None,
    ):
        self.error_class = error_class
        self.message = message
        self.provider = provider
        super().__init__(message)


def is_quota_error(status_code: int | None, json_body: dict | None) -> bool:
    """Whether a provider failure means throttling or exhausted quota.

    True for HTTP 429, or when the error envelope carries a quota code/type
    regardless of status.
    """
    if status_code == 429:
        return True
    if not isinstance(json_body, dict):
        return False
    error = json_body.get("error")
    if not isinstance(error, dict):
        return False
    return error.get("code") in QUOTA_ERROR_CODES or error.get("type") in QUOTA_ERROR_CODES


def classify_provider_error(
    provider: str,
    status_code: int | None,
    json_body: dict | None,
    exception: Exception | None,
) -> LLMErrorClass:
    """Classify provider error into normalized error class.

    Args:
        provider: One of "openai", "openrouter"
        status_code: HTTP status code (if available)
        json_body: Parsed JSON error response (if available)
        exception: The exception that was raised (if any)

    Returns:
        The appropriate LLMErrorClass for this error.
    """
    # Handle timeout exceptions first (no status code)
    if exception is not None:
        exception_type = type(exception).__name__
        if "Timeout" in exception_type or "timeout" in str(exception).lower():
            return LLMErrorClass.TIMEOUT
        if "Network" in exception_type or "Connection" in exception_type:
            return LLMErrorClass.PROVIDER_DOWN

    if is_quota_error(status_code, json_body):
        return LLMErrorClass.RATE_LIMIT

    # No status code means we can't classify further
    if status_code is None:
        return LLMErrorClass.PROVIDER_DOWN

    if provider in ("openai", "openrouter"):
        return _classify_openai_compatible_error(status_code, json_body)

    logger.warning("unknown_provider_for_error_classification", provider=provider)
    return LLMErrorClass.PROVIDER_DOWN


def _classify_openai_compatible_error(status_code: int, json_body: dict | None) -> LLMErrorClass:
    """Classify errors in the OpenAI error envelope.

    - 401 or 403 → INVALID_KEY
    - 402 → RATE_LIMIT (OpenRouter out of credits)
    - 404 → MODEL_NOT_AVAILABLE
    - 400 + error.code == "context_length_exceeded" → CONTEXT_TOO_LARGE
    - 400 + "maximum context length" in message → CONTEXT_TOO_LARGE
    - 5xx → PROVIDER_DOWN
    """
    if status_code in (401, 403):
        return LLMErrorClass.INVALID_KEY

    if status_code == 402:
        return LLMErrorClass.RATE_LIMIT

    if status_code == 404:
        return LLMErrorClass.MODEL_NOT_AVAILABLE

    if status_code >= 500:
        return LLMErrorClass.PROVIDER_DOWN

    if status_code == 400 and isinstance(json_body, dict):
        error = json_body.get("error") or {}
        if not isinstance(error, dict):
            return LLMErrorClass.PROVIDER_DOWN
        error_code = error.get("code") or ""
        error_message = str(error.get("message") or "").lower()

        if error_code == "context_length_exceeded":
            return LLMErrorClass.CONTEXT_TOO_LARGE
        if "maximum context length" in error_message:
            return LLMErrorClass.CONTEXT_TOO_LARGE
        if "model" in error_message and "not found" in error_message:
            return LLMErrorClass.MODEL_NOT_AVAILABLE

    return LLMErrorClass.PROVIDER_DOWN
