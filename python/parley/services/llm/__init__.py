"""Completion calls against OpenAI-compatible providers.

The pipeline talks to this package only through LLMRouter.generate(), which
returns an LLMResponse or raises a classified LLMError:

    router = LLMRouter(httpx_client, enable_openrouter=True)
    request = LLMRequest(model_name="gpt-4o-mini", messages=turns, max_tokens=2000)
    response = await router.generate("openai", request, api_key)
"""

from parley.services.llm.adapter import LLMAdapter
from parley.services.llm.errors import (
    LLMError,
    LLMErrorClass,
    classify_provider_error,
    is_quota_error,
)
from parley.services.llm.openai_adapter import OpenAIAdapter, OpenRouterAdapter
from parley.services.llm.router import LLMRouter
from parley.services.llm.types import LLMRequest, LLMResponse, LLMUsage, Turn

__all__ = [
    # Core types
    "Turn",
    "LLMRequest",
    "LLMResponse",
    "LLMUsage",
    # Adapters
    "LLMAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    # Router
    "LLMRouter",
    # Errors
    "LLMError",
    "LLMErrorClass",
    "classify_provider_error",
    "is_quota_error",
]
