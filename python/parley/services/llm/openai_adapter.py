"""OpenAI-compatible chat completion adapters.

Both providers take ``POST {base_url}/chat/completions`` with a bearer key and
a body of ``model``, ``messages``, ``max_tokens`` and ``temperature``. The
answer is ``choices[0].message.content``; the request id comes from the
``x-request-id`` header, falling back to the body ``id``.

OpenRouter additionally asks callers to identify themselves through the
``HTTP-Referer`` and ``X-Title`` headers.
"""

import httpx

from parley.services.llm.adapter import LLMAdapter
from parley.services.llm.errors import LLMError, LLMErrorClass
from parley.services.llm.types import LLMRequest, LLMResponse, LLMUsage

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIAdapter(LLMAdapter):
    """Adapter for the OpenAI chat completions API."""

    provider = "openai"
    base_url = OPENAI_BASE_URL

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def build_headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def build_body(self, req: LLMRequest) -> dict:
        body: dict = {
            "model": req.model_name,
            "messages": [turn.as_chat_message() for turn in req.messages],
            "max_tokens": req.max_tokens,
        }
        if req.temperature is not None:
            body["temperature"] = req.temperature
        return body

    def parse_response(self, data: dict, headers: httpx.Headers) -> LLMResponse:
        choices = data.get("choices") or []
        if not choices:
            raise LLMError(
                LLMErrorClass.PROVIDER_DOWN,
                "Completion response missing choices",
                provider=self.provider,
            )

        text = (choices[0].get("message") or {}).get("content") or ""

        usage = None
        if usage_data := data.get("usage"):
            usage = LLMUsage(
                prompt_tokens=usage_data.get("prompt_tokens"),
                completion_tokens=usage_data.get("completion_tokens"),
                total_tokens=usage_data.get("total_tokens"),
            )

        return LLMResponse(
            text=text,
            usage=usage,
            provider_request_id=headers.get("x-request-id") or data.get("id"),
        )


class OpenRouterAdapter(OpenAIAdapter):
    """OpenRouter gateway; same protocol plus attribution headers."""

    provider = "openrouter"
    base_url = OPENROUTER_BASE_URL

    def __init__(self, client: httpx.AsyncClient, *, referer: str, title: str = "Parley"):
        super().__init__(client)
        self._referer = referer
        self._title = title

    def build_headers(self, api_key: str) -> dict[str, str]:
        headers = super().build_headers(api_key)
        headers["HTTP-Referer"] = self._referer
        headers["X-Title"] = self._title
        return headers
