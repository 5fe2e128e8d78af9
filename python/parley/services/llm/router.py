"""Provider routing for completion calls.

The router owns one adapter per enabled provider, all sharing the
application's httpx.AsyncClient. Every failure leaving ``generate`` is an
LLMError carrying a normalized LLMErrorClass, so callers never see raw httpx
exceptions or provider error bodies.

Events: llm.request.started, llm.request.finished, llm.request.failed. All
fields pass through safe_kv(); only sizes, ids and timings are logged.
"""

import time

import httpx

from parley.logging import get_logger
from parley.services.llm.adapter import LLMAdapter
from parley.services.llm.errors import LLMError, LLMErrorClass, classify_provider_error
from parley.services.llm.openai_adapter import OpenAIAdapter, OpenRouterAdapter
from parley.services.llm.types import LLMRequest, LLMResponse
from parley.services.redact import safe_kv

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 45


class LLMRouter:
    """Dispatches completion requests to the adapter for a provider."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        enable_openai: bool = True,
        enable_openrouter: bool = False,
        openrouter_referer: str = "https://parley.local",
    ):
        """
        Args:
            client: Shared httpx.AsyncClient.
            enable_openai: Route "openai" requests.
            enable_openrouter: Route "openrouter" requests (needs a platform key).
            openrouter_referer: Attribution URL sent to OpenRouter.
        """
        self._client = client
        self._known = {"openai", "openrouter"}
        self._adapters: dict[str, LLMAdapter] = {}
        if enable_openai:
            self._adapters["openai"] = OpenAIAdapter(client)
        if enable_openrouter:
            self._adapters["openrouter"] = OpenRouterAdapter(client, referer=openrouter_referer)

    def resolve_adapter(self, provider: str) -> LLMAdapter:
        """Adapter for an enabled provider.

        Raises:
            LLMError: MODEL_NOT_AVAILABLE if the provider is unknown or disabled.
        """
        adapter = self._adapters.get(provider)
        if adapter is None:
            reason = "is disabled" if provider in self._known else "is unknown"
            raise LLMError(
                LLMErrorClass.MODEL_NOT_AVAILABLE,
                f"Provider {provider} {reason}",
                provider=provider,
            )
        return adapter

    async def generate(
        self,
        provider: str,
        req: LLMRequest,
        api_key: str,
        *,
        timeout_s: int = DEFAULT_TIMEOUT_S,
    ) -> LLMResponse:
        """Run one non-streaming completion.

        Raises:
            LLMError: Every failure, already classified.
        """
        adapter = self.resolve_adapter(provider)
        fields = {"provider": provider, "model_name": req.model_name, "max_tokens": req.max_tokens}

        logger.info(
            "llm.request.started",
            **safe_kv(
                **fields,
                message_chars=req.total_chars,
                system_chars=req.system_chars,
                num_turns=len(req.messages),
            ),
        )
        start = time.monotonic()

        try:
            response = await adapter.generate(req, api_key=api_key, timeout_s=timeout_s)
        except LLMError as e:
            # Raised by the adapter for a 2xx reply it could not use
            self._log_failure(fields, e.error_class, start)
            raise
        except Exception as e:
            error = self._normalize(provider, e)
            status_code = None
            request_id = None
            if isinstance(e, httpx.HTTPStatusError):
                status_code = e.response.status_code
                request_id = e.response.headers.get("x-request-id")
            self._log_failure(
                fields,
                error.error_class,
                start,
                status_code=status_code,
                provider_request_id=request_id,
            )
            raise error from e

        usage = response.usage
        logger.info(
            "llm.request.finished",
            **safe_kv(
                **fields,
                outcome="success",
                latency_ms=_elapsed_ms(start),
                tokens_input=usage.prompt_tokens if usage else None,
                tokens_output=usage.completion_tokens if usage else None,
                provider_request_id=response.provider_request_id,
            ),
        )
        return response

    def _normalize(self, provider: str, exc: Exception) -> LLMError:
        """Map an httpx (or unexpected) exception to an LLMError."""
        if isinstance(exc, httpx.TimeoutException):
            return LLMError(LLMErrorClass.TIMEOUT, "Request timed out", provider=provider)

        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            body = _json_or_none(exc.response)
            error_class = classify_provider_error(provider, status, body, None)
            return LLMError(error_class, f"Provider returned HTTP {status}", provider=provider)

        if isinstance(exc, httpx.NetworkError):
            return LLMError(LLMErrorClass.PROVIDER_DOWN, "Network error", provider=provider)

        return LLMError(
            LLMErrorClass.PROVIDER_DOWN,
            f"Unexpected error: {type(exc).__name__}",
            provider=provider,
        )

    def _log_failure(self, fields: dict, error_class: LLMErrorClass, start: float, **extra):
        logger.error(
            "llm.request.failed",
            **safe_kv(
                **fields,
                outcome="error",
                error_class=error_class.value,
                latency_ms=_elapsed_ms(start),
                **extra,
            ),
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _json_or_none(response: httpx.Response) -> dict | None:
    try:
        return response.json()
    except ValueError:
        return None
