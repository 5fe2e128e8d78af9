"""Base class for completion adapters.

An adapter turns an LLMRequest into one HTTP call on the shared
httpx.AsyncClient and parses the reply. Adapters don't retry, log bodies, or
classify failures; httpx errors propagate to the router unchanged.
"""

from abc import ABC, abstractmethod

import httpx

from parley.services.llm.types import LLMRequest, LLMResponse

CONNECT_TIMEOUT_S = 10.0


class LLMAdapter(ABC):
    """One provider endpoint."""

    provider: str

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @property
    @abstractmethod
    def chat_url(self) -> str: ...

    @abstractmethod
    def build_headers(self, api_key: str) -> dict[str, str]: ...

    @abstractmethod
    def build_body(self, req: LLMRequest) -> dict: ...

    @abstractmethod
    def parse_response(self, data: dict, headers: httpx.Headers) -> LLMResponse: ...

    async def generate(
        self,
        req: LLMRequest,
        *,
        api_key: str,
        timeout_s: int,
    ) -> LLMResponse:
        """POST the request and parse the completion.

        Raises:
            httpx.HTTPStatusError: Provider answered with a non-2xx status.
            httpx.TimeoutException: No answer within ``timeout_s``.
            httpx.NetworkError: The provider could not be reached.
            LLMError: The reply was 2xx but unusable.
        """
        response = await self._client.post(
            self.chat_url,
            headers=self.build_headers(api_key),
            json=self.build_body(req),
            timeout=httpx.Timeout(timeout_s, connect=CONNECT_TIMEOUT_S),
        )
        response.raise_for_status()
        return self.parse_response(response.json(), response.headers)
