"""Tests for completion orchestration.

Tests cover:
- Success returns model text verbatim
- Quota/rate failures map to the quota advisory
- Every other failure maps to the generic advisory
- Provider/model resolution, including the legacy gpt-4 alias
- complete() never raises
"""

import json
from uuid import uuid4

import httpx
import pytest
import respx

from parley.db.models import Project
from parley.services.completion import (
    GENERIC_FALLBACK_MESSAGE,
    QUOTA_FALLBACK_MESSAGE,
    CompletionOutcome,
    complete,
    resolve_model,
    resolve_provider,
)
from parley.services.llm import LLMErrorClass, LLMRouter, Turn
from tests.helpers import (
    OPENAI_CHAT_URL,
    OPENROUTER_CHAT_URL,
    completion_body,
    provider_error_body,
)

TURNS = [Turn(role="system", content="Be helpful."), Turn(role="user", content="Hi")]


def _project(provider="openai", model="gpt-4o-mini") -> Project:
    return Project(user_id=uuid4(), name="p", llm_provider=provider, llm_model=model)


@pytest.fixture
def router():
    return LLMRouter(httpx.AsyncClient(), enable_openai=True, enable_openrouter=True)


class TestComplete:
    @pytest.mark.asyncio
    @respx.mock
    async def test_success_is_verbatim(self, router, settings):
        respx.post(OPENAI_CHAT_URL).respond(200, json=completion_body("  Exactly this.\n"))

        result = await complete(router, settings, _project(), TURNS)

        assert result.text == "  Exactly this.\n"
        assert result.is_fallback is False
        assert result.outcome == CompletionOutcome.SUCCEEDED
        assert result.error_class is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_fixed_generation_parameters(self, router, settings):
        route = respx.post(OPENAI_CHAT_URL).respond(200, json=completion_body("ok"))

        await complete(router, settings, _project(), TURNS)

        body = json.loads(route.calls.last.request.content)
        assert body["max_tokens"] == 2000
        assert body["temperature"] == 0.7
        assert route.calls.last.request.headers["Authorization"] == "Bearer sk-test-openai"

    @pytest.mark.asyncio
    @respx.mock
    async def test_429_gives_quota_advisory(self, router, settings):
        respx.post(OPENAI_CHAT_URL).respond(429, json=provider_error_body("rate_limit_exceeded"))

        result = await complete(router, settings, _project(), TURNS)

        assert result.text == QUOTA_FALLBACK_MESSAGE
        assert result.is_fallback is True
        assert result.outcome == CompletionOutcome.FAILED_QUOTA
        assert result.error_class == LLMErrorClass.RATE_LIMIT

    @pytest.mark.asyncio
    @respx.mock
    async def test_insufficient_quota_code_gives_quota_advisory(self, router, settings):
        respx.post(OPENAI_CHAT_URL).respond(400, json=provider_error_body("insufficient_quota"))

        result = await complete(router, settings, _project(), TURNS)

        assert result.text == QUOTA_FALLBACK_MESSAGE

    @pytest.mark.parametrize("status", [400, 401, 404, 500, 502, 503])
    @pytest.mark.asyncio
    @respx.mock
    async def test_other_http_errors_give_generic_advisory(self, router, settings, status):
        respx.post(OPENAI_CHAT_URL).respond(status, json={"error": {"message": "nope"}})

        result = await complete(router, settings, _project(), TURNS)

        assert result.text == GENERIC_FALLBACK_MESSAGE
        assert result.is_fallback is True
        assert result.outcome == CompletionOutcome.FAILED_OTHER

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_gives_generic_advisory(self, router, settings):
        respx.post(OPENAI_CHAT_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        result = await complete(router, settings, _project(), TURNS)

        assert result.text == GENERIC_FALLBACK_MESSAGE
        assert result.error_class == LLMErrorClass.TIMEOUT

    @pytest.mark.asyncio
    async def test_unexpected_router_exception_never_escapes(self, settings):
        class BrokenRouter:
            async def generate(self, *args, **kwargs):
                raise KeyError("surprise")

        result = await complete(BrokenRouter(), settings, _project(), TURNS)

        assert result.text == GENERIC_FALLBACK_MESSAGE
        assert result.is_fallback is True

    @pytest.mark.asyncio
    async def test_missing_credential_is_a_fallback(self, router, settings):
        settings.openrouter_api_key = None

        result = await complete(router, settings, _project(provider="openrouter"), TURNS)

        assert result.text == GENERIC_FALLBACK_MESSAGE

    @pytest.mark.asyncio
    @respx.mock
    async def test_openrouter_project_uses_openrouter(self, router, settings):
        route = respx.post(OPENROUTER_CHAT_URL).respond(200, json=completion_body("via router"))

        result = await complete(
            router, settings, _project(provider="openrouter", model="gpt-4"), TURNS
        )

        assert result.text == "via router"
        body = json.loads(route.calls.last.request.content)
        # legacy alias only applies to OpenAI
        assert body["model"] == "gpt-4"
        assert route.calls.last.request.headers["Authorization"] == "Bearer sk-test-openrouter"


class TestResolution:
    @pytest.mark.parametrize("provider", [None, "", "anthropic", "OPENAI"])
    def test_missing_or_unknown_provider_is_openai(self, provider):
        assert resolve_provider(_project(provider=provider)) == "openai"

    def test_openrouter_provider(self):
        assert resolve_provider(_project(provider="openrouter")) == "openrouter"

    def test_legacy_gpt4_mapped_at_call_time(self):
        project = _project(model="gpt-4")

        assert resolve_model(project, "openai", "gpt-4o-mini") == "gpt-4o-mini"
        assert project.llm_model == "gpt-4"

    def test_default_model_when_unset(self):
        assert resolve_model(_project(model=None), "openai", "gpt-4o-mini") == "gpt-4o-mini"

    def test_other_models_pass_through(self):
        assert resolve_model(_project(model="gpt-4o"), "openai", "gpt-4o-mini") == "gpt-4o"
