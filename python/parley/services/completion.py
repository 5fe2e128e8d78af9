"""Completion orchestration with deterministic fallbacks.

Sends an assembled context through the LLM router and always produces an
answer. Upstream failures are never surfaced: they map to one of two fixed
assistant messages. There are no retries.

Outcome states:
    Idle → Sending → Succeeded | FailedQuota | FailedOther
"""

from dataclasses import dataclass
from enum import Enum

from parley.config import Settings
from parley.db.models import LLMProvider, Project
from parley.logging import get_logger
from parley.services.llm import LLMError, LLMErrorClass, LLMRequest, LLMRouter, Turn
from parley.services.redact import safe_kv

logger = get_logger(__name__)

QUOTA_FALLBACK_MESSAGE = (
    "The AI provider's quota has been exceeded. "
    "Please update the provider API key and try again."
)
GENERIC_FALLBACK_MESSAGE = "The AI is temporarily unavailable. Please try again later."

DEFAULT_PROVIDER = LLMProvider.openai.value

# Retired model names still stored on older projects, resolved at call time
LEGACY_MODEL_ALIASES = {"gpt-4": "gpt-4o-mini"}


class CompletionOutcome(str, Enum):
    """Terminal state of one completion attempt."""

    SUCCEEDED = "succeeded"
    FAILED_QUOTA = "failed_quota"
    FAILED_OTHER = "failed_other"


@dataclass(frozen=True)
class CompletionResult:
    """Answer text and how it was obtained."""

    text: str
    is_fallback: bool
    outcome: CompletionOutcome
    error_class: LLMErrorClass | None = None


def resolve_provider(project: Project) -> str:
    """Project provider, defaulting to OpenAI when missing or unknown."""
    provider = (project.llm_provider or "").strip().lower()
    if provider in {p.value for p in LLMProvider}:
        return provider
    return DEFAULT_PROVIDER


def resolve_model(project: Project, provider: str, default_model: str) -> str:
    """Model name to send; never rewrites the stored project config."""
    model = (project.llm_model or "").strip() or default_model
    if provider == LLMProvider.openai.value:
        return LEGACY_MODEL_ALIASES.get(model, model)
    return model


def fallback_for(error_class: LLMErrorClass | None) -> CompletionResult:
    if error_class == LLMErrorClass.RATE_LIMIT:
        return CompletionResult(
            text=QUOTA_FALLBACK_MESSAGE,
            is_fallback=True,
            outcome=CompletionOutcome.FAILED_QUOTA,
            error_class=error_class,
        )
    return CompletionResult(
        text=GENERIC_FALLBACK_MESSAGE,
        is_fallback=True,
        outcome=CompletionOutcome.FAILED_OTHER,
        error_class=error_class,
    )


async def complete(
    router: LLMRouter,
    settings: Settings,
    project: Project,
    turns: list[Turn],
) -> CompletionResult:
    """Run one completion for an assembled context.

    Args:
        router: LLM router holding the shared HTTP client.
        settings: Validated settings (credentials, generation parameters, timeout).
        project: Project selecting provider and model.
        turns: Assembled context, system turn first.

    Returns:
        CompletionResult. Never raises.
    """
    provider = resolve_provider(project)
    model = resolve_model(project, provider, settings.default_llm_model)

    api_key = settings.api_key_for(provider)
    if not api_key:
        logger.error("completion.credential_missing", provider=provider)
        return fallback_for(None)

    request = LLMRequest(
        model_name=model,
        messages=turns,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )

    try:
        response = await router.generate(
            provider, request, api_key, timeout_s=settings.llm_timeout_s
        )
    except LLMError as e:
        result = fallback_for(e.error_class)
        logger.warning(
            "completion.fallback",
            **safe_kv(
                provider=provider,
                model_name=model,
                error_class=e.error_class.value,
                outcome=result.outcome.value,
            ),
        )
        return result
    except Exception as e:
        logger.exception("completion.unexpected_error", error_type=type(e).__name__)
        return fallback_for(None)

    logger.info(
        "completion.succeeded",
        **safe_kv(provider=provider, model_name=model, answer_chars=len(response.text)),
    )
    return CompletionResult(
        text=response.text,
        is_fallback=False,
        outcome=CompletionOutcome.SUCCEEDED,
    )
