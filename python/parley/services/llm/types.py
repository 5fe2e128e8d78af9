"""Value types passed between the pipeline and the completion adapters."""

from dataclasses import dataclass
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Turn:
    """One role-tagged message of an assembled context."""

    role: Role
    content: str

    def as_chat_message(self) -> dict[str, str]:
        """Wire shape shared by every OpenAI-compatible endpoint."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class LLMUsage:
    # Gateways report these inconsistently; any of them may be missing
    prompt_tokens: int | None
    completion_tokens: int | None
    total_tokens: int | None


@dataclass(frozen=True)
class LLMRequest:
    """A single non-streaming completion call.

    ``temperature`` of None leaves sampling to the provider default.
    """

    model_name: str
    messages: list[Turn]
    max_tokens: int
    temperature: float | None = None

    @property
    def total_chars(self) -> int:
        return sum(len(turn.content) for turn in self.messages)

    @property
    def system_chars(self) -> int:
        return sum(len(turn.content) for turn in self.messages if turn.role == "system")


@dataclass(frozen=True)
class LLMResponse:
    """The whole answer, returned once the provider finishes."""

    text: str
    usage: LLMUsage | None
    provider_request_id: str | None
