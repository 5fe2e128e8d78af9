"""Test helpers for building request bodies and provider responses."""

from uuid import UUID

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"


def completion_body(text: str, *, request_id: str = "chatcmpl-test") -> dict:
    """A minimal successful chat completion payload."""
    return {
        "id": request_id,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }


def provider_error_body(code: str, message: str = "error", error_type: str | None = None) -> dict:
    return {"error": {"message": message, "type": error_type or code, "code": code}}


def chat_body(message: str, conversation_id: UUID, project_id: UUID, user_id: UUID) -> dict:
    """Request body for POST /ai-chat in the wire (camelCase) format."""
    return {
        "message": message,
        "conversationId": str(conversation_id),
        "projectId": str(project_id),
        "userId": str(user_id),
    }
