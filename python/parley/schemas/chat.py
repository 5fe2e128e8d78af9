"""Chat pipeline request and response schemas.

Field names on the wire are camelCase to match the chat UI contract.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRequest(BaseModel):
    """Body of ``POST /ai-chat``."""

    message: str
    conversation_id: UUID = Field(alias="conversationId")
    project_id: UUID = Field(alias="projectId")
    user_id: UUID = Field(alias="userId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value
