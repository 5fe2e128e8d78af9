"""Test data factories.

Centralizes helper functions that create database rows for tests.
Each factory knows the full schema requirements for its table,
so individual tests don't need to track NOT NULL constraints.
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from parley.db.models import Conversation, FileUpload, Message, Project

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


def create_test_project(
    session: Session,
    user_id: UUID | None = None,
    *,
    system_prompt: str | None = None,
    llm_provider: str | None = "openai",
    llm_model: str | None = "gpt-4o-mini",
    name: str = "Test Project",
) -> Project:
    project = Project(
        user_id=user_id or uuid4(),
        name=name,
        system_prompt=system_prompt,
        llm_provider=llm_provider,
        llm_model=llm_model,
    )
    session.add(project)
    session.commit()
    return project


def create_test_conversation(session: Session, project: Project) -> Conversation:
    conversation = Conversation(project_id=project.id, user_id=project.user_id, title="Chat")
    session.add(conversation)
    session.commit()
    return conversation


def create_test_message(
    session: Session,
    conversation: Conversation,
    role: str,
    content: str,
    *,
    offset_s: int = 0,
) -> Message:
    """Insert a transcript turn ``offset_s`` seconds after BASE_TIME."""
    message = Message(
        conversation_id=conversation.id,
        user_id=conversation.user_id,
        role=role,
        content=content,
        created_at=BASE_TIME + timedelta(seconds=offset_s),
    )
    session.add(message)
    session.commit()
    return message


def create_test_file(
    session: Session,
    project: Project,
    *,
    filename: str = "notes.txt",
    file_type: str | None = "text/plain",
    file_path: str | None = None,
    file_size: int | None = None,
    extracted_text: str | None = None,
    extraction_degraded: bool = False,
    offset_s: int = 0,
) -> FileUpload:
    file = FileUpload(
        project_id=project.id,
        user_id=project.user_id,
        filename=filename,
        file_path=file_path or f"{project.user_id}/{project.id}/{filename}",
        file_type=file_type,
        file_size=file_size,
        extracted_text=extracted_text,
        extraction_degraded=extraction_degraded,
        created_at=BASE_TIME + timedelta(seconds=offset_s),
    )
    session.add(file)
    session.commit()
    return file
