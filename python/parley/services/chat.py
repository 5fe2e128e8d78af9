"""Chat pipeline: one user message in, one recorded answer out.

Steps run strictly in order:
1. Resolve the project and conversation for the requesting user
2. Load the transcript and the project's files
3. Read each file's text through the extraction cache
4. Assemble the context
5. Record the user turn
6. Run the completion (never raises; failures become fallback answers)
7. Record the assistant turn

Sync DB and storage work runs through run_in_threadpool so the event loop
only waits on the completion call.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from parley.config import Settings
from parley.db.models import Conversation, FileUpload, Project
from parley.errors import ApiErrorCode, ConfigurationError, NotFoundError
from parley.logging import get_logger, set_pipeline_context
from parley.schemas.chat import ChatRequest
from parley.services.completion import complete, resolve_provider
from parley.services.context_assembly import ContextFile, assemble_context
from parley.services.extraction_cache import get_or_extract
from parley.services.llm import LLMRouter, Turn
from parley.services.redact import safe_kv
from parley.services.turns import load_history, record_assistant_turn, record_user_turn
from parley.storage.client import StorageClientBase, StorageError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChatResult:
    """The answer returned to the caller."""

    message: str
    fallback: bool


@dataclass
class PreparedChat:
    project: Project
    turns: list[Turn]


def get_project(db: Session, project_id: UUID, user_id: UUID) -> Project:
    """Load a project owned by the user.

    Raises:
        NotFoundError: E_PROJECT_NOT_FOUND if absent or owned by someone else.
    """
    project = db.execute(
        select(Project).where(Project.id == project_id, Project.user_id == user_id)
    ).scalar_one_or_none()
    if project is None:
        raise NotFoundError(ApiErrorCode.E_PROJECT_NOT_FOUND, "Project not found")
    return project


def get_conversation(
    db: Session, conversation_id: UUID, project_id: UUID, user_id: UUID
) -> Conversation:
    """Load a conversation under the project, owned by the user.

    Raises:
        NotFoundError: E_CONVERSATION_NOT_FOUND if it can't be resolved.
    """
    conversation = db.execute(
        select(Conversation).where(
            Conversation.id == conversation_id,
            Conversation.project_id == project_id,
            Conversation.user_id == user_id,
        )
    ).scalar_one_or_none()
    if conversation is None:
        raise NotFoundError(ApiErrorCode.E_CONVERSATION_NOT_FOUND, "Conversation not found")
    return conversation


def list_project_files(db: Session, project_id: UUID, user_id: UUID) -> list[FileUpload]:
    return list(
        db.execute(
            select(FileUpload)
            .where(FileUpload.project_id == project_id, FileUpload.user_id == user_id)
            .order_by(FileUpload.created_at.asc())
        ).scalars()
    )


def load_context_files(
    db: Session,
    storage: StorageClientBase,
    files: list[FileUpload],
    max_chars: int,
) -> list[ContextFile]:
    """Read every file's text through the cache.

    A file that can't be downloaded or cached is left out of the context
    but still marked degraded, so the model is told content is missing.
    """
    context_files = []
    for file in files:
        media_type = file.file_type or "application/octet-stream"
        try:
            cached = get_or_extract(db, storage, file, max_chars)
        except (StorageError, SQLAlchemyError) as e:
            logger.warning(
                "chat.file_skipped",
                file_id=str(file.id),
                error_type=type(e).__name__,
            )
            context_files.append(
                ContextFile(filename=file.filename, media_type=media_type, text="", degraded=True)
            )
            continue

        context_files.append(
            ContextFile(
                filename=file.filename,
                media_type=media_type,
                text=cached.text,
                degraded=cached.degraded,
            )
        )
    return context_files


def prepare_chat(
    db: Session,
    storage: StorageClientBase,
    settings: Settings,
    request: ChatRequest,
) -> PreparedChat:
    """Resolve everything the completion needs. Writes nothing but the file cache."""
    project = get_project(db, request.project_id, request.user_id)
    get_conversation(db, request.conversation_id, request.project_id, request.user_id)

    provider = resolve_provider(project)
    if not settings.api_key_for(provider):
        raise ConfigurationError(f"No API key configured for provider {provider}")

    history = load_history(db, request.conversation_id, request.user_id)
    files = list_project_files(db, request.project_id, request.user_id)
    context_files = load_context_files(db, storage, files, settings.extraction_cache_max_chars)

    turns = assemble_context(project.system_prompt, context_files, history, request.message)

    logger.info(
        "chat.context_assembled",
        **safe_kv(
            history_turns=len(history),
            num_files=len(context_files),
            degraded_files=sum(1 for f in context_files if f.degraded),
            system_chars=len(turns[0].content),
        ),
    )
    return PreparedChat(project=project, turns=turns)


async def send_chat_message(
    db: Session,
    storage: StorageClientBase,
    router: LLMRouter,
    settings: Settings,
    request: ChatRequest,
) -> ChatResult:
    """Run the chat pipeline for one message.

    Args:
        db: Database session.
        storage: Storage client for uncached file extraction.
        router: Shared LLM router.
        settings: Validated settings.
        request: The validated chat request.

    Returns:
        ChatResult with the real answer or a fallback.

    Raises:
        NotFoundError: Project or conversation can't be resolved.
        ConfigurationError: The project's provider has no credential.
        PersistenceError: A turn could not be recorded.
    """
    set_pipeline_context(
        user_id=str(request.user_id),
        project_id=str(request.project_id),
        conversation_id=str(request.conversation_id),
    )
    logger.info("chat.request.started", **safe_kv(message_chars=len(request.message)))

    prepared = await run_in_threadpool(prepare_chat, db, storage, settings, request)

    user_message = await run_in_threadpool(
        record_user_turn, db, request.conversation_id, request.user_id, request.message
    )

    result = await complete(router, settings, prepared.project, prepared.turns)

    await run_in_threadpool(
        record_assistant_turn,
        db,
        request.conversation_id,
        request.user_id,
        result.text,
        after=user_message.created_at,
    )

    logger.info(
        "chat.request.finished",
        **safe_kv(outcome=result.outcome.value, answer_chars=len(result.text)),
    )
    return ChatResult(message=result.text, fallback=result.is_fallback)
