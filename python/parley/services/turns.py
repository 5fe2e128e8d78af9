"""Turn recording and history loading.

Every accepted chat request appends exactly one user turn followed by exactly
one assistant turn. Turns are append-only; ordering by ``created_at``
defines the transcript, so the assistant turn is always stamped strictly
after the user turn it answers.

Failure policy:
- User turn write fails → PersistenceError(E_PERSISTENCE_FAILED); the model
  is never called.
- Assistant turn write fails → one retry; if the retry fails too,
  PersistenceError(E_ANSWER_NOT_RECORDED).
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parley.db.models import Message, MessageRole
from parley.db.session import transaction
from parley.errors import ApiErrorCode, PersistenceError
from parley.logging import get_logger
from parley.services.llm.types import Turn

logger = get_logger(__name__)

ASSISTANT_WRITE_ATTEMPTS = 2

# Smallest step that survives every supported timestamp column
TURN_ORDER_EPSILON = timedelta(microseconds=1)


def _now() -> datetime:
    return datetime.now(UTC)


def _insert_turn(
    db: Session,
    conversation_id: UUID,
    user_id: UUID,
    role: MessageRole,
    content: str,
    created_at: datetime,
) -> Message:
    message = Message(
        conversation_id=conversation_id,
        user_id=user_id,
        role=role.value,
        content=content,
        created_at=created_at,
    )
    with transaction(db):
        db.add(message)
    return message


def record_user_turn(db: Session, conversation_id: UUID, user_id: UUID, content: str) -> Message:
    """Append the user's turn.

    Raises:
        PersistenceError: E_PERSISTENCE_FAILED if the write is rejected.
    """
    try:
        message = _insert_turn(db, conversation_id, user_id, MessageRole.user, content, _now())
    except SQLAlchemyError as e:
        logger.error("turn.user_write_failed", error_type=type(e).__name__)
        raise PersistenceError(
            ApiErrorCode.E_PERSISTENCE_FAILED, "Failed to store user message"
        ) from e

    logger.info("turn.user_recorded", message_id=str(message.id))
    return message


def record_assistant_turn(
    db: Session,
    conversation_id: UUID,
    user_id: UUID,
    content: str,
    *,
    after: datetime,
) -> Message:
    """Append the assistant's turn, stamped strictly after ``after``.

    Args:
        after: Timestamp of the user turn being answered.

    Raises:
        PersistenceError: E_ANSWER_NOT_RECORDED if the write fails twice.
    """
    if after.tzinfo is None:
        # naive values come back from databases without timezone support
        after = after.replace(tzinfo=UTC)
    created_at = max(_now(), after + TURN_ORDER_EPSILON)

    last_error: SQLAlchemyError | None = None
    for attempt in range(1, ASSISTANT_WRITE_ATTEMPTS + 1):
        try:
            message = _insert_turn(
                db, conversation_id, user_id, MessageRole.assistant, content, created_at
            )
        except SQLAlchemyError as e:
            last_error = e
            logger.warning(
                "turn.assistant_write_failed",
                attempt=attempt,
                error_type=type(e).__name__,
            )
            continue

        logger.info("turn.assistant_recorded", message_id=str(message.id), attempt=attempt)
        return message

    logger.error("turn.assistant_not_recorded", answer_chars=len(content))
    raise PersistenceError(
        ApiErrorCode.E_ANSWER_NOT_RECORDED,
        "The assistant answered but the answer could not be saved",
    ) from last_error


def record_turns(
    db: Session,
    conversation_id: UUID,
    user_id: UUID,
    user_content: str,
    assistant_content: str,
) -> tuple[Message, Message]:
    """Append a user turn and its answer, in that order."""
    user_message = record_user_turn(db, conversation_id, user_id, user_content)
    assistant_message = record_assistant_turn(
        db, conversation_id, user_id, assistant_content, after=user_message.created_at
    )
    return user_message, assistant_message


def load_history(db: Session, conversation_id: UUID, user_id: UUID) -> list[Turn]:
    """Load the conversation transcript, oldest turn first."""
    rows = db.execute(
        select(Message.role, Message.content)
        .where(Message.conversation_id == conversation_id, Message.user_id == user_id)
        .order_by(Message.created_at.asc())
    ).all()
    return [Turn(role=role, content=content) for role, content in rows]
