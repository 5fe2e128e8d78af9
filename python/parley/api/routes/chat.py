"""Chat pipeline route.

Responses:
- 200 {success: true, message}: real answer
- 200 {success: true, message, fallback: true}: upstream failed, fixed advisory recorded
- 500 {success: false, error, code}: request could not be processed
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from parley.api.deps import get_app_settings, get_db, get_llm_router, get_storage
from parley.config import Settings
from parley.responses import success_response
from parley.schemas.chat import ChatRequest
from parley.services.chat import send_chat_message
from parley.services.llm import LLMRouter
from parley.storage.client import StorageClientBase

router = APIRouter()


@router.post("/ai-chat")
async def ai_chat(
    body: ChatRequest,
    db: Annotated[Session, Depends(get_db)],
    llm_router: Annotated[LLMRouter, Depends(get_llm_router)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict:
    """Answer one user message in a conversation and record both turns."""
    result = await send_chat_message(db, storage, llm_router, settings, body)
    return success_response(message=result.message, fallback=True if result.fallback else None)
