"""File ingestion route."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from parley.api.deps import get_app_settings, get_db, get_storage
from parley.config import Settings
from parley.responses import success_response
from parley.schemas.files import ProcessFileRequest
from parley.services.file_processing import process_file
from parley.storage.client import StorageClientBase

router = APIRouter()


@router.post("/process-file")
def process_uploaded_file(
    body: ProcessFileRequest,
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> dict:
    """Extract an uploaded file and cache its text on the file record.

    ``contentLength`` is the full extracted length; ``contentPreview`` is the
    first 200 characters.
    """
    result = process_file(db, storage, settings, body)
    return success_response(
        message=result.message,
        contentLength=result.content_length,
        contentPreview=result.content_preview,
    )
