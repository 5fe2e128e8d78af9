"""File ingestion: extract an uploaded file and populate its cache.

Runs right after the browser finishes an upload, ahead of any chat turn.
Re-processing a file overwrites its cached text.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from parley.config import Settings
from parley.db.models import FileUpload
from parley.errors import ApiError, ApiErrorCode, NotFoundError, PersistenceError
from parley.logging import get_logger
from parley.schemas.files import ProcessFileRequest
from parley.services.extraction_cache import extract_and_cache
from parley.storage.client import StorageClientBase, StorageError

logger = get_logger(__name__)

PREVIEW_CHARS = 200
PROCESSED_MESSAGE = "File processed successfully"


@dataclass(frozen=True)
class ProcessFileResult:
    message: str
    content_length: int
    content_preview: str


def build_preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    """First ``limit`` characters, with an ellipsis when the text was cut."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def process_file(
    db: Session,
    storage: StorageClientBase,
    settings: Settings,
    request: ProcessFileRequest,
) -> ProcessFileResult:
    """Extract a freshly uploaded file and cache its bounded text.

    ``content_length`` reports the full extracted length, before the cache cap.

    Raises:
        NotFoundError: E_FILE_NOT_FOUND if the file record doesn't exist.
        ApiError: E_STORAGE_MISSING / E_STORAGE_ERROR if the download fails.
        PersistenceError: If the cache write is rejected.
    """
    file = db.execute(
        select(FileUpload).where(FileUpload.id == request.file_id)
    ).scalar_one_or_none()
    if file is None:
        raise NotFoundError(ApiErrorCode.E_FILE_NOT_FOUND, "File record not found")

    logger.info(
        "file.processing.started",
        file_id=str(file.id),
        media_type=request.file_type or file.file_type,
    )

    try:
        result, cached = extract_and_cache(
            db,
            storage,
            file,
            settings.extraction_cache_max_chars,
            path=request.file_path,
            filename=request.file_name,
            media_type=request.file_type,
        )
    except StorageError as e:
        logger.error("file.processing.download_failed", file_id=str(file.id), code=e.code)
        raise ApiError(ApiErrorCode(e.code), e.message) from e
    except SQLAlchemyError as e:
        logger.error("file.processing.cache_write_failed", error_type=type(e).__name__)
        raise PersistenceError(
            ApiErrorCode.E_PERSISTENCE_FAILED, "Failed to update file record"
        ) from e

    logger.info(
        "file.processing.finished",
        file_id=str(file.id),
        text_chars=len(result.text),
        cached_chars=len(cached.text),
        degraded=result.degraded,
    )
    return ProcessFileResult(
        message=PROCESSED_MESSAGE,
        content_length=len(result.text),
        content_preview=build_preview(result.text),
    )
