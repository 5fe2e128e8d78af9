"""Extraction cache backed by the file record.

The bounded extracted text is stored on ``FileUpload.extracted_text`` together
with ``extraction_degraded``. A populated record is returned as-is on every
chat turn; storage and the extractor are only touched on a miss.

Truncation is deterministic (first N characters), so concurrent writers for
the same file store identical values and last-write-wins is harmless.
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from parley.db.models import FileUpload
from parley.db.session import transaction
from parley.logging import get_logger
from parley.services.extraction import ExtractionResult, extract_content
from parley.storage.client import StorageClientBase

logger = get_logger(__name__)

# Default cap on cached extracted text, in characters
EXTRACTION_CACHE_MAX_CHARS = 8000


@dataclass(frozen=True)
class CachedExtraction:
    """Cached text for one file."""

    text: str
    degraded: bool
    from_cache: bool


def truncate_extraction(text: str, max_chars: int = EXTRACTION_CACHE_MAX_CHARS) -> str:
    """Bound extracted text to the first ``max_chars`` characters."""
    return text[:max_chars]


def extract_file(
    storage: StorageClientBase,
    file: FileUpload,
    *,
    path: str | None = None,
    filename: str | None = None,
    media_type: str | None = None,
) -> ExtractionResult:
    """Download a file's bytes and run them through the extractor.

    Keyword overrides replace the values stored on the record (file ingestion
    passes what the uploader just reported).

    Raises:
        StorageError: If the object cannot be downloaded.
    """
    data = storage.download_object(path or file.file_path)
    return extract_content(data, media_type or file.file_type, filename or file.filename)


def store_extraction(
    db: Session,
    file: FileUpload,
    result: ExtractionResult,
    max_chars: int = EXTRACTION_CACHE_MAX_CHARS,
) -> CachedExtraction:
    """Write the bounded extraction onto the file record and commit."""
    bounded = truncate_extraction(result.text, max_chars)
    with transaction(db):
        file.extracted_text = bounded
        file.extraction_degraded = result.degraded

    logger.info(
        "extraction.cached",
        file_id=str(file.id),
        text_chars=len(bounded),
        truncated=len(result.text) > len(bounded),
        degraded=result.degraded,
    )
    return CachedExtraction(text=bounded, degraded=result.degraded, from_cache=False)


def get_or_extract(
    db: Session,
    storage: StorageClientBase,
    file: FileUpload,
    max_chars: int = EXTRACTION_CACHE_MAX_CHARS,
) -> CachedExtraction:
    """Return the cached extraction for a file, populating it on first use.

    Args:
        db: Database session.
        storage: Storage client used only on a cache miss.
        file: The file record.
        max_chars: Cap applied before the text is cached.

    Returns:
        CachedExtraction; ``from_cache`` tells whether storage was skipped.

    Raises:
        StorageError: On a cache miss whose download fails.
    """
    if file.extracted_text is not None:
        return CachedExtraction(
            text=file.extracted_text,
            degraded=bool(file.extraction_degraded),
            from_cache=True,
        )

    result = extract_file(storage, file)
    return store_extraction(db, file, result, max_chars)


def extract_and_cache(
    db: Session,
    storage: StorageClientBase,
    file: FileUpload,
    max_chars: int = EXTRACTION_CACHE_MAX_CHARS,
    *,
    path: str | None = None,
    filename: str | None = None,
    media_type: str | None = None,
) -> tuple[ExtractionResult, CachedExtraction]:
    """Unconditionally (re)extract a file and overwrite its cached text.

    Used by file ingestion. Returns the untruncated result alongside the
    cached value so callers can report the full extracted length.
    """
    result = extract_file(storage, file, path=path, filename=filename, media_type=media_type)
    cached = store_extraction(db, file, result, max_chars)
    return result, cached
