"""Content extraction for uploaded project files.

Turns raw file bytes into text the assistant can read:
- Text-like files (text/*, JSON, XML, common text extensions): UTF-8 decode
- PDFs: page text via pypdf, pages joined with a blank line
- Images: descriptive placeholder (pixels are never read)
- Everything else: descriptive placeholder

Extraction never raises. A parser failure becomes a placeholder flagged as
degraded so context assembly can tell the model some content is missing.
This module has no DB or storage access.
"""

from dataclasses import dataclass
from io import BytesIO

from pypdf import PdfReader

from parley.logging import get_logger

logger = get_logger(__name__)

TEXT_MEDIA_TYPES = frozenset({"application/json", "application/xml"})
TEXT_EXTENSIONS = (".md", ".txt", ".csv", ".log", ".json", ".xml")

# Declared types browsers send when they don't recognise a file
GENERIC_MEDIA_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})

PDF_PAGE_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class ExtractionResult:
    """Extracted text plus whether it is a degraded placeholder."""

    text: str
    degraded: bool


def is_text_like(media_type: str, filename: str) -> bool:
    media_type = media_type.lower()
    if media_type.startswith("text/") or media_type in TEXT_MEDIA_TYPES:
        return True
    return filename.lower().endswith(TEXT_EXTENSIONS)


def is_pdf(media_type: str, filename: str) -> bool:
    media_type = media_type.lower()
    if media_type == "application/pdf":
        return True
    return media_type in GENERIC_MEDIA_TYPES and filename.lower().endswith(".pdf")


def is_image(media_type: str) -> bool:
    return media_type.lower().startswith("image/")


def pdf_failure_placeholder(filename: str, size: int) -> str:
    return (
        f"[PDF Document: {filename}, Size: {size} bytes]\n\n"
        "Automatic text extraction failed for this document. The file is stored and "
        "available. Please specify page ranges or smaller excerpts to analyze."
    )


def pdf_empty_placeholder(filename: str, size: int) -> str:
    return (
        f"[PDF Document: {filename}, Size: {size} bytes]\n\n"
        "No text could be extracted from this PDF."
    )


def image_placeholder(filename: str, media_type: str, size: int) -> str:
    return (
        f"[Image File: {filename}, Type: {media_type}, Size: {size} bytes]\n\n"
        "This image has been uploaded and is available for analysis. The assistant can "
        "view it when it is shared directly in the conversation."
    )


def unsupported_placeholder(filename: str, media_type: str, size: int) -> str:
    return (
        f"[File: {filename}, Type: {media_type}, Size: {size} bytes]\n\n"
        "This file has been uploaded but automatic content extraction is not supported "
        "for this file type. The file is stored and available for download."
    )


def extract_pdf_text(data: bytes) -> str:
    """Extract the text of every page, in page order.

    Raises whatever pypdf raises on a malformed document.
    """
    reader = PdfReader(BytesIO(data))
    return PDF_PAGE_SEPARATOR.join(page.extract_text() or "" for page in reader.pages)


def extract_content(data: bytes, media_type: str | None, filename: str) -> ExtractionResult:
    """Extract usable text from an uploaded file.

    Args:
        data: Raw file bytes.
        media_type: Declared media type of the upload (may be empty).
        filename: Original filename, used for extension sniffing and placeholders.

    Returns:
        ExtractionResult. ``degraded`` is True when the text is a placeholder
        standing in for content that could not be read.
    """
    media_type = media_type or ""
    size = len(data)

    if is_text_like(media_type, filename):
        return ExtractionResult(text=data.decode("utf-8", errors="replace"), degraded=False)

    if is_pdf(media_type, filename):
        try:
            text = extract_pdf_text(data)
        except Exception as e:
            logger.warning(
                "extraction.failed",
                filename=filename,
                media_type=media_type,
                size_bytes=size,
                error_type=type(e).__name__,
            )
            return ExtractionResult(text=pdf_failure_placeholder(filename, size), degraded=True)

        if not text.strip():
            logger.info("extraction.degraded", filename=filename, reason="pdf_no_text")
            return ExtractionResult(text=pdf_empty_placeholder(filename, size), degraded=True)

        logger.info("extraction.pdf_parsed", filename=filename, text_chars=len(text))
        return ExtractionResult(text=text, degraded=False)

    if is_image(media_type):
        return ExtractionResult(
            text=image_placeholder(filename, media_type, size),
            degraded=False,
        )

    logger.info(
        "extraction.degraded",
        filename=filename,
        media_type=media_type,
        reason="unsupported_type",
    )
    return ExtractionResult(
        text=unsupported_placeholder(filename, media_type, size),
        degraded=True,
    )
