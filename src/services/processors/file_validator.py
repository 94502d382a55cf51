import logging
from pathlib import Path

from src.config import settings
from src.services.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/bmp",
    "image/tiff",
})

# Extensions offered by the file picker
ACCEPTED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".bmp", ".tiff")

MAX_FILE_SIZE = 50 * 1024 * 1024

# MIME type mapping, used when the upload carries no content type
EXTENSION_TO_MIME = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}

WRONG_TYPE_MESSAGE = "Please upload a PDF or image file (JPEG, PNG, BMP, TIFF)"


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        mb = size / (1024 * 1024)
        return f"{mb:.0f}MB" if mb.is_integer() else f"{mb:.1f}MB"
    if size >= 1024:
        return f"{size // 1024}KB"
    return f"{size} bytes"


def too_large_message(max_size: int) -> str:
    return f"File size must be less than {_format_size(max_size)}"


TOO_LARGE_MESSAGE = too_large_message(MAX_FILE_SIZE)


def normalize_mime_type(mime_type: str | None) -> str:
    """Lowercase a declared content type and drop any parameters (``; charset=...``)."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def detect_mime_type(filename: str | None) -> str:
    """Infer a MIME type from the file extension."""
    ext = Path(filename or "").suffix.lower()
    return EXTENSION_TO_MIME.get(ext, "application/octet-stream")


def validate_upload(mime_type: str | None, size: int | None, max_size: int | None = None) -> None:
    """
    Check a candidate upload against the allowed types and the size limit.

    The type is checked before the size, so an oversized file of the wrong
    type reports the type problem. A ``size`` of None skips the size check,
    for callers that only know the size after reading.

    Raises:
        ValidationError: If the type is not allowed or the file is too large
    """
    if max_size is None:
        max_size = settings.max_upload_bytes

    if normalize_mime_type(mime_type) not in ALLOWED_MIME_TYPES:
        logger.info(f"Rejected upload with type {mime_type!r}")
        raise ValidationError(WRONG_TYPE_MESSAGE)

    if size is not None and size > max_size:
        logger.info(f"Rejected upload of {size} bytes (limit {max_size})")
        raise ValidationError(too_large_message(max_size))
