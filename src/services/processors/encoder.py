import base64
import logging
from typing import BinaryIO

from src.services.errors import ReadError

logger = logging.getLogger(__name__)


def file_to_base64(source: bytes | BinaryIO) -> str:
    """
    Convert a file (image or pdf) to base64 without a data-URL prefix.

    Args:
        source: Raw bytes or a binary file object opened for reading

    Raises:
        ReadError: If the content cannot be read
    """
    try:
        data = source.read() if hasattr(source, "read") else source
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"expected bytes, got {type(data).__name__}")
        return base64.b64encode(data).decode("ascii")
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to read document: {e}")
        raise ReadError() from e
