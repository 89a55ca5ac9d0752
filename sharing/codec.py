"""
Payload codec.

File bytes are stored as data URLs (``data:<type>;base64,<payload>``) so the
payload fits in a text column or a JSON document. Only base64 characters
appear after the header, so the text never carries control characters.
"""

import base64
import binascii
from typing import Callable, Optional

from sharing.errors import CorruptPayload, EncodingFailure
from sharing.models import DEFAULT_FILE_TYPE

# Multiple of 3 so chunks encode without inner padding
CHUNK_SIZE = 3 * 64 * 1024

_DATA_PREFIX = "data:"
_BASE64_MARKER = ";base64,"


def encode(
    raw: bytes,
    file_type: str = DEFAULT_FILE_TYPE,
    progress: Optional[Callable[[int], None]] = None,
) -> str:
    """Encode raw bytes as a data URL, reporting each encoded chunk's size to `progress`."""
    if not isinstance(raw, (bytes, bytearray, memoryview)):
        raise EncodingFailure(f"Expected bytes, got {type(raw).__name__}")
    media_type = _clean_media_type(file_type)

    view = memoryview(raw)
    parts: list[str] = []
    for start in range(0, len(view), CHUNK_SIZE):
        chunk = view[start:start + CHUNK_SIZE]
        parts.append(base64.b64encode(chunk).decode("ascii"))
        if progress is not None:
            progress(len(chunk))

    return f"{_DATA_PREFIX}{media_type}{_BASE64_MARKER}{''.join(parts)}"


def decode(text: str) -> bytes:
    """Decode a data URL (or bare base64 text) back to the original bytes."""
    if not isinstance(text, str):
        raise CorruptPayload(f"Expected text payload, got {type(text).__name__}")

    body = text
    if text.startswith(_DATA_PREFIX):
        header, sep, body = text.partition(",")
        if not sep or not header.endswith(";base64"):
            raise CorruptPayload("Payload is a data URL without base64 content")

    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CorruptPayload(f"Payload is not valid base64: {e}") from e


def _clean_media_type(file_type: str) -> str:
    # Parameters such as "; charset=utf-8" are dropped from the header
    media_type = (file_type or "").split(";", 1)[0].strip()
    if not media_type:
        return DEFAULT_FILE_TYPE
    if "," in media_type or not media_type.isprintable():
        raise EncodingFailure(f"Unsupported file type label: {file_type!r}")
    return media_type
