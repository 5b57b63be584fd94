"""
Image uploads as data URIs.
"""
import base64
import binascii
import logging
import mimetypes
import re
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

from fastapi import UploadFile

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif"}
DEFAULT_MAX_BYTES = 10 * 1024 * 1024

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[^,;]+=[^,;]*)*;base64,(?P<data>.*)$", re.DOTALL)


class InvalidImageError(ValueError):
    pass


class ImageUpload(NamedTuple):
    filename: str
    mime_type: str
    data_uri: str


def to_data_uri(content: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(content).decode('ascii')}"


def split_data_uri(uri: str) -> Tuple[str, str]:
    """Return (mime_type, base64 payload) without decoding the payload."""
    m = _DATA_URI_RE.match(uri.strip()) if uri else None
    if not m or not m.group("data"):
        raise InvalidImageError("Image must be a base64 data URI: 'data:<mimetype>;base64,<encoded_data>'")
    return m.group("mime"), m.group("data")


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    mime_type, data = split_data_uri(uri)
    try:
        return mime_type, base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Image data is not valid base64: {e}") from e


def check_image_data_uri(uri: str, max_bytes: int = DEFAULT_MAX_BYTES) -> Tuple[str, str]:
    """
    Apply the upload policy to a posted data URI: ``image/*`` only, decoded size within ``max_bytes``.
    Returns (mime_type, base64 payload).
    """
    mime_type, data = split_data_uri(uri)
    if not mime_type.lower().startswith("image/"):
        raise InvalidImageError(f"Unsupported image type: {mime_type}")
    payload = data.strip()
    decoded_size = len(payload) * 3 // 4 - (len(payload) - len(payload.rstrip("=")))
    if decoded_size > max_bytes:
        raise InvalidImageError(_too_large(max_bytes))
    return mime_type, data


def _too_large(max_bytes: int) -> str:
    return f"File must be under {max_bytes // (1024 * 1024)} MB"


def load_image(
    filename: Optional[str],
    content_type: Optional[str],
    content: bytes,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> Optional[ImageUpload]:
    """
    Turn raw upload bytes into an ImageUpload. Empty content means the slot was cleared and yields None.
    """
    if not content:
        return None

    filename = filename or ""
    ext = Path(filename).suffix.lower()
    if ext and ext not in IMAGE_EXTENSIONS:
        raise InvalidImageError(f"Unsupported format: {ext}")

    mime_type = (content_type or "").split(";")[0].strip().lower()
    if not mime_type.startswith("image/"):
        guessed, _ = mimetypes.guess_type(filename)
        mime_type = guessed or ""
    if not mime_type.startswith("image/"):
        raise InvalidImageError("File is not an image")

    if len(content) > max_bytes:
        raise InvalidImageError(_too_large(max_bytes))

    logger.info("Image loaded: %s (%s, %d bytes)", filename or "<unnamed>", mime_type, len(content))
    return ImageUpload(filename=filename, mime_type=mime_type, data_uri=to_data_uri(content, mime_type))


async def read_upload(file: Optional[UploadFile], max_bytes: int = DEFAULT_MAX_BYTES) -> Optional[ImageUpload]:
    if file is None:
        return None
    content = await file.read()
    return load_image(file.filename, file.content_type, content, max_bytes)
