"""Image payload decoding for data URLs and bare base64 strings."""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

from .core.exceptions import ValidationError

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus their MIME type."""
    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def extension(self) -> str:
        return extension_for(self.mime_type)

    def to_base64(self) -> str:
        return encode_base64(self.data)

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


def extension_for(mime_type: str) -> str:
    return MIME_EXTENSIONS.get(mime_type.lower(), ".jpg")


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_image(
    value: str,
    default_mime: str = "image/jpeg",
    max_bytes: Optional[int] = None,
    field: str = "image",
) -> ImagePayload:
    """
    Decode a data URL (``data:image/png;base64,...``) or bare base64 string.

    Raises:
        ValidationError: If the value is empty, not an image, not valid
            base64, or larger than ``max_bytes``
    """
    if not value or not value.strip():
        raise ValidationError(f"Missing {field}.")

    mime_type = default_mime
    encoded = value.strip()
    match = DATA_URL_RE.match(encoded)
    if match:
        mime_type = match.group("mime").lower()
        encoded = match.group("data")
    elif encoded.startswith("data:"):
        raise ValidationError(f"Malformed data URL for {field}.")

    if not mime_type.startswith("image/"):
        raise ValidationError(f"Unsupported content type for {field}: {mime_type}")

    try:
        data = base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(f"Invalid base64 data for {field}.")

    if not data:
        raise ValidationError(f"Empty {field}.")
    if max_bytes is not None and len(data) > max_bytes:
        raise ValidationError(f"{field} exceeds {max_bytes} bytes.")

    return ImagePayload(data=data, mime_type=mime_type)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_file_name(name: str, fallback: str = "image") -> str:
    """Reduce a client-supplied file name to a safe blob key segment."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:100] or fallback
