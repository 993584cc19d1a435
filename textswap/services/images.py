"""Image reference helpers.

Requests carry images as ``data:image/...;base64,...`` URIs or as http(s)
URLs; raw bytes handed to a RequestTemplate are encoded into a data URI
here. Pillow is used only to identify the format of raw bytes, the pixels
themselves are never decoded.
"""

from __future__ import annotations

import base64
import io
import re
from typing import Final

from PIL import Image, UnidentifiedImageError

from textswap.core.exceptions import ValidationError


_DATA_URI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^data:image/(?P<subtype>[a-zA-Z0-9.+-]+);base64,", re.IGNORECASE
)
_URL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^https?://\S+$", re.IGNORECASE)


def is_image_reference(value: str) -> bool:
    """Check that value is an image data URI or an http(s) URL."""
    return bool(_DATA_URI_PATTERN.match(value) or _URL_PATTERN.match(value))


def ensure_image_reference(value: str, field: str = "imageDataUrl") -> str:
    """Validate an image reference from a request body.

    Raises:
        ValidationError: If value is neither a data URI nor a URL.
    """
    if not is_image_reference(value):
        raise ValidationError(
            f"{field} must be an image data URL or an http(s) URL",
            field=field,
        )
    return value


def encode_image_bytes(data: bytes) -> str:
    """Encode raw image bytes as a data URI, sniffing the format with Pillow.

    Args:
        data: Encoded image file contents (PNG, JPEG, WebP, ...).

    Returns:
        ``data:image/<format>;base64,<payload>``

    Raises:
        ValidationError: If the bytes are not a recognisable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Unrecognised image data: {e}", field="image") from e

    if not image_format:
        raise ValidationError("Unrecognised image data", field="image")

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:image/{image_format.lower()};base64,{encoded}"
