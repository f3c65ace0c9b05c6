"""Data URI decoding and decoded-size enforcement."""

from __future__ import annotations

import math
import re

from calorie_snap.domain.analysis.models import ImagePayload, MAX_DECODED_IMAGE_BYTES
from calorie_snap.domain.shared.errors import ImageTooLargeError, InvalidImageFormatError

_DATA_URI = re.compile(r"data:image/(\w+);base64,(.+)", re.ASCII)
_BASE64_BODY = re.compile(r"[A-Za-z0-9+/]+={0,2}")


def estimate_decoded_size(encoded: str) -> int:
    """Decoded byte count estimated from base64 length, without decoding."""
    return math.ceil(len(encoded) * 3 / 4)


def decode_image_payload(image: str) -> ImagePayload:
    """
    Split a data URI into MIME type and base64 data.

    Args:
        image: data:image/<subtype>;base64,<payload>

    Returns:
        ImagePayload with the declared MIME type and the encoded data

    Raises:
        InvalidImageFormatError: Not a base64 image data URI
        ImageTooLargeError: Estimated decoded size above 4 MiB

    Example:
        >>> payload = decode_image_payload("data:image/png;base64,iVBORw0K")
        >>> payload.mime_type
        'image/png'
    """
    match = _DATA_URI.fullmatch(image)
    if match is None:
        raise InvalidImageFormatError()

    subtype, data = match.groups()
    if _BASE64_BODY.fullmatch(data) is None:
        raise InvalidImageFormatError()

    if estimate_decoded_size(data) > MAX_DECODED_IMAGE_BYTES:
        raise ImageTooLargeError()

    return ImagePayload(mime_type=f"image/{subtype}", data=data)
