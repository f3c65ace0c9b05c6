"""Image capture helpers: turn a photo into the data URI the API expects."""

from __future__ import annotations

import base64
import io
from pathlib import Path
from typing import Optional, Union

from PIL import Image

# Same quality the browser capture uses (canvas.toDataURL('image/jpeg', 0.92))
DEFAULT_JPEG_QUALITY = 0.92


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency on white; JPEG has no alpha channel."""
    if img.mode in ("RGBA", "LA", "P"):
        background = Image.new("RGB", img.size, (255, 255, 255))
        if img.mode == "P":
            img = img.convert("RGBA")
        mask = img.split()[-1] if img.mode in ("RGBA", "LA") else None
        background.paste(img, mask=mask)
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def encode_image(
    img: Image.Image,
    quality: float = DEFAULT_JPEG_QUALITY,
    max_side: Optional[int] = None,
) -> str:
    """
    Encode a frame as a JPEG data URI.

    Args:
        img: Captured frame
        quality: JPEG quality in 0-1, as in the browser API
        max_side: Downscale so the longer side is at most this many pixels

    Returns:
        data:image/jpeg;base64,<payload>
    """
    if not 0 < quality <= 1:
        raise ValueError(f"quality must be in (0, 1]: {quality}")

    frame = _to_rgb(img)
    if max_side and max(frame.size) > max_side:
        frame = frame.copy()
        frame.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)

    output = io.BytesIO()
    frame.save(output, format="JPEG", quality=round(quality * 100))
    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def encode_image_file(
    path: Union[str, Path],
    quality: float = DEFAULT_JPEG_QUALITY,
    max_side: Optional[int] = None,
) -> str:
    """
    Read an image file and encode it as a JPEG data URI.

    Example:
        >>> uri = encode_image_file("lunch.png", max_side=1024)
        >>> uri.startswith("data:image/jpeg;base64,")
        True
    """
    with Image.open(path) as img:
        img.load()
        return encode_image(img, quality=quality, max_side=max_side)
