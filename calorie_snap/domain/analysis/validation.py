"""Cheap input checks run before any expensive work."""

from __future__ import annotations

import re
from typing import Any

from calorie_snap.domain.analysis.models import MAX_IMAGE_STRING_LENGTH

MAX_SESSION_ID_LENGTH = 100

# Partial match: one allowed character anywhere is enough.
_SESSION_CHARS = re.compile(r"[A-Za-z0-9_-]+")


def _valid_image(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if not value.startswith("data:image/"):
        return False
    return len(value) <= MAX_IMAGE_STRING_LENGTH


def _valid_session(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    if len(value) > MAX_SESSION_ID_LENGTH:
        return False
    return _SESSION_CHARS.search(value) is not None


_VALIDATORS = {
    "image": _valid_image,
    "session": _valid_session,
}


def validate_input(value: Any, kind: str) -> bool:
    """
    Validate a request field.

    Args:
        value: Raw field value from the request body
        kind: "image" or "session"; anything else is rejected

    Returns:
        True if the value is acceptable for its kind

    Example:
        >>> validate_input("data:image/png;base64,AAAA", "image")
        True
        >>> validate_input("abc", "password")
        False
    """
    check = _VALIDATORS.get(kind)
    if check is None:
        return False
    return check(value)
