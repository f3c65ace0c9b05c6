"""Plain-text rendering of analysis envelopes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

COOKING_METHOD_LABELS = {
    "fried": "🍳 Fried",
    "baked": "🍞 Baked",
    "grilled": "🔥 Grilled",
    "steamed": "💨 Steamed",
    "raw": "🥗 Raw",
}


def format_cooking_method(method: Optional[str]) -> str:
    """Display label; unknown methods are shown verbatim."""
    if not method:
        return ""
    return COOKING_METHOD_LABELS.get(method, method)


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_envelope(envelope: Dict[str, Any]) -> str:
    """
    Render either branch of a response envelope.

    Example:
        >>> print(render_envelope({"success": False, "error": {
        ...     "code": "RATE_LIMIT_EXCEEDED", "message": "Too many requests.",
        ...     "retryable": True}}))
        Analysis failed [RATE_LIMIT_EXCEEDED]: Too many requests. (retryable)
    """
    if not envelope.get("success"):
        error = envelope.get("error") or {}
        line = (
            f"Analysis failed [{error.get('code', 'UNKNOWN_ERROR')}]: "
            f"{error.get('message', 'Analysis failed')}"
        )
        if error.get("retryable"):
            line += " (retryable)"
        return line

    data = envelope.get("data") or {}
    lines: List[str] = [f"Total: {_format_number(data.get('total_calories', 0))} calories"]
    foods = data.get("foods") or []
    if not foods:
        lines.append("No food recognized with enough confidence.")
    for food in foods:
        method = format_cooking_method(food.get("cooking_method"))
        confidence = round(float(food.get("confidence", 0)) * 100)
        parts = [
            f"- {food.get('name', '')}",
            f"{_format_number(food.get('calories', 0))} cal",
            f"{confidence}% confidence",
        ]
        if method:
            parts.insert(1, method)
        if food.get("portion_estimate"):
            parts.append(str(food["portion_estimate"]))
        lines.append(" | ".join(parts))
    return "\n".join(lines)
