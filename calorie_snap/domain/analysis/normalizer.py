"""
Normalization of free-form vision model output.

The model is asked for JSON but answers in free text that usually, not
always, embeds a JSON object. Extraction has two outcomes (parsed object
or explicit failure) and normalization never raises: an unusable answer
becomes an empty AnalysisResult.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from calorie_snap.domain.analysis.models import (
    CONFIDENCE_THRESHOLD,
    MAX_FOOD_ITEMS,
    AnalysisResult,
    FoodItem,
    NutritionInfo,
)

logger = structlog.get_logger(__name__)

# Greedy: first "{" up to the last "}" in the whole text.
_JSON_SPAN = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class JsonExtraction:
    """Outcome of extract_json: either data or a failure reason."""

    ok: bool
    data: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, data: Dict[str, Any]) -> JsonExtraction:
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: str) -> JsonExtraction:
        return cls(ok=False, reason=reason)


def extract_json(text: Any) -> JsonExtraction:
    """
    Extract the embedded JSON object from model text.

    Example:
        >>> extract_json('Sure! {"foods": []} Enjoy.').data
        {'foods': []}
        >>> extract_json("no json here").reason
        'NO_JSON_OBJECT'
    """
    if not isinstance(text, str):
        return JsonExtraction.failure("NO_JSON_OBJECT")

    match = _JSON_SPAN.search(text)
    if match is None:
        return JsonExtraction.failure("NO_JSON_OBJECT")

    try:
        parsed = json.loads(match.group(0))
    except (ValueError, RecursionError):
        return JsonExtraction.failure("INVALID_JSON")

    if not isinstance(parsed, dict):
        return JsonExtraction.failure("ROOT_NOT_OBJECT")
    return JsonExtraction.success(parsed)


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass; JSON true/false are not numbers here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN, Infinity and overflowed literals such as 1e400 are not usable amounts
    try:
        finite = math.isfinite(value)
    except OverflowError:  # ints beyond float range
        return None
    return value if finite else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _nutrition(raw: Any) -> NutritionInfo:
    if not isinstance(raw, dict):
        return NutritionInfo()
    return NutritionInfo(
        **{
            field: _number(raw.get(field)) or 0
            for field in ("protein", "carbs", "fat", "fiber")
        }
    )


def _food_item(raw: Dict[str, Any], confidence: float) -> FoodItem:
    return FoodItem(
        name=_text(raw.get("name")) or "",
        calories=_number(raw.get("calories")) or 0,
        cooking_method=_text(raw.get("cooking_method")),
        confidence=confidence,
        portion_estimate=_text(raw.get("portion_estimate")),
        nutrition_info=_nutrition(raw.get("nutrition_info")),
    )


def _confident_items(raw_foods: List[Any]) -> List[FoodItem]:
    items: List[FoodItem] = []
    for raw in raw_foods:
        if not isinstance(raw, dict):
            continue
        confidence = _number(raw.get("confidence"))
        if confidence is None or confidence < CONFIDENCE_THRESHOLD:
            continue
        items.append(_food_item(raw, confidence))
    return items


def _total_calories(raw_foods: List[Any]) -> float:
    """Sum over every reported item, before any filtering."""
    total: float = 0
    for raw in raw_foods:
        if isinstance(raw, dict):
            total += _number(raw.get("calories")) or 0
    return total if _number(total) is not None else 0


def normalize_response(raw_text: Any) -> AnalysisResult:
    """
    Turn model text into an AnalysisResult.

    Steps:
    1. Extract the embedded JSON object
    2. Keep items with confidence >= 0.9 (missing confidence drops the item)
    3. Keep the first 5 survivors, original order
    4. total_calories sums every parsed item, filtered or not
    5. confidence: parsed value, else 0.9 if anything survived, else 0

    Args:
        raw_text: Free-form model answer

    Returns:
        AnalysisResult; the empty result when the answer is unusable

    Example:
        >>> result = normalize_response("I cannot see any food.")
        >>> result.foods, result.total_calories, result.confidence
        ([], 0.0, 0.0)
    """
    extraction = extract_json(raw_text)
    if not extraction.ok or extraction.data is None:
        logger.warning("normalize.fallback", reason=extraction.reason)
        return AnalysisResult.empty()

    parsed = extraction.data
    raw_foods = parsed.get("foods")
    if raw_foods is None:
        raw_foods = []
    if not isinstance(raw_foods, list):
        logger.warning("normalize.fallback", reason="FOODS_NOT_LIST")
        return AnalysisResult.empty()

    confident = _confident_items(raw_foods)
    foods = confident[:MAX_FOOD_ITEMS]

    confidence = _number(parsed.get("confidence"))
    if confidence is None:
        confidence = CONFIDENCE_THRESHOLD if confident else 0

    result = AnalysisResult(
        foods=foods,
        total_calories=_total_calories(raw_foods),
        confidence=confidence,
    )
    logger.debug(
        "normalize.completed",
        reported=len(raw_foods),
        confident=len(confident),
        returned=len(foods),
    )
    return result
