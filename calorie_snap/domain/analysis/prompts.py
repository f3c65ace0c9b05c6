"""
Prompt contract for food photo analysis.

The prompt is a fixed template: same text for every request, the image is
attached inline next to it. Instructions about confidence and item count
are advisory; the normalizer enforces them on the model output.
"""

from typing import Any, Dict, List

from calorie_snap.domain.analysis.models import (
    CONFIDENCE_THRESHOLD,
    MAX_FOOD_ITEMS,
    CookingMethod,
    ImagePayload,
)

_COOKING_METHODS = "|".join(method.value for method in CookingMethod)

ANALYSIS_PROMPT = f"""Analyze this food image and provide a detailed calorie breakdown.

Return JSON in this format:
{{
  "foods": [
    {{
      "name": "food item name",
      "calories": number,
      "cooking_method": "{_COOKING_METHODS}",
      "confidence": number (0.0-1.0),
      "portion_estimate": "estimated size",
      "nutrition_info": {{
        "protein": number,
        "carbs": number,
        "fat": number,
        "fiber": number
      }}
    }}
  ],
  "confidence": number
}}

Requirements:
- Maximum {MAX_FOOD_ITEMS} food items
- Minimum {int(CONFIDENCE_THRESHOLD * 100)}% confidence for each item
- Include cooking method when identifiable
- Be precise with nutritional values"""


def build_vision_messages(prompt: str, payload: ImagePayload) -> List[Dict[str, Any]]:
    """
    Build chat messages carrying the prompt and the inline image.

    Example:
        >>> payload = ImagePayload(mime_type="image/jpeg", data="/9j/")
        >>> messages = build_vision_messages(ANALYSIS_PROMPT, payload)
        >>> messages[0]["content"][1]["image_url"]["url"]
        'data:image/jpeg;base64,/9j/'
    """
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": payload.data_url}},
            ],
        }
    ]
