"""
Domain models for food photo analysis.

Request-scoped payloads, the normalized analysis result and the public
response envelope returned by the HTTP endpoint.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


# Confidence an item needs to be returned to the caller.
CONFIDENCE_THRESHOLD = 0.9
# Items kept after filtering, in model output order.
MAX_FOOD_ITEMS = 5
# Estimated decoded image size ceiling (4 MiB).
MAX_DECODED_IMAGE_BYTES = 4 * 1024 * 1024
# Raw data URI length guard applied before decoding (5 MiB).
MAX_IMAGE_STRING_LENGTH = 5 * 1024 * 1024
API_VERSION = "1.0.0"


class ErrorCode(str, Enum):
    """Closed set of public error codes."""

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INVALID_IMAGE = "INVALID_IMAGE"
    INVALID_SESSION = "INVALID_SESSION"
    IMAGE_TOO_LARGE = "IMAGE_TOO_LARGE"
    ANALYSIS_TIMEOUT = "ANALYSIS_TIMEOUT"
    SERVICE_CONFIG_ERROR = "SERVICE_CONFIG_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class CookingMethod(str, Enum):
    """Cooking methods the prompt asks the model to choose from."""

    FRIED = "fried"
    BAKED = "baked"
    GRILLED = "grilled"
    STEAMED = "steamed"
    RAW = "raw"


class ImagePayload(BaseModel):
    """
    Image ready to be sent inline to the vision model.

    Attributes:
        mime_type: image/<subtype>
        data: Base64 payload, still encoded

    Example:
        >>> payload = ImagePayload(mime_type="image/jpeg", data="/9j/4AAQ")
        >>> payload.data_url
        'data:image/jpeg;base64,/9j/4AAQ'
    """

    model_config = ConfigDict(frozen=True)

    mime_type: str = Field(..., pattern=r"^image/\w+$", description="MIME type")
    data: str = Field(..., min_length=1, description="Base64 encoded bytes")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class NutritionInfo(BaseModel):
    """Macro-nutrient estimate in grams."""

    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0


class FoodItem(BaseModel):
    """
    Single food item returned by the analysis.

    cooking_method is normally one of CookingMethod but the model is
    untrusted, so any string (or nothing) is kept as-is.

    Example:
        >>> item = FoodItem(
        ...     name="apple",
        ...     calories=95,
        ...     cooking_method="raw",
        ...     confidence=0.97,
        ...     portion_estimate="1 medium",
        ... )
        >>> item.nutrition_info.protein
        0.0
    """

    name: str = ""
    calories: float = 0.0
    cooking_method: Optional[str] = None
    confidence: float = 0.0
    portion_estimate: Optional[str] = None
    nutrition_info: NutritionInfo = Field(default_factory=NutritionInfo)


class AnalysisResult(BaseModel):
    """
    Normalized analysis of one photo.

    Attributes:
        foods: At most 5 items, each with confidence >= 0.9
        total_calories: Sum over every item the model reported
        confidence: Overall confidence
    """

    foods: List[FoodItem] = Field(default_factory=list)
    total_calories: float = 0.0
    confidence: float = 0.0

    @classmethod
    def empty(cls) -> AnalysisResult:
        """Fallback result used when the model output is unusable."""
        return cls(foods=[], total_calories=0, confidence=0)


class AnalyzeRequest(BaseModel):
    """
    Body of POST /api/analyze.

    Fields are typed as Any: shape checks belong to the input
    validator so that bad input maps to INVALID_IMAGE/INVALID_SESSION
    instead of a framework 422.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image: Any = None
    session_id: Any = Field(None, alias="sessionId")


class ErrorInfo(BaseModel):
    """Error branch of the envelope."""

    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    retryable: bool


class ResponseMetadata(BaseModel):
    """Envelope-level metadata."""

    timestamp: str
    version: str = API_VERSION
    processing_time_ms: int = Field(0, ge=0)


class AnalysisMetadata(BaseModel):
    """Metadata attached to successful analysis data."""

    model: str
    timestamp: str
    version: str = API_VERSION


class AnalysisData(AnalysisResult):
    """Success payload: the result plus timing and model metadata."""

    processing_time_ms: int = Field(0, ge=0)
    metadata: AnalysisMetadata


class ResponseEnvelope(BaseModel):
    """
    Outer JSON structure of every response.

    Exactly one of data/error is set, depending on success.
    """

    success: bool
    data: Optional[AnalysisData] = None
    error: Optional[ErrorInfo] = None
    metadata: ResponseMetadata

    @field_validator("error")
    @classmethod
    def error_only_on_failure(
        cls, v: Optional[ErrorInfo], info: ValidationInfo
    ) -> Optional[ErrorInfo]:
        if v is not None and info.data.get("success"):
            raise ValueError("Successful envelope cannot carry an error")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the branch that does not apply."""
        exclude = {"error"} if self.success else {"data"}
        return self.model_dump(mode="json", exclude=exclude)
