"""
Domain exceptions.

Typed exceptions for explicit error handling.
Each analysis error knows the public error code it maps to and whether a
caller may safely re-send the same request.
"""

from __future__ import annotations

from typing import ClassVar

from calorie_snap.domain.analysis.models import ErrorCode


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# ANALYSIS PIPELINE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class AnalysisError(DomainError):
    """
    Base exception for the analysis pipeline.

    Subclasses pin the public error code, the retry policy and a default
    user-facing message. The message can be overridden per raise site.

    Example:
        >>> err = ImageTooLargeError()
        >>> err.code
        <ErrorCode.IMAGE_TOO_LARGE: 'IMAGE_TOO_LARGE'>
        >>> err.retryable
        False
    """

    code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN_ERROR
    retryable: ClassVar[bool] = False
    default_message: ClassVar[str] = "Analysis failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimitExceededError(AnalysisError):
    """
    Client exceeded its request allowance for the current window.

    Raised when:
    - More than max_requests calls arrive within the window
    """

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    retryable = True
    default_message = "Too many requests. Please try again later."


class InvalidImageError(AnalysisError):
    """
    Image field missing or not an image data URI.

    Raised when:
    - Image is not a string
    - Image does not start with data:image/
    - Image string exceeds the pre-decode length guard
    """

    code = ErrorCode.INVALID_IMAGE
    default_message = "Image field is required and must be valid base64"


class InvalidImageFormatError(InvalidImageError):
    """
    Image string does not follow data:image/<subtype>;base64,<payload>.

    Example:
        >>> raise InvalidImageFormatError("Invalid base64 image format")
    """

    default_message = "Invalid base64 image format"


class InvalidSessionError(AnalysisError):
    """Session id present but malformed."""

    code = ErrorCode.INVALID_SESSION
    default_message = "Invalid session ID format"


class ImageTooLargeError(AnalysisError):
    """
    Image larger than the decoded-size ceiling (or body over transport cap).

    Example:
        >>> raise ImageTooLargeError()
    """

    code = ErrorCode.IMAGE_TOO_LARGE
    default_message = "Image too large. Maximum size: 4MB"


class AnalysisTimeoutError(AnalysisError):
    """
    Vision model did not answer before the deadline.

    Raised when:
    - asyncio deadline expires
    - SDK reports a request timeout
    """

    code = ErrorCode.ANALYSIS_TIMEOUT
    retryable = True
    default_message = "Analysis took too long. Please try with a smaller image."


class ConfigurationError(AnalysisError):
    """
    Service is not configured to call the vision model.

    Raised when:
    - OPENAI_API_KEY missing
    - Provider rejects the credential
    """

    code = ErrorCode.SERVICE_CONFIG_ERROR
    default_message = "Service configuration error"
