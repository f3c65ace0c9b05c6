"""
Unit tests for the response envelope and error taxonomy.
"""

import re
import time

import pytest
from pydantic import ValidationError

from calorie_snap.domain.analysis.envelope import (
    STATUS_BY_CODE,
    build_error_envelope,
    build_success_envelope,
    status_for,
    utc_timestamp,
)
from calorie_snap.domain.analysis.models import (
    AnalysisResult,
    ErrorCode,
    ErrorInfo,
    FoodItem,
    ResponseEnvelope,
    ResponseMetadata,
)
from calorie_snap.domain.shared.errors import (
    AnalysisError,
    AnalysisTimeoutError,
    ConfigurationError,
    DomainError,
    ImageTooLargeError,
    InvalidImageError,
    InvalidImageFormatError,
    InvalidSessionError,
    RateLimitExceededError,
)

_ISO_Z = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (ErrorCode.INVALID_IMAGE, 400),
            (ErrorCode.INVALID_SESSION, 400),
            (ErrorCode.IMAGE_TOO_LARGE, 413),
            (ErrorCode.RATE_LIMIT_EXCEEDED, 429),
            (ErrorCode.SERVICE_CONFIG_ERROR, 500),
            (ErrorCode.UNKNOWN_ERROR, 500),
            (ErrorCode.ANALYSIS_TIMEOUT, 504),
        ],
    )
    def test_error_status(self, code: ErrorCode, status: int) -> None:
        envelope = build_error_envelope(code, "x", retryable=False)

        assert status_for(envelope) == status

    def test_every_code_is_mapped(self) -> None:
        assert set(STATUS_BY_CODE) == set(ErrorCode)

    def test_success_is_200(self) -> None:
        envelope = build_success_envelope(AnalysisResult.empty(), time.perf_counter(), "m")

        assert status_for(envelope) == 200


class TestSuccessEnvelope:
    def test_shape(self) -> None:
        result = AnalysisResult(
            foods=[FoodItem(name="apple", calories=95, confidence=0.97)],
            total_calories=95,
            confidence=0.97,
        )

        body = build_success_envelope(
            result, time.perf_counter(), model="gpt-4o-mini", version="1.0.0"
        ).to_dict()

        assert body["success"] is True
        assert "error" not in body
        data = body["data"]
        assert data["total_calories"] == 95
        assert data["foods"][0]["name"] == "apple"
        assert data["processing_time_ms"] >= 0
        assert data["metadata"]["model"] == "gpt-4o-mini"
        assert data["metadata"]["version"] == "1.0.0"
        assert _ISO_Z.match(data["metadata"]["timestamp"])
        assert body["metadata"]["processing_time_ms"] == data["processing_time_ms"]
        assert body["metadata"]["timestamp"] == data["metadata"]["timestamp"]

    def test_processing_time_is_measured(self) -> None:
        started_at = time.perf_counter() - 0.25

        envelope = build_success_envelope(AnalysisResult.empty(), started_at, "m")

        assert envelope.metadata.processing_time_ms >= 250


class TestErrorEnvelope:
    def test_shape(self) -> None:
        body = build_error_envelope(
            ErrorCode.RATE_LIMIT_EXCEEDED,
            "Too many requests. Please try again later.",
            retryable=True,
        ).to_dict()

        assert body["success"] is False
        assert "data" not in body
        assert body["error"] == {
            "code": "RATE_LIMIT_EXCEEDED",
            "message": "Too many requests. Please try again later.",
            "retryable": True,
        }
        assert body["metadata"]["processing_time_ms"] == 0
        assert body["metadata"]["version"] == "1.0.0"
        assert _ISO_Z.match(body["metadata"]["timestamp"])

    def test_success_cannot_carry_error(self) -> None:
        with pytest.raises(ValidationError):
            ResponseEnvelope(
                success=True,
                error=ErrorInfo(code=ErrorCode.UNKNOWN_ERROR, message="x", retryable=False),
                metadata=ResponseMetadata(timestamp=utc_timestamp()),
            )


class TestAnalysisErrors:
    @pytest.mark.parametrize(
        ("error_cls", "code", "retryable"),
        [
            (RateLimitExceededError, ErrorCode.RATE_LIMIT_EXCEEDED, True),
            (InvalidImageError, ErrorCode.INVALID_IMAGE, False),
            (InvalidImageFormatError, ErrorCode.INVALID_IMAGE, False),
            (InvalidSessionError, ErrorCode.INVALID_SESSION, False),
            (ImageTooLargeError, ErrorCode.IMAGE_TOO_LARGE, False),
            (AnalysisTimeoutError, ErrorCode.ANALYSIS_TIMEOUT, True),
            (ConfigurationError, ErrorCode.SERVICE_CONFIG_ERROR, False),
        ],
    )
    def test_code_and_retry_policy(
        self, error_cls: type[AnalysisError], code: ErrorCode, retryable: bool
    ) -> None:
        err = error_cls()

        assert isinstance(err, DomainError)
        assert err.code == code
        assert err.retryable is retryable
        assert err.message == error_cls.default_message
        assert str(err) == err.message

    def test_message_override(self) -> None:
        err = ImageTooLargeError("Request body too large. Maximum size: 10MB")

        assert err.message == "Request body too large. Maximum size: 10MB"
        assert err.code == ErrorCode.IMAGE_TOO_LARGE
