"""
Response envelope construction and HTTP status mapping.

Every response, success or failure, is wrapped with processing time, API
version and an ISO-8601 UTC timestamp.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Dict, Optional

from calorie_snap.domain.analysis.models import (
    API_VERSION,
    AnalysisData,
    AnalysisMetadata,
    AnalysisResult,
    ErrorCode,
    ErrorInfo,
    ResponseEnvelope,
    ResponseMetadata,
)

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.INVALID_IMAGE: 400,
    ErrorCode.INVALID_SESSION: 400,
    ErrorCode.IMAGE_TOO_LARGE: 413,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.SERVICE_CONFIG_ERROR: 500,
    ErrorCode.UNKNOWN_ERROR: 500,
    ErrorCode.ANALYSIS_TIMEOUT: 504,
}


def utc_timestamp() -> str:
    """Current time as ISO-8601 with millisecond precision, Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def elapsed_ms(started_at: float) -> int:
    """Milliseconds since started_at (a time.perf_counter() value)."""
    return max(0, int((time.perf_counter() - started_at) * 1000))


def status_for(envelope: ResponseEnvelope) -> int:
    """HTTP status for an envelope."""
    if envelope.success or envelope.error is None:
        return 200
    return STATUS_BY_CODE.get(ErrorCode(envelope.error.code), 500)


def build_success_envelope(
    result: AnalysisResult,
    started_at: float,
    model: str,
    version: str = API_VERSION,
) -> ResponseEnvelope:
    """
    Wrap an analysis result.

    Example:
        >>> envelope = build_success_envelope(
        ...     AnalysisResult.empty(), time.perf_counter(), "gpt-4o-mini"
        ... )
        >>> status_for(envelope)
        200
    """
    processing_time_ms = elapsed_ms(started_at)
    timestamp = utc_timestamp()
    data = AnalysisData(
        **result.model_dump(),
        processing_time_ms=processing_time_ms,
        metadata=AnalysisMetadata(model=model, timestamp=timestamp, version=version),
    )
    return ResponseEnvelope(
        success=True,
        data=data,
        metadata=ResponseMetadata(
            timestamp=timestamp, version=version, processing_time_ms=processing_time_ms
        ),
    )


def build_error_envelope(
    code: ErrorCode,
    message: str,
    retryable: bool,
    started_at: Optional[float] = None,
    version: str = API_VERSION,
) -> ResponseEnvelope:
    """Wrap an error; processing time is 0 without a start time."""
    return ResponseEnvelope(
        success=False,
        error=ErrorInfo(code=code, message=message, retryable=retryable),
        metadata=ResponseMetadata(
            timestamp=utc_timestamp(),
            version=version,
            processing_time_ms=elapsed_ms(started_at) if started_at is not None else 0,
        ),
    )
