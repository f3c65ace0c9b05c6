"""REST endpoint for food photo analysis.

POST /api/analyze with JSON body {"image": "<data URI>", "sessionId": "..."}.
Always answers with the JSON envelope; the HTTP status mirrors the error
code so callers can branch on either.
"""

import json
import time
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from calorie_snap.application.analysis_service import FoodAnalysisService
from calorie_snap.domain.analysis.envelope import build_error_envelope, status_for
from calorie_snap.domain.analysis.models import AnalyzeRequest, ErrorCode, ResponseEnvelope

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])


def client_identity(request: Request) -> str:
    """Rate-limit key: first X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def envelope_response(envelope: ResponseEnvelope) -> JSONResponse:
    return JSONResponse(status_code=status_for(envelope), content=envelope.to_dict())


def _declared_too_large(request: Request, limit: int) -> bool:
    content_length = request.headers.get("content-length")
    if content_length is None:
        return False
    try:
        return int(content_length) > limit
    except ValueError:
        return False


async def _read_capped_body(request: Request, limit: int) -> Optional[bytes]:
    """Read the body stream; None once more than `limit` bytes arrive."""
    size = 0
    chunks: List[bytes] = []
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def _parse_analyze_request(body: bytes) -> AnalyzeRequest:
    """Parse the body; anything unusable becomes an empty request."""
    try:
        parsed: Any = json.loads(body)
    except ValueError:  # invalid JSON or invalid UTF-8
        return AnalyzeRequest()
    if not isinstance(parsed, dict):
        return AnalyzeRequest()
    return AnalyzeRequest.model_validate(parsed)


def _too_large_response(service: FoodAnalysisService, started_at: float) -> JSONResponse:
    max_body = service.settings.max_request_body_bytes
    logger.warning("analysis.body_too_large", limit=max_body)
    return envelope_response(
        build_error_envelope(
            ErrorCode.IMAGE_TOO_LARGE,
            f"Request body too large. Maximum size: {max_body // (1024 * 1024)}MB",
            retryable=False,
            started_at=started_at,
            version=service.settings.app_version,
        )
    )


@router.post("/analyze")
async def analyze_food_photo(request: Request) -> JSONResponse:
    """
    Analyze a food photo and return the calorie breakdown envelope.

    The body cap applies to the declared Content-Length and to the bytes
    actually received, so chunked uploads are bounded too.
    """
    started_at = time.perf_counter()
    service: FoodAnalysisService = request.app.state.analysis_service

    max_body = service.settings.max_request_body_bytes
    if _declared_too_large(request, max_body):
        return _too_large_response(service, started_at)
    body = await _read_capped_body(request, max_body)
    if body is None:
        return _too_large_response(service, started_at)

    analyze_request = _parse_analyze_request(body)
    envelope = await service.analyze(
        analyze_request, identity=client_identity(request), started_at=started_at
    )
    return envelope_response(envelope)
