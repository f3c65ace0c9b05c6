"""
Food photo analysis service.

Runs the request pipeline: admission → validation → credential check →
decoding → model call → normalization → envelope. Every stage can stop
the pipeline with a typed AnalysisError, which becomes an error envelope.
"""

from __future__ import annotations

import time
from typing import Optional

import structlog

from calorie_snap.config import Settings
from calorie_snap.domain.analysis.envelope import (
    build_error_envelope,
    build_success_envelope,
)
from calorie_snap.domain.analysis.models import AnalyzeRequest, ErrorCode, ResponseEnvelope
from calorie_snap.domain.analysis.normalizer import normalize_response
from calorie_snap.domain.analysis.payload import decode_image_payload
from calorie_snap.domain.analysis.ports import IVisionModel
from calorie_snap.domain.analysis.prompts import ANALYSIS_PROMPT
from calorie_snap.domain.analysis.validation import validate_input
from calorie_snap.domain.shared.errors import (
    AnalysisError,
    ConfigurationError,
    InvalidImageError,
    InvalidSessionError,
    RateLimitExceededError,
)
from calorie_snap.infrastructure.ai.openai_client import OpenAIVisionClient
from calorie_snap.infrastructure.rate_limit.sliding_window import SlidingWindowRateLimiter

logger = structlog.get_logger(__name__)


class FoodAnalysisService:
    """
    Orchestrates one analysis request.

    The rate limiter is injected and owned by the caller (the app), so
    its state lives exactly as long as the app does. The vision client is
    either injected (tests) or created on first use from settings.

    Example:
        >>> service = FoodAnalysisService(Settings.from_env(), SlidingWindowRateLimiter())
        >>> envelope = await service.analyze(
        ...     AnalyzeRequest(image="data:image/jpeg;base64,/9j/..."),
        ...     identity="203.0.113.7",
        ... )
        >>> envelope.success
        True
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: SlidingWindowRateLimiter,
        vision_client: Optional[IVisionModel] = None,
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter
        self._vision_client = vision_client

    def _get_vision_client(self) -> IVisionModel:
        """Injected client, or one built from settings."""
        if self._vision_client is None:
            if not self.settings.openai_api_key:
                raise ConfigurationError()
            self._vision_client = OpenAIVisionClient(
                api_key=self.settings.openai_api_key,
                model=self.settings.vision_model,
                max_output_tokens=self.settings.max_output_tokens,
                temperature=self.settings.temperature,
                timeout_s=self.settings.analysis_timeout_s,
            )
        return self._vision_client

    def _admit(self, identity: str) -> None:
        admitted = self.rate_limiter.check_rate_limit(
            identity,
            max_requests=self.settings.rate_limit_max_requests,
            window_seconds=self.settings.rate_limit_window_s,
        )
        if not admitted:
            raise RateLimitExceededError()

    @staticmethod
    def _validate(request: AnalyzeRequest) -> str:
        if not validate_input(request.image, "image"):
            raise InvalidImageError()
        # any falsy sessionId (null, "", 0, false) counts as absent
        if request.session_id:
            if not validate_input(request.session_id, "session"):
                raise InvalidSessionError()
        return request.image

    async def analyze(
        self,
        request: AnalyzeRequest,
        identity: str,
        started_at: Optional[float] = None,
    ) -> ResponseEnvelope:
        """
        Analyze one photo and wrap the outcome.

        Args:
            request: Parsed request body
            identity: Client identity for rate limiting
            started_at: time.perf_counter() at request arrival

        Returns:
            Success or error envelope; never raises
        """
        started_at = time.perf_counter() if started_at is None else started_at
        version = self.settings.app_version
        log = logger.bind(identity=identity)

        try:
            self._admit(identity)
            image = self._validate(request)
            vision_client = self._get_vision_client()
            payload = decode_image_payload(image)

            raw_text = await vision_client.invoke(
                ANALYSIS_PROMPT, payload, timeout_s=self.settings.analysis_timeout_s
            )
            result = normalize_response(raw_text)

            envelope = build_success_envelope(
                result, started_at, model=vision_client.model, version=version
            )
            log.info(
                "analysis.completed",
                foods=len(result.foods),
                total_calories=result.total_calories,
                processing_time_ms=envelope.metadata.processing_time_ms,
            )
            return envelope

        except AnalysisError as exc:
            log.warning(
                "analysis.rejected", code=exc.code.value, retryable=exc.retryable, reason=str(exc)
            )
            return build_error_envelope(
                exc.code, exc.message, exc.retryable, started_at, version=version
            )
        except Exception:
            log.exception("analysis.failed")
            return build_error_envelope(
                ErrorCode.UNKNOWN_ERROR,
                "Analysis failed",
                retryable=False,
                started_at=started_at,
                version=version,
            )

    async def aclose(self) -> None:
        """Release the vision client's HTTP resources."""
        if self._vision_client is not None:
            await self._vision_client.close()
