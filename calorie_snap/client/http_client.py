"""
HTTP client for the analysis endpoint.

Posts a captured image and hands back the envelope, success or not.
Retrying is the caller's job; analyze_with_retry() does it for errors the
service flags as retryable.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

logger = structlog.get_logger(__name__)

ANALYZE_PATH = "/api/analyze"


def is_retryable(envelope: Dict[str, Any]) -> bool:
    """True for error envelopes the service marked retryable."""
    if envelope.get("success"):
        return False
    error = envelope.get("error") or {}
    return bool(error.get("retryable"))


class AnalysisClient:
    """
    Async client for POST /api/analyze.

    Example:
        >>> async with AnalysisClient("http://localhost:8000") as client:
        ...     envelope = await client.analyze(encode_image_file("lunch.jpg"))
        >>> envelope["data"]["total_calories"]
    """

    # Server-side deadline is 25s; leave room for upload and normalization
    TIMEOUT_S = 35.0
    # Backoff between re-sends of retryable errors
    RETRY_WAIT: wait_base = wait_exponential(multiplier=1, min=1, max=10)

    def __init__(
        self,
        base_url: str,
        timeout_s: float = TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            base_url: Service root, e.g. http://localhost:8000
            timeout_s: HTTP timeout
            transport: Optional transport (httpx.ASGITransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport
        self._session: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AnalysisClient:
        """Async context manager entry."""
        self._session = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_s),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.aclose()

    async def analyze(self, image: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Send one image.

        Args:
            image: data:image/...;base64,... string
            session_id: Optional session identifier

        Returns:
            Decoded response envelope (any HTTP status)

        Raises:
            RuntimeError: Used outside the context manager
            httpx.HTTPError: Transport failure or non-JSON answer
        """
        if not self._session:
            raise RuntimeError("Client not initialized. Use async context manager.")

        body: Dict[str, Any] = {"image": image}
        if session_id:
            body["sessionId"] = session_id

        response = await self._session.post(ANALYZE_PATH, json=body)
        try:
            envelope: Dict[str, Any] = response.json()
        except ValueError as exc:
            response.raise_for_status()
            raise httpx.DecodingError(f"Non-JSON response ({response.status_code})") from exc

        logger.debug(
            "client.analyze",
            status_code=response.status_code,
            success=envelope.get("success"),
        )
        return envelope

    async def analyze_with_retry(
        self,
        image: str,
        session_id: Optional[str] = None,
        max_attempts: int = 3,
    ) -> Dict[str, Any]:
        """
        Like analyze(), re-sending while the error is retryable.

        Returns the last envelope when attempts run out.
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=self.RETRY_WAIT,
                retry=retry_if_result(is_retryable),
            ):
                with attempt:
                    envelope = await self.analyze(image, session_id)
                if not attempt.retry_state.outcome.failed:  # type: ignore[union-attr]
                    attempt.retry_state.set_result(envelope)
        except RetryError as exc:
            return exc.last_attempt.result()  # type: ignore[no-any-return]
        return envelope
