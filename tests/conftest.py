"""
Shared fixtures for calorie_snap tests.

Provides a scriptable vision model, a real JPEG data URI built with
Pillow and an app wired to both, so no test talks to OpenAI.
"""

from __future__ import annotations

import asyncio
import base64
import io
import json
from typing import Any, AsyncIterator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from calorie_snap.app import create_app
from calorie_snap.application.analysis_service import FoodAnalysisService
from calorie_snap.config import Settings
from calorie_snap.domain.analysis.models import ImagePayload
from calorie_snap.domain.shared.errors import AnalysisTimeoutError
from calorie_snap.infrastructure.rate_limit.sliding_window import SlidingWindowRateLimiter

APPLE_RESPONSE = json.dumps(
    {
        "foods": [
            {
                "name": "apple",
                "calories": 95,
                "cooking_method": "raw",
                "confidence": 0.97,
                "portion_estimate": "1 medium",
                "nutrition_info": {"protein": 0.5, "carbs": 25, "fat": 0.3, "fiber": 4.4},
            }
        ],
        "total_calories": 95,
        "confidence": 0.97,
    }
)


class FakeVisionModel:
    """
    In-memory vision model.

    Returns a canned answer, optionally after a delay, and records every
    call. A delay longer than the caller's deadline simulates a hung
    provider: invoke() then honors the deadline the way the real client
    does, with asyncio.wait_for.
    """

    def __init__(
        self,
        response: str = APPLE_RESPONSE,
        delay_s: float = 0.0,
        error: Optional[BaseException] = None,
        model: str = "gpt-4o-mini",
    ) -> None:
        self.response = response
        self.delay_s = delay_s
        self.error = error
        self.model = model
        self.calls: List[ImagePayload] = []
        self.closed = False

    async def _answer(self) -> str:
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.response

    async def invoke(
        self,
        prompt: str,
        payload: ImagePayload,
        timeout_s: Optional[float] = None,
    ) -> str:
        self.calls.append(payload)
        try:
            return await asyncio.wait_for(self._answer(), timeout=timeout_s)
        except asyncio.TimeoutError as exc:
            raise AnalysisTimeoutError() from exc

    async def close(self) -> None:
        self.closed = True


def make_jpeg_data_uri(size: tuple[int, int] = (100, 100)) -> str:
    """Real JPEG encoded as a data URI."""
    img = Image.new("RGB", size, (200, 30, 30))
    output = io.BytesIO()
    img.save(output, format="JPEG", quality=92)
    encoded = base64.b64encode(output.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


@pytest.fixture
def jpeg_data_uri() -> str:
    """100x100 JPEG data URI."""
    return make_jpeg_data_uri()


@pytest.fixture
def settings() -> Settings:
    """Settings with a key present and default limits."""
    return Settings(openai_api_key="sk-test")


@pytest.fixture
def vision_model() -> FakeVisionModel:
    """Vision model answering with one apple."""
    return FakeVisionModel()


@pytest.fixture
def service(settings: Settings, vision_model: FakeVisionModel) -> FoodAnalysisService:
    """Analysis service with a fresh limiter and the fake model."""
    limiter = SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_s,
    )
    return FoodAnalysisService(settings, limiter, vision_client=vision_model)


@pytest.fixture
def app(service: FoodAnalysisService) -> Any:
    """FastAPI app around the fixture service."""
    return create_app(service=service)


@pytest_asyncio.fixture
async def client(app: Any) -> AsyncIterator[AsyncClient]:
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_service(vision_model: FakeVisionModel) -> Any:
    """Factory: service with Settings overrides (key present unless overridden)."""

    def _make(vision_client: Any = vision_model, **overrides: Any) -> FoodAnalysisService:
        overrides.setdefault("openai_api_key", "sk-test")
        custom = Settings(**overrides)
        limiter = SlidingWindowRateLimiter(
            max_requests=custom.rate_limit_max_requests,
            window_seconds=custom.rate_limit_window_s,
        )
        return FoodAnalysisService(custom, limiter, vision_client=vision_client)

    return _make


@pytest.fixture
def make_client(make_service: Any) -> Any:
    """Factory: AsyncClient for an app built from make_service(**overrides)."""

    def _make(**overrides: Any) -> AsyncClient:
        transport = ASGITransport(app=create_app(service=make_service(**overrides)))
        return AsyncClient(transport=transport, base_url="http://testserver")

    return _make
