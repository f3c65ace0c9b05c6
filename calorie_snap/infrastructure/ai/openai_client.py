"""
OpenAI API client for food photo analysis.

Async vision client: sends the fixed prompt with the inline image and
returns the raw answer text, bounded by a hard deadline.
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Dict, Optional, TYPE_CHECKING

import structlog
from openai import APITimeoutError, AsyncOpenAI, AuthenticationError

from calorie_snap.domain.analysis.models import ImagePayload
from calorie_snap.domain.analysis.prompts import build_vision_messages
from calorie_snap.domain.shared.errors import AnalysisTimeoutError, ConfigurationError

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_OUTPUT_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.4
DEFAULT_TIMEOUT_S = 25.0


class OpenAIVisionClient:
    """
    Async OpenAI client for single-image food analysis.

    Features:
    - Model, max output tokens and temperature configurable
    - Hard deadline raced against the API call (asyncio.wait_for)
    - No SDK retries: retry policy belongs to the caller
    - Context manager for resource cleanup

    Example:
        >>> async with OpenAIVisionClient(api_key="sk-...") as client:
        ...     text = await client.invoke(ANALYSIS_PROMPT, payload)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize vision client.

        Args:
            api_key: OpenAI API key (reads OPENAI_API_KEY if None)
            model: Vision-capable chat model
            max_output_tokens: Max tokens in the answer
            temperature: Sampling temperature
            timeout_s: Default deadline for invoke()
            client: Optional pre-configured AsyncOpenAI client (for testing)

        Raises:
            ConfigurationError: If API key not found and client not provided
        """
        if client is not None:
            self._client: Optional[AsyncOpenAI] = client
            self.api_key: str = api_key or "test-key"
        else:
            resolved_key = api_key or os.getenv("OPENAI_API_KEY")
            if not resolved_key:
                raise ConfigurationError("OPENAI_API_KEY not configured")
            self.api_key = resolved_key
            self._client = None

        self.model = model
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.timeout_s = timeout_s

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            # SDK timeout is a backstop; the deadline in invoke() fires first.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout_s + 5.0,
                max_retries=0,
            )
        return self._client

    async def __aenter__(self) -> OpenAIVisionClient:
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._client:
            await self._client.close()

    async def _complete(self, prompt: str, payload: ImagePayload) -> str:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": build_vision_messages(prompt, payload),
            "max_tokens": self.max_output_tokens,
            "temperature": self.temperature,
        }
        completion: ChatCompletion = await self._ensure_client().chat.completions.create(
            **params
        )
        return completion.choices[0].message.content or ""

    async def invoke(
        self,
        prompt: str,
        payload: ImagePayload,
        timeout_s: Optional[float] = None,
    ) -> str:
        """
        Ask the model about one image and return its raw text.

        The pending API call is cancelled when the deadline expires.

        Args:
            prompt: Prompt text
            payload: Inline image
            timeout_s: Deadline in seconds (defaults to the client's)

        Returns:
            Free-form answer text (may be empty)

        Raises:
            AnalysisTimeoutError: Deadline expired or SDK timeout
            ConfigurationError: Credential rejected by OpenAI
        """
        deadline = self.timeout_s if timeout_s is None else timeout_s
        start = time.perf_counter()
        try:
            return await asyncio.wait_for(self._complete(prompt, payload), timeout=deadline)
        except (asyncio.TimeoutError, APITimeoutError) as exc:
            raise AnalysisTimeoutError() from exc
        except AuthenticationError as exc:
            raise ConfigurationError() from exc
        finally:
            logger.info(
                "vision.call",
                model=self.model,
                mime_type=payload.mime_type,
                elapsed_ms=int((time.perf_counter() - start) * 1000),
                timeout_s=deadline,
            )
