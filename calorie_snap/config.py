"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from calorie_snap import __version__
from calorie_snap.infrastructure.ai.openai_client import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_S,
)
from calorie_snap.infrastructure.rate_limit.sliding_window import (
    DEFAULT_MAX_REQUESTS,
    DEFAULT_WINDOW_SECONDS,
)

# Transport-level cap on the whole JSON body (10 MiB)
DEFAULT_MAX_REQUEST_BODY_BYTES = 10 * 1024 * 1024


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    """
    Service configuration.

    Read once at startup; the OpenAI key may be absent, in which case each
    analysis request fails with SERVICE_CONFIG_ERROR.
    """

    openai_api_key: Optional[str] = None
    vision_model: str = DEFAULT_MODEL
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    analysis_timeout_s: float = DEFAULT_TIMEOUT_S
    rate_limit_max_requests: int = DEFAULT_MAX_REQUESTS
    rate_limit_window_s: float = DEFAULT_WINDOW_SECONDS
    rate_limit_sweep_interval_s: float = 60.0
    max_request_body_bytes: int = DEFAULT_MAX_REQUEST_BODY_BYTES
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    app_version: str = __version__

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> Settings:
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file loaded first (never overrides
                variables already set)
        """
        if env_file is not None and env_file.exists():
            load_dotenv(env_file)

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            vision_model=os.getenv("OPENAI_VISION_MODEL", DEFAULT_MODEL),
            max_output_tokens=int(
                os.getenv("ANALYSIS_MAX_OUTPUT_TOKENS", str(DEFAULT_MAX_OUTPUT_TOKENS))
            ),
            temperature=float(os.getenv("ANALYSIS_TEMPERATURE", str(DEFAULT_TEMPERATURE))),
            analysis_timeout_s=float(os.getenv("ANALYSIS_TIMEOUT_S", str(DEFAULT_TIMEOUT_S))),
            rate_limit_max_requests=int(
                os.getenv("RATE_LIMIT_MAX_REQUESTS", str(DEFAULT_MAX_REQUESTS))
            ),
            rate_limit_window_s=float(
                os.getenv("RATE_LIMIT_WINDOW_S", str(DEFAULT_WINDOW_SECONDS))
            ),
            rate_limit_sweep_interval_s=float(os.getenv("RATE_LIMIT_SWEEP_INTERVAL_S", "60")),
            max_request_body_bytes=int(
                os.getenv("MAX_REQUEST_BODY_BYTES", str(DEFAULT_MAX_REQUEST_BODY_BYTES))
            ),
            cors_origins=_parse_cors_origins(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            app_version=os.getenv("APP_VERSION", __version__),
        )
