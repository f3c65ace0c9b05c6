from __future__ import annotations

# Standard library
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

# Third-party
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Local application imports
from calorie_snap.api import analyze
from calorie_snap.application.analysis_service import FoodAnalysisService
from calorie_snap.config import Settings
from calorie_snap.infrastructure.rate_limit.sliding_window import SlidingWindowRateLimiter
from calorie_snap.infrastructure.scheduler.rate_limit_reaper import RateLimitReaper
from calorie_snap.logging_config import configure_logging


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[FoodAnalysisService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration (read from environment if None)
        service: Pre-built analysis service (for testing); its settings
            and rate limiter are used as-is

    The rate limiter lives on the service; the lifespan starts the reaper
    that sweeps it and closes the vision client on shutdown.
    """
    if service is None:
        settings = settings or Settings.from_env(Path.cwd() / ".env")
        rate_limiter = SlidingWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_s,
        )
        service = FoodAnalysisService(settings, rate_limiter)
    else:
        settings = service.settings

    reaper = RateLimitReaper(
        service.rate_limiter, interval_seconds=settings.rate_limit_sweep_interval_s
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger = logging.getLogger("calorie_snap.startup")
        configure_logging(settings.log_level)
        logger.info(
            "lifespan.startup version=%s model=%s api_key_configured=%s",
            settings.app_version,
            settings.vision_model,
            bool(settings.openai_api_key),
        )
        reaper.start()
        try:
            yield
        finally:
            reaper.shutdown()
            await service.aclose()
            logger.info("lifespan.shutdown")

    app = FastAPI(
        title="Calorie Snap API",
        description="Food photo calorie analysis",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.state.settings = settings
    app.state.analysis_service = service
    app.state.rate_limit_reaper = reaper

    app.include_router(analyze.router)

    @app.get("/health")
    def health_check() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": settings.app_version,
            "reaper_running": reaper.running,
        }

    return app
