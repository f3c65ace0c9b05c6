"""
APScheduler configuration for the rate-limit reaper.

Periodically prunes the rate limiter so that memory is bounded by the
clients active within the last window.
"""

import logging
from typing import Any, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from calorie_snap.infrastructure.rate_limit.sliding_window import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

REAPER_JOB_ID = "rate_limit_reaper"


class RateLimitReaper:
    """
    Manages the scheduler running the rate-limit sweep.

    The job is a plain function, so APScheduler runs it in its thread
    pool; the limiter serializes access to its mapping with a lock.
    """

    def __init__(
        self,
        rate_limiter: SlidingWindowRateLimiter,
        interval_seconds: float = 60.0,
    ) -> None:
        """
        Initialize reaper.

        Args:
            rate_limiter: Limiter to prune
            interval_seconds: Sweep period
        """
        self.rate_limiter = rate_limiter
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None

    def _build_scheduler(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs
                "max_instances": 1,  # One sweep at a time
            },
        )
        scheduler.add_job(
            self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=REAPER_JOB_ID,
            name="Rate limit window sweep",
            replace_existing=True,
        )
        return scheduler

    def sweep(self) -> int:
        """Run one prune pass. Returns evicted identity count."""
        evicted = self.rate_limiter.prune()
        logger.debug("Rate limit sweep evicted %s identities", evicted)
        return evicted

    def start(self) -> None:
        """Start scheduler (requires a running event loop)."""
        if self.scheduler is None:
            self.scheduler = self._build_scheduler()

        if self.scheduler.running:
            logger.warning("Rate limit reaper already running")
            return

        self.scheduler.start()
        logger.info("Rate limit reaper started (every %ss)", self.interval_seconds)

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown scheduler.

        Args:
            wait: If True, wait for a running sweep to complete
        """
        if self.scheduler is None or not self.scheduler.running:
            logger.warning("Rate limit reaper not running")
            return

        self.scheduler.shutdown(wait=wait)
        self.scheduler = None
        logger.info("Rate limit reaper shutdown (wait=%s)", wait)

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def get_jobs(self) -> list[dict[str, Any]]:
        """Scheduled jobs, for health checks and tests."""
        if self.scheduler is None:
            return []

        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]
