"""
Scheduler infrastructure for background jobs.
"""

from .rate_limit_reaper import RateLimitReaper

__all__ = ["RateLimitReaper"]
