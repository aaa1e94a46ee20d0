"""
Background scheduler for periodic maintenance.

Uses APScheduler's AsyncIOScheduler so jobs run on the bot's event loop.
The only job today removes expired query cache entries.

Usage:
  1. Calling `start_scheduler(cache)` when the service starts
  2. Calling `stop_scheduler()` on shutdown
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from orderbot.services.query_cache import QueryCache

logger = logging.getLogger(__name__)

CACHE_CLEANUP_SECONDS = 60

_scheduler: AsyncIOScheduler | None = None


async def cache_maintenance(cache: QueryCache) -> int:
    """Drop expired cache entries. Returns how many were removed."""
    removed = await cache.cleanup()
    if removed:
        logger.debug("Cache maintenance removed %d entries", removed)
    return removed


def start_scheduler(cache: QueryCache) -> AsyncIOScheduler:
    """Create and start the background scheduler."""
    global _scheduler

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        cache_maintenance,
        "interval",
        seconds=CACHE_CLEANUP_SECONDS,
        args=[cache],
        id="cache_maintenance",
        name="Cache cleanup",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info("Scheduler started with %d jobs", len(_scheduler.get_jobs()))
    return _scheduler


def stop_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
