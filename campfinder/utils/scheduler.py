#scheduler.py
"""
Scheduler for refreshing the camp cache at regular intervals
"""
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from campfinder.cache import RecordCache
from campfinder.config import CACHE_REFRESH_HOURS, logger


async def refresh_cache(cache: RecordCache):
    """
    Force-refresh the camps snapshot
    """
    logger.info(f"Scheduled cache refresh running at {datetime.now()}")
    camps = await cache.get_camps(force_refresh=True)
    logger.info(f"Scheduled cache refresh completed: {len(camps)} camps")
    return len(camps)


def setup_scheduler(cache: RecordCache, interval_hours: int = CACHE_REFRESH_HOURS) -> AsyncIOScheduler:
    """
    Start refreshing the cache every ``interval_hours`` hours on the running event loop
    """
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        refresh_cache,
        IntervalTrigger(hours=interval_hours),
        args=[cache],
        id='cache_refresh_job',
        name='Refresh camp cache at regular intervals',
        replace_existing=True,
        next_run_time=datetime.now()  # Warm the cache when starting
    )

    scheduler.start()
    logger.info(f"Scheduler started. Will refresh camps every {interval_hours} hours.")

    return scheduler
