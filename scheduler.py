import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from query_cache import QueryCache


logger = logging.getLogger(__name__)


class SchedulerManager:
    def __init__(self, cache: QueryCache) -> None:
        settings = get_settings()
        self.cache = cache
        self.sweep_secs = settings.cache_sweep_secs
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _sweep_cache(self, source: str = "manual") -> int:
        removed = self.cache.delete_expired()
        logger.info(
            f"cache_sweep: source={source} removed={removed} remaining={len(self.cache)}"
        )
        return removed

    def start(self) -> None:
        trigger = IntervalTrigger(seconds=self.sweep_secs)
        self.scheduler.add_job(
            self._sweep_cache,
            trigger,
            args=["interval"],
            id="query_cache_sweep",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info(f"Scheduler started with cache sweep every {self.sweep_secs:g}s")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
