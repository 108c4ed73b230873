"""APScheduler-based refresh scheduler."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from betline.config import Settings
from betline.db.repository import EventRepository
from betline.odds.refresher import OddsRefresher

log = structlog.get_logger()

LIFECYCLE_INTERVAL_MINUTES = 5


class Poller:
    def __init__(self, refresher: OddsRefresher, events: EventRepository) -> None:
        self._refresher = refresher
        self._events = events
        self._cycle_count = 0

    async def refresh_cycle(self) -> None:
        """Run one odds refresh and log its outcome."""
        self._cycle_count += 1
        log.info("refresh_cycle_start", cycle=self._cycle_count)
        result = await self._refresher.run()
        if result.ok:
            log.info(
                "refresh_cycle_done",
                status=result.status.value,
                message=result.message,
                upserted=result.upserted,
            )
        else:
            log.error("refresh_cycle_failed", message=result.message)

    async def advance_lifecycle(self) -> None:
        """Close betting on events that have started."""
        try:
            started = await self._events.mark_started(datetime.now(timezone.utc))
        except Exception:
            log.exception("lifecycle_error")
            return
        if started:
            log.info("events_started", count=started)


def create_scheduler(poller: Poller, settings: Settings) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance."""
    scheduler = AsyncIOScheduler()

    if settings.refresh_interval_minutes < 15:
        log.warning(
            "refresh_interval_below_plan",
            minutes=settings.refresh_interval_minutes,
        )

    scheduler.add_job(
        poller.refresh_cycle,
        "interval",
        minutes=settings.refresh_interval_minutes,
        id="refresh_odds",
        name="Refresh odds from provider",
        next_run_time=datetime.now(timezone.utc),  # run immediately on start
    )

    scheduler.add_job(
        poller.advance_lifecycle,
        "interval",
        minutes=LIFECYCLE_INTERVAL_MINUTES,
        id="advance_lifecycle",
        name="Mark started events live",
    )

    return scheduler
