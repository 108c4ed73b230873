"""Entry point for Betline."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import structlog

from betline.api.odds_client import OddsClient
from betline.config import Settings
from betline.db.migrations import init_db
from betline.db.repository import EventRepository
from betline.odds.refresher import OddsRefresher
from betline.polling.scheduler import Poller, create_scheduler


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )


async def run() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    log = structlog.get_logger()
    log.info("starting", version="0.1.0")

    missing = settings.missing_required()
    if missing:
        log.error("config_missing", missing=missing)
        sys.exit(1)

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    events = EventRepository(db)
    odds_client = OddsClient(settings)
    refresher = OddsRefresher(settings, odds_client, events)

    poller = Poller(refresher, events)
    scheduler = create_scheduler(poller, settings)

    stop_event = asyncio.Event()

    def handle_shutdown(*_: object) -> None:
        log.info("shutdown_requested")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_shutdown)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler for SIGTERM
            pass

    scheduler.start()
    log.info("scheduler_started", interval_minutes=settings.refresh_interval_minutes)

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.shutdown(wait=False)
        await odds_client.close()
        await db.close()
        log.info("shutdown_complete")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
