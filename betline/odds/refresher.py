"""Odds refresh: fetch every configured sport, normalize, upsert."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum

import httpx
import structlog

from betline.api.odds_client import OddsClient
from betline.api.schemas import EventOddsSchema
from betline.config import Settings
from betline.db.migrations import init_db
from betline.db.repository import EventRepository
from betline.errors import ConfigurationError, ProviderError, StoreError
from betline.odds.normalizer import normalize_events
from betline.odds.policies import MarketPolicy, policy_for

log = structlog.get_logger()


class RefreshStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass
class SportFetch:
    count: int = 0
    error: str | None = None


@dataclass
class RefreshResult:
    status: RefreshStatus
    message: str
    fetched: int = 0
    upserted: int = 0
    sport_stats: dict[str, SportFetch] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is not RefreshStatus.ERROR


class OddsRefresher:
    def __init__(
        self,
        settings: Settings,
        odds_client: OddsClient,
        events: EventRepository,
        policy: MarketPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._odds_client = odds_client
        self._events = events
        self._policy = policy or policy_for(settings.preferred_bookmakers)

    async def run(self) -> RefreshResult:
        """Run one refresh. Never raises; failures come back as an error result."""
        missing = self._settings.missing_required()
        if missing:
            err = ConfigurationError(missing)
            log.error("refresh_config_missing", missing=missing)
            return RefreshResult(RefreshStatus.ERROR, str(err))

        log.info(
            "refresh_start",
            sports=len(self._settings.sports),
            markets=OddsClient.MARKETS,
        )
        raw, stats = await self._fetch_all()
        for sport, fetch in stats.items():
            if fetch.error:
                log.warning("refresh_sport_failed", sport=sport, error=fetch.error)
            else:
                log.info("refresh_sport_fetched", sport=sport, events=fetch.count)

        if not raw:
            log.warning("refresh_no_events")
            return RefreshResult(
                RefreshStatus.EMPTY, "No events to update.", sport_stats=stats
            )

        report = normalize_events(raw, self._policy)
        cov = report.coverage
        log.info(
            "refresh_market_coverage",
            events=cov.total,
            with_h2h=cov.with_h2h,
            with_spreads=cov.with_spreads,
            with_totals=cov.with_totals,
            dropped=cov.dropped,
            by_sport={k: dict(v) for k, v in cov.by_sport.items()},
        )

        try:
            upserted = await self._events.upsert_events([e.to_row() for e in report.events])
        except (sqlite3.Error, StoreError) as exc:
            log.error("refresh_upsert_failed", error=str(exc))
            return RefreshResult(
                RefreshStatus.ERROR,
                f"Event upsert failed: {exc}",
                fetched=len(raw),
                sport_stats=stats,
            )

        message = f"Updated {upserted} events."
        log.info("refresh_complete", fetched=len(raw), upserted=upserted)
        return RefreshResult(
            RefreshStatus.OK,
            message,
            fetched=len(raw),
            upserted=upserted,
            sport_stats=stats,
        )

    async def _fetch_all(
        self,
    ) -> tuple[list[EventOddsSchema], dict[str, SportFetch]]:
        raw: list[EventOddsSchema] = []
        stats: dict[str, SportFetch] = {}
        for sport_key in self._settings.sports:
            try:
                events = await self._odds_client.fetch_odds(sport_key)
            except ProviderError as exc:
                log.error(
                    "odds_fetch_failed",
                    sport=sport_key,
                    status=exc.status_code,
                    body=exc.text,
                )
                stats[sport_key] = SportFetch(error=f"{exc.status_code} - {exc.text}")
                continue
            except (httpx.HTTPError, ValueError) as exc:
                # transport failure or a payload that does not parse
                log.error("odds_fetch_failed", sport=sport_key, error=str(exc))
                stats[sport_key] = SportFetch(error=str(exc))
                continue
            stats[sport_key] = SportFetch(count=len(events))
            raw.extend(events)
        return raw, stats


async def refresh_once(settings: Settings) -> RefreshResult:
    """One-shot trigger: open the store and provider, refresh, close both."""
    missing = settings.missing_required()
    if missing:
        return RefreshResult(RefreshStatus.ERROR, str(ConfigurationError(missing)))

    db = await init_db(settings.db_path)  # type: ignore[arg-type]
    odds_client = OddsClient(settings)
    try:
        refresher = OddsRefresher(settings, odds_client, EventRepository(db))
        return await refresher.run()
    finally:
        await odds_client.close()
        await db.close()
