"""Async client for The Odds API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from betline.api.schemas import EventOddsSchema
from betline.config import Settings
from betline.errors import ProviderError

log = structlog.get_logger()


class OddsClient:
    MARKETS = "h2h,spreads,totals"

    def __init__(
        self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.odds_api_base_url,
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_odds(self, sport_key: str) -> list[EventOddsSchema]:
        """Fetch current odds for one sport. Raises ProviderError on a non-2xx reply."""
        params: dict[str, Any] = {
            "apiKey": self._settings.odds_api_key,
            "regions": self._settings.odds_regions,
            "markets": self.MARKETS,
            "oddsFormat": self._settings.odds_format,
        }
        resp = await self._client.get(f"/sports/{sport_key}/odds", params=params)
        if resp.is_error:
            raise ProviderError(sport_key, resp.status_code, resp.text)

        self._log_credits(resp, sport_key)

        events = [EventOddsSchema(**e) for e in resp.json()]
        log.info("odds_fetched", sport=sport_key, events=len(events))
        return events

    @staticmethod
    def _log_credits(resp: httpx.Response, sport_key: str) -> None:
        remaining = resp.headers.get("x-requests-remaining")
        used = resp.headers.get("x-requests-used")
        if remaining is not None and used is not None:
            log.info(
                "api_credits",
                sport=sport_key,
                used=int(used),
                remaining=int(remaining),
            )
