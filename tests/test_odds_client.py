"""Tests for the Odds API client."""

from __future__ import annotations

import httpx
import pytest

from betline.api.odds_client import OddsClient
from betline.errors import ProviderError

PAYLOAD = [
    {
        "id": "abc123",
        "sport_key": "soccer_epl",
        "sport_title": "EPL",
        "commence_time": "2025-01-15T20:00:00Z",
        "home_team": "Arsenal",
        "away_team": "Chelsea",
        "bookmakers": [
            {
                "key": "draftkings",
                "title": "DraftKings",
                "last_update": "2025-01-15T10:00:00Z",
                "markets": [
                    {
                        "key": "h2h",
                        "outcomes": [
                            {"name": "Arsenal", "price": 2.1},
                            {"name": "Chelsea", "price": 3.4},
                            {"name": "Draw", "price": 3.25},
                        ],
                    }
                ],
            }
        ],
    }
]


@pytest.mark.asyncio
async def test_fetch_odds_request_and_parse(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=PAYLOAD,
            headers={"x-requests-remaining": "480", "x-requests-used": "20"},
        )

    client = OddsClient(settings, transport=httpx.MockTransport(handler))
    events = await client.fetch_odds("soccer_epl")
    await client.close()

    assert len(events) == 1
    assert events[0].id == "abc123"
    assert events[0].sport_title == "EPL"
    assert events[0].bookmakers[0].markets[0].outcomes[2].name == "Draw"

    request = seen[0]
    assert request.url.path.endswith("/sports/soccer_epl/odds")
    assert request.url.params["apiKey"] == "test_key"
    assert request.url.params["markets"] == "h2h,spreads,totals"
    assert request.url.params["regions"] == "us"
    assert request.url.params["oddsFormat"] == "decimal"


@pytest.mark.asyncio
async def test_fetch_odds_error_status(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, text="Unknown sport")

    client = OddsClient(settings, transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as exc_info:
        await client.fetch_odds("soccer_nowhere")
    await client.close()

    assert exc_info.value.status_code == 422
    assert exc_info.value.text == "Unknown sport"
    assert exc_info.value.sport_key == "soccer_nowhere"


@pytest.mark.asyncio
async def test_fetch_odds_empty_list(settings):
    client = OddsClient(
        settings, transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[]))
    )
    assert await client.fetch_odds("soccer_epl") == []
    await client.close()
