"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import aiosqlite
import pytest

from betline.clock import iso_utc
from betline.config import Settings
from betline.db.models import SCHEMA_SQL
from betline.db.repository import (
    BetRepository,
    EventRepository,
    ExpressGroupRepository,
    Ledger,
    ProfileRepository,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        odds_api_key="test_key",
        db_path=":memory:",
        sports=["soccer_epl", "icehockey_nhl"],
        _env_file=None,
    )


@pytest.fixture
async def db():
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row
    await conn.executescript(SCHEMA_SQL)
    await conn.commit()
    yield conn
    await conn.close()


@pytest.fixture
def events(db) -> EventRepository:
    return EventRepository(db)


@pytest.fixture
def profiles(db) -> ProfileRepository:
    return ProfileRepository(db)


@pytest.fixture
def bets(db) -> BetRepository:
    return BetRepository(db)


@pytest.fixture
def express_groups(db) -> ExpressGroupRepository:
    return ExpressGroupRepository(db)


@pytest.fixture
def ledger(db) -> Ledger:
    return Ledger(db)


def event_row(event_id: str, hours_ahead: float = 24, **overrides) -> dict:
    commence = datetime.now(timezone.utc) + timedelta(hours=hours_ahead)
    row = {
        "id": event_id,
        "sport": "EPL",
        "league": "soccer_epl",
        "home_team": "Arsenal",
        "away_team": "Chelsea",
        "commence_time": iso_utc(commence),
        "status": "scheduled",
        "home_odds": 2.1,
        "away_odds": 3.4,
        "draw_odds": 3.2,
        "spreads_home_odds": None,
        "spreads_away_odds": None,
        "spreads_home_point": None,
        "spreads_away_point": None,
        "totals_over_odds": None,
        "totals_under_odds": None,
        "totals_point": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
async def open_events(events) -> list[str]:
    """Three scheduled events a day out."""
    ids = ["evt_a", "evt_b", "evt_c"]
    await events.upsert_events([event_row(i) for i in ids])
    return ids


@pytest.fixture
async def user_id(profiles) -> int:
    """An approved user with a balance of 100."""
    return await profiles.create("punter", status="approved", balance=Decimal("100"))


@pytest.fixture
def make_event_row():
    return event_row
