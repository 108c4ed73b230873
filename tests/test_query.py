"""Tests for the typed query vocabulary and generic repository operations."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from betline.db.query import Eq, In, OrderBy, Query, Table, compile_select, compile_update
from betline.db.repository import transaction
from betline.errors import StoreError

EVENTS = Table("events", frozenset({"id", "status", "league", "commence_time"}))


class TestCompile:
    def test_select_with_filters_order_limit(self):
        compiled = compile_select(
            EVENTS,
            Query(
                filters=[Eq("status", "scheduled"), In("league", ["soccer_epl", "icehockey_nhl"])],
                order_by=OrderBy("commence_time", descending=True),
                limit=5,
            ),
        )
        assert compiled.sql == (
            "SELECT * FROM events WHERE status = ? AND league IN (?, ?)"
            " ORDER BY commence_time DESC LIMIT ?"
        )
        assert compiled.params == ["scheduled", "soccer_epl", "icehockey_nhl", 5]

    def test_eq_none_is_null_check(self):
        compiled = compile_select(EVENTS, Query(filters=[Eq("league", None)]))
        assert compiled.sql == "SELECT * FROM events WHERE league IS NULL"
        assert compiled.params == []

    def test_empty_in_matches_nothing(self):
        compiled = compile_select(EVENTS, Query(filters=[In("id", [])]))
        assert compiled.sql == "SELECT * FROM events WHERE 0"

    def test_unknown_column_rejected(self):
        with pytest.raises(StoreError):
            compile_select(EVENTS, Query(filters=[Eq("status; DROP TABLE events", 1)]))
        with pytest.raises(StoreError):
            compile_select(EVENTS, Query(order_by=OrderBy("nope")))

    def test_update_needs_values(self):
        with pytest.raises(StoreError):
            compile_update(EVENTS, {}, [Eq("id", "x")])


@pytest.mark.asyncio
async def test_repository_find_update_delete(events, make_event_row):
    await events.upsert_events(
        [
            make_event_row("e1", hours_ahead=5),
            make_event_row("e2", hours_ahead=1, league="icehockey_nhl"),
            make_event_row("e3", hours_ahead=3),
        ]
    )

    soccer = await events.find(
        Query(filters=[Eq("league", "soccer_epl")], order_by=OrderBy("commence_time"))
    )
    assert [r["id"] for r in soccer] == ["e3", "e1"]

    many = await events.get_many(["e1", "e2", "missing"])
    assert set(many) == {"e1", "e2"}

    assert await events.update([Eq("id", "e1")], {"status": "completed"}) == 1
    assert (await events.get("e1"))["status"] == "completed"

    assert await events.delete([In("id", ["e2", "e3"])]) == 2
    assert await events.get("e2") is None


@pytest.mark.asyncio
async def test_delete_without_filter_refused(events):
    with pytest.raises(StoreError):
        await events.delete([])


@pytest.mark.asyncio
async def test_list_open_and_mark_started(events, make_event_row):
    await events.upsert_events(
        [
            make_event_row("past", hours_ahead=-1),
            make_event_row("soon", hours_ahead=0.1),
            make_event_row("later", hours_ahead=10),
        ]
    )
    now = datetime.now(timezone.utc)

    open_ids = [r["id"] for r in await events.list_open(now + timedelta(minutes=15))]
    assert open_ids == ["later"]

    assert await events.mark_started(now) == 1
    assert (await events.get("past"))["status"] == "live"
    assert (await events.get("soon"))["status"] == "scheduled"


@pytest.mark.asyncio
async def test_profile_balance(profiles):
    uid = await profiles.create("alice", balance=Decimal("12.5"))
    assert await profiles.get_balance(uid) == Decimal("12.50")
    assert await profiles.get_balance(999) is None
    assert await profiles.set_status(uid, "approved") is True
    assert (await profiles.get_by_username("alice"))["status"] == "approved"


@pytest.mark.asyncio
async def test_cancelled_transaction_rolls_back(db, profiles, user_id):
    started = asyncio.Event()

    async def write_then_wait():
        async with transaction(db):
            await db.execute("UPDATE profiles SET balance = 0 WHERE id = ?", (user_id,))
            started.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(write_then_wait())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await profiles.get_balance(user_id) == Decimal("100.00")
    async with transaction(db):
        await db.execute("UPDATE profiles SET balance = 50 WHERE id = ?", (user_id,))
    assert await profiles.get_balance(user_id) == Decimal("50.00")
