"""Tests for registration, admin operations and support threads."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from betline.accounts.admin import AdminService
from betline.accounts.registration import Registrar
from betline.accounts.support import SupportDesk


@pytest.fixture
def admin(db) -> AdminService:
    return AdminService(db)


@pytest.fixture
def registrar(db) -> Registrar:
    return Registrar(db)


@pytest.fixture
def desk(db) -> SupportDesk:
    return SupportDesk(db)


class TestRegistration:
    @pytest.mark.asyncio
    async def test_register_with_bonus(self, admin, registrar, profiles, db):
        await admin.create_promo_code("WELCOME", bonus_balance=500, max_uses=2)
        result = await registrar.register("alice", "WELCOME")

        assert result.ok
        user = await profiles.get(result.data["user_id"])
        assert user["status"] == "pending"
        assert user["role"] == "user"
        assert user["promo_code"] == "WELCOME"
        assert await profiles.get_balance(user["id"]) == Decimal("500.00")

        [promo] = await admin.list_promo_codes()
        assert promo["used_count"] == 1
        cursor = await db.execute("SELECT reason, amount FROM balance_transactions")
        assert [tuple(r) for r in await cursor.fetchall()] == [("promo_bonus", 500.0)]

    @pytest.mark.asyncio
    async def test_promo_role_is_granted(self, admin, registrar, profiles):
        await admin.create_promo_code("STAFF", user_role="admin")
        result = await registrar.register("boss", "STAFF")
        assert (await profiles.get(result.data["user_id"]))["role"] == "admin"

    @pytest.mark.asyncio
    async def test_invalid_code(self, registrar):
        result = await registrar.register("alice", "NOPE")
        assert not result.ok
        assert result.message == "Invalid promo code."

    @pytest.mark.asyncio
    async def test_inactive_code(self, admin, registrar):
        created = await admin.create_promo_code("OLD")
        await admin.update_promo_code(created.data["promo_id"], is_active=False)
        assert (await registrar.register("alice", "OLD")).message == "Invalid promo code."

    @pytest.mark.asyncio
    async def test_exhausted_code(self, admin, registrar):
        await admin.create_promo_code("ONCE", max_uses=1)
        assert (await registrar.register("alice", "ONCE")).ok
        result = await registrar.register("bob", "ONCE")
        assert not result.ok
        assert "used up" in result.message

    @pytest.mark.asyncio
    async def test_expired_code(self, admin, registrar):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        await admin.create_promo_code("GONE", expires_at=past)
        assert (await registrar.register("alice", "GONE")).message == "Promo code has expired."

    @pytest.mark.asyncio
    async def test_username_taken(self, admin, registrar, profiles):
        await admin.create_promo_code("WELCOME")
        assert (await registrar.register("alice", "WELCOME")).ok
        result = await registrar.register("alice", "WELCOME")
        assert result.message == "Username is already taken."
        [promo] = await admin.list_promo_codes()
        assert promo["used_count"] == 1


class TestAdmin:
    @pytest.mark.asyncio
    async def test_adjust_balance(self, admin, profiles, db, user_id):
        result = await admin.adjust_balance(user_id, "25.50", "deposit")
        assert result.ok
        assert result.data["new_balance"] == Decimal("125.50")

        result = await admin.adjust_balance(user_id, -125.5, "withdrawal")
        assert result.ok
        assert await profiles.get_balance(user_id) == Decimal("0.00")

        cursor = await db.execute("SELECT amount, reason, balance_after FROM balance_transactions ORDER BY id")
        assert [tuple(r) for r in await cursor.fetchall()] == [
            (25.5, "deposit", 125.5),
            (-125.5, "withdrawal", 0.0),
        ]

    @pytest.mark.asyncio
    async def test_adjust_below_zero_rejected(self, admin, profiles, user_id):
        result = await admin.adjust_balance(user_id, -100.01, "oops")
        assert not result.ok
        assert await profiles.get_balance(user_id) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_adjust_validation(self, admin, user_id):
        assert not (await admin.adjust_balance(user_id, 0, "x")).ok
        assert not (await admin.adjust_balance(user_id, "ten", "x")).ok
        assert not (await admin.adjust_balance(user_id, 5, "  ")).ok
        assert (await admin.adjust_balance(999, 5, "x")).message == "User not found."

    @pytest.mark.asyncio
    async def test_set_user_status(self, admin, profiles, user_id):
        assert (await admin.set_user_status(user_id, "blocked")).ok
        assert (await profiles.get(user_id))["status"] == "blocked"
        assert not (await admin.set_user_status(user_id, "banished")).ok
        assert not (await admin.set_user_status(999, "approved")).ok

    @pytest.mark.asyncio
    async def test_promo_crud(self, admin):
        created = await admin.create_promo_code("SPRING", bonus_balance=100)
        promo_id = created.data["promo_id"]
        assert not (await admin.create_promo_code("SPRING")).ok

        assert (await admin.update_promo_code(promo_id, bonus_balance=150, max_uses=10)).ok
        [promo] = await admin.list_promo_codes()
        assert promo["bonus_balance"] == 150
        assert promo["max_uses"] == 10
        assert not (await admin.update_promo_code(promo_id, used_count=0)).ok

        assert (await admin.delete_promo_code(promo_id)).ok
        assert await admin.list_promo_codes() == []
        assert not (await admin.delete_promo_code(promo_id)).ok

    @pytest.mark.asyncio
    async def test_promo_validation(self, admin):
        assert not (await admin.create_promo_code("  ")).ok
        assert not (await admin.create_promo_code("NEG", bonus_balance=-1)).ok
        assert not (await admin.create_promo_code("ZERO", max_uses=0)).ok
        assert not (await admin.create_promo_code("BAD", expires_at="someday")).ok


class TestSupport:
    @pytest.mark.asyncio
    async def test_thread_conversation(self, desk, profiles, user_id):
        staff = await profiles.create("staff", role="admin", status="approved")
        opened = await desk.open_thread(user_id, "Withdrawal", "Where is my money?")
        thread_id = opened.data["thread_id"]

        assert (await desk.post_message(thread_id, staff, "Looking into it.")).ok
        messages = await desk.list_messages(thread_id)
        assert [(m["sender_role"], m["message"]) for m in messages] == [
            ("user", "Where is my money?"),
            ("admin", "Looking into it."),
        ]
        assert [t["id"] for t in await desk.list_threads(user_id)] == [thread_id]
        assert await desk.list_threads(staff) == []
        assert len(await desk.list_threads()) == 1

    @pytest.mark.asyncio
    async def test_closed_thread_rejects_messages(self, desk, user_id):
        thread_id = (await desk.open_thread(user_id, "Hi", "Hello")).data["thread_id"]
        assert (await desk.set_thread_status(thread_id, "closed")).ok
        result = await desk.post_message(thread_id, user_id, "Anyone?")
        assert result.message == "Thread is closed."

        assert (await desk.set_thread_status(thread_id, "open")).ok
        assert (await desk.post_message(thread_id, user_id, "Anyone?")).ok
        assert not (await desk.set_thread_status(thread_id, "archived")).ok

    @pytest.mark.asyncio
    async def test_other_users_cannot_post(self, desk, profiles, user_id):
        other = await profiles.create("other")
        thread_id = (await desk.open_thread(user_id, "Hi", "Hello")).data["thread_id"]
        assert not (await desk.post_message(thread_id, other, "Me too")).ok

    @pytest.mark.asyncio
    async def test_open_thread_validation(self, desk, user_id):
        assert not (await desk.open_thread(user_id, "", "Hello")).ok
        assert not (await desk.open_thread(999, "Hi", "Hello")).ok
