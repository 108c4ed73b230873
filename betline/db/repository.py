"""Data access layer for Betline."""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any

import aiosqlite
import structlog

from betline.clock import iso_utc, utcnow
from betline.db.query import (
    Eq,
    Filter,
    In,
    OrderBy,
    Query,
    Table,
    compile_delete,
    compile_insert,
    compile_select,
    compile_update,
)
from betline.errors import DuplicateSubmissionError, InsufficientFundsError, LedgerError
from betline.wagers.models import BetStatus, Wager

log = structlog.get_logger()


@asynccontextmanager
async def transaction(db: aiosqlite.Connection) -> AsyncIterator[None]:
    """Run the enclosed writes as one unit: all commit or all roll back."""
    await db.execute("BEGIN IMMEDIATE")
    try:
        yield
    except BaseException:
        # includes cancellation, which must not leave the connection mid-transaction
        await db.rollback()
        raise
    await db.commit()


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


class TableRepository:
    """Generic find/insert/update/delete over one declared table.

    Writes commit on their own unless ``commit=False`` is passed, which is how
    they join an enclosing :func:`transaction`.
    """

    table: Table

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def find(self, query: Query = Query()) -> list[aiosqlite.Row]:
        compiled = compile_select(self.table, query)
        cursor = await self._db.execute(compiled.sql, compiled.params)
        return list(await cursor.fetchall())

    async def find_one(self, *filters: Filter) -> aiosqlite.Row | None:
        rows = await self.find(Query(filters=filters, limit=1))
        return rows[0] if rows else None

    async def insert(
        self, rows: Sequence[dict[str, Any]], commit: bool = True
    ) -> list[int]:
        """Insert rows and return their rowids, in order."""
        ids: list[int] = []
        for row in rows:
            cursor = await self._db.execute(compile_insert(self.table, list(row)), row)
            ids.append(cursor.lastrowid)  # type: ignore[arg-type]
        if commit:
            await self._db.commit()
        return ids

    async def update(
        self, filters: Sequence[Filter], values: dict[str, Any], commit: bool = True
    ) -> int:
        compiled = compile_update(self.table, values, filters)
        cursor = await self._db.execute(compiled.sql, compiled.params)
        if commit:
            await self._db.commit()
        return cursor.rowcount

    async def delete(self, filters: Sequence[Filter], commit: bool = True) -> int:
        compiled = compile_delete(self.table, filters)
        cursor = await self._db.execute(compiled.sql, compiled.params)
        if commit:
            await self._db.commit()
        return cursor.rowcount


# ── Events ──────────────────────────────────────────────────────────

EVENT_ODDS_COLUMNS = (
    "home_odds",
    "away_odds",
    "draw_odds",
    "spreads_home_odds",
    "spreads_away_odds",
    "spreads_home_point",
    "spreads_away_point",
    "totals_over_odds",
    "totals_under_odds",
    "totals_point",
)

EVENT_COLUMNS = (
    "id",
    "sport",
    "league",
    "home_team",
    "away_team",
    "commence_time",
    "status",
    *EVENT_ODDS_COLUMNS,
    "updated_at",
)


class EventRepository(TableRepository):
    table = Table("events", frozenset(EVENT_COLUMNS))

    async def upsert_events(self, rows: list[dict[str, Any]]) -> int:
        """Insert-or-overwrite events keyed on id, in one transaction.

        The lifecycle status of an existing row is left alone; a refresh only
        replaces the event's metadata and odds.
        """
        if not rows:
            return 0
        now = iso_utc(utcnow())
        payload = [{**r, "updated_at": now} for r in rows]
        for row in payload:
            for column in row:
                self.table.check(column)
        overwrite = [c for c in EVENT_COLUMNS if c not in ("id", "status")]
        sql = (
            compile_insert(self.table, EVENT_COLUMNS)
            + " ON CONFLICT(id) DO UPDATE SET "
            + ", ".join(f"{c} = excluded.{c}" for c in overwrite)
        )
        async with transaction(self._db):
            await self._db.executemany(sql, payload)
        log.debug("events_upserted", count=len(payload))
        return len(payload)

    async def get(self, event_id: str) -> aiosqlite.Row | None:
        return await self.find_one(Eq("id", event_id))

    async def get_many(self, event_ids: Sequence[str]) -> dict[str, aiosqlite.Row]:
        rows = await self.find(Query(filters=[In("id", event_ids)]))
        return {row["id"]: row for row in rows}

    async def list_open(self, cutoff: datetime) -> list[aiosqlite.Row]:
        """Scheduled events starting after the cutoff, soonest first."""
        sql = """
            SELECT * FROM events
            WHERE status = 'scheduled' AND commence_time > ?
            ORDER BY commence_time ASC
        """
        cursor = await self._db.execute(sql, (iso_utc(cutoff),))
        return list(await cursor.fetchall())

    async def mark_started(self, now: datetime) -> int:
        """Move scheduled events whose start time has passed to live."""
        sql = """
            UPDATE events SET status = 'live', updated_at = ?
            WHERE status = 'scheduled' AND commence_time <= ?
        """
        stamp = iso_utc(now)
        cursor = await self._db.execute(sql, (stamp, stamp))
        await self._db.commit()
        return cursor.rowcount


# ── Profiles and balances ───────────────────────────────────────────


class ProfileRepository(TableRepository):
    table = Table(
        "profiles",
        frozenset(
            {"id", "username", "role", "status", "balance", "promo_code", "created_at"}
        ),
    )

    async def create(
        self,
        username: str,
        role: str = "user",
        status: str = "pending",
        balance: Decimal = Decimal("0"),
        promo_code: str | None = None,
        commit: bool = True,
    ) -> int:
        row = {
            "username": username,
            "role": role,
            "status": status,
            "balance": float(balance),
            "promo_code": promo_code,
            "created_at": iso_utc(utcnow()),
        }
        [profile_id] = await self.insert([row], commit=commit)
        return profile_id

    async def get(self, user_id: int) -> aiosqlite.Row | None:
        return await self.find_one(Eq("id", user_id))

    async def get_by_username(self, username: str) -> aiosqlite.Row | None:
        return await self.find_one(Eq("username", username))

    async def get_balance(self, user_id: int) -> Decimal | None:
        row = await self.get(user_id)
        return _money(row["balance"]) if row else None

    async def set_status(self, user_id: int, status: str) -> bool:
        return await self.update([Eq("id", user_id)], {"status": status}) == 1

    async def list_all(self) -> list[aiosqlite.Row]:
        return await self.find(Query(order_by=OrderBy("created_at")))


class BalanceTransactionRepository(TableRepository):
    table = Table(
        "balance_transactions",
        frozenset({"id", "user_id", "amount", "reason", "balance_after", "created_at"}),
    )

    async def record(
        self,
        user_id: int,
        amount: Decimal,
        reason: str,
        balance_after: Decimal,
        commit: bool = True,
    ) -> int:
        [tx_id] = await self.insert(
            [
                {
                    "user_id": user_id,
                    "amount": float(amount),
                    "reason": reason,
                    "balance_after": float(balance_after),
                    "created_at": iso_utc(utcnow()),
                }
            ],
            commit=commit,
        )
        return tx_id

    async def list_for_user(self, user_id: int) -> list[aiosqlite.Row]:
        return await self.find(
            Query(filters=[Eq("user_id", user_id)], order_by=OrderBy("id", descending=True))
        )


# ── Bets ────────────────────────────────────────────────────────────


class BetRepository(TableRepository):
    table = Table(
        "bets",
        frozenset(
            {
                "id",
                "user_id",
                "event_id",
                "market",
                "outcome",
                "odds",
                "stake",
                "potential_payout",
                "bet_type",
                "express_id",
                "status",
                "created_at",
            }
        ),
    )

    async def list_for_user(
        self, user_id: int, statuses: Sequence[BetStatus] | None = None
    ) -> list[aiosqlite.Row]:
        filters: list[Filter] = [Eq("user_id", user_id)]
        if statuses is not None:
            filters.append(In("status", [s.value for s in statuses]))
        return await self.find(
            Query(filters=filters, order_by=OrderBy("id", descending=True))
        )

    async def list_legs(self, express_id: str) -> list[aiosqlite.Row]:
        return await self.find(
            Query(filters=[Eq("express_id", express_id)], order_by=OrderBy("id"))
        )


class ExpressGroupRepository(TableRepository):
    table = Table(
        "express_groups",
        frozenset(
            {"id", "user_id", "stake", "combined_odds", "potential_payout", "status", "created_at"}
        ),
    )

    async def list_for_user(
        self, user_id: int, statuses: Sequence[BetStatus] | None = None
    ) -> list[aiosqlite.Row]:
        filters: list[Filter] = [Eq("user_id", user_id)]
        if statuses is not None:
            filters.append(In("status", [s.value for s in statuses]))
        return await self.find(
            Query(filters=filters, order_by=OrderBy("created_at", descending=True))
        )


class SubmissionRepository(TableRepository):
    table = Table(
        "wager_submissions", frozenset({"submission_id", "user_id", "created_at"})
    )


# ── Promo codes ─────────────────────────────────────────────────────


class PromoCodeRepository(TableRepository):
    table = Table(
        "promo_codes",
        frozenset(
            {
                "id",
                "code",
                "user_role",
                "bonus_balance",
                "max_uses",
                "used_count",
                "expires_at",
                "is_active",
                "created_at",
            }
        ),
    )

    async def get_by_code(self, code: str) -> aiosqlite.Row | None:
        return await self.find_one(Eq("code", code))

    async def list_all(self) -> list[aiosqlite.Row]:
        return await self.find(Query(order_by=OrderBy("created_at", descending=True)))

    async def claim(self, promo_id: int) -> bool:
        """Bump used_count if uses remain. Runs inside the caller's transaction."""
        sql = """
            UPDATE promo_codes SET used_count = used_count + 1
            WHERE id = ? AND is_active = 1
              AND (max_uses IS NULL OR used_count < max_uses)
        """
        cursor = await self._db.execute(sql, (promo_id,))
        return cursor.rowcount == 1


# ── Support ─────────────────────────────────────────────────────────


class SupportThreadRepository(TableRepository):
    table = Table(
        "support_threads",
        frozenset({"id", "user_id", "title", "status", "created_at", "updated_at"}),
    )


class SupportMessageRepository(TableRepository):
    table = Table(
        "support_messages",
        frozenset({"id", "thread_id", "user_id", "message", "sender_role", "created_at"}),
    )


# ── Ledger ──────────────────────────────────────────────────────────


class Ledger:
    """Balance-changing writes, each applied as one transaction."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._bets = BetRepository(db)
        self._express = ExpressGroupRepository(db)
        self._submissions = SubmissionRepository(db)
        self._transactions = BalanceTransactionRepository(db)

    async def place_wager(
        self, wager: Wager, submission_id: str | None = None
    ) -> Decimal:
        """Insert the wager's bet rows and debit its stake together.

        Returns the new balance. Bet ids are filled in on ``wager.bets``.
        Raises InsufficientFundsError or DuplicateSubmissionError (nothing
        written), or LedgerError when the store failed mid-way (rolled back).
        """
        created_at = iso_utc(utcnow())
        try:
            async with transaction(self._db):
                if submission_id is not None:
                    await self._claim_submission(submission_id, wager.user_id, created_at)
                if wager.express is not None:
                    await self._express.insert([wager.express.to_row(created_at)], commit=False)
                ids = await self._bets.insert(
                    [bet.to_row(created_at) for bet in wager.bets], commit=False
                )
                new_balance = await self._debit(wager.user_id, wager.total_stake)
                await self._transactions.record(
                    wager.user_id,
                    -wager.total_stake,
                    f"{wager.bet_type.value}_wager",
                    new_balance,
                    commit=False,
                )
        except sqlite3.Error as exc:
            log.error("ledger_write_failed", user_id=wager.user_id, error=str(exc))
            raise LedgerError(f"Wager was not recorded: {exc}") from exc

        for bet, bet_id in zip(wager.bets, ids):
            bet.id = bet_id
        return new_balance

    async def adjust_balance(
        self, user_id: int, amount: Decimal, reason: str
    ) -> Decimal:
        """Credit (or debit, when negative) a balance and log the change."""
        try:
            async with transaction(self._db):
                cursor = await self._db.execute(
                    """
                    UPDATE profiles SET balance = round(balance + ?, 2)
                    WHERE id = ? AND balance + ? >= 0
                    """,
                    (float(amount), user_id, float(amount)),
                )
                if cursor.rowcount != 1:
                    raise InsufficientFundsError(user_id, -amount)
                new_balance = await self._read_balance(user_id)
                await self._transactions.record(
                    user_id, amount, reason, new_balance, commit=False
                )
        except sqlite3.Error as exc:
            raise LedgerError(f"Balance was not adjusted: {exc}") from exc
        return new_balance

    async def _claim_submission(
        self, submission_id: str, user_id: int, created_at: str
    ) -> None:
        try:
            await self._submissions.insert(
                [{"submission_id": submission_id, "user_id": user_id, "created_at": created_at}],
                commit=False,
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateSubmissionError(submission_id) from exc

    async def _debit(self, user_id: int, amount: Decimal) -> Decimal:
        cursor = await self._db.execute(
            """
            UPDATE profiles SET balance = round(balance - ?, 2)
            WHERE id = ? AND balance >= ?
            """,
            (float(amount), user_id, float(amount)),
        )
        if cursor.rowcount != 1:
            raise InsufficientFundsError(user_id, amount)
        return await self._read_balance(user_id)

    async def _read_balance(self, user_id: int) -> Decimal:
        cursor = await self._db.execute(
            "SELECT balance FROM profiles WHERE id = ?", (user_id,)
        )
        row = await cursor.fetchone()
        return _money(row["balance"])
