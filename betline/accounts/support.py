"""Support threads: a user opens one, user and admins exchange messages."""

from __future__ import annotations

import sqlite3

import aiosqlite
import structlog

from betline.accounts.base import OperationResult
from betline.clock import iso_utc, utcnow
from betline.db.query import Eq, OrderBy, Query
from betline.db.repository import (
    ProfileRepository,
    SupportMessageRepository,
    SupportThreadRepository,
    transaction,
)

log = structlog.get_logger()

THREAD_STATUSES = ("open", "closed")


class SupportDesk:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._profiles = ProfileRepository(db)
        self._threads = SupportThreadRepository(db)
        self._messages = SupportMessageRepository(db)

    async def open_thread(self, user_id: int, title: str, message: str) -> OperationResult:
        """Create a thread together with its first message."""
        if not title.strip() or not message.strip():
            return OperationResult.failure("Title and message are required.")
        if await self._profiles.get(user_id) is None:
            return OperationResult.failure("User not found.")
        now = iso_utc(utcnow())
        try:
            async with transaction(self._db):
                [thread_id] = await self._threads.insert(
                    [
                        {
                            "user_id": user_id,
                            "title": title.strip(),
                            "status": "open",
                            "created_at": now,
                            "updated_at": now,
                        }
                    ],
                    commit=False,
                )
                await self._messages.insert(
                    [
                        {
                            "thread_id": thread_id,
                            "user_id": user_id,
                            "message": message.strip(),
                            "sender_role": "user",
                            "created_at": now,
                        }
                    ],
                    commit=False,
                )
        except sqlite3.Error as exc:
            log.error("support_thread_failed", user_id=user_id, error=str(exc))
            return OperationResult.failure(f"Could not open thread: {exc}")
        log.info("support_thread_opened", thread_id=thread_id, user_id=user_id)
        return OperationResult.success("Thread opened.", thread_id=thread_id)

    async def post_message(self, thread_id: int, user_id: int, message: str) -> OperationResult:
        if not message.strip():
            return OperationResult.failure("Message is empty.")
        thread = await self._threads.find_one(Eq("id", thread_id))
        if thread is None:
            return OperationResult.failure("Thread not found.")
        if thread["status"] == "closed":
            return OperationResult.failure("Thread is closed.")
        profile = await self._profiles.get(user_id)
        if profile is None:
            return OperationResult.failure("User not found.")
        is_admin = profile["role"] == "admin"
        if thread["user_id"] != user_id and not is_admin:
            return OperationResult.failure("Not allowed to post in this thread.")

        now = iso_utc(utcnow())
        try:
            async with transaction(self._db):
                [message_id] = await self._messages.insert(
                    [
                        {
                            "thread_id": thread_id,
                            "user_id": user_id,
                            "message": message.strip(),
                            "sender_role": "admin" if is_admin else "user",
                            "created_at": now,
                        }
                    ],
                    commit=False,
                )
                await self._threads.update(
                    [Eq("id", thread_id)], {"updated_at": now}, commit=False
                )
        except sqlite3.Error as exc:
            log.error("support_message_failed", thread_id=thread_id, error=str(exc))
            return OperationResult.failure(f"Could not send message: {exc}")
        return OperationResult.success("Message sent.", message_id=message_id)

    async def set_thread_status(self, thread_id: int, status: str) -> OperationResult:
        if status not in THREAD_STATUSES:
            return OperationResult.failure(f"Unknown status {status!r}.")
        updated = await self._threads.update(
            [Eq("id", thread_id)], {"status": status, "updated_at": iso_utc(utcnow())}
        )
        if updated != 1:
            return OperationResult.failure("Thread not found.")
        log.info("support_thread_status", thread_id=thread_id, status=status)
        return OperationResult.success("Thread updated.", thread_id=thread_id, status=status)

    async def list_threads(self, user_id: int | None = None) -> list[aiosqlite.Row]:
        """All threads (admin view), or only the given user's."""
        filters = [Eq("user_id", user_id)] if user_id is not None else []
        return await self._threads.find(
            Query(filters=filters, order_by=OrderBy("updated_at", descending=True))
        )

    async def list_messages(self, thread_id: int) -> list[aiosqlite.Row]:
        return await self._messages.find(
            Query(filters=[Eq("thread_id", thread_id)], order_by=OrderBy("id"))
        )
