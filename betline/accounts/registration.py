"""Promo-code registration."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

import aiosqlite
import structlog

from betline.accounts.base import OperationRejected, OperationResult
from betline.clock import parse_iso, utcnow
from betline.db.repository import (
    BalanceTransactionRepository,
    ProfileRepository,
    PromoCodeRepository,
    transaction,
)

log = structlog.get_logger()


class Registrar:
    def __init__(
        self, db: aiosqlite.Connection, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._db = db
        self._profiles = ProfileRepository(db)
        self._promos = PromoCodeRepository(db)
        self._transactions = BalanceTransactionRepository(db)
        self._clock = clock

    async def register(self, username: str, promo_code: str) -> OperationResult:
        """Create a pending profile funded by the promo code's bonus."""
        username = username.strip()
        if not username:
            return OperationResult.failure("Username is required.")

        promo = await self._promos.get_by_code(promo_code.strip())
        if promo is None or not promo["is_active"]:
            return OperationResult.failure("Invalid promo code.")
        if promo["max_uses"] is not None and promo["used_count"] >= promo["max_uses"]:
            return OperationResult.failure("Promo code has been used up.")
        if promo["expires_at"] and parse_iso(promo["expires_at"]) < self._clock():
            return OperationResult.failure("Promo code has expired.")
        if await self._profiles.get_by_username(username) is not None:
            return OperationResult.failure("Username is already taken.")

        bonus = Decimal(str(promo["bonus_balance"] or 0))
        try:
            async with transaction(self._db):
                if not await self._promos.claim(promo["id"]):
                    raise OperationRejected("Promo code has been used up.")
                user_id = await self._profiles.create(
                    username,
                    role=promo["user_role"],
                    status="pending",
                    balance=bonus,
                    promo_code=promo["code"],
                    commit=False,
                )
                if bonus > 0:
                    await self._transactions.record(
                        user_id, bonus, "promo_bonus", bonus, commit=False
                    )
        except OperationRejected as exc:
            return OperationResult.failure(str(exc))
        except sqlite3.IntegrityError:
            return OperationResult.failure("Username is already taken.")
        except sqlite3.Error as exc:
            log.error("registration_failed", username=username, error=str(exc))
            return OperationResult.failure(f"Registration failed: {exc}")

        log.info("user_registered", user_id=user_id, promo=promo["code"], bonus=str(bonus))
        return OperationResult.success(
            "Registered. The account is awaiting approval.",
            user_id=user_id,
            balance=bonus,
        )
