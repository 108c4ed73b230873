"""Administrator operations: user status, balances, promo codes."""

from __future__ import annotations

import sqlite3
from decimal import Decimal, InvalidOperation
from typing import Any

import aiosqlite
import structlog

from betline.accounts.base import OperationResult
from betline.clock import iso_utc, parse_iso, utcnow
from betline.db.query import Eq
from betline.db.repository import Ledger, ProfileRepository, PromoCodeRepository
from betline.errors import InsufficientFundsError, LedgerError
from betline.wagers.models import to_decimal

log = structlog.get_logger()

USER_STATUSES = ("pending", "approved", "blocked")
PROMO_FIELDS = ("code", "user_role", "bonus_balance", "max_uses", "expires_at", "is_active")


class AdminService:
    def __init__(self, db: aiosqlite.Connection) -> None:
        self._profiles = ProfileRepository(db)
        self._promos = PromoCodeRepository(db)
        self._ledger = Ledger(db)

    # ── Users ───────────────────────────────────────────────────────

    async def list_users(self) -> list[aiosqlite.Row]:
        return await self._profiles.list_all()

    async def set_user_status(self, user_id: int, status: str) -> OperationResult:
        if status not in USER_STATUSES:
            return OperationResult.failure(f"Unknown status {status!r}.")
        if not await self._profiles.set_status(user_id, status):
            return OperationResult.failure("User not found.")
        log.info("user_status_changed", user_id=user_id, status=status)
        return OperationResult.success("Status updated.", user_id=user_id, status=status)

    async def adjust_balance(
        self, user_id: int, amount: Decimal | float | str, reason: str
    ) -> OperationResult:
        """Credit or debit a balance; the result may not go below zero."""
        try:
            amount = to_decimal(amount)
        except InvalidOperation:
            return OperationResult.failure(f"Invalid amount {amount!r}.")
        if not amount.is_finite() or amount == 0:
            return OperationResult.failure("Amount must be non-zero.")
        if not reason.strip():
            return OperationResult.failure("A reason is required.")
        if await self._profiles.get(user_id) is None:
            return OperationResult.failure("User not found.")
        try:
            new_balance = await self._ledger.adjust_balance(user_id, amount, reason.strip())
        except InsufficientFundsError:
            return OperationResult.failure("Balance cannot go below zero.")
        except LedgerError as exc:
            log.error("balance_adjust_failed", user_id=user_id, error=str(exc))
            return OperationResult.failure(str(exc))
        log.info(
            "balance_adjusted",
            user_id=user_id,
            amount=str(amount),
            reason=reason,
            new_balance=str(new_balance),
        )
        return OperationResult.success(
            "Balance updated.", user_id=user_id, new_balance=new_balance
        )

    # ── Promo codes ─────────────────────────────────────────────────

    async def list_promo_codes(self) -> list[aiosqlite.Row]:
        return await self._promos.list_all()

    async def create_promo_code(
        self,
        code: str,
        user_role: str = "user",
        bonus_balance: Decimal | float = 0,
        max_uses: int | None = None,
        expires_at: str | None = None,
    ) -> OperationResult:
        code = code.strip()
        if not code:
            return OperationResult.failure("Code is required.")
        if to_decimal(bonus_balance) < 0:
            return OperationResult.failure("Bonus balance cannot be negative.")
        if max_uses is not None and max_uses < 1:
            return OperationResult.failure("max_uses must be at least 1.")
        if expires_at is not None:
            try:
                expires_at = iso_utc(parse_iso(expires_at))
            except ValueError:
                return OperationResult.failure(f"Invalid expiry {expires_at!r}.")
        row = {
            "code": code,
            "user_role": user_role,
            "bonus_balance": float(bonus_balance),
            "max_uses": max_uses,
            "used_count": 0,
            "expires_at": expires_at,
            "is_active": 1,
            "created_at": iso_utc(utcnow()),
        }
        try:
            [promo_id] = await self._promos.insert([row])
        except sqlite3.IntegrityError:
            return OperationResult.failure(f"Promo code {code!r} already exists.")
        log.info("promo_created", promo_id=promo_id, code=code)
        return OperationResult.success("Promo code created.", promo_id=promo_id)

    async def update_promo_code(self, promo_id: int, **changes: Any) -> OperationResult:
        unknown = set(changes) - set(PROMO_FIELDS)
        if unknown:
            return OperationResult.failure(f"Unknown fields: {', '.join(sorted(unknown))}.")
        if not changes:
            return OperationResult.failure("Nothing to update.")
        if "is_active" in changes:
            changes["is_active"] = 1 if changes["is_active"] else 0
        try:
            updated = await self._promos.update([Eq("id", promo_id)], changes)
        except sqlite3.IntegrityError:
            return OperationResult.failure("Promo code already exists.")
        if updated != 1:
            return OperationResult.failure("Promo code not found.")
        log.info("promo_updated", promo_id=promo_id, fields=sorted(changes))
        return OperationResult.success("Promo code updated.", promo_id=promo_id)

    async def delete_promo_code(self, promo_id: int) -> OperationResult:
        if await self._promos.delete([Eq("id", promo_id)]) != 1:
            return OperationResult.failure("Promo code not found.")
        log.info("promo_deleted", promo_id=promo_id)
        return OperationResult.success("Promo code deleted.", promo_id=promo_id)
