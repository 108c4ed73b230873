"""Wager placement: validate a slip, price it, and apply it to the ledger."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from betline.clock import iso_utc, utcnow
from betline.config import Settings
from betline.db.repository import EventRepository, Ledger, ProfileRepository
from betline.errors import (
    DuplicateSubmissionError,
    InsufficientFundsError,
    LedgerError,
    ValidationError,
)
from betline.wagers.accounting import (
    ZERO,
    build_express_wager,
    build_single_wager,
    unique_selections,
)
from betline.wagers.models import (
    BetType,
    PlacementResult,
    RejectReason,
    Selection,
    SelectionKey,
    Wager,
    to_decimal,
)

log = structlog.get_logger()

MIN_ODDS = Decimal("1.0")
MIN_EXPRESS_LEGS = 2


class WagerEngine:
    def __init__(
        self,
        settings: Settings,
        profiles: ProfileRepository,
        events: EventRepository,
        ledger: Ledger,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._profiles = profiles
        self._events = events
        self._ledger = ledger
        self._clock = clock

    async def place(
        self,
        user_id: int,
        bet_type: BetType,
        selections: Sequence[Selection],
        stakes: Mapping[SelectionKey, Decimal] | None = None,
        express_stake: Decimal | None = None,
        submission_id: str | None = None,
    ) -> PlacementResult:
        """Place one submission. Returns the new balance or a reject reason."""
        try:
            wager = self._build(user_id, bet_type, selections, stakes, express_stake)
            await self._check_account(wager)
            await self._check_events(wager)
        except ValidationError as exc:
            log.info(
                "wager_rejected",
                user_id=user_id,
                bet_type=bet_type.value,
                reason=exc.reason.value,
            )
            return PlacementResult.rejected(exc.reason, str(exc))

        try:
            new_balance = await self._ledger.place_wager(wager, submission_id)
        except InsufficientFundsError:
            log.info("wager_rejected", user_id=user_id, reason="balance_changed")
            return PlacementResult.rejected(
                RejectReason.INSUFFICIENT_BALANCE, "Insufficient balance."
            )
        except DuplicateSubmissionError as exc:
            log.info("wager_duplicate", user_id=user_id, submission_id=exc.submission_id)
            return PlacementResult.rejected(
                RejectReason.DUPLICATE_SUBMISSION, "This bet slip was already submitted."
            )
        except LedgerError as exc:
            return PlacementResult.rejected(RejectReason.STORE_ERROR, str(exc))

        express_id = wager.express.id if wager.express is not None else None
        log.info(
            "wager_placed",
            user_id=user_id,
            bet_type=bet_type.value,
            legs=len(wager.bets),
            stake=str(wager.total_stake),
            potential_payout=str(wager.potential_payout),
            express_id=express_id,
            new_balance=str(new_balance),
        )
        return PlacementResult(
            ok=True,
            message="Bet placed.",
            new_balance=new_balance,
            bets=wager.bets,
            express_id=express_id,
        )

    # ── Validation ──────────────────────────────────────────────────

    @staticmethod
    def _build(
        user_id: int,
        bet_type: BetType,
        selections: Sequence[Selection],
        stakes: Mapping[SelectionKey, Decimal] | None,
        express_stake: Decimal | None,
    ) -> Wager:
        selections = unique_selections(selections)
        if not selections:
            raise ValidationError(RejectReason.EMPTY_SLIP, "The bet slip is empty.")
        for sel in selections:
            if not sel.odds.is_finite() or sel.odds < MIN_ODDS:
                raise ValidationError(
                    RejectReason.INVALID_ODDS, f"Invalid odds {sel.odds} for {sel.outcome}."
                )

        if bet_type is BetType.EXPRESS:
            if len(selections) < MIN_EXPRESS_LEGS:
                raise ValidationError(
                    RejectReason.EXPRESS_TOO_FEW_SELECTIONS,
                    "An express bet needs at least two selections.",
                )
            stake = _stake_amount(express_stake)
            if stake is None or stake < ZERO:
                raise ValidationError(
                    RejectReason.NON_POSITIVE_STAKE, "Stake must be greater than zero."
                )
            wager = build_express_wager(user_id, selections, stake)
        else:
            amounts = {}
            for key, value in (stakes or {}).items():
                if value is None or value == "":
                    continue
                amount = _stake_amount(value)
                if amount is None or amount < ZERO:
                    raise ValidationError(
                        RejectReason.NON_POSITIVE_STAKE, "Stakes must be non-negative numbers."
                    )
                amounts[key] = amount
            wager = build_single_wager(user_id, selections, amounts)

        # stakes are compared after rounding to cents
        if wager.total_stake <= ZERO:
            raise ValidationError(
                RejectReason.NON_POSITIVE_STAKE, "Stake must be greater than zero."
            )
        return wager

    async def _check_account(self, wager: Wager) -> None:
        profile = await self._profiles.get(wager.user_id)
        if profile is None:
            raise ValidationError(RejectReason.USER_NOT_FOUND, "User not found.")
        if profile["status"] == "blocked":
            raise ValidationError(RejectReason.ACCOUNT_BLOCKED, "Account is blocked.")
        balance = to_decimal(profile["balance"])
        if wager.total_stake > balance:
            raise ValidationError(
                RejectReason.INSUFFICIENT_BALANCE, "Insufficient balance."
            )

    async def _check_events(self, wager: Wager) -> None:
        ids = sorted({bet.event_id for bet in wager.bets})
        found = await self._events.get_many(ids)
        cutoff = iso_utc(
            self._clock() + timedelta(minutes=self._settings.bet_cutoff_minutes)
        )
        for event_id in ids:
            event = found.get(event_id)
            if event is None or event["status"] != "scheduled" or event["commence_time"] <= cutoff:
                raise ValidationError(
                    RejectReason.EVENT_CLOSED,
                    f"Betting is closed for event {event_id}.",
                )


def _stake_amount(value: Any) -> Decimal | None:
    """A stake as a finite Decimal, or None when it is missing or not a number."""
    if value is None or value == "":
        return None
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None
