"""Wager types: selections, bet records and placement results."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

SelectionKey = tuple[str, str, str]  # (event_id, market, outcome)


class BetType(str, Enum):
    SINGLE = "single"
    EXPRESS = "express"


class BetStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    VOID = "void"


class RejectReason(str, Enum):
    EMPTY_SLIP = "empty_slip"
    NON_POSITIVE_STAKE = "non_positive_stake"
    INVALID_ODDS = "invalid_odds"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    EXPRESS_TOO_FEW_SELECTIONS = "express_too_few_selections"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_BLOCKED = "account_blocked"
    EVENT_CLOSED = "event_closed"
    DUPLICATE_SUBMISSION = "duplicate_submission"
    STORE_ERROR = "store_error"


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Selection:
    """One outcome picked into the slip, with the odds seen at pick time."""

    event_id: str
    market: str
    outcome: str
    odds: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "odds", to_decimal(self.odds))

    @property
    def key(self) -> SelectionKey:
        return (self.event_id, self.market, self.outcome)


@dataclass
class BetRecord:
    user_id: int
    event_id: str
    market: str
    outcome: str
    odds: Decimal
    stake: Decimal | None
    potential_payout: Decimal | None
    bet_type: BetType
    express_id: str | None = None
    status: BetStatus = BetStatus.PENDING
    id: int | None = None

    def to_row(self, created_at: str) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "event_id": self.event_id,
            "market": self.market,
            "outcome": self.outcome,
            "odds": float(self.odds),
            "stake": float(self.stake) if self.stake is not None else None,
            "potential_payout": (
                float(self.potential_payout) if self.potential_payout is not None else None
            ),
            "bet_type": self.bet_type.value,
            "express_id": self.express_id,
            "status": self.status.value,
            "created_at": created_at,
        }


@dataclass
class ExpressGroup:
    """Group-level stake and payout of one express bet; legs carry neither."""

    id: str
    user_id: int
    stake: Decimal
    combined_odds: Decimal
    potential_payout: Decimal
    status: BetStatus = BetStatus.PENDING

    def to_row(self, created_at: str) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "stake": float(self.stake),
            "combined_odds": float(self.combined_odds),
            "potential_payout": float(self.potential_payout),
            "status": self.status.value,
            "created_at": created_at,
        }


@dataclass
class Wager:
    """The ledger mutation for one submission: bet rows plus the debit."""

    user_id: int
    bet_type: BetType
    total_stake: Decimal
    bets: list[BetRecord]
    express: ExpressGroup | None = None

    @property
    def potential_payout(self) -> Decimal:
        if self.express is not None:
            return self.express.potential_payout
        return sum((b.potential_payout or Decimal("0") for b in self.bets), Decimal("0"))


@dataclass
class PlacementResult:
    ok: bool
    reason: RejectReason | None = None
    message: str = ""
    new_balance: Decimal | None = None
    bets: list[BetRecord] = field(default_factory=list)
    express_id: str | None = None

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> PlacementResult:
        return cls(ok=False, reason=reason, message=message)
