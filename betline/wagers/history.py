"""Settled-bet statistics for a user's results page."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import aiosqlite

from betline.db.repository import BetRepository, ExpressGroupRepository
from betline.wagers.accounting import ZERO, quantize
from betline.wagers.models import BetStatus, to_decimal

SETTLED = (BetStatus.WON, BetStatus.LOST, BetStatus.VOID)


@dataclass
class HistorySummary:
    total: int = 0
    won: int = 0
    lost: int = 0
    void: int = 0
    total_won: Decimal = ZERO
    total_lost: Decimal = ZERO

    @property
    def profit(self) -> Decimal:
        return self.total_won - self.total_lost

    @property
    def win_rate(self) -> float:
        """Percentage of settled wagers that won, one decimal place."""
        if self.total == 0:
            return 0.0
        return round(self.won / self.total * 100, 1)


def summarize(wagers: list[aiosqlite.Row | dict]) -> HistorySummary:
    """Summarize settled wagers: single bet rows and express group rows alike.

    Each row needs ``status``, ``stake`` and ``potential_payout``.
    """
    summary = HistorySummary()
    for row in wagers:
        status = row["status"]
        if status not in {s.value for s in SETTLED}:
            continue
        summary.total += 1
        if status == BetStatus.WON.value:
            summary.won += 1
            summary.total_won += to_decimal(row["potential_payout"] or 0)
        elif status == BetStatus.LOST.value:
            summary.lost += 1
            summary.total_lost += to_decimal(row["stake"] or 0)
        else:
            summary.void += 1
    summary.total_won = quantize(summary.total_won)
    summary.total_lost = quantize(summary.total_lost)
    return summary


async def user_history(
    bets: BetRepository, groups: ExpressGroupRepository, user_id: int
) -> HistorySummary:
    """Summary over a user's settled singles and express groups."""
    singles = [
        row
        for row in await bets.list_for_user(user_id, statuses=SETTLED)
        if row["bet_type"] == "single"
    ]
    express = await groups.list_for_user(user_id, statuses=SETTLED)
    return summarize([*singles, *express])
