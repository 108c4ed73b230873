"""Tests for settled-bet summaries."""

from __future__ import annotations

from decimal import Decimal

import pytest

from betline.wagers.history import summarize, user_history


def test_summarize_counts_and_money():
    rows = [
        {"status": "won", "stake": 10.0, "potential_payout": 18.5},
        {"status": "lost", "stake": 20.0, "potential_payout": 44.0},
        {"status": "void", "stake": 5.0, "potential_payout": 9.0},
        {"status": "pending", "stake": 50.0, "potential_payout": 100.0},
    ]
    summary = summarize(rows)
    assert (summary.total, summary.won, summary.lost, summary.void) == (3, 1, 1, 1)
    assert summary.total_won == Decimal("18.50")
    assert summary.total_lost == Decimal("20.00")
    assert summary.profit == Decimal("-1.50")
    assert summary.win_rate == 33.3


def test_summarize_empty():
    summary = summarize([])
    assert summary.total == 0
    assert summary.win_rate == 0.0
    assert summary.profit == Decimal("0")


@pytest.mark.asyncio
async def test_user_history_counts_express_once(
    settings, db, profiles, events, ledger, bets, express_groups, user_id, open_events
):
    from betline.wagers.engine import WagerEngine
    from betline.wagers.models import BetType, Selection

    engine = WagerEngine(settings, profiles, events, ledger)
    sels = [Selection("evt_a", "1X2", "1", "1.5"), Selection("evt_b", "1X2", "2", "2.0")]
    express = await engine.place(user_id, BetType.EXPRESS, sels, express_stake=Decimal("10"))
    single = await engine.place(
        user_id, BetType.SINGLE, [sels[0]], stakes={sels[0].key: Decimal("20")}
    )

    # settlement is external; simulate its outcome
    await db.execute("UPDATE express_groups SET status = 'won' WHERE id = ?", (express.express_id,))
    await db.execute("UPDATE bets SET status = 'won' WHERE express_id = ?", (express.express_id,))
    await db.execute("UPDATE bets SET status = 'lost' WHERE id = ?", (single.bets[0].id,))
    await db.commit()

    summary = await user_history(bets, express_groups, user_id)
    assert (summary.total, summary.won, summary.lost) == (2, 1, 1)
    assert summary.total_won == Decimal("30.00")
    assert summary.total_lost == Decimal("20.00")
    assert summary.profit == Decimal("10.00")
