"""Wager arithmetic and the bet records a submission turns into."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from betline.wagers.models import (
    BetRecord,
    BetType,
    ExpressGroup,
    Selection,
    SelectionKey,
    Wager,
    to_decimal,
)

CENT = Decimal("0.01")
ZERO = Decimal("0")


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def single_payout(stake: Decimal, odds: Decimal) -> Decimal:
    return quantize(to_decimal(stake) * to_decimal(odds))


def combined_odds(odds: Iterable[Decimal]) -> Decimal:
    product = Decimal("1")
    for o in odds:
        product *= to_decimal(o)
    return product


def express_payout(stake: Decimal, odds: Iterable[Decimal]) -> Decimal:
    return quantize(to_decimal(stake) * combined_odds(odds))


def unique_selections(selections: Iterable[Selection]) -> list[Selection]:
    """Selections with repeated (event, market, outcome) keys collapsed to the first."""
    seen: set[SelectionKey] = set()
    unique = []
    for sel in selections:
        if sel.key not in seen:
            seen.add(sel.key)
            unique.append(sel)
    return unique


def staked_selections(
    selections: Sequence[Selection], stakes: Mapping[SelectionKey, Decimal]
) -> list[tuple[Selection, Decimal]]:
    """Selections whose stake rounds to at least one cent; the rest are inert."""
    staked = []
    for sel in unique_selections(selections):
        stake = stakes.get(sel.key)
        if stake is None:
            continue
        stake = quantize(to_decimal(stake))
        if stake > ZERO:
            staked.append((sel, stake))
    return staked


def build_single_wager(
    user_id: int,
    selections: Sequence[Selection],
    stakes: Mapping[SelectionKey, Decimal],
) -> Wager:
    bets = [
        BetRecord(
            user_id=user_id,
            event_id=sel.event_id,
            market=sel.market,
            outcome=sel.outcome,
            odds=sel.odds,
            stake=stake,
            potential_payout=single_payout(stake, sel.odds),
            bet_type=BetType.SINGLE,
        )
        for sel, stake in staked_selections(selections, stakes)
    ]
    total = sum((b.stake for b in bets), ZERO)  # type: ignore[misc]
    return Wager(user_id=user_id, bet_type=BetType.SINGLE, total_stake=total, bets=bets)


def new_express_id() -> str:
    return f"express_{uuid.uuid4().hex}"


def build_express_wager(
    user_id: int,
    selections: Sequence[Selection],
    stake: Decimal,
    express_id: str | None = None,
) -> Wager:
    """One express bet: legs keep their own odds, the group holds stake and payout."""
    selections = unique_selections(selections)
    stake = quantize(to_decimal(stake))
    express_id = express_id or new_express_id()
    odds = combined_odds(sel.odds for sel in selections)
    group = ExpressGroup(
        id=express_id,
        user_id=user_id,
        stake=stake,
        combined_odds=odds,
        potential_payout=quantize(stake * odds),
    )
    legs = [
        BetRecord(
            user_id=user_id,
            event_id=sel.event_id,
            market=sel.market,
            outcome=sel.outcome,
            odds=sel.odds,
            stake=None,
            potential_payout=None,
            bet_type=BetType.EXPRESS,
            express_id=express_id,
        )
        for sel in selections
    ]
    return Wager(
        user_id=user_id,
        bet_type=BetType.EXPRESS,
        total_stake=stake,
        bets=legs,
        express=group,
    )
