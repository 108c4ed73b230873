"""The pending bet slip: picked outcomes and their stakes before submission."""

from __future__ import annotations

from decimal import Decimal

from betline.wagers.accounting import (
    ZERO,
    combined_odds,
    express_payout,
    single_payout,
)
from betline.wagers.models import Selection, SelectionKey, to_decimal


class BetSlip:
    """In-memory set of selections keyed by (event, market, outcome)."""

    def __init__(self) -> None:
        self._selections: dict[SelectionKey, Selection] = {}
        self._stakes: dict[SelectionKey, Decimal] = {}

    def __len__(self) -> int:
        return len(self._selections)

    def __contains__(self, key: object) -> bool:
        return key in self._selections

    @property
    def selections(self) -> list[Selection]:
        return list(self._selections.values())

    @property
    def stakes(self) -> dict[SelectionKey, Decimal]:
        return dict(self._stakes)

    def toggle(self, selection: Selection) -> bool:
        """Add the selection, or remove it if already picked. True when added."""
        if selection.key in self._selections:
            self.remove(selection.key)
            return False
        self._selections[selection.key] = selection
        return True

    def remove(self, key: SelectionKey) -> None:
        self._selections.pop(key, None)
        self._stakes.pop(key, None)

    def clear(self) -> None:
        self._selections.clear()
        self._stakes.clear()

    def set_stake(self, key: SelectionKey, amount: Decimal | float | str | None) -> None:
        if key not in self._selections:
            raise KeyError(key)
        if amount is None or amount == "":
            self._stakes.pop(key, None)
            return
        self._stakes[key] = to_decimal(amount)

    def stake_for(self, key: SelectionKey) -> Decimal:
        return self._stakes.get(key, ZERO)

    def total_stake(self) -> Decimal:
        return sum((s for s in self._stakes.values() if s > ZERO), ZERO)

    def single_payout(self, key: SelectionKey) -> Decimal:
        return single_payout(self.stake_for(key), self._selections[key].odds)

    def combined_odds(self) -> Decimal:
        return combined_odds(s.odds for s in self._selections.values())

    def express_payout(self, stake: Decimal | float | str) -> Decimal:
        if not self._selections:
            return ZERO
        return express_payout(to_decimal(stake), (s.odds for s in self._selections.values()))
