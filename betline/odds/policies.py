"""Market selection policies: which bookmaker's market represents an event.

A policy takes an event and a market key and returns one market (or None).
Each market key is resolved independently, so h2h may come from one
bookmaker and totals from another.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from betline.api.schemas import EventOddsSchema, MarketSchema

MarketPolicy = Callable[[EventOddsSchema, str], "MarketSchema | None"]


def first_seen(event: EventOddsSchema, market_key: str) -> MarketSchema | None:
    """The first market with this key, scanning bookmakers in provider order."""
    for bookmaker in event.bookmakers:
        for market in bookmaker.markets:
            if market.key == market_key:
                return market
    return None


def preferred_bookmakers(keys: Sequence[str]) -> MarketPolicy:
    """Try the named bookmakers in order, then fall back to first_seen."""
    order = list(keys)

    def policy(event: EventOddsSchema, market_key: str) -> MarketSchema | None:
        by_key = {bm.key: bm for bm in event.bookmakers}
        for key in order:
            bookmaker = by_key.get(key)
            if bookmaker is None:
                continue
            for market in bookmaker.markets:
                if market.key == market_key:
                    return market
        return first_seen(event, market_key)

    policy.__name__ = f"preferred_bookmakers({','.join(order)})"
    return policy


def policy_for(preferred: Sequence[str]) -> MarketPolicy:
    """Policy matching the configured bookmaker preference."""
    return preferred_bookmakers(preferred) if preferred else first_seen
