"""Reduce a provider event to one flat quote per market type."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from betline.api.schemas import EventOddsSchema, MarketSchema, OutcomeSchema
from betline.clock import iso_utc, parse_iso
from betline.odds.policies import MarketPolicy, first_seen

log = structlog.get_logger()

DRAW = "Draw"
OVER = "Over"
UNDER = "Under"


@dataclass
class NormalizedEvent:
    id: str
    sport: str
    league: str
    home_team: str
    away_team: str
    commence_time: str
    home_odds: float | None = None
    away_odds: float | None = None
    draw_odds: float | None = None
    spreads_home_odds: float | None = None
    spreads_away_odds: float | None = None
    spreads_home_point: float | None = None
    spreads_away_point: float | None = None
    totals_over_odds: float | None = None
    totals_under_odds: float | None = None
    totals_point: float | None = None
    status: str = "scheduled"

    @property
    def has_h2h(self) -> bool:
        return self.home_odds is not None and self.away_odds is not None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MarketCoverage:
    """How many events carried each market, overall and per sport key."""

    total: int = 0
    with_h2h: int = 0
    with_spreads: int = 0
    with_totals: int = 0
    dropped: int = 0
    by_sport: dict[str, Counter] = field(default_factory=dict)

    def add(self, sport_key: str, h2h: bool, spreads: bool, totals: bool) -> None:
        self.total += 1
        self.with_h2h += h2h
        self.with_spreads += spreads
        self.with_totals += totals
        counts = self.by_sport.setdefault(sport_key, Counter())
        counts["total"] += 1
        counts["h2h"] += h2h
        counts["spreads"] += spreads
        counts["totals"] += totals


@dataclass
class NormalizationReport:
    events: list[NormalizedEvent]
    coverage: MarketCoverage


def _find(market: MarketSchema | None, name: str) -> OutcomeSchema | None:
    if market is None:
        return None
    for outcome in market.outcomes:
        if outcome.name == name:
            return outcome
    return None


def _price(outcome: OutcomeSchema | None) -> float | None:
    return outcome.price if outcome is not None else None


def _point(outcome: OutcomeSchema | None) -> float | None:
    return outcome.point if outcome is not None else None


def build_event(
    event: EventOddsSchema, policy: MarketPolicy = first_seen
) -> NormalizedEvent:
    """Flatten an event without applying the h2h filter."""
    h2h = policy(event, "h2h")
    spreads = policy(event, "spreads")
    totals = policy(event, "totals")

    home = _find(h2h, event.home_team)
    away = _find(h2h, event.away_team)
    draw = _find(h2h, DRAW)
    home_spread = _find(spreads, event.home_team)
    away_spread = _find(spreads, event.away_team)
    over = _find(totals, OVER)
    under = _find(totals, UNDER)

    return NormalizedEvent(
        id=event.id,
        sport=event.sport_title,
        league=event.sport_key,
        home_team=event.home_team,
        away_team=event.away_team,
        commence_time=iso_utc(parse_iso(event.commence_time)),
        home_odds=_price(home),
        away_odds=_price(away),
        draw_odds=_price(draw),
        spreads_home_odds=_price(home_spread),
        spreads_away_odds=_price(away_spread),
        spreads_home_point=_point(home_spread),
        spreads_away_point=_point(away_spread),
        totals_over_odds=_price(over),
        totals_under_odds=_price(under),
        # both sides share one line; the Over outcome carries it
        totals_point=_point(over),
    )


def normalize_event(
    event: EventOddsSchema, policy: MarketPolicy = first_seen
) -> NormalizedEvent | None:
    """Flatten an event, or None when it has no usable home/away h2h price."""
    normalized = build_event(event, policy)
    return normalized if normalized.has_h2h else None


def normalize_events(
    events: Iterable[EventOddsSchema], policy: MarketPolicy = first_seen
) -> NormalizationReport:
    coverage = MarketCoverage()
    kept: list[NormalizedEvent] = []
    for event in events:
        try:
            normalized = build_event(event, policy)
        except ValueError:
            coverage.dropped += 1
            log.warning(
                "event_dropped_bad_time",
                event_id=event.id,
                commence_time=event.commence_time,
            )
            continue
        coverage.add(
            event.sport_key,
            h2h=policy(event, "h2h") is not None,
            spreads=policy(event, "spreads") is not None,
            totals=policy(event, "totals") is not None,
        )
        if normalized.has_h2h:
            kept.append(normalized)
        else:
            coverage.dropped += 1
            log.debug("event_dropped_no_h2h", event_id=event.id, sport=event.sport_key)
    return NormalizationReport(events=kept, coverage=coverage)
