"""Decay ledger: lazily-decayed event contributions and their totals.

Values are never mutated in place. The current value of an event is
recomputed on every read from its base amount and the weeks elapsed on
the game calendar.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from typing import Any

from vintner.data.contracts import DecayEvent, EventKind
from vintner.data.models import GameClock
from vintner.data.store import EngineStore

logger = logging.getLogger(__name__)

EventPredicate = Callable[[DecayEvent], bool]


def is_decaying(event: DecayEvent) -> bool:
    """True when the event loses value over time (0 < rate < 1)."""
    rate = event.decay_rate
    return rate is not None and not math.isnan(rate) and 0 < rate < 1


def current_value(event: DecayEvent, now_week: int) -> float:
    """Decayed value of an event at ``now_week``.

    ``decay_rate == 0`` is permanent. Rates outside [0, 1) are treated as
    permanent rather than extrapolated. Elapsed weeks never go negative, so
    an event read in its creation week (or earlier) returns its base amount.
    """
    if not is_decaying(event):
        return event.base_amount
    elapsed = max(0, now_week - event.created_at_week)
    return event.base_amount * event.decay_rate**elapsed


def aggregate(
    events: Iterable[DecayEvent],
    now_week: int,
    predicate: EventPredicate | None = None,
    floor: float = 0.0,
) -> float:
    """Sum of positive current values of matching events, floored.

    Args:
        events: Candidate events.
        now_week: Absolute game week.
        predicate: Optional filter; all events match when None.
        floor: Minimum returned total.

    Returns:
        max(floor, sum of current values > 0).
    """
    total = 0.0
    for event in events:
        if predicate is not None and not predicate(event):
            continue
        value = current_value(event, now_week)
        if value > 0:
            total += value
    return max(floor, total)


def sweep(
    events: Iterable[DecayEvent], now_week: int, epsilon: float
) -> list[str]:
    """Ids of decaying events whose |current value| has fallen below epsilon.

    Pure: nothing is deleted here. Permanent events are never eligible.
    """
    eligible: list[str] = []
    for event in events:
        if not is_decaying(event):
            continue
        if abs(current_value(event, now_week)) < epsilon:
            eligible.append(event.event_id)
    return eligible


def upsert_base_event(
    store: EngineStore,
    owner_key: str,
    kind: EventKind,
    source_id: str,
    amount: float,
    now_week: int,
    metadata: dict[str, Any] | None = None,
) -> DecayEvent:
    """Create or replace the single permanent event for (kind, source_id).

    Re-applying a recomputed "current state" value replaces the amount and
    resets the timestamp instead of adding another event.
    """
    existing = store.find_event(owner_key, kind, source_id)
    if existing is not None:
        existing.base_amount = amount
        existing.created_at_week = now_week
        existing.decay_rate = 0.0
        if metadata is not None:
            existing.metadata = metadata
        store.update_event(existing)
        return existing

    return store.insert_event(
        DecayEvent(
            event_id="",
            owner_key=owner_key,
            kind=kind,
            base_amount=amount,
            created_at_week=now_week,
            decay_rate=0.0,
            source_id=source_id,
            metadata=metadata or {},
        )
    )


class DecayLedger:
    """Events of one owner, bound to a store.

    Args:
        store: Event store.
        owner_key: Company or customer key.
        floor: Minimum aggregate total for this ledger.
        epsilon: Garbage-collection threshold.
        predicate: Restricts which of the owner's events belong to this
            ledger (e.g. prestige kinds only).
    """

    def __init__(
        self,
        store: EngineStore,
        owner_key: str,
        floor: float = 0.0,
        epsilon: float = 0.001,
        predicate: EventPredicate | None = None,
    ) -> None:
        self.store = store
        self.owner_key = owner_key
        self.floor = floor
        self.epsilon = epsilon
        self.predicate = predicate

    def events(self) -> list[DecayEvent]:
        return self.store.query_events(self.owner_key, self.predicate)

    def total(
        self, clock: GameClock, predicate: EventPredicate | None = None
    ) -> float:
        return aggregate(
            self.events(), clock.absolute_week, predicate=predicate, floor=self.floor
        )

    def record(
        self,
        kind: EventKind,
        amount: float,
        decay_rate: float,
        clock: GameClock,
        metadata: dict[str, Any] | None = None,
    ) -> DecayEvent:
        """Insert a one-off decaying event created this week."""
        return self.add(
            DecayEvent(
                event_id="",
                owner_key=self.owner_key,
                kind=kind,
                base_amount=amount,
                created_at_week=clock.absolute_week,
                decay_rate=decay_rate,
                metadata=metadata or {},
            )
        )

    def add(self, event: DecayEvent) -> DecayEvent:
        """Persist an event built elsewhere.

        Raises:
            ValueError: If the event belongs to another owner.
        """
        if event.owner_key != self.owner_key:
            raise ValueError(
                f"Event owner {event.owner_key!r} does not match ledger "
                f"owner {self.owner_key!r}"
            )
        event = self.store.insert_event(event)
        logger.debug(
            "%s: recorded %s event %.4f (decay %.2f)",
            self.owner_key, event.kind.value, event.base_amount, event.decay_rate,
        )
        return event

    def upsert(
        self,
        kind: EventKind,
        source_id: str,
        amount: float,
        clock: GameClock,
        metadata: dict[str, Any] | None = None,
    ) -> DecayEvent:
        return upsert_base_event(
            self.store,
            self.owner_key,
            kind,
            source_id,
            amount,
            clock.absolute_week,
            metadata,
        )

    def collect_garbage(self, clock: GameClock) -> list[str]:
        """Delete negligible events. Returns the ids removed."""
        ids = sweep(self.events(), clock.absolute_week, self.epsilon)
        if ids:
            self.store.delete_events(ids)
            logger.debug(
                "%s: swept %d decayed events", self.owner_key, len(ids)
            )
        return ids
