"""Tests for customer relationship boosts."""

from __future__ import annotations

import math

import pytest

from vintner.data.models import GameClock
from vintner.data.store import EngineStore
from vintner.metrics.relationship import (
    RelationshipBreakdown,
    boost_amount,
    calculate_relationship,
    record_relationship_boost,
    relationship_boost_event,
    relationship_key,
    relationship_ledger,
)


@pytest.fixture
def store() -> EngineStore:
    return EngineStore()


class TestBoostAmount:
    """Tests for boost_amount."""

    def test_base_boost(self) -> None:
        """A 10,000 order at zero prestige boosts by 0.1."""
        assert boost_amount(10_000.0, 0.0) == pytest.approx(0.1)

    def test_prestige_diminishes_boost(self) -> None:
        """At prestige 100 the same order boosts half as much."""
        assert boost_amount(10_000.0, 100.0) == pytest.approx(0.05)

    def test_non_positive_order(self) -> None:
        """No boost for empty orders."""
        assert boost_amount(0.0, 5.0) == 0.0


class TestCalculateRelationship:
    """Tests for calculate_relationship."""

    def test_prestige_only(self, store: EngineStore) -> None:
        """Without boosts the strength is ln(prestige + 1)."""
        result = calculate_relationship(
            store, "c1", "cust", math.e - 1, 0.0, GameClock.from_absolute(0)
        )
        assert isinstance(result, RelationshipBreakdown)
        assert result.prestige_component == pytest.approx(1.0)
        assert result.boost_component == 0.0
        assert result.market_share_modifier == pytest.approx(1.0)
        assert result.total == pytest.approx(1.0)

    def test_full_market_share_zeroes_strength(self, store: EngineStore) -> None:
        """A customer with the whole market is indifferent."""
        result = calculate_relationship(
            store, "c1", "cust", 50.0, 1.0, GameClock.from_absolute(0)
        )
        assert result.total == pytest.approx(0.0)

    def test_boosts_decay(self, store: EngineStore) -> None:
        """Recorded boosts add to strength and decay weekly."""
        record_relationship_boost(
            store, "c1", "cust", 10_000.0, 0.0, GameClock.from_absolute(0)
        )

        now = calculate_relationship(store, "c1", "cust", 0.0, 0.0, GameClock.from_absolute(0))
        later = calculate_relationship(store, "c1", "cust", 0.0, 0.0, GameClock.from_absolute(10))
        assert now.boost_component == pytest.approx(0.1)
        assert later.boost_component == pytest.approx(0.1 * 0.95**10)

    def test_boosts_not_shared_between_companies(self, store: EngineStore) -> None:
        """Each company only sees the boosts from its own orders."""
        record_relationship_boost(
            store, "rival", "cust", 500_000.0, 0.0, GameClock.from_absolute(0)
        )

        own = calculate_relationship(store, "c1", "cust", 0.0, 0.0, GameClock.from_absolute(0))
        rival = calculate_relationship(
            store, "rival", "cust", 0.0, 0.0, GameClock.from_absolute(0)
        )
        assert own.boost_component == 0.0
        assert rival.boost_component == pytest.approx(5.0)

    def test_no_floor(self, store: EngineStore) -> None:
        """The boost ledger allows a zero total."""
        ledger = relationship_ledger(store, "c1", "cust")
        assert ledger.total(GameClock.from_absolute(0)) == 0.0


class TestRelationshipBoostEvent:
    """Tests for relationship_boost_event."""

    def test_owned_by_pair(self) -> None:
        event = relationship_boost_event(
            "c1", "cust", 10_000.0, 0.0, GameClock.from_absolute(2)
        )
        assert event is not None
        assert event.owner_key == relationship_key("c1", "cust")
        assert event.decay_rate == pytest.approx(0.95)
        assert event.metadata == {"company_id": "c1", "customer_id": "cust"}

    def test_empty_order(self) -> None:
        assert relationship_boost_event("c1", "cust", 0.0, 0.0, GameClock()) is None
