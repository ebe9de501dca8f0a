"""Tests for the SQLite engine store."""

from __future__ import annotations

from pathlib import Path

import pytest

from vintner.data.contracts import (
    DecayEvent,
    EventKind,
    HistoricalSnapshot,
    Transaction,
    TransactionCategory,
)
from vintner.data.models import Company, Loan, Vineyard
from vintner.data.store import EngineStore


@pytest.fixture
def store() -> EngineStore:
    return EngineStore()


def _make_snapshot(week: int, price: float = 10.0) -> HistoricalSnapshot:
    return HistoricalSnapshot(
        company_id="c1",
        week=week,
        share_price=price,
        book_value_per_share=10.0,
        credit_rating=0.6,
        prestige=2.0,
        fixed_asset_ratio=0.3,
    )


# -- events --


class TestEvents:
    """Tests for event persistence."""

    def test_insert_assigns_id(self, store: EngineStore) -> None:
        event = store.insert_event(DecayEvent("", "c1", EventKind.SALE, 1.5, 3, 0.95))
        assert event.event_id
        loaded = store.query_events("c1")
        assert loaded == [event]

    def test_metadata_round_trip(self, store: EngineStore) -> None:
        store.insert_event(
            DecayEvent("", "c1", EventKind.VINEYARD_SALE, 1.0, 0,
                       metadata={"vineyard_id": "v1"})
        )
        assert store.query_events("c1")[0].metadata == {"vineyard_id": "v1"}

    def test_empty_owner_rejected(self, store: EngineStore) -> None:
        with pytest.raises(ValueError, match="owner_key"):
            store.insert_event(DecayEvent("", "", EventKind.SALE, 1.0, 0))

    def test_query_filters_by_owner_and_predicate(self, store: EngineStore) -> None:
        store.insert_event(DecayEvent("", "c1", EventKind.SALE, 1.0, 0))
        store.insert_event(DecayEvent("", "c1", EventKind.CONTRACT, 2.0, 1))
        store.insert_event(DecayEvent("", "c2", EventKind.SALE, 3.0, 0))

        assert len(store.query_events("c1")) == 2
        sales = store.query_events("c1", lambda e: e.kind is EventKind.SALE)
        assert [e.base_amount for e in sales] == [1.0]

    def test_find_and_update(self, store: EngineStore) -> None:
        event = store.insert_event(
            DecayEvent("", "c1", EventKind.VINEYARD_AGE, 0.1, 0, source_id="v1_age")
        )
        found = store.find_event("c1", EventKind.VINEYARD_AGE, "v1_age")
        assert found is not None and found.event_id == event.event_id

        found.base_amount = 0.4
        found.created_at_week = 7
        store.update_event(found)
        reloaded = store.find_event("c1", EventKind.VINEYARD_AGE, "v1_age")
        assert reloaded is not None
        assert reloaded.base_amount == pytest.approx(0.4)
        assert reloaded.created_at_week == 7

    def test_find_missing(self, store: EngineStore) -> None:
        assert store.find_event("c1", EventKind.VINEYARD_LAND, "v9_land") is None

    def test_delete_events(self, store: EngineStore) -> None:
        a = store.insert_event(DecayEvent("", "c1", EventKind.SALE, 1.0, 0))
        store.insert_event(DecayEvent("", "c1", EventKind.SALE, 2.0, 0))
        assert store.delete_events([a.event_id]) == 1
        assert store.delete_events([]) == 0
        assert [e.base_amount for e in store.query_events("c1")] == [2.0]


# -- companies, vineyards, loans --


class TestEntities:
    """Tests for company, vineyard and loan persistence."""

    def test_company_round_trip(self, store: EngineStore) -> None:
        company = Company("c1", "Chateau Test", money=5_000.0, share_price=None)
        store.add_company(company)
        assert store.get_company("c1") == company

        company.share_price = 12.0
        company.last_growth_trend_week = 60
        store.update_company(company)
        assert store.get_company("c1") == company
        assert [c.company_id for c in store.list_companies()] == ["c1"]

    def test_missing_company(self, store: EngineStore) -> None:
        assert store.get_company("nope") is None

    def test_vineyards(self, store: EngineStore) -> None:
        store.add_vineyard("c1", Vineyard("v2", "South", vine_age=5.0))
        store.add_vineyard("c1", Vineyard("v1", "North", land_value=20_000.0))
        store.add_vineyard("c2", Vineyard("v3", "Other"))
        assert [v.vineyard_id for v in store.vineyards("c1")] == ["v1", "v2"]

    def test_loans(self, store: EngineStore) -> None:
        loan = Loan("l1", "c1", principal=1_000.0, remaining_balance=800.0)
        store.add_loan(loan)
        loan.remaining_balance = 0.0
        loan.missed_payments = 2
        store.update_loan(loan)
        assert store.loans("c1") == [loan]
        assert store.loans("c2") == []


# -- transactions --


class TestTransactions:
    """Tests for the transaction ledger."""

    def test_frame_columns_and_order(self, store: EngineStore) -> None:
        store.add_transaction(Transaction("c1", 100.0, TransactionCategory.SALE, 5))
        store.add_transaction(Transaction("c1", -40.0, TransactionCategory.WAGES, 2))
        store.add_transaction(Transaction("c2", 999.0, TransactionCategory.SALE, 1))

        df = store.transactions_frame("c1")
        assert list(df.columns) == ["week", "amount", "category", "description"]
        assert df["week"].tolist() == [2, 5]
        assert df["category"].tolist() == ["wages", "sale"]

    def test_count_outgoing(self, store: EngineStore) -> None:
        """Only outgoing payments are counted."""
        for week in range(3):
            store.add_transaction(
                Transaction("c1", -100.0, TransactionCategory.LOAN_PAYMENT, week)
            )
        store.add_transaction(
            Transaction("c1", 5_000.0, TransactionCategory.LOAN_RECEIVED, 0)
        )
        assert store.count_transactions("c1", TransactionCategory.LOAN_PAYMENT) == 3
        assert store.count_transactions("c1", TransactionCategory.LOAN_RECEIVED) == 0


# -- snapshots --


class TestSnapshots:
    """Tests for historical snapshot lookups."""

    def test_exact_weeks_ago(self, store: EngineStore) -> None:
        store.insert_snapshot(_make_snapshot(12, price=8.0))
        store.insert_snapshot(_make_snapshot(60, price=11.0))
        snapshot = store.get_snapshot("c1", 48, 60)
        assert snapshot is not None
        assert snapshot.share_price == 8.0

    def test_latest_before_target(self, store: EngineStore) -> None:
        store.insert_snapshot(_make_snapshot(3, price=7.0))
        store.insert_snapshot(_make_snapshot(10, price=9.0))
        snapshot = store.get_snapshot("c1", 48, 61)
        assert snapshot is not None
        assert snapshot.week == 10

    def test_none_when_too_young(self, store: EngineStore) -> None:
        store.insert_snapshot(_make_snapshot(20))
        assert store.get_snapshot("c1", 48, 30) is None

    def test_replace_same_week(self, store: EngineStore) -> None:
        store.insert_snapshot(_make_snapshot(4, price=1.0))
        store.insert_snapshot(_make_snapshot(4, price=2.0))
        df = store.snapshot_frame("c1")
        assert len(df) == 1
        assert df["share_price"].iloc[0] == 2.0


class TestCashBalances:
    """Tests for the weekly cash balance history."""

    def test_replace_same_week(self, store: EngineStore) -> None:
        store.record_cash_balance("c1", 1, -10.0)
        store.record_cash_balance("c1", 0, 5.0)
        store.record_cash_balance("c1", 1, -20.0)

        df = store.cash_history_frame("c1")
        assert list(df.columns) == ["week", "cash_money"]
        assert df["week"].tolist() == [0, 1]
        assert df["cash_money"].tolist() == pytest.approx([5.0, -20.0])
        assert store.cash_history_frame("c2").empty


class TestFileStore:
    """Tests for an on-disk store."""

    def test_persists_between_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "engine.db"
        first = EngineStore(path)
        first.add_company(Company("c1", "Chateau Test"))
        first.insert_event(DecayEvent("", "c1", EventKind.SALE, 1.0, 0))

        second = EngineStore(path)
        assert second.get_company("c1") is not None
        assert len(second.query_events("c1")) == 1
