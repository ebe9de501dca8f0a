"""SQLite-backed store for events, transactions, loans and snapshots.

The engine only depends on the narrow operations exposed here (insert,
query by owner, delete by id, snapshot lookup by weeks ago). The table
layout is an implementation detail of this adapter.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, fields
from pathlib import Path

import pandas as pd

from vintner.data.contracts import (
    SNAPSHOT_COLUMNS,
    DecayEvent,
    EventKind,
    HistoricalSnapshot,
    Transaction,
    TransactionCategory,
)
from vintner.data.models import Company, Loan, Vineyard

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_COMPANY_COLUMNS = [f.name for f in fields(Company)]
_LOAN_COLUMNS = [f.name for f in fields(Loan)]
_VINEYARD_COLUMNS = [f.name for f in fields(Vineyard)]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS companies (
    company_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    founded_week INTEGER NOT NULL,
    money REAL NOT NULL,
    total_shares REAL NOT NULL,
    share_price REAL,
    dividend_rate REAL NOT NULL,
    growth_trend_multiplier REAL NOT NULL,
    last_growth_trend_week INTEGER,
    base_revenue_growth REAL NOT NULL,
    base_profit_margin REAL NOT NULL,
    base_return_on_book_value REAL NOT NULL,
    fixed_assets REAL NOT NULL,
    current_assets REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS events (
    event_id TEXT PRIMARY KEY,
    owner_key TEXT NOT NULL,
    kind TEXT NOT NULL,
    base_amount REAL NOT NULL,
    created_at_week INTEGER NOT NULL,
    decay_rate REAL NOT NULL,
    source_id TEXT,
    metadata TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_owner ON events (owner_key);
CREATE TABLE IF NOT EXISTS transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL,
    week INTEGER NOT NULL,
    description TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_transactions_company ON transactions (company_id);
CREATE TABLE IF NOT EXISTS loans (
    loan_id TEXT PRIMARY KEY,
    company_id TEXT NOT NULL,
    principal REAL NOT NULL,
    remaining_balance REAL NOT NULL,
    missed_payments INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS vineyards (
    vineyard_id TEXT PRIMARY KEY,
    company_id TEXT NOT NULL,
    name TEXT NOT NULL,
    vine_age REAL NOT NULL,
    land_value REAL NOT NULL,
    hectares REAL NOT NULL,
    suitability REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS snapshots (
    company_id TEXT NOT NULL,
    week INTEGER NOT NULL,
    share_price REAL NOT NULL,
    book_value_per_share REAL NOT NULL,
    credit_rating REAL NOT NULL,
    prestige REAL NOT NULL,
    fixed_asset_ratio REAL NOT NULL,
    earnings_per_share_48w REAL NOT NULL,
    revenue_per_share_48w REAL NOT NULL,
    dividend_per_share_48w REAL NOT NULL,
    profit_margin_48w REAL NOT NULL,
    revenue_growth_48w REAL NOT NULL,
    cash_money REAL NOT NULL,
    PRIMARY KEY (company_id, week)
);
CREATE TABLE IF NOT EXISTS cash_balances (
    company_id TEXT NOT NULL,
    week INTEGER NOT NULL,
    cash_money REAL NOT NULL,
    PRIMARY KEY (company_id, week)
);
"""


def _row_to_event(row: sqlite3.Row) -> DecayEvent:
    return DecayEvent(
        event_id=row["event_id"],
        owner_key=row["owner_key"],
        kind=EventKind(row["kind"]),
        base_amount=row["base_amount"],
        created_at_week=row["created_at_week"],
        decay_rate=row["decay_rate"],
        source_id=row["source_id"],
        metadata=json.loads(row["metadata"]),
    )


class EngineStore:
    """Keyed store backing the engine's collaborator interfaces.

    A file path opens a fresh connection per operation. The special path
    ":memory:" keeps one shared connection for the store's lifetime so
    data survives between operations.
    """

    def __init__(self, db_path: Path | str = MEMORY_PATH) -> None:
        self.db_path = str(db_path)
        self._shared: sqlite3.Connection | None = None
        if self.db_path == MEMORY_PATH:
            self._shared = sqlite3.connect(MEMORY_PATH)
            self._shared.row_factory = sqlite3.Row
        with self._connection() as conn:
            conn.executescript(_SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        """Open a connection to the store database."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        if self._shared is not None:
            with self._shared:
                yield self._shared
            return
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def close(self) -> None:
        if self._shared is not None:
            self._shared.close()
            self._shared = None

    # --- Events ---

    def insert_event(self, event: DecayEvent) -> DecayEvent:
        """Insert an event, assigning an id if it has none.

        Raises:
            ValueError: If the event has no owner key.
        """
        if not event.owner_key:
            raise ValueError("Event owner_key must be non-empty")
        if not event.event_id:
            event.event_id = uuid.uuid4().hex
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO events (event_id, owner_key, kind, base_amount, "
                "created_at_week, decay_rate, source_id, metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    event.event_id,
                    event.owner_key,
                    event.kind.value,
                    event.base_amount,
                    event.created_at_week,
                    event.decay_rate,
                    event.source_id,
                    json.dumps(event.metadata),
                ),
            )
        return event

    def update_event(self, event: DecayEvent) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE events SET base_amount = ?, created_at_week = ?, "
                "decay_rate = ?, metadata = ? WHERE event_id = ?",
                (
                    event.base_amount,
                    event.created_at_week,
                    event.decay_rate,
                    json.dumps(event.metadata),
                    event.event_id,
                ),
            )

    def query_events(
        self,
        owner_key: str,
        predicate: Callable[[DecayEvent], bool] | None = None,
    ) -> list[DecayEvent]:
        """Load all events for an owner, optionally filtered.

        Args:
            owner_key: Company or customer key.
            predicate: Optional filter applied to each event.

        Returns:
            Events in creation order.
        """
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM events WHERE owner_key = ? "
                "ORDER BY created_at_week, rowid",
                (owner_key,),
            ).fetchall()
        events = [_row_to_event(row) for row in rows]
        if predicate is None:
            return events
        return [e for e in events if predicate(e)]

    def find_event(
        self, owner_key: str, kind: EventKind, source_id: str
    ) -> DecayEvent | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM events WHERE owner_key = ? AND kind = ? "
                "AND source_id = ? LIMIT 1",
                (owner_key, kind.value, source_id),
            ).fetchone()
        return None if row is None else _row_to_event(row)

    def delete_events(self, event_ids: Iterable[str]) -> int:
        """Delete events by id. Returns the number of rows removed."""
        ids = list(event_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self._connection() as conn:
            cursor = conn.execute(
                f"DELETE FROM events WHERE event_id IN ({placeholders})", ids
            )
            deleted = cursor.rowcount
        logger.debug("Deleted %d events", deleted)
        return deleted

    # --- Companies ---

    def add_company(self, company: Company) -> None:
        placeholders = ", ".join("?" for _ in _COMPANY_COLUMNS)
        with self._connection() as conn:
            conn.execute(
                f"INSERT INTO companies ({', '.join(_COMPANY_COLUMNS)}) "
                f"VALUES ({placeholders})",
                tuple(asdict(company)[c] for c in _COMPANY_COLUMNS),
            )

    def update_company(self, company: Company) -> None:
        assignments = ", ".join(f"{c} = ?" for c in _COMPANY_COLUMNS[1:])
        values = asdict(company)
        with self._connection() as conn:
            conn.execute(
                f"UPDATE companies SET {assignments} WHERE company_id = ?",
                tuple(values[c] for c in _COMPANY_COLUMNS[1:])
                + (company.company_id,),
            )

    def get_company(self, company_id: str) -> Company | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM companies WHERE company_id = ?", (company_id,)
            ).fetchone()
        if row is None:
            logger.warning("%s: company not found", company_id)
            return None
        return Company(**{c: row[c] for c in _COMPANY_COLUMNS})

    def list_companies(self) -> list[Company]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM companies ORDER BY company_id"
            ).fetchall()
        return [Company(**{c: row[c] for c in _COMPANY_COLUMNS}) for row in rows]

    # --- Vineyards ---

    def add_vineyard(self, company_id: str, vineyard: Vineyard) -> None:
        values = asdict(vineyard)
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO vineyards (vineyard_id, company_id, "
                "name, vine_age, land_value, hectares, suitability) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    values["vineyard_id"],
                    company_id,
                    values["name"],
                    values["vine_age"],
                    values["land_value"],
                    values["hectares"],
                    values["suitability"],
                ),
            )

    def vineyards(self, company_id: str) -> list[Vineyard]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM vineyards WHERE company_id = ? ORDER BY vineyard_id",
                (company_id,),
            ).fetchall()
        return [Vineyard(**{c: row[c] for c in _VINEYARD_COLUMNS}) for row in rows]

    # --- Transactions ---

    def add_transaction(self, transaction: Transaction) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO transactions (company_id, amount, category, week, "
                "description) VALUES (?, ?, ?, ?, ?)",
                (
                    transaction.company_id,
                    transaction.amount,
                    transaction.category.value,
                    transaction.week,
                    transaction.description,
                ),
            )

    def transactions_frame(self, company_id: str) -> pd.DataFrame:
        """Load a company's transactions as a DataFrame.

        Columns: week, amount, category (TransactionCategory values as
        strings), description. Sorted by week.
        """
        with self._connection() as conn:
            df = pd.read_sql_query(
                "SELECT week, amount, category, description FROM transactions "
                "WHERE company_id = ? ORDER BY week, transaction_id",
                conn,
                params=(company_id,),
            )
        return df

    def count_transactions(
        self, company_id: str, category: TransactionCategory
    ) -> int:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM transactions "
                "WHERE company_id = ? AND category = ? AND amount < 0",
                (company_id, category.value),
            ).fetchone()
        return int(row[0])

    # --- Loans ---

    def add_loan(self, loan: Loan) -> None:
        placeholders = ", ".join("?" for _ in _LOAN_COLUMNS)
        with self._connection() as conn:
            conn.execute(
                f"INSERT INTO loans ({', '.join(_LOAN_COLUMNS)}) "
                f"VALUES ({placeholders})",
                tuple(asdict(loan)[c] for c in _LOAN_COLUMNS),
            )

    def update_loan(self, loan: Loan) -> None:
        with self._connection() as conn:
            conn.execute(
                "UPDATE loans SET remaining_balance = ?, missed_payments = ? "
                "WHERE loan_id = ?",
                (loan.remaining_balance, loan.missed_payments, loan.loan_id),
            )

    def loans(self, company_id: str) -> list[Loan]:
        """All loans for a company, active and paid off."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM loans WHERE company_id = ? ORDER BY loan_id",
                (company_id,),
            ).fetchall()
        return [Loan(**{c: row[c] for c in _LOAN_COLUMNS}) for row in rows]

    # --- Snapshots ---

    def insert_snapshot(self, snapshot: HistoricalSnapshot) -> None:
        """Insert or replace the snapshot for (company, week)."""
        placeholders = ", ".join("?" for _ in SNAPSHOT_COLUMNS)
        values = asdict(snapshot)
        with self._connection() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO snapshots ({', '.join(SNAPSHOT_COLUMNS)}) "
                f"VALUES ({placeholders})",
                tuple(values[c] for c in SNAPSHOT_COLUMNS),
            )

    def get_snapshot(
        self, company_id: str, weeks_ago: int, now_week: int
    ) -> HistoricalSnapshot | None:
        """Latest snapshot taken at or before ``now_week - weeks_ago``."""
        target = now_week - weeks_ago
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM snapshots WHERE company_id = ? AND week <= ? "
                "ORDER BY week DESC LIMIT 1",
                (company_id, target),
            ).fetchone()
        if row is None:
            return None
        return HistoricalSnapshot(**{c: row[c] for c in SNAPSHOT_COLUMNS})

    def snapshot_frame(self, company_id: str | None = None) -> pd.DataFrame:
        """Snapshot history as a DataFrame, optionally for one company."""
        query = f"SELECT {', '.join(SNAPSHOT_COLUMNS)} FROM snapshots"
        params: tuple[str, ...] = ()
        if company_id is not None:
            query += " WHERE company_id = ?"
            params = (company_id,)
        query += " ORDER BY company_id, week"
        with self._connection() as conn:
            return pd.read_sql_query(query, conn, params=params)

    # --- Cash balances ---

    def record_cash_balance(self, company_id: str, week: int, cash: float) -> None:
        """Insert or replace the weekly cash balance for (company, week)."""
        with self._connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO cash_balances (company_id, week, "
                "cash_money) VALUES (?, ?, ?)",
                (company_id, week, cash),
            )

    def cash_history_frame(self, company_id: str) -> pd.DataFrame:
        """Recorded weekly cash balances (columns week, cash_money)."""
        with self._connection() as conn:
            return pd.read_sql_query(
                "SELECT week, cash_money FROM cash_balances "
                "WHERE company_id = ? ORDER BY week",
                conn,
                params=(company_id,),
            )
