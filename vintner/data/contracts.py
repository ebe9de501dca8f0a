"""Engine data contracts.

Dataclasses and enums defining the shape of data passed between the
store, the ledgers and the scorers.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class EventKind(Enum):
    """Closed set of decaying event kinds."""

    COMPANY_VALUE = "company_value"
    SALE = "sale"
    CONTRACT = "contract"
    PENALTY = "penalty"
    VINEYARD_SALE = "vineyard_sale"
    VINEYARD_ACHIEVEMENT = "vineyard_achievement"
    VINEYARD_AGE = "vineyard_age"
    VINEYARD_LAND = "vineyard_land"
    RELATIONSHIP_BOOST = "relationship_boost"


_COMPANY_KINDS = frozenset({
    EventKind.COMPANY_VALUE,
    EventKind.SALE,
    EventKind.CONTRACT,
    EventKind.PENALTY,
})

_VINEYARD_KINDS = frozenset({
    EventKind.VINEYARD_SALE,
    EventKind.VINEYARD_ACHIEVEMENT,
    EventKind.VINEYARD_AGE,
    EventKind.VINEYARD_LAND,
})


def is_company_kind(kind: EventKind) -> bool:
    return kind in _COMPANY_KINDS


def is_vineyard_kind(kind: EventKind) -> bool:
    return kind in _VINEYARD_KINDS


def is_prestige_kind(kind: EventKind) -> bool:
    return kind in _COMPANY_KINDS or kind in _VINEYARD_KINDS


@dataclass
class DecayEvent:
    """A timestamped numeric contribution that decays weekly.

    Attributes:
        event_id: Unique id, assigned by the store.
        owner_key: Company or customer the contribution belongs to.
        kind: Event kind.
        base_amount: Amount at creation (may be negative for penalties).
        created_at_week: Absolute game week of creation.
        decay_rate: Weekly retention fraction. 0 means permanent.
        source_id: Key for permanent per-source events (e.g. "v1_age"),
            None for one-off events.
        metadata: Free-form details (vineyard id, customer name, ...).
    """

    event_id: str
    owner_key: str
    kind: EventKind
    base_amount: float
    created_at_week: int
    decay_rate: float = 0.0
    source_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TransactionCategory(Enum):
    """Ledger categories for company cash movements."""

    SALE = "sale"
    CONTRACT = "contract"
    OPERATING_EXPENSE = "operating_expense"
    WAGES = "wages"
    LOAN_RECEIVED = "loan_received"
    LOAN_PAYMENT = "loan_payment"
    DIVIDEND_PAYMENT = "dividend_payment"
    SHARE_ISSUANCE = "share_issuance"
    SHARE_BUYBACK = "share_buyback"
    ASSET_PURCHASE = "asset_purchase"
    ASSET_SALE = "asset_sale"
    OTHER = "other"


# Capital movements that are not operating income or expense.
NON_OPERATING_CATEGORIES = frozenset({
    TransactionCategory.LOAN_RECEIVED,
    TransactionCategory.DIVIDEND_PAYMENT,
    TransactionCategory.SHARE_ISSUANCE,
    TransactionCategory.SHARE_BUYBACK,
    TransactionCategory.ASSET_PURCHASE,
    TransactionCategory.ASSET_SALE,
})

REVENUE_CATEGORIES = frozenset({
    TransactionCategory.SALE,
    TransactionCategory.CONTRACT,
})


@dataclass
class Transaction:
    """A single cash movement.

    Attributes:
        company_id: Owning company.
        amount: Signed amount (positive = money in).
        category: Ledger category.
        week: Absolute game week.
        description: Free-text description.
    """

    company_id: str
    amount: float
    category: TransactionCategory
    week: int
    description: str = ""


@dataclass
class ShareMetricsSnapshot:
    """Point-in-time per-share financial metrics for one company.

    "Current year" values cover the current fiscal year to date;
    "48w" values cover the trailing 48-week rolling window.
    """

    asset_per_share: float = 0.0
    cash_per_share: float = 0.0
    debt_per_share: float = 0.0
    book_value_per_share: float = 0.0
    revenue_per_share: float = 0.0
    earnings_per_share: float = 0.0
    dividend_per_share_current_year: float = 0.0
    dividend_per_share_previous_year: float = 0.0
    profit_margin: float = 0.0
    revenue_growth: float = 0.0
    earnings_per_share_48w: float = 0.0
    revenue_per_share_48w: float = 0.0
    dividend_per_share_48w: float = 0.0
    profit_margin_48w: float = 0.0
    revenue_growth_48w: float = 0.0
    credit_rating: float = 0.5
    prestige: float = 0.0
    fixed_asset_ratio: float = 0.0


@dataclass
class HistoricalSnapshot:
    """Weekly persisted metrics used for "value N weeks ago" lookups.

    Attributes:
        company_id: Owning company.
        week: Absolute game week the snapshot was taken.
        share_price: Share price after the weekly adjustment.
        book_value_per_share: Anchor at snapshot time.
        credit_rating: Final credit rating.
        prestige: Company prestige total.
        fixed_asset_ratio: Fixed assets / total assets.
        earnings_per_share_48w: Rolling EPS.
        revenue_per_share_48w: Rolling revenue per share.
        dividend_per_share_48w: Rolling dividends per share.
        profit_margin_48w: Rolling profit margin.
        revenue_growth_48w: Rolling revenue growth.
        cash_money: Cash balance at snapshot time.
    """

    company_id: str
    week: int
    share_price: float
    book_value_per_share: float
    credit_rating: float
    prestige: float
    fixed_asset_ratio: float
    earnings_per_share_48w: float = 0.0
    revenue_per_share_48w: float = 0.0
    dividend_per_share_48w: float = 0.0
    profit_margin_48w: float = 0.0
    revenue_growth_48w: float = 0.0
    cash_money: float = 0.0


SNAPSHOT_COLUMNS: list[str] = [f.name for f in fields(HistoricalSnapshot)]
