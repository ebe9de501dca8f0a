"""Data models for the economy engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from vintner.config import DEFAULT_START_YEAR, WEEKS_PER_SEASON, WEEKS_PER_YEAR


class Season(Enum):
    """Game seasons in calendar order."""

    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"
    WINTER = "Winter"

    @property
    def index(self) -> int:
        return list(Season).index(self)


@dataclass(frozen=True)
class GameClock:
    """Current position on the game calendar.

    Passed explicitly into every engine call; the engine never reads a
    global game state.

    Attributes:
        week: Week within the season, 1-based (1..WEEKS_PER_SEASON).
        season: Current season.
        year: Calendar year.
        start_year: Year the game calendar starts at (absolute week 0).
    """

    week: int = 1
    season: Season = Season.SPRING
    year: int = DEFAULT_START_YEAR
    start_year: int = DEFAULT_START_YEAR

    @property
    def absolute_week(self) -> int:
        """Weeks elapsed since week 1 of Spring in the start year."""
        return (
            (self.year - self.start_year) * WEEKS_PER_YEAR
            + self.season.index * WEEKS_PER_SEASON
            + (self.week - 1)
        )

    @classmethod
    def from_absolute(
        cls, absolute_week: int, start_year: int = DEFAULT_START_YEAR
    ) -> GameClock:
        year_offset, week_of_year = divmod(max(0, absolute_week), WEEKS_PER_YEAR)
        season_idx, week_idx = divmod(week_of_year, WEEKS_PER_SEASON)
        return cls(
            week=week_idx + 1,
            season=list(Season)[season_idx],
            year=start_year + year_offset,
            start_year=start_year,
        )

    def advance(self, weeks: int = 1) -> GameClock:
        return GameClock.from_absolute(self.absolute_week + weeks, self.start_year)

    @property
    def season_key(self) -> tuple[int, int]:
        """(year, season index) pair identifying the current season."""
        return (self.year, self.season.index)


@dataclass
class Company:
    """Persistent per-company state consumed by the engine.

    Attributes:
        company_id: Unique company key (also the prestige owner key).
        name: Display name.
        founded_week: Absolute game week the company was founded.
        money: Current cash balance (may be negative).
        total_shares: Shares outstanding.
        share_price: Current share price. None or <= 0 means uninitialized.
        dividend_rate: Dividend paid per share per season.
        growth_trend_multiplier: Long-term momentum scalar applied to
            expected values.
        last_growth_trend_week: Absolute week of the last growth trend
            update, or None if never updated.
        base_revenue_growth: Baseline expected revenue growth.
        base_profit_margin: Baseline expected profit margin.
        base_return_on_book_value: Baseline expected EPS / book value.
        fixed_assets: Value of land, buildings and equipment.
        current_assets: Non-cash liquid assets (wine inventory, grapes).
    """

    company_id: str
    name: str
    founded_week: int = 0
    money: float = 0.0
    total_shares: float = 1_000_000.0
    share_price: float | None = None
    dividend_rate: float = 0.0
    growth_trend_multiplier: float = 1.0
    last_growth_trend_week: int | None = None
    base_revenue_growth: float = 0.10
    base_profit_margin: float = 0.15
    base_return_on_book_value: float = 0.10
    fixed_assets: float = 0.0
    current_assets: float = 0.0

    def company_weeks(self, clock: GameClock) -> int:
        """Weeks of operation, counting the founding week as week 1."""
        return max(1, clock.absolute_week - self.founded_week + 1)


@dataclass
class Loan:
    """A company loan as supplied by the loan provider.

    Attributes:
        loan_id: Unique loan key.
        company_id: Borrowing company.
        principal: Original borrowed amount.
        remaining_balance: Outstanding balance. <= 0 means paid off.
        missed_payments: Number of missed scheduled payments.
    """

    loan_id: str
    company_id: str
    principal: float
    remaining_balance: float
    missed_payments: int = 0

    @property
    def is_active(self) -> bool:
        return self.remaining_balance > 0

    @property
    def is_paid_off(self) -> bool:
        return self.remaining_balance <= 0


@dataclass
class Vineyard:
    """Vineyard characteristics feeding vineyard prestige.

    Attributes:
        vineyard_id: Unique vineyard key.
        name: Display name.
        vine_age: Vine age in years.
        land_value: Land value per hectare.
        hectares: Planted area.
        suitability: Grape/region suitability in [0, 1].
    """

    vineyard_id: str
    name: str
    vine_age: float = 0.0
    land_value: float = 0.0
    hectares: float = 1.0
    suitability: float = 1.0


@dataclass
class FinancialSnapshot:
    """Resolved financial position for one company at one point in time.

    Produced by resolve_financial_snapshot before any scoring runs, so every
    field is a concrete number.

    Attributes:
        income: Operating income for the period.
        expenses: Operating expenses for the period (positive number).
        total_assets: Cash + fixed assets + current assets.
        cash_money: Cash balance (may be negative).
        fixed_assets: Fixed asset value.
        current_assets: Non-cash liquid assets.
        total_debt: Sum of remaining loan balances.
        company_value: Total assets less debt, floored at zero.
        weeks_negative: Tracked consecutive weeks with negative cash, or
            None when no streak is tracked.
    """

    income: float = 0.0
    expenses: float = 0.0
    total_assets: float = 0.0
    cash_money: float = 0.0
    fixed_assets: float = 0.0
    current_assets: float = 0.0
    total_debt: float = 0.0
    company_value: float = 0.0
    weeks_negative: int | None = None

    @property
    def net_income(self) -> float:
        return self.income - self.expenses
