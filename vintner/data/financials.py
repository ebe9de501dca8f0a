"""Financial-data provider: period totals from a transactions DataFrame."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import pandas as pd

from vintner.config import WEEKS_PER_SEASON, WEEKS_PER_YEAR
from vintner.data.contracts import (
    NON_OPERATING_CATEGORIES,
    REVENUE_CATEGORIES,
    TransactionCategory,
)
from vintner.data.models import GameClock

logger = logging.getLogger(__name__)

_NON_OPERATING = [c.value for c in NON_OPERATING_CATEGORIES]
_REVENUE = [c.value for c in REVENUE_CATEGORIES]


@dataclass
class PeriodFinancials:
    """Income statement totals for one window of weeks.

    Attributes:
        income: Operating money in.
        expenses: Operating money out (positive number).
        revenue: Sales and contract revenue only.
        dividends: Dividends paid out (positive number).
    """

    income: float = 0.0
    expenses: float = 0.0
    revenue: float = 0.0
    dividends: float = 0.0

    @property
    def net_income(self) -> float:
        return self.income - self.expenses


def _safe_sum(series: pd.Series) -> float:
    """Sum a pandas Series, treating NaN values as zero."""
    result = series.sum(skipna=True)
    if pd.isna(result) or not math.isfinite(result):
        return 0.0
    return float(result)


def period_financials(
    transactions: pd.DataFrame, start_week: int, end_week: int
) -> PeriodFinancials:
    """Sum transactions with ``start_week <= week < end_week``.

    Args:
        transactions: Columns week, amount, category.
        start_week: First absolute week included.
        end_week: First absolute week excluded.

    Returns:
        PeriodFinancials for the window (all zeros if no rows match).
    """
    if transactions.empty or end_week <= start_week:
        return PeriodFinancials()

    window = transactions[
        (transactions["week"] >= start_week) & (transactions["week"] < end_week)
    ]
    if window.empty:
        return PeriodFinancials()

    amounts = window["amount"]
    operating = ~window["category"].isin(_NON_OPERATING)

    return PeriodFinancials(
        income=_safe_sum(amounts[operating & (amounts > 0)]),
        expenses=-_safe_sum(amounts[operating & (amounts < 0)]),
        revenue=_safe_sum(amounts[window["category"].isin(_REVENUE) & (amounts > 0)]),
        dividends=-_safe_sum(
            amounts[
                (window["category"] == TransactionCategory.DIVIDEND_PAYMENT.value)
                & (amounts < 0)
            ]
        ),
    )


def fiscal_year_start(clock: GameClock) -> int:
    """Absolute week of week 1 of Spring in the clock's year."""
    return (clock.year - clock.start_year) * WEEKS_PER_YEAR


def current_year_financials(
    transactions: pd.DataFrame, clock: GameClock
) -> PeriodFinancials:
    """Year-to-date totals, including the current week."""
    return period_financials(
        transactions, fiscal_year_start(clock), clock.absolute_week + 1
    )


def previous_year_financials(
    transactions: pd.DataFrame, clock: GameClock
) -> PeriodFinancials:
    start = fiscal_year_start(clock)
    return period_financials(transactions, start - WEEKS_PER_YEAR, start)


def rolling_financials(
    transactions: pd.DataFrame, clock: GameClock, weeks: int, offset: int = 0
) -> PeriodFinancials:
    """Totals over ``weeks`` weeks ending ``offset`` weeks before now.

    With offset=0 the window is the trailing ``weeks`` weeks including the
    current week.
    """
    end = clock.absolute_week + 1 - offset
    return period_financials(transactions, end - weeks, end)


def season_profits(
    transactions: pd.DataFrame, clock: GameClock, seasons: int
) -> list[float]:
    """Net income per season for the last ``seasons`` seasons, oldest first.

    The current (possibly partial) season is the last entry. Seasons
    before the first transaction are omitted.
    """
    if transactions.empty:
        return []

    first_week = int(transactions["week"].min())
    current_start = clock.absolute_week - (clock.week - 1)

    profits: list[float] = []
    for i in range(seasons - 1, -1, -1):
        start = current_start - i * WEEKS_PER_SEASON
        end = start + WEEKS_PER_SEASON
        if end <= first_week:
            continue
        profits.append(period_financials(transactions, start, end).net_income)
    return profits
