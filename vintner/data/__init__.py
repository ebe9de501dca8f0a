"""Data resolution: one concrete FinancialSnapshot before any scoring runs."""

from __future__ import annotations

import logging
import math

import pandas as pd

from vintner.data.financials import current_year_financials
from vintner.data.models import (
    Company,
    FinancialSnapshot,
    GameClock,
    Loan,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FinancialSnapshot",
    "negative_cash_streak",
    "resolve_financial_snapshot",
]


def _safe_float(value: float | None) -> float:
    """Finite float from a possibly missing value, defaulting to 0.0."""
    if value is None:
        return 0.0
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


def negative_cash_streak(
    history: pd.DataFrame, current_cash: float, now_week: int
) -> int | None:
    """Consecutive weeks with negative cash, ending with the current week.

    Weeks are counted on the absolute calendar: a week with no recorded
    balance ends the streak.

    Args:
        history: Recorded cash balances for one company (columns week,
            cash_money), any order. Rows at or after ``now_week`` are
            ignored.
        current_cash: Cash balance this week.
        now_week: Current absolute week.

    Returns:
        0 when cash is non-negative, 1 when nothing was recorded before,
        None when history exists but the previous week is missing (the
        streak is unknown), otherwise 1 + the number of immediately
        preceding weeks with negative cash.
    """
    if current_cash >= 0:
        return 0
    past = history[history["week"] < now_week]
    if past.empty:
        return 1

    by_week = dict(zip(past["week"].astype(int), past["cash_money"]))
    if now_week - 1 not in by_week:
        logger.debug("No cash balance recorded for week %d", now_week - 1)
        return None

    streak = 1
    week = now_week - 1
    while week in by_week and by_week[week] < 0:
        streak += 1
        week -= 1
    return streak


def resolve_financial_snapshot(
    company: Company,
    loans: list[Loan],
    transactions: pd.DataFrame,
    clock: GameClock,
    reported_total_assets: float | None = None,
    weeks_negative: int | None = None,
) -> FinancialSnapshot:
    """Build a fully-populated FinancialSnapshot with one fixed precedence.

    Precedence per field:
        income / expenses: current fiscal year operating totals from the
            transaction ledger, else 0.
        cash_money: company.money, else 0 (non-finite values count as
            missing).
        fixed_assets / current_assets: company values floored at 0.
        total_assets: reported_total_assets when positive, else
            max(cash, 0) + fixed_assets + current_assets, else 0.
        total_debt: sum of remaining balances of active loans.
        company_value: max(0, total_assets - total_debt).

    Args:
        company: Company state.
        loans: All loans for the company (paid-off loans are ignored).
        transactions: Company transactions DataFrame.
        clock: Current game clock.
        reported_total_assets: Optional externally valued total assets.
        weeks_negative: Optional tracked negative-cash streak.

    Returns:
        FinancialSnapshot with no missing values.
    """
    period = current_year_financials(transactions, clock)

    cash = _safe_float(company.money)
    fixed_assets = max(0.0, _safe_float(company.fixed_assets))
    current_assets = max(0.0, _safe_float(company.current_assets))

    reported = _safe_float(reported_total_assets)
    if reported > 0:
        total_assets = reported
    else:
        total_assets = max(cash, 0.0) + fixed_assets + current_assets
        if reported_total_assets is not None:
            logger.debug(
                "%s: reported total assets %.2f not usable, computed %.2f",
                company.company_id, reported, total_assets,
            )

    total_debt = sum(
        max(0.0, _safe_float(loan.remaining_balance))
        for loan in loans
        if loan.is_active
    )

    return FinancialSnapshot(
        income=period.income,
        expenses=period.expenses,
        total_assets=total_assets,
        cash_money=cash,
        fixed_assets=fixed_assets,
        current_assets=current_assets,
        total_debt=total_debt,
        company_value=max(0.0, total_assets - total_debt),
        weeks_negative=weeks_negative,
    )
