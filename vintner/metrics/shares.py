"""Share metrics: per-share balance sheet, current-year and 48-week ratios."""

from __future__ import annotations

import logging

import pandas as pd

from vintner.config import WEEKS_PER_YEAR
from vintner.data.contracts import ShareMetricsSnapshot
from vintner.data.financials import (
    current_year_financials,
    previous_year_financials,
    rolling_financials,
)
from vintner.data.models import Company, FinancialSnapshot, GameClock

logger = logging.getLogger(__name__)

ROLLING_WINDOW_WEEKS: int = WEEKS_PER_YEAR


def growth_rate(current: float, previous: float) -> float:
    """Fractional growth; 1.0 when starting from zero, 0 with no revenue."""
    if previous > 0:
        return (current - previous) / previous
    if current > 0:
        return 1.0
    return 0.0


def _margin(net_income: float, revenue: float) -> float:
    return net_income / revenue if revenue > 0 else 0.0


def get_share_metrics(
    company: Company | None,
    snapshot: FinancialSnapshot,
    transactions: pd.DataFrame,
    clock: GameClock,
    credit_rating: float = 0.5,
    prestige: float = 0.0,
) -> ShareMetricsSnapshot:
    """Compute the share metrics snapshot for one company.

    Balance-sheet values come from the resolved snapshot; income values
    from the transaction ledger for the current fiscal year, the previous
    fiscal year and trailing 48-week windows.

    A missing company yields a zeroed snapshot with the given credit rating.
    Non-positive share counts zero every per-share value.

    Args:
        company: Company state, or None when not found.
        snapshot: Resolved financial snapshot.
        transactions: Company transactions DataFrame.
        clock: Current game clock.
        credit_rating: Current final credit rating.
        prestige: Current company prestige total.

    Returns:
        ShareMetricsSnapshot.
    """
    if company is None:
        return ShareMetricsSnapshot(credit_rating=credit_rating)

    total_assets = snapshot.total_assets
    fixed_ratio = snapshot.fixed_assets / total_assets if total_assets > 0 else 0.0

    shares = company.total_shares
    if shares <= 0:
        logger.warning(
            "%s: non-positive share count (%.0f), per-share metrics zeroed",
            company.company_id, shares,
        )
        return ShareMetricsSnapshot(
            credit_rating=credit_rating,
            prestige=prestige,
            fixed_asset_ratio=fixed_ratio,
        )

    current = current_year_financials(transactions, clock)
    previous = previous_year_financials(transactions, clock)
    rolling = rolling_financials(transactions, clock, ROLLING_WINDOW_WEEKS)

    revenue_growth_48w = 0.0
    if company.company_weeks(clock) > ROLLING_WINDOW_WEEKS:
        prior = rolling_financials(
            transactions, clock, ROLLING_WINDOW_WEEKS, offset=ROLLING_WINDOW_WEEKS
        )
        revenue_growth_48w = growth_rate(rolling.revenue, prior.revenue)

    return ShareMetricsSnapshot(
        asset_per_share=total_assets / shares,
        cash_per_share=snapshot.cash_money / shares,
        debt_per_share=snapshot.total_debt / shares,
        book_value_per_share=(total_assets - snapshot.total_debt) / shares,
        revenue_per_share=current.revenue / shares,
        earnings_per_share=current.net_income / shares,
        dividend_per_share_current_year=current.dividends / shares,
        dividend_per_share_previous_year=previous.dividends / shares,
        profit_margin=_margin(current.net_income, current.revenue),
        revenue_growth=growth_rate(current.revenue, previous.revenue),
        earnings_per_share_48w=rolling.net_income / shares,
        revenue_per_share_48w=rolling.revenue / shares,
        dividend_per_share_48w=rolling.dividends / shares,
        profit_margin_48w=_margin(rolling.net_income, rolling.revenue),
        revenue_growth_48w=revenue_growth_48w,
        credit_rating=credit_rating,
        prestige=prestige,
        fixed_asset_ratio=fixed_ratio,
    )
