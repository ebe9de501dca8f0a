"""Tests for share metrics."""

from __future__ import annotations

import pandas as pd
import pytest

from vintner.data.contracts import ShareMetricsSnapshot, TransactionCategory
from vintner.data.models import Company, FinancialSnapshot, GameClock
from vintner.metrics.shares import get_share_metrics, growth_rate


def _make_transactions(rows: list[tuple[int, float, TransactionCategory]]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "week": [r[0] for r in rows],
            "amount": [r[1] for r in rows],
            "category": [r[2].value for r in rows],
            "description": ["" for _ in rows],
        }
    )


def _make_company(total_shares: float = 1_000.0) -> Company:
    return Company(company_id="c1", name="Test Winery", total_shares=total_shares)


def _make_snapshot() -> FinancialSnapshot:
    return FinancialSnapshot(
        total_assets=10_000.0,
        cash_money=3_000.0,
        fixed_assets=4_000.0,
        current_assets=3_000.0,
        total_debt=2_000.0,
        company_value=8_000.0,
    )


class TestGrowthRate:
    """Tests for growth_rate."""

    def test_regular_growth(self) -> None:
        """150 over 100 is 50% growth."""
        assert growth_rate(150.0, 100.0) == pytest.approx(0.5)

    def test_from_zero(self) -> None:
        """Revenue appearing from nothing counts as 100% growth."""
        assert growth_rate(10.0, 0.0) == 1.0
        assert growth_rate(0.0, 0.0) == 0.0


class TestGetShareMetrics:
    """Tests for get_share_metrics."""

    def test_balance_sheet_per_share(self) -> None:
        """Per-share values divide the snapshot by shares outstanding."""
        metrics = get_share_metrics(
            _make_company(), _make_snapshot(), _make_transactions([]),
            GameClock.from_absolute(5),
        )
        assert metrics.asset_per_share == pytest.approx(10.0)
        assert metrics.cash_per_share == pytest.approx(3.0)
        assert metrics.debt_per_share == pytest.approx(2.0)
        assert metrics.book_value_per_share == pytest.approx(8.0)
        assert metrics.fixed_asset_ratio == pytest.approx(0.4)

    def test_current_year_income(self) -> None:
        """Current-year revenue, earnings and dividends per share."""
        rows = [(w, 1_000.0, TransactionCategory.SALE) for w in range(10)]
        rows += [(w, -400.0, TransactionCategory.WAGES) for w in range(10)]
        rows += [(5, -500.0, TransactionCategory.DIVIDEND_PAYMENT)]
        rows += [(6, 50_000.0, TransactionCategory.LOAN_RECEIVED)]

        metrics = get_share_metrics(
            _make_company(), _make_snapshot(), _make_transactions(rows),
            GameClock.from_absolute(9), credit_rating=0.8, prestige=3.0,
        )
        assert metrics.revenue_per_share == pytest.approx(10.0)
        assert metrics.earnings_per_share == pytest.approx(6.0)
        assert metrics.dividend_per_share_current_year == pytest.approx(0.5)
        assert metrics.profit_margin == pytest.approx(0.6)
        assert metrics.revenue_growth == pytest.approx(1.0)
        assert metrics.earnings_per_share_48w == pytest.approx(6.0)
        assert metrics.dividend_per_share_48w == pytest.approx(0.5)
        assert metrics.revenue_growth_48w == 0.0
        assert metrics.credit_rating == 0.8
        assert metrics.prestige == 3.0

    def test_rolling_revenue_growth(self) -> None:
        """Last 48 weeks against the prior 48 once the company is old enough."""
        rows = [(w, 100.0, TransactionCategory.SALE) for w in range(48)]
        rows += [(w, 150.0, TransactionCategory.SALE) for w in range(48, 96)]

        metrics = get_share_metrics(
            _make_company(), _make_snapshot(), _make_transactions(rows),
            GameClock.from_absolute(95),
        )
        assert metrics.revenue_growth_48w == pytest.approx(0.5)
        assert metrics.revenue_per_share_48w == pytest.approx(7.2)
        assert metrics.dividend_per_share_previous_year == 0.0

    def test_zero_shares_zeroes_per_share(self) -> None:
        """Without shares, per-share values are zero."""
        metrics = get_share_metrics(
            _make_company(total_shares=0.0), _make_snapshot(),
            _make_transactions([]), GameClock.from_absolute(5), credit_rating=0.7,
        )
        assert metrics.book_value_per_share == 0.0
        assert metrics.earnings_per_share_48w == 0.0
        assert metrics.credit_rating == 0.7

    def test_missing_company(self) -> None:
        """A missing company yields a zeroed snapshot with neutral rating."""
        metrics = get_share_metrics(
            None, FinancialSnapshot(), _make_transactions([]), GameClock()
        )
        assert metrics == ShareMetricsSnapshot(credit_rating=0.5)
