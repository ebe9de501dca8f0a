"""Tests for engine configuration defaults."""

from __future__ import annotations

import pytest

from vintner.config import (
    ECONOMY_PHASE_MULTIPLIERS,
    WEEKS_PER_YEAR,
    CreditRatingConfig,
    EconomyPhase,
    PrestigeConfig,
    SharePriceConfig,
)


class TestCreditRatingConfig:
    """Tests for credit rating weights."""

    def test_group_weights_leave_base(self) -> None:
        """Base plus group weights span the full rating range."""
        config = CreditRatingConfig()
        total = (
            config.base_rating
            + config.asset_health_weight
            + config.payment_history_weight
            + config.company_stability_weight
        )
        assert total == pytest.approx(0.95)

    def test_sub_weights_sum_to_one(self) -> None:
        config = CreditRatingConfig()
        assert (
            config.debt_to_asset_weight
            + config.coverage_weight
            + config.liquidity_weight
            + config.fixed_asset_weight
        ) == pytest.approx(1.0)
        assert (
            config.on_time_weight + config.payoff_weight + config.missed_weight
        ) == pytest.approx(1.0)
        assert (
            config.age_weight
            + config.profit_consistency_weight
            + config.expense_efficiency_weight
        ) == pytest.approx(1.0)


class TestSharePriceConfig:
    """Tests for share price defaults."""

    def test_eight_metrics(self) -> None:
        config = SharePriceConfig()
        assert set(config.metrics) == {
            "earnings_per_share", "revenue_per_share", "dividend_per_share",
            "revenue_growth", "profit_margin", "credit_rating",
            "fixed_asset_ratio", "prestige",
        }

    def test_instances_do_not_share_metrics(self) -> None:
        first = SharePriceConfig()
        first.metrics["prestige"].base_adjustment = 9.0
        assert SharePriceConfig().metrics["prestige"].base_adjustment == 0.02

    def test_grace_period_is_one_year(self) -> None:
        assert SharePriceConfig().grace_period_weeks == WEEKS_PER_YEAR == 48


class TestEconomyPhases:
    """Tests for economy phase multipliers."""

    def test_monotonic(self) -> None:
        order = [
            EconomyPhase.CRASH, EconomyPhase.RECESSION, EconomyPhase.STABLE,
            EconomyPhase.EXPANSION, EconomyPhase.BOOM,
        ]
        values = [ECONOMY_PHASE_MULTIPLIERS[p] for p in order]
        assert values == sorted(values)
        assert ECONOMY_PHASE_MULTIPLIERS[EconomyPhase.STABLE] == 1.0


class TestPrestigeConfig:
    """Tests for prestige floors."""

    def test_floors(self) -> None:
        config = PrestigeConfig()
        assert config.company_floor == 1.0
        assert config.vineyard_floor == 0.0
        assert config.total_floor == 1.0
