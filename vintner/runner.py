"""Engine orchestrator.

Wires the store to the prestige ledger, credit rating scorer, share
metrics and share price engine, and runs the weekly recomputation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from vintner.analysis.growth_trend import update_growth_trend
from vintner.config import (
    CreditRatingConfig,
    EconomyPhase,
    EngineConfig,
    GrowthTrendConfig,
    PrestigeConfig,
    SharePriceConfig,
)
from vintner.data import negative_cash_streak, resolve_financial_snapshot
from vintner.data.contracts import (
    HistoricalSnapshot,
    ShareMetricsSnapshot,
    Transaction,
    TransactionCategory,
)
from vintner.data.financials import season_profits
from vintner.data.models import Company, FinancialSnapshot, GameClock
from vintner.data.store import EngineStore
from vintner.metrics.credit import (
    CreditRatingBreakdown,
    calculate_credit_rating,
    neutral_credit_rating,
)
from vintner.metrics.prestige import (
    PrestigeBreakdown,
    calculate_current_prestige,
    prestige_ledger,
    record_sale_prestige,
    update_company_value_prestige,
    update_vineyard_prestige,
)
from vintner.metrics.relationship import (
    RelationshipBreakdown,
    calculate_relationship,
    record_relationship_boost,
    relationship_ledger,
)
from vintner.metrics.shares import get_share_metrics
from vintner.pricing import (
    PriceAdjustmentResult,
    adjust_share_price_incrementally,
    apply_share_structure_adjustment,
    calculate_expected_values,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineConfigs:
    """Bundle of per-component configuration."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    prestige: PrestigeConfig = field(default_factory=PrestigeConfig)
    credit: CreditRatingConfig = field(default_factory=CreditRatingConfig)
    share_price: SharePriceConfig = field(default_factory=SharePriceConfig)
    growth_trend: GrowthTrendConfig = field(default_factory=GrowthTrendConfig)


class EconomyEngine:
    """Request/response entry points over one store.

    Every call takes an explicit GameClock. Historical snapshot lookups are
    memoized per (company, weeks_ago, week) until the next cycle starts.
    """

    def __init__(
        self, store: EngineStore, configs: EngineConfigs | None = None
    ) -> None:
        self.store = store
        self.configs = configs or EngineConfigs()
        self._snapshot_cache: dict[tuple[str, int, int], HistoricalSnapshot | None] = {}

    # --- Snapshot cache ---

    def begin_cycle(self) -> None:
        """Drop cached snapshot lookups from the previous tick."""
        self._snapshot_cache.clear()

    def get_snapshot(
        self, company_id: str, weeks_ago: int, clock: GameClock
    ) -> HistoricalSnapshot | None:
        key = (company_id, weeks_ago, clock.absolute_week)
        if key not in self._snapshot_cache:
            self._snapshot_cache[key] = self.store.get_snapshot(
                company_id, weeks_ago, clock.absolute_week
            )
        return self._snapshot_cache[key]

    # --- Prestige ---

    def calculate_current_prestige(
        self, owner_key: str, clock: GameClock
    ) -> PrestigeBreakdown:
        return calculate_current_prestige(
            self.store, owner_key, clock, self.configs.prestige
        )

    def refresh_prestige(self, company: Company, clock: GameClock) -> list[str]:
        """Upsert state-derived prestige and sweep decayed events.

        Returns:
            Ids of events removed by the sweep.
        """
        ledger = prestige_ledger(
            self.store,
            company.company_id,
            self.configs.prestige,
            self.configs.engine.prestige_epsilon,
        )
        update_company_value_prestige(ledger, company.money, clock, self.configs.prestige)
        for vineyard in self.store.vineyards(company.company_id):
            update_vineyard_prestige(ledger, vineyard, clock, self.configs.prestige)
        return ledger.collect_garbage(clock)

    # --- Sales and relationships ---

    def record_sale(
        self,
        company_id: str,
        customer_id: str,
        sale_value: float,
        clock: GameClock,
    ) -> bool:
        """Book a sale: cash, ledger entry, sale prestige, relationship boost.

        Returns:
            False when the company does not exist and nothing was booked.
        """
        company = self.store.get_company(company_id)
        if company is None:
            logger.warning("%s: company not found, sale not recorded", company_id)
            return False
        self.store.add_transaction(
            Transaction(
                company_id=company_id,
                amount=sale_value,
                category=TransactionCategory.SALE,
                week=clock.absolute_week,
                description=f"Sale to {customer_id}",
            )
        )
        company.money += sale_value
        self.store.update_company(company)

        prestige = self.calculate_current_prestige(company_id, clock).total
        ledger = prestige_ledger(self.store, company_id, self.configs.prestige)
        record_sale_prestige(
            ledger, sale_value, clock, self.configs.prestige, customer=customer_id
        )
        record_relationship_boost(
            self.store,
            company_id,
            customer_id,
            sale_value,
            prestige,
            clock,
            self.configs.prestige,
        )
        return True

    def calculate_relationship(
        self,
        company_id: str,
        customer_id: str,
        market_share: float,
        clock: GameClock,
    ) -> RelationshipBreakdown:
        prestige = self.calculate_current_prestige(company_id, clock).total
        ledger = relationship_ledger(
            self.store,
            company_id,
            customer_id,
            self.configs.engine.relationship_epsilon,
        )
        ledger.collect_garbage(clock)
        return calculate_relationship(
            self.store, company_id, customer_id, prestige, market_share, clock
        )

    # --- Financial snapshot and credit rating ---

    def resolve_snapshot(self, company: Company, clock: GameClock) -> FinancialSnapshot:
        history = self.store.cash_history_frame(company.company_id)
        return resolve_financial_snapshot(
            company,
            self.store.loans(company.company_id),
            self.store.transactions_frame(company.company_id),
            clock,
            weeks_negative=negative_cash_streak(
                history, company.money, clock.absolute_week
            ),
        )

    def _credit_rating(
        self, company: Company, snapshot: FinancialSnapshot, clock: GameClock
    ) -> CreditRatingBreakdown:
        transactions = self.store.transactions_frame(company.company_id)
        return calculate_credit_rating(
            snapshot,
            self.store.loans(company.company_id),
            self.store.count_transactions(
                company.company_id, TransactionCategory.LOAN_PAYMENT
            ),
            season_profits(transactions, clock, self.configs.credit.profit_seasons),
            company.company_weeks(clock),
            self.configs.credit,
        )

    def calculate_credit_rating(
        self, company_id: str, clock: GameClock
    ) -> CreditRatingBreakdown:
        company = self.store.get_company(company_id)
        if company is None:
            return neutral_credit_rating(self.configs.credit)
        snapshot = self.resolve_snapshot(company, clock)
        return self._credit_rating(company, snapshot, clock)

    # --- Share metrics and price ---

    def get_share_metrics(
        self, company_id: str, clock: GameClock
    ) -> ShareMetricsSnapshot:
        company = self.store.get_company(company_id)
        if company is None:
            return ShareMetricsSnapshot(credit_rating=self.configs.credit.base_rating)
        snapshot = self.resolve_snapshot(company, clock)
        rating = self._credit_rating(company, snapshot, clock)
        prestige = self.calculate_current_prestige(company_id, clock)
        return get_share_metrics(
            company,
            snapshot,
            self.store.transactions_frame(company_id),
            clock,
            credit_rating=rating.final_rating,
            prestige=prestige.total,
        )

    def adjust_share_price_incrementally(
        self,
        company_id: str,
        clock: GameClock,
        phase: EconomyPhase = EconomyPhase.STABLE,
    ) -> PriceAdjustmentResult:
        """Weekly price step, growth trend update and history snapshot."""
        company = self.store.get_company(company_id)
        if company is None:
            return PriceAdjustmentResult(
                success=False, company_id=company_id, error="Company not found"
            )

        snapshot = self.resolve_snapshot(company, clock)
        # Recorded even when the price step fails below.
        self.store.record_cash_balance(
            company_id, clock.absolute_week, snapshot.cash_money
        )
        rating = self._credit_rating(company, snapshot, clock)
        prestige = self.calculate_current_prestige(company_id, clock).total
        metrics = get_share_metrics(
            company,
            snapshot,
            self.store.transactions_frame(company_id),
            clock,
            credit_rating=rating.final_rating,
            prestige=prestige,
        )

        company_weeks = company.company_weeks(clock)
        lookback = self.configs.engine.trend_lookback_weeks
        previous = self.get_snapshot(company_id, lookback, clock)
        expected = calculate_expected_values(
            company,
            metrics.book_value_per_share,
            prestige,
            phase,
            company_weeks,
            self.configs.share_price,
        )

        result = adjust_share_price_incrementally(
            company,
            metrics,
            expected,
            previous,
            company_weeks,
            self.configs.share_price,
        )
        if not result.success:
            return result

        if not result.initialized:
            update_growth_trend(
                company,
                metrics,
                expected,
                clock,
                has_history=previous is not None,
                config=self.configs.growth_trend,
            )

        self.store.update_company(company)
        self.store.insert_snapshot(
            HistoricalSnapshot(
                company_id=company_id,
                week=clock.absolute_week,
                share_price=float(company.share_price or 0.0),
                book_value_per_share=metrics.book_value_per_share,
                credit_rating=rating.final_rating,
                prestige=prestige,
                fixed_asset_ratio=metrics.fixed_asset_ratio,
                earnings_per_share_48w=metrics.earnings_per_share_48w,
                revenue_per_share_48w=metrics.revenue_per_share_48w,
                dividend_per_share_48w=metrics.dividend_per_share_48w,
                profit_margin_48w=metrics.profit_margin_48w,
                revenue_growth_48w=metrics.revenue_growth_48w,
                cash_money=snapshot.cash_money,
            )
        )
        return result

    def change_share_count(
        self, company_id: str, new_shares: float, clock: GameClock
    ) -> PriceAdjustmentResult:
        """Issue or buy back shares and apply the immediate price reaction."""
        company = self.store.get_company(company_id)
        if company is None:
            return PriceAdjustmentResult(
                success=False, company_id=company_id, error="Company not found"
            )
        if new_shares <= 0:
            return PriceAdjustmentResult(
                success=False,
                company_id=company_id,
                new_price=company.share_price,
                previous_price=company.share_price,
                error=f"Invalid share count: {new_shares}",
            )

        old_shares = company.total_shares
        previous_price = company.share_price
        company.total_shares = new_shares
        if previous_price is not None and previous_price > 0 and old_shares > 0:
            book = self.get_share_metrics(company_id, clock).book_value_per_share
            # Book value must reflect the new share count.
            book = book * old_shares / new_shares
            company.share_price = apply_share_structure_adjustment(
                previous_price, book, old_shares, new_shares, self.configs.share_price
            )
        self.store.update_company(company)
        logger.info(
            "%s: shares %.0f -> %.0f, price %s -> %s",
            company_id, old_shares, new_shares, previous_price, company.share_price,
        )
        return PriceAdjustmentResult(
            success=True,
            company_id=company_id,
            new_price=company.share_price,
            previous_price=previous_price,
        )

    # --- Weekly tick ---

    def run_week(
        self, clock: GameClock, phase: EconomyPhase = EconomyPhase.STABLE
    ) -> pd.DataFrame:
        """Recompute prestige, credit rating and share price for every company.

        Args:
            clock: Week being processed.
            phase: Economy phase for this week.

        Returns:
            One row per company: company_id, week, prestige, credit_rating,
            share_price, swept_events, success, error.
        """
        self.begin_cycle()
        rows: list[dict[str, object]] = []

        for company in self.store.list_companies():
            swept = self.refresh_prestige(company, clock)
            result = self.adjust_share_price_incrementally(
                company.company_id, clock, phase
            )
            latest = (
                self.store.get_snapshot(company.company_id, 0, clock.absolute_week)
                if result.success
                else None
            )
            rows.append({
                "company_id": company.company_id,
                "week": clock.absolute_week,
                "prestige": latest.prestige if latest is not None else None,
                "credit_rating": latest.credit_rating if latest is not None else None,
                "share_price": result.new_price,
                "swept_events": len(swept),
                "success": result.success,
                "error": result.error,
            })
            if not result.success:
                logger.warning("%s: %s", company.company_id, result.error)

        summary = pd.DataFrame(rows)
        logger.info(
            "Week %d (%s %d, %s): processed %d companies",
            clock.week, clock.season.value, clock.year, phase.value, len(rows),
        )
        return summary
