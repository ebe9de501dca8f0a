"""Credit rating: four weighted factor groups around a neutral 0.5 base.

The rating is a pure function of a resolved FinancialSnapshot, the
company's loans and its payment/profit history. Nothing is cached or
updated incrementally; every call recomputes the full breakdown.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from vintner.config import NO_DEBT_SENTINEL, WEEKS_PER_YEAR, CreditRatingConfig
from vintner.data.models import FinancialSnapshot, Loan
from vintner.metrics.normalize import (
    age_modifier,
    clamp_unit,
    consistency_score,
    normalize_against_reference,
    normalize_coverage,
    normalize_debt_to_asset,
    normalize_fixed_asset_ratio,
    normalize_liquidity,
    normalize_missed_payments,
)

logger = logging.getLogger(__name__)


@dataclass
class AssetHealth:
    """Balance-sheet strength.

    Attributes:
        debt_to_asset_ratio: Debt / total assets (0 without debt).
        coverage_ratio: Total assets / debt (sentinel without debt).
        liquidity_ratio: (Cash + current assets) / debt (sentinel without
            debt).
        fixed_asset_ratio: Fixed assets / total assets.
        debt_to_asset_score: Normalized, lower debt is better.
        coverage_score: Normalized coverage.
        liquidity_score: Normalized liquidity.
        fixed_asset_score: Normalized fixed-asset ratio.
        score: Weighted combination in [0, 1].
    """

    debt_to_asset_ratio: float = 0.0
    coverage_ratio: float = NO_DEBT_SENTINEL
    liquidity_ratio: float = NO_DEBT_SENTINEL
    fixed_asset_ratio: float = 0.0
    debt_to_asset_score: float = 1.0
    coverage_score: float = 1.0
    liquidity_score: float = 1.0
    fixed_asset_score: float = 0.0
    score: float = 0.0


@dataclass
class PaymentHistory:
    """Loan repayment track record.

    Attributes:
        on_time_payments: Loan payments made.
        payoffs: Loans fully repaid.
        missed_payments: Missed payments across active loans.
        consecutive_missed: Missed payments beyond the first per loan.
        on_time_score: on_time_payments against the reference count.
        payoff_score: payoffs against the reference count.
        missed_score: Inverse step of missed_payments.
        score: Weighted combination in [0, 1].
    """

    on_time_payments: int = 0
    payoffs: int = 0
    missed_payments: int = 0
    consecutive_missed: int = 0
    on_time_score: float = 0.0
    payoff_score: float = 0.0
    missed_score: float = 1.0
    score: float = 0.0


@dataclass
class CompanyStability:
    """Longevity and earnings stability.

    Attributes:
        company_age_years: Company age in game years.
        seasonal_profits: Profits used for consistency, oldest first.
        expense_ratio: Expenses / income (None when income <= 0).
        age_score: age_modifier(company_age_years).
        profit_consistency_score: Inverted coefficient of variation.
        expense_efficiency_score: 1 - expense_ratio, clamped.
        score: Weighted combination in [0, 1].
    """

    company_age_years: float = 0.0
    seasonal_profits: list[float] = field(default_factory=list)
    expense_ratio: float | None = None
    age_score: float = 0.0
    profit_consistency_score: float = 0.0
    expense_efficiency_score: float = 0.0
    score: float = 0.0


@dataclass
class NegativeBalancePenalty:
    """Subtractive penalty for a negative cash balance.

    Attributes:
        cash_money: Cash balance.
        threshold: Negative amount counted as one week (estimate only).
        weeks_negative: Weeks negative, capped.
        estimated: True when weeks_negative was inferred from the balance
            magnitude rather than a tracked streak.
        normalized: weeks_negative / max weeks.
        penalty_per_week: Penalty added per week negative.
        score: Penalty in [max_penalty, 0].
    """

    cash_money: float = 0.0
    threshold: float = 0.0
    weeks_negative: int = 0
    estimated: bool = False
    normalized: float = 0.0
    penalty_per_week: float = 0.0
    score: float = 0.0


@dataclass
class CreditRatingBreakdown:
    """Full credit rating with every factor group.

    finalRating = clamp(base + sum(group score * weight) + penalty, 0, 1).
    """

    base_rating: float = 0.5
    asset_health: AssetHealth = field(default_factory=AssetHealth)
    payment_history: PaymentHistory = field(default_factory=PaymentHistory)
    company_stability: CompanyStability = field(default_factory=CompanyStability)
    negative_balance: NegativeBalancePenalty = field(
        default_factory=NegativeBalancePenalty
    )
    final_rating: float = 0.5


def _safe_div(numerator: float, denominator: float, default: float) -> float:
    if denominator == 0:
        return default
    result = numerator / denominator
    if not math.isfinite(result):
        return default
    return result


def neutral_credit_rating(
    config: CreditRatingConfig | None = None,
) -> CreditRatingBreakdown:
    """Breakdown returned when the company cannot be found."""
    config = config or CreditRatingConfig()
    return CreditRatingBreakdown(
        base_rating=config.base_rating, final_rating=config.base_rating
    )


def compute_asset_health(
    snapshot: FinancialSnapshot, config: CreditRatingConfig
) -> AssetHealth:
    debt = snapshot.total_debt
    assets = snapshot.total_assets

    if debt > 0:
        debt_to_asset = _safe_div(debt, assets, 1.0)
        coverage = _safe_div(assets, debt, NO_DEBT_SENTINEL)
        liquidity = _safe_div(
            max(0.0, snapshot.cash_money) + snapshot.current_assets,
            debt,
            NO_DEBT_SENTINEL,
        )
    else:
        debt_to_asset = 0.0
        coverage = NO_DEBT_SENTINEL
        liquidity = NO_DEBT_SENTINEL

    fixed_ratio = _safe_div(snapshot.fixed_assets, assets, 0.0) if assets > 0 else 0.0

    health = AssetHealth(
        debt_to_asset_ratio=debt_to_asset,
        coverage_ratio=coverage,
        liquidity_ratio=liquidity,
        fixed_asset_ratio=fixed_ratio,
        debt_to_asset_score=normalize_debt_to_asset(debt_to_asset),
        coverage_score=normalize_coverage(coverage),
        liquidity_score=normalize_liquidity(liquidity),
        fixed_asset_score=normalize_fixed_asset_ratio(fixed_ratio),
    )
    health.score = clamp_unit(
        health.debt_to_asset_score * config.debt_to_asset_weight
        + health.coverage_score * config.coverage_weight
        + health.liquidity_score * config.liquidity_weight
        + health.fixed_asset_score * config.fixed_asset_weight
    )
    return health


def compute_payment_history(
    loans: Sequence[Loan], on_time_payments: int, config: CreditRatingConfig
) -> PaymentHistory:
    """Score repayment history.

    Missed payments subtract their complement from the full missed-payment
    weight, so a clean record earns the whole weight and three or more
    missed payments earn none of it.
    """
    active = [loan for loan in loans if loan.is_active]
    payoffs = sum(1 for loan in loans if loan.is_paid_off)
    missed = sum(max(0, loan.missed_payments) for loan in active)
    consecutive = sum(max(0, loan.missed_payments - 1) for loan in active)

    on_time_score = normalize_against_reference(
        max(0, on_time_payments), config.on_time_reference
    )
    payoff_score = normalize_against_reference(payoffs, config.payoff_reference)
    missed_score = normalize_missed_payments(missed)

    missed_penalty = (1.0 - missed_score) * config.missed_weight
    score = (
        on_time_score * config.on_time_weight
        + payoff_score * config.payoff_weight
        + config.missed_weight
        - missed_penalty
    )

    return PaymentHistory(
        on_time_payments=max(0, on_time_payments),
        payoffs=payoffs,
        missed_payments=missed,
        consecutive_missed=consecutive,
        on_time_score=on_time_score,
        payoff_score=payoff_score,
        missed_score=missed_score,
        score=clamp_unit(score),
    )


def compute_company_stability(
    snapshot: FinancialSnapshot,
    company_weeks: int,
    seasonal_profits: Sequence[float],
    config: CreditRatingConfig,
) -> CompanyStability:
    age_years = max(0, company_weeks) / WEEKS_PER_YEAR
    profits = list(seasonal_profits)[-config.profit_seasons:]

    consistency = consistency_score(
        profits,
        min_samples=config.consistency_min_samples,
        default=config.consistency_default,
        max_cv=config.consistency_max_cv,
    )

    if snapshot.income > 0:
        expense_ratio: float | None = snapshot.expenses / snapshot.income
        efficiency = clamp_unit(1.0 - expense_ratio)
    else:
        expense_ratio = None
        efficiency = 0.0

    stability = CompanyStability(
        company_age_years=age_years,
        seasonal_profits=profits,
        expense_ratio=expense_ratio,
        age_score=age_modifier(age_years),
        profit_consistency_score=consistency,
        expense_efficiency_score=efficiency,
    )
    stability.score = clamp_unit(
        stability.age_score * config.age_weight
        + stability.profit_consistency_score * config.profit_consistency_weight
        + stability.expense_efficiency_score * config.expense_efficiency_weight
    )
    return stability


def compute_negative_balance_penalty(
    snapshot: FinancialSnapshot, config: CreditRatingConfig
) -> NegativeBalancePenalty:
    """Penalty growing with weeks spent below zero cash.

    A tracked streak on the snapshot is used when present. Otherwise the
    streak is estimated from the size of the deficit relative to a
    company-value-scaled threshold.
    """
    cash = snapshot.cash_money
    per_week = config.negative_max_penalty / config.negative_max_weeks
    if cash >= 0:
        return NegativeBalancePenalty(cash_money=cash, penalty_per_week=per_week)

    threshold = max(
        config.negative_threshold_floor,
        snapshot.company_value * config.negative_threshold_pct,
    )
    if snapshot.weeks_negative is not None:
        weeks = snapshot.weeks_negative
        estimated = False
    else:
        weeks = math.ceil(abs(cash) / threshold)
        estimated = True
    weeks = min(max(0, weeks), config.negative_max_weeks)

    normalized = weeks / config.negative_max_weeks
    return NegativeBalancePenalty(
        cash_money=cash,
        threshold=threshold,
        weeks_negative=weeks,
        estimated=estimated,
        normalized=normalized,
        penalty_per_week=per_week,
        score=normalized * config.negative_max_penalty,
    )


def calculate_credit_rating(
    snapshot: FinancialSnapshot,
    loans: Sequence[Loan],
    on_time_payments: int,
    seasonal_profits: Sequence[float],
    company_weeks: int,
    config: CreditRatingConfig | None = None,
) -> CreditRatingBreakdown:
    """Compute the full credit rating breakdown.

    Args:
        snapshot: Resolved financial snapshot.
        loans: All company loans, active and paid off.
        on_time_payments: Number of loan payments made.
        seasonal_profits: Net income per season, oldest first.
        company_weeks: Weeks the company has existed.
        config: Weights and thresholds.

    Returns:
        CreditRatingBreakdown with final_rating in [0, 1].
    """
    config = config or CreditRatingConfig()

    asset_health = compute_asset_health(snapshot, config)
    payment_history = compute_payment_history(loans, on_time_payments, config)
    stability = compute_company_stability(
        snapshot, company_weeks, seasonal_profits, config
    )
    penalty = compute_negative_balance_penalty(snapshot, config)

    raw = (
        config.base_rating
        + asset_health.score * config.asset_health_weight
        + payment_history.score * config.payment_history_weight
        + stability.score * config.company_stability_weight
        + penalty.score
    )
    final = min(config.max_rating, max(config.min_rating, raw))

    if penalty.score < 0:
        logger.debug(
            "Negative balance penalty %.3f (%d weeks%s)",
            penalty.score,
            penalty.weeks_negative,
            ", estimated" if penalty.estimated else "",
        )

    return CreditRatingBreakdown(
        base_rating=config.base_rating,
        asset_health=asset_health,
        payment_history=payment_history,
        company_stability=stability,
        negative_balance=penalty,
        final_rating=final,
    )
