"""Share price engine: delta-driven weekly adjustment anchored on book value.

Each week, eight performance metrics are compared with expected values.
Their clamped, weighted percentage deltas are summed into a price
contribution. The contribution is damped by an anchor factor that shrinks
as the price drifts away from book value per share, which makes the price
mean-revert.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from vintner.config import (
    ECONOMY_PHASE_MULTIPLIERS,
    MIN_SHARE_PRICE,
    WEEKS_PER_SEASON,
    AnchorConfig,
    EconomyPhase,
    MetricAdjustment,
    SharePriceConfig,
)
from vintner.data.contracts import HistoricalSnapshot, ShareMetricsSnapshot
from vintner.data.models import Company
from vintner.metrics.normalize import normalize_prestige

logger = logging.getLogger(__name__)

# Metrics compared against expected values (48-week rolling actuals).
EXPECTATION_METRICS: tuple[str, ...] = (
    "earnings_per_share",
    "revenue_per_share",
    "dividend_per_share",
    "revenue_growth",
    "profit_margin",
)

# Metrics measured as 48-week trend deltas against a historical snapshot.
TREND_METRICS: tuple[str, ...] = (
    "credit_rating",
    "fixed_asset_ratio",
    "prestige",
)

# Suppressed until the company has a full year of history.
GRACE_METRICS = frozenset({
    "earnings_per_share",
    "revenue_growth",
    "profit_margin",
    *TREND_METRICS,
})

# Delta used when the previous trend value is non-positive but the
# current value is positive.
_TREND_FALLBACKS: dict[str, float] = {
    "credit_rating": 0.0,
    "fixed_asset_ratio": 0.0,
    "prestige": 100.0,
}


@dataclass
class ExpectedValues:
    """Expected performance for one company this week.

    Attributes:
        revenue_growth: Expected revenue growth.
        profit_margin: Expected profit margin.
        earnings_per_share: Expected EPS.
        revenue_per_share: Expected revenue per share.
        dividend_per_share: Expected dividends per share for the year.
        economy_multiplier: Economy phase multiplier.
        prestige_multiplier: Prestige multiplier.
        growth_trend_multiplier: Company growth trend multiplier.
    """

    revenue_growth: float
    profit_margin: float
    earnings_per_share: float
    revenue_per_share: float
    dividend_per_share: float
    economy_multiplier: float = 1.0
    prestige_multiplier: float = 1.0
    growth_trend_multiplier: float = 1.0

    @property
    def combined_multiplier(self) -> float:
        return (
            self.economy_multiplier
            * self.prestige_multiplier
            * self.growth_trend_multiplier
        )


@dataclass
class MetricContribution:
    """One metric's share of the weekly price move.

    Attributes:
        metric: Metric name.
        actual: Actual value (or current value for trend metrics).
        expected: Expected value (or value 48 weeks ago for trend metrics).
        delta_pct: Percentage delta before clamping.
        ratio: delta_pct / 100 clamped to +/- max_ratio.
        contribution: ratio * base_adjustment.
        in_grace_period: True when the delta was suppressed.
    """

    metric: str
    actual: float
    expected: float
    delta_pct: float
    ratio: float
    contribution: float
    in_grace_period: bool = False


@dataclass
class PriceAdjustmentResult:
    """Outcome of one weekly share price adjustment.

    Attributes:
        success: False when the adjustment was rejected.
        company_id: Company key.
        new_price: Price after adjustment (unchanged on failure).
        previous_price: Price before adjustment (None if uninitialized).
        total_contribution: Sum of metric contributions.
        anchor_factor: Damping applied to the contribution.
        initialized: True when this call set the first price.
        contributions: Per-metric breakdown.
        error: Reason for rejection.
    """

    success: bool
    company_id: str
    new_price: float | None = None
    previous_price: float | None = None
    total_contribution: float = 0.0
    anchor_factor: float = 0.0
    initialized: bool = False
    contributions: list[MetricContribution] = field(default_factory=list)
    error: str | None = None


def prestige_multiplier(
    prestige: float, config: SharePriceConfig | None = None
) -> float:
    """Linear map of normalized prestige into [base, max] multiplier."""
    config = config or SharePriceConfig()
    span = config.prestige_max_multiplier - config.prestige_base_multiplier
    return config.prestige_base_multiplier + normalize_prestige(prestige) * span


def expected_dividend_payments(
    company_weeks: int, config: SharePriceConfig | None = None
) -> int:
    """Dividend payments expected so far this year (one per season)."""
    config = config or SharePriceConfig()
    return min(config.max_dividend_payments, math.ceil(max(0, company_weeks) / WEEKS_PER_SEASON))


def calculate_expected_values(
    company: Company,
    book_value_per_share: float,
    prestige: float,
    phase: EconomyPhase,
    company_weeks: int,
    config: SharePriceConfig | None = None,
) -> ExpectedValues:
    """Expected values from company baselines and the three multipliers.

    Args:
        company: Company with baselines and growth trend multiplier.
        book_value_per_share: Current anchor.
        prestige: Company prestige total.
        phase: Current economy phase.
        company_weeks: Weeks the company has existed.
        config: Share price configuration.

    Returns:
        ExpectedValues.
    """
    config = config or SharePriceConfig()
    economy = ECONOMY_PHASE_MULTIPLIERS.get(phase, 1.0)
    prestige_mult = prestige_multiplier(prestige, config)
    trend = company.growth_trend_multiplier
    combined = economy * prestige_mult * trend

    revenue_growth = company.base_revenue_growth * combined
    profit_margin = company.base_profit_margin * combined
    eps = book_value_per_share * company.base_return_on_book_value * combined

    if profit_margin > 0:
        revenue_per_share = eps / profit_margin
    else:
        revenue_per_share = book_value_per_share * 0.5

    dividend = company.dividend_rate * expected_dividend_payments(company_weeks, config)

    return ExpectedValues(
        revenue_growth=revenue_growth,
        profit_margin=profit_margin,
        earnings_per_share=eps,
        revenue_per_share=revenue_per_share,
        dividend_per_share=dividend,
        economy_multiplier=economy,
        prestige_multiplier=prestige_mult,
        growth_trend_multiplier=trend,
    )


def percentage_delta(actual: float, expected: float) -> float:
    """(actual - expected) / expected * 100.

    When expected <= 0: +100 if actual is positive, else 0.
    """
    if expected <= 0:
        return 100.0 if actual > 0 else 0.0
    return (actual - expected) / expected * 100.0


def trend_delta(current: float, previous: float, fallback: float = 0.0) -> float:
    """Percentage change from ``previous`` to ``current``.

    When previous <= 0: ``fallback`` if current is positive, else 0.
    """
    if previous > 0:
        return (current - previous) / previous * 100.0
    if current > 0:
        return fallback
    return 0.0


def anchor_factor(
    current_price: float,
    book_value_per_share: float,
    config: AnchorConfig | None = None,
) -> float:
    """1 / (1 + strength * deviation^exponent); 0 for non-positive inputs."""
    config = config or AnchorConfig()
    if book_value_per_share <= 0 or current_price <= 0:
        return 0.0
    deviation = abs(current_price - book_value_per_share) / book_value_per_share
    return 1.0 / (1.0 + config.strength * deviation**config.exponent)


def minimum_price(
    book_value_per_share: float, config: AnchorConfig | None = None
) -> float:
    config = config or AnchorConfig()
    return max(MIN_SHARE_PRICE, book_value_per_share * config.min_price_ratio_to_anchor)


def _contribution(
    metric: str,
    actual: float,
    expected: float,
    delta_pct: float,
    adjustment: MetricAdjustment,
    in_grace: bool,
) -> MetricContribution:
    if in_grace:
        delta_pct = 0.0
    ratio = max(-adjustment.max_ratio, min(adjustment.max_ratio, delta_pct / 100.0))
    return MetricContribution(
        metric=metric,
        actual=actual,
        expected=expected,
        delta_pct=delta_pct,
        ratio=ratio,
        contribution=ratio * adjustment.base_adjustment,
        in_grace_period=in_grace,
    )


def calculate_contributions(
    metrics: ShareMetricsSnapshot,
    expected: ExpectedValues,
    previous: HistoricalSnapshot | None,
    company_weeks: int,
    config: SharePriceConfig | None = None,
) -> list[MetricContribution]:
    """Per-metric contributions for the eight price drivers.

    Args:
        metrics: Current share metrics (48-week rolling actuals).
        expected: Expected values for this week.
        previous: Snapshot from 48 weeks ago, or None.
        company_weeks: Weeks the company has existed.
        config: Share price configuration.

    Returns:
        Eight MetricContribution entries, expectation metrics first.
    """
    config = config or SharePriceConfig()
    first_year = company_weeks < config.grace_period_weeks
    # Growth compares two full windows, so it needs strictly more than one.
    growth_ready = company_weeks > config.grace_period_weeks

    actuals = {
        "earnings_per_share": metrics.earnings_per_share_48w,
        "revenue_per_share": metrics.revenue_per_share_48w,
        "dividend_per_share": metrics.dividend_per_share_48w,
        "revenue_growth": metrics.revenue_growth_48w,
        "profit_margin": metrics.profit_margin_48w,
    }
    targets = {
        "earnings_per_share": expected.earnings_per_share,
        "revenue_per_share": expected.revenue_per_share,
        "dividend_per_share": expected.dividend_per_share,
        "revenue_growth": expected.revenue_growth,
        "profit_margin": expected.profit_margin,
    }

    contributions: list[MetricContribution] = []
    for metric in EXPECTATION_METRICS:
        actual = actuals[metric]
        target = targets[metric]
        contributions.append(
            _contribution(
                metric,
                actual,
                target,
                percentage_delta(actual, target),
                config.metrics[metric],
                in_grace=(first_year and metric in GRACE_METRICS)
                or (metric == "revenue_growth" and not growth_ready),
            )
        )

    for metric in TREND_METRICS:
        current = float(getattr(metrics, metric))
        past = float(getattr(previous, metric)) if previous is not None else 0.0
        contributions.append(
            _contribution(
                metric,
                current,
                past,
                trend_delta(current, past, _TREND_FALLBACKS[metric]),
                config.metrics[metric],
                in_grace=first_year or previous is None,
            )
        )
    return contributions


def adjust_share_price_incrementally(
    company: Company | None,
    metrics: ShareMetricsSnapshot,
    expected: ExpectedValues,
    previous: HistoricalSnapshot | None,
    company_weeks: int,
    config: SharePriceConfig | None = None,
) -> PriceAdjustmentResult:
    """Run one weekly price step for a company and update its price.

    An uninitialized price (None or <= 0) is set to book value per share
    with no further movement that week. An initialized price moves by the
    anchored contribution and never falls below the minimum price.

    Args:
        company: Company to adjust; its share_price is updated in place.
        metrics: Current share metrics.
        expected: Expected values.
        previous: Snapshot from 48 weeks ago, or None.
        company_weeks: Weeks the company has existed.
        config: Share price configuration.

    Returns:
        PriceAdjustmentResult. Rejected inputs give success=False and leave
        the price untouched.
    """
    config = config or SharePriceConfig()
    if company is None:
        return PriceAdjustmentResult(
            success=False, company_id="", error="Company not found"
        )

    book = metrics.book_value_per_share
    current = company.share_price

    if company.total_shares <= 0:
        return PriceAdjustmentResult(
            success=False,
            company_id=company.company_id,
            new_price=current,
            previous_price=current,
            error=f"Invalid share count: {company.total_shares}",
        )
    if not math.isfinite(book) or book <= 0:
        logger.warning(
            "%s: non-positive book value per share (%.4f), price not adjusted",
            company.company_id, book,
        )
        return PriceAdjustmentResult(
            success=False,
            company_id=company.company_id,
            new_price=current,
            previous_price=current,
            error=f"Book value per share must be positive, got {book:.4f}",
        )

    if current is None or current <= 0:
        company.share_price = book
        logger.info(
            "%s: share price initialized at book value %.4f",
            company.company_id, book,
        )
        return PriceAdjustmentResult(
            success=True,
            company_id=company.company_id,
            new_price=book,
            previous_price=None,
            anchor_factor=1.0,
            initialized=True,
        )

    contributions = calculate_contributions(
        metrics, expected, previous, company_weeks, config
    )
    total = sum(c.contribution for c in contributions)
    factor = anchor_factor(current, book, config.anchor)
    new_price = max(minimum_price(book, config.anchor), current + total * factor)

    company.share_price = new_price
    logger.debug(
        "%s: price %.4f -> %.4f (contribution %.4f, anchor %.3f)",
        company.company_id, current, new_price, total, factor,
    )
    return PriceAdjustmentResult(
        success=True,
        company_id=company.company_id,
        new_price=new_price,
        previous_price=current,
        total_contribution=total,
        anchor_factor=factor,
        contributions=contributions,
    )


def apply_share_structure_adjustment(
    current_price: float,
    book_value_per_share: float,
    old_shares: float,
    new_shares: float,
    config: SharePriceConfig | None = None,
) -> float:
    """Immediate price reaction to share issuance or buyback.

    Issuance dilutes (price * old/new * dilution_penalty); a buyback
    concentrates ownership (price * old/new * concentration_bonus). The
    result never falls below the minimum price.

    Raises:
        ValueError: If either share count is non-positive.
    """
    config = config or SharePriceConfig()
    if old_shares <= 0 or new_shares <= 0:
        raise ValueError(
            f"Share counts must be positive, got {old_shares} -> {new_shares}"
        )
    if new_shares == old_shares:
        return current_price

    reaction = (
        config.dilution_penalty if new_shares > old_shares else config.concentration_bonus
    )
    adjusted = current_price * (old_shares / new_shares) * reaction
    return max(minimum_price(book_value_per_share, config.anchor), adjusted)
