"""Growth trend multiplier: slow momentum from sustained over/under-performance."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vintner.config import GrowthTrendConfig
from vintner.data.contracts import ShareMetricsSnapshot
from vintner.data.models import Company, GameClock
from vintner.pricing import ExpectedValues

logger = logging.getLogger(__name__)


@dataclass
class GrowthTrendUpdate:
    """Result of one growth trend evaluation.

    Attributes:
        previous_multiplier: Multiplier before the update.
        new_multiplier: Multiplier after the update.
        average_performance: Mean actual/expected ratio, None if no metric
            had a positive expectation.
        adjusted: True when the multiplier changed.
        reason: Why the multiplier did or did not change.
    """

    previous_multiplier: float
    new_multiplier: float
    average_performance: float | None
    adjusted: bool
    reason: str


def performance_ratios(
    metrics: ShareMetricsSnapshot, expected: ExpectedValues
) -> list[float]:
    """Actual/expected ratios for growth, margin and EPS (48-week values)."""
    pairs = [
        (metrics.revenue_growth_48w, expected.revenue_growth),
        (metrics.profit_margin_48w, expected.profit_margin),
        (metrics.earnings_per_share_48w, expected.earnings_per_share),
    ]
    return [actual / target for actual, target in pairs if target > 0]


def update_growth_trend(
    company: Company,
    metrics: ShareMetricsSnapshot,
    expected: ExpectedValues,
    clock: GameClock,
    has_history: bool,
    config: GrowthTrendConfig | None = None,
) -> GrowthTrendUpdate:
    """Nudge the company's growth trend multiplier, at most once per week.

    Average performance >= raise_threshold raises the multiplier by one
    increment; below lower_threshold lowers it; in between leaves it. The
    multiplier stays within [min_multiplier, max_multiplier]. Nothing
    changes until 48 weeks of history exist.

    Args:
        company: Company to update in place.
        metrics: Current share metrics.
        expected: Expected values used for this week's price step.
        clock: Current game clock.
        has_history: Whether a 48-week-old snapshot exists.
        config: Growth trend configuration.

    Returns:
        GrowthTrendUpdate.
    """
    config = config or GrowthTrendConfig()
    previous = company.growth_trend_multiplier
    week = clock.absolute_week

    def unchanged(reason: str, average: float | None = None) -> GrowthTrendUpdate:
        return GrowthTrendUpdate(previous, previous, average, False, reason)

    if company.last_growth_trend_week == week:
        return unchanged("already updated this week")
    if not has_history:
        return unchanged("insufficient history")

    ratios = performance_ratios(metrics, expected)
    if not ratios:
        logger.debug("%s: no positive expectations for growth trend", company.company_id)
        return unchanged("no positive expectations")

    average = sum(ratios) / len(ratios)
    if average >= config.raise_threshold:
        step = config.increment
    elif average < config.lower_threshold:
        step = -config.increment
    else:
        step = 0.0

    new = min(config.max_multiplier, max(config.min_multiplier, previous + step))
    company.growth_trend_multiplier = new
    company.last_growth_trend_week = week

    if new != previous:
        logger.info(
            "%s: growth trend %.2f -> %.2f (performance %.2f)",
            company.company_id, previous, new, average,
        )
    return GrowthTrendUpdate(
        previous_multiplier=previous,
        new_multiplier=new,
        average_performance=average,
        adjusted=new != previous,
        reason="performance evaluated",
    )
