"""Economy engine configuration dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Game calendar. Every "week" in the engine is an absolute index on this
# calendar, never wall-clock time.
WEEKS_PER_SEASON: int = 12
SEASONS_PER_YEAR: int = 4
WEEKS_PER_YEAR: int = WEEKS_PER_SEASON * SEASONS_PER_YEAR
DEFAULT_START_YEAR: int = 2024

# Share prices below this floor are meaningless for the simulation.
MIN_SHARE_PRICE: float = 0.01

# Coverage/liquidity value reported for companies without debt.
NO_DEBT_SENTINEL: float = 999.0


class EconomyPhase(Enum):
    """Macro-economic state driving expected performance."""

    CRASH = "Crash"
    RECESSION = "Recession"
    STABLE = "Stable"
    EXPANSION = "Expansion"
    BOOM = "Boom"


ECONOMY_PHASE_MULTIPLIERS: dict[EconomyPhase, float] = {
    EconomyPhase.CRASH: 0.70,
    EconomyPhase.RECESSION: 0.85,
    EconomyPhase.STABLE: 1.00,
    EconomyPhase.EXPANSION: 1.15,
    EconomyPhase.BOOM: 1.30,
}


@dataclass
class EngineConfig:
    """Top-level engine configuration."""

    # Storage
    db_path: Path = Path("vintner.db")
    start_year: int = DEFAULT_START_YEAR

    # Garbage-collection thresholds for decayed events
    prestige_epsilon: float = 0.001
    relationship_epsilon: float = 0.001

    # Snapshot lookback for trend metrics
    trend_lookback_weeks: int = WEEKS_PER_YEAR


@dataclass
class PrestigeConfig:
    """Prestige event amounts, decay rates and floors."""

    company_floor: float = 1.0
    vineyard_floor: float = 0.0
    total_floor: float = 1.0

    sale_value_divisor: float = 10_000.0
    sale_decay_rate: float = 0.95
    vineyard_sale_decay_rate: float = 0.95
    achievement_scale: float = 0.1
    achievement_decay_rate: float = 0.90
    penalty_decay_rate: float = 0.95
    contract_decay_rate: float = 0.95

    # Company value prestige: ln(money / max_land_value + 1)
    max_land_value: float = 1_000_000.0

    # Sale prestige scaled by company assets
    sale_prestige_cap: float = 10.0
    sale_asset_reference: float = 100_000.0

    # Relationship boosts
    boost_value_divisor: float = 10_000.0
    boost_scale: float = 0.1
    boost_decay_rate: float = 0.95


@dataclass
class CreditRatingConfig:
    """Credit rating weights, bands and penalty parameters."""

    base_rating: float = 0.5
    min_rating: float = 0.0
    max_rating: float = 1.0

    # Group weights
    asset_health_weight: float = 0.20
    payment_history_weight: float = 0.15
    company_stability_weight: float = 0.10

    # Asset health sub-weights
    debt_to_asset_weight: float = 0.40
    coverage_weight: float = 0.30
    liquidity_weight: float = 0.25
    fixed_asset_weight: float = 0.05

    # Payment history sub-weights and reference counts
    on_time_weight: float = 0.50
    payoff_weight: float = 0.30
    missed_weight: float = 0.20
    on_time_reference: int = 20
    payoff_reference: int = 5

    # Company stability sub-weights
    age_weight: float = 0.50
    profit_consistency_weight: float = 0.30
    expense_efficiency_weight: float = 0.20
    consistency_default: float = 0.7
    consistency_min_samples: int = 2
    consistency_max_cv: float = 1.0
    profit_seasons: int = 4

    # Negative balance penalty
    negative_max_weeks: int = 15
    negative_max_penalty: float = -0.30
    negative_threshold_floor: float = 10_000.0
    negative_threshold_pct: float = 0.05


@dataclass
class MetricAdjustment:
    """Per-metric weight and clamp for share price contributions."""

    base_adjustment: float
    max_ratio: float


def _default_metric_adjustments() -> dict[str, MetricAdjustment]:
    return {
        "earnings_per_share": MetricAdjustment(0.04, 3.0),
        "revenue_per_share": MetricAdjustment(0.03, 3.0),
        "dividend_per_share": MetricAdjustment(0.03, 3.0),
        "revenue_growth": MetricAdjustment(0.03, 2.0),
        "profit_margin": MetricAdjustment(0.03, 2.0),
        "credit_rating": MetricAdjustment(0.03, 2.0),
        "fixed_asset_ratio": MetricAdjustment(0.02, 2.0),
        "prestige": MetricAdjustment(0.02, 2.0),
    }


@dataclass
class AnchorConfig:
    """Mean reversion toward book value per share."""

    strength: float = 2.0
    exponent: float = 1.25
    min_price_ratio_to_anchor: float = 0.1


@dataclass
class SharePriceConfig:
    """Share price engine parameters."""

    metrics: dict[str, MetricAdjustment] = field(
        default_factory=_default_metric_adjustments
    )
    anchor: AnchorConfig = field(default_factory=AnchorConfig)

    # Default per-company baselines
    base_revenue_growth: float = 0.10
    base_profit_margin: float = 0.15
    base_return_on_book_value: float = 0.10

    # Prestige multiplier range: base + normalized * (max - base)
    prestige_base_multiplier: float = 1.0
    prestige_max_multiplier: float = 2.0

    # Grace period before growth/trend metrics count
    grace_period_weeks: int = WEEKS_PER_YEAR

    # Dividend payments per year, one per season
    max_dividend_payments: int = SEASONS_PER_YEAR

    # Immediate reaction to share issuance/buyback
    dilution_penalty: float = 0.98
    concentration_bonus: float = 1.02


@dataclass
class GrowthTrendConfig:
    """Long-term momentum multiplier parameters."""

    increment: float = 0.02
    min_multiplier: float = 0.5
    max_multiplier: float = 1.5
    raise_threshold: float = 1.0
    lower_threshold: float = 0.8
