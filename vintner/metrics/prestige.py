"""Prestige: event factories, calculators and the current-prestige breakdown."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from vintner.config import PrestigeConfig
from vintner.data.contracts import (
    DecayEvent,
    EventKind,
    is_company_kind,
    is_prestige_kind,
    is_vineyard_kind,
)
from vintner.data.models import GameClock, Vineyard
from vintner.data.store import EngineStore
from vintner.metrics.decay import DecayLedger, aggregate, current_value
from vintner.metrics.normalize import (
    age_modifier,
    clamp_unit,
    normalize_prestige,
    quality_multiplier,
)

logger = logging.getLogger(__name__)

COMPANY_VALUE_SOURCE = "company_money"


@dataclass
class PrestigeEventValue:
    """One event's contribution at read time.

    Attributes:
        event_id: Event id.
        kind: Event kind.
        base_amount: Amount at creation.
        current_amount: Decayed amount now.
        weeks_elapsed: Weeks since creation.
        vineyard_id: Vineyard the event belongs to, if any.
    """

    event_id: str
    kind: EventKind
    base_amount: float
    current_amount: float
    weeks_elapsed: int
    vineyard_id: str | None = None


@dataclass
class PrestigeBreakdown:
    """Current prestige for one owner.

    Attributes:
        total: Company + vineyard prestige, never below the total floor.
        company_prestige: Company-kind events, never below the company floor.
        vineyard_prestige: Vineyard-kind events, never below the vineyard
            floor.
        vineyards: Vineyard prestige per vineyard id.
        events: Events with a positive current value, newest first.
    """

    total: float
    company_prestige: float
    vineyard_prestige: float
    vineyards: dict[str, float] = field(default_factory=dict)
    events: list[PrestigeEventValue] = field(default_factory=list)


@dataclass
class VineyardPrestigeFactors:
    """Derived 0-1 bases and scaled event amounts for one vineyard.

    Attributes:
        age_base: age_modifier(vine_age).
        land_base: ln(total land value / max land value + 1).
        age_with_suitability: age_base * suitability, clamped to [0, 1].
        land_with_suitability: land_base * suitability, clamped to [0, 1].
        age_amount: Permanent age prestige (>= 0).
        land_amount: Permanent land prestige (>= 0).
    """

    age_base: float
    land_base: float
    age_with_suitability: float
    land_with_suitability: float
    age_amount: float
    land_amount: float


def _is_prestige_event(event: DecayEvent) -> bool:
    return is_prestige_kind(event.kind)


def prestige_ledger(
    store: EngineStore,
    owner_key: str,
    config: PrestigeConfig | None = None,
    epsilon: float = 0.001,
) -> DecayLedger:
    """Ledger over an owner's prestige events, floored at the total floor."""
    config = config or PrestigeConfig()
    return DecayLedger(
        store,
        owner_key,
        floor=config.total_floor,
        epsilon=epsilon,
        predicate=_is_prestige_event,
    )


def calculate_current_prestige(
    store: EngineStore,
    owner_key: str,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> PrestigeBreakdown:
    """Aggregate an owner's prestige events with decay applied at read time.

    Unknown owners have no events and receive the floors.

    Args:
        store: Event store.
        owner_key: Company key.
        clock: Current game clock.
        config: Prestige floors.

    Returns:
        PrestigeBreakdown.
    """
    config = config or PrestigeConfig()
    now = clock.absolute_week
    events = store.query_events(owner_key, _is_prestige_event)

    company = aggregate(
        events, now, predicate=lambda e: is_company_kind(e.kind),
        floor=config.company_floor,
    )
    vineyard = aggregate(
        events, now, predicate=lambda e: is_vineyard_kind(e.kind),
        floor=config.vineyard_floor,
    )

    per_vineyard: dict[str, float] = {}
    values: list[PrestigeEventValue] = []
    for event in events:
        amount = current_value(event, now)
        if amount <= 0:
            continue
        vineyard_id = event.metadata.get("vineyard_id")
        if is_vineyard_kind(event.kind) and vineyard_id is not None:
            per_vineyard[vineyard_id] = per_vineyard.get(vineyard_id, 0.0) + amount
        values.append(
            PrestigeEventValue(
                event_id=event.event_id,
                kind=event.kind,
                base_amount=event.base_amount,
                current_amount=amount,
                weeks_elapsed=max(0, now - event.created_at_week),
                vineyard_id=vineyard_id,
            )
        )
    values.sort(key=lambda v: v.weeks_elapsed)

    if not events:
        logger.debug("%s: no prestige events, using floors", owner_key)

    return PrestigeBreakdown(
        total=max(config.total_floor, company + vineyard),
        company_prestige=company,
        vineyard_prestige=vineyard,
        vineyards=per_vineyard,
        events=values,
    )


# --- Event factories ---


def _one_off_event(
    owner_key: str,
    kind: EventKind,
    amount: float,
    decay_rate: float,
    clock: GameClock,
    metadata: dict[str, str] | None = None,
) -> DecayEvent:
    return DecayEvent(
        event_id="",
        owner_key=owner_key,
        kind=kind,
        base_amount=amount,
        created_at_week=clock.absolute_week,
        decay_rate=decay_rate,
        metadata=metadata or {},
    )


def sale_prestige_event(
    owner_key: str,
    sale_value: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
    customer: str | None = None,
) -> DecayEvent | None:
    """Decaying company prestige from a completed sale, or None if worthless."""
    config = config or PrestigeConfig()
    amount = sale_value / config.sale_value_divisor
    if amount <= 0:
        logger.debug("%s: non-positive sale value, no prestige", owner_key)
        return None
    metadata = {"customer": customer} if customer else None
    return _one_off_event(
        owner_key, EventKind.SALE, amount, config.sale_decay_rate, clock, metadata
    )


def contract_prestige_event(
    owner_key: str,
    contract_value: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    config = config or PrestigeConfig()
    amount = contract_value / config.sale_value_divisor
    if amount <= 0:
        return None
    return _one_off_event(
        owner_key, EventKind.CONTRACT, amount, config.contract_decay_rate, clock
    )


def vineyard_sale_prestige_event(
    owner_key: str,
    vineyard_id: str,
    sale_value: float,
    vineyard_factor: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    """Decaying vineyard prestige from selling that vineyard's wine.

    Args:
        owner_key: Company key.
        vineyard_id: Vineyard producing the wine.
        sale_value: Sale value in money.
        vineyard_factor: Scale from the vineyard's own prestige
            (see feature_prestige_factor).
        clock: Current game clock.
        config: Prestige configuration.
    """
    config = config or PrestigeConfig()
    amount = sale_value / config.sale_value_divisor * max(0.0, vineyard_factor)
    if amount <= 0:
        return None
    return _one_off_event(
        owner_key,
        EventKind.VINEYARD_SALE,
        amount,
        config.vineyard_sale_decay_rate,
        clock,
        {"vineyard_id": vineyard_id},
    )


def achievement_prestige_event(
    owner_key: str,
    vineyard_id: str,
    base_prestige: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    config = config or PrestigeConfig()
    amount = base_prestige * config.achievement_scale
    if amount <= 0:
        return None
    return _one_off_event(
        owner_key,
        EventKind.VINEYARD_ACHIEVEMENT,
        amount,
        config.achievement_decay_rate,
        clock,
        {"vineyard_id": vineyard_id},
    )


def penalty_prestige_event(
    owner_key: str,
    amount: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
    reason: str | None = None,
) -> DecayEvent | None:
    """Negative company prestige event; the sign of ``amount`` is ignored.

    Penalties are kept in the ledger for the record but, like every
    non-positive value, never reduce the aggregated total below its floor.
    """
    config = config or PrestigeConfig()
    if amount == 0 or math.isnan(amount):
        return None
    metadata = {"reason": reason} if reason else None
    return _one_off_event(
        owner_key,
        EventKind.PENALTY,
        -abs(amount),
        config.penalty_decay_rate,
        clock,
        metadata,
    )


def _add(ledger: DecayLedger, event: DecayEvent | None) -> DecayEvent | None:
    return None if event is None else ledger.add(event)


def record_sale_prestige(
    ledger: DecayLedger,
    sale_value: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
    customer: str | None = None,
) -> DecayEvent | None:
    return _add(
        ledger,
        sale_prestige_event(ledger.owner_key, sale_value, clock, config, customer),
    )


def record_contract_prestige(
    ledger: DecayLedger,
    contract_value: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    return _add(
        ledger,
        contract_prestige_event(ledger.owner_key, contract_value, clock, config),
    )


def record_vineyard_sale_prestige(
    ledger: DecayLedger,
    vineyard_id: str,
    sale_value: float,
    vineyard_factor: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    return _add(
        ledger,
        vineyard_sale_prestige_event(
            ledger.owner_key, vineyard_id, sale_value, vineyard_factor, clock, config
        ),
    )


def record_achievement_prestige(
    ledger: DecayLedger,
    vineyard_id: str,
    base_prestige: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    return _add(
        ledger,
        achievement_prestige_event(
            ledger.owner_key, vineyard_id, base_prestige, clock, config
        ),
    )


def record_penalty_prestige(
    ledger: DecayLedger,
    amount: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
    reason: str | None = None,
) -> DecayEvent | None:
    return _add(
        ledger,
        penalty_prestige_event(ledger.owner_key, amount, clock, config, reason),
    )


def update_company_value_prestige(
    ledger: DecayLedger,
    money: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent:
    """Upsert the permanent prestige derived from company money.

    Amount is ln(money / max_land_value + 1); negative balances give 0.
    """
    config = config or PrestigeConfig()
    amount = math.log(max(0.0, money) / config.max_land_value + 1)
    return ledger.upsert(EventKind.COMPANY_VALUE, COMPANY_VALUE_SOURCE, amount, clock)


def vineyard_prestige_factors(
    vineyard: Vineyard, config: PrestigeConfig | None = None
) -> VineyardPrestigeFactors:
    config = config or PrestigeConfig()
    suitability = clamp_unit(vineyard.suitability)

    age_base = age_modifier(vineyard.vine_age)
    total_land_value = max(0.0, vineyard.land_value) * max(0.0, vineyard.hectares)
    land_base = math.log(total_land_value / max(1.0, config.max_land_value) + 1)

    age_with = clamp_unit(age_base * suitability)
    land_with = clamp_unit(land_base * suitability)

    return VineyardPrestigeFactors(
        age_base=age_base,
        land_base=land_base,
        age_with_suitability=age_with,
        land_with_suitability=land_with,
        age_amount=max(0.0, quality_multiplier(min(0.99, age_with)) - 1),
        land_amount=max(0.0, quality_multiplier(min(0.99, land_with)) - 1),
    )


def update_vineyard_prestige(
    ledger: DecayLedger,
    vineyard: Vineyard,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> VineyardPrestigeFactors:
    """Upsert the permanent age and land prestige events of a vineyard."""
    factors = vineyard_prestige_factors(vineyard, config)
    metadata = {"vineyard_id": vineyard.vineyard_id}
    ledger.upsert(
        EventKind.VINEYARD_AGE,
        f"{vineyard.vineyard_id}_age",
        factors.age_amount,
        clock,
        metadata,
    )
    ledger.upsert(
        EventKind.VINEYARD_LAND,
        f"{vineyard.vineyard_id}_land",
        factors.land_amount,
        clock,
        metadata,
    )
    return factors


# --- Calculators ---


def calculate_sale_prestige_with_assets(
    base_prestige: float,
    volume: float,
    value: float,
    company_assets: float,
    config: PrestigeConfig | None = None,
) -> float:
    """Sale prestige scaled by sale size and company assets, capped.

    Larger companies earn more reputation from the same sale; the
    contribution is capped at ``config.sale_prestige_cap``.
    """
    config = config or PrestigeConfig()
    size = math.log(max(0.0, volume) / 10 + 1) + math.log(max(0.0, value) / 1000 + 1)
    asset_scale = math.sqrt(max(1.0, company_assets) / config.sale_asset_reference)
    return min(config.sale_prestige_cap, max(0.0, base_prestige * size * asset_scale))


def feature_prestige_factor(prestige: float) -> float:
    """Scale for features whose effect grows with prestige.

    ln(1 / (1 - normalized + 0.001)) / 5, with normalized from the
    prestige curve.
    """
    normalized = normalize_prestige(prestige)
    return math.log(1.0 / (1.0 - normalized + 0.001)) / 5.0
