"""Customer relationships: decaying order boosts scaled by market share."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from vintner.config import PrestigeConfig
from vintner.data.contracts import DecayEvent, EventKind
from vintner.data.models import GameClock
from vintner.data.store import EngineStore
from vintner.metrics.decay import DecayLedger
from vintner.metrics.normalize import inverted_skewed

logger = logging.getLogger(__name__)


@dataclass
class RelationshipBreakdown:
    """Relationship strength with one customer.

    Attributes:
        customer_id: Customer key.
        prestige_component: ln(company prestige + 1).
        boost_component: Sum of decayed order boosts.
        market_share_modifier: 1 - inverted_skewed(market share).
        total: (prestige_component + boost_component) * modifier.
    """

    customer_id: str
    prestige_component: float
    boost_component: float
    market_share_modifier: float
    total: float


def _is_boost(event: DecayEvent) -> bool:
    return event.kind is EventKind.RELATIONSHIP_BOOST


def relationship_key(company_id: str, customer_id: str) -> str:
    """Owner key of the boosts one company has earned with one customer."""
    return f"{company_id}:{customer_id}"


def relationship_ledger(
    store: EngineStore, company_id: str, customer_id: str, epsilon: float = 0.001
) -> DecayLedger:
    """Boost ledger for one (company, customer) pair. No floor: 0 is a valid total."""
    return DecayLedger(
        store,
        relationship_key(company_id, customer_id),
        floor=0.0,
        epsilon=epsilon,
        predicate=_is_boost,
    )


def boost_amount(
    order_value: float, prestige: float, config: PrestigeConfig | None = None
) -> float:
    """Boost from one order; diminishes as company prestige grows."""
    config = config or PrestigeConfig()
    if order_value <= 0:
        return 0.0
    prestige_factor = 1.0 / (1.0 + max(0.0, prestige) / 100.0)
    return order_value / config.boost_value_divisor * prestige_factor * config.boost_scale


def relationship_boost_event(
    company_id: str,
    customer_id: str,
    order_value: float,
    prestige: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    """Unsaved decaying boost for the pair, or None for empty orders."""
    config = config or PrestigeConfig()
    amount = boost_amount(order_value, prestige, config)
    if amount <= 0:
        logger.debug(
            "%s/%s: order value %.2f gives no boost",
            company_id, customer_id, order_value,
        )
        return None
    return DecayEvent(
        event_id="",
        owner_key=relationship_key(company_id, customer_id),
        kind=EventKind.RELATIONSHIP_BOOST,
        base_amount=amount,
        created_at_week=clock.absolute_week,
        decay_rate=config.boost_decay_rate,
        metadata={"company_id": company_id, "customer_id": customer_id},
    )


def record_relationship_boost(
    store: EngineStore,
    company_id: str,
    customer_id: str,
    order_value: float,
    prestige: float,
    clock: GameClock,
    config: PrestigeConfig | None = None,
) -> DecayEvent | None:
    event = relationship_boost_event(
        company_id, customer_id, order_value, prestige, clock, config
    )
    if event is None:
        return None
    return relationship_ledger(store, company_id, customer_id).add(event)


def calculate_relationship(
    store: EngineStore,
    company_id: str,
    customer_id: str,
    prestige: float,
    market_share: float,
    clock: GameClock,
) -> RelationshipBreakdown:
    """Relationship strength from company prestige and decayed boosts.

    Only boosts earned by ``company_id`` count; other companies selling to
    the same customer do not affect the result.

    Args:
        store: Event store.
        company_id: Company whose relationship is measured.
        customer_id: Customer key.
        prestige: Current company prestige total.
        market_share: Customer market share in [0, 1].
        clock: Current game clock.

    Returns:
        RelationshipBreakdown.
    """
    prestige_component = math.log(max(0.0, prestige) + 1)
    boosts = relationship_ledger(store, company_id, customer_id).total(clock)
    modifier = 1.0 - inverted_skewed(market_share)
    return RelationshipBreakdown(
        customer_id=customer_id,
        prestige_component=prestige_component,
        boost_component=boosts,
        market_share_modifier=modifier,
        total=(prestige_component + boosts) * modifier,
    )
