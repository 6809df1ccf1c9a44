"""
NegRisk short-arbitrage scanner.

In a neg-risk event exactly one outcome resolves YES, and one unit of
collateral splits into one YES token per outcome. If the YES tokens can be
sold for more than 1.0 in total (walking each book to the target size), then
split one set and sell every leg for a guaranteed profit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from scanner.depth import effective_price
from scanner.market_cache import MarketSnapshotCache
from scanner.models import (
    Market,
    Opportunity,
    OpportunityType,
    OrderRequest,
    Side,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")


@dataclass(frozen=True)
class PricedGroup:
    """One neg-risk event whose every YES leg has an effective sell price."""
    event_id: str
    markets: tuple[Market, ...]
    prices: tuple[Decimal, ...]

    @property
    def total(self) -> Decimal:
        return sum(self.prices, Decimal("0"))

    @property
    def display_name(self) -> str:
        if not self.markets:
            return self.event_id
        return self.markets[0].question.split(" | ")[0]

    def breakdown(self) -> str:
        return " ".join(
            f"[{m.yes_token_id}: {p}]" for m, p in zip(self.markets, self.prices)
        )


def collect_event_groups(markets: tuple[Market, ...] | list[Market]) -> dict[str, list[Market]]:
    """Group neg-risk markets by event id. Markets without an event id are dropped."""
    groups: dict[str, list[Market]] = {}
    for m in markets:
        if not m.neg_risk:
            continue
        if not m.event_id:
            logger.debug("SKIP neg-risk market %s: no event id", m.market_id)
            continue
        groups.setdefault(m.event_id, []).append(m)
    return groups


def price_group(
    event_id: str,
    markets: list[Market],
    target_size: Decimal,
) -> PricedGroup | None:
    """
    Effective YES sell price for every member at target_size.
    Returns None if the group cannot be hedged completely: a member is
    inactive, closed, not accepting orders, malformed, or too thin.
    """
    if len(markets) < 2:
        return None

    prices: list[Decimal] = []
    for m in markets:
        if not m.is_tradeable:
            logger.debug("SKIP event %s: market %s not tradeable", event_id, m.market_id)
            return None
        if len(m.outcome_ids) != 2:
            logger.warning("SKIP event %s: market %s has malformed outcome ids", event_id, m.market_id)
            return None
        price = effective_price(m.yes_book, Side.SELL, target_size)
        if price is None or price == 0:
            return None
        prices.append(price)

    return PricedGroup(event_id=event_id, markets=tuple(markets), prices=tuple(prices))


def net_profit_per_set(group: PricedGroup, execution_buffer: Decimal) -> Decimal | None:
    """sum - 1 - buffer when the sum clears 1.0, otherwise None."""
    total = group.total
    if total <= ONE:
        return None
    return total - ONE - execution_buffer


class NegRiskShortStrategy:
    """Emits one opportunity per neg-risk event whose YES bids sum above 1.0."""

    name = "negrisk_short"

    def __init__(
        self,
        cache: MarketSnapshotCache,
        target_size: Decimal = Decimal("10"),
        execution_buffer: Decimal = Decimal("0.002"),
        min_profit: Decimal = Decimal("0.0001"),
    ) -> None:
        self._cache = cache
        self._target_size = target_size
        self._execution_buffer = execution_buffer
        self._min_profit = min_profit

    def detect(self) -> list[Opportunity]:
        opportunities: list[Opportunity] = []
        groups = collect_event_groups(self._cache.all())

        for event_id, markets in groups.items():
            try:
                opp = self._check_event(event_id, markets)
            except (ValueError, ArithmeticError, IndexError) as e:
                logger.warning("SKIP event %s: malformed market data: %s", event_id, e)
                continue
            if opp:
                opportunities.append(opp)

        return opportunities

    def _check_event(self, event_id: str, markets: list[Market]) -> Opportunity | None:
        group = price_group(event_id, markets, self._target_size)
        if group is None:
            return None

        net = net_profit_per_set(group, self._execution_buffer)
        if net is None:
            return None

        logger.info(
            "PRE-FLIGHT REPORT | Event: %s | sum(eff. bid): %s | buffer: %s | net: %s",
            group.display_name, group.total, self._execution_buffer, net,
        )
        logger.info("   -> Breakdown: %s", group.breakdown())

        if net <= self._min_profit:
            return None

        legs = tuple(
            OrderRequest(
                token_id=m.yes_token_id,
                price=price,
                size=self._target_size,
                side=Side.SELL,
            )
            for m, price in zip(group.markets, group.prices)
        )

        logger.info(
            "NEGRISK SHORT ARB: %s | %d outcomes | profit/set=%s",
            group.display_name, len(legs), net,
        )

        return Opportunity(
            type=OpportunityType.NEGRISK_SHORT_ARB,
            market_id=event_id,
            condition_id=group.markets[0].condition_id,
            outcome_count=len(group.markets),
            required_orders=legs,
            total_cost=ONE,  # minting one full outcome set
            estimated_profit=net,
        )
