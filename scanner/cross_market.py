"""
Cross-market neg-risk variant: same trigger as the short-arb scanner, but
sized to the thinnest top-of-book and traded on the spot (split, then sell
every member at its best bid). Emitted opportunities are marked
executed_inline so the engine does not trade them a second time.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from client.chain import ChainClient
from client.orders import OrderGateway
from scanner.depth import best_price, best_size
from scanner.market_cache import MarketSnapshotCache
from scanner.models import Opportunity, OpportunityType, OrderRequest, Side
from scanner.negrisk import PricedGroup, collect_event_groups, net_profit_per_set, price_group

logger = logging.getLogger(__name__)


class CrossMarketNegRiskStrategy:
    name = "cross_market_negrisk"

    def __init__(
        self,
        cache: MarketSnapshotCache,
        chain: ChainClient,
        orders: OrderGateway,
        target_size: Decimal = Decimal("10"),
        execution_buffer: Decimal = Decimal("0.002"),
        min_profit: Decimal = Decimal("0.0001"),
        max_size: Decimal = Decimal("10"),
        min_size: Decimal = Decimal("1"),
    ) -> None:
        self._cache = cache
        self._chain = chain
        self._orders = orders
        self._target_size = target_size
        self._execution_buffer = execution_buffer
        self._min_profit = min_profit
        self._max_size = max_size
        self._min_size = min_size

    def detect(self) -> list[Opportunity]:
        opportunities: list[Opportunity] = []
        for event_id, markets in collect_event_groups(self._cache.all()).items():
            try:
                group = price_group(event_id, markets, self._target_size)
                if group is None:
                    continue
                net = net_profit_per_set(group, self._execution_buffer)
                if net is None or net <= self._min_profit:
                    continue
                opp = self._execute_group(group, net)
            except Exception as e:
                logger.error("Cross-market execution failed for event %s: %s", event_id, e)
                continue
            if opp:
                opportunities.append(opp)
        return opportunities

    def safe_size(self, group: PricedGroup) -> Decimal:
        """Thinnest best-bid size across the group, capped at max_size."""
        thinnest = min(best_size(m.yes_book, Side.SELL) for m in group.markets)
        return min(thinnest, self._max_size)

    def _execute_group(self, group: PricedGroup, net: Decimal) -> Opportunity | None:
        size = self.safe_size(group)
        if size < self._min_size:
            logger.debug("SKIP event %s: top-of-book too thin (%s)", group.event_id, size)
            return None

        condition_id = group.markets[0].condition_id
        logger.info(
            "CROSS-MARKET ARB: %s | %d outcomes | size=%s | net/unit=%s",
            group.display_name, len(group.markets), size, net,
        )

        self._chain.split(condition_id, size, len(group.markets))

        legs: list[OrderRequest] = []
        for m in group.markets:
            leg = OrderRequest(
                token_id=m.yes_token_id,
                price=best_price(m.yes_book, Side.SELL),
                size=size,
                side=Side.SELL,
            )
            if not self._orders.submit(leg):
                logger.error(
                    "[UNHEDGED] %s | %s | %s (cross-market leg rejected)",
                    leg.token_id, leg.size, leg.price,
                )
            legs.append(leg)

        return Opportunity(
            type=OpportunityType.NEGRISK_SHORT_ARB,
            market_id=group.event_id,
            condition_id=condition_id,
            outcome_count=len(group.markets),
            required_orders=tuple(legs),
            total_cost=size,
            estimated_profit=net * size,
            executed_inline=True,
        )
