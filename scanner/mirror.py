"""
Binary mirror-arbitrage scanner.

In a binary market, buying YES is equivalent to selling NO at 1 - price,
so the cheapest way into each side is min(own ask, 1 - opposite bid).
If entering both sides costs less than 1.0, the set pays out 1.0.

Report-only: opportunities carry no order legs and are not auto-executed.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from scanner.depth import best_price
from scanner.market_cache import MarketSnapshotCache
from scanner.models import Market, Opportunity, OpportunityType, Side

logger = logging.getLogger(__name__)

ONE = Decimal("1")


def mirrored_cost(market: Market) -> Decimal | None:
    """
    Cost of one YES + one NO through the cheaper of direct or mirrored books.
    None when any of the four best prices is missing.
    """
    yes_ask = best_price(market.yes_book, Side.BUY)
    yes_bid = best_price(market.yes_book, Side.SELL)
    no_ask = best_price(market.no_book, Side.BUY)
    no_bid = best_price(market.no_book, Side.SELL)
    if yes_ask is None or yes_bid is None or no_ask is None or no_bid is None:
        return None

    effective_buy_yes = min(yes_ask, ONE - no_bid)
    effective_buy_no = min(no_ask, ONE - yes_bid)
    return effective_buy_yes + effective_buy_no


class BinaryMirrorStrategy:
    name = "binary_mirror"

    def __init__(
        self,
        cache: MarketSnapshotCache,
        min_profit: Decimal = Decimal("0.0001"),
    ) -> None:
        self._cache = cache
        self._min_profit = min_profit

    def detect(self) -> list[Opportunity]:
        markets = self._cache.all()
        logger.debug("Mirror strategy scanning %d markets", len(markets))

        opportunities: list[Opportunity] = []
        for market in markets:
            if market.neg_risk or not market.has_books:
                continue
            try:
                total_cost = mirrored_cost(market)
            except (ArithmeticError, ValueError) as e:
                logger.warning("SKIP market %s: malformed book: %s", market.market_id, e)
                continue
            if total_cost is None or total_cost >= ONE:
                continue

            profit = ONE - total_cost
            if profit <= self._min_profit:
                continue

            logger.info(
                "MIRROR ARBITRAGE FOUND: Market [%s] cost=%s profit=%s",
                market.question[:60], total_cost, profit,
            )
            opportunities.append(Opportunity(
                type=OpportunityType.SYNTHETIC_ARBITRAGE,
                market_id=market.market_id,
                condition_id=market.condition_id,
                outcome_count=2,
                total_cost=total_cost,
                estimated_profit=profit,
            ))

        return opportunities
