"""
Data models for the arbitrage pipeline. Pure data, no behavior.
Prices and sizes are Decimals so depth-weighted pricing stays exact.
"""

from __future__ import annotations

import time
import uuid
from decimal import Decimal
from enum import Enum
from dataclasses import dataclass, field


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


class OpportunityType(Enum):
    SYNTHETIC_ARBITRAGE = "synthetic_arbitrage"  # YES + NO < 1 via mirrored books
    NEGRISK_SHORT_ARB = "negrisk_short_arb"      # sum(YES bids) > 1, split then sell
    SPREAD_ARBITRAGE = "spread_arbitrage"        # cross market, no strategy emits it yet


@dataclass(frozen=True)
class PriceLevel:
    price: Decimal
    size: Decimal


@dataclass(frozen=True)
class OrderBook:
    """
    One token's resting orders. The venue does not guarantee level order,
    so every accessor sorts or selects by price instead of trusting index 0.
    """
    token_id: str
    bids: tuple[PriceLevel, ...] = ()
    asks: tuple[PriceLevel, ...] = ()

    def sorted_bids(self) -> list[PriceLevel]:
        """Bids best-first (price descending)."""
        return sorted(self.bids, key=lambda lvl: lvl.price, reverse=True)

    def sorted_asks(self) -> list[PriceLevel]:
        """Asks best-first (price ascending)."""
        return sorted(self.asks, key=lambda lvl: lvl.price)

    @property
    def best_bid(self) -> PriceLevel | None:
        return max(self.bids, key=lambda lvl: lvl.price) if self.bids else None

    @property
    def best_ask(self) -> PriceLevel | None:
        return min(self.asks, key=lambda lvl: lvl.price) if self.asks else None


@dataclass(frozen=True)
class Market:
    market_id: str
    condition_id: str
    event_id: str
    neg_risk: bool
    question: str
    outcome_ids: tuple[str, ...]  # (YES, NO)
    active: bool
    closed: bool = False
    accepting_orders: bool = True
    liquidity: Decimal = Decimal("0")
    volume: Decimal = Decimal("0")
    last_updated: float = field(default_factory=time.time)
    yes_book: OrderBook | None = None
    no_book: OrderBook | None = None

    @property
    def yes_token_id(self) -> str:
        return self.outcome_ids[0]

    @property
    def no_token_id(self) -> str:
        return self.outcome_ids[1]

    @property
    def has_books(self) -> bool:
        return self.yes_book is not None and self.no_book is not None

    @property
    def is_tradeable(self) -> bool:
        return self.active and not self.closed and self.accepting_orders


@dataclass(frozen=True)
class OrderRequest:
    token_id: str
    price: Decimal
    size: Decimal
    side: Side


def new_opportunity_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Opportunity:
    type: OpportunityType
    market_id: str  # market id, or event id for grouped outcomes
    total_cost: Decimal
    estimated_profit: Decimal
    condition_id: str = ""  # required for the on-chain split
    outcome_count: int = 0  # required for the split partition
    required_orders: tuple[OrderRequest, ...] = ()
    executed_inline: bool = False  # detector already traded it
    id: str = field(default_factory=new_opportunity_id)
    detected_at: float = field(default_factory=time.time)

    @property
    def is_executable(self) -> bool:
        """True if the engine has legs to work and nobody traded it yet."""
        return len(self.required_orders) > 0 and not self.executed_inline


class PositionSide(Enum):
    YES = "YES"
    NO = "NO"


@dataclass(frozen=True)
class Position:
    """Held balance of one outcome token. Not tracked by the pipeline itself."""
    market_id: str
    outcome_id: str
    side: PositionSide
    balance: Decimal
    average_price: Decimal
