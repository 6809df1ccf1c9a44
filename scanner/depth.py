"""
Order book depth analysis. Walks levels to find the size-weighted price
a target size would actually fill at, instead of trusting the top of book.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from scanner.models import OrderBook, PriceLevel, Side

PRICE_QUANTUM = Decimal("0.0001")


def round_price(value: Decimal) -> Decimal:
    """Round to 4 decimal places, half-up."""
    return value.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def _levels_best_first(book: OrderBook, side: Side) -> list[PriceLevel]:
    # SELL hits bids (highest first), BUY lifts asks (lowest first)
    return book.sorted_bids() if side == Side.SELL else book.sorted_asks()


def effective_price(book: OrderBook | None, side: Side, target_size: Decimal) -> Decimal | None:
    """
    Size-weighted fill price for target_size, walking the book from the best level.
    Returns total notional / target_size rounded half-up to 4 dp, or None if the
    book is missing, empty, or too thin to fill the whole size.
    """
    if book is None or target_size <= 0:
        return None
    levels = _levels_best_first(book, side)
    if not levels:
        return None

    remaining = target_size
    notional = Decimal("0")
    for level in levels:
        fill = min(remaining, level.size)
        notional += fill * level.price
        remaining -= fill
        if remaining <= 0:
            break

    if remaining > 0:
        return None  # insufficient depth, never a partial average

    return round_price(notional / target_size)


def best_price(book: OrderBook | None, side: Side) -> Decimal | None:
    """Best bid (SELL) or best ask (BUY) price, None if that side is empty."""
    if book is None:
        return None
    level = book.best_bid if side == Side.SELL else book.best_ask
    return level.price if level else None


def best_size(book: OrderBook | None, side: Side) -> Decimal:
    """Size resting at the best level. Zero when the side is empty."""
    if book is None:
        return Decimal("0")
    level = book.best_bid if side == Side.SELL else book.best_ask
    return level.size if level else Decimal("0")
