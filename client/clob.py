"""
CLOB REST order book reads. Converts venue JSON into our OrderBook model.
"""

from __future__ import annotations

from scanner.models import OrderBook, PriceLevel
from scanner.validation import parse_decimal, validate_price, validate_size

from client.http import HttpClient


def parse_levels(raw_levels: object, token_id: str, label: str) -> tuple[PriceLevel, ...]:
    """
    Parse [{"price": "0.52", "size": "100"}, ...]. Zero-size levels are dropped.
    Order is preserved as received -- consumers sort.
    Raises ValueError on malformed levels.
    """
    if not raw_levels:
        return ()
    if not isinstance(raw_levels, list):
        raise ValueError(f"{label} for {token_id} is not a list")
    levels = []
    for lvl in raw_levels:
        price = validate_price(
            parse_decimal(lvl.get("price"), f"{label} price ({token_id})"),
            context=f"{label} price ({token_id})",
        )
        size = validate_size(
            parse_decimal(lvl.get("size", "0"), f"{label} size ({token_id})"),
            context=f"{label} size ({token_id})",
        )
        if size > 0:
            levels.append(PriceLevel(price=price, size=size))
    return tuple(levels)


def get_orderbook(http: HttpClient, clob_host: str, token_id: str) -> OrderBook:
    """Fetch the full order book for one outcome token."""
    raw = http.get_json(f"{clob_host}/book", {"token_id": token_id})
    if not isinstance(raw, dict):
        raise ValueError(f"unexpected book payload for {token_id}: {type(raw).__name__}")
    return OrderBook(
        token_id=token_id,
        bids=parse_levels(raw.get("bids"), token_id, "bid"),
        asks=parse_levels(raw.get("asks"), token_id, "ask"),
    )
