"""
Gamma API access for market discovery. Pure REST through HttpClient.
"""

from __future__ import annotations

import json
import time
from decimal import Decimal

from client.http import HttpClient
from scanner.models import Market, OrderBook
from scanner.validation import parse_decimal


def get_markets_page(
    http: HttpClient,
    gamma_host: str,
    limit: int = 100,
    offset: int = 0,
) -> list[dict]:
    """Fetch one page of active, non-closed markets as raw dicts."""
    params = {
        "active": "true",
        "closed": "false",
        "limit": limit,
        "offset": offset,
    }
    page = http.get_json(f"{gamma_host}/markets", params)
    if not isinstance(page, list):
        return []
    return page


def parse_encoded_list(value: object) -> list | None:
    """
    clobTokenIds / outcomePrices arrive as a JSON-encoded string
    ('["123", "456"]') or, on some endpoints, as a plain list.
    Returns None when absent or unparseable.
    """
    if isinstance(value, list):
        return value
    if not isinstance(value, str) or not value or value == "null":
        return None
    try:
        decoded = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None
    return decoded if isinstance(decoded, list) else None


def outcome_price_sum(raw: dict) -> Decimal | None:
    """Sum of last-trade outcome prices, or None if missing/unparseable."""
    prices = parse_encoded_list(raw.get("outcomePrices"))
    if not prices:
        return None
    try:
        return sum((parse_decimal(p, "outcome price") for p in prices), Decimal("0"))
    except ValueError:
        return None


def token_ids(raw: dict) -> list[str]:
    ids = parse_encoded_list(raw.get("clobTokenIds") or raw.get("clob_token_ids"))
    return [str(t) for t in ids] if ids else []


def _event_id(raw: dict) -> str:
    # event_id: try top-level eventId, then events[0].id
    event_id = str(raw.get("eventId") or "")
    if not event_id:
        events_list = raw.get("events") or []
        if events_list and isinstance(events_list, list) and isinstance(events_list[0], dict):
            event_id = str(events_list[0].get("id", "") or "")
    return event_id


def _decimal_or_zero(raw: object) -> Decimal:
    try:
        return parse_decimal(raw)
    except ValueError:
        return Decimal("0")


def parse_market_record(
    raw: dict,
    yes_book: OrderBook | None = None,
    no_book: OrderBook | None = None,
    now: float | None = None,
) -> Market:
    """
    Build a Market from a raw Gamma record. Raises ValueError when the record
    is not a binary market.
    """
    ids = token_ids(raw)
    if len(ids) != 2:
        raise ValueError(f"market {raw.get('id')} has {len(ids)} outcome tokens, expected 2")

    return Market(
        market_id=str(raw.get("id", "")),
        condition_id=str(raw.get("conditionId") or raw.get("condition_id") or ""),
        event_id=_event_id(raw),
        neg_risk=bool(raw.get("negRisk", raw.get("neg_risk", False))),
        question=str(raw.get("question", "")),
        outcome_ids=(ids[0], ids[1]),
        active=bool(raw.get("active", False)),
        closed=bool(raw.get("closed", False)),
        accepting_orders=bool(raw.get("acceptingOrders", raw.get("accepting_orders", False))),
        liquidity=_decimal_or_zero(raw.get("liquidityNum", raw.get("liquidity"))),
        volume=_decimal_or_zero(raw.get("volumeNum", raw.get("volume"))),
        last_updated=now if now is not None else time.time(),
        yes_book=yes_book,
        no_book=no_book,
    )
