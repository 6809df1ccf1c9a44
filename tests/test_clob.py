"""
Unit tests for client/clob.py -- order book reads.
"""

from decimal import Decimal

import httpx
import pytest
import respx

from client.clob import get_orderbook, parse_levels
from client.http import HttpClient
from pipeline.rate_limiter import TokenBucket

CLOB_HOST = "https://clob.test"


class TestParseLevels:
    def test_parses_and_keeps_received_order(self):
        levels = parse_levels(
            [{"price": "0.40", "size": "10"}, {"price": "0.45", "size": "5"}], "t1", "bid"
        )
        assert [lvl.price for lvl in levels] == [Decimal("0.40"), Decimal("0.45")]

    def test_zero_size_levels_dropped(self):
        levels = parse_levels([{"price": "0.40", "size": "0"}, {"price": "0.41", "size": "2"}], "t1", "bid")
        assert len(levels) == 1
        assert levels[0].price == Decimal("0.41")

    def test_empty(self):
        assert parse_levels(None, "t1", "bid") == ()
        assert parse_levels([], "t1", "bid") == ()

    @pytest.mark.parametrize("level", [
        {"price": "1.5", "size": "1"},
        {"price": "-0.1", "size": "1"},
        {"price": "abc", "size": "1"},
        {"price": "0.5", "size": "-3"},
        {"size": "3"},
    ])
    def test_malformed_level_raises(self, level):
        with pytest.raises(ValueError):
            parse_levels([level], "t1", "ask")


class TestGetOrderbook:
    @respx.mock
    def test_fetches_book(self):
        route = respx.get(f"{CLOB_HOST}/book").mock(return_value=httpx.Response(200, json={
            "bids": [{"price": "0.48", "size": "20"}],
            "asks": [{"price": "0.52", "size": "30"}],
        }))
        http = HttpClient(TokenBucket(rate=100, burst=100))
        book = get_orderbook(http, CLOB_HOST, "tok")
        assert route.calls.last.request.url.params["token_id"] == "tok"
        assert book.token_id == "tok"
        assert book.best_bid.price == Decimal("0.48")
        assert book.best_ask.size == Decimal("30")

    @respx.mock
    def test_non_object_payload_raises(self):
        respx.get(f"{CLOB_HOST}/book").mock(return_value=httpx.Response(200, json=[]))
        http = HttpClient(TokenBucket(rate=100, burst=100))
        with pytest.raises(ValueError):
            get_orderbook(http, CLOB_HOST, "tok")
