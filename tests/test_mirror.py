"""
Unit tests for scanner/mirror.py -- binary mirror arbitrage.
"""

from dataclasses import replace
from decimal import Decimal

from scanner.market_cache import MarketSnapshotCache
from scanner.mirror import BinaryMirrorStrategy, mirrored_cost
from scanner.models import Market, OpportunityType, OrderBook, PriceLevel

D = Decimal


def _book(token_id, bid, ask):
    return OrderBook(
        token_id=token_id,
        bids=(PriceLevel(D(bid), D("100")),) if bid else (),
        asks=(PriceLevel(D(ask), D("100")),) if ask else (),
    )


def _market(yes_bid, yes_ask, no_bid, no_ask, neg_risk=False):
    return Market(
        market_id="m1",
        condition_id="0xc1",
        event_id="e1",
        neg_risk=neg_risk,
        question="Will it rain?",
        outcome_ids=("y", "n"),
        active=True,
        yes_book=_book("y", yes_bid, yes_ask),
        no_book=_book("n", no_bid, no_ask),
    )


def _detect(market, min_profit="0.0001"):
    cache = MarketSnapshotCache()
    cache.put(market)
    return BinaryMirrorStrategy(cache, min_profit=D(min_profit)).detect()


class TestBinaryMirrorStrategy:
    def test_direct_books_cheaper_than_one(self):
        opps = _detect(_market(yes_bid="0.39", yes_ask="0.40", no_bid="0.49", no_ask="0.50"))
        assert len(opps) == 1
        opp = opps[0]
        assert opp.type == OpportunityType.SYNTHETIC_ARBITRAGE
        assert opp.total_cost == D("0.90")
        assert opp.estimated_profit == D("0.10")
        assert opp.required_orders == ()
        assert not opp.is_executable

    def test_mirrored_side_is_cheaper(self):
        # YES ask 0.60, but 1 - NO bid 0.55 = 0.45
        m = _market(yes_bid="0.30", yes_ask="0.60", no_bid="0.55", no_ask="0.50")
        assert mirrored_cost(m) == D("0.95")

    def test_fair_market_not_emitted(self):
        assert _detect(_market(yes_bid="0.49", yes_ask="0.51", no_bid="0.49", no_ask="0.51")) == []

    def test_missing_side_not_emitted(self):
        m = _market(yes_bid="0.39", yes_ask=None, no_bid="0.49", no_ask="0.50")
        assert mirrored_cost(m) is None
        assert _detect(m) == []

    def test_profit_must_exceed_minimum(self):
        m = _market(yes_bid="0.39", yes_ask="0.40", no_bid="0.49", no_ask="0.50")
        assert _detect(m, min_profit="0.10") == []

    def test_negrisk_markets_ignored(self):
        m = _market(yes_bid="0.39", yes_ask="0.40", no_bid="0.49", no_ask="0.50", neg_risk=True)
        assert _detect(m) == []

    def test_market_without_books_ignored(self):
        m = replace(_market("0.39", "0.40", "0.49", "0.50"), no_book=None)
        assert _detect(m) == []
