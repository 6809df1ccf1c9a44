"""
Unit tests for executor/engine.py -- split-and-sell state machine and unwind.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from client.chain import ChainClient, SplitFailed
from client.orders import OrderGateway
from executor.engine import ExecutionEngine, ExecutionState, fallback_price
from scanner.models import Opportunity, OpportunityType, OrderRequest, Side

D = Decimal


def _leg(token_id, price="0.40", side=Side.SELL):
    return OrderRequest(token_id=token_id, price=D(price), size=D("10"), side=side)


def _opp(legs=None, type=OpportunityType.NEGRISK_SHORT_ARB, **kwargs):
    legs = legs if legs is not None else (_leg("y1"), _leg("y2"))
    return Opportunity(
        type=type,
        market_id="e1",
        condition_id="0xcond",
        outcome_count=len(legs),
        required_orders=tuple(legs),
        total_cost=D("1"),
        estimated_profit=D("0.198"),
        **kwargs,
    )


def _engine():
    chain = MagicMock(spec=ChainClient)
    chain.split.return_value = "0xtx"
    orders = MagicMock(spec=OrderGateway)
    orders.submit.return_value = True
    return ExecutionEngine(chain, orders, unwind_concession=D("0.01")), chain, orders


class TestExecute:
    def test_all_legs_succeed(self):
        engine, chain, orders = _engine()
        record = engine.execute(_opp())
        assert record.state == ExecutionState.COMPLETED
        assert record.last_phase == ExecutionState.MULTI_TOKEN_SELL
        assert record.tx_hash == "0xtx"
        assert record.unhedged_legs == []
        assert record.finished_at is not None
        chain.split.assert_called_once_with("0xcond", D("1"), 2)
        assert orders.submit.call_count == 2

    def test_second_leg_fails_unwinds_once(self):
        engine, _, orders = _engine()
        # leg 1 ok, leg 2 rejected, fallback for leg 2 rejected
        orders.submit.side_effect = [True, False, False]
        record = engine.execute(_opp())

        assert record.state == ExecutionState.FAILED
        assert [leg.token_id for leg in record.unhedged_legs] == ["y2"]
        assert len(record.unwind_attempts) == 1
        attempt = record.unwind_attempts[0]
        assert attempt.leg.token_id == "y2"
        assert attempt.fallback_price == D("0.3960")
        assert attempt.succeeded is False
        assert orders.submit.call_count == 3
        fallback = orders.submit.call_args_list[2].args[0]
        assert fallback.price == D("0.3960")
        assert fallback.side == Side.SELL

    def test_successful_fallback_still_failed(self):
        engine, _, orders = _engine()
        orders.submit.side_effect = [False, True, True]
        record = engine.execute(_opp())
        assert record.state == ExecutionState.FAILED
        assert record.unwind_attempts[0].succeeded is True

    def test_raising_leg_counts_as_failed(self):
        engine, _, orders = _engine()
        orders.submit.side_effect = [RuntimeError("network"), True, True]
        record = engine.execute(_opp())
        assert record.state == ExecutionState.FAILED
        assert [leg.token_id for leg in record.unhedged_legs] == ["y1"]

    def test_split_failure_stops_before_orders(self):
        engine, chain, orders = _engine()
        chain.split.side_effect = SplitFailed("reverted")
        record = engine.execute(_opp())
        assert record.state == ExecutionState.FAILED
        assert record.last_phase == ExecutionState.ON_CHAIN_SPLIT
        assert "reverted" in record.error
        orders.submit.assert_not_called()

    def test_synthetic_report_only_is_skipped(self):
        engine, chain, orders = _engine()
        opp = _opp(legs=(), type=OpportunityType.SYNTHETIC_ARBITRAGE)
        record = engine.execute(opp)
        assert record.state == ExecutionState.SKIPPED
        assert record.last_phase == ExecutionState.PRE_FLIGHT
        chain.split.assert_not_called()
        orders.submit.assert_not_called()

    def test_inline_executed_is_skipped(self):
        engine, chain, orders = _engine()
        record = engine.execute(_opp(executed_inline=True))
        assert record.state == ExecutionState.SKIPPED
        chain.split.assert_not_called()

    def test_non_split_type_sells_without_split(self):
        engine, chain, orders = _engine()
        record = engine.execute(_opp(type=OpportunityType.SPREAD_ARBITRAGE))
        assert record.state == ExecutionState.COMPLETED
        assert record.tx_hash is None
        chain.split.assert_not_called()

    def test_watch_only_split_returns_no_hash(self):
        engine, chain, _ = _engine()
        chain.split.return_value = None
        record = engine.execute(_opp())
        assert record.state == ExecutionState.COMPLETED
        assert record.tx_hash is None


class TestRecords:
    def test_get_record_and_records(self):
        engine, _, _ = _engine()
        a, b = _opp(), _opp()
        engine.execute(a)
        engine.execute(b)
        assert engine.get_record(a.id).opportunity is a
        assert engine.get_record("missing") is None
        assert len(engine.records()) == 2

    def test_store_is_capped_oldest_first(self):
        chain = MagicMock(spec=ChainClient)
        orders = MagicMock(spec=OrderGateway)
        orders.submit.return_value = True
        engine = ExecutionEngine(chain, orders, max_records=3)
        opps = [_opp() for _ in range(5)]
        for opp in opps:
            engine.execute(opp)
        assert len(engine.records()) == 3
        assert engine.get_record(opps[0].id) is None
        assert engine.get_record(opps[1].id) is None
        assert engine.get_record(opps[-1].id).state == ExecutionState.COMPLETED
        assert [r.opportunity.id for r in engine.records()] == [o.id for o in opps[2:]]

    def test_repeated_report_only_detections_stay_bounded(self):
        engine = ExecutionEngine(MagicMock(spec=ChainClient), MagicMock(spec=OrderGateway), max_records=10)
        last = None
        for _ in range(500):
            last = _opp(legs=(), type=OpportunityType.SYNTHETIC_ARBITRAGE)
            engine.execute(last)
        assert len(engine.records()) == 10
        assert engine.get_record(last.id).state == ExecutionState.SKIPPED

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ExecutionEngine(MagicMock(spec=ChainClient), MagicMock(spec=OrderGateway), max_records=0)


class TestFallbackPrice:
    @pytest.mark.parametrize("side,price,expected", [
        (Side.SELL, "0.40", "0.3960"),
        (Side.SELL, "0.555", "0.5495"),
        (Side.BUY, "0.40", "0.4040"),
        (Side.BUY, "0.3333", "0.3366"),
    ])
    def test_one_percent_concession(self, side, price, expected):
        assert fallback_price(_leg("t", price=price, side=side), D("0.01")) == D(expected)
