"""
Execution engine. Drives one opportunity through the split-and-sell state
machine and keeps a record of every run for post-mortem inspection.

  PRE_FLIGHT -> ON_CHAIN_SPLIT -> MULTI_TOKEN_SELL -> COMPLETED | FAILED

Opportunities that cannot be executed here end in SKIPPED at PRE_FLIGHT.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from client.chain import ChainClient
from client.orders import OrderGateway
from scanner.depth import round_price
from scanner.models import Opportunity, OpportunityType, OrderRequest, Side

logger = logging.getLogger(__name__)

# Only these types carry a split + sell plan the engine knows how to run.
_SPLIT_TYPES = {OpportunityType.NEGRISK_SHORT_ARB}


class ExecutionState(Enum):
    PRE_FLIGHT = "PRE_FLIGHT"
    ON_CHAIN_SPLIT = "ON_CHAIN_SPLIT"
    MULTI_TOKEN_SELL = "MULTI_TOKEN_SELL"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class UnwindAttempt:
    leg: OrderRequest
    fallback_price: Decimal
    succeeded: bool


@dataclass
class ExecutionRecord:
    opportunity: Opportunity
    state: ExecutionState = ExecutionState.PRE_FLIGHT
    last_phase: ExecutionState = ExecutionState.PRE_FLIGHT
    unhedged_legs: list[OrderRequest] = field(default_factory=list)
    unwind_attempts: list[UnwindAttempt] = field(default_factory=list)
    tx_hash: str | None = None
    error: str = ""
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    def _enter(self, phase: ExecutionState) -> None:
        self.state = phase
        self.last_phase = phase

    def _finish(self, state: ExecutionState, error: str = "") -> None:
        self.state = state
        if error:
            self.error = error
        self.finished_at = time.time()


def fallback_price(leg: OrderRequest, concession: Decimal) -> Decimal:
    """Price one concession step worse for us: SELL lower, BUY higher."""
    if leg.side == Side.SELL:
        return round_price(leg.price * (Decimal("1") - concession))
    return round_price(leg.price * (Decimal("1") + concession))


class ExecutionEngine:
    def __init__(
        self,
        chain: ChainClient,
        orders: OrderGateway,
        unwind_concession: Decimal = Decimal("0.01"),
        max_records: int = 1000,
    ) -> None:
        if max_records < 1:
            raise ValueError(f"max_records must be >= 1, got {max_records}")
        self._chain = chain
        self._orders = orders
        self._unwind_concession = unwind_concession
        self._max_records = max_records
        # oldest first; trimmed to max_records on every insert
        self._records: OrderedDict[str, ExecutionRecord] = OrderedDict()
        self._lock = threading.Lock()

    def execute(self, opportunity: Opportunity) -> ExecutionRecord:
        """
        Run one opportunity to a terminal state. Never raises: any phase error
        ends the record in FAILED with the phase and message kept.
        """
        record = ExecutionRecord(opportunity=opportunity)
        with self._lock:
            self._records[opportunity.id] = record
            while len(self._records) > self._max_records:
                self._records.popitem(last=False)

        logger.info(
            "Starting execution for %s (%s, %d legs)",
            opportunity.id, opportunity.type.value, len(opportunity.required_orders),
        )
        try:
            self._run(record)
        except Exception as e:
            logger.error(
                "Execution %s FAILED during %s: %s",
                opportunity.id, record.last_phase.value, e,
            )
            record._finish(ExecutionState.FAILED, error=str(e))

        logger.info("Execution %s finished: %s", opportunity.id, record.state.value)
        return record

    def _run(self, record: ExecutionRecord) -> None:
        opp = record.opportunity

        # Prices are not re-verified; the detector's snapshot is trusted.
        record._enter(ExecutionState.PRE_FLIGHT)
        if not opp.is_executable:
            reason = "already executed inline" if opp.executed_inline else "no order legs"
            logger.info("SKIP execution %s: %s", opp.id, reason)
            record._finish(ExecutionState.SKIPPED)
            return

        if opp.type in _SPLIT_TYPES:
            record._enter(ExecutionState.ON_CHAIN_SPLIT)
            record.tx_hash = self._chain.split(opp.condition_id, opp.total_cost, opp.outcome_count)

        record._enter(ExecutionState.MULTI_TOKEN_SELL)
        failed = self._submit_legs(opp.required_orders)

        if failed:
            record.unhedged_legs.extend(failed)
            self._unwind(record, failed)
            record._finish(
                ExecutionState.FAILED,
                error=f"{len(failed)} of {len(opp.required_orders)} legs failed",
            )
            return

        record._finish(ExecutionState.COMPLETED)

    def _submit_legs(self, legs: tuple[OrderRequest, ...]) -> list[OrderRequest]:
        """Submit every leg independently, returning the ones that did not go through."""
        failed: list[OrderRequest] = []
        for leg in legs:
            try:
                ok = self._orders.submit(leg)
            except Exception as e:
                logger.error("Leg %s %s raised: %s", leg.side.value, leg.token_id, e)
                ok = False
            if not ok:
                failed.append(leg)
        return failed

    def _unwind(self, record: ExecutionRecord, failed: list[OrderRequest]) -> None:
        """
        One fallback order per unhedged leg at a price concession.
        Anything still open afterwards needs manual handling.
        """
        logger.error("!!! PARTIAL FILL on %s: %d unhedged legs", record.opportunity.id, len(failed))
        logger.error("[UNHEDGED] Token ID | Size | Required Exit")
        for leg in failed:
            logger.error("[UNHEDGED] %s | %s | %s", leg.token_id, leg.size, leg.price)

        for leg in failed:
            price = fallback_price(leg, self._unwind_concession)
            retry = OrderRequest(token_id=leg.token_id, price=price, size=leg.size, side=leg.side)
            try:
                ok = self._orders.submit(retry)
            except Exception as e:
                logger.error("Fallback for %s raised: %s", leg.token_id, e)
                ok = False
            record.unwind_attempts.append(UnwindAttempt(leg=leg, fallback_price=price, succeeded=ok))
            if ok:
                logger.warning("Fallback accepted for %s at %s", leg.token_id, price)
            else:
                logger.error("Fallback rejected for %s at %s; manual exit required", leg.token_id, price)

    def get_record(self, opportunity_id: str) -> ExecutionRecord | None:
        with self._lock:
            return self._records.get(opportunity_id)

    def records(self) -> list[ExecutionRecord]:
        with self._lock:
            return list(self._records.values())
