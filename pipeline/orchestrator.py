"""
Detect-then-execute cycle. Runs every detector against the current cache
snapshot and hands each opportunity to the execution engine in order.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from executor.engine import ExecutionEngine, ExecutionRecord
from scanner.detector import Detector
from scanner.models import Opportunity

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    cycle: int
    detectors_run: int = 0
    detectors_failed: int = 0
    opportunities: list[Opportunity] = field(default_factory=list)
    records: list[ExecutionRecord] = field(default_factory=list)
    execution_errors: int = 0
    elapsed_sec: float = 0.0

    @property
    def opportunities_found(self) -> int:
        return len(self.opportunities)


class ArbitrageOrchestrator:
    def __init__(self, detectors: list[Detector], engine: ExecutionEngine) -> None:
        self._detectors = list(detectors)
        self._engine = engine
        self._cycle = 0

    def run_cycle(self) -> CycleReport:
        self._cycle += 1
        report = CycleReport(cycle=self._cycle)
        t0 = time.time()
        logger.info("--- Heartbeat: cycle %d, %d detectors ---", self._cycle, len(self._detectors))

        for detector in self._detectors:
            report.detectors_run += 1
            try:
                found = detector.detect()
            except Exception as e:
                report.detectors_failed += 1
                logger.error("Detector %s failed: %s", detector.name, e, exc_info=True)
                continue
            if found:
                logger.info("Detector %s found %d opportunities", detector.name, len(found))
            report.opportunities.extend(found)

        for opp in report.opportunities:
            try:
                report.records.append(self._engine.execute(opp))
            except Exception as e:
                report.execution_errors += 1
                logger.error("Execution of %s raised: %s", opp.id, e, exc_info=True)

        report.elapsed_sec = time.time() - t0
        logger.info(
            "Cycle %d done: %d opportunities, %d executions in %.2fs",
            self._cycle, report.opportunities_found, len(report.records), report.elapsed_sec,
        )
        return report
