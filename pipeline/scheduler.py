"""
Fixed-delay periodic task on a daemon thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run fn, then wait interval_sec on the stop event, until the event is set.
    A failing run is logged and the loop carries on.
    """

    def __init__(
        self,
        name: str,
        interval_sec: float,
        fn: Callable[[], object],
        stop_event: threading.Event,
    ) -> None:
        self.name = name
        self.interval_sec = interval_sec
        self._fn = fn
        self._stop_event = stop_event
        self._thread: threading.Thread | None = None
        self.runs = 0
        self.failures = 0

    def run_once(self) -> None:
        self.runs += 1
        try:
            self._fn()
        except Exception as e:
            self.failures += 1
            logger.error("Periodic task %s failed: %s", self.name, e, exc_info=True)

    def _loop(self) -> None:
        logger.debug("Periodic task %s started (every %.1fs)", self.name, self.interval_sec)
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval_sec)
        logger.debug("Periodic task %s stopped", self.name)

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
