"""
Detector protocol. Every strategy the orchestrator runs satisfies it; there is
no base class, only the shared shape.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scanner.models import Opportunity


@runtime_checkable
class Detector(Protocol):
    """
    A strategy that reads the snapshot cache and reports opportunities.

    detect() recomputes from the cache on every call, keeps no state between
    calls, and skips malformed markets instead of raising.
    """

    @property
    def name(self) -> str:
        """Short identifier used in logs."""
        ...

    def detect(self) -> list[Opportunity]:
        ...
