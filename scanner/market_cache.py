"""
Latest-snapshot market store shared by the ingestor (writer) and the
detectors (readers).

Thread-safe via threading.Lock. Records are replaced whole, never patched,
so readers always see a complete Market.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from scanner.models import Market

logger = logging.getLogger(__name__)


@dataclass
class MarketSnapshotCache:
    """
    market_id -> latest Market. Last writer wins, no versioning.
    """
    _markets: dict[str, Market] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def put(self, market: Market) -> None:
        """Upsert a market by market_id."""
        with self._lock:
            self._markets[market.market_id] = market

    def get(self, market_id: str) -> Market | None:
        """Return the cached market or None if not cached."""
        with self._lock:
            return self._markets.get(market_id)

    def all(self) -> tuple[Market, ...]:
        """
        Point-in-time copy of every cached market.
        Values may change after this returns; callers hold a consistent snapshot.
        """
        with self._lock:
            return tuple(self._markets.values())

    def by_event(self, event_id: str) -> list[Market]:
        """Cached markets belonging to one event."""
        return [m for m in self.all() if m.event_id == event_id]

    def evict_older_than(self, cutoff: float) -> int:
        """
        Drop markets whose last_updated is before cutoff (epoch seconds).
        Returns the number evicted.
        """
        with self._lock:
            stale = [mid for mid, m in self._markets.items() if m.last_updated < cutoff]
            for mid in stale:
                del self._markets[mid]
        if stale:
            logger.debug("Evicted %d stale markets from snapshot cache", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._markets.clear()
        logger.debug("Market snapshot cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._markets)
