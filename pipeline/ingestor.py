"""
Market ingestion sweep. Pages through Gamma, then fans every market out to a
worker pool that fetches both order books and upserts the snapshot cache.

Concurrency is bounded by the token bucket, not by the pool size: each worker
takes one permit before doing any network work.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from decimal import Decimal

from client.clob import get_orderbook
from client.gamma import get_markets_page, outcome_price_sum, parse_market_record, token_ids
from client.http import HttpClient
from pipeline.rate_limiter import AcquireInterrupted, TokenBucket
from scanner.market_cache import MarketSnapshotCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepStats:
    pages: int
    seen: int
    submitted: int
    stored: int
    skipped: int
    failed: int
    evicted: int = 0
    elapsed_sec: float = 0.0


class MarketIngestor:
    def __init__(
        self,
        cache: MarketSnapshotCache,
        http: HttpClient,
        limiter: TokenBucket,
        gamma_host: str,
        clob_host: str,
        page_size: int = 100,
        max_markets: int = 1000,
        prefilter_min_price_sum: Decimal = Decimal("0.90"),
        max_workers: int = 64,
        stale_after_sec: float = 300.0,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._cache = cache
        self._http = http
        self._limiter = limiter
        self._gamma_host = gamma_host
        self._clob_host = clob_host
        self._page_size = page_size
        self._max_markets = max_markets
        self._prefilter_min = prefilter_min_price_sum
        self._max_workers = max_workers
        self._stale_after_sec = stale_after_sec
        self._stop_event = stop_event or threading.Event()

    def _fetch_all_pages(self) -> tuple[list[dict], int]:
        """
        Paginate until a short or empty page, or max_markets records.
        Any ApiRequestFailed propagates and aborts the sweep.
        """
        raw_markets: list[dict] = []
        pages = 0
        offset = 0
        while offset < self._max_markets and not self._stop_event.is_set():
            limit = min(self._page_size, self._max_markets - offset)
            page = get_markets_page(self._http, self._gamma_host, limit=limit, offset=offset)
            pages += 1
            raw_markets.extend(page)
            if len(page) < limit:
                break
            offset += limit
        return raw_markets, pages

    def run_sweep(self) -> SweepStats:
        t0 = time.time()
        raw_markets, pages = self._fetch_all_pages()
        logger.info("Fetched %d markets in %d pages", len(raw_markets), pages)

        stored = skipped = failed = submitted = 0
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {}
            for raw in raw_markets:
                futures[pool.submit(self._gated_process, raw)] = raw.get("id")
                submitted += 1
            for future in as_completed(futures):
                try:
                    ok = future.result()
                except AcquireInterrupted:
                    skipped += 1
                    continue
                except Exception as e:
                    failed += 1
                    logger.warning("Market %s failed to ingest: %s", futures[future], e)
                    continue
                if ok:
                    stored += 1
                else:
                    skipped += 1

        # markets that left the listing (closed, resolved) stop being refreshed
        evicted = self._cache.evict_older_than(t0 - self._stale_after_sec)

        elapsed = time.time() - t0
        logger.info(
            "Ingestion complete: %d stored, %d skipped, %d failed, %d evicted in %.1fs. Cache size: %d",
            stored, skipped, failed, evicted, elapsed, len(self._cache),
        )
        return SweepStats(
            pages=pages,
            seen=len(raw_markets),
            submitted=submitted,
            stored=stored,
            skipped=skipped,
            failed=failed,
            evicted=evicted,
            elapsed_sec=elapsed,
        )

    def _gated_process(self, raw: dict) -> bool:
        self._limiter.acquire(self._stop_event)
        return self.process_market(raw)

    def process_market(self, raw: dict) -> bool:
        """
        Pre-filter, fetch both books, and upsert. Returns True when stored.
        Network and parse errors propagate to the caller.
        """
        market_id = raw.get("id")
        price_sum = outcome_price_sum(raw)
        # unparseable prices fall through to the book fetch
        if price_sum is not None and price_sum < self._prefilter_min:
            logger.debug("SKIP market %s: outcome price sum %s below pre-filter", market_id, price_sum)
            return False

        ids = token_ids(raw)
        if len(ids) != 2:
            logger.debug("SKIP market %s: %d outcome tokens", market_id, len(ids))
            return False

        yes_book = get_orderbook(self._http, self._clob_host, ids[0])
        no_book = get_orderbook(self._http, self._clob_host, ids[1])
        market = parse_market_record(raw, yes_book=yes_book, no_book=no_book, now=time.time())
        self._cache.put(market)
        return True
