#!/usr/bin/env python3
"""
Polymarket neg-risk arbitrage pipeline.

Two periodic tasks share one snapshot cache:
  1. Ingest: page markets from Gamma, fetch both books, refresh the cache
  2. Detect + execute: run every strategy, hand opportunities to the engine

Without PRIVATE_KEY everything runs WATCH-ONLY: orders and splits are logged,
never signed or sent.

Usage:
  python run.py                  # run until Ctrl-C
  python run.py --once           # one ingest sweep + one detect cycle, then exit
  python run.py --ingest-only    # keep the cache fresh, never detect
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from client.chain import ChainClient
from client.http import HttpClient
from client.orders import OrderGateway
from config import Config, load_config
from executor.engine import ExecutionEngine, ExecutionState
from monitor.logger import setup_logging
from pipeline.ingestor import MarketIngestor
from pipeline.orchestrator import ArbitrageOrchestrator
from pipeline.rate_limiter import TokenBucket
from pipeline.scheduler import PeriodicTask
from scanner.cross_market import CrossMarketNegRiskStrategy
from scanner.detector import Detector
from scanner.market_cache import MarketSnapshotCache
from scanner.mirror import BinaryMirrorStrategy
from scanner.negrisk import NegRiskShortStrategy

logger = logging.getLogger(__name__)

_BANNER = r"""
 _   _            ____  _     _            _         _
| \ | | ___  __ _|  _ \(_)___| | __       / \   _ __| |__
|  \| |/ _ \/ _` | |_) | / __| |/ /_____ / _ \ | '__| '_ \
| |\  |  __/ (_| |  _ <| \__ \   <_____/ ___ \| |  | |_) |
|_| \_|\___|\__, |_| \_\_|___/_|\_\   /_/   \_\_|  |_.__/
            |___/                 Polymarket pipeline v0.1
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Polymarket neg-risk arbitrage pipeline")
    parser.add_argument("--once", action="store_true", help="Run one ingest sweep and one detect cycle, then exit")
    parser.add_argument("--ingest-only", action="store_true", help="Only refresh the market cache, never detect or execute")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    return parser.parse_args(argv)


def _mode_label(cfg: Config) -> str:
    if cfg.watch_only:
        return "WATCH-ONLY (no private key, nothing signed or sent)"
    return "LIVE TRADING"


def _print_startup(cfg: Config) -> None:
    logger.info("  Mode: %s", _mode_label(cfg))
    logger.info("  Gamma: %s | CLOB: %s", cfg.gamma_host, cfg.clob_host)
    logger.info(
        "  Ingest every %.0fs (max %d markets, %.0f/s) | Scan every %.0fs",
        cfg.ingest_interval_sec, cfg.max_markets_per_sweep,
        cfg.ingest_rate_per_sec, cfg.scan_interval_sec,
    )
    logger.info(
        "  Target size %s | buffer %s | min profit %s | cross-market %s",
        cfg.negrisk_target_size, cfg.execution_buffer, cfg.min_profit_threshold,
        "on" if cfg.cross_market_enabled else "off",
    )
    if not cfg.watch_only and cfg.negrisk_target_size != 1:
        # split mints total_cost (1 USDC) of sets; legs sell target_size each
        logger.warning(
            "  Neg-risk legs sell %s tokens but each split mints 1 set; "
            "sells beyond the minted set draw on existing inventory",
            cfg.negrisk_target_size,
        )


def build_detectors(
    cfg: Config,
    cache: MarketSnapshotCache,
    chain: ChainClient,
    orders: OrderGateway,
) -> list[Detector]:
    detectors: list[Detector] = [
        NegRiskShortStrategy(
            cache,
            target_size=cfg.negrisk_target_size,
            execution_buffer=cfg.execution_buffer,
            min_profit=cfg.min_profit_threshold,
        ),
        BinaryMirrorStrategy(cache, min_profit=cfg.min_profit_threshold),
    ]
    if cfg.cross_market_enabled:
        detectors.append(CrossMarketNegRiskStrategy(
            cache,
            chain,
            orders,
            target_size=cfg.negrisk_target_size,
            execution_buffer=cfg.execution_buffer,
            min_profit=cfg.min_profit_threshold,
            max_size=cfg.cross_market_max_size,
            min_size=cfg.cross_market_min_size,
        ))
    return detectors


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()

    log_file_path = setup_logging(cfg.log_level, json_log_file=args.json_log)
    logger.info(_BANNER.strip("\n"))
    logger.info("  Log file: %s", log_file_path)
    _print_startup(cfg)

    stop_event = threading.Event()

    cache = MarketSnapshotCache()
    http = HttpClient(
        TokenBucket(cfg.http_rate_per_sec, cfg.http_burst),
        timeout=cfg.http_timeout_sec,
        max_retries=cfg.http_max_retries,
        backoff_sec=cfg.http_backoff_sec,
    )
    ingestor = MarketIngestor(
        cache,
        http,
        TokenBucket(cfg.ingest_rate_per_sec, cfg.ingest_burst),
        gamma_host=cfg.gamma_host,
        clob_host=cfg.clob_host,
        page_size=cfg.market_page_size,
        max_markets=cfg.max_markets_per_sweep,
        prefilter_min_price_sum=cfg.prefilter_min_price_sum,
        max_workers=cfg.ingest_max_workers,
        stale_after_sec=cfg.market_stale_after_sec,
        stop_event=stop_event,
    )

    chain = ChainClient(
        cfg.polygon_rpc_url,
        private_key=cfg.private_key,
        chain_id=cfg.chain_id,
        adapter_address=cfg.negrisk_adapter_address,
        collateral_address=cfg.collateral_token_address,
        gas_price_gwei=cfg.split_gas_price_gwei,
        gas_limit=cfg.split_gas_limit,
    )
    orders = OrderGateway(cfg)
    engine = ExecutionEngine(
        chain,
        orders,
        unwind_concession=cfg.unwind_price_concession,
        max_records=cfg.max_execution_records,
    )
    orchestrator = ArbitrageOrchestrator(build_detectors(cfg, cache, chain, orders), engine)

    tasks = [PeriodicTask("ingest", cfg.ingest_interval_sec, ingestor.run_sweep, stop_event)]
    if not args.ingest_only:
        tasks.append(PeriodicTask("detect", cfg.scan_interval_sec, orchestrator.run_cycle, stop_event))

    if args.once:
        for task in tasks:
            task.run_once()
        http.close()
        failures = sum(t.failures for t in tasks)
        return 1 if failures else 0

    def handle_signal(signum, frame):
        if not stop_event.is_set():
            logger.info("Signal %d received, shutting down...", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    for task in tasks:
        task.start()
    logger.info("Pipeline running. Press Ctrl-C to stop.")

    # Main thread only waits; the signal handler sets the event.
    while not stop_event.wait(1.0):
        pass

    for task in tasks:
        task.join(timeout=max(cfg.http_timeout_sec, 5.0))
    http.close()

    completed = sum(1 for r in engine.records() if r.state == ExecutionState.COMPLETED)
    logger.info(
        "Stopped. %d executions recorded (%d completed). Cache size: %d",
        len(engine.records()), completed, len(cache),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
