"""
Unit tests for run.py -- CLI flags, detector wiring, one-shot mode.
"""

import logging
from decimal import Decimal
from unittest.mock import MagicMock, patch

from config import Config
from run import _print_startup, build_detectors, main, parse_args
from scanner.cross_market import CrossMarketNegRiskStrategy
from scanner.market_cache import MarketSnapshotCache
from scanner.mirror import BinaryMirrorStrategy
from scanner.negrisk import NegRiskShortStrategy


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert not args.once
        assert not args.ingest_only
        assert args.json_log is None

    def test_flags(self):
        args = parse_args(["--once", "--ingest-only", "--json-log", "out.ndjson"])
        assert args.once and args.ingest_only
        assert args.json_log == "out.ndjson"


class TestBuildDetectors:
    def test_all_strategies(self):
        cfg = Config(_env_file=None)
        detectors = build_detectors(cfg, MarketSnapshotCache(), MagicMock(), MagicMock())
        assert [type(d) for d in detectors] == [
            NegRiskShortStrategy, BinaryMirrorStrategy, CrossMarketNegRiskStrategy,
        ]

    def test_cross_market_disabled(self):
        cfg = Config(_env_file=None, cross_market_enabled=False)
        detectors = build_detectors(cfg, MarketSnapshotCache(), MagicMock(), MagicMock())
        assert len(detectors) == 2


class TestStartup:
    def test_live_mode_warns_when_legs_exceed_minted_set(self, caplog):
        cfg = Config(_env_file=None, private_key="0xabc")
        with caplog.at_level(logging.WARNING, logger="run"):
            _print_startup(cfg)
        assert "each split mints 1 set" in caplog.text

    def test_no_warning_in_watch_only_or_unit_size(self, caplog):
        with caplog.at_level(logging.WARNING, logger="run"):
            _print_startup(Config(_env_file=None, private_key=""))
            _print_startup(Config(_env_file=None, private_key="0xabc", negrisk_target_size=Decimal("1")))
        assert "each split mints 1 set" not in caplog.text


class TestMainOnce:
    def _run(self, argv, sweep_error=None):
        with patch("run.load_config", return_value=Config(_env_file=None, private_key="")), \
                patch("run.setup_logging", return_value="test.log"), \
                patch("run.MarketIngestor") as ingestor_cls, \
                patch("run.ArbitrageOrchestrator") as orch_cls, \
                patch("run.ChainClient"), \
                patch("run.OrderGateway"):
            if sweep_error:
                ingestor_cls.return_value.run_sweep.side_effect = sweep_error
            code = main(argv)
        return code, ingestor_cls.return_value, orch_cls.return_value

    def test_once_runs_each_task_once(self):
        code, ingestor, orch = self._run(["--once"])
        assert code == 0
        ingestor.run_sweep.assert_called_once()
        orch.run_cycle.assert_called_once()

    def test_ingest_only_skips_detection(self):
        code, ingestor, orch = self._run(["--once", "--ingest-only"])
        assert code == 0
        ingestor.run_sweep.assert_called_once()
        orch.run_cycle.assert_not_called()

    def test_failed_sweep_gives_nonzero_exit(self):
        code, _, orch = self._run(["--once"], sweep_error=RuntimeError("gamma down"))
        assert code == 1
        orch.run_cycle.assert_called_once()
