"""
Structured logging and Prometheus metrics tests.
"""

import json
import logging
import logging.handlers

import pytest
from prometheus_client import CollectorRegistry

from liquidguard.core.logging_config import CustomJsonFormatter, setup_logging
from liquidguard.core.metrics import HookMetrics

pytestmark = pytest.mark.unit


class TestCustomJsonFormatter:
    """JSON log records."""

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="liquidguard.core.defi.hook_engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Liquidation executed",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_adds_service_fields(self):
        formatter = CustomJsonFormatter(environment="testnet")
        payload = json.loads(formatter.format(self.make_record()))

        assert payload["message"] == "Liquidation executed"
        assert payload["environment"] == "testnet"
        assert payload["service"] == "liquidguard"
        assert payload["level"] == "info"
        assert "timestamp" in payload
        assert payload["source"]["line"] == 10

    def test_flattens_extra_fields(self):
        formatter = CustomJsonFormatter(environment="testnet")
        record = self.make_record(event="liquidation.executed", borrower="0xborrower")
        payload = json.loads(formatter.format(record))

        assert payload["event"] == "liquidation.executed"
        assert payload["borrower"] == "0xborrower"


class TestSetupLogging:
    """Logger configuration."""

    def test_console_handler(self):
        logger = setup_logging(name="liquidguard.test_console", level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, CustomJsonFormatter)

    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.json"
        logger = setup_logging(
            name="liquidguard.test_file",
            log_file=str(log_file),
            level="INFO",
            enable_console=False,
        )

        logger.info("Engine paused", extra={"event": "access_control.paused"})
        for handler in logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["event"] == "access_control.paused"
        assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(name="liquidguard.test_repeat", level="INFO")
        logger = setup_logging(name="liquidguard.test_repeat", level="INFO")
        assert len(logger.handlers) == 1

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(name="liquidguard.test_bad", level="LOUD")


class TestHookMetrics:
    """Prometheus collectors."""

    def test_private_registry_per_instance(self):
        first = HookMetrics()
        second = HookMetrics()
        first.rebalances_total.inc()
        assert first.registry.get_sample_value("liquidguard_rebalances_total") == 1.0
        assert second.registry.get_sample_value("liquidguard_rebalances_total") == 0.0

    def test_shared_registry(self):
        registry = CollectorRegistry()
        metrics = HookMetrics(registry)
        metrics.position_range_updates_total.inc(2)
        assert registry.get_sample_value("liquidguard_position_range_updates_total") == 2.0

    def test_time_hook(self):
        metrics = HookMetrics()
        with metrics.time_hook("before_swap"):
            pass
        assert metrics.registry.get_sample_value(
            "liquidguard_hook_latency_seconds_count", {"hook": "before_swap"}
        ) == 1.0

    def test_time_hook_records_on_exception(self):
        metrics = HookMetrics()
        with pytest.raises(RuntimeError):
            with metrics.time_hook("after_swap"):
                raise RuntimeError("failed")
        assert metrics.registry.get_sample_value(
            "liquidguard_hook_latency_seconds_count", {"hook": "after_swap"}
        ) == 1.0

    def test_export_text_format(self):
        metrics = HookMetrics()
        metrics.pool_volatility.labels(pool="0xpool").set(42)
        output = metrics.export().decode()
        assert 'liquidguard_pool_volatility{pool="0xpool"} 42.0' in output
