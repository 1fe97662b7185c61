"""Tests for process-wide setup (setup.py) and decorators (decorators.py)."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from src.reporting import setup
from src.reporting.config import ReportingConfig
from src.reporting.decorators import capture_errors, traced
from src.reporting.hook import active_hook
from src.reporting.types import DeliveryResult


class TestInitReporting:
    def test_not_configured(self, clean_env):
        assert setup.init_reporting() is None
        assert setup.get_client() is None

    def test_from_env(self, clean_env, dsn):
        clean_env.setenv("SENTRY_DSN", dsn)

        client = setup.init_reporting()

        assert client is not None
        assert setup.get_client() is client
        assert sys.excepthook is active_hook()

    def test_without_hook(self, config):
        original = sys.excepthook

        client = setup.init_reporting(config, install_hook=False)

        assert client is setup.get_client()
        assert sys.excepthook is original

    def test_invalid_dsn_returns_none(self):
        assert setup.init_reporting(ReportingConfig(dsn="not-a-dsn")) is None
        assert setup.get_client() is None

    def test_invalid_env_returns_none(self, clean_env):
        clean_env.setenv("SENTRY_TRACES_SAMPLE_RATE", "lots")
        assert setup.init_reporting() is None

    def test_same_config_reuses_client(self, config):
        first = setup.init_reporting(config)
        second = setup.init_reporting(config)
        assert first is second

    def test_new_config_replaces_client(self, config, dsn):
        first = setup.init_reporting(config)
        second = setup.init_reporting(ReportingConfig(dsn=dsn))
        assert first is not second
        assert setup.get_client() is second

    def test_shutdown(self, config):
        original = sys.excepthook
        setup.init_reporting(config)

        setup.shutdown_reporting()

        assert setup.get_client() is None
        assert sys.excepthook is original


class TestCaptureException:
    def test_without_client(self):
        assert setup.capture_exception(ValueError("x")) is None

    def test_returns_event_id(self, config, client, collector):
        with patch.object(setup, "_client", client):
            event_id = setup.capture_exception(ValueError("x"), extra={"k": "v"})

        assert event_id
        assert collector.envelope().get_event()["extra"] == {"k": "v"}

    def test_failure_returns_none(self):
        failing = MagicMock()
        failing.capture_exception.return_value = DeliveryResult.failure("down")
        with patch.object(setup, "_client", failing):
            assert setup.capture_exception(ValueError("x")) is None


class TestCaptureErrors:
    def test_captures_and_reraises(self, client, collector):
        @capture_errors(step_name="import_orders", extra={"batch": 3})
        def import_orders(path, dry_run=False):
            raise IOError("file vanished")

        with patch.object(setup, "_client", client):
            with pytest.raises(IOError, match="file vanished"):
                import_orders("orders.csv", dry_run=True)

        event = collector.envelope().get_event()
        assert event["extra"]["step"] == "import_orders"
        assert event["extra"]["args_count"] == 1
        assert event["extra"]["kwargs_keys"] == ["dry_run"]
        assert event["extra"]["batch"] == 3

    def test_swallow_when_reraise_false(self, client, collector):
        @capture_errors(reraise=False)
        def flaky():
            raise ValueError("flaky")

        with patch.object(setup, "_client", client):
            assert flaky() is None

        assert len(collector.requests) == 1

    def test_passes_through_result(self):
        @capture_errors()
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"


class TestTraced:
    def test_without_client_just_calls(self):
        @traced()
        def work():
            return "done"

        assert work() == "done"

    def test_sends_sampled_transaction(self, dsn, session, collector):
        from src.reporting.client import ReportingClient

        client = ReportingClient(ReportingConfig(dsn=dsn, traces_sample_rate=1.0), session=session)

        @traced(name="rebuild-index", op="task")
        def rebuild():
            return 42

        with patch.object(setup, "_client", client):
            assert rebuild() == 42

        payload = collector.envelope().get_transaction_event()
        assert payload["transaction"] == "rebuild-index"
        assert payload["contexts"]["trace"]["op"] == "task"

    def test_sends_even_when_call_raises(self, dsn, session, collector):
        from src.reporting.client import ReportingClient

        client = ReportingClient(ReportingConfig(dsn=dsn, traces_sample_rate=1.0), session=session)

        @traced()
        def broken():
            raise KeyError("x")

        with patch.object(setup, "_client", client):
            with pytest.raises(KeyError):
                broken()

        assert len(collector.requests) == 1

    def test_unsampled_not_sent(self, dsn, session, collector):
        from src.reporting.client import ReportingClient

        client = ReportingClient(ReportingConfig(dsn=dsn, traces_sample_rate=0.0), session=session)

        @traced()
        def work():
            return 1

        with patch.object(setup, "_client", client):
            work()

        assert collector.requests == []
