"""Tests for the error-relay CLI (cli/main.py, cli/diagnostics.py)."""

import io
import logging
from unittest.mock import patch

import pytest
import requests
from click.testing import CliRunner

from src.cli.main import cli
from src.reporting import setup

from conftest import StubCollector, make_session


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def stub_collector(monkeypatch):
    """Route every new requests.Session to a stub collector."""
    collector = StubCollector()
    session = make_session(collector)
    monkeypatch.setattr(requests, "Session", lambda: session)
    return collector


@pytest.fixture(autouse=True)
def no_dotenv():
    with patch("src.cli.main.load_dotenv"):
        yield


class TestTestCommand:
    def test_help(self, runner):
        result = runner.invoke(cli, ["test", "--help"])
        assert result.exit_code == 0
        assert "--dsn" in result.output
        assert "--transaction" in result.output

    def test_no_dsn_exits_1(self, runner, clean_env):
        result = runner.invoke(cli, ["test"])

        assert result.exit_code == 1
        assert "Could not discover DSN!" in result.output

    def test_dsn_option(self, runner, clean_env, stub_collector, dsn):
        result = runner.invoke(cli, ["test", f"--dsn={dsn}"])

        assert result.exit_code == 0, result.output
        assert "Test event sent with ID:" in result.output
        assert len(stub_collector.requests) == 1

    def test_dsn_from_environment(self, runner, clean_env, stub_collector, dsn):
        clean_env.setenv("SENTRY_DSN", dsn)

        result = runner.invoke(cli, ["test", "--transaction"])

        assert result.exit_code == 0, result.output
        assert "DSN discovered" in result.output
        assert "Transaction sent with ID:" in result.output
        assert len(stub_collector.requests) == 2
        assert setup.get_client() is not None

    def test_send_failure_exits_1(self, runner, clean_env, stub_collector, dsn):
        stub_collector.status_code = 403

        result = runner.invoke(cli, ["test", f"--dsn={dsn}"])

        assert result.exit_code == 1
        assert "There was an error sending the event." in result.output

    def test_malformed_dsn_exits_1(self, runner, clean_env):
        result = runner.invoke(cli, ["test", "--dsn=https://collector.example.com/"])

        assert result.exit_code == 1
        assert "Invalid DSN" in result.output

    def test_verbose_flag(self, runner, clean_env, stub_collector, dsn):
        result = runner.invoke(cli, ["-v", "test", f"--dsn={dsn}"])

        assert result.exit_code == 0, result.output
        assert "SDK(debug):" in result.output

    def test_client_log_lines_stay_off_console(self, runner, clean_env, stub_collector, dsn):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        root = logging.getLogger()
        root.addHandler(handler)

        try:
            result = runner.invoke(cli, ["test", f"--dsn={dsn}", "--transaction"])
        finally:
            root.removeHandler(handler)

        assert result.exit_code == 0, result.output
        assert "sent to" not in result.output
        assert "sent to" not in stream.getvalue()

    def test_empty_dsn_option_exits_1(self, runner, clean_env, stub_collector, dsn):
        clean_env.setenv("SENTRY_DSN", dsn)

        result = runner.invoke(cli, ["test", "--dsn="])

        assert result.exit_code == 1
        assert "Could not discover DSN!" in result.output
        assert stub_collector.requests == []
