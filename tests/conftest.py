"""Shared pytest fixtures for error-relay tests."""

import gzip
import json

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from sentry_sdk.envelope import Envelope

TEST_DSN = "https://public@collector.example.com/42"


class StubCollector(BaseAdapter):
    """
    requests adapter standing in for the collector.

    Records every request and answers with a canned response, or raises
    `error` when one is set.
    """

    def __init__(self, status_code=200, error=None):
        super().__init__()
        self.status_code = status_code
        self.error = error
        self.requests = []
        self.send_kwargs = []

    def send(self, request, **kwargs):
        self.requests.append(request)
        self.send_kwargs.append(kwargs)

        if self.error is not None:
            raise self.error

        envelope = self.envelope(len(self.requests) - 1)
        event_id = envelope.headers.get("event_id")

        response = requests.Response()
        response.status_code = self.status_code
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        if 200 <= self.status_code < 300:
            response._content = json.dumps({"id": event_id}).encode("utf-8")
        else:
            response._content = b"collector unavailable"
        return response

    def close(self):
        pass

    def body(self, index=0):
        request = self.requests[index]
        body = request.body
        if request.headers.get("Content-Encoding") == "gzip":
            body = gzip.decompress(body)
        return body

    def envelope(self, index=0):
        return Envelope.deserialize(self.body(index))


def make_session(collector):
    session = requests.Session()
    session.trust_env = False
    session.mount("https://", collector)
    session.mount("http://", collector)
    return session


@pytest.fixture
def dsn():
    return TEST_DSN


@pytest.fixture
def collector():
    """Collector that accepts every envelope."""
    return StubCollector()


@pytest.fixture
def session(collector):
    return make_session(collector)


@pytest.fixture
def config(dsn):
    from src.reporting.config import ReportingConfig
    return ReportingConfig(dsn=dsn, release="app@1.2.3", environment="staging")


@pytest.fixture
def client(config, session):
    from src.reporting.client import ReportingClient
    return ReportingClient(config, session=session)


@pytest.fixture(autouse=True)
def reset_reporting():
    """Drop process-wide reporting state between tests."""
    import sys
    from src.reporting import setup

    original_hook = sys.excepthook
    yield
    setup.shutdown_reporting()

    from src.reporting import hook
    hook._active_hook = None
    sys.excepthook = original_hook


@pytest.fixture
def clean_env(monkeypatch):
    """Remove reporting variables from the environment."""
    for name in (
        "SENTRY_DSN",
        "SENTRY_TRACES_SAMPLE_RATE",
        "SENTRY_PROFILES_SAMPLE_RATE",
        "SENTRY_RELEASE",
        "SENTRY_ENVIRONMENT",
        "SENTRY_HTTP_PROXY",
        "SENTRY_HTTP_TIMEOUT",
        "SENTRY_HTTP_CONNECT_TIMEOUT",
        "SENTRY_HTTP_SSL_VERIFY",
        "SENTRY_HTTP_COMPRESSION",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
