"""
Connectivity Test

Sends a test event (and optionally a test transaction) to the collector
and prints debugging tips when delivery fails.
"""

import dataclasses
import importlib.util
import logging
import warnings
from enum import Enum
from typing import Callable, Iterable, List, Optional

import click

from .client import ReportingClient
from .config import ReportingConfig
from .errors import ConfigError, NoDsnError
from .setup import get_client

logger = logging.getLogger(__name__)

TEST_TRANSACTION_NAME = "Test Transaction"
TEST_TRANSACTION_OP = "error_relay.test"
TEST_SPAN_OP = "error_relay.sent"

# Phrases that point at an outdated CA bundle
CERTIFICATE_PROBLEMS = (
    "SSL certificate problem",
    "certificate has expired",
    "certificate verify failed",
    "CERTIFICATE_VERIFY_FAILED",
)

ClientProvider = Callable[[], Optional[ReportingClient]]
ClientFactory = Callable[[ReportingConfig], ReportingClient]


class DebugTip(Enum):
    """Which hint to show after a failed delivery."""
    CERTIFICATE = "certificate"
    SDK_MESSAGES = "sdk_messages"
    CHECK_DSN = "check_dsn"


def select_debug_tip(messages: Iterable[str]) -> DebugTip:
    """
    Pick the single most useful hint for the buffered error messages.

    Certificate problems win over everything else, then any buffered
    message, then the DSN check.
    """
    messages = list(messages)

    for message in messages:
        if any(phrase in message for phrase in CERTIFICATE_PROBLEMS):
            return DebugTip.CERTIFICATE

    if messages:
        return DebugTip.SDK_MESSAGES

    return DebugTip.CHECK_DSN


def _generate_test_exception() -> Exception:
    try:
        raise Exception("This is a test exception sent from the error-relay CLI.")
    except Exception as e:
        return e


def _ssl_available() -> bool:
    return importlib.util.find_spec("ssl") is not None


class ConnectivityTest:
    """
    Verifies that a DSN can reach the collector.

    Usage:
        exit_code = ConnectivityTest().run(dsn=None, transaction=True)
    """

    def __init__(
        self,
        client_provider: ClientProvider = get_client,
        client_factory: ClientFactory = ReportingClient,
        verbose: bool = False,
    ):
        self.client_provider = client_provider
        self.client_factory = client_factory
        self.verbose = verbose
        self.error_messages: List[str] = []

    def _info(self, message: str) -> None:
        click.echo(message)

    def _warn(self, message: str) -> None:
        click.echo(message, err=True)

    def _error(self, message: str) -> None:
        click.echo(message, err=True)

    def log_from_client(self, level: str, message: str) -> None:
        """Sink attached to the test client."""
        # debug and info only in verbose mode
        if self.verbose or level not in ("debug", "info"):
            click.echo(f"SDK({level}): {message}")

        if level in ("error", "critical"):
            self.error_messages.append(message)

    def _configured_client(self) -> Optional[ReportingClient]:
        try:
            return self.client_provider()
        except Exception as e:
            # Fall back to --dsn; misconfiguration surfaces when sending
            logger.debug("Could not inspect the configured client: %s", e)
            return None

    def resolve_dsn(
        self,
        dsn: Optional[str],
        configured: Optional[ReportingClient],
    ) -> str:
        """
        Return the DSN to test: the explicit one, else the configured client's.

        Raises:
            NoDsnError: If neither source yields a DSN
        """
        # An explicit empty --dsn is not replaced by discovery
        if dsn is None and configured is not None and configured.config.dsn:
            dsn = configured.dsn
            self._info("DSN discovered from the configured client or `.env` file!")

        if not dsn:
            raise NoDsnError("Could not discover DSN!")

        return dsn

    def build_config(
        self,
        dsn: str,
        configured: Optional[ReportingClient],
    ) -> ReportingConfig:
        """Config for the test client, reusing the configured transport settings."""
        if configured is None:
            return ReportingConfig(dsn=dsn, traces_sample_rate=1.0)
        return dataclasses.replace(configured.config, dsn=dsn, traces_sample_rate=1.0)

    def print_debug_tips(self) -> None:
        tip = select_debug_tip(self.error_messages)

        if tip == DebugTip.CERTIFICATE:
            self._warn(
                "The problem might be related to an expired root certificate "
                "(such as the old Let's Encrypt root) still present in your "
                "certificate authority store, or to an outdated CA bundle. "
                "Try upgrading certifi (`pip install --upgrade certifi`) or "
                "your system CA certificates."
            )
            self._warn(
                "For more information see Let's Encrypt's notes on the chain change: "
                "https://community.letsencrypt.org/t/production-chain-changes/150739/4"
            )
        elif tip == DebugTip.SDK_MESSAGES:
            self._error(
                "Please check the error message from the SDK above for further "
                "hints about what went wrong."
            )
        else:
            self._error(
                "Please check if your DSN is set properly in your `.env` as "
                "`SENTRY_DSN` or pass it with --dsn."
            )

    def _send_test_transaction(self, client: ReportingClient) -> bool:
        self.error_messages = []

        transaction = client.start_transaction(
            name=TEST_TRANSACTION_NAME,
            op=TEST_TRANSACTION_OP,
            sampled=True,
        )
        span = transaction.start_child(op=TEST_SPAN_OP)

        self._info("Sending transaction...")

        span.finish()
        result = client.finish_transaction(transaction)

        if not result.ok:
            self._error("There was an error sending the transaction.")
            self.print_debug_tips()
            return False

        self._info(f"Transaction sent with ID: {result.event_id}")
        return True

    def run(self, dsn: Optional[str] = None, transaction: bool = False) -> int:
        """
        Run the test.

        Args:
            dsn: DSN override; defaults to the configured client's DSN
            transaction: Also send a test transaction

        Returns:
            Process exit code (0 on success, 1 on any failure)
        """
        if not _ssl_available():
            self._error("Python was built without the `ssl` module; HTTPS is unavailable.")
            return 1

        reporting_logger = logging.getLogger(__package__)
        old_level = reporting_logger.level
        old_propagate = reporting_logger.propagate
        # Client diagnostics reach the console only through log_from_client
        null_handler = logging.NullHandler()

        with warnings.catch_warnings():
            # Surface every warning while the test runs
            warnings.simplefilter("always")
            reporting_logger.setLevel(logging.DEBUG)
            reporting_logger.propagate = False
            reporting_logger.addHandler(null_handler)
            try:
                return self._run(dsn, transaction)
            finally:
                reporting_logger.removeHandler(null_handler)
                reporting_logger.propagate = old_propagate
                reporting_logger.setLevel(old_level)

    def _run(self, dsn: Optional[str], transaction: bool) -> int:
        configured = self._configured_client()

        try:
            dsn = self.resolve_dsn(dsn, configured)
        except NoDsnError as e:
            self._error(str(e))
            self.print_debug_tips()
            return 1

        try:
            client = self.client_factory(self.build_config(dsn, configured))
        except ConfigError as e:
            self._error(str(e))
            return 1

        client.attach_logger(self.log_from_client)

        try:
            self._info("Sending test event...")

            result = client.capture_exception(
                _generate_test_exception(),
                extra={"command": "test"},
            )

            if not result.ok:
                self._error("There was an error sending the event.")
                self.print_debug_tips()
                return 1

            self._info(f"Test event sent with ID: {result.event_id}")

            if transaction and not self._send_test_transaction(client):
                return 1

            return 0
        finally:
            client.detach_logger(self.log_from_client)
            client.close()
