"""
Reporting Client

Builds events and transactions and sends them to the collector.
"""

import logging
import random
import sys
from typing import Any, Callable, Dict, List, Optional

import requests
from sentry_sdk.envelope import Envelope

from .config import ReportingConfig
from .errors import PrematureFinishError, ReportingError
from .transport import HttpTransport
from .types import CapturedEvent, DeliveryResult, Transaction

logger = logging.getLogger(__name__)

# Receives (level, message) for each internal diagnostic
LogSink = Callable[[str, str], None]


class ReportingClient:
    """
    Sends errors and transactions to a Sentry-compatible collector.

    Every capture blocks until the collector has answered or the transport
    has failed, and returns a DeliveryResult. Capturing never raises.

    Usage:
        client = ReportingClient(ReportingConfig.from_env())

        try:
            do_work()
        except Exception as e:
            result = client.capture_exception(e)
    """

    def __init__(
        self,
        config: ReportingConfig,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Reporting configuration with a DSN
            session: Optional requests session for the transport

        Raises:
            ConfigError: If the DSN is missing or malformed
        """
        self._dsn = config.validate()
        self._config = config
        self._sinks: List[LogSink] = []
        self._transport = HttpTransport(
            self._dsn,
            options=config.http,
            session=session,
            log=self._log,
        )

    @property
    def config(self) -> ReportingConfig:
        return self._config

    @property
    def dsn(self) -> str:
        return self._config.dsn.strip()

    @property
    def endpoint(self) -> str:
        return self._transport.url

    def attach_logger(self, sink: LogSink) -> None:
        """Route every internal diagnostic message to sink as well."""
        if sink not in self._sinks:
            self._sinks.append(sink)

    def detach_logger(self, sink: LogSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def _log(self, level: str, message: str) -> None:
        logger.log(logging.getLevelName(level.upper()), message)
        for sink in list(self._sinks):
            try:
                sink(level, message)
            except Exception as e:
                logger.debug("Log sink failed: %s", e)

    def _send_event(self, event: CapturedEvent) -> DeliveryResult:
        envelope = Envelope()
        envelope.add_event(
            event.to_payload(
                release=self._config.release,
                environment=self._config.environment,
            )
        )
        result = self._transport.send(envelope, event.event_id)
        if result.ok:
            event.id = result.event_id
        return result

    def capture_exception(
        self,
        exception: Optional[BaseException] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> DeliveryResult:
        """
        Capture an exception and send it to the collector.

        Args:
            exception: The exception to capture (defaults to the one being handled)
            extra: Additional context data

        Returns:
            Success with the event id, or failure with a readable reason
        """
        if exception is None:
            exception = sys.exc_info()[1]
        if exception is None:
            self._log("warning", "capture_exception called without an exception")
            return DeliveryResult.failure("No exception to capture")

        try:
            event = CapturedEvent.from_exception(exception, extra=extra)
            return self._send_event(event)
        except Exception as e:
            self._log("error", f"Failed to capture exception: {e}")
            return DeliveryResult.failure(f"Failed to capture exception: {e}")

    def capture_message(
        self,
        message: str,
        level: str = "info",
        extra: Optional[Dict[str, Any]] = None,
    ) -> DeliveryResult:
        """
        Capture a message and send it to the collector.

        Useful for non-exception events like warnings.
        """
        try:
            event = CapturedEvent.from_message(message, level=level, extra=extra)
            return self._send_event(event)
        except Exception as e:
            self._log("error", f"Failed to capture message: {e}")
            return DeliveryResult.failure(f"Failed to capture message: {e}")

    def start_transaction(
        self,
        name: str,
        op: str,
        sampled: Optional[bool] = None,
        source: str = "custom",
    ) -> Transaction:
        """
        Start a transaction.

        Args:
            name: Transaction name
            op: Operation type
            sampled: Force the sampling decision; None uses traces_sample_rate
            source: Transaction name source

        Returns:
            The started transaction
        """
        if sampled is None:
            sampled = random.random() < self._config.traces_sample_rate
        return Transaction(name=name, op=op, sampled=sampled, source=source)

    def finish_transaction(self, transaction: Transaction) -> DeliveryResult:
        """
        Finish a transaction and send it with its spans.

        Raises:
            PrematureFinishError: If any child span is still open
            ReportingError: If the transaction was already finished
        """
        if transaction.finished:
            raise ReportingError(f"Transaction {transaction.name!r} is already finished")

        open_spans = transaction.open_spans
        if open_spans:
            raise PrematureFinishError(
                f"Transaction {transaction.name!r} has {len(open_spans)} unfinished "
                f"span(s): {', '.join(s.op for s in open_spans)}"
            )

        transaction.mark_finished()

        if not transaction.sampled:
            self._log("debug", f"Transaction {transaction.name!r} was not sampled, discarding")
            return DeliveryResult.failure("Transaction was not sampled")

        try:
            envelope = Envelope()
            envelope.add_transaction(
                transaction.to_payload(
                    release=self._config.release,
                    environment=self._config.environment,
                )
            )
            return self._transport.send(envelope, transaction.event_id)
        except Exception as e:
            self._log("error", f"Failed to send transaction: {e}")
            return DeliveryResult.failure(f"Failed to send transaction: {e}")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._transport.close()
