"""
HTTP Transport

Posts serialized envelopes to the collector endpoint derived from the DSN.
"""

import gzip
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import requests
from sentry_sdk.envelope import Envelope
from sentry_sdk.utils import Dsn

from .. import __version__
from .config import HttpOptions, envelope_url
from .errors import TransmissionError
from .types import SDK_NAME, DeliveryResult

logger = logging.getLogger(__name__)

# Receives (level, message) for every diagnostic the transport emits
LogCallback = Callable[[str, str], None]


def _default_log(level: str, message: str) -> None:
    logger.log(logging.getLevelName(level.upper()), message)


class HttpTransport:
    """
    Sends one envelope per request to the collector.

    The session is created on first use. Failures are returned as
    DeliveryResult values, never raised.
    """

    def __init__(
        self,
        dsn: Dsn,
        options: Optional[HttpOptions] = None,
        session: Optional[requests.Session] = None,
        log: Optional[LogCallback] = None,
    ):
        self.dsn = dsn
        self.options = options or HttpOptions()
        self.url = envelope_url(dsn)
        self._session = session
        self._log = log or _default_log
        self._user_agent = f"{SDK_NAME}/{__version__}"

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/x-sentry-envelope",
            "User-Agent": self._user_agent,
            "X-Sentry-Auth": self.dsn.to_auth(self._user_agent).to_header(),
        }
        if self.options.compression:
            headers["Content-Encoding"] = "gzip"
        return headers

    def _post(self, body: bytes) -> requests.Response:
        if self.options.compression:
            body = gzip.compress(body)

        proxies = None
        if self.options.proxy:
            proxies = {"http": self.options.proxy, "https": self.options.proxy}

        try:
            response = self.session.post(
                self.url,
                data=body,
                headers=self._headers(),
                timeout=(self.options.connect_timeout, self.options.timeout),
                verify=self.options.ssl_verify,
                proxies=proxies,
            )
        except requests.RequestException as e:
            raise TransmissionError(str(e)) from e

        if not 200 <= response.status_code < 300:
            message = f"Collector responded with HTTP {response.status_code}"
            detail = response.headers.get("X-Sentry-Error") or response.text[:200]
            if detail:
                message = f"{message}: {detail}"
            raise TransmissionError(message)

        return response

    def send(self, envelope: Envelope, event_id: str) -> DeliveryResult:
        """
        Send an envelope to the collector.

        Args:
            envelope: Envelope holding one event or transaction
            event_id: Identifier used when the collector does not echo one

        Returns:
            Success with the collector's event id, or failure with the cause
        """
        envelope.headers.setdefault("event_id", event_id)
        envelope.headers["sent_at"] = datetime.now(timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%S.%fZ"
        )

        try:
            response = self._post(envelope.serialize())
        except TransmissionError as e:
            self._log("error", f"Failed to send event {event_id} to {self.url}: {e}")
            return DeliveryResult.failure(str(e))

        try:
            data = response.json()
        except ValueError:
            data = None
        assigned = data.get("id") if isinstance(data, dict) else None

        self._log("debug", f"Event {event_id} sent to {self.url}")
        return DeliveryResult.success(assigned or event_id)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
