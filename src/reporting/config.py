"""
Reporting Configuration

Loads reporting settings from environment variables and validates the DSN.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from sentry_sdk.utils import BadDsn, Dsn

from .errors import ConfigError

DEFAULT_PREFIX = "SENTRY_"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def parse_dsn(value: Optional[str]) -> Dsn:
    """
    Parse a DSN of the form scheme://public_key@host/project_id.

    Args:
        value: DSN string

    Returns:
        Parsed Dsn

    Raises:
        ConfigError: If the DSN is missing or malformed
    """
    if not value or not value.strip():
        raise ConfigError("DSN is required")

    try:
        return Dsn(value.strip())
    except BadDsn as e:
        raise ConfigError(f"Invalid DSN {value!r}: {e}") from e


def envelope_url(dsn: Dsn) -> str:
    """Collector endpoint that accepts envelopes for the DSN's project."""
    return f"{dsn.scheme}://{dsn.netloc}{dsn.path}api/{dsn.project_id}/envelope/"


@dataclass(frozen=True)
class HttpOptions:
    """Transport settings for outbound requests."""

    proxy: Optional[str] = None
    timeout: float = 5.0  # read timeout, seconds
    connect_timeout: float = 2.0
    ssl_verify: bool = True
    compression: bool = True

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_PREFIX) -> "HttpOptions":
        """Create HTTP options from environment variables."""
        return cls(
            proxy=os.getenv(f"{prefix}HTTP_PROXY") or None,
            timeout=_env_float(f"{prefix}HTTP_TIMEOUT", 5.0),
            connect_timeout=_env_float(f"{prefix}HTTP_CONNECT_TIMEOUT", 2.0),
            ssl_verify=_env_bool(f"{prefix}HTTP_SSL_VERIFY", True),
            compression=_env_bool(f"{prefix}HTTP_COMPRESSION", True),
        )


@dataclass(frozen=True)
class ReportingConfig:
    """Configuration for the reporting client."""

    dsn: Optional[str] = None
    traces_sample_rate: float = 0.1
    profiles_sample_rate: float = 0.1
    release: Optional[str] = None
    environment: Optional[str] = None
    http: HttpOptions = field(default_factory=HttpOptions)

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_PREFIX) -> "ReportingConfig":
        """
        Create config from environment variables.

        Reads DSN, TRACES_SAMPLE_RATE, PROFILES_SAMPLE_RATE, RELEASE,
        ENVIRONMENT and the HTTP_* transport settings, each with `prefix`.

        Raises:
            ConfigError: If a numeric setting cannot be parsed
        """
        return cls(
            dsn=os.getenv(f"{prefix}DSN") or None,
            traces_sample_rate=_env_float(f"{prefix}TRACES_SAMPLE_RATE", 0.1),
            profiles_sample_rate=_env_float(f"{prefix}PROFILES_SAMPLE_RATE", 0.1),
            release=os.getenv(f"{prefix}RELEASE") or None,
            environment=os.getenv(f"{prefix}ENVIRONMENT") or None,
            http=HttpOptions.from_env(prefix),
        )

    @property
    def enabled(self) -> bool:
        """Check if a DSN is configured."""
        return bool(self.dsn)

    def validate(self) -> Dsn:
        """
        Validate every setting.

        Returns:
            The parsed DSN

        Raises:
            ConfigError: On the first invalid setting
        """
        dsn = parse_dsn(self.dsn)

        for name in ("traces_sample_rate", "profiles_sample_rate"):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ConfigError(f"{name} must be between 0 and 1, got {rate}")

        if self.http.timeout <= 0 or self.http.connect_timeout <= 0:
            raise ConfigError("HTTP timeouts must be positive")

        return dsn
