"""
Reporting Setup

Initializes the process-wide reporting client and capture hook.
"""

import logging
from typing import Any, Dict, Optional

from .client import ReportingClient
from .config import ReportingConfig
from .errors import ConfigError
from .hook import CaptureHook, ShouldReport, install

logger = logging.getLogger(__name__)

# Process-wide client and hook
_client: Optional[ReportingClient] = None
_hook: Optional[CaptureHook] = None


def init_reporting(
    config: Optional[ReportingConfig] = None,
    install_hook: bool = True,
    should_report: Optional[ShouldReport] = None,
) -> Optional[ReportingClient]:
    """
    Initialize error reporting for this process.

    Args:
        config: ReportingConfig with DSN (defaults to environment variables)
        install_hook: Whether to install the sys.excepthook capture hook
        should_report: Predicate filtering which uncaught errors are reported

    Returns:
        The client, or None if reporting is not configured or invalid
    """
    global _client, _hook

    try:
        config = config or ReportingConfig.from_env()
    except ConfigError as e:
        logger.error("Invalid reporting configuration: %s", e)
        return None

    if not config.enabled:
        logger.debug("Error reporting not configured, skipping initialization")
        return None

    if _client is not None and _client.config == config:
        client = _client
    else:
        try:
            client = ReportingClient(config)
        except ConfigError as e:
            logger.error("Failed to initialize error reporting: %s", e)
            return None

        if _client is not None:
            _client.close()
        _client = client

    if install_hook:
        _hook = install(client, should_report=should_report)

    logger.debug("Error reporting initialized for %s", client.endpoint)
    return client


def get_client() -> Optional[ReportingClient]:
    """Return the process-wide client, if one is configured."""
    return _client


def shutdown_reporting() -> None:
    """Uninstall the capture hook and close the process-wide client."""
    global _client, _hook

    if _hook is not None:
        _hook.uninstall()
        _hook = None

    if _client is not None:
        _client.close()
        _client = None


def capture_exception(
    exception: BaseException,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Capture an exception with the process-wide client.

    Returns:
        Event ID if sent, None otherwise
    """
    if _client is None:
        return None

    result = _client.capture_exception(exception, extra=extra)
    return result.event_id if result.ok else None
