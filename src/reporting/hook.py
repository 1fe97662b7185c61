"""
Global Capture Hook

Installs a process-wide sys.excepthook that reports uncaught exceptions
and then hands them to a fallback so they still surface.
"""

import json
import logging
import sys
from types import TracebackType
from typing import Any, Callable, Dict, Optional, TextIO, Type

from .client import ReportingClient

logger = logging.getLogger(__name__)

FallbackBehavior = Callable[
    [Type[BaseException], BaseException, Optional[TracebackType]], None
]
ShouldReport = Callable[[BaseException], bool]

# Currently installed hook (last install wins)
_active_hook: Optional["CaptureHook"] = None


def report_everything(exception: BaseException) -> bool:
    """Default predicate: every uncaught exception is an incident."""
    return True


def error_body(exception: BaseException) -> Dict[str, Any]:
    """Structured failure body returned to callers."""
    return {"success": False, "message": str(exception)}


def json_error_fallback(stream: Optional[TextIO] = None) -> FallbackBehavior:
    """
    Build a fallback that writes the JSON failure body to a stream.

    Args:
        stream: Output stream (defaults to sys.stderr at call time)
    """

    def fallback(
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        out = stream or sys.stderr
        out.write(json.dumps(error_body(exc), ensure_ascii=False) + "\n")
        out.flush()

    return fallback


class CaptureHook:
    """
    Handler bound to sys.excepthook.

    Usage:
        hook = install(client)
        ...
        hook.uninstall()
    """

    def __init__(
        self,
        client: Optional[ReportingClient],
        fallback: FallbackBehavior,
        should_report: ShouldReport,
        original: FallbackBehavior,
    ):
        self.client = client
        self.fallback = fallback
        self.should_report = should_report
        self.original = original

    @property
    def active(self) -> bool:
        return _active_hook is self

    def _report(self, exc: BaseException) -> None:
        if self.client is None:
            return

        try:
            if not self.should_report(exc):
                logger.debug("Skipping report for %s", type(exc).__name__)
                return
            result = self.client.capture_exception(exc)
        except Exception as e:
            logger.error("Failed to report uncaught exception: %s", e)
            return

        if not result.ok:
            logger.error("Uncaught exception was not reported: %s", result.reason)

    def __call__(
        self,
        exc_type: Type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        self._report(exc)
        try:
            self.fallback(exc_type, exc, tb)
        except Exception as e:
            logger.error("Fallback for uncaught exception failed: %s", e)

    def uninstall(self) -> None:
        """Restore the excepthook that was active before the first install."""
        global _active_hook

        if not self.active:
            return
        sys.excepthook = self.original
        _active_hook = None


def install(
    client: Optional[ReportingClient],
    fallback: Optional[FallbackBehavior] = None,
    should_report: Optional[ShouldReport] = None,
) -> CaptureHook:
    """
    Install the process-wide capture hook.

    Installing again replaces the previous hook; hooks never stack.

    Args:
        client: Client that receives uncaught exceptions
        fallback: Called after reporting (defaults to the original excepthook)
        should_report: Predicate filtering which exceptions are reported

    Returns:
        The installed hook
    """
    global _active_hook

    if _active_hook is not None:
        original = _active_hook.original
    else:
        original = sys.excepthook

    hook = CaptureHook(
        client=client,
        fallback=fallback or original,
        should_report=should_report or report_everything,
        original=original,
    )
    sys.excepthook = hook
    _active_hook = hook
    logger.debug("Capture hook installed")
    return hook


def active_hook() -> Optional[CaptureHook]:
    return _active_hook
