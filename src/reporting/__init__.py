"""
Error Reporting for Python Applications

Provides:
- A reporting client that sends exceptions and transactions to a
  Sentry-compatible collector
- A process-wide capture hook and a FastAPI exception handler
- A connectivity test with debugging tips
"""

from .config import ReportingConfig, HttpOptions
from .errors import (
    ReportingError,
    ConfigError,
    TransmissionError,
    PrematureFinishError,
    NoDsnError,
)
from .types import (
    CapturedEvent,
    StackFrame,
    Span,
    Transaction,
    DeliveryResult,
    DeliveryStatus,
)
from .client import ReportingClient
from .hook import (
    CaptureHook,
    install,
    active_hook,
    error_body,
    json_error_fallback,
)
from .setup import (
    init_reporting,
    get_client,
    shutdown_reporting,
    capture_exception,
)
from .decorators import capture_errors, traced
from .connectivity import ConnectivityTest, DebugTip, select_debug_tip

__all__ = [
    # Config
    'ReportingConfig',
    'HttpOptions',
    # Errors
    'ReportingError',
    'ConfigError',
    'TransmissionError',
    'PrematureFinishError',
    'NoDsnError',
    # Types
    'CapturedEvent',
    'StackFrame',
    'Span',
    'Transaction',
    'DeliveryResult',
    'DeliveryStatus',
    # Client
    'ReportingClient',
    # Hook
    'CaptureHook',
    'install',
    'active_hook',
    'error_body',
    'json_error_fallback',
    # Setup
    'init_reporting',
    'get_client',
    'shutdown_reporting',
    'capture_exception',
    # Decorators
    'capture_errors',
    'traced',
    # Connectivity test
    'ConnectivityTest',
    'DebugTip',
    'select_debug_tip',
]
