"""
Reporting Errors

Exception taxonomy for the reporting client.
"""


class ReportingError(Exception):
    """Base class for reporting errors."""
    pass


class ConfigError(ReportingError, ValueError):
    """Raised when the DSN or another setting is missing or malformed."""
    pass


class TransmissionError(ReportingError):
    """Raised by the transport when the collector cannot be reached.

    Never escapes the client: it is converted to a failed DeliveryResult.
    """
    pass


class PrematureFinishError(ReportingError):
    """Raised when a transaction is finished while child spans are open."""
    pass


class NoDsnError(ReportingError):
    """Raised when no DSN can be discovered for the connectivity test."""
    pass
