"""error-relay - Error reporting client and diagnostics.

This package forwards uncaught exceptions to a Sentry-compatible collector.

Modules:
    reporting - Reporting client, capture hook, connectivity test
    cli - Command-line interface
"""

__version__ = '1.0.0'
