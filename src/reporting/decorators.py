"""
Reporting Decorators

Provides decorators for automatic error capture and transaction tracing.
"""

import functools
import logging
from typing import Any, Callable, Dict, Optional, TypeVar, cast

from . import setup

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def capture_errors(
    step_name: Optional[str] = None,
    reraise: bool = True,
    extra: Optional[Dict[str, Any]] = None,
) -> Callable[[F], F]:
    """
    Decorator to capture exceptions with the process-wide client.

    Args:
        step_name: Optional name recorded with the event
        reraise: Whether to reraise the exception after capture
        extra: Additional context data

    Usage:
        @capture_errors(step_name="import_orders")
        def import_orders():
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)

            except Exception as e:
                context = {
                    "step": step_name or func.__name__,
                    "function": func.__qualname__,
                    "args_count": len(args),
                    "kwargs_keys": list(kwargs.keys()),
                }
                if extra:
                    context.update(extra)

                setup.capture_exception(e, extra=context)

                if reraise:
                    raise

                return None

        return cast(F, wrapper)

    return decorator


def traced(
    name: Optional[str] = None,
    op: str = "function",
) -> Callable[[F], F]:
    """
    Decorator to wrap a call in a transaction.

    The transaction is sampled with the client's traces_sample_rate and is
    sent whether the call succeeds or raises.

    Usage:
        @traced(op="task")
        def rebuild_index():
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            client = setup.get_client()
            if client is None:
                return func(*args, **kwargs)

            transaction = client.start_transaction(
                name=name or func.__qualname__,
                op=op,
            )
            try:
                return func(*args, **kwargs)
            finally:
                result = client.finish_transaction(transaction)
                if transaction.sampled and not result.ok:
                    logger.warning(
                        "Transaction %s was not sent: %s",
                        transaction.name,
                        result.reason,
                    )

        return cast(F, wrapper)

    return decorator
