"""
Web Exception Handler

Reports unhandled request errors from a FastAPI app and answers with a
JSON failure body.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .client import ReportingClient
from .hook import ShouldReport, error_body, report_everything

logger = logging.getLogger(__name__)


def install_exception_handler(
    app: FastAPI,
    client: Optional[ReportingClient],
    should_report: Optional[ShouldReport] = None,
) -> None:
    """
    Register the top-level exception handler on a FastAPI app.

    Registering again replaces the previous handler. Starlette re-raises the
    exception after the response is sent, so server logs still show it.

    Args:
        app: FastAPI application
        client: Client that receives the exceptions
        should_report: Predicate filtering which exceptions are reported
    """
    predicate = should_report or report_everything

    async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
        if client is not None:
            try:
                if predicate(exc):
                    result = await run_in_threadpool(client.capture_exception, exc)
                    if not result.ok:
                        logger.error(
                            "Failed to report error on %s %s: %s",
                            request.method,
                            request.url.path,
                            result.reason,
                        )
            except Exception as e:
                logger.error("Error reporting failed: %s", e)

        return JSONResponse(status_code=500, content=error_body(exc))

    app.add_exception_handler(Exception, handle_exception)
