"""
Exception handlers for FastAPI applications using ops-rbac.

Maps the ops-rbac exception taxonomy to JSON error responses with the status
codes from ``core.exceptions.http_mapping``.
"""
import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ...core.exceptions import (
    CircuitOpenError,
    RbacError,
    create_error_response,
    get_http_status_code,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI, is_production: bool = True) -> None:
    """
    Register ops-rbac exception handlers on an application.

    Args:
        app: FastAPI application instance
        is_production: Hide error details of server-side failures when True
    """

    @app.exception_handler(RbacError)
    async def rbac_exception_handler(request: Request, exc: RbacError):
        """Handle ops-rbac exceptions."""
        status_code = get_http_status_code(exc)
        headers = {}

        if isinstance(exc, CircuitOpenError) and exc.retry_after_seconds > 0:
            headers["Retry-After"] = str(math.ceil(exc.retry_after_seconds))

        if status_code >= 500:
            logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")

        content = create_error_response(exc)
        if is_production and status_code >= 500:
            content["error"]["details"] = {}

        return JSONResponse(status_code=status_code, content=content, headers=headers)
