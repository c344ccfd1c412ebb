"""
Logging helpers shared by the application entry point and middleware.

Provides structured lifecycle logging, contextual error logging and a request logging
middleware that records method, path, status code and duration for every HTTP request.
"""

import time
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from content_forum.managers.logging_manager import get_logger

lifecycle_logger = get_logger(prefix="[LIFECYCLE]")
error_logger = get_logger(prefix="[ERROR]")
request_logger = get_logger(prefix="[REQUEST]")


def log_application_lifecycle(event: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Log an application lifecycle event (startup, shutdown, router setup...)."""
    lifecycle_logger.info("Lifecycle event: %s - %s", event, details or {})


def log_error_with_context(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception together with the operation context it happened in."""
    error_logger.error(
        "%s: %s - context: %s", type(error).__name__, error, context or {}, exc_info=error
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its response status and processing time."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"
        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            request_logger.error(
                "%s %s failed after %.3fs from %s: %s",
                request.method,
                request.url.path,
                duration,
                client_ip,
                e,
            )
            raise

        duration = time.time() - start_time
        request_logger.info(
            "%s %s -> %d in %.3fs from %s",
            request.method,
            request.url.path,
            response.status_code,
            duration,
            client_ip,
        )
        return response
