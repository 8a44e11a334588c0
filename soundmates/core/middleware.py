"""
Request middleware: request ids, access logging, security headers.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from soundmates.core.logging import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag every request with an id and log one line when it finishes.

    An id sent by an upstream proxy in ``X-Request-ID`` is reused so log
    lines can be joined across services.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }
        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            duration_ms = _elapsed_ms(start_time)
            level = logging.ERROR if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"{request.method} {request.url.path} - {response.status_code} ({duration_ms}ms)",
                extra={"extra_fields": {**fields, "status_code": response.status_code, "duration_ms": duration_ms}},
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
            return response

        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"extra_fields": {**fields, "duration_ms": _elapsed_ms(start_time), "error": str(e)}},
                exc_info=True,
            )
            raise
        finally:
            request_id_var.reset(token)


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
