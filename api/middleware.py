"""
Global middleware and exception handlers.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from core.errors import DoorlockError, UpstreamActuationError

logger = logging.getLogger(__name__)


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to responses without leaking their details."""

    @app.exception_handler(DoorlockError)
    async def doorlock_error(request: Request, exc: DoorlockError) -> Response:
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.debug("%s %s → %s: %s", request.method, request.url.path, exc.status_code, exc)

        if isinstance(exc, UpstreamActuationError):
            # Hub status passes through verbatim, like a successful open
            return Response(status_code=exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.public_message},
        )
