from __future__ import annotations

import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .logging import get_logger

logger = get_logger(__name__)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log one line once it is answered."""

    def _log(self, request: Request, request_id: str, status: int, started: float) -> None:
        logger.info(
            "request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status=status,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            # the outer error middleware turns this into the 500 body
            self._log(request, request_id, 500, started)
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        self._log(request, request_id, response.status_code, started)
        response.headers["X-Request-ID"] = request_id
        return response
