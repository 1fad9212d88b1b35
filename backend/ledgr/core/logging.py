"""JSON logging and per-request log context.

Every record emitted while a request is in flight carries its ``request_id``,
so business events logged deep in the services can be joined to the access
log line without threading the id through call signatures.
"""
from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "path",
    "method",
    "status_code",
    "latency_ms",
    "invoice_id",
    "storage_key",
)

_request_id: ContextVar[Optional[str]] = ContextVar("ledgr_request_id", default=None)


def current_request_id() -> Optional[str]:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _request_id.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestContextFilter())
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log plus ``X-Request-Id`` propagation.

    The caller's id is read from ``request.state.user_id``, which the auth
    dependency sets once the token has been verified.
    """

    def __init__(self, app, logger_name: str = "request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger("security")

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = _request_id.set(request_id)
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                self.logger.exception("unhandled_exception", extra=self._fields(request, start))
                raise

            fields = self._fields(request, start, status_code=response.status_code)
            self.logger.info("request", extra=fields)
            if response.status_code in (401, 403):
                self.security_logger.info("access_denied", extra=fields)
        finally:
            _request_id.reset(token)

        response.headers["X-Request-Id"] = request_id
        return response

    @staticmethod
    def _fields(request: Request, start: float, status_code: Optional[int] = None) -> dict[str, Any]:
        return {
            "request_id": request.state.request_id,
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
        }
