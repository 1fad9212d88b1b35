"""Typed error kinds shared by the core services and the HTTP layer."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class LedgrError(RuntimeError):
    kind = "Error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, *, issues: Any = None) -> None:
        self.message = message or self.default_message
        self.issues = issues
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "detail": self.message}
        if self.issues is not None:
            payload["issues"] = self.issues
        return payload


class InvalidAmount(LedgrError):
    kind = "InvalidAmount"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid amount. Provide positive amount or valid items/tax_rate."


class ValidationFailed(LedgrError):
    kind = "ValidationFailed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payload"


class Unauthenticated(LedgrError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class Forbidden(LedgrError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid token"


class NotFound(LedgrError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class RenderFailed(LedgrError):
    kind = "RenderFailed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to render invoice PDF"


class StorageUnavailable(LedgrError):
    kind = "StorageUnavailable"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Storage is unavailable"


class DeliveryFailed(LedgrError):
    kind = "DeliveryFailed"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to send email"


class ConfigMissing(LedgrError):
    """Raised at startup when a required secret is absent. Never handled per request."""

    kind = "ConfigMissing"
    default_message = "Required configuration is missing"


async def _ledgr_error_handler(request: Request, exc: LedgrError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = jsonable_encoder(exc.errors(), exclude={"input", "ctx", "url"})
    logger.warning(
        "invalid_payload",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content=ValidationFailed(issues=issues).to_payload(),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgrError, _ledgr_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
