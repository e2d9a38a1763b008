"""
Exception handlers producing the error envelope.

Every failure, whether raised by a service, by FastAPI validation or by an
unexpected bug, is returned as ErrorResponse:

    {status: false, status_code, message, data, error: {type, message, details},
     correlation_id, path, method, timestamp}

`data` repeats the error details so clients can read quantities such as
`available` or `remaining` from the same place as successful payloads.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from joinery.core.errors import ServiceError
from joinery.schemas.common import ErrorInfo, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(
    request: Request, status_code: int, error_type: str, message: str, details: Optional[Any] = None
) -> JSONResponse:
    body = ErrorResponse(
        status_code=status_code,
        message=message,
        data=details,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return error_response(request, exc.status_code, exc.code, exc.message, exc.details or None)


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return error_response(request, exc.status_code, "http_error", exc.detail)
    return error_response(request, exc.status_code, "http_error", "HTTP Error", exc.detail)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request, 400, "validation_error", "Request validation failed", jsonable_encoder(exc.errors())
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


# PUBLIC_INTERFACE
def install_error_handlers(app: FastAPI) -> None:
    """Register the envelope handlers on the application."""
    app.add_exception_handler(ServiceError, _service_error)
    app.add_exception_handler(HTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)
