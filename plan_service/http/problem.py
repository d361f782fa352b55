"""Problem+JSON exception handlers.

Defines the RFC 7807 media type and the handlers registered on the app so
that nothing escapes a request as an unformatted fault: framework HTTP
errors, request validation errors and unexpected exceptions all become
application/problem+json responses.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError, StarletteHTTPException
from fastapi.responses import JSONResponse

from plan_service.models.responses import Problem

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


def _problem(status: int, message: str, code: str) -> JSONResponse:
    problem = Problem(
        title=_TITLES.get(status, "Error"),
        status=status,
        detail=message,
        message=message,
        code=code,
    )
    return JSONResponse(problem.model_dump(), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # noqa: D401
    status = int(exc.status_code or 500)
    response = _problem(status, str(exc.detail or _TITLES.get(status, "Error")), f"HTTP_{status}")
    for name, value in (exc.headers or {}).items():
        response.headers[str(name)] = str(value)
    return response


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    # Malformed input is a 400 for this service, not FastAPI's default 422
    logger.warning("request_validation_failed", extra={"path": request.url.path, "errors": exc.errors()})
    return _problem(400, "Request validation failed", "PLAN_BAD_REQUEST")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return _problem(500, "Internal server error", "PLAN_INTERNAL_ERROR")


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
