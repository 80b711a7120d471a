"""Exception handlers translating errors into ``{data, error}`` envelopes."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.errors import ConflictGateError, GenerationFailure, TripRevisionError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, error: str, data: object = None, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"data": data, "error": error},
        headers=headers,
    )


async def handle_domain_error(request: Request, exc: TripRevisionError) -> JSONResponse:
    """Domain errors carry their own status code."""
    log_data = {"path": request.url.path, "code": exc.code, **exc.details}

    if isinstance(exc, GenerationFailure):
        logger.error(f"Generation failed: {exc.message}", extra={"structured": log_data})
    else:
        logger.warning(f"Request rejected: {exc.message}", extra={"structured": log_data})

    data = None
    if isinstance(exc, ConflictGateError):
        data = {"conflicts": [c.model_dump(mode="json") for c in exc.conflicts]}
    return _envelope(exc.status_code, exc.message, data)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """FastAPI/Starlette HTTP errors (401, 404 routes, 429 ...)."""
    return _envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are 400, not 422."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    logger.warning(f"Invalid request on {request.url.path}: {location} {message}")
    return _envelope(status.HTTP_400_BAD_REQUEST, f"{location}: {message}" if location else message)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    """Anything else is a 500 with a generic message."""
    logger.exception(f"Unhandled error on {request.url.path}", exc_info=exc)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Install all envelope exception handlers on the app."""
    app.add_exception_handler(TripRevisionError, handle_domain_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)
