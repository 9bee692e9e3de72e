"""Translate service errors into the JSON error shapes of the HTTP API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from geminiguard.errors import (
    GeminiGuardError,
    PayloadTooLargeError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    status = 413 if isinstance(exc, PayloadTooLargeError) else 400
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status, content={"error": exc.message})


def _describe_request_errors(exc: RequestValidationError) -> str:
    # Locations and reasons only; pydantic echoes the submitted value in "input".
    parts = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err["loc"][1:] if isinstance(item, str))
        parts.append(f"{loc or 'body'}: {err['msg']}")
    return "; ".join(parts)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = f"Invalid request: {_describe_request_errors(exc)}"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


async def _upstream_error(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error("Analysis failed on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={"error": "Analysis failed", "details": exc.message},
    )


async def _service_error(request: Request, exc: GeminiGuardError) -> JSONResponse:
    logger.error("Request failed on %s (%s): %s", request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=500,
        content={"error": "Analysis failed", "details": exc.message},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(UpstreamError, _upstream_error)
    app.add_exception_handler(GeminiGuardError, _service_error)
