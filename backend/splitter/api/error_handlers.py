"""
Custom exception handlers for FastAPI.
Provides clear, actionable error messages for validation, splitting and server errors.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from splitter.core.exceptions import (
    ExtractionFailure,
    ImageRejected,
    InvalidSplitInput,
    ReconciliationCancelled,
    SplitterError,
)
from splitter.core.observability import sentry_capture

logger = logging.getLogger(__name__)


def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Multipart bodies hold file objects and are not echoed back
    body = exc.body if isinstance(exc.body, (dict, list, str)) else None
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors()),
            "body": jsonable_encoder(body),
        },
    )


def splitter_exception_handler(request: Request, exc: SplitterError):
    if isinstance(exc, ImageRejected):
        return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"error": exc.error, "message": exc.message})
    if isinstance(exc, ExtractionFailure):
        logger.warning("[api] extraction failed after %d attempts: %s", exc.attempts, exc.errors)
        return JSONResponse(
            status_code=HTTP_502_BAD_GATEWAY,
            content={
                "error": "Failed to parse receipt",
                "message": "We couldn't read this receipt. Please try again with a clearer photo.",
                "details": exc.errors,
            },
        )
    if isinstance(exc, InvalidSplitInput):
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content={"error": "Invalid split", "details": str(exc)},
        )
    if isinstance(exc, ReconciliationCancelled):
        return JSONResponse(status_code=HTTP_409_CONFLICT, content={"error": "Receipt scan cancelled"})
    return generic_exception_handler(request, exc)


def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("[api] unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    sentry_capture(exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "details": str(exc),
        },
    )
