"""
Error Taxonomy and Global Error Handling

This module defines the service's exception hierarchy and the FastAPI
handlers that translate it into HTTP responses.

Design Goals
------------
- One exception class per failure category, each carrying its HTTP status
- Never leak internal exception details for unexpected failures
- Always return deterministic, machine-readable error payloads:
  ``{"error": str, "details"?: str}``
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("docqa.errors")


# ---------------------------------------------------------------------
# Exception Hierarchy
# ---------------------------------------------------------------------

class ServiceError(RuntimeError):
    """
    Base class for every error the service reports to callers.

    Attributes
    ----------
    status_code : int
        HTTP status used when the error reaches the API boundary.
    message : str
        Short, client-safe description.
    details : Optional[str]
        Optional extra context (upstream status, warning text, ...).
    """

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ServiceError):
    """Malformed request shape, empty question set, non-HTTP URL."""

    status_code = 400


class ChunkingError(ValidationError):
    """Raised when text cannot be chunked (empty text, non-positive window)."""


class FetchError(ServiceError):
    """Document download failed or the upstream answered with an error."""

    status_code = 502


class PayloadTooLargeError(FetchError):
    """Document exceeds the configured download size limit."""

    status_code = 413


class EmptyDocumentError(ServiceError):
    """Every extraction tier was exhausted without producing text."""

    status_code = 422


class EmbeddingServiceError(ServiceError):
    """An embedding batch call failed; no partial results are returned."""

    status_code = 502


class RetrievalError(ServiceError):
    """Malformed vectors (empty, mismatched length, zero magnitude)."""

    status_code = 500


class SynthesisError(ServiceError):
    """Answer generation failed for a single question."""

    status_code = 502


class StoreAdapterError(ServiceError):
    """Persisted index write or delete failed."""

    status_code = 500


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def service_error_handler(
    request: Request,
    exc: ServiceError,
) -> JSONResponse:
    """
    Render a ServiceError with its own status code and message.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s during %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
        )
    else:
        logger.info(
            "Rejected %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Render framework HTTP errors (auth, 404, 405) in the service error shape.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Convert FastAPI body validation failures into 400 responses.

    The first error's message becomes ``error``; the full location list is
    summarized in ``details``.
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg", "Invalid request"))
    # pydantic prefixes custom validator messages with "Value error, "
    message = message.removeprefix("Value error, ")

    locations = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        for err in errors
    ]

    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "details": "Invalid fields: " + ", ".join(loc or "body" for loc in locations),
        },
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
