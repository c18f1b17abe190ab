"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format
    • Automatic logging of handler errors

Usage:
    from capship.app.core.errors import (
        CapshipError,
        DecodeError,
        NotFoundError,
        register_error_handlers,
    )

    register_error_handlers(app, logger)
    raise NotFoundError("alert", reference="KAR0-0306112239-SW.xml")
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class CapshipError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class DecodeError(CapshipError):
    """A wire document could not be decoded (422)."""

    def __init__(self, document: str, reason: str, **details: Any):
        super().__init__(
            message=f"Cannot decode {document}: {reason}",
            status_code=422,
            error_code="DECODE_ERROR",
            details={"document": document, **details},
        )
        self.document = document
        self.reason = reason


class MalformedTimestamp(CapshipError):
    """A timestamp does not match the canonical format (422)."""

    def __init__(self, value: str):
        super().__init__(
            message=f"Malformed timestamp {value!r}",
            status_code=422,
            error_code="MALFORMED_TIMESTAMP",
            details={"value": value},
        )
        self.value = value


class NotFoundError(CapshipError):
    """Stored document not found (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        details = {"resource": resource, **identifiers}
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class PayloadTooLarge(CapshipError):
    """Upload exceeds the configured maximum size (413)."""

    def __init__(self, max_size: int):
        super().__init__(
            message=f"request body too large - Max filesize: {max_size}b",
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            details={"max_upload_size": max_size},
        )


class StorageError(CapshipError):
    """Filesystem operation failed (500)."""

    def __init__(self, operation: str, path: str, message: str = ""):
        super().__init__(
            message=f"{operation} {path} failed: {message}",
            status_code=500,
            error_code="IO_FAILURE",
            details={"operation": operation, "path": path},
        )


class InvalidArgument(CapshipError):
    """A required argument is missing or empty (400)."""

    def __init__(self, message: str, *, argument: Optional[str] = None):
        details = {"argument": argument} if argument else None
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_ARGUMENT",
            details=details,
        )


class ExternalServiceError(CapshipError):
    """Remote feed or alert fetch failed (502)."""

    def __init__(self, url: str, message: str = "", **details: Any):
        super().__init__(
            message=message or f"fetching {url} failed",
            status_code=502,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"url": url, **details},
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }

    if details:
        body["error"]["details"] = details

    if request is not None:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """Register all exception handlers on the FastAPI app, logging through ``logger``."""

    @app.exception_handler(CapshipError)
    async def handle_capship_error(request: Request, exc: CapshipError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log("%s -- %d [%s] details=%s", exc.message, exc.status_code, exc.error_code, exc.details)
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        return _build_error_response(
            500, "INTERNAL_ERROR", str(exc), request=request,
        )
