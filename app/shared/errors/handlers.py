"""
Centralized error handlers for FastAPI.

Maps custody domain errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.custody.errors import (
    ActivePositionsError,
    CustodyConflictError,
    CustodyDomainError,
    CustodyServiceNotFoundError,
    CustodyStorageError,
    CustodyValidationError,
    ReferenceNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_409 = 409
HTTP_500 = 500
HTTP_503 = 503


def _error_response(
    status_code: int,
    error: str,
    detail: Optional[str] = None,
    **extra: Any,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, Any] = {"error": error}
    if detail:
        body["detail"] = detail
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(CustodyValidationError)
    async def handle_validation(
        _request: Request, exc: CustodyValidationError
    ) -> JSONResponse:
        """Handle requests that break a field or business rule."""
        logger.warning("Custody validation failed: %s", exc.message)
        return _error_response(HTTP_400, "Invalid request", exc.message)

    @app.exception_handler(ReferenceNotFoundError)
    async def handle_reference(
        _request: Request, exc: ReferenceNotFoundError
    ) -> JSONResponse:
        """Handle references to unknown custodians or currencies."""
        logger.warning("Unresolved reference: %s", exc.message)
        return _error_response(HTTP_400, "Unknown reference", exc.message)

    @app.exception_handler(ActivePositionsError)
    async def handle_active_positions(
        _request: Request, exc: ActivePositionsError
    ) -> JSONResponse:
        """Handle deletes blocked by active positions."""
        logger.warning(
            "Delete blocked for custody service %s: %d active positions",
            exc.service_id,
            exc.active_position_count,
        )
        return _error_response(
            HTTP_409,
            "Conflict",
            exc.reason,
            active_position_count=exc.active_position_count,
        )

    @app.exception_handler(CustodyConflictError)
    async def handle_conflict(
        _request: Request, exc: CustodyConflictError
    ) -> JSONResponse:
        """Handle uniqueness conflicts."""
        logger.warning("Custody conflict: %s", exc.message)
        return _error_response(HTTP_409, "Conflict", exc.message)

    @app.exception_handler(CustodyServiceNotFoundError)
    async def handle_not_found(
        _request: Request, exc: CustodyServiceNotFoundError
    ) -> JSONResponse:
        """Handle missing custody services."""
        logger.warning("Custody service not found: %s", exc.service_id or "default")
        return _error_response(HTTP_404, "Custody service not found", exc.message)

    @app.exception_handler(CustodyStorageError)
    async def handle_storage(
        _request: Request, exc: CustodyStorageError
    ) -> JSONResponse:
        """Handle backing store failures."""
        logger.error("Custody storage error during %s", exc.operation)
        return _error_response(HTTP_503, "Storage unavailable")

    @app.exception_handler(CustodyDomainError)
    async def handle_custody_domain(
        _request: Request, exc: CustodyDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled custody domain errors."""
        logger.error("Unhandled custody domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
