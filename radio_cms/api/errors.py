"""
Error handling for the admin API.

Every error leaves the API in the same shape:

    {
        "error": {
            "code": "NOT_FOUND",
            "message": "articles item 42 not found",
            "details": {"contentType": "articles", "id": "42"}
        }
    }

Trash errors carry their own status code and error code; authentication
and authorization failures are raised by the dependencies below.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..soft_delete.exceptions import SoftDeleteError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base exception for request-level failures outside the trash service."""

    status_code = 400
    error_code = "BAD_REQUEST"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to its JSON body."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class AuthenticationError(ApiError):
    """Missing, malformed or expired session token (401)."""

    status_code = 401
    error_code = "AUTHENTICATION_ERROR"


class AuthorizationError(ApiError):
    """Authenticated actor lacks the required role (403)."""

    status_code = 403
    error_code = "AUTHORIZATION_ERROR"


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register the API's exception handlers.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(SoftDeleteError)
    async def soft_delete_exception_handler(
        request: Request, exc: SoftDeleteError
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}"
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ApiError)
    async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
        logger.warning(
            f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}"
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=headers
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            f"Unexpected error on {request.method} {request.url.path}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": {},
                }
            },
        )
