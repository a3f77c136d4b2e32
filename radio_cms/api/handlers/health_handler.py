"""
Health Check Handler

Reports service status and whether the content store answers.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ... import __version__

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(request: Request) -> Any:
    """
    Health check endpoint.

    Returns 200 when the database answers a trivial query, 503 otherwise.
    """
    body: Dict[str, Any] = {
        "status": "healthy",
        "service": request.app.state.config.application_name,
        "version": __version__,
        "database": "ok",
    }
    try:
        with request.app.state.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        body.update({"status": "unhealthy", "database": "unavailable"})
        return JSONResponse(status_code=503, content=body)
    return body
