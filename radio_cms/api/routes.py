"""
Route registration for the admin API.

    /health             service and database status
    /admin/...          trash, delete, restore, protection (authenticated)
    /{content_type}     public listings of active items
"""

from fastapi import FastAPI

from .handlers import content_handler, health_handler, trash_handler


def register_routes(app: FastAPI) -> None:
    """
    Register all API routes.

    The public catch-all ``/{content_type}`` router goes last so that
    ``/health`` and ``/admin`` match first.
    """
    app.include_router(health_handler.router, tags=["Health"])
    app.include_router(trash_handler.router, prefix="/admin", tags=["Trash"])
    app.include_router(content_handler.router, tags=["Content"])
