"""
Admin API application.

Usage:
    uvicorn radio_cms.api.app:create_application --factory

    # Or programmatically
    from radio_cms.api import create_application
    app = create_application()
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from .. import __version__
from ..audit_trail import AuditLogger
from ..config import CMSConfig, get_config
from ..database import create_db_engine, create_session_factory
from ..soft_delete import ContentTypeRegistry, default_registry
from .errors import setup_exception_handlers
from .routes import register_routes

logger = logging.getLogger(__name__)


def create_application(
    config: Optional[CMSConfig] = None,
    engine: Optional[Engine] = None,
    registry: Optional[ContentTypeRegistry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Configuration (global config if omitted)
        engine: Database engine; one is created from the configuration and
            disposed on shutdown when omitted
        registry: Content types exposed by the API

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()
    owns_engine = engine is None
    engine = engine if engine is not None else create_db_engine(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"Starting {config.application_name} API "
            f"({config.environment}, version {__version__})"
        )
        yield
        if owns_engine:
            engine.dispose()
        logger.info(f"{config.application_name} API shut down")

    app = FastAPI(
        title=f"{config.application_name} Admin API",
        version=__version__,
        docs_url="/docs" if config.environment != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.registry = registry if registry is not None else default_registry()
    app.state.audit_logger = AuditLogger(
        application_name=config.application_name, enabled=config.audit_enabled
    )

    setup_exception_handlers(app)
    register_routes(app)

    return app
