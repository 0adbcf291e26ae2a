"""
HTTP Application Factory

DESIGN DECISION: The app owns exactly one Database handle. It is opened
when the app starts and disposed when it stops; flows receive it through
create_app_components, never through a global.

Components are built at start-up, not at import, so importing the app
module does not require model credentials.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from trackmoji import __version__
from trackmoji.agents import StructuredGenerator
from trackmoji.api.handlers import register_exception_handlers
from trackmoji.api.routes import health_router, transactions_router, users_router
from trackmoji.audit import AuditLogger, configure_logging
from trackmoji.config import Settings, get_settings, validate_all_settings
from trackmoji.orchestrator import create_app_components
from trackmoji.services.storage import Database


logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[StructuredGenerator] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Root settings; defaults to get_settings().
        generator: Structured-generation client; defaults to Gemini.
        database: Database handle; defaults to DatabaseSettings.url.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    database = database or Database(settings=settings.database)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        checks = validate_all_settings()
        if not all(checks.get(name) for name in ("gemini", "database", "app")):
            logger.warning("settings_incomplete", **checks)
        await database.connect()
        app.state.components = create_app_components(database, generator)
        app.state.started_at = time.monotonic()
        logger.info(
            "app_started",
            environment=app_settings.app_environment,
            api_prefix=app_settings.api_prefix,
        )
        try:
            yield
        finally:
            await database.dispose()
            logger.info("app_stopped")

    app = FastAPI(
        title="Trackmoji",
        version=__version__,
        debug=app_settings.debug_mode,
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    register_exception_handlers(app, app_settings, AuditLogger())

    prefix = app_settings.api_prefix.rstrip("/")
    app.include_router(health_router, prefix=prefix)
    app.include_router(transactions_router, prefix=prefix)
    app.include_router(users_router, prefix=prefix)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Welcome to trackmoji",
            "documentation": "/api-docs",
        }

    return app
