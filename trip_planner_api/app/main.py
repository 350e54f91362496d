"""
Main entrypoint for the Trip Planner API.

This module assembles the FastAPI application, sets up logging and
includes versioned routers.  The ``create_app`` function builds
and configures the app, which is then instantiated at module
import time as ``app``, e.g.::

    uvicorn trip_planner_api.app.main:app --reload

On startup the database migrations are applied and, unless
``RECOMPUTE_ON_STARTUP`` is disabled, every even/fixed event with a
cost is recomputed to repair allocations left stale by failed
background runs or manual database edits.
"""

import logging

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import setup_logging
from .services.recompute import SCOPE_ALL, RecomputeDispatcher


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Logging first so that imports and startup hooks can log.
    setup_logging(settings.log_level, settings.log_file or None, settings.engine_log_level or None)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        init_db()
        if settings.recompute_on_startup:
            outcomes = await run_in_threadpool(RecomputeDispatcher.run, "startup", None, SCOPE_ALL)
            logger.info("Startup recompute finished for %d events", len(outcomes))

    return app


app = create_app()
