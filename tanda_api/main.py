"""
TandaXn reconciliation jobs - FastAPI Application

Each scheduled job is one stateless POST under ``/internal/jobs``.  The
external scheduler owns timing; this service owns execution.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from tanda_batch.channels import NotificationDispatcher
from tanda_config import TandaSettings, get_active_config
from tanda_kernel import __version__
from tanda_kernel.db.engine import create_tables, init_engine_from_url, reset_engine
from tanda_kernel.db.immutability import register_immutability_listeners
from tanda_kernel.domain.clock import Clock, SystemClock
from tanda_kernel.logging_config import configure_logging

from .routers import health_router, jobs_router


def create_app(
    settings: Optional[TandaSettings] = None,
    *,
    clock: Optional[Clock] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    create_schema: bool = False,
) -> FastAPI:
    """Build the application.

    ``settings`` defaults to ``get_active_config()``; ``create_schema``
    creates missing tables on startup (local runs and tests).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize logging and the database engine on startup."""
        active = settings or get_active_config()
        configure_logging(level=getattr(logging, active.logging.level, logging.INFO))
        init_engine_from_url(
            active.database.url,
            echo=active.database.echo,
            pool_size=active.database.pool_size,
        )
        if create_schema:
            create_tables()
        register_immutability_listeners()

        app.state.settings = active
        app.state.clock = clock or SystemClock()
        app.state.dispatcher = dispatcher or NotificationDispatcher.logging_only()
        yield
        reset_engine()

    app = FastAPI(
        lifespan=lifespan,
        title="TandaXn Reconciliation Jobs",
        description="Scheduled wallet, loan, swap, reminder and XnScore reconciliation.",
        version=__version__,
    )
    app.include_router(health_router)
    app.include_router(jobs_router)
    return app


# For running with: uvicorn tanda_api.main:app
app = create_app()
