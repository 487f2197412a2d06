from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from absence_coverage.api.health import router as health_router
from absence_coverage.api.router import api_router
from absence_coverage.config import get_settings
from absence_coverage.db import dispose_engine, get_session_factory
from absence_coverage.exceptions import setup_exception_handlers
from absence_coverage.middleware import setup_middleware
from absence_coverage.ports.backfill import InMemoryBackfillManagement, set_backfill_port
from absence_coverage.ports.pto import InMemoryPtoManagement, set_pto_port
from absence_coverage.ports.training import InMemoryTrainingManagement, set_training_port
from absence_coverage.repositories.backfill import SqlBackfillManagement
from absence_coverage.repositories.pto import SqlPtoManagement
from absence_coverage.repositories.training import SqlTrainingManagement

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from absence_coverage.config import Settings

logger = logging.getLogger(__name__)


def configure_ports(settings: Settings) -> None:
    """Install the storage ports selected by ``storage_backend``."""
    if settings.storage_backend == "database":
        factory = get_session_factory()
        set_pto_port(SqlPtoManagement(factory))
        set_training_port(SqlTrainingManagement(factory))
        set_backfill_port(
            SqlBackfillManagement(
                factory,
                hourly_rate=settings.default_backfill_hourly_rate,
                capacity_hours=settings.monthly_backfill_capacity_hours,
                total_needed=settings.backfills_needed_per_absence,
            )
        )
    else:
        set_pto_port(InMemoryPtoManagement())
        set_training_port(InMemoryTrainingManagement())
        set_backfill_port(
            InMemoryBackfillManagement(
                hourly_rate=settings.default_backfill_hourly_rate,
                capacity_hours=settings.monthly_backfill_capacity_hours,
                total_needed=settings.backfills_needed_per_absence,
            )
        )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_ports(settings)
    logger.info(
        "Starting %s v%s [%s] with %s storage",
        settings.app_name,
        settings.app_version,
        settings.environment,
        settings.storage_backend,
    )
    yield
    logger.info("Shutting down %s", settings.app_name)
    await dispose_engine()


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
