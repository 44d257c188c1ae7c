import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pennywise.api.routes import categories, imports, mappings, reports, settings, transactions
from pennywise.core import settings as core_settings
from pennywise.logger import get_logger, setup_logging
from pennywise.manager import TrackerService

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        core_settings.log_environment()

        if not os.getenv("STORE_URL") or not os.getenv("STORE_TOKEN"):
            logger.warning(
                "STORE_URL or STORE_TOKEN not set. Data will only be kept in memory."
            )

        service = TrackerService(data_dir=core_settings.DATA_DIR)
        await service.load()
        app.state.service = service

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await service.aclose()

    app = FastAPI(title="Pennywise", lifespan=lifespan)

    app.include_router(transactions.router)
    app.include_router(imports.router)
    app.include_router(categories.router)
    app.include_router(mappings.router)
    app.include_router(reports.router)
    app.include_router(settings.router)

    return app


app = create_app()
