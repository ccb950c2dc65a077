"""HTTP entry point: billing endpoints and the payment gateway webhook."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from tortoise import Tortoise

from roomledger.api.errors import register_error_handlers
from roomledger.api.routers import health, invoices, payments, readings
from roomledger.config import Settings, settings as default_settings
from roomledger.core.db import TORTOISE_ORM
from roomledger.services.scheduler import SchedulerService
from roomledger.services.wiring import Services, build_notifier, build_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    services: Services | None = None,
    init_db: bool = True,
) -> FastAPI:
    settings = settings or default_settings
    services = services or build_services(settings, build_notifier(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_db:
            logger.info("Initializing database...")
            await Tortoise.init(config=TORTOISE_ORM)
            logger.info("Database initialized.")

        scheduler = None
        if settings.SCHEDULER_ENABLED:
            scheduler = SchedulerService(
                billing_service=services.billing,
                lifecycle_service=services.lifecycle,
                scheduler=AsyncIOScheduler(timezone="UTC"),
            )
            scheduler.start()
        try:
            yield
        finally:
            if scheduler:
                scheduler.shutdown()
            if init_db:
                await Tortoise.close_connections()
                logger.info("Connections closed.")

    app = FastAPI(title="RoomLedger API", version="0.1.0", lifespan=lifespan)
    app.state.services = services
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(readings.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")
    app.include_router(payments.router)
    return app


def main():
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, default_settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
