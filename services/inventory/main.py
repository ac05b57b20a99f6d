"""
Inventory Microservice

Holds the stock catalog and reserves stock for orders.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from shared.core import (
    HealthStatus,
    RequestLoggingMiddleware,
    ServiceHealth,
    check_result,
    get_logger,
    setup_logging,
)

from services.inventory.api.routes import router as inventory_router
from services.inventory.application.allocator import InventoryAllocator
from services.inventory.core_settings import Settings, get_settings
from services.inventory.infrastructure.seed import build_catalog

SERVICE_DESCRIPTION = "Inventory management microservice"

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None,
               allocator: Optional[InventoryAllocator] = None) -> FastAPI:
    settings = settings or get_settings()
    allocator = allocator or InventoryAllocator(build_catalog(settings.INVENTORY_SEED_FILE))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION} "
            f"with {len(allocator.catalog)} catalog records"
        )
        yield
        logger.info(f"Shutting down {settings.SERVICE_NAME}")

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description=SERVICE_DESCRIPTION,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.allocator = allocator

    app.add_middleware(RequestLoggingMiddleware)

    health_service = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION)
    health_service.register_check(
        "catalog:records",
        lambda: check_result(
            HealthStatus.PASS if len(allocator.catalog) else HealthStatus.WARN,
            "datastore",
            observedValue=len(allocator.catalog),
        ),
    )
    app.include_router(health_service.create_health_router())
    app.include_router(inventory_router)

    @app.get("/")
    async def root():
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "running",
            "docs": "/api/docs"
        }

    return app


_settings = get_settings()
setup_logging(
    service_name=_settings.SERVICE_NAME,
    level=_settings.LOG_LEVEL,
    version=_settings.SERVICE_VERSION,
    environment=_settings.ENVIRONMENT,
)
app = create_app(_settings)
