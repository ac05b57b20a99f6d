"""
Order Microservice

Creates confirmed orders and serves them back by id.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from shared.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging

from services.orders.api.routes import router as orders_router
from services.orders.application.service import OrderService
from services.orders.core_settings import Settings, get_settings

SERVICE_DESCRIPTION = "Order management microservice"

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None,
               order_service: Optional[OrderService] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION}")
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
    app.state.order_service = order_service or OrderService(
        priority_delivery_days=settings.PRIORITY_DELIVERY_DAYS,
        standard_delivery_days=settings.STANDARD_DELIVERY_DAYS,
    )

    app.add_middleware(RequestLoggingMiddleware)

    health_service = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION)
    app.include_router(health_service.create_health_router())
    app.include_router(orders_router)

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
