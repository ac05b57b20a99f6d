"""
Order Gateway

Creates orders and reserves their stock across the order and inventory
services, with a circuit breaker, retries and a timeout around every
downstream call.
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

from services.gateway.api.errors import register_error_handlers
from services.gateway.api.routes import router as gateway_router
from services.gateway.application.orchestrator import OrderOrchestrator
from services.gateway.core_settings import INVENTORY_SERVICE, ORDER_SERVICE, Settings, get_settings
from services.gateway.infrastructure.backends import (
    HttpInventoryBackend,
    HttpOrderBackend,
    InventoryBackend,
    LocalInventoryBackend,
    LocalOrderBackend,
    OrderBackend,
)
from services.gateway.resilience import CircuitBreakerRegistry, CircuitState, ResilientCaller
from services.inventory.application.allocator import InventoryAllocator
from services.inventory.infrastructure.seed import build_catalog
from services.orders.application.service import OrderService

SERVICE_DESCRIPTION = "Order fulfillment gateway"

logger = get_logger(__name__)

CIRCUIT_HEALTH = {
    CircuitState.CLOSED: HealthStatus.PASS,
    CircuitState.HALF_OPEN: HealthStatus.WARN,
    CircuitState.OPEN: HealthStatus.WARN,
}


def build_order_backend(settings: Settings) -> OrderBackend:
    if settings.ORDER_SERVICE_URL:
        return HttpOrderBackend(settings.ORDER_SERVICE_URL)
    return LocalOrderBackend(OrderService())


def build_inventory_backend(settings: Settings) -> InventoryBackend:
    if settings.INVENTORY_SERVICE_URL:
        return HttpInventoryBackend(settings.INVENTORY_SERVICE_URL)
    return LocalInventoryBackend(InventoryAllocator(build_catalog()))


def build_registry(settings: Settings) -> CircuitBreakerRegistry:
    return CircuitBreakerRegistry({
        service: settings.resilience_for(service).circuit_breaker
        for service in (ORDER_SERVICE, INVENTORY_SERVICE)
    })


def build_orchestrator(settings: Settings, registry: CircuitBreakerRegistry,
                       order_backend: OrderBackend, inventory_backend: InventoryBackend,
                       **retry_kwargs) -> OrderOrchestrator:
    order_calls = ResilientCaller.from_config(
        ORDER_SERVICE, registry.get(ORDER_SERVICE),
        settings.resilience_for(ORDER_SERVICE), **retry_kwargs
    )
    inventory_calls = ResilientCaller.from_config(
        INVENTORY_SERVICE, registry.get(INVENTORY_SERVICE),
        settings.resilience_for(INVENTORY_SERVICE), **retry_kwargs
    )
    return OrderOrchestrator(order_backend, inventory_backend, order_calls, inventory_calls)


def create_app(settings: Optional[Settings] = None,
               order_backend: Optional[OrderBackend] = None,
               inventory_backend: Optional[InventoryBackend] = None,
               registry: Optional[CircuitBreakerRegistry] = None,
               **retry_kwargs) -> FastAPI:
    settings = settings or get_settings()
    order_backend = order_backend or build_order_backend(settings)
    inventory_backend = inventory_backend or build_inventory_backend(settings)
    registry = registry or build_registry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION}",
            extra={'extra_fields': {
                'order_backend': type(order_backend).__name__,
                'inventory_backend': type(inventory_backend).__name__,
            }}
        )
        yield
        for backend in (order_backend, inventory_backend):
            close = getattr(backend, "close", None)
            if close is not None:
                await close()
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
    app.state.breakers = registry
    app.state.orchestrator = build_orchestrator(
        settings, registry, order_backend, inventory_backend, **retry_kwargs
    )

    app.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(app)

    health_service = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION)
    for service in (ORDER_SERVICE, INVENTORY_SERVICE):
        breaker = registry.get(service)
        health_service.register_check(
            f"circuit:{service}",
            lambda breaker=breaker: check_result(
                CIRCUIT_HEALTH[breaker.state],
                "component",
                observedValue=breaker.state.value,
            ),
        )
    app.include_router(health_service.create_health_router())
    app.include_router(gateway_router)

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
