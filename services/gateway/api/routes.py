from typing import Dict, List

from fastapi import APIRouter, Depends, Query, Request, status

from services.gateway.application.orchestrator import OrderOrchestrator
from services.gateway.application.schemas import INVENTORY_CHECK_FAILED, GatewayOutcome
from services.gateway.resilience import CircuitBreakerRegistry
from services.inventory.application.schemas import InventoryRead
from services.orders.application.schemas import OrderDraft
from .errors import error_response

router = APIRouter(prefix="/api/v1", tags=["gateway"])


def get_orchestrator(request: Request) -> OrderOrchestrator:
    return request.app.state.orchestrator


def get_registry(request: Request) -> CircuitBreakerRegistry:
    return request.app.state.breakers


def _respond(request: Request, outcome: GatewayOutcome):
    if outcome.success:
        return outcome
    return error_response(request, outcome.error_code, outcome.error_message, outcome.error_category)


@router.post("/orders", response_model=GatewayOutcome, status_code=status.HTTP_201_CREATED)
async def create_order_with_inventory(payload: OrderDraft, request: Request,
                                      orchestrator: OrderOrchestrator = Depends(get_orchestrator)):
    return _respond(request, await orchestrator.create_order_with_inventory(payload))


@router.post("/orders/simple", response_model=GatewayOutcome, status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderDraft, request: Request,
                       orchestrator: OrderOrchestrator = Depends(get_orchestrator)):
    return _respond(request, await orchestrator.create_order_only(payload))


@router.get("/orders/{order_id}", response_model=GatewayOutcome)
async def get_order(order_id: str, request: Request,
                    orchestrator: OrderOrchestrator = Depends(get_orchestrator)):
    return _respond(request, await orchestrator.get_order(order_id))


@router.get("/inventory", response_model=List[InventoryRead])
async def check_inventory(request: Request,
                          product_ids: List[str] = Query(...),
                          orchestrator: OrderOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.check_inventory(product_ids)
    if not result.ok:
        return error_response(request, INVENTORY_CHECK_FAILED, str(result.error), result.category)
    return [InventoryRead.from_domain(record) for record in result.value]


@router.get("/circuit-breakers")
def circuit_breakers(registry: CircuitBreakerRegistry = Depends(get_registry)) -> Dict[str, dict]:
    return {service: snapshot.as_dict() for service, snapshot in registry.snapshots().items()}
