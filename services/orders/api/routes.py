from fastapi import APIRouter, Depends, HTTPException, Request

from services.orders.application.schemas import OrderDraft, OrderRead
from services.orders.application.service import OrderNotFoundError, OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


@router.get("/", response_model=list[OrderRead])
def list_orders(service: OrderService = Depends(get_order_service)):
    return [OrderRead.from_domain(order) for order in service.list()]


@router.post("/", response_model=OrderRead, status_code=201)
def create_order(payload: OrderDraft, service: OrderService = Depends(get_order_service)):
    return OrderRead.from_domain(service.create(payload))


@router.get("/{order_id}", response_model=OrderRead)
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        order = service.get(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return OrderRead.from_domain(order)
