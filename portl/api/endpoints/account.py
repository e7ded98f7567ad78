# portl/api/endpoints/account.py
from fastapi import APIRouter, Depends

from portl.api import deps
from portl.schemas.checkout import (
    OrderDetailResponse,
    OrderResponse,
    PaymentResponse,
    TicketResponse,
)
from portl.schemas.token import TokenPayload
from portl.services.checkout.order_service import OrderService

router = APIRouter(tags=["Account"])


@router.get("/orders")
def get_my_orders(
    skip: int = 0,
    limit: int = 50,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    orders = service.get_my_orders(user_id=current_user.sub, skip=skip, limit=limit)
    return {"data": [OrderResponse.model_validate(o) for o in orders]}


@router.get("/orders/{order_id}")
def get_my_order(
    order_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = service.get_order_for_checkout(user_id=current_user.sub, order_id=order_id)
    payment = service.get_order_payment(user_id=current_user.sub, order_id=order_id)
    detail = OrderDetailResponse(
        **OrderResponse.model_validate(order).model_dump(),
        payment=PaymentResponse.model_validate(payment) if payment else None,
    )
    return {"data": detail}


@router.get("/tickets")
def get_my_tickets(
    skip: int = 0,
    limit: int = 100,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    tickets = service.get_my_tickets(user_id=current_user.sub, skip=skip, limit=limit)
    return {"data": [TicketResponse.model_validate(t) for t in tickets]}
