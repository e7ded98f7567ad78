# portl/api/endpoints/checkout.py
"""
Checkout actions: order creation, vouchers, attendees, payment and
cancellation. Every response is ``{"data": ...}`` or ``{"error": ...}``.
"""
import logging

from fastapi import APIRouter, Depends, Request

from portl.api import deps
from portl.core.config import settings
from portl.core.limiter import limiter
from portl.schemas.checkout import (
    AttendeesUpdate,
    ContactDetails,
    OrderResponse,
    PaymentSessionResponse,
    PaymentVerificationResponse,
    VoucherApply,
)
from portl.schemas.enums import PaymentVerificationStatus
from portl.schemas.token import TokenPayload
from portl.services.checkout.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Checkout"])


def _order(order) -> OrderResponse:
    return OrderResponse.model_validate(order)


@router.post("/{tenant}/initialize")
@limiter.limit("20/minute")
def initialize_checkout(
    request: Request,
    tenant: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    """Create a PENDING order from the buyer's cart for this store (or resume one)."""
    order = service.initialize_checkout(
        user_id=current_user.sub,
        user_email=current_user.email,
        tenant_subdomain=tenant,
    )
    return {"data": _order(order)}


@router.get("/{tenant}/pending")
def get_pending_order(
    tenant: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = service.get_pending_order_for_tenant(user_id=current_user.sub, tenant_subdomain=tenant)
    return {"data": _order(order) if order else None}


@router.get("/orders/{order_id}")
def get_order_for_checkout(
    order_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = service.get_order_for_checkout(user_id=current_user.sub, order_id=order_id)
    return {"data": _order(order)}


@router.post("/orders/{order_id}/voucher")
def apply_voucher_code(
    order_id: str,
    voucher_in: VoucherApply,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = service.apply_voucher_code(
        user_id=current_user.sub, order_id=order_id, code=voucher_in.code
    )
    return {"data": _order(order)}


@router.delete("/orders/{order_id}/voucher")
def remove_voucher_code(
    order_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = service.remove_voucher_code(user_id=current_user.sub, order_id=order_id)
    return {"data": _order(order)}


@router.put("/orders/{order_id}/attendees")
def save_attendees(
    order_id: str,
    attendees_in: AttendeesUpdate,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    attendees = service.save_attendees(
        user_id=current_user.sub, order_id=order_id, attendees=attendees_in.attendees
    )
    return {"data": {"order_id": order_id, "count": len(attendees)}}


@router.post("/orders/{order_id}/payment-session")
@limiter.limit("10/minute")
async def create_payment_session(
    request: Request,
    order_id: str,
    contact_in: ContactDetails,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    """Open a hosted PayMongo checkout; the client redirects to ``checkout_url``."""
    order = await service.create_payment_session(
        user_id=current_user.sub,
        order_id=order_id,
        contact_email=contact_in.contact_email,
        contact_phone=contact_in.contact_phone,
        attendees=contact_in.attendees,
    )
    return {
        "data": PaymentSessionResponse(
            order_id=order.id,
            session_id=order.payment_session_id,
            checkout_url=order.payment_checkout_url,
            expires_at=order.expires_at,
        )
    }


@router.post("/orders/{order_id}/confirm-free")
def confirm_free_order(
    order_id: str,
    contact_in: ContactDetails,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    result = service.confirm_free_order(
        user_id=current_user.sub,
        order_id=order_id,
        contact_email=contact_in.contact_email,
        contact_phone=contact_in.contact_phone,
        attendees=contact_in.attendees,
    )
    return {"data": _order(result.order)}


@router.post("/orders/{order_id}/cancel")
async def cancel_order(
    order_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    order = await service.cancel_order(user_id=current_user.sub, order_id=order_id)
    return {"data": _order(order)}


@router.post("/orders/{order_id}/verify-payment")
@limiter.limit("60/minute")
async def verify_payment(
    request: Request,
    order_id: str,
    current_user: TokenPayload = Depends(deps.get_current_user),
    service: OrderService = Depends(deps.get_order_service),
):
    """
    Polling fallback after the gateway redirects back.

    The client polls every ``poll_interval_seconds`` up to
    ``max_poll_attempts`` times while the status is "pending".
    """
    status = await service.verify_and_confirm_payment(user_id=current_user.sub, order_id=order_id)
    order = None
    if status == PaymentVerificationStatus.CONFIRMED:
        order = _order(service.get_order_for_checkout(user_id=current_user.sub, order_id=order_id))
    return {
        "data": PaymentVerificationResponse(
            order_id=order_id,
            status=status,
            poll_interval_seconds=settings.PAYMENT_POLL_INTERVAL_SECONDS,
            max_poll_attempts=settings.PAYMENT_POLL_MAX_ATTEMPTS,
            order=order,
        )
    }
