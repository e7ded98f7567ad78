# portl/api/endpoints/webhooks.py
"""
PayMongo webhook handler.

Once the signature checks out the handler always answers 200, so PayMongo
does not keep retrying events we have already logged. The polling fallback
(``verify-payment``) covers a confirmation that failed here.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from portl import crud
from portl.core.config import settings
from portl.db.session import get_db
from portl.schemas.enums import OrderStatus
from portl.services.checkout.order_service import OrderService, PaymentConfirmation
from portl.services.notifications import NotificationTrigger
from portl.services.payment.provider_interface import WebhookEvent, WebhookEventType
from portl.services.payment.providers.paymongo_provider import (
    parse_paymongo_event,
    verify_paymongo_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])


@router.post("/paymongo")
async def paymongo_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    paymongo_signature: str = Header(None, alias="paymongo-signature"),
):
    """
    Handle PayMongo webhook events.

    Events handled:
    - checkout_session.payment.paid: confirm the order and issue tickets
    """
    if not settings.PAYMONGO_WEBHOOK_SECRET:
        logger.error("PAYMONGO_WEBHOOK_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook not configured",
        )

    if not paymongo_signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing paymongo-signature header",
        )

    # Get the raw body
    payload = await request.body()

    if not verify_paymongo_signature(payload, paymongo_signature, settings.PAYMONGO_WEBHOOK_SECRET):
        logger.warning("Rejected PayMongo webhook with an invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature",
        )

    try:
        event = parse_paymongo_event(payload)
    except ValueError as e:
        logger.error(f"Unparseable PayMongo webhook: {e}")
        return {"received": True, "ignored": "invalid payload"}

    logger.info(f"Received PayMongo webhook: {event.raw_type} ({event.event_id})")

    if event.event_type != WebhookEventType.CHECKOUT_SESSION_PAYMENT_PAID:
        return {"received": True, "ignored": event.raw_type}

    try:
        return handle_checkout_session_paid(db, event, background_tasks)
    except Exception as e:
        logger.exception(f"Error processing PayMongo event {event.event_id}: {e}")
        return {"received": True, "error": "processing failed"}


def handle_checkout_session_paid(
    db: Session, event: WebhookEvent, background_tasks: BackgroundTasks
) -> dict:
    """
    Confirm the order a paid checkout session belongs to.

    Process:
    1. Look the order up by its checkout session id, or by the order id in
       the session metadata when a newer session has replaced this one
    2. Skip orders that are no longer PENDING (already confirmed, or cancelled)
    3. Confirm with the paid payment from the event
    """
    session = event.session
    if session is None:
        logger.warning(f"PayMongo event {event.event_id} carries no checkout session")
        return {"received": True, "ignored": "no session"}

    order = crud.order.get_by_payment_session(db, session_id=session.session_id)
    if not order and session.metadata.get("order_id"):
        order = crud.order.get(db, id=session.metadata["order_id"])
        if order:
            logger.warning(
                f"Checkout session {session.session_id} was replaced on order {order.order_number}"
            )
    if not order:
        logger.warning(f"No order found for checkout session {session.session_id}")
        return {"received": True, "ignored": "unknown session"}

    if order.status != OrderStatus.PENDING.value:
        if order.status == OrderStatus.CANCELLED.value:
            # Paid after the hold was released; needs a manual refund.
            logger.error(
                f"Payment received for cancelled order {order.order_number} "
                f"(session {session.session_id})"
            )
        else:
            logger.info(f"Order {order.order_number} already {order.status}, skipping")
        return {"received": True, "ignored": f"order {order.status}"}

    paid = session.paid_payment
    if paid is None:
        logger.warning(f"Checkout session {session.session_id} has no paid payment yet")
        return {"received": True, "ignored": "no paid payment"}

    service = OrderService(db, notifier=NotificationTrigger(background_tasks))
    result = service.confirm_order_from_payment(
        order.id, PaymentConfirmation.from_provider("paymongo", paid, session.session_id)
    )
    return {"received": True, "order_id": result.order.id, "status": result.order.status}
