# portl/services/checkout/order_service.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from portl import crud
from portl.core.config import settings
from portl.core.exceptions import (
    CheckoutError,
    ForbiddenError,
    InvalidOrderStateError,
    InventoryConflictError,
    NotFoundError,
    PaymentAmountMismatchError,
)
from portl.core.urls import tenant_url
from portl.models.order import Order
from portl.models.order_item import OrderItem
from portl.models.payment import Payment
from portl.models.pending_attendee import PendingAttendee
from portl.models.ticket import Ticket
from portl.schemas.checkout import AttendeeIn
from portl.schemas.enums import OrderStatus, PaymentVerificationStatus
from portl.services import inventory, pricing
from portl.services.notifications import NotificationTrigger
from portl.services.payment.provider_factory import get_payment_provider
from portl.services.payment.provider_interface import (
    CheckoutLineItem,
    CreateCheckoutSessionParams,
    PaymentError,
    PaymentProviderInterface,
    ProviderPayment,
)

logger = logging.getLogger(__name__)

# PayMongo amounts are in centavos
MINOR_UNITS_PER_UNIT = 100
ORDER_NUMBER_ATTEMPTS = 5
CONFIRMED_STATES = {
    OrderStatus.CONFIRMED.value,
    OrderStatus.REFUNDED.value,
    OrderStatus.PARTIALLY_REFUNDED.value,
}


@dataclass
class PaymentConfirmation:
    """The payment an order is being confirmed on."""

    provider_code: str
    payment_id: Optional[str]
    amount: int  # smallest currency unit
    currency: str
    session_id: Optional[str] = None
    payment_method_type: Optional[str] = None
    paid_at: Optional[datetime] = None

    @classmethod
    def from_provider(
        cls, provider_code: str, payment: ProviderPayment, session_id: Optional[str]
    ) -> "PaymentConfirmation":
        return cls(
            provider_code=provider_code,
            payment_id=payment.payment_id,
            amount=payment.amount,
            currency=payment.currency,
            session_id=session_id,
            payment_method_type=payment.payment_method_type,
            paid_at=payment.paid_at,
        )


@dataclass
class ConfirmationResult:
    order: Order
    tickets: List[Ticket]
    newly_confirmed: bool


class OrderService:
    """
    Order lifecycle: checkout, payment, confirmation, cancellation, expiry.

    PENDING -> CONFIRMED and PENDING -> CANCELLED are the only transitions.
    Both are conditional UPDATEs, so a webhook, a polling request and the
    reaper can race on the same order and exactly one of them wins.
    """

    def __init__(
        self,
        db: Session,
        provider: Optional[PaymentProviderInterface] = None,
        notifier: Optional[NotificationTrigger] = None,
        now_fn=None,
    ):
        self.db = db
        self._provider = provider
        self.notifier = notifier or NotificationTrigger()
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    @property
    def provider(self) -> PaymentProviderInterface:
        if self._provider is None:
            self._provider = get_payment_provider()
        return self._provider

    def _now(self) -> datetime:
        return self._now_fn()

    # ============================================
    # Lookups
    # ============================================

    def _get_tenant(self, subdomain: str):
        tenant = crud.tenant.get_by_subdomain(self.db, subdomain=subdomain)
        if not tenant:
            raise NotFoundError("Store not found")
        return tenant

    def _get_owned_order(self, user_id: str, order_id: str) -> Order:
        order = crud.order.get_with_items(self.db, order_id=order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.user_id != user_id:
            raise ForbiddenError()
        return order

    def _require_live_pending(self, order: Order, now: datetime) -> None:
        if not order.is_pending:
            raise InvalidOrderStateError(f"Order is no longer pending (status: {order.status})")
        if order.is_expired(now):
            if crud.order.mark_cancelled(
                self.db, order_id=order.id, now=now, expired_before=now
            ):
                crud.order.delete_pending_attendees(self.db, order_id=order.id)
                self.db.commit()
                logger.info(f"Order {order.order_number} expired on access")
            raise CheckoutError("This order has expired. Please start checkout again.")

    @staticmethod
    def _require_no_payment_session(order: Order) -> None:
        # The hosted session has the total baked in.
        if order.payment_session_id:
            raise InvalidOrderStateError(
                "Payment is already in progress for this order; vouchers can no longer change"
            )

    def get_order_for_checkout(self, *, user_id: str, order_id: str) -> Order:
        return self._get_owned_order(user_id, order_id)

    def get_pending_order_for_tenant(
        self, *, user_id: str, tenant_subdomain: str
    ) -> Optional[Order]:
        """The user's live pending order for the tenant, if any."""
        now = self._now()
        tenant = self._get_tenant(tenant_subdomain)
        self.cleanup_all_expired_orders(now=now, user_id=user_id)
        pending = crud.order.get_pending_for_tenant(
            self.db, user_id=user_id, tenant_id=tenant.id, now=now
        )
        if pending is None:
            return None
        return crud.order.get_with_items(self.db, order_id=pending.id)

    def get_order_payment(self, *, user_id: str, order_id: str) -> Optional[Payment]:
        order = self._get_owned_order(user_id, order_id)
        return crud.payment.get_by_order(self.db, order_id=order.id)

    def get_my_orders(self, *, user_id: str, skip: int = 0, limit: int = 50) -> List[Order]:
        return crud.order.get_by_user(self.db, user_id=user_id, skip=skip, limit=limit)

    def get_my_tickets(self, *, user_id: str, skip: int = 0, limit: int = 100) -> List[Ticket]:
        return crud.ticket.get_by_user(self.db, user_id=user_id, skip=skip, limit=limit)

    # ============================================
    # Checkout
    # ============================================

    def _generate_order_number(self) -> str:
        for _ in range(ORDER_NUMBER_ATTEMPTS):
            order_number = Order.generate_order_number()
            if not crud.order.order_number_exists(self.db, order_number=order_number):
                return order_number
        raise CheckoutError("Could not allocate an order number. Please try again.")

    @staticmethod
    def _priced_lines(items) -> List[pricing.PricedLine]:
        return [
            pricing.PricedLine(
                ticket_type_id=item.ticket_type_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in items
        ]

    def _promotion_usage(self, promotion, user_id: str, exclude_order_id: Optional[str]) -> Tuple[int, int]:
        in_use = promotion.redeemed_count + crud.promotion.count_pending_holds(
            self.db, promotion_id=promotion.id, exclude_order_id=exclude_order_id
        )
        user_count = crud.promotion.count_user_redemptions(
            self.db, promotion_id=promotion.id, user_id=user_id
        )
        return in_use, user_count

    def _best_automatic_promotion(
        self,
        *,
        event_id: str,
        lines: List[pricing.PricedLine],
        user_id: str,
        now: datetime,
        exclude_order_id: Optional[str] = None,
    ):
        best, best_discount = None, 0
        for promotion in crud.promotion.get_automatic_for_event(self.db, event_id=event_id, now=now):
            in_use, user_count = self._promotion_usage(promotion, user_id, exclude_order_id)
            try:
                pricing.validate_promotion(
                    promotion,
                    at=now,
                    event_id=event_id,
                    lines=lines,
                    redemptions_in_use=in_use,
                    user_redemptions=user_count,
                )
            except CheckoutError:
                continue
            discount = pricing.calculate_discount(promotion, lines)
            if discount > best_discount:
                best, best_discount = promotion, discount
        return best, best_discount

    def initialize_checkout(
        self, *, user_id: str, user_email: str, tenant_subdomain: str
    ) -> Order:
        """
        Turn the user's cart for a tenant into a PENDING order.

        Prices are re-resolved now and snapshotted onto the order items. With
        an empty cart, an existing live pending order is resumed instead.
        """
        now = self._now()
        tenant = self._get_tenant(tenant_subdomain)
        self.cleanup_all_expired_orders(now=now, user_id=user_id)

        cart = crud.cart.get_for_tenant(self.db, user_id=user_id, tenant_id=tenant.id)
        cart_items = [] if cart is None or cart.is_expired(now) else list(cart.items)

        if not cart_items:
            pending = crud.order.get_pending_for_tenant(
                self.db, user_id=user_id, tenant_id=tenant.id, now=now
            )
            if pending:
                logger.info(f"Resuming pending order {pending.order_number} for user {user_id}")
                return crud.order.get_with_items(self.db, order_id=pending.id)
            raise CheckoutError("Your cart is empty")

        if len({item.event_id for item in cart_items}) > 1:
            raise CheckoutError("Please checkout items from one event at a time")

        event = cart_items[0].event
        if event.tenant_id != tenant.id or not event.is_published:
            raise CheckoutError("This event is no longer available for purchase")

        # Lines that resolve to the same ticket type and tier collapse into one item.
        merged: Dict[Tuple[str, Optional[str]], dict] = {}
        requested: Dict[str, int] = {}
        for cart_item in cart_items:
            ticket_type = cart_item.ticket_type
            resolved = pricing.resolve_price(ticket_type, now)
            key = (ticket_type.id, resolved.price_tier_id)
            entry = merged.setdefault(
                key, {"ticket_type": ticket_type, "resolved": resolved, "quantity": 0}
            )
            entry["quantity"] += cart_item.quantity
            requested[ticket_type.id] = requested.get(ticket_type.id, 0) + cart_item.quantity

        for entry in merged.values():
            ticket_type = entry["ticket_type"]
            if not inventory.has_capacity(ticket_type, requested[ticket_type.id]):
                raise CheckoutError(
                    f"Only {inventory.available_quantity(ticket_type)} tickets left for {ticket_type.name}"
                )
            if not pricing.tier_has_room(entry["resolved"].tier, entry["quantity"]):
                raise CheckoutError(
                    f"Not enough {ticket_type.name} tickets left at the "
                    f"{entry['resolved'].price_tier_name} price"
                )

        try:
            # A user has at most one pending order per tenant.
            for superseded_id in crud.order.get_pending_ids_for_tenant(
                self.db, user_id=user_id, tenant_id=tenant.id
            ):
                crud.order.mark_cancelled(self.db, order_id=superseded_id, now=now)
                crud.order.delete_pending_attendees(self.db, order_id=superseded_id)
                logger.info(f"Order {superseded_id} superseded by a new checkout")

            order = Order(
                order_number=self._generate_order_number(),
                tenant_id=tenant.id,
                event_id=event.id,
                user_id=user_id,
                status=OrderStatus.PENDING.value,
                currency=settings.CURRENCY,
                contact_email=user_email,
                expires_at=now + timedelta(minutes=settings.ORDER_EXPIRATION_MINUTES),
                subtotal=0,
                discount_amount=0,
                service_fee=0,
                total=0,
            )
            for entry in merged.values():
                ticket_type, resolved = entry["ticket_type"], entry["resolved"]
                order.items.append(
                    OrderItem(
                        ticket_type_id=ticket_type.id,
                        price_tier_id=resolved.price_tier_id,
                        quantity=entry["quantity"],
                        unit_price=resolved.unit_price,
                        total_price=resolved.unit_price * entry["quantity"],
                        ticket_type_name=ticket_type.name,
                        price_tier_name=resolved.price_tier_name,
                    )
                )

            lines = self._priced_lines(order.items)
            order.subtotal = sum(line.total for line in lines)
            promotion, discount = self._best_automatic_promotion(
                event_id=event.id, lines=lines, user_id=user_id, now=now
            )
            if promotion:
                order.promotion_id = promotion.id
                order.discount_amount = discount
            order.total = pricing.order_total(order.subtotal, order.discount_amount, order.service_fee)

            self.db.add(order)
            for cart_item in cart_items:
                cart.items.remove(cart_item)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order {order.order_number} created for user {user_id}: "
            f"subtotal={order.subtotal} discount={order.discount_amount} total={order.total}"
        )
        return crud.order.get_with_items(self.db, order_id=order.id)

    def apply_voucher_code(self, *, user_id: str, order_id: str, code: str) -> Order:
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        self._require_live_pending(order, now)
        self._require_no_payment_session(order)

        voucher = crud.voucher_code.get_by_code(self.db, code=code)
        if not voucher:
            raise CheckoutError("Invalid voucher code")

        promotion = voucher.promotion
        lines = self._priced_lines(order.items)
        in_use, user_count = self._promotion_usage(promotion, user_id, exclude_order_id=order.id)
        pricing.validate_promotion(
            promotion,
            at=now,
            event_id=order.event_id,
            lines=lines,
            voucher=voucher,
            redemptions_in_use=in_use,
            user_redemptions=user_count,
        )

        order.promotion_id = promotion.id
        order.voucher_code_id = voucher.id
        order.discount_amount = pricing.calculate_discount(promotion, lines)
        order.total = pricing.order_total(order.subtotal, order.discount_amount, order.service_fee)
        self.db.commit()
        logger.info(f"Voucher {voucher.code} applied to order {order.order_number}")
        return crud.order.get_with_items(self.db, order_id=order.id)

    def remove_voucher_code(self, *, user_id: str, order_id: str) -> Order:
        """Drop the voucher; an automatic promotion may take its place."""
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        self._require_live_pending(order, now)
        if not order.voucher_code_id:
            return order
        self._require_no_payment_session(order)

        lines = self._priced_lines(order.items)
        promotion, discount = self._best_automatic_promotion(
            event_id=order.event_id,
            lines=lines,
            user_id=user_id,
            now=now,
            exclude_order_id=order.id,
        )
        order.voucher_code_id = None
        order.promotion_id = promotion.id if promotion else None
        order.discount_amount = discount
        order.total = pricing.order_total(order.subtotal, order.discount_amount, order.service_fee)
        self.db.commit()
        return crud.order.get_with_items(self.db, order_id=order.id)

    def _replace_attendees(self, order: Order, attendees: List[AttendeeIn]) -> None:
        expected = order.ticket_count
        if len(attendees) != expected:
            raise CheckoutError(f"Please provide details for all {expected} attendees")

        crud.order.delete_pending_attendees(self.db, order_id=order.id)
        self.db.flush()
        for position, attendee in enumerate(attendees):
            self.db.add(
                PendingAttendee(
                    order_id=order.id,
                    position=position,
                    first_name=attendee.first_name.strip(),
                    last_name=attendee.last_name.strip(),
                    email=str(attendee.email),
                    phone=attendee.phone,
                )
            )

    def save_attendees(
        self, *, user_id: str, order_id: str, attendees: List[AttendeeIn]
    ) -> List[PendingAttendee]:
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        self._require_live_pending(order, now)
        self._replace_attendees(order, attendees)
        self.db.commit()
        return list(order.pending_attendees)

    # ============================================
    # Payment
    # ============================================

    def _checkout_line_items(self, order: Order) -> List[CheckoutLineItem]:
        if order.discount_amount:
            # Gateways reject negative lines; charge the discounted total as one line.
            return [
                CheckoutLineItem(
                    name=f"{order.event.name} - Order {order.order_number}",
                    amount=order.total * MINOR_UNITS_PER_UNIT,
                    quantity=1,
                    currency=order.currency,
                    description=f"{order.ticket_count} ticket(s), discount applied",
                )
            ]
        return [
            CheckoutLineItem(
                name=(
                    f"{item.ticket_type_name} ({item.price_tier_name})"
                    if item.price_tier_name
                    else item.ticket_type_name
                ),
                amount=item.unit_price * MINOR_UNITS_PER_UNIT,
                quantity=item.quantity,
                currency=order.currency,
            )
            for item in order.items
            if item.unit_price > 0
        ]

    async def create_payment_session(
        self,
        *,
        user_id: str,
        order_id: str,
        contact_email: str,
        contact_phone: Optional[str] = None,
        attendees: Optional[List[AttendeeIn]] = None,
    ) -> Order:
        """
        Open a hosted checkout session for a PENDING order.

        The order's hold is extended to cover the time the buyer spends on the
        gateway's page.
        """
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        self._require_live_pending(order, now)
        if order.total <= 0:
            raise CheckoutError("This order is free; confirm it without payment")

        if attendees is not None:
            self._replace_attendees(order, attendees)
        order.contact_email = str(contact_email)
        order.contact_phone = contact_phone
        self.db.commit()

        attendee_name = None
        if order.pending_attendees:
            attendee_name = order.pending_attendees[0].full_name

        params = CreateCheckoutSessionParams(
            order_id=order.id,
            reference_number=order.order_number,
            line_items=self._checkout_line_items(order),
            description=f"{order.event.name} - {order.order_number}",
            success_url=tenant_url(order.tenant.subdomain, f"/checkout/success/{order.id}"),
            cancel_url=tenant_url(order.tenant.subdomain, f"/checkout?order={order.id}&cancelled=1"),
            customer_email=order.contact_email,
            customer_name=attendee_name,
            customer_phone=order.contact_phone,
            metadata={"order_number": order.order_number, "tenant_id": order.tenant_id},
        )

        # Retry or second tab: only the newest session stays payable.
        previous_session_id = order.payment_session_id
        if previous_session_id:
            await self._expire_session_quietly(previous_session_id)

        try:
            session = await self.provider.create_checkout_session(params)
        except PaymentError as e:
            logger.error(f"Failed to create checkout session for order {order.order_number}: {e}")
            raise CheckoutError(f"Payment error: {e.message}")

        expires_at = now + timedelta(minutes=settings.PAYMENT_SESSION_EXPIRATION_MINUTES)
        if not crud.order.attach_payment_session(
            self.db,
            order_id=order.id,
            session_id=session.session_id,
            checkout_url=session.checkout_url,
            expires_at=expires_at,
            now=now,
        ):
            self.db.rollback()
            await self._expire_session_quietly(session.session_id)
            raise InvalidOrderStateError("Order is no longer pending")
        self.db.commit()

        logger.info(
            f"Payment session {session.session_id} opened for order {order.order_number}, "
            f"hold extended to {expires_at.isoformat()}"
        )
        return crud.order.get_with_items(self.db, order_id=order.id)

    async def _expire_session_quietly(self, session_id: str) -> None:
        try:
            await self.provider.expire_checkout_session(session_id)
        except Exception as e:
            logger.warning(f"Could not expire checkout session {session_id}: {e}")

    # ============================================
    # Confirmation
    # ============================================

    def _issue_tickets(self, order: Order) -> List[Ticket]:
        attendees = list(order.pending_attendees)
        taken: set = set()
        tickets: List[Ticket] = []
        for item in order.items:
            for _ in range(item.quantity):
                attendee = attendees[len(tickets)] if len(tickets) < len(attendees) else None
                ticket = Ticket(
                    ticket_code=crud.ticket.generate_unique_code(self.db, taken=taken),
                    order_id=order.id,
                    order_item_id=item.id,
                    event_id=order.event_id,
                    ticket_type_id=item.ticket_type_id,
                    user_id=order.user_id,
                    holder_name=attendee.full_name if attendee else None,
                    holder_email=attendee.email if attendee else order.contact_email,
                    holder_phone=attendee.phone if attendee else order.contact_phone,
                )
                self.db.add(ticket)
                tickets.append(ticket)
        return tickets

    def _redeem_promotion(self, order: Order) -> None:
        if order.promotion_id and not crud.promotion.increment_redeemed(
            self.db, promotion_id=order.promotion_id
        ):
            logger.error(
                f"Promotion {order.promotion_id} is over its redemption cap; "
                f"order {order.order_number} keeps the discount it paid with"
            )
        if order.voucher_code_id and not crud.voucher_code.increment_redeemed(
            self.db, voucher_code_id=order.voucher_code_id
        ):
            logger.error(
                f"Voucher {order.voucher_code_id} is over its redemption cap; "
                f"order {order.order_number} keeps the discount it paid with"
            )

    def _already_confirmed(self, order_id: str) -> ConfirmationResult:
        order = crud.order.get_with_items(self.db, order_id=order_id)
        if order is None or order.status not in CONFIRMED_STATES:
            status = order.status if order else "missing"
            raise InvalidOrderStateError(f"Order cannot be confirmed: status is {status}")
        return ConfirmationResult(
            order=order,
            tickets=crud.ticket.get_by_order(self.db, order_id=order.id),
            newly_confirmed=False,
        )

    def confirm_order_from_payment(
        self, order_id: str, payment: PaymentConfirmation
    ) -> ConfirmationResult:
        """
        Confirm a paid order and issue its tickets, exactly once.

        Status flip, inventory, tickets, payment record and promotion counters
        commit together. An order that is already confirmed is returned as is.
        Expiry is not re-checked: a payment that lands after the hold ran out
        still confirms if the order was not cancelled yet.
        """
        now = self._now()
        order = crud.order.get_with_items(self.db, order_id=order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.status in CONFIRMED_STATES:
            return self._already_confirmed(order.id)
        if not order.is_pending:
            raise InvalidOrderStateError(f"Order cannot be confirmed: status is {order.status}")

        expected_amount = order.total * MINOR_UNITS_PER_UNIT
        if payment.provider_code != "free" and payment.amount != expected_amount:
            logger.error(
                f"AMOUNT MISMATCH: order {order.order_number} was paid {payment.amount} "
                f"(payment {payment.payment_id}) but totals {expected_amount}. "
                f"Order left PENDING for manual reconciliation."
            )
            raise PaymentAmountMismatchError("Payment amount does not match the order total")

        try:
            if not crud.order.mark_confirmed(self.db, order_id=order.id, now=now):
                # Someone else moved the order first; see who.
                self.db.rollback()
                return self._already_confirmed(order_id)

            inventory.commit_order_inventory(self.db, order)
            tickets = self._issue_tickets(order)
            self.db.add(
                Payment(
                    order_id=order.id,
                    provider_code=payment.provider_code,
                    provider_payment_id=payment.payment_id,
                    provider_session_id=payment.session_id,
                    amount=payment.amount,
                    currency=payment.currency,
                    status="paid",
                    payment_method_type=payment.payment_method_type,
                    paid_at=payment.paid_at or now,
                )
            )
            self._redeem_promotion(order)
            crud.order.delete_pending_attendees(self.db, order_id=order.id)
            self.db.commit()
        except InventoryConflictError as e:
            self.db.rollback()
            logger.error(
                f"OVERSOLD: order {order_id} was paid (payment {payment.payment_id}) but "
                f"cannot be fulfilled: {e.message}. Order left PENDING for manual reconciliation."
            )
            raise
        except Exception:
            self.db.rollback()
            raise

        order = crud.order.get_with_items(self.db, order_id=order_id)
        logger.info(
            f"Order {order.order_number} confirmed with {len(tickets)} tickets "
            f"via {payment.provider_code}"
        )
        self.notifier.order_confirmed(order.id)
        return ConfirmationResult(order=order, tickets=tickets, newly_confirmed=True)

    def confirm_free_order(
        self,
        *,
        user_id: str,
        order_id: str,
        contact_email: str,
        contact_phone: Optional[str] = None,
        attendees: Optional[List[AttendeeIn]] = None,
    ) -> ConfirmationResult:
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        if order.status in CONFIRMED_STATES:
            return self._already_confirmed(order.id)
        self._require_live_pending(order, now)
        if order.total != 0:
            raise CheckoutError("This order requires payment")

        if attendees is not None:
            self._replace_attendees(order, attendees)
        order.contact_email = str(contact_email)
        order.contact_phone = contact_phone
        self.db.commit()

        return self.confirm_order_from_payment(
            order.id,
            PaymentConfirmation(
                provider_code="free",
                payment_id=None,
                amount=0,
                currency=order.currency,
            ),
        )

    async def verify_and_confirm_payment(
        self, *, user_id: str, order_id: str
    ) -> PaymentVerificationStatus:
        """
        Polling fallback for a lost or late webhook.

        Gateway trouble reads as "pending": the client keeps polling.
        """
        order = self._get_owned_order(user_id, order_id)
        if order.status in CONFIRMED_STATES:
            return PaymentVerificationStatus.CONFIRMED
        if not order.is_pending:
            return PaymentVerificationStatus.CANCELLED
        if not order.payment_session_id:
            return PaymentVerificationStatus.PENDING

        try:
            session = await self.provider.retrieve_checkout_session(order.payment_session_id)
        except PaymentError as e:
            logger.warning(f"Could not verify payment for order {order.order_number}: {e.message}")
            return PaymentVerificationStatus.PENDING

        paid = session.paid_payment
        if paid is None:
            return PaymentVerificationStatus.PENDING

        self.confirm_order_from_payment(
            order.id,
            PaymentConfirmation.from_provider(self.provider.code, paid, session.session_id),
        )
        return PaymentVerificationStatus.CONFIRMED

    # ============================================
    # Cancellation & expiry
    # ============================================

    async def cancel_order(self, *, user_id: str, order_id: str) -> Order:
        now = self._now()
        order = self._get_owned_order(user_id, order_id)
        if not order.is_pending:
            raise InvalidOrderStateError("Only pending orders can be cancelled")

        if not crud.order.mark_cancelled(self.db, order_id=order.id, now=now):
            self.db.rollback()
            raise InvalidOrderStateError("Only pending orders can be cancelled")
        crud.order.delete_pending_attendees(self.db, order_id=order.id)
        self.db.commit()
        logger.info(f"Order {order_id} cancelled by user {user_id}")

        order = crud.order.get_with_items(self.db, order_id=order_id)
        if order.payment_session_id:
            await self._expire_session_quietly(order.payment_session_id)
        return order

    def cleanup_all_expired_orders(
        self, now: Optional[datetime] = None, user_id: Optional[str] = None
    ) -> int:
        """
        Cancel PENDING orders whose hold ran out. Returns how many were cancelled.

        Each order is re-checked in SQL when cancelled, so one confirmed or
        extended since the scan is left alone. No inventory is touched.
        """
        now = now or self._now()
        cancelled = 0
        for order_id in crud.order.get_expired_pending_ids(self.db, now=now, user_id=user_id):
            try:
                if crud.order.mark_cancelled(
                    self.db, order_id=order_id, now=now, expired_before=now
                ):
                    crud.order.delete_pending_attendees(self.db, order_id=order_id)
                    self.db.commit()
                    cancelled += 1
                else:
                    self.db.rollback()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to expire order {order_id}: {e}")

        if cancelled:
            logger.info(f"Expired {cancelled} pending orders")
        return cancelled
