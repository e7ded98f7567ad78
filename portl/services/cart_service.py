# portl/services/cart_service.py
"""
Buyer carts, one per (user, tenant).

Carts are a convenience, not a hold: adding a line does a soft availability
check only. Every change slides the cart's expiry forward; an expired cart
reads as empty and is wiped on the next change.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from portl import crud
from portl.core.config import settings
from portl.core.exceptions import CheckoutError, ForbiddenError, NotFoundError
from portl.models.cart import Cart, CartItem
from portl.schemas.cart import (
    MAX_QUANTITY_PER_LINE,
    CartEventGroup,
    CartLine,
    CartSummary,
    TenantCart,
)
from portl.services import inventory, pricing

logger = logging.getLogger(__name__)


class CartService:
    def __init__(self, db: Session, now_fn=None):
        self.db = db
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        return self._now_fn()

    def _get_tenant(self, subdomain: str):
        tenant = crud.tenant.get_by_subdomain(self.db, subdomain=subdomain)
        if not tenant:
            raise NotFoundError("Store not found")
        return tenant

    def add_item(
        self,
        *,
        user_id: str,
        tenant_subdomain: str,
        event_id: str,
        ticket_type_id: str,
        quantity: int,
        price_tier_id: Optional[str] = None,
    ) -> CartItem:
        """
        Add tickets to the user's cart for a tenant.

        A line for the same ticket type and tier is merged into, capped at
        MAX_QUANTITY_PER_LINE.
        """
        if quantity < 1 or quantity > MAX_QUANTITY_PER_LINE:
            raise CheckoutError(f"Quantity must be between 1 and {MAX_QUANTITY_PER_LINE}")

        now = self._now()
        tenant = self._get_tenant(tenant_subdomain)

        event = crud.event.get_for_tenant(self.db, event_id=event_id, tenant_id=tenant.id)
        if not event:
            raise NotFoundError("Event not found")
        if not event.is_published:
            raise CheckoutError("Event is not available for purchase")

        ticket_type = crud.ticket_type.get_with_tiers(self.db, ticket_type_id=ticket_type_id)
        if not ticket_type or ticket_type.event_id != event.id:
            raise NotFoundError("Ticket type not found")

        if price_tier_id:
            tier = crud.price_tier.get_for_ticket_type(
                self.db, price_tier_id=price_tier_id, ticket_type_id=ticket_type.id
            )
            if not tier:
                raise NotFoundError("Price tier not found")
            resolved = pricing.ResolvedPrice(unit_price=tier.price, tier=tier)
        else:
            resolved = pricing.resolve_price(ticket_type, now)

        cart = crud.cart.get_or_create(
            self.db,
            user_id=user_id,
            tenant_id=tenant.id,
            now=now,
            ttl_minutes=settings.CART_EXPIRATION_MINUTES,
        )

        line = crud.cart.find_line(
            cart, ticket_type_id=ticket_type.id, price_tier_id=resolved.price_tier_id
        )
        new_quantity = min(quantity + (line.quantity if line else 0), MAX_QUANTITY_PER_LINE)

        if not inventory.has_capacity(ticket_type, new_quantity):
            raise CheckoutError(
                f"Only {inventory.available_quantity(ticket_type)} tickets available"
            )
        if not pricing.tier_has_room(resolved.tier, new_quantity):
            raise CheckoutError("Not enough tickets left at this price")

        if line:
            line.quantity = new_quantity
            line.unit_price = resolved.unit_price
        else:
            line = CartItem(
                event_id=event.id,
                ticket_type_id=ticket_type.id,
                price_tier_id=resolved.price_tier_id,
                quantity=new_quantity,
                unit_price=resolved.unit_price,
            )
            cart.items.append(line)

        crud.cart.touch(cart, now=now, ttl_minutes=settings.CART_EXPIRATION_MINUTES)
        self.db.commit()
        self.db.refresh(line)
        logger.info(
            f"Cart {cart.id}: {ticket_type.id} x{new_quantity} at {resolved.unit_price} "
            f"for user {user_id}"
        )
        return line

    def _get_owned_item(self, user_id: str, cart_item_id: str) -> CartItem:
        item = crud.cart.get_item(self.db, item_id=cart_item_id)
        if not item:
            raise NotFoundError("Cart item not found")
        if item.cart.user_id != user_id:
            raise ForbiddenError()
        return item

    def update_item(self, *, user_id: str, cart_item_id: str, quantity: int) -> Optional[CartItem]:
        """Set a line's quantity; 0 removes it (and None is returned)."""
        if quantity < 0 or quantity > MAX_QUANTITY_PER_LINE:
            raise CheckoutError(f"Quantity must be between 0 and {MAX_QUANTITY_PER_LINE}")

        item = self._get_owned_item(user_id, cart_item_id)
        cart = item.cart
        now = self._now()

        if cart.is_expired(now):
            # Same as get_or_create: stale lines are dropped, never revived.
            cart.items.clear()
            self.db.commit()
            if quantity == 0:
                return None
            raise CheckoutError("Your cart has expired")

        if quantity == 0:
            cart.items.remove(item)
            crud.cart.touch(cart, now=now, ttl_minutes=settings.CART_EXPIRATION_MINUTES)
            self.db.commit()
            return None

        if not inventory.has_capacity(item.ticket_type, quantity):
            raise CheckoutError(
                f"Only {inventory.available_quantity(item.ticket_type)} tickets available"
            )
        if quantity > item.quantity and not pricing.tier_has_room(item.price_tier, quantity):
            raise CheckoutError("Not enough tickets left at this price")

        item.quantity = quantity
        crud.cart.touch(cart, now=now, ttl_minutes=settings.CART_EXPIRATION_MINUTES)
        self.db.commit()
        self.db.refresh(item)
        return item

    def remove_item(self, *, user_id: str, cart_item_id: str) -> None:
        self.update_item(user_id=user_id, cart_item_id=cart_item_id, quantity=0)

    def clear_tenant_items(self, *, user_id: str, tenant_subdomain: str) -> int:
        """Empty the user's cart for one tenant. Returns the number of lines removed."""
        tenant = self._get_tenant(tenant_subdomain)
        cart = crud.cart.get_for_tenant(self.db, user_id=user_id, tenant_id=tenant.id)
        if not cart:
            return 0
        removed = len(cart.items)
        cart.items.clear()
        self.db.commit()
        return removed

    def clear_cart(self, *, user_id: str) -> int:
        removed = 0
        for cart in crud.cart.get_all_for_user(self.db, user_id=user_id):
            removed += len(cart.items)
            cart.items.clear()
        self.db.commit()
        return removed

    def _tenant_view(self, cart: Optional[Cart], tenant) -> TenantCart:
        view = TenantCart(tenant_id=tenant.id, subdomain=tenant.subdomain, tenant_name=tenant.name)
        if cart is None or cart.is_expired(self._now()) or not cart.items:
            return view

        groups: "OrderedDict[str, CartEventGroup]" = OrderedDict()
        for item in cart.items:
            group = groups.get(item.event_id)
            if group is None:
                group = CartEventGroup(
                    event_id=item.event_id, event_name=item.event.name, lines=[], subtotal=0
                )
                groups[item.event_id] = group
            group.lines.append(
                CartLine(
                    id=item.id,
                    event_id=item.event_id,
                    ticket_type_id=item.ticket_type_id,
                    ticket_type_name=item.ticket_type.name,
                    price_tier_id=item.price_tier_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
            )
            group.subtotal += item.line_total

        view.events = list(groups.values())
        view.subtotal = sum(g.subtotal for g in view.events)
        view.item_count = sum(item.quantity for item in cart.items)
        view.expires_at = cart.expires_at
        return view

    def get_cart_for_tenant(self, *, user_id: str, tenant_subdomain: str) -> TenantCart:
        tenant = self._get_tenant(tenant_subdomain)
        cart = crud.cart.get_for_tenant(self.db, user_id=user_id, tenant_id=tenant.id)
        return self._tenant_view(cart, tenant)

    def get_cart_summary(self, *, user_id: str) -> CartSummary:
        """All of the user's live carts, grouped by tenant."""
        summary = CartSummary()
        for cart in crud.cart.get_all_for_user(self.db, user_id=user_id):
            view = self._tenant_view(cart, cart.tenant)
            if view.item_count:
                summary.tenants.append(view)
        summary.subtotal = sum(t.subtotal for t in summary.tenants)
        summary.item_count = sum(t.item_count for t in summary.tenants)
        return summary

    def get_item_count(self, *, user_id: str) -> int:
        return self.get_cart_summary(user_id=user_id).item_count
