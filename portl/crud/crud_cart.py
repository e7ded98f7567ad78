# portl/crud/crud_cart.py
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from portl.crud.base import CRUDBase
from portl.models.cart import Cart, CartItem


class CRUDCart(CRUDBase[Cart]):
    def get_for_tenant(self, db: Session, *, user_id: str, tenant_id: str) -> Optional[Cart]:
        return (
            db.query(self.model)
            .options(
                selectinload(self.model.items).selectinload(CartItem.ticket_type),
                selectinload(self.model.items).selectinload(CartItem.event),
            )
            .filter(self.model.user_id == user_id, self.model.tenant_id == tenant_id)
            .first()
        )

    def get_all_for_user(self, db: Session, *, user_id: str) -> List[Cart]:
        return (
            db.query(self.model)
            .options(
                selectinload(self.model.tenant),
                selectinload(self.model.items).selectinload(CartItem.ticket_type),
                selectinload(self.model.items).selectinload(CartItem.event),
            )
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at)
            .all()
        )

    def get_or_create(
        self, db: Session, *, user_id: str, tenant_id: str, now: datetime, ttl_minutes: int
    ) -> Cart:
        """
        Return the user's cart for the tenant, creating it if needed.

        An expired cart is emptied and reused, so stale lines never come back.
        Changes are flushed, not committed.
        """
        cart = self.get_for_tenant(db, user_id=user_id, tenant_id=tenant_id)
        if cart is None:
            cart = Cart(
                user_id=user_id,
                tenant_id=tenant_id,
                expires_at=now + timedelta(minutes=ttl_minutes),
            )
            db.add(cart)
            db.flush()
        elif cart.is_expired(now):
            cart.items.clear()
            db.flush()
        return cart

    def touch(self, cart: Cart, *, now: datetime, ttl_minutes: int) -> None:
        """Slide the expiration window forward after a modification."""
        cart.expires_at = now + timedelta(minutes=ttl_minutes)
        cart.updated_at = now

    def find_line(
        self, cart: Cart, *, ticket_type_id: str, price_tier_id: Optional[str]
    ) -> Optional[CartItem]:
        for item in cart.items:
            if item.ticket_type_id == ticket_type_id and item.price_tier_id == price_tier_id:
                return item
        return None

    def get_item(self, db: Session, *, item_id: str) -> Optional[CartItem]:
        return (
            db.query(CartItem)
            .options(selectinload(CartItem.cart).selectinload(Cart.items))
            .filter(CartItem.id == item_id)
            .first()
        )


cart = CRUDCart(Cart)
