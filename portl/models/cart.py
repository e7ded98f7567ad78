# portl/models/cart.py
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow


class Cart(Base):
    """One cart per buyer per tenant. Expired carts read as empty."""

    __tablename__ = "carts"
    __table_args__ = (UniqueConstraint("user_id", "tenant_id", name="uq_carts_user_tenant"),)

    id = Column(String, primary_key=True, default=lambda: f"cart_{uuid.uuid4().hex[:12]}")
    user_id = Column(String, nullable=False, index=True)  # identity lives in the auth provider
    tenant_id = Column(String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    tenant = relationship("Tenant")
    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.created_at",
    )

    def is_expired(self, now) -> bool:
        return self.expires_at <= now


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
    )

    id = Column(String, primary_key=True, default=lambda: f"ci_{uuid.uuid4().hex[:12]}")
    cart_id = Column(String, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    ticket_type_id = Column(
        String, ForeignKey("ticket_types.id", ondelete="CASCADE"), nullable=False
    )
    price_tier_id = Column(String, ForeignKey("price_tiers.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    # Display price at the time the line was added; re-resolved at checkout.
    unit_price = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    cart = relationship("Cart", back_populates="items")
    event = relationship("Event")
    ticket_type = relationship("TicketType")
    price_tier = relationship("PriceTier")

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity
