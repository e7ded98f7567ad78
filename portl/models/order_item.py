# portl/models/order_item.py
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow


class OrderItem(Base):
    """A priced line of an order. Prices are snapshotted at order creation."""

    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),)

    id = Column(String, primary_key=True, default=lambda: f"oi_{uuid.uuid4().hex[:12]}")
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    ticket_type_id = Column(String, ForeignKey("ticket_types.id"), nullable=False)
    price_tier_id = Column(String, ForeignKey("price_tiers.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    total_price = Column(Integer, nullable=False)

    # Snapshot of the ticket type at purchase time
    ticket_type_name = Column(String(255), nullable=False)
    price_tier_name = Column(String(255), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="items")
    ticket_type = relationship("TicketType")
    price_tier = relationship("PriceTier")
    tickets = relationship("Ticket", back_populates="order_item")
