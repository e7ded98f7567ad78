# portl/models/ticket_type.py
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow
from portl.schemas.enums import TicketKind


class TicketType(Base):
    __tablename__ = "ticket_types"
    __table_args__ = (
        CheckConstraint("quantity_sold >= 0", name="ck_ticket_types_quantity_sold_non_negative"),
        CheckConstraint(
            "quantity_total IS NULL OR quantity_sold <= quantity_total",
            name="ck_ticket_types_quantity_sold_within_total",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: f"tt_{uuid.uuid4().hex[:12]}")
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Integer, nullable=False, server_default="0", default=0)  # whole currency units
    quantity_total = Column(Integer, nullable=True)  # NULL = unlimited
    # Only ever incremented, and only by a confirmed order.
    quantity_sold = Column(Integer, nullable=False, server_default="0", default=0)
    kind = Column(
        String(20),
        nullable=False,
        server_default=TicketKind.GENERAL.value,
        default=TicketKind.GENERAL.value,
    )
    sort_order = Column(Integer, nullable=False, server_default="0", default=0)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    event = relationship("Event", back_populates="ticket_types")
    price_tiers = relationship(
        "PriceTier", back_populates="ticket_type", cascade="all, delete-orphan"
    )

    @property
    def quantity_available(self):
        """Remaining capacity, or None when unlimited."""
        if self.quantity_total is None:
            return None
        return max(0, self.quantity_total - self.quantity_sold)
