# portl/models/price_tier.py
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime
from portl.schemas.enums import PricingStrategy


class PriceTier(Base):
    """
    Alternative price for a ticket type.

    TIME_WINDOW tiers apply between ``starts_at`` and ``ends_at``; ALLOCATION
    tiers apply until ``allocation_sold`` reaches ``allocation_total``. When
    several tiers match, the highest ``priority`` wins.
    """

    __tablename__ = "price_tiers"
    __table_args__ = (
        CheckConstraint(
            "allocation_total IS NULL OR allocation_sold <= allocation_total",
            name="ck_price_tiers_allocation_sold_within_total",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: f"pt_{uuid.uuid4().hex[:12]}")
    ticket_type_id = Column(
        String, ForeignKey("ticket_types.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    strategy = Column(String(20), nullable=False, default=PricingStrategy.TIME_WINDOW.value)
    price = Column(Integer, nullable=False)
    priority = Column(Integer, nullable=False, server_default="0", default=0)

    # TIME_WINDOW
    starts_at = Column(UTCDateTime, nullable=True)
    ends_at = Column(UTCDateTime, nullable=True)

    # ALLOCATION
    allocation_total = Column(Integer, nullable=True)  # NULL = unbounded
    allocation_sold = Column(Integer, nullable=False, server_default="0", default=0)

    ticket_type = relationship("TicketType", back_populates="price_tiers")
