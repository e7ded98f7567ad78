# portl/models/promotion.py
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    func,
    true,
)
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow
from portl.schemas.enums import DiscountType, PromotionScope

promotion_ticket_types = Table(
    "promotion_ticket_types",
    Base.metadata,
    Column("promotion_id", String, ForeignKey("promotions.id", ondelete="CASCADE"), primary_key=True),
    Column("ticket_type_id", String, ForeignKey("ticket_types.id", ondelete="CASCADE"), primary_key=True),
)


class Promotion(Base):
    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="ck_promotions_discount_value_non_negative"),
        CheckConstraint(
            "max_redemptions IS NULL OR redeemed_count <= max_redemptions",
            name="ck_promotions_redeemed_within_max",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: f"promo_{uuid.uuid4().hex[:12]}")
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    discount_type = Column(String(20), nullable=False, default=DiscountType.PERCENT.value)
    # PERCENT: basis points out of 10000. FIXED: whole currency units.
    discount_value = Column(Integer, nullable=False)
    applies_to = Column(String(20), nullable=False, default=PromotionScope.ORDER.value)

    valid_from = Column(UTCDateTime, nullable=True)
    valid_until = Column(UTCDateTime, nullable=True)

    max_redemptions = Column(Integer, nullable=True)  # NULL = unlimited
    max_per_user = Column(Integer, nullable=True)
    redeemed_count = Column(Integer, nullable=False, server_default="0", default=0)

    requires_code = Column(Boolean, nullable=False, server_default=true(), default=True)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    ticket_types = relationship("TicketType", secondary=promotion_ticket_types)
    voucher_codes = relationship("VoucherCode", back_populates="promotion")

    @property
    def ticket_type_ids(self) -> set:
        return {tt.id for tt in self.ticket_types}


class VoucherCode(Base):
    __tablename__ = "voucher_codes"
    __table_args__ = (
        CheckConstraint(
            "max_redemptions IS NULL OR redeemed_count <= max_redemptions",
            name="ck_voucher_codes_redeemed_within_max",
        ),
    )

    id = Column(String, primary_key=True, default=lambda: f"vc_{uuid.uuid4().hex[:12]}")
    promotion_id = Column(
        String, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code = Column(String(50), unique=True, nullable=False, index=True)  # stored upper-case
    max_redemptions = Column(Integer, nullable=True)
    redeemed_count = Column(Integer, nullable=False, server_default="0", default=0)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    promotion = relationship("Promotion", back_populates="voucher_codes")
