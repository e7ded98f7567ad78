# portl/models/order.py
import secrets
import string
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow
from portl.schemas.enums import OrderStatus

ORDER_NUMBER_PREFIX = "PORTL-"
ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_orders_total_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_orders_discount_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: f"ord_{uuid.uuid4().hex[:12]}")
    order_number = Column(String(50), unique=True, nullable=False)
    tenant_id = Column(String, ForeignKey("tenants.id"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    status = Column(
        String(30),
        nullable=False,
        index=True,
        server_default=OrderStatus.PENDING.value,
        default=OrderStatus.PENDING.value,
    )

    # Financial, whole currency units
    currency = Column(String(3), nullable=False, server_default="PHP", default="PHP")
    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, server_default="0", default=0)
    service_fee = Column(Integer, nullable=False, server_default="0", default=0)
    total = Column(Integer, nullable=False)

    # Promotion
    promotion_id = Column(String, ForeignKey("promotions.id"), nullable=True)
    voucher_code_id = Column(String, ForeignKey("voucher_codes.id"), nullable=True)

    # Contact
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # Payment tracking
    payment_session_id = Column(String(255), nullable=True, index=True)
    payment_checkout_url = Column(String(1024), nullable=True)

    # Non-null exactly while the order is PENDING.
    expires_at = Column(UTCDateTime, nullable=True, index=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    tenant = relationship("Tenant")
    event = relationship("Event")
    promotion = relationship("Promotion")
    voucher_code = relationship("VoucherCode")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    tickets = relationship("Ticket", back_populates="order", order_by="Ticket.created_at")
    pending_attendees = relationship(
        "PendingAttendee",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PendingAttendee.position",
    )
    payments = relationship("Payment", back_populates="order")

    @staticmethod
    def generate_order_number() -> str:
        """Human-readable order number, e.g. PORTL-7KQ2M9XA."""
        suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(8))
        return f"{ORDER_NUMBER_PREFIX}{suffix}"

    @property
    def ticket_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value

    @property
    def is_confirmed(self) -> bool:
        return self.status == OrderStatus.CONFIRMED.value

    def is_expired(self, now) -> bool:
        """A pending order whose hold has run out."""
        return self.is_pending and self.expires_at is not None and self.expires_at < now
