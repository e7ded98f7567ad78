# portl/models/payment.py
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow


class Payment(Base):
    """The payment a confirmation was based on (one per confirmed order)."""

    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=lambda: f"pay_{uuid.uuid4().hex[:12]}")
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, unique=True)
    provider_code = Column(String(50), nullable=False)  # 'paymongo' or 'free'
    provider_payment_id = Column(String(255), nullable=True, unique=True)
    provider_session_id = Column(String(255), nullable=True)
    amount = Column(Integer, nullable=False)  # smallest currency unit
    currency = Column(String(3), nullable=False)
    status = Column(String(30), nullable=False)
    payment_method_type = Column(String(50), nullable=True)
    paid_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="payments")
