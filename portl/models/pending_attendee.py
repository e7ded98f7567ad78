# portl/models/pending_attendee.py
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from portl.db.base_class import Base


class PendingAttendee(Base):
    """
    Holder details collected during checkout, before tickets exist.

    Row ``position`` N becomes the holder of the N-th ticket issued when the
    order is confirmed; the rows are deleted at that point.
    """

    __tablename__ = "pending_attendees"
    __table_args__ = (
        UniqueConstraint("order_id", "position", name="uq_pending_attendees_order_position"),
    )

    id = Column(String, primary_key=True, default=lambda: f"att_{uuid.uuid4().hex[:12]}")
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    order = relationship("Order", back_populates="pending_attendees")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
