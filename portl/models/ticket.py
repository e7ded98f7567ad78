# portl/models/ticket.py
import secrets
import string
import uuid

from sqlalchemy import Column, ForeignKey, String, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow
from portl.schemas.enums import TicketStatus

TICKET_CODE_ALPHABET = string.ascii_uppercase + string.digits


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(String, primary_key=True, default=lambda: f"tkt_{uuid.uuid4().hex[:12]}")
    ticket_code = Column(String(20), unique=True, nullable=False, index=True)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    order_item_id = Column(String, ForeignKey("order_items.id"), nullable=False)
    event_id = Column(String, ForeignKey("events.id"), nullable=False, index=True)
    ticket_type_id = Column(String, ForeignKey("ticket_types.id"), nullable=False)
    user_id = Column(String, nullable=False, index=True)

    status = Column(
        String(20),
        nullable=False,
        server_default=TicketStatus.ACTIVE.value,
        default=TicketStatus.ACTIVE.value,
    )

    # Holder information
    holder_name = Column(String(255), nullable=True)
    holder_email = Column(String(255), nullable=True)
    holder_phone = Column(String(50), nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    order = relationship("Order", back_populates="tickets")
    order_item = relationship("OrderItem", back_populates="tickets")
    event = relationship("Event")
    ticket_type = relationship("TicketType")

    @staticmethod
    def generate_ticket_code() -> str:
        """Generate a unique ticket code in format: TKT-XXXX-XXXX"""
        part1 = "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(4))
        part2 = "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(4))
        return f"TKT-{part1}-{part2}"
