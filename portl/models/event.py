# portl/models/event.py
import uuid

from sqlalchemy import Column, ForeignKey, String, func
from sqlalchemy.orm import relationship

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow
from portl.schemas.enums import EventStatus


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}")
    tenant_id = Column(String, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    venue_name = Column(String(255), nullable=True)
    starts_at = Column(UTCDateTime, nullable=True)
    status = Column(
        String(20),
        nullable=False,
        server_default=EventStatus.DRAFT.value,
        default=EventStatus.DRAFT.value,
    )
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    tenant = relationship("Tenant")
    ticket_types = relationship("TicketType", back_populates="event")

    @property
    def is_published(self) -> bool:
        return self.status == EventStatus.PUBLISHED.value
