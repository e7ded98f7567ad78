# portl/models/tenant.py
import uuid

from sqlalchemy import Column, String, func

from portl.db.base_class import Base
from portl.db.types import UTCDateTime, utcnow


class Tenant(Base):
    """An organizer storefront, addressed by its subdomain."""

    __tablename__ = "tenants"

    id = Column(String, primary_key=True, default=lambda: f"ten_{uuid.uuid4().hex[:12]}")
    subdomain = Column(String(63), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, server_default="ACTIVE", default="ACTIVE")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
