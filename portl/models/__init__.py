# portl/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships
# Order matters for dependencies - import base models first

from portl.db.base_class import Base
from portl.models.tenant import Tenant
from portl.models.event import Event

# Catalog
from portl.models.ticket_type import TicketType
from portl.models.price_tier import PriceTier
from portl.models.promotion import Promotion, VoucherCode, promotion_ticket_types

# Cart
from portl.models.cart import Cart, CartItem

# Orders
from portl.models.order import Order
from portl.models.order_item import OrderItem
from portl.models.pending_attendee import PendingAttendee
from portl.models.ticket import Ticket
from portl.models.payment import Payment
