# portl/crud/__init__.py

from .crud_cart import cart
from .crud_event import event
from .crud_order import order
from .crud_payment import payment
from .crud_promotion import promotion, voucher_code
from .crud_tenant import tenant
from .crud_ticket import ticket
from .crud_ticket_type import price_tier, ticket_type
