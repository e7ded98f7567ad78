# portl/schemas/enums.py
from enum import Enum


class EventStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class TicketKind(str, Enum):
    GENERAL = "GENERAL"
    TABLE = "TABLE"
    SEAT = "SEAT"


class PricingStrategy(str, Enum):
    TIME_WINDOW = "TIME_WINDOW"
    ALLOCATION = "ALLOCATION"


class DiscountType(str, Enum):
    PERCENT = "PERCENT"  # basis points, 10000 = 100%
    FIXED = "FIXED"


class PromotionScope(str, Enum):
    ORDER = "ORDER"
    ITEM = "ITEM"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


class TicketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CHECKED_IN = "CHECKED_IN"
    TRANSFERRED = "TRANSFERRED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class PaymentVerificationStatus(str, Enum):
    """What the polling fallback reports back to the client."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
