# portl/services/checkout/__init__.py
from .order_service import ConfirmationResult, OrderService, PaymentConfirmation

__all__ = ["ConfirmationResult", "OrderService", "PaymentConfirmation"]
