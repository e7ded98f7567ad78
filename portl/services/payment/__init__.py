# portl/services/payment/__init__.py
from .provider_interface import PaymentError, PaymentProviderInterface
from .provider_factory import PaymentProviderFactory, get_payment_provider

__all__ = [
    "PaymentError",
    "PaymentProviderInterface",
    "PaymentProviderFactory",
    "get_payment_provider",
]
