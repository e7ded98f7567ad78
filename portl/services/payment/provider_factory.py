# portl/services/payment/provider_factory.py
import logging
from typing import Dict, Optional

from portl.core.config import settings
from .provider_interface import PaymentProviderInterface
from .providers.paymongo_provider import PayMongoConfig, PayMongoProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "paymongo"


class PaymentProviderFactory:
    """Creates and caches the configured payment providers."""

    def __init__(self):
        self._providers: Dict[str, PaymentProviderInterface] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        if settings.PAYMONGO_SECRET_KEY:
            config = PayMongoConfig(
                secret_key=settings.PAYMONGO_SECRET_KEY,
                webhook_secret=settings.PAYMONGO_WEBHOOK_SECRET,
                api_url=settings.PAYMONGO_API_URL,
                default_payment_methods=settings.PAYMONGO_PAYMENT_METHODS,
            )
            self._providers["paymongo"] = PayMongoProvider(config)
            logger.info("PayMongo payment provider initialized")
        else:
            logger.warning("PayMongo provider not initialized: PAYMONGO_SECRET_KEY is not set")

    def get_provider(self, code: str) -> PaymentProviderInterface:
        """
        Get a payment provider by its code.

        Raises:
            ValueError: If provider is not available
        """
        provider = self._providers.get(code)
        if not provider:
            raise ValueError(f"Payment provider '{code}' is not available")
        return provider


# Global factory instance (singleton pattern)
_factory_instance: Optional[PaymentProviderFactory] = None


def get_payment_provider_factory() -> PaymentProviderFactory:
    """Get the global payment provider factory instance."""
    global _factory_instance
    if _factory_instance is None:
        _factory_instance = PaymentProviderFactory()
    return _factory_instance


def get_payment_provider(code: str = DEFAULT_PROVIDER) -> PaymentProviderInterface:
    return get_payment_provider_factory().get_provider(code)
