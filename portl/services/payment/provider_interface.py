# portl/services/payment/provider_interface.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class CheckoutSessionStatusEnum(str, Enum):
    """Standardized hosted checkout session status."""

    ACTIVE = "active"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


class ProviderPaymentStatusEnum(str, Enum):
    """Standardized status of a payment made inside a checkout session."""

    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"


class WebhookEventType(str, Enum):
    """Standardized webhook event types."""

    CHECKOUT_SESSION_PAYMENT_PAID = "checkout_session.payment.paid"
    PAYMENT_PAID = "payment.paid"
    PAYMENT_FAILED = "payment.failed"
    UNKNOWN = "unknown"


@dataclass
class CheckoutLineItem:
    name: str
    amount: int  # In smallest currency unit (centavos)
    quantity: int
    currency: str
    description: Optional[str] = None


@dataclass
class CreateCheckoutSessionParams:
    """Parameters for creating a hosted checkout session."""

    order_id: str
    reference_number: str
    line_items: List[CheckoutLineItem]
    description: str
    success_url: str
    cancel_url: str
    customer_email: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_method_types: Optional[List[str]] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    send_email_receipt: bool = True


@dataclass
class CheckoutSessionResult:
    """Result of creating a checkout session."""

    session_id: str
    checkout_url: str
    status: CheckoutSessionStatusEnum = CheckoutSessionStatusEnum.ACTIVE
    provider_metadata: Optional[Dict[str, Any]] = None


@dataclass
class ProviderPayment:
    """A payment attached to a checkout session."""

    payment_id: str
    status: ProviderPaymentStatusEnum
    amount: int
    currency: str
    payment_method_type: Optional[str] = None
    paid_at: Optional[datetime] = None
    fee: Optional[int] = None
    net_amount: Optional[int] = None

    @property
    def is_paid(self) -> bool:
        return self.status == ProviderPaymentStatusEnum.PAID


@dataclass
class CheckoutSessionStatus:
    """Current state of a checkout session."""

    session_id: str
    status: CheckoutSessionStatusEnum
    payments: List[ProviderPayment] = field(default_factory=list)
    reference_number: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def paid_payment(self) -> Optional[ProviderPayment]:
        for payment in self.payments:
            if payment.is_paid:
                return payment
        return None


@dataclass
class WebhookEvent:
    """Standardized webhook event."""

    event_id: str
    event_type: WebhookEventType
    raw_type: str
    session: Optional[CheckoutSessionStatus]
    created_at: Optional[datetime]
    livemode: bool
    raw_payload: Any


class PaymentError(Exception):
    """Custom exception for payment errors."""

    def __init__(self, code: str, message: str, retryable: bool = False):
        self.code = code
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class PaymentProviderInterface(ABC):
    """
    Core interface that all payment providers must implement.

    Hosted-checkout flow: the service creates a session, redirects the buyer to
    its URL, and learns about the payment from a webhook or by retrieving the
    session.
    """

    @property
    @abstractmethod
    def code(self) -> str:
        """Provider code identifier (e.g., 'paymongo')."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name."""

    @abstractmethod
    async def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """Create a hosted checkout session and return its redirect URL."""

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        """Retrieve a checkout session with its payments."""

    @abstractmethod
    async def expire_checkout_session(self, session_id: str) -> None:
        """Close a checkout session so it can no longer be paid."""

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify a webhook signature against the raw request body."""

    @abstractmethod
    def parse_webhook_event(self, payload: bytes) -> WebhookEvent:
        """Parse webhook event into standardized format."""
