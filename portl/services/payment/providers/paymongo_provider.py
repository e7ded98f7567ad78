# portl/services/payment/providers/paymongo_provider.py
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..provider_interface import (
    CheckoutSessionResult,
    CheckoutSessionStatus,
    CheckoutSessionStatusEnum,
    CreateCheckoutSessionParams,
    PaymentError,
    PaymentProviderInterface,
    ProviderPayment,
    ProviderPaymentStatusEnum,
    WebhookEvent,
    WebhookEventType,
)

logger = logging.getLogger(__name__)

LIVE_WEBHOOK_SECRET_PREFIX = "whsk_live"


@dataclass
class PayMongoConfig:
    """Configuration for PayMongo provider."""

    secret_key: str
    webhook_secret: Optional[str] = None
    api_url: str = "https://api.paymongo.com/v1"
    timeout: float = 10.0
    default_payment_methods: Optional[List[str]] = None


PAYMONGO_SESSION_STATUS_MAP: Dict[str, CheckoutSessionStatusEnum] = {
    "active": CheckoutSessionStatusEnum.ACTIVE,
    "expired": CheckoutSessionStatusEnum.EXPIRED,
}

PAYMONGO_PAYMENT_STATUS_MAP: Dict[str, ProviderPaymentStatusEnum] = {
    "paid": ProviderPaymentStatusEnum.PAID,
    "pending": ProviderPaymentStatusEnum.PENDING,
    "failed": ProviderPaymentStatusEnum.FAILED,
}

PAYMONGO_EVENT_MAP: Dict[str, WebhookEventType] = {
    "checkout_session.payment.paid": WebhookEventType.CHECKOUT_SESSION_PAYMENT_PAID,
    "payment.paid": WebhookEventType.PAYMENT_PAID,
    "payment.failed": WebhookEventType.PAYMENT_FAILED,
}


def parse_signature_header(header: str) -> Dict[str, str]:
    """Split ``t=...,te=...,li=...`` into a dict."""
    parts: Dict[str, str] = {}
    for chunk in header.split(","):
        key, sep, value = chunk.strip().partition("=")
        if sep:
            parts[key] = value
    return parts


def verify_paymongo_signature(payload: bytes, header: str, secret: str) -> bool:
    """
    Check a ``paymongo-signature`` header.

    The signature is HMAC-SHA256 of ``"<t>.<raw body>"`` keyed with the webhook
    secret. Live-mode secrets are checked against ``li``, test-mode ones
    against ``te``.
    """
    if not header or not secret:
        return False

    parts = parse_signature_header(header)
    timestamp = parts.get("t")
    field_name = "li" if secret.startswith(LIVE_WEBHOOK_SECRET_PREFIX) else "te"
    expected_signature = parts.get(field_name)
    if not timestamp or not expected_signature:
        return False

    signed_payload = timestamp.encode() + b"." + payload
    computed = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, expected_signature)


def _from_timestamp(value) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError):
        return None


def parse_payment(payment: Dict[str, Any]) -> ProviderPayment:
    attrs = payment.get("attributes") or {}
    source = attrs.get("source") or {}
    return ProviderPayment(
        payment_id=payment.get("id", ""),
        status=PAYMONGO_PAYMENT_STATUS_MAP.get(
            attrs.get("status"), ProviderPaymentStatusEnum.PENDING
        ),
        amount=attrs.get("amount") or 0,
        currency=(attrs.get("currency") or "PHP").upper(),
        payment_method_type=source.get("type"),
        paid_at=_from_timestamp(attrs.get("paid_at")),
        fee=attrs.get("fee"),
        net_amount=attrs.get("net_amount"),
    )


def parse_checkout_session(session: Dict[str, Any]) -> CheckoutSessionStatus:
    attrs = session.get("attributes") or {}
    return CheckoutSessionStatus(
        session_id=session.get("id", ""),
        status=PAYMONGO_SESSION_STATUS_MAP.get(
            attrs.get("status"), CheckoutSessionStatusEnum.UNKNOWN
        ),
        payments=[parse_payment(p) for p in attrs.get("payments") or []],
        reference_number=attrs.get("reference_number"),
        metadata=attrs.get("metadata") or {},
    )


def parse_paymongo_event(payload: bytes) -> WebhookEvent:
    """
    Parse a PayMongo event body.

    The resource the event is about sits at ``data.attributes.data``; for
    checkout session events it is the session with its payments.

    Raises:
        ValueError: If the payload is not a PayMongo event
    """
    try:
        body = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid webhook payload: {e}")

    event = body.get("data") if isinstance(body, dict) else None
    if not isinstance(event, dict):
        raise ValueError("Invalid webhook payload: missing data")

    attrs = event.get("attributes") or {}
    raw_type = attrs.get("type") or ""
    resource = attrs.get("data")
    session = None
    if isinstance(resource, dict) and resource.get("type") in (None, "checkout_session"):
        session = parse_checkout_session(resource)

    return WebhookEvent(
        event_id=event.get("id", ""),
        event_type=PAYMONGO_EVENT_MAP.get(raw_type, WebhookEventType.UNKNOWN),
        raw_type=raw_type,
        session=session,
        created_at=_from_timestamp(attrs.get("created_at")),
        livemode=bool(attrs.get("livemode")),
        raw_payload=body,
    )


class PayMongoProvider(PaymentProviderInterface):
    """PayMongo hosted checkout, over the REST API."""

    def __init__(self, config: PayMongoConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        # Injected in tests (httpx.MockTransport); None means real network.
        self._transport = transport
        token = base64.b64encode(f"{config.secret_key}:".encode()).decode()
        self._headers = {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def code(self) -> str:
        return "paymongo"

    @property
    def name(self) -> str:
        return "PayMongo"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url,
            headers=self._headers,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, body: Optional[dict] = None) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=body)
        except httpx.TimeoutException as e:
            logger.error(f"PayMongo timeout on {method} {path}: {e}")
            raise PaymentError(
                code="TIMEOUT",
                message="Payment service timed out. Please try again.",
                retryable=True,
            )
        except httpx.RequestError as e:
            logger.error(f"PayMongo request error on {method} {path}: {e}")
            raise PaymentError(
                code="PROVIDER_ERROR",
                message="Payment service temporarily unavailable",
                retryable=True,
            )

        if response.status_code == 429:
            logger.error(f"PayMongo rate limit on {method} {path}")
            raise PaymentError(
                code="RATE_LIMIT",
                message="Too many requests. Please try again.",
                retryable=True,
            )
        if response.status_code >= 500:
            logger.error(f"PayMongo {response.status_code} on {method} {path}: {response.text}")
            raise PaymentError(
                code="PROVIDER_ERROR",
                message="Payment service temporarily unavailable",
                retryable=True,
            )
        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"PayMongo rejected {method} {path}: {detail}")
            raise PaymentError(code="INVALID_REQUEST", message=detail, retryable=False)

        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            errors = response.json().get("errors") or []
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if errors:
            return errors[0].get("detail") or errors[0].get("code") or "Request rejected"
        return f"HTTP {response.status_code}"

    async def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """Create a PayMongo checkout session."""
        billing: Dict[str, Any] = {"email": params.customer_email}
        if params.customer_name:
            billing["name"] = params.customer_name
        if params.customer_phone:
            billing["phone"] = params.customer_phone

        attributes = {
            "line_items": [
                {
                    "name": item.name,
                    "amount": item.amount,
                    "currency": item.currency,
                    "quantity": item.quantity,
                    **({"description": item.description} if item.description else {}),
                }
                for item in params.line_items
            ],
            "payment_method_types": params.payment_method_types
            or self.config.default_payment_methods
            or ["card"],
            "description": params.description,
            "reference_number": params.reference_number,
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "send_email_receipt": params.send_email_receipt,
            "show_line_items": True,
            "show_description": True,
            "metadata": {"order_id": params.order_id, **params.metadata},
            "billing": billing,
        }

        data = await self._request("POST", "/checkout_sessions", {"data": {"attributes": attributes}})
        session = data.get("data") or {}
        session_attrs = session.get("attributes") or {}
        if not session.get("id") or not session_attrs.get("checkout_url"):
            logger.error(f"PayMongo returned an incomplete checkout session: {data}")
            raise PaymentError(
                code="INVALID_RESPONSE",
                message="Payment service returned an unexpected response",
                retryable=True,
            )

        logger.info(f"Created PayMongo checkout session {session['id']} for order {params.order_id}")
        return CheckoutSessionResult(
            session_id=session["id"],
            checkout_url=session_attrs["checkout_url"],
            status=PAYMONGO_SESSION_STATUS_MAP.get(
                session_attrs.get("status"), CheckoutSessionStatusEnum.ACTIVE
            ),
            provider_metadata={"reference_number": session_attrs.get("reference_number")},
        )

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSessionStatus:
        data = await self._request("GET", f"/checkout_sessions/{session_id}")
        return parse_checkout_session(data.get("data") or {})

    async def expire_checkout_session(self, session_id: str) -> None:
        await self._request("POST", f"/checkout_sessions/{session_id}/expire")
        logger.info(f"Expired PayMongo checkout session {session_id}")

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not self.config.webhook_secret:
            return False
        return verify_paymongo_signature(payload, signature, self.config.webhook_secret)

    def parse_webhook_event(self, payload: bytes) -> WebhookEvent:
        return parse_paymongo_event(payload)
