"""
Tests for the PayMongo gateway adapter.

Verifies that PayMongoProvider:
- Sends checkout sessions in centavos with Basic auth and the order metadata
- Parses sessions and their payments into the provider-neutral types
- Maps transport failures and HTTP errors onto PaymentError codes
- Verifies paymongo-signature headers against the te/li field

HTTP is served by httpx.MockTransport; nothing touches the network.
"""

import asyncio
import hashlib
import hmac
import json
import pytest
from unittest.mock import patch

import httpx

from portl.services.payment.provider_interface import (
    CheckoutLineItem,
    CheckoutSessionStatusEnum,
    CreateCheckoutSessionParams,
    PaymentError,
    ProviderPaymentStatusEnum,
    WebhookEventType,
)
from portl.services.payment.providers.paymongo_provider import (
    PayMongoConfig,
    PayMongoProvider,
    parse_paymongo_event,
    verify_paymongo_signature,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def run_async(coro):
    """Helper to run async coroutines in sync tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_provider(handler, **config_overrides):
    config = PayMongoConfig(secret_key="sk_test_abc", webhook_secret="whsk_test_secret")
    for key, val in config_overrides.items():
        setattr(config, key, val)
    return PayMongoProvider(config, transport=httpx.MockTransport(handler))


def _make_params(**overrides):
    defaults = {
        "order_id": "ord_123",
        "reference_number": "ORD-20260301-ABC123",
        "line_items": [
            CheckoutLineItem(name="General Admission", amount=50000, quantity=2, currency="PHP"),
        ],
        "description": "Rakrak Live",
        "success_url": "https://rakrak.portl.ph/checkout/success?order=ord_123",
        "cancel_url": "https://rakrak.portl.ph/checkout/cancelled?order=ord_123",
        "customer_email": "buyer@example.com",
        "customer_name": "Ana Cruz",
    }
    defaults.update(overrides)
    return CreateCheckoutSessionParams(**defaults)


def _session_body(session_id="cs_abc", status="active", payments=()):
    return {
        "data": {
            "id": session_id,
            "type": "checkout_session",
            "attributes": {
                "checkout_url": f"https://checkout.paymongo.com/{session_id}",
                "status": status,
                "reference_number": "ORD-20260301-ABC123",
                "metadata": {"order_id": "ord_123"},
                "payments": list(payments),
            },
        }
    }


def _payment_body(payment_id="pay_abc", status="paid", amount=100000):
    return {
        "id": payment_id,
        "type": "payment",
        "attributes": {
            "amount": amount,
            "currency": "PHP",
            "status": status,
            "paid_at": 1772366700,
            "fee": 2500,
            "net_amount": amount - 2500,
            "source": {"type": "gcash"},
        },
    }


def _sign(payload: bytes, secret="whsk_test_secret", timestamp="1772366700", field="te"):
    digest = hmac.new(
        secret.encode(), timestamp.encode() + b"." + payload, hashlib.sha256
    ).hexdigest()
    values = {"te": "", "li": ""}
    values[field] = digest
    return f"t={timestamp},te={values['te']},li={values['li']}"


# ---------------------------------------------------------------------------
# Checkout sessions
# ---------------------------------------------------------------------------

class TestCreateCheckoutSession:

    def test_posts_session_and_returns_redirect(self):
        captured = {}

        def handler(request):
            captured["request"] = request
            return httpx.Response(200, json=_session_body("cs_new"))

        provider = _make_provider(handler, default_payment_methods=["gcash", "card"])
        result = run_async(provider.create_checkout_session(_make_params()))

        assert result.session_id == "cs_new"
        assert result.checkout_url == "https://checkout.paymongo.com/cs_new"
        assert result.status == CheckoutSessionStatusEnum.ACTIVE

        request = captured["request"]
        assert request.method == "POST"
        assert request.url.path.endswith("/checkout_sessions")
        assert request.headers["authorization"].startswith("Basic ")

        attributes = json.loads(request.content)["data"]["attributes"]
        assert attributes["line_items"][0]["amount"] == 50000
        assert attributes["line_items"][0]["quantity"] == 2
        assert attributes["payment_method_types"] == ["gcash", "card"]
        assert attributes["metadata"]["order_id"] == "ord_123"
        assert attributes["reference_number"] == "ORD-20260301-ABC123"
        assert attributes["billing"] == {"email": "buyer@example.com", "name": "Ana Cruz"}

    def test_explicit_payment_methods_win(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=_session_body())

        provider = _make_provider(handler, default_payment_methods=["card"])
        run_async(provider.create_checkout_session(_make_params(payment_method_types=["paymaya"])))

        assert captured["body"]["data"]["attributes"]["payment_method_types"] == ["paymaya"]

    def test_incomplete_response_raises(self):
        provider = _make_provider(lambda request: httpx.Response(200, json={"data": {}}))

        with pytest.raises(PaymentError) as exc_info:
            run_async(provider.create_checkout_session(_make_params()))

        assert exc_info.value.code == "INVALID_RESPONSE"


class TestRetrieveAndExpire:

    def test_retrieve_parses_payments(self):
        body = _session_body("cs_paid", payments=[_payment_body()])
        provider = _make_provider(lambda request: httpx.Response(200, json=body))

        session = run_async(provider.retrieve_checkout_session("cs_paid"))

        assert session.session_id == "cs_paid"
        assert session.status == CheckoutSessionStatusEnum.ACTIVE
        assert session.metadata == {"order_id": "ord_123"}
        paid = session.paid_payment
        assert paid.payment_id == "pay_abc"
        assert paid.status == ProviderPaymentStatusEnum.PAID
        assert paid.amount == 100000
        assert paid.payment_method_type == "gcash"
        assert paid.paid_at.timestamp() == 1772366700

    def test_retrieve_without_paid_payment(self):
        body = _session_body(status="expired", payments=[_payment_body(status="failed")])
        provider = _make_provider(lambda request: httpx.Response(200, json=body))

        session = run_async(provider.retrieve_checkout_session("cs_abc"))

        assert session.status == CheckoutSessionStatusEnum.EXPIRED
        assert session.paid_payment is None

    def test_expire_posts_to_expire_endpoint(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json=_session_body(status="expired"))

        run_async(_make_provider(handler).expire_checkout_session("cs_abc"))

        assert seen == [("POST", "/v1/checkout_sessions/cs_abc/expire")]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrorMapping:

    def _raise_for(self, handler):
        with pytest.raises(PaymentError) as exc_info:
            run_async(_make_provider(handler).retrieve_checkout_session("cs_abc"))
        return exc_info.value

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        error = self._raise_for(handler)
        assert error.code == "TIMEOUT"
        assert error.retryable is True

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        error = self._raise_for(handler)
        assert error.code == "PROVIDER_ERROR"
        assert error.retryable is True

    def test_rate_limited(self):
        error = self._raise_for(lambda request: httpx.Response(429, json={}))
        assert error.code == "RATE_LIMIT"
        assert error.retryable is True

    def test_server_error(self):
        error = self._raise_for(lambda request: httpx.Response(502, text="bad gateway"))
        assert error.code == "PROVIDER_ERROR"

    def test_rejected_request_carries_detail(self):
        body = {"errors": [{"code": "parameter_invalid", "detail": "amount is too small"}]}

        error = self._raise_for(lambda request: httpx.Response(400, json=body))

        assert error.code == "INVALID_REQUEST"
        assert error.message == "amount is too small"
        assert error.retryable is False


# ---------------------------------------------------------------------------
# Webhook signatures and events
# ---------------------------------------------------------------------------

class TestWebhookSignature:

    def setup_method(self):
        self.payload = b'{"data":{"id":"evt_1"}}'

    def test_valid_test_mode_signature(self):
        assert verify_paymongo_signature(self.payload, _sign(self.payload), "whsk_test_secret")

    def test_live_secret_checks_li_field(self):
        secret = "whsk_live_secret"
        header = _sign(self.payload, secret=secret, field="li")

        assert verify_paymongo_signature(self.payload, header, secret)
        assert not verify_paymongo_signature(
            self.payload, _sign(self.payload, secret=secret, field="te"), secret
        )

    def test_tampered_body_rejected(self):
        header = _sign(self.payload)
        assert not verify_paymongo_signature(b'{"data":{"id":"evt_2"}}', header, "whsk_test_secret")

    def test_wrong_secret_rejected(self):
        header = _sign(self.payload, secret="whsk_test_other")
        assert not verify_paymongo_signature(self.payload, header, "whsk_test_secret")

    @pytest.mark.parametrize("header", ["", "garbage", "te=abc,li=", "t=1772366700,te=,li="])
    def test_malformed_header_rejected(self, header):
        assert not verify_paymongo_signature(self.payload, header, "whsk_test_secret")

    def test_provider_without_secret_rejects(self):
        provider = _make_provider(lambda request: httpx.Response(200), webhook_secret=None)
        assert provider.verify_webhook_signature(self.payload, _sign(self.payload)) is False


class TestParseEvent:

    def _event(self, event_type="checkout_session.payment.paid", resource=None):
        resource = resource if resource is not None else _session_body(
            "cs_hook", payments=[_payment_body()]
        )["data"]
        return json.dumps({
            "data": {
                "id": "evt_123",
                "type": "event",
                "attributes": {
                    "type": event_type,
                    "livemode": False,
                    "created_at": 1772366700,
                    "data": resource,
                },
            }
        }).encode()

    def test_checkout_session_paid(self):
        event = parse_paymongo_event(self._event())

        assert event.event_id == "evt_123"
        assert event.event_type == WebhookEventType.CHECKOUT_SESSION_PAYMENT_PAID
        assert event.livemode is False
        assert event.session.session_id == "cs_hook"
        assert event.session.paid_payment.payment_id == "pay_abc"

    def test_unknown_event_type(self):
        event = parse_paymongo_event(self._event("source.chargeable", resource={"type": "source"}))

        assert event.event_type == WebhookEventType.UNKNOWN
        assert event.raw_type == "source.chargeable"
        assert event.session is None

    @pytest.mark.parametrize("payload", [b"not json", b"[]", b'{"data": "x"}'])
    def test_invalid_payload_raises(self, payload):
        with pytest.raises(ValueError):
            parse_paymongo_event(payload)


class TestProviderFactory:

    def test_missing_secret_key_means_no_provider(self):
        from portl.services.payment.provider_factory import PaymentProviderFactory

        with patch("portl.services.payment.provider_factory.settings") as mock_settings:
            mock_settings.PAYMONGO_SECRET_KEY = None
            factory = PaymentProviderFactory()

        with pytest.raises(ValueError, match="not available"):
            factory.get_provider("paymongo")

    def test_configured_provider(self):
        from portl.services.payment.provider_factory import PaymentProviderFactory

        with patch("portl.services.payment.provider_factory.settings") as mock_settings:
            mock_settings.PAYMONGO_SECRET_KEY = "sk_test_abc"
            mock_settings.PAYMONGO_WEBHOOK_SECRET = "whsk_test_secret"
            mock_settings.PAYMONGO_API_URL = "https://api.paymongo.com/v1"
            mock_settings.PAYMONGO_PAYMENT_METHODS = ["card"]
            factory = PaymentProviderFactory()

        provider = factory.get_provider("paymongo")
        assert provider.code == "paymongo"
        assert provider.config.default_payment_methods == ["card"]
