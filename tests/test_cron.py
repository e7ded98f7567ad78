"""
Tests for the cron cleanup endpoint.

/api/cron/cleanup-orders is driven by an external scheduler and guarded by
a shared bearer secret.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from portl import crud
from portl.core.config import settings
from portl.schemas.enums import OrderStatus
from tests.utils.catalog import create_event, create_tenant, create_ticket_type
from tests.utils.orders import create_order

CRON_URL = "/api/cron/cleanup-orders"


def _cron_headers(secret="test-cron-secret"):
    return {"Authorization": f"Bearer {secret}"}


class TestCronAuthentication:

    def test_missing_header_rejected(self, client):
        assert client.get(CRON_URL).status_code == 401

    def test_wrong_secret_rejected(self, client):
        assert client.get(CRON_URL, headers=_cron_headers("nope")).status_code == 401

    def test_secret_without_bearer_prefix_rejected(self, client):
        response = client.get(CRON_URL, headers={"Authorization": "test-cron-secret"})
        assert response.status_code == 401

    def test_unconfigured_secret_rejects_everything(self, client):
        with patch.object(settings, "CRON_SECRET", None):
            response = client.get(CRON_URL, headers={"Authorization": "Bearer None"})
        assert response.status_code == 401


class TestCronCleanup:

    def test_cancels_expired_orders(self, client, db_session):
        tenant = create_tenant(db_session)
        event = create_event(db_session, tenant)
        ga = create_ticket_type(db_session, event)
        now = datetime.now(timezone.utc)
        expired = create_order(db_session, event, [(ga, 1)], expires_at=now - timedelta(minutes=1))
        live = create_order(db_session, event, [(ga, 1)], expires_at=now + timedelta(minutes=10))

        response = client.get(CRON_URL, headers=_cron_headers())

        assert response.status_code == 200
        assert response.json() == {"ok": True, "cancelled": 1}
        db_session.expire_all()
        assert crud.order.get(db_session, id=expired.id).status == OrderStatus.CANCELLED.value
        assert crud.order.get(db_session, id=live.id).status == OrderStatus.PENDING.value

    def test_nothing_to_do(self, client):
        response = client.get(CRON_URL, headers=_cron_headers())

        assert response.status_code == 200
        assert response.json() == {"ok": True, "cancelled": 0}

    def test_failure_returns_500(self, client):
        with patch("portl.api.endpoints.cron.OrderService") as service_cls:
            service_cls.return_value.cleanup_all_expired_orders.side_effect = RuntimeError("db down")
            response = client.get(CRON_URL, headers=_cron_headers())

        assert response.status_code == 500
        assert response.json() == {"error": "Cleanup failed"}
