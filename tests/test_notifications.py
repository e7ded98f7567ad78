"""
Tests for order confirmation notifications.

The confirmation email runs after the order has committed and must never
raise into its caller.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from fastapi import BackgroundTasks

from portl.core.email import format_amount, send_order_confirmation_email
from portl.schemas.enums import OrderStatus
from portl.services.notifications import NotificationTrigger, send_order_confirmation
from tests.utils.catalog import create_event, create_tenant, create_ticket_type
from tests.utils.orders import create_order

NOTIFY_MODULE = "portl.services.notifications"


class TestSendOrderConfirmation:

    @pytest.fixture(autouse=True)
    def _setup(self, db_session, session_factory):
        self.db = db_session
        self.session_factory = session_factory
        tenant = create_tenant(db_session)
        self.event = create_event(db_session, tenant, name="Rakrak Live")
        self.event.starts_at = datetime(2026, 4, 4, 20, 0, tzinfo=timezone.utc)
        db_session.commit()
        self.ga = create_ticket_type(db_session, self.event, base_price=1250)

    def test_sends_email_for_order(self):
        order = create_order(
            self.db, self.event, [(self.ga, 2)], status=OrderStatus.CONFIRMED.value
        )

        with patch(f"{NOTIFY_MODULE}.send_order_confirmation_email") as mock_send:
            mock_send.return_value = {"success": True, "id": "em_1"}
            assert send_order_confirmation(order.id, self.session_factory) is True

        kwargs = mock_send.call_args.kwargs
        assert kwargs["to_email"] == "user_test@example.com"
        assert kwargs["order_number"] == order.order_number
        assert kwargs["event_name"] == "Rakrak Live"
        assert kwargs["event_date"] == "Saturday, April 04, 2026 at 08:00 PM UTC"
        assert kwargs["venue_name"] == "Test Venue"
        assert kwargs["ticket_count"] == 2
        assert kwargs["total"] == "₱2,500.00"
        assert kwargs["tickets_url"].endswith("/account/tickets")

    def test_unknown_order(self):
        with patch(f"{NOTIFY_MODULE}.send_order_confirmation_email") as mock_send:
            assert send_order_confirmation("ord_missing", self.session_factory) is False
        mock_send.assert_not_called()

    def test_email_failure_is_swallowed(self):
        order = create_order(self.db, self.event, [(self.ga, 1)])

        with patch(f"{NOTIFY_MODULE}.send_order_confirmation_email", side_effect=RuntimeError("smtp")):
            assert send_order_confirmation(order.id, self.session_factory) is False


class TestNotificationTrigger:

    def test_queues_on_background_tasks(self):
        background_tasks = BackgroundTasks()

        NotificationTrigger(background_tasks).order_confirmed("ord_1")

        assert len(background_tasks.tasks) == 1
        task = background_tasks.tasks[0]
        assert task.func is send_order_confirmation
        assert task.args == ("ord_1",)

    def test_falls_back_to_thread(self):
        with patch(f"{NOTIFY_MODULE}.threading.Thread") as thread_cls:
            NotificationTrigger().order_confirmed("ord_1")

        kwargs = thread_cls.call_args.kwargs
        assert kwargs["target"] is send_order_confirmation
        assert kwargs["args"] == ("ord_1",)
        assert kwargs["daemon"] is True
        thread_cls.return_value.start.assert_called_once()

    def test_scheduling_errors_are_swallowed(self):
        background_tasks = MagicMock()
        background_tasks.add_task.side_effect = RuntimeError("boom")

        NotificationTrigger(background_tasks).order_confirmed("ord_1")


class TestEmail:

    @pytest.mark.parametrize(
        "amount, currency, expected",
        [(0, "PHP", "FREE"), (500, "PHP", "₱500.00"), (12500, "PHP", "₱12,500.00"), (20, "USD", "USD 20.00")],
    )
    def test_format_amount(self, amount, currency, expected):
        assert format_amount(amount, currency) == expected

    def test_skipped_without_api_key(self):
        with patch("portl.core.email.settings") as mock_settings, \
                patch("portl.core.email.resend") as mock_resend:
            mock_settings.RESEND_API_KEY = None
            result = send_order_confirmation_email(
                to_email="a@example.com", order_number="PORTL-ABCD1234", event_name="Show",
                event_date="TBA", venue_name="", ticket_count=1, total="FREE", tickets_url="https://x",
            )

        assert result == {"success": False, "skipped": True}
        mock_resend.Emails.send.assert_not_called()

    def test_sends_through_resend(self):
        with patch("portl.core.email.settings") as mock_settings, \
                patch("portl.core.email.resend") as mock_resend:
            mock_settings.RESEND_API_KEY = "re_test"
            mock_settings.RESEND_FROM_EMAIL = "Portl <tickets@portl.ph>"
            mock_resend.Emails.send.return_value = {"id": "em_123"}

            result = send_order_confirmation_email(
                to_email="a@example.com", order_number="PORTL-ABCD1234", event_name="Show",
                event_date="TBA", venue_name="Hall", ticket_count=2, total="₱1,000.00",
                tickets_url="https://x",
            )

        assert result == {"success": True, "id": "em_123"}
        params = mock_resend.Emails.send.call_args.args[0]
        assert params["to"] == ["a@example.com"]
        assert params["subject"] == "Order Confirmed: Show (PORTL-ABCD1234)"
        assert "2 tickets" in params["html"]
