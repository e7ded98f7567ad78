# portl/services/notifications.py
"""
Order confirmation notifications.

Runs after the confirmation transaction has committed, on its own database
session. Nothing in here is allowed to fail the confirmation: every error is
logged and dropped.
"""

import logging
import threading
from typing import Optional

from fastapi import BackgroundTasks

from portl import crud
from portl.core.email import format_amount, send_order_confirmation_email
from portl.core.urls import main_url
from portl.db.session import SessionLocal

logger = logging.getLogger(__name__)


def _format_event_date(starts_at) -> str:
    if starts_at is None:
        return "To be announced"
    return starts_at.strftime("%A, %B %d, %Y at %I:%M %p UTC")


def send_order_confirmation(order_id: str, session_factory=None) -> bool:
    """Load the order and email its confirmation. Returns whether an email went out."""
    db = (session_factory or SessionLocal)()
    try:
        order = crud.order.get_with_items(db, order_id=order_id)
        if not order:
            logger.warning(f"Confirmation email: order {order_id} not found")
            return False
        if not order.contact_email:
            logger.warning(f"Confirmation email: order {order.order_number} has no contact email")
            return False

        event = order.event
        result = send_order_confirmation_email(
            to_email=order.contact_email,
            order_number=order.order_number,
            event_name=event.name,
            event_date=_format_event_date(event.starts_at),
            venue_name=event.venue_name or "",
            ticket_count=order.ticket_count,
            total=format_amount(order.total, order.currency),
            tickets_url=main_url("/account/tickets"),
        )
        return bool(result.get("success"))
    except Exception as e:
        logger.error(f"Confirmation email for order {order_id} failed: {e}", exc_info=True)
        return False
    finally:
        db.close()


class NotificationTrigger:
    """
    Fires order notifications without blocking the caller.

    Inside a request the work is queued on FastAPI's BackgroundTasks (it runs
    after the response is sent); elsewhere it goes to a daemon thread.
    """

    def __init__(self, background_tasks: Optional[BackgroundTasks] = None):
        self.background_tasks = background_tasks

    def order_confirmed(self, order_id: str) -> None:
        try:
            if self.background_tasks is not None:
                self.background_tasks.add_task(send_order_confirmation, order_id)
            else:
                threading.Thread(
                    target=send_order_confirmation,
                    args=(order_id,),
                    name=f"notify-{order_id}",
                    daemon=True,
                ).start()
        except Exception as e:
            logger.error(f"Could not schedule confirmation email for {order_id}: {e}")
