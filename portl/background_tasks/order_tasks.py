# portl/background_tasks/order_tasks.py
"""
Background tasks for order expiry.
"""
import logging

from portl.db.session import SessionLocal
from portl.services.checkout.order_service import OrderService

logger = logging.getLogger(__name__)


def cleanup_expired_orders() -> int:
    """
    Background task: cancel PENDING orders whose hold has run out.

    Scheduled every REAPER_INTERVAL_MINUTES; the cron endpoint runs the same
    sweep on demand.

    Returns: Number of orders cancelled
    """
    db = SessionLocal()
    try:
        count = OrderService(db).cleanup_all_expired_orders()
        if count > 0:
            logger.info(f"Reaper cancelled {count} expired orders")
        return count
    except Exception as e:
        logger.error(f"Error in cleanup_expired_orders task: {str(e)}")
        return 0
    finally:
        db.close()
