# portl/api/endpoints/cron.py
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from portl.api import deps
from portl.db.session import get_db
from portl.services.checkout.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cron"])


@router.get("/cleanup-orders", dependencies=[Depends(deps.verify_cron_secret)])
def cleanup_orders(db: Session = Depends(get_db)):
    """Cancel pending orders whose hold has run out. Called by an external cron."""
    try:
        cancelled = OrderService(db).cleanup_all_expired_orders()
    except Exception as e:
        logger.error(f"Order cleanup failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Cleanup failed"})
    return {"ok": True, "cancelled": cancelled}
