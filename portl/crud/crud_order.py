# portl/crud/crud_order.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, selectinload

from portl.crud.base import CRUDBase
from portl.models.order import Order
from portl.models.order_item import OrderItem
from portl.models.pending_attendee import PendingAttendee
from portl.schemas.enums import OrderStatus


class CRUDOrder(CRUDBase[Order]):
    """
    Orders and their state transitions.

    The transition helpers (``mark_confirmed``, ``mark_cancelled``) are
    conditional UPDATEs that re-check the current status in SQL and report
    whether they won. They never commit.
    """

    def get_with_items(self, db: Session, *, order_id: str) -> Optional[Order]:
        """Get an order with its items loaded."""
        return (
            db.query(self.model)
            .options(
                selectinload(self.model.items).selectinload(OrderItem.ticket_type),
                selectinload(self.model.event),
                selectinload(self.model.tenant),
            )
            .filter(self.model.id == order_id)
            .first()
        )

    def get_by_payment_session(self, db: Session, *, session_id: str) -> Optional[Order]:
        return (
            db.query(self.model)
            .filter(self.model.payment_session_id == session_id)
            .first()
        )

    def order_number_exists(self, db: Session, *, order_number: str) -> bool:
        return (
            db.query(self.model.id).filter(self.model.order_number == order_number).first()
            is not None
        )

    def get_pending_for_tenant(
        self, db: Session, *, user_id: str, tenant_id: str, now: datetime
    ) -> Optional[Order]:
        """Newest PENDING order of the user for the tenant that has not expired."""
        return (
            db.query(self.model)
            .options(selectinload(self.model.items))
            .filter(
                self.model.user_id == user_id,
                self.model.tenant_id == tenant_id,
                self.model.status == OrderStatus.PENDING.value,
                or_(self.model.expires_at.is_(None), self.model.expires_at > now),
            )
            .order_by(self.model.created_at.desc())
            .first()
        )

    def get_pending_ids_for_tenant(
        self, db: Session, *, user_id: str, tenant_id: str
    ) -> List[str]:
        rows = (
            db.query(self.model.id)
            .filter(
                self.model.user_id == user_id,
                self.model.tenant_id == tenant_id,
                self.model.status == OrderStatus.PENDING.value,
            )
            .all()
        )
        return [row.id for row in rows]

    def get_by_user(
        self, db: Session, *, user_id: str, skip: int = 0, limit: int = 50
    ) -> List[Order]:
        return (
            db.query(self.model)
            .options(selectinload(self.model.items), selectinload(self.model.event))
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_expired_pending_ids(
        self,
        db: Session,
        *,
        now: datetime,
        user_id: Optional[str] = None,
        limit: int = 500,
    ) -> List[str]:
        """Ids of PENDING orders whose hold ran out before ``now``."""
        query = db.query(self.model.id).filter(
            and_(
                self.model.status == OrderStatus.PENDING.value,
                self.model.expires_at.isnot(None),
                self.model.expires_at < now,
            )
        )
        if user_id:
            query = query.filter(self.model.user_id == user_id)
        return [row.id for row in query.order_by(self.model.expires_at).limit(limit).all()]

    def mark_confirmed(self, db: Session, *, order_id: str, now: datetime) -> bool:
        """PENDING -> CONFIRMED. Expiry is deliberately not re-checked."""
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == order_id,
                self.model.status == OrderStatus.PENDING.value,
            )
            .update(
                {
                    self.model.status: OrderStatus.CONFIRMED.value,
                    self.model.completed_at: now,
                    self.model.expires_at: None,
                    self.model.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return rows == 1

    def mark_cancelled(
        self,
        db: Session,
        *,
        order_id: str,
        now: datetime,
        expired_before: Optional[datetime] = None,
    ) -> bool:
        """
        PENDING -> CANCELLED.

        With ``expired_before`` the order is only cancelled if it is still
        expired at that instant, so an order extended by a new payment session
        in the meantime is left alone.
        """
        query = db.query(self.model).filter(
            self.model.id == order_id,
            self.model.status == OrderStatus.PENDING.value,
        )
        if expired_before is not None:
            query = query.filter(
                self.model.expires_at.isnot(None),
                self.model.expires_at < expired_before,
            )
        rows = query.update(
            {
                self.model.status: OrderStatus.CANCELLED.value,
                self.model.cancelled_at: now,
                self.model.expires_at: None,
                self.model.updated_at: now,
            },
            synchronize_session=False,
        )
        return rows == 1


    def attach_payment_session(
        self,
        db: Session,
        *,
        order_id: str,
        session_id: str,
        checkout_url: str,
        expires_at: datetime,
        now: datetime,
    ) -> bool:
        """Store the hosted session and extend the hold, if the order is still PENDING."""
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == order_id,
                self.model.status == OrderStatus.PENDING.value,
            )
            .update(
                {
                    self.model.payment_session_id: session_id,
                    self.model.payment_checkout_url: checkout_url,
                    self.model.expires_at: expires_at,
                    self.model.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        return rows == 1

    def delete_pending_attendees(self, db: Session, *, order_id: str) -> int:
        return (
            db.query(PendingAttendee)
            .filter(PendingAttendee.order_id == order_id)
            .delete(synchronize_session=False)
        )


order = CRUDOrder(Order)
