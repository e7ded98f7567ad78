# portl/crud/crud_promotion.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, selectinload

from portl.crud.base import CRUDBase
from portl.models.order import Order
from portl.models.promotion import Promotion, VoucherCode
from portl.schemas.enums import OrderStatus


class CRUDPromotion(CRUDBase[Promotion]):
    def get_automatic_for_event(
        self, db: Session, *, event_id: str, now: datetime
    ) -> List[Promotion]:
        """Active promotions that apply without a voucher code."""
        return (
            db.query(self.model)
            .options(selectinload(self.model.ticket_types))
            .filter(
                and_(
                    self.model.event_id == event_id,
                    self.model.is_active.is_(True),
                    self.model.requires_code.is_(False),
                    or_(self.model.valid_from.is_(None), self.model.valid_from <= now),
                    or_(self.model.valid_until.is_(None), self.model.valid_until >= now),
                )
            )
            .all()
        )

    def count_user_redemptions(self, db: Session, *, promotion_id: str, user_id: str) -> int:
        """Confirmed orders of ``user_id`` that used the promotion."""
        return (
            db.query(func.count(Order.id))
            .filter(
                Order.promotion_id == promotion_id,
                Order.user_id == user_id,
                Order.status == OrderStatus.CONFIRMED.value,
            )
            .scalar()
        )

    def count_pending_holds(
        self, db: Session, *, promotion_id: str, exclude_order_id: Optional[str] = None
    ) -> int:
        """Pending orders currently carrying the promotion."""
        query = db.query(func.count(Order.id)).filter(
            Order.promotion_id == promotion_id,
            Order.status == OrderStatus.PENDING.value,
        )
        if exclude_order_id:
            query = query.filter(Order.id != exclude_order_id)
        return query.scalar()

    def increment_redeemed(self, db: Session, *, promotion_id: str) -> bool:
        """Compare-and-set bump of redeemed_count. Does not commit."""
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == promotion_id,
                or_(
                    self.model.max_redemptions.is_(None),
                    self.model.redeemed_count < self.model.max_redemptions,
                ),
            )
            .update(
                {self.model.redeemed_count: self.model.redeemed_count + 1},
                synchronize_session=False,
            )
        )
        return rows == 1


class CRUDVoucherCode(CRUDBase[VoucherCode]):
    def get_by_code(self, db: Session, *, code: str) -> Optional[VoucherCode]:
        return (
            db.query(self.model)
            .options(selectinload(self.model.promotion).selectinload(Promotion.ticket_types))
            .filter(self.model.code == code.strip().upper())
            .first()
        )

    def increment_redeemed(self, db: Session, *, voucher_code_id: str) -> bool:
        """Compare-and-set bump of redeemed_count. Does not commit."""
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == voucher_code_id,
                or_(
                    self.model.max_redemptions.is_(None),
                    self.model.redeemed_count < self.model.max_redemptions,
                ),
            )
            .update(
                {self.model.redeemed_count: self.model.redeemed_count + 1},
                synchronize_session=False,
            )
        )
        return rows == 1


promotion = CRUDPromotion(Promotion)
voucher_code = CRUDVoucherCode(VoucherCode)
