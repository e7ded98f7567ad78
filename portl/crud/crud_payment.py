# portl/crud/crud_payment.py
from typing import Optional

from sqlalchemy.orm import Session

from portl.crud.base import CRUDBase
from portl.models.payment import Payment


class CRUDPayment(CRUDBase[Payment]):
    def get_by_order(self, db: Session, *, order_id: str) -> Optional[Payment]:
        return db.query(self.model).filter(self.model.order_id == order_id).first()


payment = CRUDPayment(Payment)
