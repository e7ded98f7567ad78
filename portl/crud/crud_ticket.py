# portl/crud/crud_ticket.py
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from portl.crud.base import CRUDBase
from portl.models.ticket import Ticket


class CRUDTicket(CRUDBase[Ticket]):
    def get_by_order(self, db: Session, *, order_id: str) -> List[Ticket]:
        return (
            db.query(self.model)
            .filter(self.model.order_id == order_id)
            .order_by(self.model.created_at, self.model.ticket_code)
            .all()
        )

    def get_by_user(self, db: Session, *, user_id: str, skip: int = 0, limit: int = 100) -> List[Ticket]:
        return (
            db.query(self.model)
            .options(selectinload(self.model.event), selectinload(self.model.ticket_type))
            .filter(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def code_exists(self, db: Session, *, ticket_code: str) -> bool:
        return (
            db.query(self.model.id).filter(self.model.ticket_code == ticket_code).first()
            is not None
        )

    def generate_unique_code(self, db: Session, *, taken: Optional[set] = None) -> str:
        """Generate a ticket code not yet in the table nor in ``taken``."""
        taken = taken if taken is not None else set()
        while True:
            code = Ticket.generate_ticket_code()
            if code not in taken and not self.code_exists(db, ticket_code=code):
                taken.add(code)
                return code


ticket = CRUDTicket(Ticket)
