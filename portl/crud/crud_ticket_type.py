# portl/crud/crud_ticket_type.py
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from portl.crud.base import CRUDBase
from portl.models.price_tier import PriceTier
from portl.models.ticket_type import TicketType


class CRUDTicketType(CRUDBase[TicketType]):
    """Ticket types and the sold-quantity ledger."""

    def get_with_tiers(self, db: Session, *, ticket_type_id: str) -> Optional[TicketType]:
        return (
            db.query(self.model)
            .options(selectinload(self.model.price_tiers))
            .filter(self.model.id == ticket_type_id)
            .first()
        )

    def increment_quantity_sold(
        self, db: Session, *, ticket_type_id: str, quantity: int
    ) -> bool:
        """
        Add ``quantity`` to quantity_sold if, and only if, capacity allows.

        Single compare-and-set UPDATE so concurrent confirmations serialize on
        the row; returns False when the row would exceed quantity_total.
        Does not commit: runs inside the caller's transaction.
        """
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == ticket_type_id,
                or_(
                    self.model.quantity_total.is_(None),
                    self.model.quantity_sold + quantity <= self.model.quantity_total,
                ),
            )
            .update(
                {self.model.quantity_sold: self.model.quantity_sold + quantity},
                synchronize_session=False,
            )
        )
        return rows == 1


class CRUDPriceTier(CRUDBase[PriceTier]):
    def get_for_ticket_type(
        self, db: Session, *, price_tier_id: str, ticket_type_id: str
    ) -> Optional[PriceTier]:
        return (
            db.query(self.model)
            .filter(self.model.id == price_tier_id, self.model.ticket_type_id == ticket_type_id)
            .first()
        )

    def increment_allocation_sold(
        self, db: Session, *, price_tier_id: str, quantity: int
    ) -> bool:
        """Compare-and-set bump of allocation_sold; same contract as quantity_sold."""
        rows = (
            db.query(self.model)
            .filter(
                self.model.id == price_tier_id,
                or_(
                    self.model.allocation_total.is_(None),
                    self.model.allocation_sold + quantity <= self.model.allocation_total,
                ),
            )
            .update(
                {self.model.allocation_sold: self.model.allocation_sold + quantity},
                synchronize_session=False,
            )
        )
        return rows == 1


ticket_type = CRUDTicketType(TicketType)
price_tier = CRUDPriceTier(PriceTier)
