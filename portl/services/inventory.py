# portl/services/inventory.py
"""
Inventory ledger.

Stock is committed only when an order is confirmed: quantity_sold (and the
allocation_sold of the tier the line was priced at) grows by compare-and-set
UPDATEs inside the confirmation transaction. Pending orders hold nothing,
so whichever payment confirms first gets the last tickets.
"""

import logging

from sqlalchemy.orm import Session

from portl import crud
from portl.core.exceptions import InventoryConflictError

logger = logging.getLogger(__name__)


def available_quantity(ticket_type):
    """Remaining capacity as of the last read, or None when unlimited."""
    return ticket_type.quantity_available


def has_capacity(ticket_type, quantity: int) -> bool:
    """Soft check for cart adds and checkout; not a reservation."""
    available = available_quantity(ticket_type)
    return available is None or quantity <= available


def commit_order_inventory(db: Session, order) -> None:
    """
    Record the order's tickets as sold.

    Must run in the same transaction as the status transition. Raises
    InventoryConflictError on the first line that does not fit; the caller
    rolls back, which also undoes any earlier lines of this order.
    """
    for item in order.items:
        if not crud.ticket_type.increment_quantity_sold(
            db, ticket_type_id=item.ticket_type_id, quantity=item.quantity
        ):
            logger.warning(
                f"Ticket type {item.ticket_type_id} cannot take {item.quantity} more "
                f"(order {order.id})"
            )
            raise InventoryConflictError(
                f"Not enough tickets left for {item.ticket_type_name}",
                ticket_type_id=item.ticket_type_id,
            )

        if item.price_tier_id and not crud.price_tier.increment_allocation_sold(
            db, price_tier_id=item.price_tier_id, quantity=item.quantity
        ):
            logger.warning(
                f"Price tier {item.price_tier_id} allocation exhausted (order {order.id})"
            )
            raise InventoryConflictError(
                f"The {item.price_tier_name or 'selected'} allocation for "
                f"{item.ticket_type_name} is sold out",
                ticket_type_id=item.ticket_type_id,
                price_tier_id=item.price_tier_id,
            )
