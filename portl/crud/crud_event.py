# portl/crud/crud_event.py
from typing import Optional

from sqlalchemy.orm import Session

from portl.crud.base import CRUDBase
from portl.models.event import Event


class CRUDEvent(CRUDBase[Event]):
    def get_for_tenant(self, db: Session, *, event_id: str, tenant_id: str) -> Optional[Event]:
        """Get an event only if it belongs to the given tenant."""
        return (
            db.query(self.model)
            .filter(self.model.id == event_id, self.model.tenant_id == tenant_id)
            .first()
        )


event = CRUDEvent(Event)
