# portl/crud/crud_tenant.py
from typing import Optional

from sqlalchemy.orm import Session

from portl.crud.base import CRUDBase
from portl.models.tenant import Tenant


class CRUDTenant(CRUDBase[Tenant]):
    def get_by_subdomain(self, db: Session, *, subdomain: str) -> Optional[Tenant]:
        return (
            db.query(self.model)
            .filter(self.model.subdomain == subdomain.lower())
            .first()
        )


tenant = CRUDTenant(Tenant)
