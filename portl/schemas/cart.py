# portl/schemas/cart.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_QUANTITY_PER_LINE = 10


class CartItemAdd(BaseModel):
    event_id: str
    ticket_type_id: str
    price_tier_id: Optional[str] = None
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY_PER_LINE)


class CartItemUpdate(BaseModel):
    # 0 removes the line
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY_PER_LINE)


class CartLine(BaseModel):
    id: str
    event_id: str
    ticket_type_id: str
    ticket_type_name: str
    price_tier_id: Optional[str] = None
    quantity: int
    unit_price: int
    line_total: int


class CartEventGroup(BaseModel):
    event_id: str
    event_name: str
    lines: List[CartLine]
    subtotal: int


class TenantCart(BaseModel):
    tenant_id: str
    subdomain: str
    tenant_name: str
    events: List[CartEventGroup] = []
    subtotal: int = 0
    item_count: int = 0
    expires_at: Optional[datetime] = None


class CartSummary(BaseModel):
    tenants: List[TenantCart] = []
    subtotal: int = 0
    item_count: int = 0
