# portl/schemas/checkout.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portl.schemas.enums import OrderStatus, PaymentVerificationStatus, TicketStatus


# ============================================
# Requests
# ============================================

class AttendeeIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)


class AttendeesUpdate(BaseModel):
    attendees: List[AttendeeIn]


class ContactDetails(BaseModel):
    contact_email: EmailStr
    contact_phone: Optional[str] = Field(default=None, max_length=50)
    attendees: Optional[List[AttendeeIn]] = None


class VoucherApply(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Z0-9\-_]+$")

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


# ============================================
# Responses
# ============================================

class OrderItemResponse(BaseModel):
    id: str
    ticket_type_id: str
    ticket_type_name: str
    price_tier_id: Optional[str] = None
    price_tier_name: Optional[str] = None
    quantity: int
    unit_price: int
    total_price: int

    model_config = {"from_attributes": True}


class TicketResponse(BaseModel):
    id: str
    ticket_code: str
    status: TicketStatus
    event_id: str
    ticket_type_id: str
    order_id: str
    holder_name: Optional[str] = None
    holder_email: Optional[str] = None
    holder_phone: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: str
    order_number: str
    tenant_id: str
    event_id: str
    status: OrderStatus
    currency: str
    subtotal: int
    discount_amount: int
    service_fee: int
    total: int
    promotion_id: Optional[str] = None
    voucher_code_id: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    payment_checkout_url: Optional[str] = None
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    items: List[OrderItemResponse] = []
    tickets: List[TicketResponse] = []

    model_config = {"from_attributes": True}


class PaymentSessionResponse(BaseModel):
    order_id: str
    session_id: str
    checkout_url: str
    expires_at: datetime


class PaymentVerificationResponse(BaseModel):
    order_id: str
    status: PaymentVerificationStatus
    poll_interval_seconds: int
    max_poll_attempts: int
    order: Optional[OrderResponse] = None


class PaymentResponse(BaseModel):
    provider_code: str
    amount: int  # smallest currency unit
    currency: str
    status: str
    payment_method_type: Optional[str] = None
    paid_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class OrderDetailResponse(OrderResponse):
    payment: Optional[PaymentResponse] = None
