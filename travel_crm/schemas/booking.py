"""
Booking schemas
"""

from sqlmodel import SQLModel
from pydantic import Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
import uuid

from travel_crm.models.booking import BookingPaymentStatus, BookingStatus, PaymentMethod


class BookingCreate(SQLModel):
    quote_id: uuid.UUID
    payment_due_date: Optional[date] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None


class BookingUpdate(SQLModel):
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None
    payment_due_date: Optional[date] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None


class PaymentCreate(SQLModel):
    amount: Decimal
    method: PaymentMethod = PaymentMethod.OTHER
    reference: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)


class BookingCancel(SQLModel):
    reason: Optional[str] = Field(default=None, max_length=1000)
    refund_amount: Optional[Decimal] = None


class PaymentRecordRead(SQLModel):
    id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[uuid.UUID] = None
    paid_at: datetime

    class Config:
        from_attributes = True


class BookingRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    booking_number: str
    quote_id: uuid.UUID
    itinerary_id: uuid.UUID
    agent_id: uuid.UUID
    customer_id: uuid.UUID
    number_of_travelers: int
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None
    status: BookingStatus
    total_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    refunded_amount: Decimal
    currency: str
    payment_status: BookingPaymentStatus
    payment_due_date: Optional[date] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
