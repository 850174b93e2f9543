"""
Booking model - confirmed trip created from an accepted quote
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

from travel_crm.core.errors import InvalidStateError, ValidationError
from travel_crm.models.fields import ZERO, money_field, to_money


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingPaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})


class Booking(SQLModel, table=True):
    """Booking with its financial summary"""

    __tablename__ = "bookings"
    __table_args__ = (UniqueConstraint("tenant_id", "booking_number", name="uq_bookings_tenant_number"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    booking_number: str = Field(index=True, max_length=32, description="B{year}-{sequence:06d}")

    quote_id: uuid.UUID = Field(foreign_key="quotes.id", unique=True)
    itinerary_id: uuid.UUID = Field(foreign_key="itineraries.id")
    agent_id: uuid.UUID = Field(foreign_key="agents.id", index=True)
    customer_id: uuid.UUID = Field(foreign_key="customers.id", index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")

    number_of_travelers: int = Field(default=1, ge=1)
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None

    status: BookingStatus = Field(default=BookingStatus.PENDING, index=True)

    # Financial
    total_amount: Decimal = money_field()
    paid_amount: Decimal = money_field()
    pending_amount: Decimal = money_field()
    refunded_amount: Decimal = money_field()
    currency: str = Field(default="USD", max_length=3)
    payment_status: BookingPaymentStatus = Field(default=BookingPaymentStatus.PENDING, index=True)
    payment_due_date: Optional[date] = None

    special_requests: Optional[str] = Field(default=None, max_length=5000)
    notes: Optional[str] = Field(default=None, max_length=5000)

    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = Field(default=None, max_length=1000)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def ensure_editable(self) -> None:
        if self.is_terminal():
            raise InvalidStateError(f"Cannot update a {self.status.value} booking")

    def derive_payment_status(self, today: Optional[date] = None) -> BookingPaymentStatus:
        paid = to_money(self.paid_amount)
        total = to_money(self.total_amount)
        if paid >= total:
            return BookingPaymentStatus.PAID
        if paid > ZERO:
            return BookingPaymentStatus.PARTIALLY_PAID
        today = today or datetime.utcnow().date()
        if self.payment_due_date is not None and today > self.payment_due_date:
            return BookingPaymentStatus.OVERDUE
        return BookingPaymentStatus.PENDING

    def refresh_financials(self, today: Optional[date] = None) -> None:
        self.pending_amount = to_money(self.total_amount) - to_money(self.paid_amount)
        if self.payment_status != BookingPaymentStatus.REFUNDED:
            self.payment_status = self.derive_payment_status(today)

    def record_payment(self, amount: Decimal) -> Decimal:
        """Apply a payment; the caller persists the matching payment record"""
        amount = to_money(amount)
        if self.status == BookingStatus.CANCELLED:
            raise InvalidStateError("Cannot add payment to a cancelled booking")
        if amount <= ZERO:
            raise ValidationError("Payment amount must be greater than zero")
        self.refresh_financials()
        if amount > self.pending_amount:
            raise ValidationError(
                f"Payment amount exceeds pending amount ({self.pending_amount})"
            )

        self.paid_amount = to_money(self.paid_amount) + amount
        self.refresh_financials()
        self.updated_at = datetime.utcnow()
        return amount

    def is_fully_paid(self) -> bool:
        return self.payment_status == BookingPaymentStatus.PAID

    def confirm(self) -> None:
        if self.status != BookingStatus.PENDING:
            raise InvalidStateError(f"Only pending bookings can be confirmed (current: {self.status.value})")
        if self.payment_status in (BookingPaymentStatus.PENDING, BookingPaymentStatus.OVERDUE):
            raise InvalidStateError("Booking requires at least a partial payment before confirmation")
        self.status = BookingStatus.CONFIRMED
        self.confirmed_at = datetime.utcnow()
        self.updated_at = self.confirmed_at

    def complete(self, today: Optional[date] = None) -> None:
        if self.status != BookingStatus.CONFIRMED:
            raise InvalidStateError(f"Only confirmed bookings can be completed (current: {self.status.value})")
        today = today or datetime.utcnow().date()
        if self.travel_end_date is not None and today < self.travel_end_date:
            raise InvalidStateError("Booking cannot be completed before the travel end date")
        self.status = BookingStatus.COMPLETED
        self.completed_at = datetime.utcnow()
        self.updated_at = self.completed_at

    def cancel(self, reason: Optional[str] = None, refund_amount: Optional[Decimal] = None) -> None:
        if self.is_terminal():
            raise InvalidStateError(f"Cannot cancel a {self.status.value} booking")
        if refund_amount is not None:
            refund_amount = to_money(refund_amount)
            if refund_amount < ZERO or refund_amount > to_money(self.paid_amount):
                raise ValidationError("Refund amount cannot exceed the paid amount")
            if refund_amount > ZERO:
                self.refunded_amount = refund_amount
                self.payment_status = BookingPaymentStatus.REFUNDED

        self.status = BookingStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = datetime.utcnow()
        self.updated_at = self.cancelled_at


class BookingPaymentRecord(SQLModel, table=True):
    """Append-only payment history for a booking"""

    __tablename__ = "booking_payments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    booking_id: uuid.UUID = Field(foreign_key="bookings.id", index=True)

    amount: Decimal = money_field()
    method: PaymentMethod = Field(default=PaymentMethod.OTHER)
    reference: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)
    recorded_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    paid_at: datetime = Field(default_factory=datetime.utcnow)
