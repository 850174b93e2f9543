"""
Expense ledger entries attached to a quote or booking
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
import uuid

from travel_crm.core.errors import InvalidStateError, ValidationError
from travel_crm.models.fields import ZERO, money_field, rate_field, to_money


class ExpenseEntityType(str, Enum):
    QUOTE = "quote"
    BOOKING = "booking"


class ExpenseCategory(str, Enum):
    FLIGHTS = "flights"
    HOTELS = "hotels"
    TRANSPORT = "transport"
    ACTIVITIES = "activities"
    MEALS = "meals"
    GUIDES = "guides"
    PERMITS = "permits"
    INSURANCE = "insurance"
    VISA = "visa"
    TIPS = "tips"
    MISCELLANEOUS = "miscellaneous"
    OTHER = "other"


class ExpensePaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    REFUNDED = "refunded"


class ExpensePaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    OTHER = "other"


class ApprovalStatus(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    NOT_REQUIRED = "not_required"


OPEN_APPROVAL_STATUSES = frozenset({ApprovalStatus.PENDING_APPROVAL, ApprovalStatus.NOT_REQUIRED})


class QueryExpense(SQLModel, table=True):
    """Cost incurred against a quote or booking"""

    __tablename__ = "query_expenses"
    __table_args__ = (UniqueConstraint("tenant_id", "expense_number", name="uq_expenses_tenant_number"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    expense_number: str = Field(index=True, max_length=32, description="EXP{year}-{sequence:06d}")

    entity_type: ExpenseEntityType = Field(index=True)
    entity_id: uuid.UUID = Field(index=True)

    category: ExpenseCategory = Field(index=True)
    subcategory: Optional[str] = Field(default=None, max_length=100)
    description: str = Field(max_length=1000)

    amount: Decimal = money_field()
    currency: str = Field(default="USD", max_length=3)
    exchange_rate: Optional[Decimal] = rate_field("Rate to the base currency")
    amount_in_base_currency: Decimal = money_field()

    supplier_id: Optional[uuid.UUID] = Field(default=None, foreign_key="suppliers.id")
    supplier_name: Optional[str] = Field(default=None, max_length=200)

    # Payment
    payment_status: ExpensePaymentStatus = Field(default=ExpensePaymentStatus.PENDING, index=True)
    payment_method: Optional[ExpensePaymentMethod] = None
    paid_amount: Decimal = money_field()
    pending_amount: Decimal = money_field()
    paid_at: Optional[datetime] = None
    paid_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")

    invoice_number: Optional[str] = Field(default=None, max_length=100)
    invoice_date: Optional[date] = None

    expense_date: date = Field(index=True)
    due_date: Optional[date] = None

    # Approval
    approval_status: ApprovalStatus = Field(default=ApprovalStatus.NOT_REQUIRED, index=True)
    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)

    recorded_by: uuid.UUID = Field(foreign_key="users.id")

    notes: Optional[str] = Field(default=None, max_length=5000)
    internal_notes: Optional[str] = Field(default=None, max_length=5000)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Commission and markup
    commission_applicable: bool = Field(default=False)
    commission_rate: Optional[Decimal] = rate_field()
    commission_amount: Optional[Decimal] = money_field(default=None, nullable=True)
    markup_percentage: Optional[Decimal] = rate_field()
    markup_amount: Optional[Decimal] = money_field(default=None, nullable=True)
    selling_price: Optional[Decimal] = money_field(default=None, nullable=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def recalculate(self, base_currency: str = "USD") -> None:
        """Refresh every derived amount; call before each persist"""
        amount = to_money(self.amount)
        self.pending_amount = amount - to_money(self.paid_amount)

        if self.currency != base_currency and self.exchange_rate:
            self.amount_in_base_currency = to_money(amount * Decimal(self.exchange_rate))
        else:
            self.amount_in_base_currency = amount

        # Percentage markup wins over a flat amount
        if self.markup_percentage:
            self.markup_amount = to_money(amount * Decimal(self.markup_percentage) / 100)
            self.selling_price = amount + self.markup_amount
        elif self.markup_amount:
            self.selling_price = amount + to_money(self.markup_amount)
        else:
            self.selling_price = None

        if self.commission_applicable and self.commission_rate:
            self.commission_amount = to_money(amount * Decimal(self.commission_rate) / 100)
        else:
            self.commission_amount = None

    def is_locked(self) -> bool:
        """Approved and paid expenses are frozen"""
        return (
            self.approval_status == ApprovalStatus.APPROVED
            and self.payment_status == ExpensePaymentStatus.PAID
        )

    def ensure_editable(self) -> None:
        if self.is_locked():
            raise InvalidStateError("Cannot update approved and paid expense")

    def can_delete(self) -> bool:
        return self.payment_status != ExpensePaymentStatus.PAID

    def mark_as_paid(
        self,
        amount: Decimal,
        payment_method: Optional[ExpensePaymentMethod] = None,
        paid_by: Optional[uuid.UUID] = None,
        base_currency: str = "USD",
    ) -> None:
        amount = to_money(amount)
        if amount <= ZERO:
            raise ValidationError("Payment amount must be greater than zero")
        if self.approval_status == ApprovalStatus.REJECTED:
            raise InvalidStateError("Cannot pay a rejected expense")

        self.recalculate(base_currency)
        if amount > self.pending_amount:
            raise ValidationError(
                f"Payment amount exceeds pending amount ({self.pending_amount})"
            )

        self.paid_amount = to_money(self.paid_amount) + amount
        self.payment_method = payment_method
        self.paid_by = paid_by
        if self.paid_amount >= to_money(self.amount):
            self.payment_status = ExpensePaymentStatus.PAID
            self.paid_at = datetime.utcnow()
        else:
            self.payment_status = ExpensePaymentStatus.PARTIALLY_PAID
        self.recalculate(base_currency)
        self.updated_at = datetime.utcnow()

    def _ensure_open_for_approval(self) -> None:
        if self.approval_status not in OPEN_APPROVAL_STATUSES:
            raise InvalidStateError(
                f"Expense has already been {self.approval_status.value}"
            )

    def approve(self, user_id: uuid.UUID, notes: Optional[str] = None) -> None:
        self._ensure_open_for_approval()
        self.approval_status = ApprovalStatus.APPROVED
        self.approved_by = user_id
        self.approved_at = datetime.utcnow()
        if notes:
            self.notes = f"{self.notes}\n{notes}" if self.notes else notes
        self.updated_at = self.approved_at

    def reject(self, user_id: uuid.UUID, reason: Optional[str]) -> None:
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required")
        self._ensure_open_for_approval()
        self.approval_status = ApprovalStatus.REJECTED
        self.approved_by = user_id
        self.approved_at = datetime.utcnow()
        self.rejection_reason = reason.strip()
        self.updated_at = self.approved_at
