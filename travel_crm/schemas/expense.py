"""
Expense schemas
"""

from sqlmodel import SQLModel
from pydantic import Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
import uuid

from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentMethod,
    ExpensePaymentStatus,
)


class ExpenseCreate(SQLModel):
    entity_type: ExpenseEntityType
    entity_id: uuid.UUID
    category: ExpenseCategory
    subcategory: Optional[str] = None
    description: str = Field(min_length=1, max_length=1000)
    amount: Decimal = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    supplier_id: Optional[uuid.UUID] = None
    supplier_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    expense_date: Optional[date] = None
    due_date: Optional[date] = None
    requires_approval: bool = False
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    commission_applicable: bool = False
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    markup_percentage: Optional[Decimal] = Field(default=None, ge=0)
    markup_amount: Optional[Decimal] = Field(default=None, ge=0)


class ExpenseUpdate(SQLModel):
    category: Optional[ExpenseCategory] = None
    subcategory: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    supplier_id: Optional[uuid.UUID] = None
    supplier_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    expense_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    tags: Optional[List[str]] = None
    commission_applicable: Optional[bool] = None
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    markup_percentage: Optional[Decimal] = Field(default=None, ge=0)
    markup_amount: Optional[Decimal] = Field(default=None, ge=0)


class MarkPaidRequest(SQLModel):
    amount: Decimal
    payment_method: Optional[ExpensePaymentMethod] = None


class ApproveRequest(SQLModel):
    notes: Optional[str] = None


class RejectRequest(SQLModel):
    reason: Optional[str] = None


class ExpenseRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    expense_number: str
    entity_type: ExpenseEntityType
    entity_id: uuid.UUID
    category: ExpenseCategory
    subcategory: Optional[str] = None
    description: str
    amount: Decimal
    currency: str
    exchange_rate: Optional[Decimal] = None
    amount_in_base_currency: Decimal
    supplier_id: Optional[uuid.UUID] = None
    supplier_name: Optional[str] = None
    payment_status: ExpensePaymentStatus
    payment_method: Optional[ExpensePaymentMethod] = None
    paid_amount: Decimal
    pending_amount: Decimal
    paid_at: Optional[datetime] = None
    invoice_number: Optional[str] = None
    expense_date: date
    due_date: Optional[date] = None
    approval_status: ApprovalStatus
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    recorded_by: uuid.UUID
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    commission_applicable: bool
    commission_rate: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    markup_percentage: Optional[Decimal] = None
    markup_amount: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseTotals(SQLModel):
    total_amount: Decimal
    total_paid: Decimal
    total_pending: Decimal


class CategoryTotal(SQLModel):
    category: str
    total: Decimal
    count: int


class EntityExpenses(SQLModel):
    expenses: List[ExpenseRead]
    totals: ExpenseTotals
    by_category: List[CategoryTotal]


class ExpenseSummary(SQLModel):
    totals: ExpenseTotals
    by_category: List[CategoryTotal]
    by_payment_status: Dict[str, int]
    by_approval_status: Dict[str, int]
