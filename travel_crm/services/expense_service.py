"""
Expense ledger: recording, approval and settlement of costs
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import uuid
import structlog

from sqlmodel import and_, col, or_, select

from travel_crm.core.authorization import Caller
from travel_crm.core.config import Settings, get_settings
from travel_crm.core.errors import InvalidStateError, ValidationError
from travel_crm.models.booking import Booking
from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentStatus,
    QueryExpense,
)
from travel_crm.models.fields import ZERO, to_money
from travel_crm.models.quote import Quote
from travel_crm.schemas.common import PageParams
from travel_crm.schemas.expense import ExpenseCreate, ExpenseUpdate, MarkPaidRequest
from travel_crm.services import sequences
from travel_crm.services.repositories import Repositories

logger = structlog.get_logger(__name__)


class ExpenseService:
    def __init__(self, repos: Repositories, settings: Optional[Settings] = None):
        self.repos = repos
        self.session = repos.session
        self.settings = settings or get_settings()

    @property
    def base_currency(self) -> str:
        return self.settings.BASE_CURRENCY

    async def _parent(self, caller: Caller, entity_type: ExpenseEntityType, entity_id: uuid.UUID) -> Any:
        repo = self.repos.quotes if entity_type == ExpenseEntityType.QUOTE else self.repos.bookings
        parent = await repo.get_or_404(entity_id)
        caller.ensure_owns(parent)
        return parent

    def _scope(self, caller: Caller) -> List[Any]:
        """Agents see expenses recorded against their own quotes and bookings"""
        if caller.is_admin:
            return []
        agent = caller.require_profile()
        tenant_id = self.repos.tenant_id
        own_quotes = select(Quote.id).where(Quote.tenant_id == tenant_id, Quote.agent_id == agent.id)
        own_bookings = select(Booking.id).where(Booking.tenant_id == tenant_id, Booking.agent_id == agent.id)
        return [
            or_(
                and_(QueryExpense.entity_type == ExpenseEntityType.QUOTE, col(QueryExpense.entity_id).in_(own_quotes)),
                and_(QueryExpense.entity_type == ExpenseEntityType.BOOKING, col(QueryExpense.entity_id).in_(own_bookings)),
            )
        ]

    async def get_for_caller(self, caller: Caller, expense_id: uuid.UUID) -> QueryExpense:
        expense = await self.repos.expenses.get_or_404(expense_id)
        if not caller.is_admin:
            await self._parent(caller, expense.entity_type, expense.entity_id)
        return expense

    def _save(self, expense: QueryExpense) -> None:
        expense.recalculate(self.base_currency)
        self.repos.expenses.add(expense)

    async def list(
        self,
        caller: Caller,
        params: PageParams,
        entity_type: Optional[ExpenseEntityType] = None,
        category: Optional[ExpenseCategory] = None,
        payment_status: Optional[ExpensePaymentStatus] = None,
        approval_status: Optional[ApprovalStatus] = None,
    ) -> Tuple[List[QueryExpense], int]:
        criteria = self._scope(caller)
        if entity_type:
            criteria.append(QueryExpense.entity_type == entity_type)
        if category:
            criteria.append(QueryExpense.category == category)
        if payment_status:
            criteria.append(QueryExpense.payment_status == payment_status)
        if approval_status:
            criteria.append(QueryExpense.approval_status == approval_status)
        return await self.repos.expenses.page(
            *criteria,
            offset=params.offset,
            limit=params.limit,
            order_by=col(QueryExpense.expense_date).desc(),
        )

    async def create(self, caller: Caller, data: ExpenseCreate) -> QueryExpense:
        await self._parent(caller, data.entity_type, data.entity_id)

        supplier_name = data.supplier_name
        if data.supplier_id is not None:
            supplier = await self.repos.suppliers.get_or_404(data.supplier_id)
            supplier_name = supplier_name or supplier.company_name

        fields = data.model_dump(exclude={"requires_approval", "supplier_name", "expense_date"})
        expense = QueryExpense(
            **fields,
            tenant_id=self.repos.tenant_id,
            expense_number=await sequences.next_number(self.session, self.repos.tenant_id, sequences.EXPENSE),
            supplier_name=supplier_name,
            expense_date=data.expense_date or datetime.utcnow().date(),
            approval_status=(
                ApprovalStatus.PENDING_APPROVAL if data.requires_approval else ApprovalStatus.NOT_REQUIRED
            ),
            recorded_by=caller.id,
        )
        expense.currency = expense.currency.upper()
        self._save(expense)
        await self.session.commit()

        logger.info(
            "Expense recorded",
            expense_id=str(expense.id),
            expense_number=expense.expense_number,
            entity_type=expense.entity_type.value,
            entity_id=str(expense.entity_id),
            amount=str(expense.amount),
        )
        return expense

    async def update(self, caller: Caller, expense_id: uuid.UUID, data: ExpenseUpdate) -> QueryExpense:
        expense = await self.get_for_caller(caller, expense_id)
        expense.ensure_editable()

        changes = data.model_dump(exclude_unset=True)
        if "amount" in changes and to_money(changes["amount"]) < to_money(expense.paid_amount):
            raise ValidationError("Amount cannot be lower than the amount already paid")
        for key, value in changes.items():
            setattr(expense, key, value)
        if "currency" in changes and expense.currency:
            expense.currency = expense.currency.upper()

        paid = to_money(expense.paid_amount)
        if paid > ZERO and expense.payment_status != ExpensePaymentStatus.REFUNDED:
            if paid >= to_money(expense.amount):
                expense.payment_status = ExpensePaymentStatus.PAID
                expense.paid_at = expense.paid_at or datetime.utcnow()
            else:
                expense.payment_status = ExpensePaymentStatus.PARTIALLY_PAID
                expense.paid_at = None

        expense.updated_at = datetime.utcnow()
        self._save(expense)
        await self.session.commit()
        return expense

    async def mark_paid(self, caller: Caller, expense_id: uuid.UUID, data: MarkPaidRequest) -> QueryExpense:
        expense = await self.get_for_caller(caller, expense_id)
        expense.mark_as_paid(Decimal(data.amount), data.payment_method, caller.id, self.base_currency)
        self._save(expense)
        await self.session.commit()
        logger.info(
            "Expense payment recorded",
            expense_id=str(expense.id),
            amount=str(data.amount),
            payment_status=expense.payment_status.value,
        )
        return expense

    async def approve(self, caller: Caller, expense_id: uuid.UUID, notes: Optional[str] = None) -> QueryExpense:
        expense = await self.get_for_caller(caller, expense_id)
        expense.approve(caller.id, notes)
        self._save(expense)
        await self.session.commit()
        logger.info("Expense approved", expense_id=str(expense.id), by=str(caller.id))
        return expense

    async def reject(self, caller: Caller, expense_id: uuid.UUID, reason: Optional[str]) -> QueryExpense:
        expense = await self.get_for_caller(caller, expense_id)
        expense.reject(caller.id, reason)
        self._save(expense)
        await self.session.commit()
        logger.info("Expense rejected", expense_id=str(expense.id), by=str(caller.id))
        return expense

    async def delete(self, caller: Caller, expense_id: uuid.UUID) -> None:
        expense = await self.get_for_caller(caller, expense_id)
        if not expense.can_delete():
            raise InvalidStateError("Cannot delete paid expense")
        await self.repos.expenses.delete(expense)
        await self.session.commit()
        logger.info("Expense deleted", expense_id=str(expense.id))

    async def for_entity(
        self,
        caller: Caller,
        entity_type: ExpenseEntityType,
        entity_id: uuid.UUID,
    ) -> Dict[str, Any]:
        await self._parent(caller, entity_type, entity_id)
        criteria = (QueryExpense.entity_type == entity_type, QueryExpense.entity_id == entity_id)
        return {
            "expenses": await self.repos.expenses.all(*criteria, order_by=col(QueryExpense.expense_date).desc()),
            "totals": await self.repos.expenses.totals(*criteria),
            "by_category": await self.repos.expenses.by_category(*criteria),
        }

    async def summary(self, caller: Caller) -> Dict[str, Any]:
        criteria = self._scope(caller)
        by_payment = await self.repos.expenses.counts_by(QueryExpense.payment_status, *criteria)
        by_approval = await self.repos.expenses.counts_by(QueryExpense.approval_status, *criteria)
        return {
            "totals": await self.repos.expenses.totals(*criteria),
            "by_category": await self.repos.expenses.by_category(*criteria),
            "by_payment_status": {s.value: by_payment.get(s.value, 0) for s in ExpensePaymentStatus},
            "by_approval_status": {s.value: by_approval.get(s.value, 0) for s in ApprovalStatus},
        }
