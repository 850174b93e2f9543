"""
Tenant-scoped repositories

Every query is filtered by the tenant the repository was built for; a row
belonging to another tenant is indistinguishable from a missing one.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar
import uuid

from sqlalchemy import func
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from travel_crm.core.errors import NotFoundError
from travel_crm.models.agent import Agent
from travel_crm.models.assignment import QueryAssignment, TERMINAL_STATUSES
from travel_crm.models.audit_log import AuditLog
from travel_crm.models.booking import Booking, BookingPaymentRecord
from travel_crm.models.customer import Customer
from travel_crm.models.expense import QueryExpense
from travel_crm.models.fields import to_money
from travel_crm.models.itinerary import Itinerary
from travel_crm.models.quote import Quote
from travel_crm.models.supplier import Supplier
from travel_crm.models.user import User

ModelT = TypeVar("ModelT", bound=SQLModel)


class TenantRepository(Generic[ModelT]):
    model: Type[ModelT]
    label: str = "Resource"

    def __init__(self, session: AsyncSession, tenant_id: uuid.UUID):
        self.session = session
        self.tenant_id = tenant_id

    def scoped(self, *criteria: Any):
        return select(self.model).where(self.model.tenant_id == self.tenant_id, *criteria)

    async def get(self, entity_id: Any) -> Optional[ModelT]:
        try:
            entity_id = uuid.UUID(str(entity_id))
        except ValueError:
            return None
        entity = await self.session.get(self.model, entity_id)
        if entity is None or entity.tenant_id != self.tenant_id:
            return None
        return entity

    async def get_or_404(self, entity_id: Any) -> ModelT:
        entity = await self.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.label} not found")
        return entity

    def add(self, entity: ModelT) -> ModelT:
        if entity.tenant_id is None:
            entity.tenant_id = self.tenant_id
        if entity.tenant_id != self.tenant_id:
            raise NotFoundError(f"{self.label} not found")
        self.session.add(entity)
        return entity

    async def delete(self, entity: ModelT) -> None:
        await self.session.delete(entity)

    async def first(self, *criteria: Any) -> Optional[ModelT]:
        result = await self.session.exec(self.scoped(*criteria))
        return result.first()

    async def all(self, *criteria: Any, order_by: Any = None) -> List[ModelT]:
        query = self.scoped(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        result = await self.session.exec(query)
        return list(result.all())

    async def count(self, *criteria: Any) -> int:
        query = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.tenant_id == self.tenant_id, *criteria)
        )
        result = await self.session.exec(query)
        return result.one()

    async def page(
        self,
        *criteria: Any,
        offset: int = 0,
        limit: int = 20,
        order_by: Any = None,
    ) -> Tuple[List[ModelT], int]:
        total = await self.count(*criteria)
        query = self.scoped(*criteria)
        if order_by is None:
            order_by = col(self.model.created_at).desc()
        result = await self.session.exec(query.order_by(order_by).offset(offset).limit(limit))
        return list(result.all()), total

    async def counts_by(self, column: Any, *criteria: Any) -> Dict[str, int]:
        query = (
            select(column, func.count())
            .where(self.model.tenant_id == self.tenant_id, *criteria)
            .group_by(column)
        )
        result = await self.session.exec(query)
        return {getattr(key, "value", key): count for key, count in result.all()}


class UserRepository(TenantRepository[User]):
    model = User
    label = "User"

    async def by_email(self, email: str) -> Optional[User]:
        return await self.first(User.email == email.lower())


class AgentRepository(TenantRepository[Agent]):
    model = Agent
    label = "Agent"

    async def by_user_id(self, user_id: uuid.UUID) -> Optional[Agent]:
        return await self.first(Agent.user_id == user_id)


class CustomerRepository(TenantRepository[Customer]):
    model = Customer
    label = "Customer"

    async def by_agent_and_email(self, agent_id: Optional[uuid.UUID], email: str) -> Optional[Customer]:
        return await self.first(Customer.agent_id == agent_id, Customer.email == email.lower())


class SupplierRepository(TenantRepository[Supplier]):
    model = Supplier
    label = "Supplier"


class ItineraryRepository(TenantRepository[Itinerary]):
    model = Itinerary
    label = "Itinerary"


class QuoteRepository(TenantRepository[Quote]):
    model = Quote
    label = "Quote"


class BookingRepository(TenantRepository[Booking]):
    model = Booking
    label = "Booking"

    async def by_quote(self, quote_id: uuid.UUID) -> Optional[Booking]:
        return await self.first(Booking.quote_id == quote_id)


class PaymentRecordRepository(TenantRepository[BookingPaymentRecord]):
    model = BookingPaymentRecord
    label = "Payment"

    async def for_booking(self, booking_id: uuid.UUID) -> List[BookingPaymentRecord]:
        return await self.all(
            BookingPaymentRecord.booking_id == booking_id,
            order_by=col(BookingPaymentRecord.paid_at).asc(),
        )


class AssignmentRepository(TenantRepository[QueryAssignment]):
    model = QueryAssignment
    label = "Assignment"

    def overdue_criteria(self, now: Optional[datetime] = None) -> Sequence[Any]:
        return (
            col(QueryAssignment.due_date).is_not(None),
            col(QueryAssignment.due_date) < (now or datetime.utcnow()),
            col(QueryAssignment.status).not_in(list(TERMINAL_STATUSES)),
        )

    async def for_entity(self, entity_type: str, entity_id: str) -> List[QueryAssignment]:
        return await self.all(
            QueryAssignment.entity_type == entity_type,
            QueryAssignment.entity_id == str(entity_id),
            order_by=col(QueryAssignment.created_at).desc(),
        )


class ExpenseRepository(TenantRepository[QueryExpense]):
    model = QueryExpense
    label = "Expense"

    async def totals(self, *criteria: Any) -> Dict[str, Decimal]:
        query = select(
            func.coalesce(func.sum(QueryExpense.amount), 0),
            func.coalesce(func.sum(QueryExpense.paid_amount), 0),
            func.coalesce(func.sum(QueryExpense.pending_amount), 0),
        ).where(QueryExpense.tenant_id == self.tenant_id, *criteria)
        result = await self.session.exec(query)
        total_amount, total_paid, total_pending = result.one()
        return {
            "total_amount": to_money(total_amount),
            "total_paid": to_money(total_paid),
            "total_pending": to_money(total_pending),
        }

    async def by_category(self, *criteria: Any) -> List[Dict[str, Any]]:
        total = func.coalesce(func.sum(QueryExpense.amount), 0)
        query = (
            select(QueryExpense.category, total, func.count())
            .where(QueryExpense.tenant_id == self.tenant_id, *criteria)
            .group_by(QueryExpense.category)
            .order_by(total.desc())
        )
        result = await self.session.exec(query)
        return [
            {"category": getattr(category, "value", category), "total": to_money(amount), "count": count}
            for category, amount, count in result.all()
        ]


class AuditLogRepository(TenantRepository[AuditLog]):
    model = AuditLog
    label = "Audit log"

    async def page(self, *criteria: Any, offset: int = 0, limit: int = 20, order_by: Any = None):
        return await super().page(
            *criteria,
            offset=offset,
            limit=limit,
            order_by=order_by if order_by is not None else col(AuditLog.timestamp).desc(),
        )


class Repositories:
    """All repositories for one tenant, sharing a session"""

    def __init__(self, session: AsyncSession, tenant_id: uuid.UUID):
        self.session = session
        self.tenant_id = tenant_id
        self.users = UserRepository(session, tenant_id)
        self.agents = AgentRepository(session, tenant_id)
        self.customers = CustomerRepository(session, tenant_id)
        self.suppliers = SupplierRepository(session, tenant_id)
        self.itineraries = ItineraryRepository(session, tenant_id)
        self.quotes = QuoteRepository(session, tenant_id)
        self.bookings = BookingRepository(session, tenant_id)
        self.payments = PaymentRecordRepository(session, tenant_id)
        self.assignments = AssignmentRepository(session, tenant_id)
        self.expenses = ExpenseRepository(session, tenant_id)
        self.audit_logs = AuditLogRepository(session, tenant_id)
