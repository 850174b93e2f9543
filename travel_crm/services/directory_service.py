"""
Agents, customers, suppliers and itineraries
"""

from datetime import datetime
from typing import List, Optional, Tuple
import uuid
import structlog

from sqlmodel import col, or_

from travel_crm.core.auth import hash_password
from travel_crm.core.authorization import Caller
from travel_crm.core.cache import SessionCache
from travel_crm.core.errors import InvalidStateError, ValidationError
from travel_crm.models.agent import Agent, AgentStatus
from travel_crm.models.customer import Customer
from travel_crm.models.itinerary import Itinerary
from travel_crm.models.supplier import Supplier, SupplierStatus
from travel_crm.models.tenant import Tenant, UsageResource
from travel_crm.models.user import User, UserRole
from travel_crm.schemas.common import PageParams
from travel_crm.schemas.directory import (
    AgentCreate,
    CustomerCreate,
    CustomerUpdate,
    ItineraryCreate,
    SupplierCreate,
)
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import UsageService, check_limit

logger = structlog.get_logger(__name__)


class AgentService:
    def __init__(self, repos: Repositories, usage: UsageService, cache: SessionCache):
        self.repos = repos
        self.session = repos.session
        self.usage = usage
        self.cache = cache

    async def list(
        self,
        params: PageParams,
        status: Optional[AgentStatus] = None,
    ) -> Tuple[List[Agent], int]:
        criteria = [Agent.status == status] if status else []
        return await self.repos.agents.page(*criteria, offset=params.offset, limit=params.limit)

    async def create(self, caller: Caller, tenant: Tenant, data: AgentCreate) -> Agent:
        """Administrator-created agents start active"""
        check_limit(tenant, UsageResource.USERS)
        check_limit(tenant, UsageResource.AGENTS)

        email = str(data.email).lower()
        if await self.repos.users.by_email(email) is not None:
            raise InvalidStateError("Email already registered")

        user = User(
            tenant_id=tenant.id,
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=UserRole.AGENT,
        )
        self.repos.users.add(user)
        await self.session.flush()

        now = datetime.utcnow()
        agent = Agent(
            tenant_id=tenant.id,
            user_id=user.id,
            agency_name=data.agency_name,
            contact_person=user.full_name,
            email=email,
            phone=data.phone,
            status=AgentStatus.ACTIVE,
            tier=data.tier,
            commission_rate=data.commission_rate,
            approved_by=caller.id,
            approved_at=now,
        )
        agent.set_credit_limit(data.credit_limit)
        self.repos.agents.add(agent)
        await self.session.commit()

        await self.usage.increment_usage(tenant.id, UsageResource.USERS)
        await self.usage.increment_usage(tenant.id, UsageResource.AGENTS)
        logger.info("Agent created", agent_id=str(agent.id), tenant_id=str(tenant.id))
        return agent

    async def approve(self, caller: Caller, agent_id: uuid.UUID) -> Agent:
        agent = await self.repos.agents.get_or_404(agent_id)
        agent.approve(caller.id)
        self.repos.agents.add(agent)
        await self.session.commit()
        logger.info("Agent approved", agent_id=str(agent.id), by=str(caller.id))
        return agent

    async def suspend(self, agent_id: uuid.UUID) -> Agent:
        agent = await self.repos.agents.get_or_404(agent_id)
        agent.suspend()
        self.repos.agents.add(agent)
        await self.session.commit()
        logger.info("Agent suspended", agent_id=str(agent.id))
        return agent

    async def delete(self, agent_id: uuid.UUID) -> Agent:
        """Soft delete: the agent and its login are deactivated"""
        agent = await self.repos.agents.get_or_404(agent_id)
        agent.deactivate()
        self.repos.agents.add(agent)

        user = await self.repos.users.get(agent.user_id)
        if user is not None:
            user.deactivate()
            self.repos.users.add(user)
        await self.session.commit()

        await self.cache.invalidate_user(str(agent.user_id))
        logger.info("Agent deactivated", agent_id=str(agent.id))
        return agent


class CustomerService:
    def __init__(self, repos: Repositories, usage: UsageService):
        self.repos = repos
        self.session = repos.session
        self.usage = usage

    async def get_for_caller(self, caller: Caller, customer_id: uuid.UUID) -> Customer:
        customer = await self.repos.customers.get_or_404(customer_id)
        caller.ensure_owns(customer)
        return customer

    async def list(
        self,
        caller: Caller,
        params: PageParams,
        search: Optional[str] = None,
        include_inactive: bool = False,
    ) -> Tuple[List[Customer], int]:
        criteria = caller.owner_criteria(Customer)
        if not include_inactive:
            criteria.append(Customer.is_active == True)  # noqa: E712
        if search:
            pattern = f"%{search.lower()}%"
            criteria.append(or_(col(Customer.name).ilike(pattern), col(Customer.email).ilike(pattern)))
        return await self.repos.customers.page(*criteria, offset=params.offset, limit=params.limit)

    async def _agent_for(self, caller: Caller, requested: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
        if caller.role == UserRole.AGENT:
            return caller.require_profile().id
        if requested is None:
            return None
        agent = await self.repos.agents.get_or_404(requested)
        return agent.id

    async def create(self, caller: Caller, tenant: Tenant, data: CustomerCreate) -> Customer:
        check_limit(tenant, UsageResource.CUSTOMERS)
        agent_id = await self._agent_for(caller, data.agent_id)
        email = str(data.email).lower()
        if await self.repos.customers.by_agent_and_email(agent_id, email) is not None:
            raise InvalidStateError("A customer with this email already exists")

        customer = Customer(
            tenant_id=tenant.id,
            agent_id=agent_id,
            name=data.name,
            email=email,
            phone=data.phone,
            nationality=data.nationality,
        )
        self.repos.customers.add(customer)
        await self.session.commit()

        await self.usage.increment_usage(tenant.id, UsageResource.CUSTOMERS)
        logger.info("Customer created", customer_id=str(customer.id), agent_id=str(agent_id))
        return customer

    async def update(self, caller: Caller, customer_id: uuid.UUID, data: CustomerUpdate) -> Customer:
        customer = await self.get_for_caller(caller, customer_id)
        changes = data.model_dump(exclude_unset=True)

        agent_id = changes.pop("agent_id", None)
        if agent_id is not None and agent_id != customer.agent_id:
            await self.repos.agents.get_or_404(agent_id)
            customer.assign_agent(agent_id, by_admin=caller.is_admin)

        if "email" in changes and changes["email"]:
            changes["email"] = str(changes["email"]).lower()
        for key, value in changes.items():
            setattr(customer, key, value)
        customer.updated_at = datetime.utcnow()

        self.repos.customers.add(customer)
        await self.session.commit()
        return customer

    async def delete(self, caller: Caller, customer_id: uuid.UUID) -> Customer:
        customer = await self.get_for_caller(caller, customer_id)
        if not customer.is_active:
            raise InvalidStateError("Customer is already deleted")
        customer.soft_delete()
        self.repos.customers.add(customer)
        await self.session.commit()
        logger.info("Customer deleted", customer_id=str(customer.id))
        return customer


class SupplierService:
    def __init__(self, repos: Repositories):
        self.repos = repos
        self.session = repos.session

    async def create(self, data: SupplierCreate) -> Supplier:
        if data.user_id is not None:
            user = await self.repos.users.get_or_404(data.user_id)
            if user.role != UserRole.SUPPLIER:
                raise ValidationError("Linked user must have the supplier role")

        supplier = Supplier(
            tenant_id=self.repos.tenant_id,
            user_id=data.user_id,
            company_name=data.company_name,
            email=str(data.email).lower() if data.email else None,
            phone=data.phone,
            service_types=list(data.service_types),
            status=SupplierStatus.ACTIVE,
        )
        self.repos.suppliers.add(supplier)
        await self.session.commit()
        logger.info("Supplier created", supplier_id=str(supplier.id))
        return supplier

    async def delete(self, supplier_id: uuid.UUID) -> Supplier:
        supplier = await self.repos.suppliers.get_or_404(supplier_id)
        supplier.deactivate()
        self.repos.suppliers.add(supplier)
        await self.session.commit()
        logger.info("Supplier deactivated", supplier_id=str(supplier.id))
        return supplier


class ItineraryService:
    def __init__(self, repos: Repositories):
        self.repos = repos
        self.session = repos.session

    async def create(self, caller: Caller, data: ItineraryCreate) -> Itinerary:
        agent_id = data.agent_id
        if caller.role == UserRole.AGENT:
            agent_id = caller.require_profile().id
        elif agent_id is not None:
            await self.repos.agents.get_or_404(agent_id)

        itinerary = Itinerary(
            tenant_id=self.repos.tenant_id,
            agent_id=agent_id,
            title=data.title,
            destination=data.destination,
            duration_days=data.duration_days,
            description=data.description,
            estimated_base_cost=data.estimated_base_cost,
            currency=data.currency.upper(),
            created_by=caller.id,
        )
        self.repos.itineraries.add(itinerary)
        await self.session.commit()
        logger.info("Itinerary created", itinerary_id=str(itinerary.id))
        return itinerary

    async def get(self, caller: Caller, itinerary_id: uuid.UUID) -> Itinerary:
        itinerary = await self.repos.itineraries.get_or_404(itinerary_id)
        # Shared itineraries (no agent) are visible to everyone in the tenant
        if caller.role == UserRole.AGENT and itinerary.agent_id is not None:
            caller.ensure_owns(itinerary)
        return itinerary
