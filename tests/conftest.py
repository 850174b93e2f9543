"""
Test configuration for pytest
"""

import os

# Test environment variables (must be set before the application is imported)
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ.pop("EMAIL_SERVICE_URL", None)

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import travel_crm.models  # noqa: F401
from travel_crm.core.auth import create_access_token, hash_password
from travel_crm.core.cache import MemorySessionCache
from travel_crm.core.database import get_session
from travel_crm.core.dependencies import get_cache, get_dispatcher
from travel_crm.core.errors import ExternalServiceError
from travel_crm.core.events import EventBus
from travel_crm.main import app
from travel_crm.models.agent import Agent, AgentStatus
from travel_crm.models.customer import Customer
from travel_crm.models.itinerary import Itinerary
from travel_crm.models.supplier import Supplier
from travel_crm.models.tenant import SubscriptionStatus, Tenant
from travel_crm.models.user import User, UserRole
from travel_crm.services.audit import AuditRecorder
from travel_crm.services.collaborators import EmailDispatcher

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


class RecordingDispatcher(EmailDispatcher):
    """Email dispatcher that records quotes instead of sending them"""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    async def send_quote(self, quote, agent, customer) -> None:
        if self.fail:
            raise ExternalServiceError("Email service unavailable")
        self.sent.append((quote.quote_number, customer.email))


@dataclass
class World:
    """Seeded tenants, users and profiles"""

    tenant: Tenant
    other_tenant: Tenant
    super_admin: User
    operator: User
    agent_user: User
    agent: Agent
    customer_user: User
    customer: Customer
    supplier_user: User
    supplier: Supplier
    itinerary: Itinerary
    other_operator: User


def make_user(tenant: Tenant, role: UserRole, email: str, **overrides) -> User:
    return User(
        tenant_id=tenant.id,
        email=email,
        password_hash=PASSWORD_HASH,
        first_name=role.value.capitalize(),
        last_name="Test",
        role=role,
        **overrides,
    )


def token_for(user: User, issued_at: Optional[datetime] = None) -> str:
    return create_access_token(user.id, user.tenant_id, user.role.value, issued_at=issued_at)


def headers_for(user: User, tenant: Optional[Tenant] = None, token: Optional[str] = None) -> Dict[str, str]:
    """Bearer token plus tenant header for a seeded user"""
    tenant_id = tenant.id if tenant is not None else user.tenant_id
    return {
        "Authorization": f"Bearer {token or token_for(user)}",
        "X-Tenant-ID": str(tenant_id),
    }


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so the audit task can use its own connection"""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    """Create a clean database session for each test"""
    async with session_maker() as session:
        yield session


@pytest.fixture
def cache() -> MemorySessionCache:
    return MemorySessionCache()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def recorder(session_maker) -> AuditRecorder:
    return AuditRecorder(session_maker, retention_days=730, events=EventBus())


@pytest.fixture
async def client(session_maker, cache, dispatcher, recorder):
    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    previous_recorder = app.state.audit_recorder
    app.state.audit_recorder = recorder

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac

    await recorder.drain()
    app.state.audit_recorder = previous_recorder
    app.dependency_overrides.clear()


@pytest.fixture
async def world(db: AsyncSession) -> World:
    """Two tenants; the first one fully populated"""
    tenant = Tenant(
        name="Sunrise Travel",
        subdomain="sunrise",
        email="admin@sunrise-travel.com",
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    tenant.apply_plan_limits()
    other_tenant = Tenant(
        name="Moonlight Tours",
        subdomain="moonlight",
        email="admin@moonlight-tours.com",
        subscription_status=SubscriptionStatus.ACTIVE,
    )
    other_tenant.apply_plan_limits()
    db.add(tenant)
    db.add(other_tenant)
    await db.flush()

    super_admin = make_user(tenant, UserRole.SUPER_ADMIN, "root@sunrise-travel.com")
    operator = make_user(tenant, UserRole.OPERATOR, "ops@sunrise-travel.com")
    agent_user = make_user(tenant, UserRole.AGENT, "agent@sunrise-travel.com")
    customer_user = make_user(tenant, UserRole.CUSTOMER, "traveller@example.com")
    supplier_user = make_user(tenant, UserRole.SUPPLIER, "hotel@example.com")
    other_operator = make_user(other_tenant, UserRole.OPERATOR, "ops@moonlight-tours.com")
    for user in (super_admin, operator, agent_user, customer_user, supplier_user, other_operator):
        db.add(user)
    await db.flush()

    agent = Agent(
        tenant_id=tenant.id,
        user_id=agent_user.id,
        agency_name="Sunrise Agents",
        email=agent_user.email,
        status=AgentStatus.ACTIVE,
        credit_limit=Decimal("5000.00"),
        available_credit=Decimal("5000.00"),
    )
    db.add(agent)
    await db.flush()

    customer = Customer(
        tenant_id=tenant.id,
        agent_id=agent.id,
        user_id=customer_user.id,
        name="Tess Traveller",
        email=customer_user.email,
    )
    supplier = Supplier(
        tenant_id=tenant.id,
        user_id=supplier_user.id,
        company_name="Seaside Hotel",
        email=supplier_user.email,
    )
    itinerary = Itinerary(
        tenant_id=tenant.id,
        title="Lisbon long weekend",
        destination="Lisbon",
        duration_days=4,
        estimated_base_cost=Decimal("500.00"),
    )
    db.add(customer)
    db.add(supplier)
    db.add(itinerary)
    await db.commit()

    return World(
        tenant=tenant,
        other_tenant=other_tenant,
        super_admin=super_admin,
        operator=operator,
        agent_user=agent_user,
        agent=agent,
        customer_user=customer_user,
        customer=customer,
        supplier_user=supplier_user,
        supplier=supplier,
        itinerary=itinerary,
        other_operator=other_operator,
    )


QUOTE_PRICING = {
    "base_cost": "1000.00",
    "markup": {"percentage": "20", "amount": "200.00"},
    "taxes": {"amount": "50.00"},
    "agent_discount": {"amount": "50.00"},
}


@pytest.fixture
def quote_payload(world: World) -> dict:
    return {
        "itinerary_id": str(world.itinerary.id),
        "customer_id": str(world.customer.id),
        "number_of_travelers": 2,
        "pricing": QUOTE_PRICING,
    }


async def create_quote(client: AsyncClient, world: World, payload: dict) -> dict:
    response = await client.post("/api/v1/quotes/", json=payload, headers=headers_for(world.agent_user))
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def accepted_quote(client: AsyncClient, world: World, payload: dict) -> dict:
    """Quote taken through send, view and accept"""
    quote = await create_quote(client, world, payload)
    response = await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers_for(world.agent_user))
    assert response.status_code == 200, response.text
    response = await client.patch(
        f"/api/v1/quotes/{quote['id']}/accept", headers=headers_for(world.customer_user)
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def days_from_now(days: int) -> datetime:
    return datetime.utcnow() + timedelta(days=days)
