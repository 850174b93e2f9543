"""
Request dependencies for FastAPI

Each request runs: tenant resolution -> credential authentication ->
profile loading -> role/permission check, then the injected service.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel.ext.asyncio.session import AsyncSession
from typing import Optional
import structlog

from travel_crm.core.authorization import Caller, ProfileLoader
from travel_crm.core.cache import SessionCache, get_session_cache
from travel_crm.core.config import get_settings
from travel_crm.core.database import get_session
from travel_crm.core.permissions import Permission, ensure_permission, ensure_roles
from travel_crm.core.session import SessionAuthenticator
from travel_crm.core.tenant_middleware import resolve_tenant
from travel_crm.models.tenant import Tenant
from travel_crm.models.user import UserRole
from travel_crm.schemas.auth import CurrentUser
from travel_crm.services.assignment_service import AssignmentService
from travel_crm.services.auth_service import AuthService
from travel_crm.services.booking_service import BookingService
from travel_crm.services.collaborators import EmailDispatcher, get_email_dispatcher
from travel_crm.services.directory_service import (
    AgentService,
    CustomerService,
    ItineraryService,
    SupplierService,
)
from travel_crm.services.expense_service import ExpenseService
from travel_crm.services.quote_service import QuoteService
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import TenantService, UsageService

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


def get_cache() -> SessionCache:
    return get_session_cache()


def get_dispatcher() -> EmailDispatcher:
    return get_email_dispatcher()


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_authenticator(
    session: AsyncSession = Depends(get_session),
    cache: SessionCache = Depends(get_cache),
) -> SessionAuthenticator:
    return SessionAuthenticator(session, cache)


async def get_current_user(
    request: Request,
    tenant: Tenant = Depends(resolve_tenant),
    token: Optional[str] = Depends(get_bearer_token),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
) -> CurrentUser:
    """Authenticated user bound to the resolved tenant"""
    user = await authenticator.authenticate(token, tenant)
    request.state.user = user
    logger.debug("User authenticated", user_id=str(user.id), tenant_id=str(tenant.id))
    return user


async def get_caller(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Caller:
    """Authenticated user with its role profile loaded"""
    caller = await ProfileLoader(session).load(user)
    request.state.caller = caller
    return caller


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles"""
    async def check_roles(caller: Caller = Depends(get_caller)) -> Caller:
        ensure_roles(caller.role, *roles)
        return caller
    return check_roles


def require_permission(permission: Permission):
    """Dependency factory to check permissions"""
    async def check_permission(caller: Caller = Depends(get_caller)) -> Caller:
        ensure_permission(caller.role, permission)
        return caller
    return check_permission


# Services

def get_repositories(
    tenant: Tenant = Depends(resolve_tenant),
    session: AsyncSession = Depends(get_session),
) -> Repositories:
    return Repositories(session, tenant.id)


def get_usage_service(session: AsyncSession = Depends(get_session)) -> UsageService:
    return UsageService(session)


def get_tenant_service(session: AsyncSession = Depends(get_session)) -> TenantService:
    return TenantService(session, get_settings())


def get_auth_service(
    repos: Repositories = Depends(get_repositories),
    cache: SessionCache = Depends(get_cache),
    usage: UsageService = Depends(get_usage_service),
) -> AuthService:
    return AuthService(repos, cache, usage)


def get_agent_service(
    repos: Repositories = Depends(get_repositories),
    usage: UsageService = Depends(get_usage_service),
    cache: SessionCache = Depends(get_cache),
) -> AgentService:
    return AgentService(repos, usage, cache)


def get_customer_service(
    repos: Repositories = Depends(get_repositories),
    usage: UsageService = Depends(get_usage_service),
) -> CustomerService:
    return CustomerService(repos, usage)


def get_supplier_service(repos: Repositories = Depends(get_repositories)) -> SupplierService:
    return SupplierService(repos)


def get_itinerary_service(repos: Repositories = Depends(get_repositories)) -> ItineraryService:
    return ItineraryService(repos)


def get_quote_service(
    repos: Repositories = Depends(get_repositories),
    usage: UsageService = Depends(get_usage_service),
    dispatcher: EmailDispatcher = Depends(get_dispatcher),
) -> QuoteService:
    return QuoteService(repos, usage, dispatcher, get_settings())


def get_booking_service(
    repos: Repositories = Depends(get_repositories),
    usage: UsageService = Depends(get_usage_service),
) -> BookingService:
    return BookingService(repos, usage)


def get_assignment_service(repos: Repositories = Depends(get_repositories)) -> AssignmentService:
    return AssignmentService(repos)


def get_expense_service(repos: Repositories = Depends(get_repositories)) -> ExpenseService:
    return ExpenseService(repos, get_settings())
