"""
Login, logout, password changes and agent self-registration
"""

from datetime import datetime
from typing import Tuple
import uuid
import structlog

from travel_crm.core.auth import create_access_token, hash_password, verify_password
from travel_crm.core.cache import SessionCache
from travel_crm.core.errors import (
    AccountDeactivated,
    InvalidStateError,
    UnauthorizedError,
    ValidationError,
)
from travel_crm.models.agent import Agent, AgentStatus
from travel_crm.models.tenant import Tenant, UsageResource
from travel_crm.models.user import User, UserRole
from travel_crm.schemas.auth import RegisterAgentRequest
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import UsageService, check_limit

logger = structlog.get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(
        user_id=user.id,
        tenant_id=user.tenant_id,
        role=user.role.value,
    )


class AuthService:
    def __init__(self, repos: Repositories, cache: SessionCache, usage: UsageService):
        self.repos = repos
        self.session = repos.session
        self.cache = cache
        self.usage = usage

    async def login(self, email: str, password: str) -> Tuple[str, User]:
        user = await self.repos.users.by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login", email=email, tenant_id=str(self.repos.tenant_id))
            raise UnauthorizedError("Invalid email or password", code="INVALID_LOGIN")
        if not user.is_active:
            raise AccountDeactivated()

        user.last_login_at = datetime.utcnow()
        self.repos.users.add(user)
        await self.session.commit()

        logger.info("User logged in", user_id=str(user.id), tenant_id=str(user.tenant_id))
        return issue_token(user), user

    async def change_password(self, user_id: uuid.UUID, current_password: str, new_password: str) -> str:
        """Stamp the change so older credentials go stale; returns a fresh token"""
        user = await self.repos.users.get_or_404(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must differ from the current password")

        user.change_password(hash_password(new_password))
        self.repos.users.add(user)
        await self.session.commit()

        await self.cache.invalidate_user(str(user.id))
        logger.info("Password changed", user_id=str(user.id))
        return issue_token(user)

    async def register_agent(self, tenant: Tenant, data: RegisterAgentRequest) -> Tuple[User, Agent]:
        """Self-registered agents wait for approval"""
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

        agent = Agent(
            tenant_id=tenant.id,
            user_id=user.id,
            agency_name=data.agency_name,
            contact_person=user.full_name,
            email=email,
            phone=data.phone,
            status=AgentStatus.PENDING,
        )
        self.repos.agents.add(agent)
        await self.session.commit()

        await self.usage.increment_usage(tenant.id, UsageResource.USERS)
        await self.usage.increment_usage(tenant.id, UsageResource.AGENTS)
        logger.info("Agent registered", user_id=str(user.id), agent_id=str(agent.id))
        return user, agent
