"""
Tenant lifecycle and plan usage
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import uuid
import structlog

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from travel_crm.core.auth import hash_password
from travel_crm.core.config import Settings, get_settings
from travel_crm.core.errors import InvalidStateError, NotFoundError, UsageLimitExceeded
from travel_crm.models.tenant import SubscriptionStatus, Tenant, TenantStatus, UsageResource
from travel_crm.models.user import User, UserRole
from travel_crm.schemas.tenant import TenantSignup

logger = structlog.get_logger(__name__)


def check_limit(tenant: Tenant, resource: UsageResource) -> None:
    """Refuse creation once the plan limit for the resource is reached"""
    if not tenant.has_capacity(resource):
        logger.warning(
            "Usage limit reached",
            tenant_id=str(tenant.id),
            resource=resource.value,
            limit=tenant.limit_for(resource),
        )
        raise UsageLimitExceeded(
            f"Your plan allows {tenant.limit_for(resource)} {resource.value}. Please upgrade your plan."
        )


class UsageService:
    """Best-effort usage counters, bumped after the creating transaction committed"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def increment_usage(self, tenant_id: uuid.UUID, resource: UsageResource) -> bool:
        column = getattr(Tenant, f"usage_{resource.value}")
        try:
            await self.session.execute(
                update(Tenant)
                .where(Tenant.id == tenant_id)
                .values({column: column + 1})
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to increment tenant usage",
                tenant_id=str(tenant_id),
                resource=resource.value,
                error=str(e),
            )
            return False
        return True


class TenantService:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def _exists(self, *criteria) -> bool:
        result = await self.session.exec(select(Tenant.id).where(*criteria))
        return result.first() is not None

    async def signup(self, data: TenantSignup) -> Tuple[Tenant, User]:
        """Create a trial tenant with its first operator account"""
        subdomain = data.subdomain.lower()
        if subdomain in self.settings.RESERVED_SUBDOMAINS:
            raise InvalidStateError("This subdomain is reserved")
        if await self._exists(Tenant.subdomain == subdomain):
            raise InvalidStateError("Subdomain is already taken")

        custom_domain = data.custom_domain.lower() if data.custom_domain else None
        if custom_domain and await self._exists(Tenant.custom_domain == custom_domain):
            raise InvalidStateError("Custom domain is already registered")

        now = datetime.utcnow()
        tenant = Tenant(
            name=data.name,
            subdomain=subdomain,
            custom_domain=custom_domain,
            email=str(data.email).lower(),
            phone=data.phone,
            subscription_status=SubscriptionStatus.TRIAL,
            trial_ends_at=now + timedelta(days=self.settings.TRIAL_PERIOD_DAYS),
            usage_users=1,
        )
        tenant.apply_plan_limits(data.plan)

        operator = User(
            tenant_id=tenant.id,
            email=str(data.admin_email).lower(),
            password_hash=hash_password(data.admin_password),
            first_name=data.admin_first_name,
            last_name=data.admin_last_name,
            role=UserRole.OPERATOR,
        )

        self.session.add(tenant)
        await self.session.flush()
        self.session.add(operator)
        await self.session.commit()

        logger.info("Tenant signed up", tenant_id=str(tenant.id), subdomain=subdomain)
        return tenant, operator

    async def get(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        return tenant

    async def list(
        self,
        status: Optional[TenantStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Tenant], int]:
        criteria = [Tenant.status == status] if status else []
        total = (await self.session.exec(select(func.count()).select_from(Tenant).where(*criteria))).one()
        result = await self.session.exec(
            select(Tenant).where(*criteria).order_by(col(Tenant.created_at).desc()).offset(offset).limit(limit)
        )
        return list(result.all()), total

    async def suspend(self, tenant_id: uuid.UUID, reason: Optional[str] = None) -> Tenant:
        tenant = await self.get(tenant_id)
        if tenant.status == TenantStatus.SUSPENDED:
            raise InvalidStateError("Tenant is already suspended")
        tenant.suspend(reason)
        self.session.add(tenant)
        await self.session.commit()
        logger.info("Tenant suspended", tenant_id=str(tenant.id), reason=reason)
        return tenant

    async def reactivate(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.get(tenant_id)
        if tenant.status == TenantStatus.ACTIVE:
            raise InvalidStateError("Tenant is already active")
        tenant.reactivate()
        self.session.add(tenant)
        await self.session.commit()
        logger.info("Tenant reactivated", tenant_id=str(tenant.id))
        return tenant
