"""
Tenant resolution for multi-tenant isolation

Resolution order: tenant header, subdomain, custom domain, then (outside
production) the configured default tenant. Resolution is read-only.
"""

from datetime import datetime
from fastapi import Depends, Request
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from typing import Optional
import uuid
import structlog

from travel_crm.core.config import Settings, get_settings
from travel_crm.core.database import get_session
from travel_crm.core.errors import (
    SubscriptionSuspended,
    TenantInactive,
    TenantNotFound,
    TrialExpired,
)
from travel_crm.models.tenant import SubscriptionStatus, Tenant, TenantStatus

logger = structlog.get_logger(__name__)

BLOCKED_SUBSCRIPTION_STATUSES = (SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED)


def strip_port(host: str) -> str:
    return host.split(":")[0].strip().lower()


class TenantResolver:
    """Maps an inbound request to an accessible tenant"""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    def extract_subdomain(self, host: str) -> Optional[str]:
        parts = strip_port(host).split(".")
        if len(parts) < 3:
            return None
        subdomain = parts[0]
        if not subdomain or subdomain in self.settings.RESERVED_SUBDOMAINS:
            return None
        return subdomain

    async def by_id(self, value: Optional[str]) -> Optional[Tenant]:
        if not value:
            return None
        try:
            tenant_id = uuid.UUID(str(value))
        except ValueError:
            return None
        return await self.session.get(Tenant, tenant_id)

    async def by_subdomain(self, subdomain: str) -> Optional[Tenant]:
        result = await self.session.exec(select(Tenant).where(Tenant.subdomain == subdomain))
        return result.first()

    async def by_custom_domain(self, host: str) -> Optional[Tenant]:
        result = await self.session.exec(select(Tenant).where(Tenant.custom_domain == host))
        return result.first()

    async def find(self, tenant_header: Optional[str], host: str) -> Optional[Tenant]:
        tenant = await self.by_id(tenant_header)
        if tenant is not None:
            return tenant

        subdomain = self.extract_subdomain(host)
        if subdomain:
            tenant = await self.by_subdomain(subdomain)
            if tenant is not None:
                return tenant

        hostname = strip_port(host)
        if hostname:
            tenant = await self.by_custom_domain(hostname)
            if tenant is not None:
                return tenant

        if not self.settings.is_production and self.settings.DEFAULT_TENANT_ID:
            return await self.by_id(self.settings.DEFAULT_TENANT_ID)
        return None

    def ensure_accessible(self, tenant: Tenant, now: Optional[datetime] = None) -> None:
        """Status, subscription and trial checks, each a distinct failure"""
        if tenant.status != TenantStatus.ACTIVE:
            raise TenantInactive()
        if tenant.subscription_status in BLOCKED_SUBSCRIPTION_STATUSES:
            raise SubscriptionSuspended()
        if tenant.is_trial_expired(now):
            raise TrialExpired()

    async def resolve(self, tenant_header: Optional[str], host: str) -> Tenant:
        tenant = await self.find(tenant_header, host)
        if tenant is None:
            logger.warning("Tenant not found", header=tenant_header, host=host)
            raise TenantNotFound()

        self.ensure_accessible(tenant)
        logger.debug("Tenant resolved", tenant_id=str(tenant.id), subdomain=tenant.subdomain)
        return tenant


async def resolve_tenant(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Tenant:
    """Dependency binding the resolved tenant to request.state"""
    settings = get_settings()
    resolver = TenantResolver(session, settings)
    tenant = await resolver.resolve(
        request.headers.get(settings.TENANT_HEADER),
        request.headers.get("host", ""),
    )
    request.state.tenant = tenant
    return tenant
