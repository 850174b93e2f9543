"""
Bearer credential authentication

Steps run in a fixed order: signature/expiry, revocation, user lookup
(cache first), existence, tenant membership, active flag, password change.
"""

from sqlmodel.ext.asyncio.session import AsyncSession
from typing import Any, Dict, Optional
import uuid
import structlog

from travel_crm.core.auth import decode_access_token, seconds_until_expiry, to_epoch
from travel_crm.core.cache import SessionCache
from travel_crm.core.config import get_settings
from travel_crm.core.errors import (
    AccountDeactivated,
    CredentialRevoked,
    CrossTenantAccess,
    InvalidCredential,
    StaleCredential,
    UserNotFound,
)
from travel_crm.models.tenant import Tenant
from travel_crm.models.user import User
from travel_crm.schemas.auth import CurrentUser

logger = structlog.get_logger(__name__)


class SessionAuthenticator:
    def __init__(
        self,
        session: AsyncSession,
        cache: SessionCache,
        ttl_seconds: Optional[int] = None,
    ):
        self.session = session
        self.cache = cache
        self.ttl_seconds = ttl_seconds or get_settings().USER_CACHE_TTL_SECONDS

    def verify(self, token: Optional[str]) -> Dict[str, Any]:
        payload = decode_access_token(token) if token else None
        if payload is None:
            raise InvalidCredential()
        try:
            uuid.UUID(payload["sub"])
        except ValueError:
            raise InvalidCredential()
        return payload

    async def load_user(self, user_id: uuid.UUID) -> Optional[CurrentUser]:
        """Cache-first lookup; a miss reads storage and repopulates the cache"""
        cached = await self.cache.get_user(str(user_id))
        if cached is not None:
            return CurrentUser.model_validate(cached)

        user = await self.session.get(User, user_id)
        if user is None:
            return None

        current = CurrentUser.from_user(user)
        await self.cache.set_user(str(user_id), current.snapshot(), self.ttl_seconds)
        return current

    async def authenticate(self, token: Optional[str], tenant: Optional[Tenant] = None) -> CurrentUser:
        payload = self.verify(token)

        if await self.cache.is_revoked(payload["jti"]):
            logger.warning("Revoked credential presented", user_id=payload["sub"])
            raise CredentialRevoked()

        user = await self.load_user(uuid.UUID(payload["sub"]))
        if user is None:
            raise UserNotFound()

        if tenant is not None and user.tenant_id != tenant.id and not user.is_super_admin:
            logger.warning(
                "Cross-tenant access attempt",
                user_id=str(user.id),
                user_tenant_id=str(user.tenant_id),
                tenant_id=str(tenant.id),
            )
            raise CrossTenantAccess()

        if not user.is_active:
            raise AccountDeactivated()

        if user.password_changed_at is not None and int(payload["iat"]) < to_epoch(user.password_changed_at):
            logger.warning("Stale credential presented", user_id=str(user.id))
            raise StaleCredential()

        return user

    async def revoke(self, token: str) -> None:
        """Add the credential to the revocation set for its remaining lifetime"""
        payload = self.verify(token)
        await self.cache.revoke(payload["jti"], seconds_until_expiry(payload))
        logger.info("Credential revoked", user_id=payload["sub"])
