"""
Profile loading and ownership checks

Ownership is decided by a policy per role: administrators bypass, the other
roles must own the resource through their profile.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type
import uuid
import structlog

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from travel_crm.core.errors import ForbiddenError, ProfileNotFound
from travel_crm.models.agent import Agent
from travel_crm.models.customer import Customer
from travel_crm.models.supplier import Supplier
from travel_crm.models.user import UserRole
from travel_crm.schemas.auth import CurrentUser

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OwnershipPolicy:
    profile_model: Optional[Type[SQLModel]] = None
    owner_attribute: Optional[str] = None
    # Strict policies fail the request as soon as the profile is missing
    strict: bool = False
    is_active: Callable[[Any], bool] = lambda profile: True

    @property
    def bypass(self) -> bool:
        return self.profile_model is None


ADMIN_POLICY = OwnershipPolicy()

OWNERSHIP_POLICIES: Dict[UserRole, OwnershipPolicy] = {
    UserRole.SUPER_ADMIN: ADMIN_POLICY,
    UserRole.OPERATOR: ADMIN_POLICY,
    UserRole.AGENT: OwnershipPolicy(
        profile_model=Agent,
        owner_attribute="agent_id",
        is_active=lambda agent: agent.is_active(),
    ),
    UserRole.SUPPLIER: OwnershipPolicy(
        profile_model=Supplier,
        owner_attribute="supplier_id",
        strict=True,
        is_active=lambda supplier: supplier.is_active(),
    ),
    UserRole.CUSTOMER: OwnershipPolicy(
        profile_model=Customer,
        owner_attribute="customer_id",
        is_active=lambda customer: customer.is_active,
    ),
}


@dataclass
class Caller:
    """Authenticated user plus the loaded role profile, if any"""

    user: CurrentUser
    profile: Optional[Any] = None

    @property
    def id(self) -> uuid.UUID:
        return self.user.id

    @property
    def tenant_id(self) -> uuid.UUID:
        return self.user.tenant_id

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def policy(self) -> OwnershipPolicy:
        return OWNERSHIP_POLICIES[self.role]

    @property
    def is_admin(self) -> bool:
        return self.policy.bypass

    def _profile_id(self, role: UserRole) -> Optional[uuid.UUID]:
        if self.role != role or self.profile is None:
            return None
        return self.profile.id

    @property
    def agent_id(self) -> Optional[uuid.UUID]:
        return self._profile_id(UserRole.AGENT)

    @property
    def customer_id(self) -> Optional[uuid.UUID]:
        return self._profile_id(UserRole.CUSTOMER)

    @property
    def supplier_id(self) -> Optional[uuid.UUID]:
        return self._profile_id(UserRole.SUPPLIER)

    def require_profile(self) -> Any:
        if self.profile is None:
            raise ProfileNotFound(f"{self.role.value.capitalize()} profile not found. Please contact administrator.")
        return self.profile

    def owns(self, resource: Any) -> bool:
        policy = self.policy
        if policy.bypass:
            return True
        if self.profile is None:
            return False
        owner = getattr(resource, policy.owner_attribute, None)
        return owner is not None and owner == self.profile.id

    def owner_criteria(self, model: Type[SQLModel]) -> List[Any]:
        """Query filters restricting a listing to what the caller owns"""
        policy = self.policy
        if policy.bypass:
            return []
        profile = self.require_profile()
        column = getattr(model, policy.owner_attribute, None)
        if column is None:
            raise ForbiddenError("Access denied. You do not have permission to access this resource.")
        return [column == profile.id]

    def ensure_owns(self, resource: Any) -> None:
        """Raise unless the caller may act on the resource"""
        if self.policy.bypass:
            return
        self.require_profile()
        if not self.owns(resource):
            logger.warning(
                "Ownership check failed",
                user_id=str(self.id),
                role=self.role.value,
                resource=type(resource).__name__,
                resource_id=str(getattr(resource, "id", "")),
            )
            raise ForbiddenError("Access denied. You do not have permission to access this resource.")


class ProfileLoader:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, user: CurrentUser) -> Caller:
        policy = OWNERSHIP_POLICIES[user.role]
        if policy.bypass:
            return Caller(user=user)

        model = policy.profile_model
        result = await self.session.exec(
            select(model).where(model.user_id == user.id, model.tenant_id == user.tenant_id)
        )
        profile = result.first()

        if profile is None:
            if policy.strict:
                logger.warning("Profile missing", user_id=str(user.id), role=user.role.value)
                raise ProfileNotFound(
                    f"{user.role.value.capitalize()} profile not found. Please contact administrator."
                )
            logger.info("Continuing without profile", user_id=str(user.id), role=user.role.value)
            return Caller(user=user)

        if not policy.is_active(profile):
            raise ForbiddenError(f"{user.role.value.capitalize()} account is not active")

        return Caller(user=user, profile=profile)
