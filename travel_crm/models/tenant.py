"""
Tenant model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from enum import Enum
from typing import Dict, Optional
import uuid


class TenantStatus(str, Enum):
    """Operational status of an agency"""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class SubscriptionStatus(str, Enum):
    """Billing status of the tenant's subscription"""
    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class SubscriptionPlan(str, Enum):
    BASIC = "basic"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class UsageResource(str, Enum):
    """Resources counted against plan limits"""
    USERS = "users"
    AGENTS = "agents"
    CUSTOMERS = "customers"
    QUOTES = "quotes"
    BOOKINGS = "bookings"


# None means unlimited
PLAN_LIMITS: Dict[SubscriptionPlan, Dict[UsageResource, Optional[int]]] = {
    SubscriptionPlan.BASIC: {
        UsageResource.USERS: 10,
        UsageResource.AGENTS: 10,
        UsageResource.CUSTOMERS: 500,
        UsageResource.QUOTES: 1000,
        UsageResource.BOOKINGS: 500,
    },
    SubscriptionPlan.PRO: {
        UsageResource.USERS: 50,
        UsageResource.AGENTS: 100,
        UsageResource.CUSTOMERS: 5000,
        UsageResource.QUOTES: 20000,
        UsageResource.BOOKINGS: 10000,
    },
    SubscriptionPlan.ENTERPRISE: {resource: None for resource in UsageResource},
}


class Tenant(SQLModel, table=True):
    """Tenant (travel agency) for multi-tenant architecture"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=200)
    subdomain: str = Field(unique=True, index=True, max_length=63, description="Unique subdomain for tenant routing")
    custom_domain: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)
    email: str = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

    status: TenantStatus = Field(default=TenantStatus.ACTIVE, index=True)
    suspension_reason: Optional[str] = Field(default=None, max_length=1000)
    suspended_at: Optional[datetime] = None

    # Subscription
    plan: SubscriptionPlan = Field(default=SubscriptionPlan.BASIC)
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.TRIAL, index=True)
    trial_ends_at: Optional[datetime] = None

    # Usage counters
    usage_users: int = Field(default=0)
    usage_agents: int = Field(default=0)
    usage_customers: int = Field(default=0)
    usage_quotes: int = Field(default=0)
    usage_bookings: int = Field(default=0)

    # Feature limits (None = unlimited)
    limit_users: Optional[int] = None
    limit_agents: Optional[int] = None
    limit_customers: Optional[int] = None
    limit_quotes: Optional[int] = None
    limit_bookings: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def apply_plan_limits(self, plan: Optional[SubscriptionPlan] = None) -> None:
        """Copy the plan's default limits onto the tenant"""
        if plan is not None:
            self.plan = plan
        for resource, limit in PLAN_LIMITS[SubscriptionPlan(self.plan)].items():
            setattr(self, f"limit_{resource.value}", limit)

    def usage_for(self, resource: UsageResource) -> int:
        return getattr(self, f"usage_{UsageResource(resource).value}") or 0

    def limit_for(self, resource: UsageResource) -> Optional[int]:
        return getattr(self, f"limit_{UsageResource(resource).value}")

    def has_capacity(self, resource: UsageResource) -> bool:
        """Check whether one more resource may be created under the plan"""
        limit = self.limit_for(resource)
        return limit is None or self.usage_for(resource) < limit

    def is_trial_expired(self, now: Optional[datetime] = None) -> bool:
        if self.subscription_status != SubscriptionStatus.TRIAL or self.trial_ends_at is None:
            return False
        return (now or datetime.utcnow()) > self.trial_ends_at

    def suspend(self, reason: Optional[str] = None) -> None:
        self.status = TenantStatus.SUSPENDED
        self.suspension_reason = reason
        self.suspended_at = datetime.utcnow()
        self.updated_at = datetime.utcnow()

    def reactivate(self) -> None:
        self.status = TenantStatus.ACTIVE
        self.suspension_reason = None
        self.suspended_at = None
        self.updated_at = datetime.utcnow()

    def usage_report(self) -> Dict[str, Dict[str, Optional[int]]]:
        return {
            resource.value: {"used": self.usage_for(resource), "limit": self.limit_for(resource)}
            for resource in UsageResource
        }
