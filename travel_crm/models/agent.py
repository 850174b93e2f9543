"""
Agent profile - travel agency staff who own customers, quotes and bookings
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import uuid

from travel_crm.core.errors import InvalidStateError
from travel_crm.models.fields import ZERO, money_field, rate_field, to_money


class AgentStatus(str, Enum):
    PENDING = "pending"         # Self-registered, awaiting approval
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"       # Soft-deleted


class AgentTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class Agent(SQLModel, table=True):
    """Agent profile linked 1:1 to a user"""

    __tablename__ = "agents"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", unique=True, index=True)

    agency_name: str = Field(max_length=200)
    contact_person: Optional[str] = Field(default=None, max_length=200)
    email: str = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

    status: AgentStatus = Field(default=AgentStatus.PENDING, index=True)
    tier: AgentTier = Field(default=AgentTier.BRONZE)

    credit_limit: Decimal = money_field(description="Maximum outstanding credit, never negative")
    available_credit: Decimal = money_field()
    commission_rate: Optional[Decimal] = rate_field("Default commission percentage")

    total_bookings: int = Field(default=0)
    total_revenue: Decimal = money_field()

    approved_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    approved_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE

    def set_credit_limit(self, limit: Decimal) -> None:
        limit = to_money(limit)
        if limit < 0:
            raise InvalidStateError("Credit limit cannot be negative")
        delta = limit - to_money(self.credit_limit)
        self.credit_limit = limit
        self.available_credit = max(ZERO, min(limit, to_money(self.available_credit) + delta))

    def approve(self, user_id: uuid.UUID) -> None:
        if self.status != AgentStatus.PENDING:
            raise InvalidStateError(f"Only pending agents can be approved (current: {self.status.value})")
        self.status = AgentStatus.ACTIVE
        self.approved_by = user_id
        self.approved_at = datetime.utcnow()
        self.updated_at = self.approved_at

    def suspend(self) -> None:
        if self.status != AgentStatus.ACTIVE:
            raise InvalidStateError(f"Only active agents can be suspended (current: {self.status.value})")
        self.status = AgentStatus.SUSPENDED
        self.updated_at = datetime.utcnow()

    def deactivate(self) -> None:
        self.status = AgentStatus.INACTIVE
        self.updated_at = datetime.utcnow()

    def restore_credit(self, amount: Decimal) -> None:
        """Return credit once a booking is settled, capped at the limit"""
        self.available_credit = min(
            to_money(self.credit_limit),
            to_money(self.available_credit) + to_money(amount),
        )
        self.updated_at = datetime.utcnow()
