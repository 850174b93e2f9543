"""
Customer model - travellers owned by an agent
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

from travel_crm.core.errors import ForbiddenError
from travel_crm.models.fields import money_field, to_money


class Customer(SQLModel, table=True):
    """Customer belonging to at most one agent"""

    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("tenant_id", "agent_id", "email", name="uq_customers_agent_email"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    agent_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="agents.id",
        index=True,
        description="Owning agent; immutable once set except by an administrator",
    )
    user_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="users.id",
        unique=True,
        description="Portal login for customer-role users",
    )

    name: str = Field(max_length=200)
    email: str = Field(index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    nationality: Optional[str] = Field(default=None, max_length=100)

    total_bookings: int = Field(default=0)
    total_spent: Decimal = money_field()

    is_active: bool = Field(default=True, index=True)
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def assign_agent(self, agent_id: uuid.UUID, by_admin: bool = False) -> None:
        """Set the owning agent; reassignment is an administrator action"""
        if self.agent_id is not None and self.agent_id != agent_id and not by_admin:
            raise ForbiddenError("Customer is already assigned to another agent")
        self.agent_id = agent_id
        self.updated_at = datetime.utcnow()

    def record_booking(self) -> None:
        self.total_bookings = (self.total_bookings or 0) + 1
        self.updated_at = datetime.utcnow()

    def record_spend(self, amount: Decimal) -> None:
        self.total_spent = to_money(self.total_spent) + to_money(amount)
        self.updated_at = datetime.utcnow()

    def soft_delete(self) -> None:
        self.is_active = False
        self.deleted_at = datetime.utcnow()
        self.updated_at = self.deleted_at
