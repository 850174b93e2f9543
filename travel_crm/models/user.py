"""
User model with roles and tenant scoping
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import Optional
import uuid
from enum import Enum


class UserRole(str, Enum):
    """User roles for RBAC"""
    SUPER_ADMIN = "super_admin"
    OPERATOR = "operator"
    AGENT = "agent"
    SUPPLIER = "supplier"
    CUSTOMER = "customer"


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.OPERATOR)


class User(SQLModel, table=True):
    """User model with tenant isolation"""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")

    # Authentication
    email: str = Field(index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)
    password_changed_at: Optional[datetime] = Field(
        default=None,
        description="Tokens issued before this instant are rejected",
    )

    # Profile
    first_name: str = Field(nullable=False, max_length=100)
    last_name: str = Field(nullable=False, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)

    # RBAC
    role: UserRole = Field(default=UserRole.CUSTOMER, nullable=False, index=True)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = datetime.utcnow()

    def change_password(self, password_hash: str) -> None:
        self.password_hash = password_hash
        self.password_changed_at = datetime.utcnow()
        self.updated_at = self.password_changed_at
