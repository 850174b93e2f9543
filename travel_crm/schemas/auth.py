"""
Authentication schemas
"""

from sqlmodel import SQLModel
from pydantic import EmailStr, Field
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from travel_crm.models.user import ADMIN_ROLES, User, UserRole


class CurrentUser(SQLModel):
    """Authenticated caller; this is the snapshot kept in the session cache"""

    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    password_changed_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "CurrentUser":
        return cls(
            id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            password_changed_at=user.password_changed_at,
        )

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


class UserRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginRequest(SQLModel):
    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(SQLModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class RegisterAgentRequest(SQLModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = None
    agency_name: str = Field(min_length=1, max_length=200)


class ChangePasswordRequest(SQLModel):
    current_password: str
    new_password: str = Field(min_length=8)
