"""
Supplier profile - hotels, transport and activity providers
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid


class SupplierStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"       # Soft-deleted


class Supplier(SQLModel, table=True):
    """Supplier profile, optionally linked to a supplier-role user"""

    __tablename__ = "suppliers"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", unique=True, index=True)

    company_name: str = Field(max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    service_types: Optional[List[str]] = Field(default_factory=list, sa_column=Column(JSON))

    status: SupplierStatus = Field(default=SupplierStatus.ACTIVE, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status == SupplierStatus.ACTIVE

    def deactivate(self) -> None:
        self.status = SupplierStatus.INACTIVE
        self.updated_at = datetime.utcnow()
