"""
Per-tenant yearly counters backing document numbers
"""

from sqlmodel import Field, SQLModel
import uuid


class TenantSequence(SQLModel, table=True):
    __tablename__ = "tenant_sequences"

    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", primary_key=True)
    name: str = Field(primary_key=True, max_length=32)
    year: int = Field(primary_key=True)
    value: int = Field(default=0)
