"""
Itinerary model (priced trip plan referenced by quotes and bookings)
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from decimal import Decimal
from typing import Optional
import uuid

from travel_crm.models.fields import money_field


class Itinerary(SQLModel, table=True):
    __tablename__ = "itineraries"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    agent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="agents.id", index=True)

    title: str = Field(max_length=200)
    destination: str = Field(max_length=200)
    duration_days: int = Field(default=1, ge=1)
    description: Optional[str] = Field(default=None, max_length=5000)

    estimated_base_cost: Decimal = money_field(description="Per-traveller base cost")
    currency: str = Field(default="USD", max_length=3)

    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
