"""
Schemas for agents, customers, suppliers and itineraries
"""

from sqlmodel import SQLModel
from pydantic import EmailStr, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
import uuid

from travel_crm.models.agent import AgentStatus, AgentTier
from travel_crm.models.supplier import SupplierStatus


# ============================================================================
# Agent Schemas
# ============================================================================

class AgentCreate(SQLModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Optional[str] = None
    agency_name: str = Field(min_length=1, max_length=200)
    tier: AgentTier = AgentTier.BRONZE
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0)
    commission_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)


class AgentRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    agency_name: str
    contact_person: Optional[str] = None
    email: str
    phone: Optional[str] = None
    status: AgentStatus
    tier: AgentTier
    credit_limit: Decimal
    available_credit: Decimal
    commission_rate: Optional[Decimal] = None
    total_bookings: int
    total_revenue: Decimal
    approved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Customer Schemas
# ============================================================================

class CustomerCreate(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    nationality: Optional[str] = None
    agent_id: Optional[uuid.UUID] = None


class CustomerUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    agent_id: Optional[uuid.UUID] = None


class CustomerRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    agent_id: Optional[uuid.UUID] = None
    name: str
    email: str
    phone: Optional[str] = None
    nationality: Optional[str] = None
    total_bookings: int
    total_spent: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Supplier Schemas
# ============================================================================

class SupplierCreate(SQLModel):
    company_name: str = Field(min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    service_types: List[str] = Field(default_factory=list)
    user_id: Optional[uuid.UUID] = None


class SupplierRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    company_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    service_types: Optional[List[str]] = None
    status: SupplierStatus
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Itinerary Schemas
# ============================================================================

class ItineraryCreate(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    destination: str = Field(min_length=1, max_length=200)
    duration_days: int = Field(default=1, ge=1)
    description: Optional[str] = None
    estimated_base_cost: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    agent_id: Optional[uuid.UUID] = None


class ItineraryRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    agent_id: Optional[uuid.UUID] = None
    title: str
    destination: str
    duration_days: int
    description: Optional[str] = None
    estimated_base_cost: Decimal
    currency: str
    created_at: datetime

    class Config:
        from_attributes = True
