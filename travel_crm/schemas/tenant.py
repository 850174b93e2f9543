"""
Tenant schemas
"""

from sqlmodel import SQLModel
from pydantic import EmailStr, Field
from datetime import datetime
from typing import Dict, Optional
import uuid

from travel_crm.models.tenant import SubscriptionPlan, SubscriptionStatus, TenantStatus


class TenantSignup(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    subdomain: str = Field(min_length=3, max_length=63, pattern=r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
    custom_domain: Optional[str] = Field(default=None, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    plan: SubscriptionPlan = SubscriptionPlan.BASIC

    # First operator account
    admin_email: EmailStr
    admin_password: str = Field(min_length=8)
    admin_first_name: str = Field(min_length=1, max_length=100)
    admin_last_name: str = Field(min_length=1, max_length=100)


class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    subdomain: str
    custom_domain: Optional[str] = None
    email: str
    phone: Optional[str] = None
    status: TenantStatus
    suspension_reason: Optional[str] = None
    plan: SubscriptionPlan
    subscription_status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TenantUsage(SQLModel):
    tenant: TenantRead
    usage: Dict[str, Dict[str, Optional[int]]]


class TenantSuspend(SQLModel):
    reason: Optional[str] = Field(default=None, max_length=1000)
