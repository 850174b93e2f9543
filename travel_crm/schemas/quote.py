"""
Quote schemas
"""

from sqlmodel import SQLModel
from pydantic import Field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional
import uuid

from travel_crm.models.quote import Quote, QuoteStatus
from travel_crm.schemas.common import naive_utc


class PricingComponent(SQLModel):
    percentage: Optional[Decimal] = Field(default=None, ge=0)
    amount: Optional[Decimal] = Field(default=None, ge=0)


class PricingInput(SQLModel):
    base_cost: Optional[Decimal] = Field(default=None, ge=0)
    markup: Optional[PricingComponent] = None
    taxes: Optional[PricingComponent] = None
    agent_discount: Optional[PricingComponent] = None
    total_price: Optional[Decimal] = None


class QuoteCreate(SQLModel):
    itinerary_id: uuid.UUID
    customer_id: uuid.UUID
    agent_id: Optional[uuid.UUID] = None
    number_of_travelers: int = Field(default=1, ge=1)
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None
    pricing: Optional[PricingInput] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    terms: Optional[str] = None

    @field_validator("valid_until")
    @classmethod
    def valid_until_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class QuoteUpdate(SQLModel):
    number_of_travelers: Optional[int] = Field(default=None, ge=1)
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None
    pricing: Optional[PricingInput] = None
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    terms: Optional[str] = None

    @field_validator("valid_until")
    @classmethod
    def valid_until_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class QuoteReject(SQLModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class QuoteRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    quote_number: str
    itinerary_id: uuid.UUID
    agent_id: uuid.UUID
    customer_id: uuid.UUID
    number_of_travelers: int
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None
    pricing: Dict[str, Any]
    currency: str
    status: QuoteStatus
    valid_until: datetime
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteRead":
        data = quote.model_dump()
        data["pricing"] = quote.pricing
        return cls.model_validate(data)


class QuoteStats(SQLModel):
    total: int
    by_status: Dict[str, int]
    conversion_rate: float
