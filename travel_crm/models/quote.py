"""
Quote model with pricing rules and status state machine

draft -> sent -> viewed -> accepted | rejected, plus expired from any
non-terminal status once valid_until has passed (checked lazily on access).
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from travel_crm.core.errors import ImmutableQuote, InvalidStateError
from travel_crm.models.fields import money_field, rate_field, to_money


class QuoteStatus(str, Enum):
    """Status of a quote"""
    DRAFT = "draft"             # Being prepared by the agent
    SENT = "sent"               # Emailed to the customer
    VIEWED = "viewed"           # Opened after sending
    ACCEPTED = "accepted"       # Customer accepted, bookable
    REJECTED = "rejected"       # Customer declined
    EXPIRED = "expired"         # valid_until passed before a response


TERMINAL_STATUSES = frozenset({QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED})
RESPONSE_SOURCES = frozenset({QuoteStatus.SENT, QuoteStatus.VIEWED})
# Development/test deployments may also respond to drafts
RELAXED_RESPONSE_SOURCES = RESPONSE_SOURCES | {QuoteStatus.DRAFT}

PRICING_COMPONENTS = ("markup", "taxes", "agent_discount")


def calculate_total_price(
    base_cost: Any,
    markup_amount: Any = None,
    taxes_amount: Any = None,
    discount_amount: Any = None,
) -> Decimal:
    """totalPrice = baseCost + markup + taxes - agent discount"""
    return (
        to_money(base_cost)
        + to_money(markup_amount)
        + to_money(taxes_amount)
        - to_money(discount_amount)
    )


class Quote(SQLModel, table=True):
    """Priced proposal sent to a customer"""

    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("tenant_id", "quote_number", name="uq_quotes_tenant_number"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")
    quote_number: str = Field(index=True, max_length=32, description="Q{year}-{sequence:06d}")

    itinerary_id: uuid.UUID = Field(foreign_key="itineraries.id", index=True)
    agent_id: uuid.UUID = Field(foreign_key="agents.id", index=True)
    customer_id: uuid.UUID = Field(foreign_key="customers.id", index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")

    number_of_travelers: int = Field(default=1, ge=1)
    travel_start_date: Optional[date] = None
    travel_end_date: Optional[date] = None

    # Pricing
    base_cost: Decimal = money_field()
    markup_percentage: Optional[Decimal] = rate_field()
    markup_amount: Decimal = money_field()
    taxes_percentage: Optional[Decimal] = rate_field()
    taxes_amount: Decimal = money_field()
    agent_discount_percentage: Optional[Decimal] = rate_field()
    agent_discount_amount: Decimal = money_field()
    total_price: Decimal = money_field(description="Always derived server-side")
    currency: str = Field(default="USD", max_length=3)

    # Status
    status: QuoteStatus = Field(default=QuoteStatus.DRAFT, index=True)
    valid_until: datetime = Field(index=True)
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    rejection_reason: Optional[str] = Field(default=None, max_length=1000)

    notes: Optional[str] = Field(default=None, max_length=5000)
    terms: Optional[str] = Field(default=None, max_length=5000)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    # Pricing

    @property
    def pricing(self) -> Dict[str, Any]:
        """Nested pricing view"""
        data: Dict[str, Any] = {"base_cost": to_money(self.base_cost)}
        for component in PRICING_COMPONENTS:
            data[component] = {
                "percentage": getattr(self, f"{component}_percentage"),
                "amount": to_money(getattr(self, f"{component}_amount")),
            }
        data["total_price"] = to_money(self.total_price)
        return data

    def apply_pricing(self, changes: Dict[str, Any]) -> None:
        """Merge pricing changes over the current pricing and recompute the total.

        A caller-supplied ``total_price`` is never trusted.
        """
        if changes.get("base_cost") is not None:
            self.base_cost = to_money(changes["base_cost"])
        for component in PRICING_COMPONENTS:
            update = changes.get(component)
            if not update:
                continue
            if "percentage" in update:
                setattr(self, f"{component}_percentage", update["percentage"])
            if update.get("amount") is not None:
                setattr(self, f"{component}_amount", to_money(update["amount"]))
        self.recalculate_total()

    def recalculate_total(self) -> Decimal:
        self.total_price = calculate_total_price(
            self.base_cost,
            self.markup_amount,
            self.taxes_amount,
            self.agent_discount_amount,
        )
        return self.total_price

    # State machine

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_edit(self) -> bool:
        """Edits are allowed while draft, sent or viewed"""
        return not self.is_terminal()

    def ensure_editable(self) -> None:
        if not self.can_edit():
            raise ImmutableQuote(f"Cannot update quote with status: {self.status.value}")

    def can_delete(self) -> bool:
        """Accepted quotes may have bookings attached"""
        return self.status != QuoteStatus.ACCEPTED

    def is_past_validity(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) > self.valid_until

    def refresh_expiry(self, now: Optional[datetime] = None) -> bool:
        """Move a non-terminal quote to expired once valid_until has passed"""
        now = now or datetime.utcnow()
        if self.is_terminal() or not self.is_past_validity(now):
            return False

        self.status = QuoteStatus.EXPIRED
        self.expired_at = now
        self.updated_at = now
        return True

    def transition_to_sent(self) -> None:
        """Transition to sent (after the email was dispatched)"""
        if self.status != QuoteStatus.DRAFT:
            raise InvalidStateError("Only draft quotes can be sent")

        self.status = QuoteStatus.SENT
        self.sent_at = datetime.utcnow()
        self.updated_at = self.sent_at

    def record_view(self) -> bool:
        """sent -> viewed; any other status is left untouched"""
        if self.status != QuoteStatus.SENT:
            return False

        self.status = QuoteStatus.VIEWED
        self.viewed_at = datetime.utcnow()
        self.updated_at = self.viewed_at
        return True

    def can_respond(self, relaxed: bool = False) -> bool:
        sources = RELAXED_RESPONSE_SOURCES if relaxed else RESPONSE_SOURCES
        return self.status in sources

    def transition_to_accepted(self, relaxed: bool = False) -> None:
        """Transition to accepted (customer accepts)"""
        if not self.can_respond(relaxed):
            raise InvalidStateError(
                f"Quote cannot be accepted in its current status: {self.status.value}"
            )

        self.status = QuoteStatus.ACCEPTED
        self.accepted_at = datetime.utcnow()
        self.updated_at = self.accepted_at

    def transition_to_rejected(self, relaxed: bool = False, reason: Optional[str] = None) -> None:
        """Transition to rejected (customer declines)"""
        if not self.can_respond(relaxed):
            raise InvalidStateError(
                f"Quote cannot be rejected in its current status: {self.status.value}"
            )

        self.status = QuoteStatus.REJECTED
        self.rejected_at = datetime.utcnow()
        self.updated_at = self.rejected_at
        if reason:
            self.rejection_reason = reason
            line = f"Rejection reason: {reason}"
            self.notes = f"{self.notes}\n\n{line}" if self.notes else line
