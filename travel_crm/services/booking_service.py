"""
Booking lifecycle: creation from accepted quotes, payments and status changes
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
import uuid
import structlog

from travel_crm.core.authorization import Caller
from travel_crm.core.errors import InvalidStateError
from travel_crm.core.events import BookingPaymentRecorded, EventBus, event_bus
from travel_crm.models.booking import (
    Booking,
    BookingPaymentRecord,
    BookingPaymentStatus,
    BookingStatus,
)
from travel_crm.models.fields import ZERO, to_money
from travel_crm.models.quote import QuoteStatus
from travel_crm.models.tenant import Tenant, UsageResource
from travel_crm.schemas.booking import BookingCancel, BookingCreate, BookingUpdate, PaymentCreate
from travel_crm.schemas.common import PageParams
from travel_crm.services import sequences
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import UsageService, check_limit

logger = structlog.get_logger(__name__)


class BookingService:
    def __init__(self, repos: Repositories, usage: UsageService, events: EventBus = event_bus):
        self.repos = repos
        self.session = repos.session
        self.usage = usage
        self.events = events

    async def get_for_caller(self, caller: Caller, booking_id: uuid.UUID) -> Booking:
        booking = await self.repos.bookings.get_or_404(booking_id)
        caller.ensure_owns(booking)
        return booking

    async def payments(self, booking: Booking) -> List[BookingPaymentRecord]:
        return await self.repos.payments.for_booking(booking.id)

    async def list(
        self,
        caller: Caller,
        params: PageParams,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[BookingPaymentStatus] = None,
        agent_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Booking], int]:
        criteria = caller.owner_criteria(Booking)
        if status:
            criteria.append(Booking.status == status)
        if payment_status:
            criteria.append(Booking.payment_status == payment_status)
        if agent_id and caller.is_admin:
            criteria.append(Booking.agent_id == agent_id)
        return await self.repos.bookings.page(*criteria, offset=params.offset, limit=params.limit)

    async def create(self, caller: Caller, tenant: Tenant, data: BookingCreate) -> Booking:
        check_limit(tenant, UsageResource.BOOKINGS)

        quote = await self.repos.quotes.get_or_404(data.quote_id)
        caller.ensure_owns(quote)
        if quote.status != QuoteStatus.ACCEPTED:
            raise InvalidStateError("Can only create bookings from accepted quotes")
        if await self.repos.bookings.by_quote(quote.id) is not None:
            raise InvalidStateError("A booking already exists for this quote")

        agent = await self.repos.agents.get_or_404(quote.agent_id)
        customer = await self.repos.customers.get_or_404(quote.customer_id)

        booking = Booking(
            tenant_id=tenant.id,
            booking_number=await sequences.next_number(self.session, tenant.id, sequences.BOOKING),
            quote_id=quote.id,
            itinerary_id=quote.itinerary_id,
            agent_id=agent.id,
            customer_id=customer.id,
            created_by=caller.id,
            number_of_travelers=quote.number_of_travelers,
            travel_start_date=quote.travel_start_date,
            travel_end_date=quote.travel_end_date,
            total_amount=to_money(quote.total_price),
            currency=quote.currency,
            payment_due_date=data.payment_due_date,
            special_requests=data.special_requests,
            notes=data.notes,
        )
        booking.refresh_financials()

        # Outstanding bookings draw on the agent's credit until settled
        agent.available_credit = max(ZERO, to_money(agent.available_credit) - booking.total_amount)
        agent.total_bookings = (agent.total_bookings or 0) + 1
        agent.updated_at = datetime.utcnow()
        customer.record_booking()

        self.repos.bookings.add(booking)
        self.repos.agents.add(agent)
        self.repos.customers.add(customer)
        await self.session.commit()

        await self.usage.increment_usage(tenant.id, UsageResource.BOOKINGS)
        logger.info(
            "Booking created",
            booking_id=str(booking.id),
            booking_number=booking.booking_number,
            quote_id=str(quote.id),
        )
        return booking

    async def update(self, caller: Caller, booking_id: uuid.UUID, data: BookingUpdate) -> Booking:
        booking = await self.get_for_caller(caller, booking_id)
        booking.ensure_editable()

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(booking, key, value)
        booking.refresh_financials()
        booking.updated_at = datetime.utcnow()

        self.repos.bookings.add(booking)
        await self.session.commit()
        return booking

    async def add_payment(self, caller: Caller, booking_id: uuid.UUID, data: PaymentCreate) -> Booking:
        booking = await self.get_for_caller(caller, booking_id)
        was_paid = booking.is_fully_paid()
        amount = booking.record_payment(Decimal(data.amount))

        record = BookingPaymentRecord(
            tenant_id=booking.tenant_id,
            booking_id=booking.id,
            amount=amount,
            method=data.method,
            reference=data.reference,
            notes=data.notes,
            recorded_by=caller.id,
        )
        self.repos.payments.add(record)

        customer = await self.repos.customers.get(booking.customer_id)
        if customer is not None:
            customer.record_spend(amount)
            self.repos.customers.add(customer)

        agent = await self.repos.agents.get(booking.agent_id)
        if agent is not None:
            agent.total_revenue = to_money(agent.total_revenue) + amount
            if booking.is_fully_paid() and not was_paid:
                agent.restore_credit(booking.total_amount)
            agent.updated_at = datetime.utcnow()
            self.repos.agents.add(agent)

        self.repos.bookings.add(booking)
        await self.session.commit()

        logger.info(
            "Booking payment recorded",
            booking_id=str(booking.id),
            amount=str(amount),
            payment_status=booking.payment_status.value,
        )
        await self.events.publish(
            BookingPaymentRecorded(booking.id, booking.tenant_id, str(amount), booking.payment_status.value)
        )
        return booking

    async def confirm(self, caller: Caller, booking_id: uuid.UUID) -> Booking:
        booking = await self.get_for_caller(caller, booking_id)
        booking.refresh_financials()
        booking.confirm()
        self.repos.bookings.add(booking)
        await self.session.commit()
        logger.info("Booking confirmed", booking_id=str(booking.id))
        return booking

    async def complete(self, caller: Caller, booking_id: uuid.UUID) -> Booking:
        booking = await self.get_for_caller(caller, booking_id)
        booking.complete()
        self.repos.bookings.add(booking)
        await self.session.commit()
        logger.info("Booking completed", booking_id=str(booking.id))
        return booking

    async def cancel(self, caller: Caller, booking_id: uuid.UUID, data: BookingCancel) -> Booking:
        booking = await self.get_for_caller(caller, booking_id)
        booking.cancel(reason=data.reason, refund_amount=data.refund_amount)

        # Release credit still held by an unsettled booking
        agent = await self.repos.agents.get(booking.agent_id)
        if agent is not None and to_money(booking.paid_amount) < to_money(booking.total_amount):
            agent.restore_credit(booking.total_amount)
            self.repos.agents.add(agent)

        self.repos.bookings.add(booking)
        await self.session.commit()
        logger.info(
            "Booking cancelled",
            booking_id=str(booking.id),
            refund_amount=str(booking.refunded_amount),
        )
        return booking
