"""
Quote lifecycle: creation, pricing, sending, viewing and customer response
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
import uuid
import structlog

from travel_crm.core.authorization import Caller
from travel_crm.core.config import Settings, get_settings
from travel_crm.core.errors import (
    ExternalServiceError,
    ForbiddenError,
    InvalidStateError,
    QuoteExpired,
    ValidationError,
)
from travel_crm.core.events import EventBus, QuoteStatusChanged, event_bus
from travel_crm.models.agent import Agent
from travel_crm.models.fields import to_money
from travel_crm.models.quote import Quote, QuoteStatus
from travel_crm.models.tenant import Tenant, UsageResource
from travel_crm.models.user import UserRole
from travel_crm.schemas.common import PageParams
from travel_crm.schemas.quote import QuoteCreate, QuoteUpdate
from travel_crm.services import sequences
from travel_crm.services.collaborators import EmailDispatcher
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import UsageService, check_limit

logger = structlog.get_logger(__name__)


class QuoteService:
    def __init__(
        self,
        repos: Repositories,
        usage: UsageService,
        dispatcher: EmailDispatcher,
        settings: Optional[Settings] = None,
        events: EventBus = event_bus,
    ):
        self.repos = repos
        self.session = repos.session
        self.usage = usage
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.events = events

    async def _publish(self, quote: Quote, old_status: QuoteStatus) -> None:
        await self.events.publish(
            QuoteStatusChanged(quote.id, quote.tenant_id, old_status.value, quote.status.value)
        )

    async def _agent_for(self, caller: Caller, requested: Optional[uuid.UUID]) -> Agent:
        # Agents always quote for themselves
        if caller.role == UserRole.AGENT:
            agent = caller.require_profile()
        elif requested is None:
            raise ValidationError("agent_id is required")
        else:
            agent = await self.repos.agents.get_or_404(requested)

        if not agent.is_active():
            raise InvalidStateError("Only active agents can create quotes")
        return agent

    async def create(self, caller: Caller, tenant: Tenant, data: QuoteCreate) -> Quote:
        check_limit(tenant, UsageResource.QUOTES)

        itinerary = await self.repos.itineraries.get_or_404(data.itinerary_id)
        customer = await self.repos.customers.get_or_404(data.customer_id)
        if not customer.is_active:
            raise InvalidStateError("Customer is inactive")
        agent = await self._agent_for(caller, data.agent_id)

        if customer.agent_id is not None and customer.agent_id != agent.id:
            raise ValidationError("Customer is assigned to a different agent")
        if customer.agent_id is None:
            customer.assign_agent(agent.id)
            self.repos.customers.add(customer)

        now = datetime.utcnow()
        valid_until = data.valid_until or now + timedelta(days=self.settings.QUOTE_VALIDITY_DAYS)
        if valid_until <= now:
            raise ValidationError("valid_until must be in the future")

        pricing: Dict[str, Any] = data.pricing.model_dump(exclude_unset=True) if data.pricing else {}
        if pricing.get("base_cost") is None:
            pricing["base_cost"] = to_money(itinerary.estimated_base_cost) * data.number_of_travelers

        quote = Quote(
            tenant_id=tenant.id,
            quote_number="",
            itinerary_id=itinerary.id,
            agent_id=agent.id,
            customer_id=customer.id,
            created_by=caller.id,
            number_of_travelers=data.number_of_travelers,
            travel_start_date=data.travel_start_date,
            travel_end_date=data.travel_end_date,
            currency=data.currency.upper(),
            valid_until=valid_until,
            notes=data.notes,
            terms=data.terms,
        )
        quote.apply_pricing(pricing)

        supplied_total = pricing.get("total_price")
        if supplied_total is not None and to_money(supplied_total) != quote.total_price:
            raise ValidationError(
                f"total_price {to_money(supplied_total)} does not match the computed total {quote.total_price}"
            )

        quote.quote_number = await sequences.next_number(self.session, tenant.id, sequences.QUOTE)
        self.repos.quotes.add(quote)
        await self.session.commit()

        await self.usage.increment_usage(tenant.id, UsageResource.QUOTES)
        logger.info(
            "Quote created",
            quote_id=str(quote.id),
            quote_number=quote.quote_number,
            tenant_id=str(tenant.id),
            total_price=str(quote.total_price),
        )
        return quote

    async def get_for_caller(self, caller: Caller, quote_id: uuid.UUID) -> Quote:
        quote = await self.repos.quotes.get_or_404(quote_id)
        caller.ensure_owns(quote)
        return quote

    async def refresh_expiry(self, quote: Quote) -> bool:
        """Expire a non-terminal quote past valid_until (not committed)"""
        old_status = quote.status
        if not quote.refresh_expiry():
            return False
        self.repos.quotes.add(quote)
        logger.info("Quote expired", quote_id=str(quote.id), previous_status=old_status.value)
        await self._publish(quote, old_status)
        return True

    async def record_view(self, quote: Quote) -> bool:
        """sent -> viewed (not committed); drafts are never auto-viewed"""
        old_status = quote.status
        if not quote.record_view():
            return False
        self.repos.quotes.add(quote)
        logger.info("Quote viewed", quote_id=str(quote.id))
        await self._publish(quote, old_status)
        return True

    async def read(self, caller: Caller, quote_id: uuid.UUID) -> Quote:
        """Fetch a quote for display, applying the expiry and view commands"""
        quote = await self.get_for_caller(caller, quote_id)
        expired = await self.refresh_expiry(quote)
        viewed = await self.record_view(quote)
        if expired or viewed:
            await self.session.commit()
        return quote

    async def list(
        self,
        caller: Caller,
        params: PageParams,
        status: Optional[QuoteStatus] = None,
        agent_id: Optional[uuid.UUID] = None,
        customer_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Quote], int]:
        criteria = caller.owner_criteria(Quote)
        if status:
            criteria.append(Quote.status == status)
        if agent_id and caller.is_admin:
            criteria.append(Quote.agent_id == agent_id)
        if customer_id:
            criteria.append(Quote.customer_id == customer_id)

        quotes, total = await self.repos.quotes.page(*criteria, offset=params.offset, limit=params.limit)
        expired = [quote for quote in quotes if await self.refresh_expiry(quote)]
        if expired:
            await self.session.commit()
        return quotes, total

    async def stats(self, caller: Caller) -> Dict[str, Any]:
        counts = await self.repos.quotes.counts_by(Quote.status, *caller.owner_criteria(Quote))
        by_status = {status.value: counts.get(status.value, 0) for status in QuoteStatus}
        total = sum(by_status.values())
        left_draft = total - by_status[QuoteStatus.DRAFT.value]
        accepted = by_status[QuoteStatus.ACCEPTED.value]
        conversion = round(accepted / left_draft * 100, 2) if left_draft else 0.0
        return {"total": total, "by_status": by_status, "conversion_rate": conversion}

    async def update(self, caller: Caller, quote_id: uuid.UUID, data: QuoteUpdate) -> Quote:
        quote = await self.get_for_caller(caller, quote_id)
        if await self.refresh_expiry(quote):
            await self.session.commit()
        quote.ensure_editable()

        changes = data.model_dump(exclude_unset=True)
        pricing = changes.pop("pricing", None)
        if "valid_until" in changes and changes["valid_until"] is None:
            changes.pop("valid_until")
        for key, value in changes.items():
            setattr(quote, key, value)

        if pricing:
            pricing.pop("total_price", None)
            quote.apply_pricing(pricing)
        else:
            quote.recalculate_total()

        quote.updated_at = datetime.utcnow()
        self.repos.quotes.add(quote)
        await self.session.commit()
        logger.info("Quote updated", quote_id=str(quote.id), total_price=str(quote.total_price))
        return quote

    async def send(self, caller: Caller, quote_id: uuid.UUID) -> Quote:
        quote = await self.get_for_caller(caller, quote_id)
        if await self.refresh_expiry(quote):
            await self.session.commit()
            raise QuoteExpired()
        if quote.status != QuoteStatus.DRAFT:
            raise InvalidStateError("Only draft quotes can be sent")

        agent = await self.repos.agents.get_or_404(quote.agent_id)
        customer = await self.repos.customers.get_or_404(quote.customer_id)

        # Status only changes once the email is out
        try:
            await self.dispatcher.send_quote(quote, agent, customer)
        except ExternalServiceError:
            logger.error("Quote send aborted", quote_id=str(quote.id))
            raise

        quote.transition_to_sent()
        self.repos.quotes.add(quote)
        await self.session.commit()
        logger.info("Quote sent", quote_id=str(quote.id), to=customer.email)
        await self._publish(quote, QuoteStatus.DRAFT)
        return quote

    async def _respond(self, caller: Caller, quote_id: uuid.UUID) -> Quote:
        quote = await self.get_for_caller(caller, quote_id)
        if quote.is_terminal():
            raise InvalidStateError(f"Quote has already been {quote.status.value}")
        if await self.refresh_expiry(quote):
            await self.session.commit()
            raise QuoteExpired()
        return quote

    async def accept(self, caller: Caller, quote_id: uuid.UUID) -> Quote:
        quote = await self._respond(caller, quote_id)
        old_status = quote.status
        quote.transition_to_accepted(relaxed=self.settings.relaxed_quote_transitions)
        self.repos.quotes.add(quote)
        await self.session.commit()
        logger.info("Quote accepted", quote_id=str(quote.id), by=str(caller.id))
        await self._publish(quote, old_status)
        return quote

    async def reject(self, caller: Caller, quote_id: uuid.UUID, reason: Optional[str] = None) -> Quote:
        quote = await self._respond(caller, quote_id)
        old_status = quote.status
        quote.transition_to_rejected(relaxed=self.settings.relaxed_quote_transitions, reason=reason)
        self.repos.quotes.add(quote)
        await self.session.commit()
        logger.info("Quote rejected", quote_id=str(quote.id), by=str(caller.id))
        await self._publish(quote, old_status)
        return quote

    async def delete(self, caller: Caller, quote_id: uuid.UUID) -> None:
        quote = await self.get_for_caller(caller, quote_id)
        if caller.role not in (UserRole.SUPER_ADMIN, UserRole.OPERATOR, UserRole.AGENT):
            raise ForbiddenError("Only the owning agent or an administrator can delete quotes")
        if not quote.can_delete():
            raise InvalidStateError("Cannot delete accepted quote")
        await self.repos.quotes.delete(quote)
        await self.session.commit()
        logger.info("Quote deleted", quote_id=str(quote.id))
