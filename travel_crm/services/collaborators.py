"""
External collaborators consumed through narrow interfaces

Only the email dispatcher is wired into a lifecycle (quote send). PDF
rendering, email categorisation and notification delivery live outside this
service; their interfaces are declared here for the integrations that
provide them.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Tuple
import uuid

import httpx
import structlog

from travel_crm.core.config import get_settings
from travel_crm.core.errors import ExternalServiceError
from travel_crm.models.agent import Agent
from travel_crm.models.customer import Customer
from travel_crm.models.quote import Quote

logger = structlog.get_logger(__name__)


class EmailDispatcher(ABC):
    @abstractmethod
    async def send_quote(self, quote: Quote, agent: Agent, customer: Customer) -> None:
        """Deliver the quote; raise ExternalServiceError on failure"""


class PdfRenderer(ABC):
    @abstractmethod
    async def render(self, entity: Any) -> bytes:
        ...


class EmailCategorizer(ABC):
    @abstractmethod
    async def categorize(self, text: str) -> Tuple[str, float]:
        """Return (category, confidence)"""


class Notifier(ABC):
    @abstractmethod
    async def notify(self, user_id: uuid.UUID, message: str) -> None:
        ...


def quote_email_payload(quote: Quote, agent: Agent, customer: Customer) -> dict:
    return {
        "template": "quote",
        "to": customer.email,
        "reply_to": agent.email,
        "subject": f"Your travel quote {quote.quote_number}",
        "context": {
            "quote_id": str(quote.id),
            "quote_number": quote.quote_number,
            "customer_name": customer.name,
            "agency_name": agent.agency_name,
            "total_price": str(quote.total_price),
            "currency": quote.currency,
            "valid_until": quote.valid_until.isoformat(),
        },
    }


class HttpEmailDispatcher(EmailDispatcher):
    """Posts quote emails to the mail service"""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def send_quote(self, quote: Quote, agent: Agent, customer: Customer) -> None:
        payload = quote_email_payload(quote, agent, customer)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(f"{self.base_url}/messages", json=payload)
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Quote email dispatch failed", quote_id=str(quote.id), error=str(e))
            raise ExternalServiceError("Failed to send quote email") from e

        logger.info("Quote email dispatched", quote_id=str(quote.id), to=customer.email)


class LoggingEmailDispatcher(EmailDispatcher):
    """Used when no mail service is configured (development/test)"""

    async def send_quote(self, quote: Quote, agent: Agent, customer: Customer) -> None:
        logger.info(
            "Quote email (not delivered, no mail service configured)",
            quote_id=str(quote.id),
            to=customer.email,
        )


@lru_cache()
def get_email_dispatcher() -> EmailDispatcher:
    settings = get_settings()
    if settings.EMAIL_SERVICE_URL:
        return HttpEmailDispatcher(settings.EMAIL_SERVICE_URL, settings.EMAIL_SERVICE_TIMEOUT_SECONDS)
    if settings.is_production:
        raise RuntimeError("EMAIL_SERVICE_URL must be set in production")
    return LoggingEmailDispatcher()
