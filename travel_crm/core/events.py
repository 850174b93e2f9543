"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, tenant_id: Optional[uuid.UUID] = None, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.tenant_id = tenant_id
        self.occurred_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__,
            "tenant_id": str(self.tenant_id) if self.tenant_id else None,
        }


class QuoteStatusChanged(DomainEvent):
    """Event fired on every quote status transition"""

    def __init__(
        self,
        quote_id: uuid.UUID,
        tenant_id: uuid.UUID,
        old_status: str,
        new_status: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(tenant_id, event_id)
        self.quote_id = quote_id
        self.old_status = old_status
        self.new_status = new_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "quote_id": str(self.quote_id),
            "old_status": self.old_status,
            "new_status": self.new_status,
        })
        return data


class BookingPaymentRecorded(DomainEvent):
    """Event fired when a payment is applied to a booking"""

    def __init__(
        self,
        booking_id: uuid.UUID,
        tenant_id: uuid.UUID,
        amount: str,
        payment_status: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(tenant_id, event_id)
        self.booking_id = booking_id
        self.amount = amount
        self.payment_status = payment_status

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "booking_id": str(self.booking_id),
            "amount": self.amount,
            "payment_status": self.payment_status,
        })
        return data


class AssignmentReassigned(DomainEvent):
    """Event fired when an assignment changes hands"""

    def __init__(
        self,
        assignment_id: uuid.UUID,
        tenant_id: uuid.UUID,
        from_user: uuid.UUID,
        to_user: uuid.UUID,
        event_id: uuid.UUID = None
    ):
        super().__init__(tenant_id, event_id)
        self.assignment_id = assignment_id
        self.from_user = from_user
        self.to_user = to_user

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "assignment_id": str(self.assignment_id),
            "from_user": str(self.from_user),
            "to_user": str(self.to_user),
        })
        return data


class AuditRecorded(DomainEvent):
    """Event fired after an audit entry is persisted"""

    def __init__(
        self,
        audit_log_id: uuid.UUID,
        tenant_id: Optional[uuid.UUID],
        action: str,
        resource_type: str,
        resource_id: Optional[str],
        event_id: uuid.UUID = None
    ):
        super().__init__(tenant_id, event_id)
        self.audit_log_id = audit_log_id
        self.action = action
        self.resource_type = resource_type
        self.resource_id = resource_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "audit_log_id": str(self.audit_log_id),
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
        })
        return data


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        logger.debug("Subscribed handler", event_type=event_type)

    def unsubscribe(self, event_type: str, handler: Callable):
        """Unsubscribe from an event type"""
        if event_type in self._subscribers:
            self._subscribers[event_type].remove(handler)
            logger.debug("Unsubscribed handler", event_type=event_type)

    async def publish(self, event: DomainEvent):
        """Publish an event to all subscribers"""
        event_type = event.__class__.__name__
        handlers = self._subscribers.get(event_type, [])

        if not handlers:
            logger.debug("No subscribers for event", event_type=event_type)
            return

        logger.info("Publishing event", event_type=event_type, event_id=str(event.event_id))

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error("Error in event handler", event_type=event_type, error=str(e), exc_info=True)

    def clear_subscribers(self):
        """Clear all subscribers (useful for testing)"""
        self._subscribers.clear()
        logger.debug("Cleared all event subscribers")


# Global event bus instance
event_bus = EventBus()
