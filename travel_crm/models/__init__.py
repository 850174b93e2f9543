"""
Database models
"""

from travel_crm.models.tenant import (
    Tenant,
    TenantStatus,
    SubscriptionStatus,
    SubscriptionPlan,
    UsageResource,
)
from travel_crm.models.user import User, UserRole
from travel_crm.models.agent import Agent, AgentStatus, AgentTier
from travel_crm.models.supplier import Supplier, SupplierStatus
from travel_crm.models.customer import Customer
from travel_crm.models.itinerary import Itinerary
from travel_crm.models.quote import Quote, QuoteStatus
from travel_crm.models.booking import (
    Booking,
    BookingPaymentRecord,
    BookingPaymentStatus,
    BookingStatus,
    PaymentMethod,
)
from travel_crm.models.assignment import (
    AssignmentEntityType,
    AssignmentPriority,
    AssignmentStatus,
    QueryAssignment,
)
from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentMethod,
    ExpensePaymentStatus,
    QueryExpense,
)
from travel_crm.models.audit_log import AuditLog
from travel_crm.models.sequence import TenantSequence

__all__ = [
    "Tenant",
    "TenantStatus",
    "SubscriptionStatus",
    "SubscriptionPlan",
    "UsageResource",
    "User",
    "UserRole",
    "Agent",
    "AgentStatus",
    "AgentTier",
    "Supplier",
    "SupplierStatus",
    "Customer",
    "Itinerary",
    "Quote",
    "QuoteStatus",
    "Booking",
    "BookingPaymentRecord",
    "BookingPaymentStatus",
    "BookingStatus",
    "PaymentMethod",
    "AssignmentEntityType",
    "AssignmentPriority",
    "AssignmentStatus",
    "QueryAssignment",
    "ApprovalStatus",
    "ExpenseCategory",
    "ExpenseEntityType",
    "ExpensePaymentMethod",
    "ExpensePaymentStatus",
    "QueryExpense",
    "AuditLog",
    "TenantSequence",
]
