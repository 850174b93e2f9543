"""Initial schema: tenants, directory, quotes, bookings, assignments, expenses, audit

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from travel_crm.models.agent import AgentStatus, AgentTier
from travel_crm.models.assignment import AssignmentEntityType, AssignmentPriority, AssignmentStatus
from travel_crm.models.booking import BookingPaymentStatus, BookingStatus, PaymentMethod
from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentMethod,
    ExpensePaymentStatus,
)
from travel_crm.models.quote import QuoteStatus
from travel_crm.models.supplier import SupplierStatus
from travel_crm.models.tenant import SubscriptionPlan, SubscriptionStatus, TenantStatus
from travel_crm.models.user import UserRole

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)


def enum(enum_class):
    return sa.Enum(enum_class, name=enum_class.__name__.lower())


def money(name, nullable=False):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def rate(name):
    return sa.Column(name, sa.Numeric(12, 6), nullable=True)


def tenant_fk():
    return sa.Column('tenant_id', UUID, sa.ForeignKey('tenants.id'), nullable=False, index=True)


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # Tenants
    op.create_table(
        'tenants',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, index=True),
        sa.Column('subdomain', sa.String(63), nullable=False, unique=True, index=True),
        sa.Column('custom_domain', sa.String(255), nullable=True, unique=True, index=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('status', enum(TenantStatus), nullable=False, index=True),
        sa.Column('suspension_reason', sa.String(1000), nullable=True),
        sa.Column('suspended_at', sa.DateTime(), nullable=True),
        sa.Column('plan', enum(SubscriptionPlan), nullable=False),
        sa.Column('subscription_status', enum(SubscriptionStatus), nullable=False, index=True),
        sa.Column('trial_ends_at', sa.DateTime(), nullable=True),
        *[sa.Column(f'usage_{r}', sa.Integer(), nullable=False, server_default='0')
          for r in ('users', 'agents', 'customers', 'quotes', 'bookings')],
        *[sa.Column(f'limit_{r}', sa.Integer(), nullable=True)
          for r in ('users', 'agents', 'customers', 'quotes', 'bookings')],
        *timestamps(),
    )

    # Users
    op.create_table(
        'users',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('password_changed_at', sa.DateTime(), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', enum(UserRole), nullable=False, index=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, index=True),
        *timestamps(),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
    )

    # Agents
    op.create_table(
        'agents',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id'), nullable=False, unique=True, index=True),
        sa.Column('agency_name', sa.String(200), nullable=False),
        sa.Column('contact_person', sa.String(200), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('status', enum(AgentStatus), nullable=False, index=True),
        sa.Column('tier', enum(AgentTier), nullable=False),
        money('credit_limit'),
        money('available_credit'),
        rate('commission_rate'),
        sa.Column('total_bookings', sa.Integer(), nullable=False, server_default='0'),
        money('total_revenue'),
        sa.Column('approved_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        *timestamps(),
    )

    # Suppliers
    op.create_table(
        'suppliers',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id'), nullable=True, unique=True, index=True),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('service_types', sa.JSON(), nullable=True),
        sa.Column('status', enum(SupplierStatus), nullable=False, index=True),
        *timestamps(),
    )

    # Customers
    op.create_table(
        'customers',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('agent_id', UUID, sa.ForeignKey('agents.id'), nullable=True, index=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id'), nullable=True, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, index=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('nationality', sa.String(100), nullable=True),
        sa.Column('total_bookings', sa.Integer(), nullable=False, server_default='0'),
        money('total_spent'),
        sa.Column('is_active', sa.Boolean(), nullable=False, index=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'agent_id', 'email', name='uq_customers_agent_email'),
    )

    # Itineraries
    op.create_table(
        'itineraries',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('agent_id', UUID, sa.ForeignKey('agents.id'), nullable=True, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('destination', sa.String(200), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(5000), nullable=True),
        money('estimated_base_cost'),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        *timestamps(),
    )

    # Quotes
    op.create_table(
        'quotes',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('quote_number', sa.String(32), nullable=False, index=True),
        sa.Column('itinerary_id', UUID, sa.ForeignKey('itineraries.id'), nullable=False, index=True),
        sa.Column('agent_id', UUID, sa.ForeignKey('agents.id'), nullable=False, index=True),
        sa.Column('customer_id', UUID, sa.ForeignKey('customers.id'), nullable=False, index=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('number_of_travelers', sa.Integer(), nullable=False),
        sa.Column('travel_start_date', sa.Date(), nullable=True),
        sa.Column('travel_end_date', sa.Date(), nullable=True),
        money('base_cost'),
        rate('markup_percentage'),
        money('markup_amount'),
        rate('taxes_percentage'),
        money('taxes_amount'),
        rate('agent_discount_percentage'),
        money('agent_discount_amount'),
        money('total_price'),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', enum(QuoteStatus), nullable=False, index=True),
        sa.Column('valid_until', sa.DateTime(), nullable=False, index=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('viewed_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(), nullable=True),
        sa.Column('expired_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.String(1000), nullable=True),
        sa.Column('notes', sa.String(5000), nullable=True),
        sa.Column('terms', sa.String(5000), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'quote_number', name='uq_quotes_tenant_number'),
    )

    # Bookings
    op.create_table(
        'bookings',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('booking_number', sa.String(32), nullable=False, index=True),
        sa.Column('quote_id', UUID, sa.ForeignKey('quotes.id'), nullable=False, unique=True),
        sa.Column('itinerary_id', UUID, sa.ForeignKey('itineraries.id'), nullable=False),
        sa.Column('agent_id', UUID, sa.ForeignKey('agents.id'), nullable=False, index=True),
        sa.Column('customer_id', UUID, sa.ForeignKey('customers.id'), nullable=False, index=True),
        sa.Column('created_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('number_of_travelers', sa.Integer(), nullable=False),
        sa.Column('travel_start_date', sa.Date(), nullable=True),
        sa.Column('travel_end_date', sa.Date(), nullable=True),
        sa.Column('status', enum(BookingStatus), nullable=False, index=True),
        money('total_amount'),
        money('paid_amount'),
        money('pending_amount'),
        money('refunded_amount'),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('payment_status', enum(BookingPaymentStatus), nullable=False, index=True),
        sa.Column('payment_due_date', sa.Date(), nullable=True),
        sa.Column('special_requests', sa.String(5000), nullable=True),
        sa.Column('notes', sa.String(5000), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.String(1000), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'booking_number', name='uq_bookings_tenant_number'),
    )

    op.create_table(
        'booking_payments',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('booking_id', UUID, sa.ForeignKey('bookings.id'), nullable=False, index=True),
        money('amount'),
        sa.Column('method', enum(PaymentMethod), nullable=False),
        sa.Column('reference', sa.String(200), nullable=True),
        sa.Column('notes', sa.String(1000), nullable=True),
        sa.Column('recorded_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
    )

    # Assignments
    op.create_table(
        'query_assignments',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('entity_type', enum(AssignmentEntityType), nullable=False, index=True),
        sa.Column('entity_id', sa.String(64), nullable=False, index=True),
        sa.Column('assigned_to', UUID, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('assigned_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('status', enum(AssignmentStatus), nullable=False, index=True),
        sa.Column('priority', enum(AssignmentPriority), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=True, index=True),
        sa.Column('notes', sa.String(5000), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('completion_notes', sa.String(5000), nullable=True),
        sa.Column('reassignment_history', sa.JSON(), nullable=True),
        *timestamps(),
    )

    # Expenses
    op.create_table(
        'query_expenses',
        sa.Column('id', UUID, primary_key=True),
        tenant_fk(),
        sa.Column('expense_number', sa.String(32), nullable=False, index=True),
        sa.Column('entity_type', enum(ExpenseEntityType), nullable=False, index=True),
        sa.Column('entity_id', UUID, nullable=False, index=True),
        sa.Column('category', enum(ExpenseCategory), nullable=False, index=True),
        sa.Column('subcategory', sa.String(100), nullable=True),
        sa.Column('description', sa.String(1000), nullable=False),
        money('amount'),
        sa.Column('currency', sa.String(3), nullable=False),
        rate('exchange_rate'),
        money('amount_in_base_currency'),
        sa.Column('supplier_id', UUID, sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('supplier_name', sa.String(200), nullable=True),
        sa.Column('payment_status', enum(ExpensePaymentStatus), nullable=False, index=True),
        sa.Column('payment_method', enum(ExpensePaymentMethod), nullable=True),
        money('paid_amount'),
        money('pending_amount'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('paid_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('invoice_number', sa.String(100), nullable=True),
        sa.Column('invoice_date', sa.Date(), nullable=True),
        sa.Column('expense_date', sa.Date(), nullable=False, index=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('approval_status', enum(ApprovalStatus), nullable=False, index=True),
        sa.Column('approved_by', UUID, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.String(1000), nullable=True),
        sa.Column('recorded_by', UUID, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('notes', sa.String(5000), nullable=True),
        sa.Column('internal_notes', sa.String(5000), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('commission_applicable', sa.Boolean(), nullable=False, server_default=sa.false()),
        rate('commission_rate'),
        money('commission_amount', nullable=True),
        rate('markup_percentage'),
        money('markup_amount', nullable=True),
        money('selling_price', nullable=True),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'expense_number', name='uq_expenses_tenant_number'),
    )

    # Audit trail
    op.create_table(
        'audit_logs',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('tenant_id', UUID, nullable=True, index=True),
        sa.Column('user_id', UUID, nullable=True, index=True),
        sa.Column('role', sa.String(32), nullable=True),
        sa.Column('action', sa.String(32), nullable=False, index=True),
        sa.Column('resource_type', sa.String(64), nullable=False, index=True),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False, index=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False, index=True),
    )

    # Document numbering
    op.create_table(
        'tenant_sequences',
        sa.Column('tenant_id', UUID, sa.ForeignKey('tenants.id'), primary_key=True),
        sa.Column('name', sa.String(32), primary_key=True),
        sa.Column('year', sa.Integer(), primary_key=True),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    for table in (
        'tenant_sequences',
        'audit_logs',
        'query_expenses',
        'query_assignments',
        'booking_payments',
        'bookings',
        'quotes',
        'itineraries',
        'customers',
        'suppliers',
        'agents',
        'users',
        'tenants',
    ):
        op.drop_table(table)

    for enum_class in (
        ApprovalStatus, ExpensePaymentMethod, ExpensePaymentStatus, ExpenseCategory, ExpenseEntityType,
        AssignmentPriority, AssignmentStatus, AssignmentEntityType,
        PaymentMethod, BookingPaymentStatus, BookingStatus,
        QuoteStatus, SupplierStatus, AgentTier, AgentStatus, UserRole,
        SubscriptionStatus, SubscriptionPlan, TenantStatus,
    ):
        enum(enum_class).drop(op.get_bind(), checkfirst=True)
