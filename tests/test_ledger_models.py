"""
Unit tests for booking, expense and assignment state machines
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
import uuid

from travel_crm.core.errors import InvalidStateError, ValidationError
from travel_crm.models.assignment import AssignmentEntityType, AssignmentStatus, QueryAssignment
from travel_crm.models.booking import Booking, BookingPaymentStatus, BookingStatus
from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentStatus,
    QueryExpense,
)


# Booking

def make_booking(total: str = "1200.00", **overrides) -> Booking:
    booking = Booking(
        tenant_id=uuid.uuid4(),
        booking_number="B2026-000001",
        quote_id=uuid.uuid4(),
        itinerary_id=uuid.uuid4(),
        agent_id=uuid.uuid4(),
        customer_id=uuid.uuid4(),
        total_amount=Decimal(total),
        **overrides,
    )
    booking.refresh_financials()
    return booking


def test_booking_payment_updates_financials():
    booking = make_booking()
    booking.record_payment(Decimal("200"))
    assert booking.paid_amount == Decimal("200.00")
    assert booking.pending_amount == Decimal("1000.00")
    assert booking.payment_status == BookingPaymentStatus.PARTIALLY_PAID

    booking.record_payment(Decimal("1000"))
    assert booking.pending_amount == Decimal("0.00")
    assert booking.is_fully_paid()


@pytest.mark.parametrize("amount", ["0", "-5", "1200.01"])
def test_booking_payment_rejects_invalid_amounts(amount):
    booking = make_booking()
    with pytest.raises(ValidationError):
        booking.record_payment(Decimal(amount))
    assert booking.paid_amount == Decimal("0")


def test_booking_payment_status_overdue_after_due_date():
    booking = make_booking(payment_due_date=date.today() - timedelta(days=1))
    assert booking.payment_status == BookingPaymentStatus.OVERDUE


def test_booking_confirm_requires_payment():
    booking = make_booking()
    with pytest.raises(InvalidStateError):
        booking.confirm()

    booking.record_payment(Decimal("100"))
    booking.confirm()
    assert booking.status == BookingStatus.CONFIRMED


def test_booking_complete_not_before_travel_end():
    booking = make_booking(travel_end_date=date.today() + timedelta(days=3))
    booking.record_payment(Decimal("1200"))
    booking.confirm()
    with pytest.raises(InvalidStateError):
        booking.complete()

    booking.complete(today=date.today() + timedelta(days=3))
    assert booking.status == BookingStatus.COMPLETED


def test_booking_cancel_with_refund():
    booking = make_booking()
    booking.record_payment(Decimal("300"))
    with pytest.raises(ValidationError):
        booking.cancel(refund_amount=Decimal("301"))

    booking.cancel(reason="Changed plans", refund_amount=Decimal("300"))
    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == BookingPaymentStatus.REFUNDED
    assert booking.refunded_amount == Decimal("300.00")

    with pytest.raises(InvalidStateError):
        booking.record_payment(Decimal("10"))
    with pytest.raises(InvalidStateError):
        booking.cancel()


# Expense

def make_expense(amount: str = "100.00", **overrides) -> QueryExpense:
    expense = QueryExpense(
        tenant_id=uuid.uuid4(),
        expense_number="EXP2026-000001",
        entity_type=ExpenseEntityType.QUOTE,
        entity_id=uuid.uuid4(),
        category=ExpenseCategory.HOTELS,
        description="Two nights",
        amount=Decimal(amount),
        expense_date=date.today(),
        recorded_by=uuid.uuid4(),
        **overrides,
    )
    expense.recalculate()
    return expense


def test_expense_partial_then_full_payment():
    expense = make_expense()
    expense.mark_as_paid(Decimal("30"))
    assert expense.paid_amount == Decimal("30.00")
    assert expense.pending_amount == Decimal("70.00")
    assert expense.payment_status == ExpensePaymentStatus.PARTIALLY_PAID
    assert expense.paid_at is None

    expense.mark_as_paid(Decimal("70"))
    assert expense.payment_status == ExpensePaymentStatus.PAID
    assert expense.pending_amount == Decimal("0.00")
    assert expense.paid_at is not None


def test_expense_overpayment_rejected():
    expense = make_expense()
    expense.mark_as_paid(Decimal("30"))
    with pytest.raises(ValidationError):
        expense.mark_as_paid(Decimal("80"))
    assert expense.paid_amount == Decimal("30.00")


def test_expense_percentage_markup_wins_and_backfills_amount():
    expense = make_expense(markup_percentage=Decimal("10"), markup_amount=Decimal("50"))
    assert expense.markup_amount == Decimal("10.00")
    assert expense.selling_price == Decimal("110.00")


def test_expense_base_currency_conversion_and_commission():
    expense = make_expense(
        currency="EUR",
        exchange_rate=Decimal("1.1"),
        commission_applicable=True,
        commission_rate=Decimal("5"),
    )
    assert expense.amount_in_base_currency == Decimal("110.00")
    assert expense.commission_amount == Decimal("5.00")


def test_expense_cleared_markup_and_commission_drop_derived_amounts():
    expense = make_expense(
        markup_percentage=Decimal("10"),
        commission_applicable=True,
        commission_rate=Decimal("5"),
    )
    assert expense.selling_price == Decimal("110.00")
    assert expense.commission_amount == Decimal("5.00")

    expense.markup_percentage = None
    expense.markup_amount = None
    expense.commission_applicable = False
    expense.recalculate()

    assert expense.selling_price is None
    assert expense.commission_amount is None


def test_expense_lock_requires_approved_and_paid():
    expense = make_expense(approval_status=ApprovalStatus.PENDING_APPROVAL)
    expense.mark_as_paid(Decimal("100"))
    assert not expense.is_locked()

    expense.approve(uuid.uuid4())
    assert expense.is_locked()
    with pytest.raises(InvalidStateError):
        expense.ensure_editable()
    assert not expense.can_delete()


def test_expense_approval_is_single_shot():
    expense = make_expense(approval_status=ApprovalStatus.PENDING_APPROVAL)
    expense.approve(uuid.uuid4(), notes="Within budget")
    assert expense.notes == "Within budget"
    with pytest.raises(InvalidStateError):
        expense.reject(uuid.uuid4(), "Too late")


def test_expense_reject_requires_reason():
    expense = make_expense(approval_status=ApprovalStatus.PENDING_APPROVAL)
    with pytest.raises(ValidationError):
        expense.reject(uuid.uuid4(), "  ")

    expense.reject(uuid.uuid4(), "Duplicate invoice")
    assert expense.approval_status == ApprovalStatus.REJECTED
    with pytest.raises(InvalidStateError):
        expense.mark_as_paid(Decimal("10"))


# Assignment

def make_assignment(**overrides) -> QueryAssignment:
    return QueryAssignment(
        tenant_id=uuid.uuid4(),
        entity_type=AssignmentEntityType.EMAIL,
        entity_id="msg-42",
        assigned_to=uuid.uuid4(),
        assigned_by=uuid.uuid4(),
        **overrides,
    )


def test_reassign_appends_history():
    assignment = make_assignment()
    first_user = assignment.assigned_to
    second_user, third_user, by = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    assignment.reassign(second_user, by, "Holiday cover")
    assignment.reassign(third_user, by)

    assert assignment.status == AssignmentStatus.REASSIGNED
    assert assignment.assigned_to == third_user
    assert [entry["to_user"] for entry in assignment.reassignment_history] == [str(second_user), str(third_user)]
    assert assignment.reassignment_history[0]["from_user"] == str(first_user)
    assert assignment.reassignment_history[0]["reason"] == "Holiday cover"
    assert assignment.reassignment_history[-1]["to_user"] == str(assignment.assigned_to)


def test_reassign_to_current_assignee_rejected():
    assignment = make_assignment()
    with pytest.raises(ValidationError):
        assignment.reassign(assignment.assigned_to, uuid.uuid4())


def test_status_machine():
    assignment = make_assignment()
    user = assignment.assigned_to
    assignment.transition_to(AssignmentStatus.IN_PROGRESS, user)
    assert assignment.started_at is not None

    assignment.transition_to(AssignmentStatus.COMPLETED, user, notes="Replied")
    assert assignment.completed_by == user
    assert assignment.completion_notes == "Replied"

    with pytest.raises(InvalidStateError):
        assignment.complete(user)
    with pytest.raises(InvalidStateError):
        assignment.reassign(uuid.uuid4(), user)


def test_reassigned_is_not_a_status_target():
    assignment = make_assignment()
    with pytest.raises(ValidationError):
        assignment.transition_to(AssignmentStatus.REASSIGNED, assignment.assigned_to)


def test_sla_breached():
    overdue = make_assignment(due_date=datetime.utcnow() - timedelta(hours=1))
    assert overdue.sla_breached()

    overdue.transition_to(AssignmentStatus.CANCELLED, overdue.assigned_to)
    assert not overdue.sla_breached()
    assert not make_assignment().sla_breached()
