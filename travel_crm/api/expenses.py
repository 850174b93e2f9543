"""
Expense API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_expense_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.expense import (
    ApprovalStatus,
    ExpenseCategory,
    ExpenseEntityType,
    ExpensePaymentStatus,
)
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.schemas.expense import (
    ApproveRequest,
    EntityExpenses,
    ExpenseCreate,
    ExpenseRead,
    ExpenseSummary,
    ExpenseUpdate,
    MarkPaidRequest,
    RejectRequest,
)
from travel_crm.services.expense_service import ExpenseService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_expenses(
    entity_type: Optional[ExpenseEntityType] = None,
    category: Optional[ExpenseCategory] = None,
    payment_status: Optional[ExpensePaymentStatus] = None,
    approval_status: Optional[ApprovalStatus] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.EXPENSE_VIEW)),
    service: ExpenseService = Depends(get_expense_service),
):
    expenses, total = await service.list(
        caller,
        params,
        entity_type=entity_type,
        category=category,
        payment_status=payment_status,
        approval_status=approval_status,
    )
    return paginated([ExpenseRead.model_validate(e) for e in expenses], params, total)


@router.get("/summary")
async def expense_summary(
    caller: Caller = Depends(require_permission(Permission.EXPENSE_VIEW)),
    service: ExpenseService = Depends(get_expense_service),
):
    """Totals and breakdowns across every expense the caller can see"""
    return success(ExpenseSummary.model_validate(await service.summary(caller)))


@router.get("/entity/{entity_type}/{entity_id}")
async def entity_expenses(
    entity_type: ExpenseEntityType,
    entity_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_VIEW)),
    service: ExpenseService = Depends(get_expense_service),
):
    result = await service.for_entity(caller, entity_type, entity_id)
    return success(EntityExpenses(
        expenses=[ExpenseRead.model_validate(e) for e in result["expenses"]],
        totals=result["totals"],
        by_category=result["by_category"],
    ))


@router.get("/{expense_id}")
async def get_expense(
    expense_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_VIEW)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.get_for_caller(caller, expense_id)
    return success(ExpenseRead.model_validate(expense))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_expense(
    data: ExpenseCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_RECORD)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.create(caller, data)
    request.state.audit_resource_id = expense.id
    return success(ExpenseRead.model_validate(expense), "Expense recorded successfully")


@router.patch("/{expense_id}")
async def update_expense(
    expense_id: uuid.UUID,
    data: ExpenseUpdate,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_RECORD)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.update(caller, expense_id, data)
    return success(ExpenseRead.model_validate(expense), "Expense updated successfully")


@router.post("/{expense_id}/mark-paid")
async def mark_expense_paid(
    expense_id: uuid.UUID,
    data: MarkPaidRequest,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_PAY)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.mark_paid(caller, expense_id, data)
    return success(ExpenseRead.model_validate(expense), "Payment recorded")


@router.post("/{expense_id}/approve")
async def approve_expense(
    expense_id: uuid.UUID,
    data: Optional[ApproveRequest] = None,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_APPROVE)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.approve(caller, expense_id, data.notes if data else None)
    return success(ExpenseRead.model_validate(expense), "Expense approved")


@router.post("/{expense_id}/reject")
async def reject_expense(
    expense_id: uuid.UUID,
    data: RejectRequest,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_APPROVE)),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.reject(caller, expense_id, data.reason)
    return success(ExpenseRead.model_validate(expense), "Expense rejected")


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.EXPENSE_DELETE)),
    service: ExpenseService = Depends(get_expense_service),
):
    await service.delete(caller, expense_id)
    return success(message="Expense deleted successfully")
