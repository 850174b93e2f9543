"""
Query assignment API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_assignment_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.assignment import AssignmentEntityType, AssignmentStatus
from travel_crm.schemas.assignment import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentReassign,
    AssignmentStatusUpdate,
    AssignmentUpdate,
)
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.services.assignment_service import AssignmentService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    data: AssignmentCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_MANAGE)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignment = await service.create(caller, data)
    request.state.audit_resource_id = assignment.id
    return success(AssignmentRead.from_assignment(assignment), "Assignment created successfully")


@router.get("/my")
async def my_assignments(
    status: Optional[AssignmentStatus] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_VIEW)),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Assignments currently held by the caller"""
    assignments, total = await service.my_assignments(caller, params, status=status)
    return paginated([AssignmentRead.from_assignment(a) for a in assignments], params, total)


@router.get("/overdue")
async def overdue_assignments(
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_VIEW)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignments, total = await service.overdue(caller, params)
    return paginated([AssignmentRead.from_assignment(a) for a in assignments], params, total)


@router.get("/entity/{entity_type}/{entity_id}")
async def entity_assignments(
    entity_type: AssignmentEntityType,
    entity_id: str,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_VIEW)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignments = await service.for_entity(caller, entity_type, entity_id)
    return success([AssignmentRead.from_assignment(a) for a in assignments])


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_VIEW)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignment = await service.get_for_caller(caller, assignment_id)
    return success(AssignmentRead.from_assignment(assignment))


@router.patch("/{assignment_id}")
async def update_assignment(
    assignment_id: uuid.UUID,
    data: AssignmentUpdate,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_VIEW)),
    service: AssignmentService = Depends(get_assignment_service),
):
    """Edit priority, due date or notes (assigner or administrator)"""
    assignment = await service.update(caller, assignment_id, data)
    return success(AssignmentRead.from_assignment(assignment), "Assignment updated successfully")


@router.patch("/{assignment_id}/reassign")
async def reassign_assignment(
    assignment_id: uuid.UUID,
    data: AssignmentReassign,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_UPDATE_STATUS)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignment = await service.reassign(caller, assignment_id, data)
    return success(AssignmentRead.from_assignment(assignment), "Assignment reassigned successfully")


@router.patch("/{assignment_id}/status")
async def update_assignment_status(
    assignment_id: uuid.UUID,
    data: AssignmentStatusUpdate,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_UPDATE_STATUS)),
    service: AssignmentService = Depends(get_assignment_service),
):
    assignment = await service.change_status(caller, assignment_id, data)
    return success(AssignmentRead.from_assignment(assignment), "Assignment status updated")


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.ASSIGNMENT_MANAGE)),
    service: AssignmentService = Depends(get_assignment_service),
):
    await service.delete(caller, assignment_id)
    return success(message="Assignment deleted successfully")
