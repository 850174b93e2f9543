"""
Assignment tracking for emails, quotes and bookings
"""

from datetime import datetime
from typing import List, Optional, Tuple
import uuid
import structlog

from sqlmodel import or_

from travel_crm.core.authorization import Caller
from travel_crm.core.errors import ForbiddenError, InvalidStateError, ValidationError
from travel_crm.core.events import AssignmentReassigned, EventBus, event_bus
from travel_crm.models.assignment import (
    AssignmentEntityType,
    AssignmentStatus,
    QueryAssignment,
)
from travel_crm.models.user import User
from travel_crm.schemas.assignment import (
    AssignmentCreate,
    AssignmentReassign,
    AssignmentStatusUpdate,
    AssignmentUpdate,
)
from travel_crm.schemas.common import PageParams
from travel_crm.services.repositories import Repositories

logger = structlog.get_logger(__name__)


class AssignmentService:
    def __init__(self, repos: Repositories, events: EventBus = event_bus):
        self.repos = repos
        self.session = repos.session
        self.events = events

    async def _ensure_entity(self, entity_type: AssignmentEntityType, entity_id: str) -> None:
        # Email ids reference the external mail pipeline and are not checked
        if entity_type == AssignmentEntityType.QUOTE:
            await self.repos.quotes.get_or_404(entity_id)
        elif entity_type == AssignmentEntityType.BOOKING:
            await self.repos.bookings.get_or_404(entity_id)

    async def _active_user(self, user_id: uuid.UUID) -> User:
        user = await self.repos.users.get(user_id)
        if user is None or not user.is_active:
            raise ValidationError("Assignee must be an active user of this tenant")
        return user

    def _participant_criteria(self, caller: Caller) -> list:
        if caller.is_admin:
            return []
        return [or_(QueryAssignment.assigned_to == caller.id, QueryAssignment.assigned_by == caller.id)]

    async def get_for_caller(self, caller: Caller, assignment_id: uuid.UUID) -> QueryAssignment:
        assignment = await self.repos.assignments.get_or_404(assignment_id)
        if not caller.is_admin and caller.id not in (assignment.assigned_to, assignment.assigned_by):
            logger.warning(
                "Assignment access denied",
                user_id=str(caller.id),
                assignment_id=str(assignment.id),
            )
            raise ForbiddenError("Access denied. This assignment belongs to another user.")
        return assignment

    def _ensure_assignee_or_admin(self, caller: Caller, assignment: QueryAssignment) -> None:
        if not caller.is_admin and assignment.assigned_to != caller.id:
            raise ForbiddenError("Only the assignee or an administrator can change this assignment")

    async def create(self, caller: Caller, data: AssignmentCreate) -> QueryAssignment:
        await self._ensure_entity(data.entity_type, data.entity_id)
        await self._active_user(data.assigned_to)

        assignment = QueryAssignment(
            tenant_id=self.repos.tenant_id,
            entity_type=data.entity_type,
            entity_id=str(data.entity_id),
            assigned_to=data.assigned_to,
            assigned_by=caller.id,
            priority=data.priority,
            due_date=data.due_date,
            notes=data.notes,
        )
        self.repos.assignments.add(assignment)
        await self.session.commit()
        logger.info(
            "Assignment created",
            assignment_id=str(assignment.id),
            entity_type=assignment.entity_type.value,
            entity_id=assignment.entity_id,
            assigned_to=str(assignment.assigned_to),
        )
        return assignment

    async def my_assignments(
        self,
        caller: Caller,
        params: PageParams,
        status: Optional[AssignmentStatus] = None,
    ) -> Tuple[List[QueryAssignment], int]:
        criteria = [QueryAssignment.assigned_to == caller.id]
        if status:
            criteria.append(QueryAssignment.status == status)
        return await self.repos.assignments.page(*criteria, offset=params.offset, limit=params.limit)

    async def overdue(self, caller: Caller, params: PageParams) -> Tuple[List[QueryAssignment], int]:
        criteria = [*self.repos.assignments.overdue_criteria(), *self._participant_criteria(caller)]
        return await self.repos.assignments.page(
            *criteria,
            offset=params.offset,
            limit=params.limit,
            order_by=QueryAssignment.due_date,
        )

    async def for_entity(
        self,
        caller: Caller,
        entity_type: AssignmentEntityType,
        entity_id: str,
    ) -> List[QueryAssignment]:
        assignments = await self.repos.assignments.for_entity(entity_type, entity_id)
        if caller.is_admin:
            return assignments
        return [a for a in assignments if caller.id in (a.assigned_to, a.assigned_by)]

    async def update(self, caller: Caller, assignment_id: uuid.UUID, data: AssignmentUpdate) -> QueryAssignment:
        assignment = await self.get_for_caller(caller, assignment_id)
        if not caller.is_admin and assignment.assigned_by != caller.id:
            raise ForbiddenError("Only the assigner or an administrator can edit this assignment")
        if assignment.is_terminal():
            raise InvalidStateError(f"Cannot edit a {assignment.status.value} assignment")

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(assignment, key, value)
        assignment.updated_at = datetime.utcnow()

        self.repos.assignments.add(assignment)
        await self.session.commit()
        return assignment

    async def reassign(
        self,
        caller: Caller,
        assignment_id: uuid.UUID,
        data: AssignmentReassign,
    ) -> QueryAssignment:
        assignment = await self.get_for_caller(caller, assignment_id)
        self._ensure_assignee_or_admin(caller, assignment)
        await self._active_user(data.to_user)

        from_user = assignment.assigned_to
        assignment.reassign(data.to_user, caller.id, data.reason)
        self.repos.assignments.add(assignment)
        await self.session.commit()

        logger.info(
            "Assignment reassigned",
            assignment_id=str(assignment.id),
            from_user=str(from_user),
            to_user=str(data.to_user),
            history_length=len(assignment.reassignment_history),
        )
        await self.events.publish(
            AssignmentReassigned(assignment.id, assignment.tenant_id, from_user, data.to_user)
        )
        return assignment

    async def change_status(
        self,
        caller: Caller,
        assignment_id: uuid.UUID,
        data: AssignmentStatusUpdate,
    ) -> QueryAssignment:
        assignment = await self.get_for_caller(caller, assignment_id)
        self._ensure_assignee_or_admin(caller, assignment)

        old_status = assignment.status
        assignment.transition_to(data.status, caller.id, data.notes)
        self.repos.assignments.add(assignment)
        await self.session.commit()

        logger.info(
            "Assignment status changed",
            assignment_id=str(assignment.id),
            old_status=old_status.value,
            new_status=assignment.status.value,
        )
        return assignment

    async def delete(self, caller: Caller, assignment_id: uuid.UUID) -> None:
        if not caller.is_admin:
            raise ForbiddenError("Only administrators can delete assignments")
        assignment = await self.repos.assignments.get_or_404(assignment_id)
        await self.repos.assignments.delete(assignment)
        await self.session.commit()
        logger.info("Assignment deleted", assignment_id=str(assignment.id))
