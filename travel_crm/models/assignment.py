"""
Work assignments for emails, quotes and bookings, with SLA tracking
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from travel_crm.core.errors import InvalidStateError, ValidationError


class AssignmentEntityType(str, Enum):
    EMAIL = "email"
    QUOTE = "quote"
    BOOKING = "booking"


class AssignmentStatus(str, Enum):
    """Status of an assignment"""
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REASSIGNED = "reassigned"
    CANCELLED = "cancelled"


class AssignmentPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


TERMINAL_STATUSES = frozenset({AssignmentStatus.COMPLETED, AssignmentStatus.CANCELLED})

ALLOWED_TRANSITIONS: Dict[AssignmentStatus, frozenset] = {
    AssignmentStatus.ASSIGNED: frozenset({
        AssignmentStatus.IN_PROGRESS,
        AssignmentStatus.COMPLETED,
        AssignmentStatus.CANCELLED,
    }),
    AssignmentStatus.IN_PROGRESS: frozenset({
        AssignmentStatus.COMPLETED,
        AssignmentStatus.CANCELLED,
        AssignmentStatus.ASSIGNED,
    }),
    AssignmentStatus.REASSIGNED: frozenset({
        AssignmentStatus.ASSIGNED,
        AssignmentStatus.IN_PROGRESS,
        AssignmentStatus.COMPLETED,
        AssignmentStatus.CANCELLED,
    }),
    AssignmentStatus.COMPLETED: frozenset(),
    AssignmentStatus.CANCELLED: frozenset(),
}


class QueryAssignment(SQLModel, table=True):
    """Assignment of an entity to a tenant user"""

    __tablename__ = "query_assignments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)

    entity_type: AssignmentEntityType = Field(index=True)
    entity_id: str = Field(index=True, max_length=64, description="Quote/booking id or external email reference")

    assigned_to: uuid.UUID = Field(foreign_key="users.id", index=True)
    assigned_by: uuid.UUID = Field(foreign_key="users.id")
    assigned_at: datetime = Field(default_factory=datetime.utcnow)

    status: AssignmentStatus = Field(default=AssignmentStatus.ASSIGNED, index=True)
    priority: AssignmentPriority = Field(default=AssignmentPriority.MEDIUM)
    due_date: Optional[datetime] = Field(default=None, index=True)
    notes: Optional[str] = Field(default=None, max_length=5000)

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    completion_notes: Optional[str] = Field(default=None, max_length=5000)

    # Append-only; a new list is assigned on every change so the JSON column is flushed
    reassignment_history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def sla_breached(self, now: Optional[datetime] = None) -> bool:
        if self.due_date is None or self.is_terminal():
            return False
        return (now or datetime.utcnow()) > self.due_date

    def can_transition_to(self, new_status: AssignmentStatus) -> bool:
        return AssignmentStatus(new_status) in ALLOWED_TRANSITIONS[self.status]

    def reassign(
        self,
        to_user: uuid.UUID,
        by_user: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self.is_terminal():
            raise InvalidStateError(
                f"Cannot reassign a {self.status.value} assignment"
            )
        if to_user == self.assigned_to:
            raise ValidationError("Assignment is already assigned to this user")

        now = datetime.utcnow()
        entry = {
            "from_user": str(self.assigned_to),
            "to_user": str(to_user),
            "reason": reason,
            "reassigned_at": now.isoformat(),
            "reassigned_by": str(by_user),
        }
        self.reassignment_history = [*(self.reassignment_history or []), entry]
        self.assigned_to = to_user
        self.status = AssignmentStatus.REASSIGNED
        self.updated_at = now
        return entry

    def transition_to(self, new_status: AssignmentStatus, by_user: uuid.UUID, notes: Optional[str] = None) -> None:
        new_status = AssignmentStatus(new_status)
        if new_status == AssignmentStatus.REASSIGNED:
            raise ValidationError("Use reassign to hand the assignment to another user")
        if not self.can_transition_to(new_status):
            raise InvalidStateError(
                f"Cannot change assignment status from {self.status.value} to {new_status.value}"
            )

        if new_status == AssignmentStatus.COMPLETED:
            self.complete(by_user, notes)
            return

        now = datetime.utcnow()
        if new_status == AssignmentStatus.IN_PROGRESS and self.started_at is None:
            self.started_at = now
        if notes:
            self.notes = f"{self.notes}\n{notes}" if self.notes else notes
        self.status = new_status
        self.updated_at = now

    def complete(self, by_user: uuid.UUID, notes: Optional[str] = None) -> None:
        """Completion is one-shot; a completed assignment keeps its original stamps"""
        if not self.can_transition_to(AssignmentStatus.COMPLETED):
            raise InvalidStateError(
                f"Cannot complete a {self.status.value} assignment"
            )

        self.status = AssignmentStatus.COMPLETED
        self.completed_at = datetime.utcnow()
        self.completed_by = by_user
        self.completion_notes = notes
        self.updated_at = self.completed_at
