"""
Assignment schemas
"""

from sqlmodel import SQLModel
from pydantic import Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from travel_crm.models.assignment import (
    AssignmentEntityType,
    AssignmentPriority,
    AssignmentStatus,
    QueryAssignment,
)
from travel_crm.schemas.common import naive_utc


class AssignmentCreate(SQLModel):
    entity_type: AssignmentEntityType
    entity_id: str = Field(min_length=1, max_length=64)
    assigned_to: uuid.UUID
    priority: AssignmentPriority = AssignmentPriority.MEDIUM
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class AssignmentUpdate(SQLModel):
    priority: Optional[AssignmentPriority] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("due_date")
    @classmethod
    def due_date_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)


class AssignmentReassign(SQLModel):
    to_user: uuid.UUID
    reason: Optional[str] = Field(default=None, max_length=1000)


class AssignmentStatusUpdate(SQLModel):
    status: AssignmentStatus
    notes: Optional[str] = None


class AssignmentRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    entity_type: AssignmentEntityType
    entity_id: str
    assigned_to: uuid.UUID
    assigned_by: uuid.UUID
    assigned_at: datetime
    status: AssignmentStatus
    priority: AssignmentPriority
    due_date: Optional[datetime] = None
    sla_breached: bool = False
    notes: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[uuid.UUID] = None
    completion_notes: Optional[str] = None
    reassignment_history: List[Dict[str, Any]] = []
    created_at: datetime

    @classmethod
    def from_assignment(cls, assignment: QueryAssignment) -> "AssignmentRead":
        data = assignment.model_dump()
        data["reassignment_history"] = list(assignment.reassignment_history or [])
        data["sla_breached"] = assignment.sla_breached()
        return cls.model_validate(data)
