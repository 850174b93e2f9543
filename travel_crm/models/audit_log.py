"""
Audit log entries recorded for successful mutating requests
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import uuid


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: Optional[uuid.UUID] = Field(default=None, index=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    role: Optional[str] = Field(default=None, max_length=32)

    action: str = Field(index=True, max_length=32)
    resource_type: str = Field(index=True, max_length=64)
    resource_id: Optional[str] = Field(default=None, max_length=64)
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    ip: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=500)

    timestamp: datetime = Field(default_factory=datetime.utcnow, index=True)
    expires_at: datetime = Field(index=True, description="Rows past this instant are purged")

    @staticmethod
    def expiry_for(timestamp: datetime, retention_days: int) -> datetime:
        return timestamp + timedelta(days=retention_days)
