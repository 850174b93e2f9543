"""
Audit log schemas
"""

from sqlmodel import SQLModel
from datetime import datetime
from typing import Any, Dict, Optional
import uuid


class AuditLogRead(SQLModel):
    id: uuid.UUID
    tenant_id: Optional[uuid.UUID] = None
    user_id: Optional[uuid.UUID] = None
    role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Dict[str, Any]
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime
    expires_at: datetime

    class Config:
        from_attributes = True
