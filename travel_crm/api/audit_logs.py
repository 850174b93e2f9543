"""
Audit log API endpoints
"""

from fastapi import APIRouter, Depends
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_repositories, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.audit_log import AuditLog
from travel_crm.schemas.audit import AuditLogRead
from travel_crm.schemas.common import PageParams, page_params, paginated
from travel_crm.services.repositories import Repositories

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_audit_logs(
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    user_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.AUDIT_VIEW)),
    repos: Repositories = Depends(get_repositories),
):
    """Tenant audit trail, newest first"""
    criteria = []
    if action:
        criteria.append(AuditLog.action == action)
    if resource_type:
        criteria.append(AuditLog.resource_type == resource_type)
    if user_id:
        criteria.append(AuditLog.user_id == user_id)
    logs, total = await repos.audit_logs.page(*criteria, offset=params.offset, limit=params.limit)
    return paginated([AuditLogRead.model_validate(log) for log in logs], params, total)
