"""
Tenant API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_tenant_service, require_permission, require_roles
from travel_crm.core.permissions import Permission
from travel_crm.models.tenant import TenantStatus
from travel_crm.models.user import UserRole
from travel_crm.schemas.auth import UserRead
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.schemas.tenant import TenantRead, TenantSignup, TenantSuspend, TenantUsage
from travel_crm.services.tenant_service import TenantService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    data: TenantSignup,
    request: Request,
    service: TenantService = Depends(get_tenant_service),
):
    """Create a new agency on a trial subscription"""
    tenant, operator = await service.signup(data)
    request.state.tenant = tenant
    request.state.audit_resource_id = tenant.id
    return success(
        {"tenant": TenantRead.model_validate(tenant), "user": UserRead.model_validate(operator)},
        "Tenant created successfully",
    )


@router.get("/")
async def list_tenants(
    status: Optional[TenantStatus] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_roles(UserRole.SUPER_ADMIN)),
    service: TenantService = Depends(get_tenant_service),
):
    """List all tenants (super admin only)"""
    tenants, total = await service.list(status, offset=params.offset, limit=params.limit)
    return paginated([TenantRead.model_validate(t) for t in tenants], params, total)


@router.get("/current")
async def current_tenant(
    request: Request,
    caller: Caller = Depends(require_permission(Permission.TENANT_VIEW)),
):
    """Resolved tenant with plan usage"""
    tenant = request.state.tenant
    return success(TenantUsage(tenant=TenantRead.model_validate(tenant), usage=tenant.usage_report()))


@router.patch("/{tenant_id}/suspend")
async def suspend_tenant(
    tenant_id: uuid.UUID,
    data: TenantSuspend,
    caller: Caller = Depends(require_roles(UserRole.SUPER_ADMIN)),
    service: TenantService = Depends(get_tenant_service),
):
    tenant = await service.suspend(tenant_id, data.reason)
    return success(TenantRead.model_validate(tenant), "Tenant suspended")


@router.patch("/{tenant_id}/reactivate")
async def reactivate_tenant(
    tenant_id: uuid.UUID,
    caller: Caller = Depends(require_roles(UserRole.SUPER_ADMIN)),
    service: TenantService = Depends(get_tenant_service),
):
    tenant = await service.reactivate(tenant_id)
    return success(TenantRead.model_validate(tenant), "Tenant reactivated")
