"""
Customer API endpoints
"""

from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_customer_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.schemas.directory import CustomerCreate, CustomerRead, CustomerUpdate
from travel_crm.services.directory_service import CustomerService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_customers(
    search: Optional[str] = Query(None, max_length=100),
    include_inactive: bool = False,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.CUSTOMER_VIEW)),
    service: CustomerService = Depends(get_customer_service),
):
    """List customers; agents only see their own"""
    customers, total = await service.list(caller, params, search=search, include_inactive=include_inactive)
    return paginated([CustomerRead.model_validate(c) for c in customers], params, total)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.CUSTOMER_MANAGE)),
    service: CustomerService = Depends(get_customer_service),
):
    customer = await service.create(caller, request.state.tenant, data)
    request.state.audit_resource_id = customer.id
    return success(CustomerRead.model_validate(customer), "Customer created successfully")


@router.get("/{customer_id}")
async def get_customer(
    customer_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.CUSTOMER_VIEW)),
    service: CustomerService = Depends(get_customer_service),
):
    customer = await service.get_for_caller(caller, customer_id)
    return success(CustomerRead.model_validate(customer))


@router.put("/{customer_id}")
async def update_customer(
    customer_id: uuid.UUID,
    data: CustomerUpdate,
    caller: Caller = Depends(require_permission(Permission.CUSTOMER_MANAGE)),
    service: CustomerService = Depends(get_customer_service),
):
    customer = await service.update(caller, customer_id, data)
    return success(CustomerRead.model_validate(customer), "Customer updated successfully")


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.CUSTOMER_MANAGE)),
    service: CustomerService = Depends(get_customer_service),
):
    await service.delete(caller, customer_id)
    return success(message="Customer deleted successfully")
