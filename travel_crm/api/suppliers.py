"""
Supplier API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_supplier_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.schemas.common import success
from travel_crm.schemas.directory import SupplierCreate, SupplierRead
from travel_crm.services.directory_service import SupplierService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_supplier(
    data: SupplierCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.SUPPLIER_MANAGE)),
    service: SupplierService = Depends(get_supplier_service),
):
    supplier = await service.create(data)
    request.state.audit_resource_id = supplier.id
    return success(SupplierRead.model_validate(supplier), "Supplier created successfully")


@router.delete("/{supplier_id}")
async def delete_supplier(
    supplier_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.SUPPLIER_MANAGE)),
    service: SupplierService = Depends(get_supplier_service),
):
    supplier = await service.delete(supplier_id)
    return success(SupplierRead.model_validate(supplier), "Supplier deactivated")
