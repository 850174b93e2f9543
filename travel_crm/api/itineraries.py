"""
Itinerary API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_itinerary_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.schemas.common import success
from travel_crm.schemas.directory import ItineraryCreate, ItineraryRead
from travel_crm.services.directory_service import ItineraryService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_itinerary(
    data: ItineraryCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.ITINERARY_MANAGE)),
    service: ItineraryService = Depends(get_itinerary_service),
):
    itinerary = await service.create(caller, data)
    request.state.audit_resource_id = itinerary.id
    return success(ItineraryRead.model_validate(itinerary), "Itinerary created successfully")


@router.get("/{itinerary_id}")
async def get_itinerary(
    itinerary_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.ITINERARY_VIEW)),
    service: ItineraryService = Depends(get_itinerary_service),
):
    itinerary = await service.get(caller, itinerary_id)
    return success(ItineraryRead.model_validate(itinerary))
