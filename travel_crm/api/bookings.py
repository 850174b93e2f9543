"""
Booking API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_booking_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.booking import BookingPaymentStatus, BookingStatus
from travel_crm.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingRead,
    BookingUpdate,
    PaymentCreate,
    PaymentRecordRead,
)
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.services.booking_service import BookingService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_bookings(
    status: Optional[BookingStatus] = None,
    payment_status: Optional[BookingPaymentStatus] = None,
    agent_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.BOOKING_VIEW)),
    service: BookingService = Depends(get_booking_service),
):
    bookings, total = await service.list(
        caller, params, status=status, payment_status=payment_status, agent_id=agent_id
    )
    return paginated([BookingRead.model_validate(b) for b in bookings], params, total)


@router.get("/{booking_id}")
async def get_booking(
    booking_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.BOOKING_VIEW)),
    service: BookingService = Depends(get_booking_service),
):
    """Booking with its payment history"""
    booking = await service.get_for_caller(caller, booking_id)
    payments = await service.payments(booking)
    return success({
        "booking": BookingRead.model_validate(booking),
        "payments": [PaymentRecordRead.model_validate(p) for p in payments],
    })


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.BOOKING_CREATE)),
    service: BookingService = Depends(get_booking_service),
):
    """Create a booking from an accepted quote"""
    booking = await service.create(caller, request.state.tenant, data)
    request.state.audit_resource_id = booking.id
    return success(BookingRead.model_validate(booking), "Booking created successfully")


@router.put("/{booking_id}")
async def update_booking(
    booking_id: uuid.UUID,
    data: BookingUpdate,
    caller: Caller = Depends(require_permission(Permission.BOOKING_EDIT)),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.update(caller, booking_id, data)
    return success(BookingRead.model_validate(booking), "Booking updated successfully")


@router.post("/{booking_id}/payments", status_code=status.HTTP_201_CREATED)
async def add_payment(
    booking_id: uuid.UUID,
    data: PaymentCreate,
    caller: Caller = Depends(require_permission(Permission.BOOKING_RECORD_PAYMENT)),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.add_payment(caller, booking_id, data)
    return success(BookingRead.model_validate(booking), "Payment recorded successfully")


@router.patch("/{booking_id}/confirm")
async def confirm_booking(
    booking_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.BOOKING_MANAGE_STATUS)),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.confirm(caller, booking_id)
    return success(BookingRead.model_validate(booking), "Booking confirmed")


@router.patch("/{booking_id}/complete")
async def complete_booking(
    booking_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.BOOKING_MANAGE_STATUS)),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.complete(caller, booking_id)
    return success(BookingRead.model_validate(booking), "Booking completed")


@router.patch("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: uuid.UUID,
    data: Optional[BookingCancel] = None,
    caller: Caller = Depends(require_permission(Permission.BOOKING_MANAGE_STATUS)),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.cancel(caller, booking_id, data or BookingCancel())
    return success(BookingRead.model_validate(booking), "Booking cancelled")
