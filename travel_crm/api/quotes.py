"""
Quote API endpoints

Reading a quote is not side-effect free: it expires quotes past their
validity and marks sent quotes as viewed.
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_quote_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.quote import QuoteStatus
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.schemas.quote import QuoteCreate, QuoteRead, QuoteReject, QuoteStats, QuoteUpdate
from travel_crm.services.quote_service import QuoteService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_quotes(
    status: Optional[QuoteStatus] = None,
    agent_id: Optional[uuid.UUID] = None,
    customer_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.QUOTE_VIEW)),
    service: QuoteService = Depends(get_quote_service),
):
    quotes, total = await service.list(
        caller, params, status=status, agent_id=agent_id, customer_id=customer_id
    )
    return paginated([QuoteRead.from_quote(q) for q in quotes], params, total)


@router.get("/stats")
async def quote_stats(
    caller: Caller = Depends(require_permission(Permission.QUOTE_VIEW)),
    service: QuoteService = Depends(get_quote_service),
):
    """Counts per status and conversion rate"""
    return success(QuoteStats(**await service.stats(caller)))


@router.get("/{quote_id}")
async def get_quote(
    quote_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.QUOTE_VIEW)),
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.read(caller, quote_id)
    return success(QuoteRead.from_quote(quote))


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_quote(
    data: QuoteCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.QUOTE_CREATE)),
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.create(caller, request.state.tenant, data)
    request.state.audit_resource_id = quote.id
    return success(QuoteRead.from_quote(quote), "Quote created successfully")


@router.put("/{quote_id}")
async def update_quote(
    quote_id: uuid.UUID,
    data: QuoteUpdate,
    caller: Caller = Depends(require_permission(Permission.QUOTE_EDIT)),
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.update(caller, quote_id, data)
    return success(QuoteRead.from_quote(quote), "Quote updated successfully")


@router.post("/{quote_id}/send")
async def send_quote(
    quote_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.QUOTE_SEND)),
    service: QuoteService = Depends(get_quote_service),
):
    """Email the quote to the customer and mark it sent"""
    quote = await service.send(caller, quote_id)
    return success(QuoteRead.from_quote(quote), "Quote sent successfully")


@router.patch("/{quote_id}/accept")
async def accept_quote(
    quote_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.QUOTE_RESPOND)),
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.accept(caller, quote_id)
    return success(QuoteRead.from_quote(quote), "Quote accepted successfully")


@router.patch("/{quote_id}/reject")
async def reject_quote(
    quote_id: uuid.UUID,
    data: Optional[QuoteReject] = None,
    caller: Caller = Depends(require_permission(Permission.QUOTE_RESPOND)),
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.reject(caller, quote_id, data.reason if data else None)
    return success(QuoteRead.from_quote(quote), "Quote rejected")


@router.delete("/{quote_id}")
async def delete_quote(
    quote_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.QUOTE_DELETE)),
    service: QuoteService = Depends(get_quote_service),
):
    await service.delete(caller, quote_id)
    return success(message="Quote deleted successfully")
