"""
Agent API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog
import uuid

from travel_crm.core.authorization import Caller
from travel_crm.core.dependencies import get_agent_service, require_permission
from travel_crm.core.permissions import Permission
from travel_crm.models.agent import AgentStatus
from travel_crm.schemas.common import PageParams, page_params, paginated, success
from travel_crm.schemas.directory import AgentCreate, AgentRead
from travel_crm.services.directory_service import AgentService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/")
async def list_agents(
    status: Optional[AgentStatus] = None,
    params: PageParams = Depends(page_params),
    caller: Caller = Depends(require_permission(Permission.AGENT_VIEW)),
    service: AgentService = Depends(get_agent_service),
):
    agents, total = await service.list(params, status=status)
    return paginated([AgentRead.model_validate(a) for a in agents], params, total)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_agent(
    data: AgentCreate,
    request: Request,
    caller: Caller = Depends(require_permission(Permission.AGENT_MANAGE)),
    service: AgentService = Depends(get_agent_service),
):
    """Create an active agent together with its login"""
    agent = await service.create(caller, request.state.tenant, data)
    request.state.audit_resource_id = agent.id
    return success(AgentRead.model_validate(agent), "Agent created successfully")


@router.patch("/{agent_id}/approve")
async def approve_agent(
    agent_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.AGENT_MANAGE)),
    service: AgentService = Depends(get_agent_service),
):
    agent = await service.approve(caller, agent_id)
    return success(AgentRead.model_validate(agent), "Agent approved")


@router.patch("/{agent_id}/suspend")
async def suspend_agent(
    agent_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.AGENT_MANAGE)),
    service: AgentService = Depends(get_agent_service),
):
    """Suspended agents keep their data but fail profile loading"""
    agent = await service.suspend(agent_id)
    return success(AgentRead.model_validate(agent), "Agent suspended")


@router.delete("/{agent_id}")
async def delete_agent(
    agent_id: uuid.UUID,
    caller: Caller = Depends(require_permission(Permission.AGENT_MANAGE)),
    service: AgentService = Depends(get_agent_service),
):
    """Deactivate an agent; the record is kept"""
    agent = await service.delete(agent_id)
    return success(AgentRead.model_validate(agent), "Agent deactivated")
