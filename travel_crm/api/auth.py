"""
Authentication API endpoints
"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional
import structlog

from travel_crm.core.config import get_settings
from travel_crm.core.dependencies import (
    get_auth_service,
    get_authenticator,
    get_bearer_token,
    get_current_user,
)
from travel_crm.core.session import SessionAuthenticator
from travel_crm.core.tenant_middleware import resolve_tenant
from travel_crm.models.tenant import Tenant
from travel_crm.schemas.auth import (
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    RegisterAgentRequest,
    TokenResponse,
    UserRead,
)
from travel_crm.schemas.common import success
from travel_crm.schemas.directory import AgentRead
from travel_crm.services.auth_service import AuthService

logger = structlog.get_logger(__name__)
router = APIRouter()
settings = get_settings()


@router.post("/login")
async def login(
    data: LoginRequest,
    tenant: Tenant = Depends(resolve_tenant),
    service: AuthService = Depends(get_auth_service),
):
    """Login with email and password within the resolved tenant"""
    token, user = await service.login(str(data.email), data.password)
    return success(
        TokenResponse(
            access_token=token,
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserRead.model_validate(user),
        ),
        "Login successful",
    )


@router.post("/logout")
async def logout(
    user: CurrentUser = Depends(get_current_user),
    token: Optional[str] = Depends(get_bearer_token),
    authenticator: SessionAuthenticator = Depends(get_authenticator),
):
    """Revoke the presented token"""
    await authenticator.revoke(token)
    return success(message="Logged out successfully")


@router.post("/register-agent", status_code=status.HTTP_201_CREATED)
async def register_agent(
    data: RegisterAgentRequest,
    request: Request,
    tenant: Tenant = Depends(resolve_tenant),
    service: AuthService = Depends(get_auth_service),
):
    """Agent self-registration; the account waits for approval"""
    user, agent = await service.register_agent(tenant, data)
    request.state.audit_resource_id = agent.id
    return success(
        {"user": UserRead.model_validate(user), "agent": AgentRead.model_validate(agent)},
        "Registration successful. Your account is pending approval.",
    )


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    user: CurrentUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    token = await service.change_password(user.id, data.current_password, data.new_password)
    return success({"access_token": token, "token_type": "bearer"}, "Password changed successfully")


@router.get("/me")
async def me(user: CurrentUser = Depends(get_current_user)):
    return success(user)
