"""
Tests for JWT handling, session authentication and the auth endpoints
"""

import pytest
from datetime import datetime, timedelta
import uuid

from travel_crm.core.auth import (
    create_access_token,
    decode_access_token,
    hash_password,
    to_epoch,
    verify_password,
)
from travel_crm.core.cache import MemorySessionCache
from travel_crm.core.errors import (
    AccountDeactivated,
    CredentialRevoked,
    CrossTenantAccess,
    InvalidCredential,
    StaleCredential,
    UserNotFound,
)
from travel_crm.core.session import SessionAuthenticator
from tests.conftest import PASSWORD, headers_for, token_for


def test_create_access_token():
    """Test JWT token creation"""
    user_id = uuid.uuid4()
    tenant_id = uuid.uuid4()

    token = create_access_token(user_id=user_id, tenant_id=tenant_id, role="agent")

    payload = decode_access_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["tenant_id"] == str(tenant_id)
    assert payload["role"] == "agent"
    assert payload["jti"]
    assert "exp" in payload and "iat" in payload


def test_expired_token_is_invalid():
    token = create_access_token(
        uuid.uuid4(),
        uuid.uuid4(),
        "agent",
        expires_delta=timedelta(seconds=-1),
    )
    assert decode_access_token(token) is None


def test_tampered_token_is_invalid():
    token = create_access_token(uuid.uuid4(), uuid.uuid4(), "agent")
    assert decode_access_token(token[:-2] + "xx") is None


def test_password_hashing():
    hashed = hash_password("s3cret-pass")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


# SessionAuthenticator

@pytest.fixture
def authenticator(db) -> SessionAuthenticator:
    return SessionAuthenticator(db, MemorySessionCache(), ttl_seconds=60)


async def test_authenticate_success_populates_cache(authenticator, world):
    user = await authenticator.authenticate(token_for(world.agent_user), world.tenant)
    assert user.id == world.agent_user.id
    assert await authenticator.cache.get_user(str(world.agent_user.id)) is not None


async def test_authenticate_missing_or_bad_token(authenticator, world):
    with pytest.raises(InvalidCredential):
        await authenticator.authenticate(None, world.tenant)
    with pytest.raises(InvalidCredential):
        await authenticator.authenticate("not-a-jwt", world.tenant)


async def test_revoked_token(authenticator, world):
    token = token_for(world.agent_user)
    await authenticator.revoke(token)
    with pytest.raises(CredentialRevoked):
        await authenticator.authenticate(token, world.tenant)
    # Other tokens of the same user stay valid
    await authenticator.authenticate(token_for(world.agent_user), world.tenant)


async def test_unknown_user(authenticator, world):
    token = create_access_token(uuid.uuid4(), world.tenant.id, "agent")
    with pytest.raises(UserNotFound):
        await authenticator.authenticate(token, world.tenant)


async def test_cross_tenant_checked_on_cache_hit(authenticator, world):
    token = token_for(world.other_operator)
    await authenticator.authenticate(token, world.other_tenant)
    with pytest.raises(CrossTenantAccess):
        await authenticator.authenticate(token, world.tenant)


async def test_deactivated_user(authenticator, db, world):
    world.agent_user.is_active = False
    db.add(world.agent_user)
    await db.commit()
    with pytest.raises(AccountDeactivated):
        await authenticator.authenticate(token_for(world.agent_user), world.tenant)


async def test_stale_credential_after_password_change(authenticator, db, world):
    issued = datetime.utcnow() - timedelta(minutes=5)
    token = token_for(world.agent_user, issued_at=issued)

    world.agent_user.password_changed_at = datetime.utcnow()
    db.add(world.agent_user)
    await db.commit()

    with pytest.raises(StaleCredential):
        await authenticator.authenticate(token, world.tenant)


async def test_token_issued_same_second_as_password_change_is_valid(authenticator, db, world):
    changed = datetime.utcnow().replace(microsecond=900000)
    world.agent_user.password_changed_at = changed
    db.add(world.agent_user)
    await db.commit()

    token = token_for(world.agent_user, issued_at=changed.replace(microsecond=0))
    user = await authenticator.authenticate(token, world.tenant)
    assert to_epoch(user.password_changed_at) == to_epoch(changed)


# Endpoints

async def test_login_and_me(client, world):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "AGENT@sunrise-travel.com", "password": PASSWORD},
        headers={"X-Tenant-ID": str(world.tenant.id)},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "agent"

    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {data['access_token']}", "X-Tenant-ID": str(world.tenant.id)},
    )
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "agent@sunrise-travel.com"


async def test_login_is_tenant_scoped(client, world):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "agent@sunrise-travel.com", "password": PASSWORD},
        headers={"X-Tenant-ID": str(world.other_tenant.id)},
    )
    assert response.status_code == 401


async def test_login_wrong_password(client, world):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "agent@sunrise-travel.com", "password": "nope"},
        headers={"X-Tenant-ID": str(world.tenant.id)},
    )
    assert response.status_code == 401
    assert response.json()["success"] is False


async def test_logout_revokes_token(client, world):
    headers = headers_for(world.operator)
    response = await client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200

    response = await client.get("/api/v1/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "CREDENTIAL_REVOKED"


async def test_change_password_invalidates_old_tokens(client, world):
    old_token = token_for(world.operator, issued_at=datetime.utcnow() - timedelta(minutes=1))
    headers = headers_for(world.operator, token=old_token)

    response = await client.post(
        "/api/v1/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert response.status_code == 200
    new_token = response.json()["data"]["access_token"]

    response = await client.get("/api/v1/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["code"] == "STALE_CREDENTIAL"

    response = await client.get("/api/v1/auth/me", headers=headers_for(world.operator, token=new_token))
    assert response.status_code == 200


async def test_register_agent_is_pending_until_approved(client, world):
    response = await client.post(
        "/api/v1/auth/register-agent",
        json={
            "email": "newbie@newbie-agency.com",
            "password": "longenough",
            "first_name": "New",
            "last_name": "Agent",
            "agency_name": "Newbie Travel",
        },
        headers={"X-Tenant-ID": str(world.tenant.id)},
    )
    assert response.status_code == 201, response.text
    agent = response.json()["data"]["agent"]
    assert agent["status"] == "pending"

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "newbie@newbie-agency.com", "password": "longenough"},
        headers={"X-Tenant-ID": str(world.tenant.id)},
    )
    token = response.json()["data"]["access_token"]
    agent_headers = {"Authorization": f"Bearer {token}", "X-Tenant-ID": str(world.tenant.id)}

    # Pending profiles are not active
    response = await client.get("/api/v1/quotes/", headers=agent_headers)
    assert response.status_code == 403

    response = await client.patch(f"/api/v1/agents/{agent['id']}/approve", headers=headers_for(world.operator))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "active"

    response = await client.get("/api/v1/quotes/", headers=agent_headers)
    assert response.status_code == 200
