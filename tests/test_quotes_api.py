"""
Quote lifecycle over the API
"""

from datetime import datetime, timedelta, timezone
import uuid

from fastapi import Depends
import pytest

from travel_crm.core.config import Settings
from travel_crm.core.dependencies import get_quote_service, get_repositories, get_usage_service
from travel_crm.main import app
from travel_crm.models.quote import Quote
from travel_crm.services.quote_service import QuoteService
from travel_crm.services.repositories import Repositories
from travel_crm.services.tenant_service import UsageService
from tests.conftest import accepted_quote, create_quote, headers_for


async def test_create_quote_computes_total(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)

    assert quote["status"] == "draft"
    assert quote["quote_number"].startswith(f"Q{datetime.utcnow().year}-")
    assert quote["agent_id"] == str(world.agent.id)
    assert quote["pricing"]["total_price"] == "1200.00"
    assert quote["pricing"]["markup"]["amount"] == "200.00"


async def test_supplied_total_must_match(client, world, quote_payload):
    quote_payload["pricing"] = dict(quote_payload["pricing"], total_price="999.00")
    response = await client.post("/api/v1/quotes/", json=quote_payload, headers=headers_for(world.agent_user))
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_base_cost_defaults_from_itinerary(client, world, quote_payload):
    quote_payload["pricing"] = {"markup": {"amount": "100.00"}}
    quote = await create_quote(client, world, quote_payload)
    # 500 per traveller for two travellers
    assert quote["pricing"]["base_cost"] == "1000.00"
    assert quote["pricing"]["total_price"] == "1100.00"


async def test_quote_numbers_are_unique(client, world, quote_payload):
    numbers = [(await create_quote(client, world, quote_payload))["quote_number"] for _ in range(3)]
    assert len(set(numbers)) == 3
    assert sorted(numbers) == numbers


async def test_send_view_accept_flow(client, world, quote_payload, dispatcher):
    quote = await create_quote(client, world, quote_payload)
    quote_id = quote["id"]

    response = await client.post(f"/api/v1/quotes/{quote_id}/send", headers=headers_for(world.agent_user))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "sent"
    assert dispatcher.sent == [(quote["quote_number"], world.customer.email)]

    # The customer opening the quote marks it viewed
    response = await client.get(f"/api/v1/quotes/{quote_id}", headers=headers_for(world.customer_user))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "viewed"
    assert data["viewed_at"] is not None

    response = await client.patch(f"/api/v1/quotes/{quote_id}/accept", headers=headers_for(world.customer_user))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "accepted"

    response = await client.patch(f"/api/v1/quotes/{quote_id}/accept", headers=headers_for(world.customer_user))
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATE"


async def test_send_twice_is_rejected(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    headers = headers_for(world.agent_user)
    await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers)

    response = await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers)
    assert response.status_code == 400


async def test_dispatch_failure_leaves_quote_in_draft(client, world, quote_payload, dispatcher):
    quote = await create_quote(client, world, quote_payload)
    dispatcher.fail = True

    response = await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers_for(world.agent_user))
    assert response.status_code == 502
    assert response.json()["code"] == "EXTERNAL_SERVICE_ERROR"

    response = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers_for(world.agent_user))
    assert response.json()["data"]["status"] == "draft"


async def test_agent_viewing_draft_does_not_mark_viewed(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    response = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers_for(world.agent_user))
    assert response.json()["data"]["status"] == "draft"
    assert response.json()["data"]["viewed_at"] is None


async def test_reject_appends_reason(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers_for(world.agent_user))

    response = await client.patch(
        f"/api/v1/quotes/{quote['id']}/reject",
        json={"reason": "Too expensive"},
        headers=headers_for(world.customer_user),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "rejected"
    assert data["rejection_reason"] == "Too expensive"
    assert "Rejection reason: Too expensive" in data["notes"]


async def test_reject_without_body(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers_for(world.agent_user))

    response = await client.patch(f"/api/v1/quotes/{quote['id']}/reject", headers=headers_for(world.customer_user))
    assert response.status_code == 200
    assert response.json()["data"]["rejection_reason"] is None


async def test_accept_after_validity_expires_quote(client, world, quote_payload, db):
    quote = await create_quote(client, world, quote_payload)
    await client.post(f"/api/v1/quotes/{quote['id']}/send", headers=headers_for(world.agent_user))

    stored = await db.get(Quote, uuid.UUID(quote["id"]))
    stored.valid_until = datetime.utcnow() - timedelta(minutes=1)
    db.add(stored)
    await db.commit()

    response = await client.patch(f"/api/v1/quotes/{quote['id']}/accept", headers=headers_for(world.customer_user))
    assert response.status_code == 400
    assert response.json()["code"] == "QUOTE_EXPIRED"

    response = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers_for(world.agent_user))
    data = response.json()["data"]
    assert data["status"] == "expired"
    assert data["expired_at"] is not None


async def test_update_recomputes_total(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)

    response = await client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"pricing": {"taxes": {"amount": "150.00"}, "total_price": "1.00"}},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 200
    pricing = response.json()["data"]["pricing"]
    assert pricing["base_cost"] == "1000.00"
    assert pricing["total_price"] == "1300.00"


async def test_offset_valid_until_is_stored_as_utc(client, world, quote_payload):
    expected = (datetime.utcnow() + timedelta(days=10)).replace(microsecond=0)
    quote_payload["valid_until"] = expected.strftime("%Y-%m-%dT%H:%M:%SZ")
    quote = await create_quote(client, world, quote_payload)
    assert datetime.fromisoformat(quote["valid_until"]) == expected

    later = expected + timedelta(days=5)
    shifted = later.replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=2)))
    response = await client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"valid_until": shifted.isoformat()},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 200
    assert datetime.fromisoformat(response.json()["data"]["valid_until"]) == later


async def test_offset_valid_until_in_past_is_rejected(client, world, quote_payload):
    past = datetime.utcnow() - timedelta(days=1)
    quote_payload["valid_until"] = past.strftime("%Y-%m-%dT%H:%M:%SZ")
    response = await client.post("/api/v1/quotes/", json=quote_payload, headers=headers_for(world.agent_user))
    assert response.status_code == 400


async def test_terminal_quote_is_immutable(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)

    response = await client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"notes": "late change"},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "IMMUTABLE_QUOTE"


async def test_accepted_quote_cannot_be_deleted(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    response = await client.delete(f"/api/v1/quotes/{quote['id']}", headers=headers_for(world.agent_user))
    assert response.status_code == 400

    draft = await create_quote(client, world, quote_payload)
    response = await client.delete(f"/api/v1/quotes/{draft['id']}", headers=headers_for(world.agent_user))
    assert response.status_code == 200


async def test_customer_cannot_create_quote(client, world, quote_payload):
    response = await client.post("/api/v1/quotes/", json=quote_payload, headers=headers_for(world.customer_user))
    assert response.status_code == 403


async def test_listing_is_scoped_to_owner(client, world, quote_payload):
    await create_quote(client, world, quote_payload)
    await create_quote(client, world, quote_payload)

    response = await client.get("/api/v1/quotes/", headers=headers_for(world.customer_user))
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 2

    # Another tenant sees nothing
    response = await client.get("/api/v1/quotes/", headers=headers_for(world.other_operator))
    assert response.json()["pagination"]["total"] == 0


async def test_quote_stats(client, world, quote_payload):
    await create_quote(client, world, quote_payload)
    await accepted_quote(client, world, quote_payload)

    response = await client.get("/api/v1/quotes/stats", headers=headers_for(world.operator))
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total"] == 2
    assert stats["by_status"]["draft"] == 1
    assert stats["by_status"]["accepted"] == 1
    assert stats["conversion_rate"] == 100.0


async def test_validation_error_envelope(client, world, quote_payload):
    quote_payload["number_of_travelers"] = 0
    response = await client.post("/api/v1/quotes/", json=quote_payload, headers=headers_for(world.agent_user))
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"
    assert body["details"]["errors"]


@pytest.fixture
def production_quotes(client, dispatcher):
    """Quote endpoints served with production transition rules"""
    settings = Settings(ENVIRONMENT="production")

    def override(
        repos: Repositories = Depends(get_repositories),
        usage: UsageService = Depends(get_usage_service),
    ) -> QuoteService:
        return QuoteService(repos, usage, dispatcher, settings)

    app.dependency_overrides[get_quote_service] = override
    yield settings
    app.dependency_overrides.pop(get_quote_service, None)


async def test_production_rejects_responding_to_draft(client, world, quote_payload, production_quotes):
    assert not production_quotes.relaxed_quote_transitions
    quote = await create_quote(client, world, quote_payload)

    for action in ("accept", "reject"):
        response = await client.patch(
            f"/api/v1/quotes/{quote['id']}/{action}", headers=headers_for(world.customer_user)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATE"

    response = await client.get(f"/api/v1/quotes/{quote['id']}", headers=headers_for(world.agent_user))
    assert response.json()["data"]["status"] == "draft"


async def test_production_send_view_accept_flow(client, world, quote_payload, production_quotes):
    quote = await create_quote(client, world, quote_payload)
    quote_id = quote["id"]

    response = await client.post(f"/api/v1/quotes/{quote_id}/send", headers=headers_for(world.agent_user))
    assert response.json()["data"]["status"] == "sent"

    response = await client.get(f"/api/v1/quotes/{quote_id}", headers=headers_for(world.customer_user))
    assert response.json()["data"]["status"] == "viewed"

    response = await client.patch(f"/api/v1/quotes/{quote_id}/accept", headers=headers_for(world.customer_user))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "accepted"

    response = await client.patch(f"/api/v1/quotes/{quote_id}/accept", headers=headers_for(world.customer_user))
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATE"
