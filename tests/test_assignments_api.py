"""
Assignment tracking over the API
"""

from datetime import datetime, timedelta, timezone
import uuid

from tests.conftest import create_quote, headers_for


async def assign(client, world, entity_type, entity_id, assignee, **extra) -> dict:
    response = await client.post(
        "/api/v1/assignments/",
        json={"entity_type": entity_type, "entity_id": entity_id, "assigned_to": str(assignee.id), **extra},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def test_create_assignment_for_quote(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    assignment = await assign(client, world, "quote", quote["id"], world.agent_user, priority="high")

    assert assignment["status"] == "assigned"
    assert assignment["priority"] == "high"
    assert assignment["assigned_by"] == str(world.operator.id)
    assert assignment["reassignment_history"] == []


async def test_assignment_for_unknown_quote(client, world):
    response = await client.post(
        "/api/v1/assignments/",
        json={"entity_type": "quote", "entity_id": str(uuid.uuid4()), "assigned_to": str(world.agent_user.id)},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 404


async def test_email_assignment_skips_entity_check(client, world):
    assignment = await assign(client, world, "email", "msg-20261001-42", world.agent_user)
    assert assignment["entity_id"] == "msg-20261001-42"


async def test_assignee_must_belong_to_tenant(client, world):
    response = await client.post(
        "/api/v1/assignments/",
        json={"entity_type": "email", "entity_id": "msg-1", "assigned_to": str(world.other_operator.id)},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 400


async def test_agent_cannot_create_assignment(client, world):
    response = await client.post(
        "/api/v1/assignments/",
        json={"entity_type": "email", "entity_id": "msg-1", "assigned_to": str(world.agent_user.id)},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 403


async def test_status_flow_and_single_completion(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)
    url = f"/api/v1/assignments/{assignment['id']}/status"
    headers = headers_for(world.agent_user)

    response = await client.patch(url, json={"status": "in_progress"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["started_at"] is not None

    response = await client.patch(url, json={"status": "completed", "notes": "Replied"}, headers=headers)
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["completed_by"] == str(world.agent_user.id)
    assert data["completion_notes"] == "Replied"

    response = await client.patch(url, json={"status": "completed"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATE"


async def test_status_cannot_be_set_to_reassigned(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)
    response = await client.patch(
        f"/api/v1/assignments/{assignment['id']}/status",
        json={"status": "reassigned"},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 400


async def test_reassign_keeps_history(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)

    response = await client.patch(
        f"/api/v1/assignments/{assignment['id']}/reassign",
        json={"to_user": str(world.supplier_user.id), "reason": "Hotel question"},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "reassigned"
    assert data["assigned_to"] == str(world.supplier_user.id)
    assert len(data["reassignment_history"]) == 1
    entry = data["reassignment_history"][0]
    assert entry["from_user"] == str(world.agent_user.id)
    assert entry["reason"] == "Hotel question"

    # The previous assignee no longer has access
    response = await client.get(f"/api/v1/assignments/{assignment['id']}", headers=headers_for(world.agent_user))
    assert response.status_code == 403

    response = await client.get("/api/v1/assignments/my", headers=headers_for(world.supplier_user))
    assert response.json()["pagination"]["total"] == 1


async def test_reassign_to_same_user_rejected(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)
    response = await client.patch(
        f"/api/v1/assignments/{assignment['id']}/reassign",
        json={"to_user": str(world.agent_user.id)},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 400


async def test_overdue_listing(client, world):
    past = (datetime.utcnow() - timedelta(hours=2)).isoformat()
    future = (datetime.utcnow() + timedelta(days=2)).isoformat()
    late = await assign(client, world, "email", "msg-late", world.agent_user, due_date=past)
    await assign(client, world, "email", "msg-fine", world.agent_user, due_date=future)

    response = await client.get("/api/v1/assignments/overdue", headers=headers_for(world.agent_user))
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["id"] == late["id"]
    assert body["data"][0]["sla_breached"] is True


async def test_offset_due_date_is_stored_as_utc(client, world):
    due = (datetime.utcnow() - timedelta(hours=1)).replace(microsecond=0)
    late = await assign(
        client, world, "email", "msg-utc", world.agent_user,
        due_date=due.replace(tzinfo=timezone.utc).isoformat(),
    )
    assert datetime.fromisoformat(late["due_date"]) == due
    assert late["sla_breached"] is True

    later = due + timedelta(days=1)
    response = await client.patch(
        f"/api/v1/assignments/{late['id']}",
        json={"due_date": later.strftime("%Y-%m-%dT%H:%M:%SZ")},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert datetime.fromisoformat(data["due_date"]) == later
    assert data["sla_breached"] is False


async def test_entity_assignments_filtered_for_participants(client, world):
    await assign(client, world, "email", "msg-7", world.agent_user)
    await assign(client, world, "email", "msg-7", world.supplier_user)

    response = await client.get("/api/v1/assignments/entity/email/msg-7", headers=headers_for(world.operator))
    assert len(response.json()["data"]) == 2

    response = await client.get("/api/v1/assignments/entity/email/msg-7", headers=headers_for(world.supplier_user))
    assert len(response.json()["data"]) == 1


async def test_only_assigner_edits(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)

    response = await client.patch(
        f"/api/v1/assignments/{assignment['id']}",
        json={"priority": "urgent"},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 403

    response = await client.patch(
        f"/api/v1/assignments/{assignment['id']}",
        json={"priority": "urgent"},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 200
    assert response.json()["data"]["priority"] == "urgent"


async def test_delete_assignment(client, world):
    assignment = await assign(client, world, "email", "msg-1", world.agent_user)
    response = await client.delete(f"/api/v1/assignments/{assignment['id']}", headers=headers_for(world.operator))
    assert response.status_code == 200

    response = await client.get(f"/api/v1/assignments/{assignment['id']}", headers=headers_for(world.operator))
    assert response.status_code == 404
