"""
Booking lifecycle over the API
"""

from decimal import Decimal

from tests.conftest import accepted_quote, create_quote, headers_for


async def create_booking(client, world, quote_id, **extra) -> dict:
    response = await client.post(
        "/api/v1/bookings/",
        json={"quote_id": quote_id, **extra},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def pay(client, world, booking_id, amount):
    return await client.post(
        f"/api/v1/bookings/{booking_id}/payments",
        json={"amount": amount, "method": "bank_transfer"},
        headers=headers_for(world.agent_user),
    )


async def test_booking_requires_accepted_quote(client, world, quote_payload):
    quote = await create_quote(client, world, quote_payload)
    response = await client.post(
        "/api/v1/bookings/",
        json={"quote_id": quote["id"]},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATE"


async def test_booking_copies_quote(client, world, quote_payload, db):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])

    assert booking["booking_number"].startswith("B")
    assert booking["status"] == "pending"
    assert booking["payment_status"] == "pending"
    assert booking["total_amount"] == "1200.00"
    assert booking["pending_amount"] == "1200.00"
    assert booking["number_of_travelers"] == 2

    # Outstanding booking draws on the agent's credit
    await db.refresh(world.agent)
    assert world.agent.available_credit == Decimal("3800.00")
    assert world.agent.total_bookings == 1


async def test_one_booking_per_quote(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    await create_booking(client, world, quote["id"])

    response = await client.post(
        "/api/v1/bookings/",
        json={"quote_id": quote["id"]},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 400


async def test_payments_progress_status(client, world, quote_payload, db):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])

    response = await pay(client, world, booking["id"], "200.00")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["payment_status"] == "partially_paid"
    assert data["paid_amount"] == "200.00"
    assert data["pending_amount"] == "1000.00"

    response = await pay(client, world, booking["id"], "1000.01")
    assert response.status_code == 400

    response = await pay(client, world, booking["id"], "1000.00")
    assert response.json()["data"]["payment_status"] == "paid"

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=headers_for(world.agent_user))
    body = response.json()["data"]
    assert [p["amount"] for p in body["payments"]] == ["200.00", "1000.00"]

    # Settled bookings release the credit and count as spend
    await db.refresh(world.agent)
    await db.refresh(world.customer)
    assert world.agent.available_credit == Decimal("5000.00")
    assert world.agent.total_revenue == Decimal("1200.00")
    assert world.customer.total_spent == Decimal("1200.00")


async def test_zero_payment_rejected(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])

    response = await pay(client, world, booking["id"], "0")
    assert response.status_code == 400


async def test_confirm_needs_payment(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])
    ops = headers_for(world.operator)

    response = await client.patch(f"/api/v1/bookings/{booking['id']}/confirm", headers=ops)
    assert response.status_code == 400

    await pay(client, world, booking["id"], "300.00")
    response = await client.patch(f"/api/v1/bookings/{booking['id']}/confirm", headers=ops)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "confirmed"

    response = await client.patch(f"/api/v1/bookings/{booking['id']}/complete", headers=ops)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"


async def test_agent_cannot_change_status(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/confirm", headers=headers_for(world.agent_user)
    )
    assert response.status_code == 403


async def test_cancel_with_refund_restores_credit(client, world, quote_payload, db):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])
    await pay(client, world, booking["id"], "400.00")

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Change of plans", "refund_amount": "500.00"},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 400

    response = await client.patch(
        f"/api/v1/bookings/{booking['id']}/cancel",
        json={"reason": "Change of plans", "refund_amount": "400.00"},
        headers=headers_for(world.operator),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "cancelled"
    assert data["payment_status"] == "refunded"
    assert data["refunded_amount"] == "400.00"
    assert data["cancellation_reason"] == "Change of plans"

    await db.refresh(world.agent)
    assert world.agent.available_credit == Decimal("5000.00")

    response = await pay(client, world, booking["id"], "10.00")
    assert response.status_code == 400


async def test_cancelled_booking_is_not_editable(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])
    await client.patch(f"/api/v1/bookings/{booking['id']}/cancel", headers=headers_for(world.operator))

    response = await client.put(
        f"/api/v1/bookings/{booking['id']}",
        json={"notes": "too late"},
        headers=headers_for(world.agent_user),
    )
    assert response.status_code == 400


async def test_customer_sees_own_booking(client, world, quote_payload):
    quote = await accepted_quote(client, world, quote_payload)
    booking = await create_booking(client, world, quote["id"])

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=headers_for(world.customer_user))
    assert response.status_code == 200

    response = await client.get("/api/v1/bookings/", headers=headers_for(world.customer_user))
    assert response.json()["pagination"]["total"] == 1

    response = await client.get(f"/api/v1/bookings/{booking['id']}", headers=headers_for(world.other_operator))
    assert response.status_code == 404
