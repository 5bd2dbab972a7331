import pytest

from crm_backend.models import StaffRole, LeadStatus


@pytest.fixture
async def agent(seed):
    return await seed.staff("Aisha")


@pytest.fixture
async def admin(seed):
    return await seed.staff("Boss", role=StaffRole.ADMIN, country=None)


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_requires_token(client):
    response = await client.get("/api/leads/")
    assert response.status_code == 401


async def test_invalid_token(client):
    response = await client.get("/api/leads/", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


async def test_agent_lead_lifecycle(client, agent, auth_headers):
    headers = auth_headers(agent)

    response = await client.post("/api/leads/", json={"phone": "0501234567", "country": "UAE"}, headers=headers)
    assert response.status_code == 201
    lead = response.json()
    assert lead["phone_key"] == "+971501234567"
    assert lead["assigned_agent_id"] == str(agent.id)
    lead_id = lead["id"]

    response = await client.get(f"/api/leads/{lead_id}/validate-conversion", headers=headers)
    assert response.status_code == 200
    assert response.json()["can_convert"] is False

    response = await client.put(
        f"/api/leads/{lead_id}/products",
        json={"products": [{"product_code": "PRD001", "quantity": 2, "price_estimate": "100"}]},
        headers=headers
    )
    assert response.status_code == 200

    response = await client.put(
        f"/api/leads/{lead_id}/intake-form",
        json={
            "customer_name": "Ahmed Ali",
            "shipping_country": "UAE",
            "shipping_city": "Dubai",
            "shipping_address_line1": "Street 1",
        },
        headers=headers
    )
    assert response.status_code == 200

    response = await client.get(f"/api/leads/{lead_id}/validate-conversion", headers=headers)
    assert response.json() == {"can_convert": True, "errors": [], "warnings": []}

    response = await client.post(f"/api/leads/{lead_id}/convert", json={"payment_method": "COD"}, headers=headers)
    assert response.status_code == 201
    order = response.json()
    assert order["em_number"] == "EM-UAE-000001"
    assert float(order["value"]) == 200
    assert order["source_lead"]["status"] == LeadStatus.WON.value
    assert order["customer"]["phone_key"] == "+971501234567"
    assert len(order["items"]) == 1

    response = await client.get(f"/api/orders/em/{order['em_number']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["order_key"] == order["order_key"]


async def test_convert_validation_failure_lists_errors(client, seed, agent, auth_headers):
    lead_id = await seed.lead(agent_id=agent.id, products=())

    response = await client.post(f"/api/leads/{lead_id}/convert", headers=auth_headers(agent))

    assert response.status_code == 400
    body = response.json()
    assert body["errors"] == ["At least one product is required"]
    assert "At least one product is required" in body["detail"]


async def test_agent_cannot_touch_other_agents_lead(client, seed, agent, auth_headers):
    other = await seed.staff("Bilal")
    lead_id = await seed.lead(agent_id=other.id)

    response = await client.get(f"/api/leads/{lead_id}", headers=auth_headers(agent))
    assert response.status_code == 403

    response = await client.post(f"/api/leads/{lead_id}/convert", headers=auth_headers(agent))
    assert response.status_code == 403


async def test_admin_can_act_on_any_lead(client, seed, agent, admin, auth_headers):
    lead_id = await seed.lead(agent_id=agent.id)

    response = await client.post(f"/api/leads/{lead_id}/convert", headers=auth_headers(admin))
    assert response.status_code == 201


async def test_list_leads_is_scoped_for_agents(client, seed, agent, admin, auth_headers):
    other = await seed.staff("Bilal")
    await seed.lead(agent_id=agent.id)
    await seed.lead(agent_id=other.id)

    response = await client.get("/api/leads/", headers=auth_headers(agent))
    assert response.json()["total"] == 1

    response = await client.get("/api/leads/", headers=auth_headers(admin))
    assert response.json()["total"] == 2


async def test_reassign_is_admin_only(client, seed, agent, admin, auth_headers):
    other = await seed.staff("Bilal")
    lead_id = await seed.lead(agent_id=agent.id)

    response = await client.post(
        f"/api/leads/{lead_id}/reassign", json={"agent_id": str(other.id)}, headers=auth_headers(agent)
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/leads/{lead_id}/reassign", json={"agent_id": str(other.id)}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["assigned_agent_id"] == str(other.id)


async def test_order_cancellation_over_http(client, seed, agent, admin, auth_headers):
    lead_id = await seed.lead(agent_id=agent.id)
    response = await client.post(f"/api/leads/{lead_id}/convert", headers=auth_headers(agent))
    order_key = response.json()["order_key"]

    response = await client.patch(
        f"/api/orders/{order_key}", json={"order_status": "CANCELLED"}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

    response = await client.post(f"/api/orders/{order_key}/cancel", json={"cancellation_reason": "No answer"}, headers=auth_headers(agent))
    assert response.status_code == 403

    response = await client.post(
        f"/api/orders/{order_key}/cancel", json={"cancellation_reason": "No answer"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["order_status"] == "CANCELLED"


async def test_em_series_settings(client, agent, admin, auth_headers):
    response = await client.post("/api/settings/em-series", json={"country": "KSA"}, headers=auth_headers(agent))
    assert response.status_code == 403

    response = await client.post(
        "/api/settings/em-series", json={"country": "KSA", "next_counter": 100}, headers=auth_headers(admin)
    )
    assert response.status_code == 201
    assert response.json()["prefix"] == "EM-KSA-"

    response = await client.patch(
        "/api/settings/em-series/KSA", json={"next_counter": 5}, headers=auth_headers(admin)
    )
    assert response.status_code == 400

    response = await client.get("/api/settings/em-series", headers=auth_headers(admin))
    assert [s["country"] for s in response.json()] == ["KSA"]


async def test_unknown_lead_is_404(client, admin, auth_headers):
    response = await client.get(
        "/api/leads/00000000-0000-0000-0000-000000000000", headers=auth_headers(admin)
    )
    assert response.status_code == 404
