"""
tests/test_programs.py
Program submission, editing and the admin approval queue over HTTP.
"""

import pytest
from httpx import AsyncClient

from shared.models.models import ProgramStatus
from shared.store.repositories import Repositories
from tests.factories import make_activity, make_booking, make_program


@pytest.mark.asyncio
async def test_provider_submits_program(client: AsyncClient, provider_headers, repos: Repositories):
    payload = {"title": "Valley of the Kings", "price": 120, "duration": 6, "images": ["https://img/v.jpg"]}

    response = await client.post("/programs", headers=provider_headers, json=payload)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "Pending"
    assert data["providerId"] == "prov-1"
    assert data["companyName"] == "Nile Tours"
    assert len(await repos.programs.all()) == 1


@pytest.mark.asyncio
async def test_tourist_cannot_submit_program(client: AsyncClient, tourist_headers):
    response = await client.post("/programs", headers=tourist_headers, json={"title": "Sneaky", "price": 1})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_auth_headers_return_401(client: AsyncClient):
    response = await client.post("/programs", json={"title": "Anonymous", "price": 1})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_returns_401(client: AsyncClient):
    headers = {"X-User-Id": "u1", "X-User-Role": "Pharaoh"}
    response = await client.get("/programs/mine", headers=headers)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_catalog_lists_only_approved(client: AsyncClient, repos: Repositories):
    await repos.programs.save_all([
        make_program("p1"),
        make_program("p2", status=ProgramStatus.PENDING),
        make_program("p3", status=ProgramStatus.REJECTED),
    ])

    response = await client.get("/programs")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["p1"]


@pytest.mark.asyncio
async def test_provider_lists_own_programs(client: AsyncClient, provider_headers, repos: Repositories):
    await repos.programs.save_all([
        make_program("p1", provider_id="prov-1", status=ProgramStatus.PENDING),
        make_program("p2", provider_id="prov-2"),
    ])

    response = await client.get("/programs/mine", headers=provider_headers)
    assert [p["id"] for p in response.json()] == ["p1"]


@pytest.mark.asyncio
async def test_owner_updates_program(client: AsyncClient, provider_headers, repos: Repositories):
    await repos.programs.save_all([make_program("p1", price=50)])

    response = await client.patch("/programs/p1", headers=provider_headers, json={"price": 65.5})
    assert response.status_code == 200
    assert response.json()["price"] == 65.5
    assert (await repos.programs.get("p1")).price == 65.5


@pytest.mark.asyncio
async def test_empty_update_is_rejected(client: AsyncClient, provider_headers, repos: Repositories):
    await repos.programs.save_all([make_program("p1")])

    response = await client.patch("/programs/p1", headers=provider_headers, json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_review_queue_and_approval(client: AsyncClient, admin_headers, repos: Repositories):
    await repos.programs.save_all([
        make_program("p1", status=ProgramStatus.PENDING),
        make_program("p2"),
    ])

    queue = await client.get("/programs/queue", headers=admin_headers)
    assert [p["id"] for p in queue.json()] == ["p1"]

    response = await client.post("/programs/p1/approve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "Approved"

    provider_inbox = [n for n in await repos.notifications.all() if n.user_id == "prov-1"]
    assert provider_inbox[0].type == "program_approved"


@pytest.mark.asyncio
async def test_reviewed_program_cannot_be_reviewed_again(client: AsyncClient, admin_headers, repos: Repositories):
    await repos.programs.save_all([make_program("p1", status=ProgramStatus.REJECTED)])

    response = await client.post("/programs/p1/approve", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_reject_with_reason(client: AsyncClient, admin_headers, repos: Repositories):
    await repos.programs.save_all([make_program("p1", status=ProgramStatus.PENDING)])

    response = await client.post(
        "/programs/p1/reject", headers=admin_headers, json={"reason": "Missing itinerary details"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Rejected"
    assert data["rejectionReason"] == "Missing itinerary details"


@pytest.mark.asyncio
async def test_unknown_program_returns_404(client: AsyncClient, admin_headers):
    response = await client.post("/programs/missing/approve", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Program not found"


@pytest.mark.asyncio
async def test_program_bookings_visible_to_owner_only(
    client: AsyncClient, provider_headers, admin_headers, repos: Repositories
):
    await repos.programs.save_all([make_program("p1", provider_id="prov-1"), make_program("p2", provider_id="prov-2")])
    await repos.bookings.save_all([
        make_booking("b1", program_id="p1"),
        make_booking("b2", program_id="p2"),
    ])

    response = await client.get("/programs/p1/bookings", headers=provider_headers)
    assert [v["booking"]["id"] for v in response.json()] == ["b1"]

    response = await client.get("/programs/p2/bookings", headers=provider_headers)
    assert response.status_code == 403

    response = await client.get("/programs/p2/bookings", headers=admin_headers)
    assert [v["booking"]["id"] for v in response.json()] == ["b2"]


@pytest.mark.asyncio
async def test_provider_sees_own_activity(
    client: AsyncClient, provider_headers, repos: Repositories
):
    await repos.programs.save_all([make_program("p1")])
    await repos.activities.add(make_activity("other", provider_id="prov-2"))

    await client.patch("/programs/p1", headers=provider_headers, json={"title": "Valley at dawn"})

    response = await client.get("/programs/activity", headers=provider_headers)
    assert response.status_code == 200
    entries = response.json()
    assert [a["type"] for a in entries] == ["SERVICE_UPDATED"]
    assert entries[0]["description"] == "Updated a service: Valley at dawn"
