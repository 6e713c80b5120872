"""
tests/test_reports.py
Report submission and the separate admin / provider queues over HTTP.
"""

import pytest
from httpx import AsyncClient

from shared.models.models import ProviderReportStatus, ReportStatus
from shared.store.repositories import Repositories
from tests.factories import make_program, make_report


async def _file_program_report(client: AsyncClient, headers, repos: Repositories) -> dict:
    await repos.programs.save_all([make_program("p1", provider_id="prov-1")])
    payload = {
        "type": "Program",
        "subject": "Overcharged",
        "description": "Charged twice at the ticket office.",
        "priority": "High",
        "programId": "p1",
    }
    response = await client.post("/reports", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()


# ── Submission ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_report_about_program_reaches_provider(
    client: AsyncClient, tourist_headers, provider_headers, repos: Repositories
):
    report = await _file_program_report(client, tourist_headers, repos)
    assert report["status"] == "New"
    assert report["providerId"] == "prov-1"
    assert report["programTitle"] == "Program p1"

    response = await client.get("/reports/provider", headers=provider_headers)
    assert [r["id"] for r in response.json()] == [report["id"]]


@pytest.mark.asyncio
async def test_guest_can_file_report(client: AsyncClient, repos: Repositories):
    payload = {"type": "Technical", "subject": "Map broken", "description": "Blank map on mobile"}

    response = await client.post("/reports", json=payload)
    assert response.status_code == 201
    assert response.json()["reporterId"] == "guest"
    assert await repos.provider_reports.all() == []


@pytest.mark.asyncio
async def test_blank_subject_rejected(client: AsyncClient, tourist_headers):
    payload = {"type": "Other", "subject": "   ", "description": "Something"}

    response = await client.post("/reports", headers=tourist_headers, json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reporter_lists_own_reports(client: AsyncClient, tourist_headers, repos: Repositories):
    await repos.reports.save_all([
        make_report("r1", reporter_id="tourist-1"),
        make_report("r2", reporter_id="tourist-2"),
    ])

    response = await client.get("/reports/mine", headers=tourist_headers)
    assert [r["id"] for r in response.json()] == ["r1"]


# ── Admin Queue ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_admin_queue_filters(client: AsyncClient, admin_headers, repos: Repositories):
    await repos.reports.save_all([
        make_report("r1"),
        make_report("r2", status=ReportStatus.RESOLVED),
    ])

    response = await client.get("/reports", headers=admin_headers, params={"status": "New"})
    assert [r["id"] for r in response.json()] == ["r1"]

    response = await client.get("/reports", headers=admin_headers, params={"status": "Closed"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_provider_cannot_read_admin_queue(client: AsyncClient, provider_headers):
    response = await client.get("/reports", headers=provider_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_workflow(client: AsyncClient, tourist_headers, admin_headers, repos: Repositories):
    report = await _file_program_report(client, tourist_headers, repos)
    report_id = report["id"]

    response = await client.post(f"/reports/{report_id}/notes", headers=admin_headers, json={"notes": "Checking"})
    assert response.json()["status"] == "In Progress"

    response = await client.post(f"/reports/{report_id}/priority", headers=admin_headers, json={"priority": "Critical"})
    assert response.json()["priority"] == "Critical"

    response = await client.post(f"/reports/{report_id}/resolve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "Resolved"

    mirrored = await repos.provider_reports.get(report_id)
    assert mirrored.status == ReportStatus.RESOLVED
    assert mirrored.priority.value == "Critical"
    assert mirrored.provider_status is None

    response = await client.post(f"/reports/{report_id}/start", headers=admin_headers)
    assert response.status_code == 409


# ── Provider Queue ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_provider_workflow_keeps_admin_status(
    client: AsyncClient, tourist_headers, provider_headers, repos: Repositories
):
    report = await _file_program_report(client, tourist_headers, repos)
    report_id = report["id"]

    response = await client.post(f"/reports/provider/{report_id}/acknowledge", headers=provider_headers)
    assert response.json()["providerStatus"] == "Acknowledged"

    response = await client.post(
        f"/reports/provider/{report_id}/resolve", headers=provider_headers, json={"note": "Refund issued"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["providerStatus"] == "Resolved"
    assert data["status"] == "New"

    admin_copy = await repos.reports.get(report_id)
    assert admin_copy.status == ReportStatus.NEW
    assert admin_copy.provider_status is None


@pytest.mark.asyncio
async def test_provider_resolve_without_body(
    client: AsyncClient, tourist_headers, provider_headers, repos: Repositories
):
    report = await _file_program_report(client, tourist_headers, repos)

    response = await client.post(f"/reports/provider/{report['id']}/resolve", headers=provider_headers)
    assert response.status_code == 200
    assert response.json()["providerStatus"] == ProviderReportStatus.RESOLVED.value


@pytest.mark.asyncio
async def test_provider_note_on_foreign_report_is_404(client: AsyncClient, tourist_headers, repos: Repositories):
    report = await _file_program_report(client, tourist_headers, repos)
    headers = {"X-User-Id": "prov-2", "X-User-Role": "LocalBusinessOwner"}

    response = await client.post(
        f"/reports/provider/{report['id']}/note", headers=headers, json={"note": "Not mine"}
    )
    assert response.status_code == 404
