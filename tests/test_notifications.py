"""
tests/test_notifications.py
Inbox listing, unread count and the one-way read flag.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from shared.store.repositories import Repositories
from tests.factories import days_from_now, make_notification


@pytest.mark.asyncio
async def test_inbox_is_scoped_and_newest_first(client: AsyncClient, tourist_headers, repos: Repositories):
    now = days_from_now(0)
    await repos.notifications.save_all([
        make_notification("old", created_at=now - timedelta(hours=5)),
        make_notification("new", created_at=now),
        make_notification("other", user_id="tourist-2"),
    ])

    response = await client.get("/notifications", headers=tourist_headers)
    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == ["new", "old"]


@pytest.mark.asyncio
async def test_unread_count_and_mark_read(client: AsyncClient, tourist_headers, repos: Repositories):
    await repos.notifications.save_all([make_notification("n1"), make_notification("n2")])

    response = await client.get("/notifications/unread-count", headers=tourist_headers)
    assert response.json() == {"unreadCount": 2}

    response = await client.post("/notifications/n1/read", headers=tourist_headers)
    assert response.status_code == 200
    assert response.json()["read"] is True

    response = await client.get("/notifications/unread-count", headers=tourist_headers)
    assert response.json() == {"unreadCount": 1}

    response = await client.get("/notifications", headers=tourist_headers, params={"unread_only": True})
    assert [n["id"] for n in response.json()] == ["n2"]


@pytest.mark.asyncio
async def test_mark_read_twice_is_a_no_op(client: AsyncClient, tourist_headers, repos: Repositories):
    await repos.notifications.save_all([make_notification("n1")])

    first = await client.post("/notifications/n1/read", headers=tourist_headers)
    second = await client.post("/notifications/n1/read", headers=tourist_headers)

    assert first.status_code == second.status_code == 200
    assert second.json()["read"] is True


@pytest.mark.asyncio
async def test_cannot_mark_someone_elses_notification(
    client: AsyncClient, provider_headers, repos: Repositories
):
    await repos.notifications.save_all([make_notification("n1", user_id="tourist-1")])

    response = await client.post("/notifications/n1/read", headers=provider_headers)
    assert response.status_code == 404
    assert (await repos.notifications.get("n1")).read is False
