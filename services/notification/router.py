"""
services/notification/router.py
In-app notification inbox: listing, unread count, mark-as-read.
Read is one-way and per notification; there is no bulk mark.
"""

from fastapi import APIRouter, Depends, Query

from config.storage import get_repositories
from shared.domain.aggregator import count_unread
from shared.domain.lifecycle import NotificationLifecycle
from shared.domain.resolver import CrossReferenceResolver
from shared.middleware.auth import get_current_user
from shared.models.models import Actor, Notification
from shared.schemas.schemas import UnreadCountResponse
from shared.store.repositories import Repositories

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[Notification])
async def get_my_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    """The viewer's notifications, newest first."""
    notifications = await CrossReferenceResolver(repos).notifications_for(current_user.id)
    if unread_only:
        notifications = [n for n in notifications if not n.read]
    return notifications[:limit]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    notifications = await CrossReferenceResolver(repos).notifications_for(current_user.id)
    return UnreadCountResponse(unread_count=count_unread(notifications))


@router.post("/{notification_id}/read", response_model=Notification)
async def mark_read(
    notification_id: str,
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    return await NotificationLifecycle(repos).mark_read(notification_id, current_user.id)
