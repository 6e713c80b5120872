"""
services/booking/router.py
Booking lifecycle endpoints.
States: Pending → Confirmed → Completed, Pending|Confirmed → Cancelled
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from config.storage import get_repositories
from shared.domain.lifecycle import BookingLifecycle
from shared.domain.resolver import CrossReferenceResolver
from shared.middleware.auth import get_current_user, require_staff, require_tourist
from shared.models.models import Actor, Booking, BookingStatus
from shared.schemas.schemas import BookingCreateRequest, BookingViewResponse
from shared.store.repositories import Repositories

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ── Helpers ───────────────────────────────────────────────────

def _parse_status(status_filter: Optional[str]) -> Optional[BookingStatus]:
    if not status_filter:
        return None
    try:
        return BookingStatus(status_filter)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status_filter}")


async def _views(repos: Repositories, bookings: List[Booking]) -> List[BookingViewResponse]:
    resolved = await CrossReferenceResolver(repos).booking_views(bookings)
    return [BookingViewResponse.from_resolved(r) for r in resolved]


# ── Creation ──────────────────────────────────────────────────

@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreateRequest,
    current_user: Actor = Depends(require_tourist),
    repos: Repositories = Depends(get_repositories),
):
    """
    Book an approved program. The provider id and program snapshot are
    copied onto the booking; the provider is notified.
    """
    return await BookingLifecycle(repos).create(current_user, data.model_dump(exclude_none=True))


# ── Read Endpoints ────────────────────────────────────────────

@router.get("", response_model=list[BookingViewResponse])
async def list_my_bookings(
    status_filter: Optional[str] = Query(None, alias="status"),
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    """Tourists see their own bookings, providers the bookings of their programs, admins all."""
    wanted = _parse_status(status_filter)
    bookings = await CrossReferenceResolver(repos).bookings_for(current_user.id, current_user.role)
    if wanted:
        bookings = [b for b in bookings if b.status == wanted]
    return await _views(repos, bookings)


@router.get("/upcoming", response_model=list[BookingViewResponse])
async def list_upcoming_bookings(
    current_user: Actor = Depends(require_tourist),
    repos: Repositories = Depends(get_repositories),
):
    bookings = await CrossReferenceResolver(repos).upcoming_bookings_for(current_user.id)
    return await _views(repos, bookings)


@router.get("/past", response_model=list[BookingViewResponse])
async def list_past_bookings(
    current_user: Actor = Depends(require_tourist),
    repos: Repositories = Depends(get_repositories),
):
    bookings = await CrossReferenceResolver(repos).past_bookings_for(current_user.id)
    return await _views(repos, bookings)


# ── Status Transitions ────────────────────────────────────────

@router.post("/{booking_id}/confirm", response_model=Booking)
async def confirm_booking(
    booking_id: str,
    current_user: Actor = Depends(require_staff),
    repos: Repositories = Depends(get_repositories),
):
    """Provider (or admin) confirms. Status: Pending → Confirmed."""
    return await BookingLifecycle(repos).confirm(current_user, booking_id)


@router.post("/{booking_id}/complete", response_model=Booking)
async def complete_booking(
    booking_id: str,
    current_user: Actor = Depends(require_staff),
    repos: Repositories = Depends(get_repositories),
):
    """Provider (or admin) marks the trip done. Status: Confirmed → Completed."""
    return await BookingLifecycle(repos).complete(current_user, booking_id)


@router.post("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: str,
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    """Tourist cancels own booking, provider cancels one of theirs, admin any."""
    return await BookingLifecycle(repos).cancel(current_user, booking_id)
