"""
services/program/router.py
Tour program catalog, provider submissions and the admin approval queue.
Programs are never deleted, only moved Pending → Approved | Rejected.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from config.storage import get_repositories
from shared.domain.lifecycle import ProgramLifecycle
from shared.domain.resolver import CrossReferenceResolver
from shared.middleware.auth import require_admin, require_provider, require_staff
from shared.models.models import Activity, Actor, Program, ProgramStatus, UserRole
from shared.schemas.schemas import (
    BookingViewResponse,
    ProgramCreateRequest,
    ProgramRejectRequest,
    ProgramUpdateRequest,
)
from shared.store.repositories import Repositories
from shared.utils.errors import PermissionDeniedError

router = APIRouter(prefix="/programs", tags=["Programs"])


# ── Catalog ───────────────────────────────────────────────────

@router.get("", response_model=list[Program])
async def list_catalog(repos: Repositories = Depends(get_repositories)):
    """Approved programs in catalog order. Public."""
    return [p for p in await repos.programs.all() if p.status == ProgramStatus.APPROVED]


@router.get("/mine", response_model=list[Program])
async def list_my_programs(
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    return await CrossReferenceResolver(repos).programs_owned_by(current_user.id)


@router.get("/activity", response_model=list[Activity])
async def list_my_activity(
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    """The provider's own entries from the activity log, newest first."""
    return await repos.activities.for_provider(current_user.id)


@router.get("/queue", response_model=list[Program])
async def list_review_queue(
    status_filter: Optional[str] = Query(ProgramStatus.PENDING.value, alias="status"),
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    """Admin view of programs by status (Pending by default)."""
    try:
        wanted = ProgramStatus(status_filter)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status_filter}")
    return [p for p in await repos.programs.all() if p.status == wanted]


# ── Provider ──────────────────────────────────────────────────

@router.post("", response_model=Program, status_code=status.HTTP_201_CREATED)
async def submit_program(
    data: ProgramCreateRequest,
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    """Submit a program for review. It starts Pending and the admin inbox is notified."""
    return await ProgramLifecycle(repos).submit(current_user, data.model_dump(exclude_none=True))


@router.patch("/{program_id}", response_model=Program)
async def update_program(
    program_id: str,
    data: ProgramUpdateRequest,
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    return await ProgramLifecycle(repos).update_fields(current_user, program_id, changes)


# ── Admin Review ──────────────────────────────────────────────

@router.post("/{program_id}/approve", response_model=Program)
async def approve_program(
    program_id: str,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    return await ProgramLifecycle(repos).approve(program_id)


@router.post("/{program_id}/reject", response_model=Program)
async def reject_program(
    program_id: str,
    data: ProgramRejectRequest,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    return await ProgramLifecycle(repos).reject(program_id, data.reason)


@router.get("/{program_id}/bookings", response_model=list[BookingViewResponse])
async def list_program_bookings(
    program_id: str,
    current_user: Actor = Depends(require_staff),
    repos: Repositories = Depends(get_repositories),
):
    """Bookings of one program. Providers only see their own programs."""
    program = await repos.programs.require(program_id)
    if current_user.role == UserRole.PROVIDER and program.provider_id != current_user.id:
        raise PermissionDeniedError("Not authorized to view these bookings")
    resolver = CrossReferenceResolver(repos)
    bookings = await resolver.bookings_for_program(program_id)
    return [BookingViewResponse.from_resolved(v) for v in await resolver.booking_views(bookings)]
