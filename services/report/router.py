"""
services/report/router.py
Report submission, the admin report queue and the provider report queue.

The two queues are separate collections. Admin endpoints write only
status/priority/adminNotes/resolvedAt; provider endpoints write only
providerStatus/providerNote/acknowledgedAt/providerResolvedAt.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from config.storage import get_repositories
from shared.domain.lifecycle import ReportLifecycle
from shared.domain.resolver import CrossReferenceResolver
from shared.middleware.auth import (
    get_current_user,
    get_optional_user,
    require_admin,
    require_provider,
)
from shared.models.models import Actor, Report, ReportStatus, ReportType
from shared.schemas.schemas import (
    ProviderNoteRequest,
    ProviderResolveRequest,
    ReportCreateRequest,
    ReportNotesRequest,
    ReportPriorityRequest,
)
from shared.store.repositories import Repositories

router = APIRouter(prefix="/reports", tags=["Reports"])


# ── Submission ────────────────────────────────────────────────

@router.post("", response_model=Report, status_code=status.HTTP_201_CREATED)
async def submit_report(
    data: ReportCreateRequest,
    current_user: Optional[Actor] = Depends(get_optional_user),
    repos: Repositories = Depends(get_repositories),
):
    """
    File a report. Guests may report too (reporterId "guest").
    Reports that name a program or provider are also routed to that provider.
    """
    return await ReportLifecycle(repos).submit(
        current_user,
        type=data.type,
        subject=data.subject,
        description=data.description,
        priority=data.priority,
        program_id=data.program_id,
        provider_id=data.provider_id,
        booking_id=data.booking_id,
    )


@router.get("/mine", response_model=list[Report])
async def list_my_reports(
    current_user: Actor = Depends(get_current_user),
    repos: Repositories = Depends(get_repositories),
):
    return await CrossReferenceResolver(repos).reports_filed_by(current_user.id)


# ── Admin Queue ───────────────────────────────────────────────

@router.get("", response_model=list[Report])
async def list_reports(
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[str] = Query(None, alias="type"),
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    """Admin report queue, newest first, optionally filtered by status and type."""
    try:
        wanted_status = ReportStatus(status_filter) if status_filter else None
        wanted_type = ReportType(type_filter) if type_filter else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    reports = await repos.reports.all()
    if wanted_status:
        reports = [r for r in reports if r.status == wanted_status]
    if wanted_type:
        reports = [r for r in reports if r.type == wanted_type]
    return reports


@router.post("/{report_id}/start", response_model=Report)
async def start_report(
    report_id: str,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    """Status: New → In Progress."""
    return await ReportLifecycle(repos).admin_start(report_id)


@router.post("/{report_id}/notes", response_model=Report)
async def add_admin_notes(
    report_id: str,
    data: ReportNotesRequest,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    return await ReportLifecycle(repos).admin_add_notes(report_id, data.notes)


@router.post("/{report_id}/resolve", response_model=Report)
async def resolve_report(
    report_id: str,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    """Admin resolution. Never touches the provider's own status."""
    return await ReportLifecycle(repos).admin_resolve(report_id)


@router.post("/{report_id}/priority", response_model=Report)
async def set_report_priority(
    report_id: str,
    data: ReportPriorityRequest,
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    return await ReportLifecycle(repos).admin_set_priority(report_id, data.priority)


# ── Provider Queue ────────────────────────────────────────────

@router.get("/provider", response_model=list[Report])
async def list_provider_reports(
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    """Reports about the provider or any of their programs, newest first."""
    return await CrossReferenceResolver(repos).reports_for(current_user.id)


@router.post("/provider/{report_id}/acknowledge", response_model=Report)
async def acknowledge_report(
    report_id: str,
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    return await ReportLifecycle(repos).provider_acknowledge(current_user, report_id)


@router.post("/provider/{report_id}/note", response_model=Report)
async def add_provider_note(
    report_id: str,
    data: ProviderNoteRequest,
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    return await ReportLifecycle(repos).provider_add_note(current_user, report_id, data.note)


@router.post("/provider/{report_id}/resolve", response_model=Report)
async def provider_resolve_report(
    report_id: str,
    data: Optional[ProviderResolveRequest] = None,
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    """Provider resolution. Sets providerStatus only; the admin status is left alone."""
    note = data.note if data else None
    return await ReportLifecycle(repos).provider_resolve(current_user, report_id, note=note)
