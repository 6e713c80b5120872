"""
services/dashboard/router.py
Role dashboards: stats plus the short lists each landing page shows.
Every figure is recomputed from the store on each request.
"""

from fastapi import APIRouter, Depends

from config.settings import settings
from config.storage import get_repositories
from shared.domain.aggregator import admin_stats, provider_stats, tourist_stats
from shared.domain.ranker import rank_recommendations
from shared.domain.resolver import CrossReferenceResolver
from shared.middleware.auth import require_admin, require_provider, require_tourist
from shared.models.models import Actor, ProgramStatus, ReportStatus, UserRole
from shared.schemas.schemas import (
    AdminDashboardResponse,
    AdminStatsResponse,
    BookingViewResponse,
    ProviderDashboardResponse,
    ProviderStatsResponse,
    RecommendationResponse,
    TouristDashboardResponse,
    TouristStatsResponse,
)
from shared.store.repositories import Repositories

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

TOURIST_UPCOMING_PREVIEW = 2
TOURIST_NOTIFICATION_PREVIEW = 3
ADMIN_PENDING_PREVIEW = 3
ADMIN_REPORT_PREVIEW = 4
ADMIN_PROGRAM_STATS_PREVIEW = 5
ADMIN_ACTIVITY_PREVIEW = 8


async def _recommendations(repos: Repositories, tourist_id: str) -> list[RecommendationResponse]:
    bookings = await CrossReferenceResolver(repos).bookings_for(tourist_id, UserRole.TOURIST)
    programs = await repos.programs.all()
    ranked = rank_recommendations(bookings, programs, limit=settings.RECOMMENDATION_LIMIT)
    return [
        RecommendationResponse.from_recommendation(r, settings.PLACEHOLDER_IMAGE_URL)
        for r in ranked
    ]


# ── Tourist ───────────────────────────────────────────────────

@router.get("/tourist", response_model=TouristDashboardResponse)
async def tourist_dashboard(
    current_user: Actor = Depends(require_tourist),
    repos: Repositories = Depends(get_repositories),
):
    resolver = CrossReferenceResolver(repos)
    bookings = await resolver.bookings_for(current_user.id, UserRole.TOURIST)
    upcoming = await resolver.upcoming_bookings_for(current_user.id)
    notifications = await resolver.notifications_for(current_user.id)

    stats = tourist_stats(upcoming, bookings, notifications)
    views = await resolver.booking_views(upcoming[:TOURIST_UPCOMING_PREVIEW])
    unread = [n for n in notifications if not n.read]

    return TouristDashboardResponse(
        stats=TouristStatsResponse.from_stats(stats),
        upcoming_bookings=[BookingViewResponse.from_resolved(v) for v in views],
        notifications=unread[:TOURIST_NOTIFICATION_PREVIEW],
        recommendations=await _recommendations(repos, current_user.id),
    )


@router.get("/tourist/recommendations", response_model=list[RecommendationResponse])
async def tourist_recommendations(
    current_user: Actor = Depends(require_tourist),
    repos: Repositories = Depends(get_repositories),
):
    """Trusted providers first, then new ones; never programs already booked."""
    return await _recommendations(repos, current_user.id)


# ── Provider ──────────────────────────────────────────────────

@router.get("/provider", response_model=ProviderDashboardResponse)
async def provider_dashboard(
    current_user: Actor = Depends(require_provider),
    repos: Repositories = Depends(get_repositories),
):
    resolver = CrossReferenceResolver(repos)
    programs = await resolver.programs_owned_by(current_user.id)
    bookings = await resolver.bookings_for(current_user.id, UserRole.PROVIDER)
    reports = await resolver.reports_for(current_user.id)

    recent = sorted(bookings, key=lambda b: b.created_at, reverse=True)
    return ProviderDashboardResponse(
        stats=ProviderStatsResponse.from_stats(provider_stats(programs, bookings, reports)),
        programs=programs,
        recent_bookings=recent[:settings.RECENT_BOOKINGS_LIMIT],
    )


# ── Admin ─────────────────────────────────────────────────────

@router.get("/admin", response_model=AdminDashboardResponse)
async def admin_dashboard(
    current_user: Actor = Depends(require_admin),
    repos: Repositories = Depends(get_repositories),
):
    reports = await repos.reports.all()
    programs = await repos.programs.all()
    bookings = await repos.bookings.all()

    stats = admin_stats(reports, programs, bookings)
    stats.program_bookings = stats.program_bookings[:ADMIN_PROGRAM_STATS_PREVIEW]

    pending = [p for p in programs if p.status == ProgramStatus.PENDING]
    new_reports = [r for r in reports if r.status == ReportStatus.NEW]
    return AdminDashboardResponse(
        stats=AdminStatsResponse.from_stats(stats),
        pending_programs=pending[:ADMIN_PENDING_PREVIEW],
        new_reports=new_reports[:ADMIN_REPORT_PREVIEW],
        recent_activities=await repos.activities.recent(ADMIN_ACTIVITY_PREVIEW),
    )
