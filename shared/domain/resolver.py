"""
shared/domain/resolver.py
Cross-reference resolver: joins bookings, programs and reports by foreign
key to answer "which records belong to this actor".

Every operation is a pure read. A foreign key that no longer resolves is
left out of joins (or degraded to a placeholder in views), never raised.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from config.settings import settings
from shared.models.models import Booking, BookingStatus, Notification, Program, Report, UserRole, utcnow
from shared.store.repositories import Repositories


# ── Pure selectors ────────────────────────────────────────────

def owned_program_ids(programs: Iterable[Program], provider_id: str) -> Set[str]:
    return {p.id for p in programs if p.provider_id == provider_id}


def select_provider_bookings(
    bookings: Sequence[Booking], programs: Sequence[Program], provider_id: str
) -> List[Booking]:
    """
    Bookings belonging to a provider, matched by the denormalized
    `provider_id` OR by a program the provider owns. Older bookings only
    carry `program_id`, so both paths are checked. De-duplicated by id,
    store order preserved.
    """
    program_ids = owned_program_ids(programs, provider_id)
    seen: Set[str] = set()
    result = []
    for booking in bookings:
        if booking.id in seen:
            continue
        if booking.provider_id == provider_id or booking.program_id in program_ids:
            seen.add(booking.id)
            result.append(booking)
    return result


def select_provider_reports(
    reports: Sequence[Report], programs: Sequence[Program], provider_id: str
) -> List[Report]:
    program_ids = owned_program_ids(programs, provider_id)
    return [
        r for r in reports
        if r.provider_id == provider_id or (r.program_id is not None and r.program_id in program_ids)
    ]


UPCOMING_STATUSES = {BookingStatus.PENDING, BookingStatus.CONFIRMED}
CLOSED_STATUSES = {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


def select_upcoming(bookings: Sequence[Booking], now: datetime) -> List[Booking]:
    """Pending or Confirmed with tour_date >= now, soonest first."""
    return sorted(
        (b for b in bookings if b.status in UPCOMING_STATUSES and b.tour_date >= now),
        key=lambda b: b.tour_date,
    )


def select_past(bookings: Sequence[Booking], now: datetime) -> List[Booking]:
    """
    Completed or Cancelled whatever the date, plus anything else whose
    tour_date has passed. Most recent first.
    """
    return sorted(
        (b for b in bookings if b.status in CLOSED_STATUSES or b.tour_date < now),
        key=lambda b: b.tour_date,
        reverse=True,
    )


# ── Views ─────────────────────────────────────────────────────

@dataclass
class ResolvedBooking:
    """A booking joined to its program; `program` is None when it no longer resolves."""
    booking: Booking
    program: Optional[Program]
    title: str
    image: str


def resolve_booking(
    booking: Booking, program: Optional[Program], placeholder_image: str
) -> ResolvedBooking:
    title = booking.program_title or (program.title if program else None) or "Tour program"
    image = booking.program_image
    if not image and program and program.images:
        image = program.images[0]
    return ResolvedBooking(
        booking=booking,
        program=program,
        title=title,
        image=image or placeholder_image,
    )


# ── Resolver ──────────────────────────────────────────────────

class CrossReferenceResolver:
    def __init__(self, repos: Repositories, placeholder_image: Optional[str] = None):
        self.repos = repos
        self.placeholder_image = placeholder_image or settings.PLACEHOLDER_IMAGE_URL

    async def programs_owned_by(self, provider_id: str) -> List[Program]:
        return [p for p in await self.repos.programs.all() if p.provider_id == provider_id]

    async def bookings_for(self, actor_id: str, role: UserRole) -> List[Booking]:
        bookings = await self.repos.bookings.all()
        if role == UserRole.TOURIST:
            return [b for b in bookings if b.tourist_id == actor_id]
        if role == UserRole.PROVIDER:
            programs = await self.repos.programs.all()
            return select_provider_bookings(bookings, programs, actor_id)
        if role == UserRole.ADMIN:
            return bookings
        return []

    async def bookings_for_program(self, program_id: str) -> List[Booking]:
        return [b for b in await self.repos.bookings.all() if b.program_id == program_id]

    async def upcoming_bookings_for(self, tourist_id: str, now: Optional[datetime] = None) -> List[Booking]:
        bookings = await self.bookings_for(tourist_id, UserRole.TOURIST)
        return select_upcoming(bookings, now or utcnow())

    async def past_bookings_for(self, tourist_id: str, now: Optional[datetime] = None) -> List[Booking]:
        bookings = await self.bookings_for(tourist_id, UserRole.TOURIST)
        return select_past(bookings, now or utcnow())

    async def reports_for(self, provider_id: str) -> List[Report]:
        reports = await self.repos.provider_reports.all()
        programs = await self.repos.programs.all()
        return select_provider_reports(reports, programs, provider_id)

    async def reports_filed_by(self, reporter_id: str) -> List[Report]:
        return [r for r in await self.repos.reports.all() if r.reporter_id == reporter_id]

    async def notifications_for(self, user_id: str) -> List[Notification]:
        notifications = [n for n in await self.repos.notifications.all() if n.user_id == user_id]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    async def booking_views(self, bookings: Sequence[Booking]) -> List[ResolvedBooking]:
        programs = {p.id: p for p in await self.repos.programs.all()}
        return [
            resolve_booking(b, programs.get(b.program_id), self.placeholder_image)
            for b in bookings
        ]
