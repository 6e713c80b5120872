"""
shared/domain/aggregator.py
Dashboard statistics derived from resolved record sets.

Money is summed as Decimal built from the stored values and is only
rounded to 2 places by the response schemas.
"""

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from shared.models.models import (
    Booking,
    BookingStatus,
    Notification,
    Program,
    ProgramStatus,
    Report,
    ReportStatus,
)


def to_money(value: float) -> Decimal:
    # str() keeps the stored decimal digits instead of the binary float expansion
    return Decimal(str(value))


def revenue(bookings: Iterable[Booking]) -> Decimal:
    """Sum of total_price over non-cancelled bookings."""
    return sum(
        (to_money(b.total_price) for b in bookings if b.status != BookingStatus.CANCELLED),
        Decimal("0"),
    )


def average_rating(programs: Sequence[Program]) -> float:
    if not programs:
        return 0.0
    return sum(p.rating for p in programs) / len(programs)


def count_unread(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


def count_unacknowledged(reports: Iterable[Report]) -> int:
    return sum(1 for r in reports if r.provider_status is None)


# ── Tourist ───────────────────────────────────────────────────

@dataclass
class TouristStats:
    trip_count: int
    total_spend: Decimal
    unread_notifications: int


def tourist_stats(
    upcoming: Sequence[Booking],
    bookings: Sequence[Booking],
    notifications: Sequence[Notification],
) -> TouristStats:
    return TouristStats(
        trip_count=len(upcoming),
        total_spend=revenue(bookings),
        unread_notifications=count_unread(notifications),
    )


# ── Provider ──────────────────────────────────────────────────

@dataclass
class ProviderStats:
    program_count: int
    booking_count: int
    revenue: Decimal
    average_rating: float
    unacknowledged_reports: int
    upcoming_bookings: int
    completed_bookings: int
    cancelled_bookings: int


def provider_stats(
    programs: Sequence[Program],
    bookings: Sequence[Booking],
    reports: Sequence[Report],
) -> ProviderStats:
    by_status = Counter(b.status for b in bookings)
    return ProviderStats(
        program_count=len(programs),
        booking_count=len(bookings),
        revenue=revenue(bookings),
        average_rating=average_rating(programs),
        unacknowledged_reports=count_unacknowledged(reports),
        upcoming_bookings=by_status[BookingStatus.PENDING] + by_status[BookingStatus.CONFIRMED],
        completed_bookings=by_status[BookingStatus.COMPLETED],
        cancelled_bookings=by_status[BookingStatus.CANCELLED],
    )


# ── Admin ─────────────────────────────────────────────────────

@dataclass
class ProgramBookingStats:
    program_id: str
    program_title: str
    company_name: str
    provider_id: str
    total_tourists: int
    status_counts: Dict[str, int]
    total_revenue: Decimal


@dataclass
class AdminStats:
    reports_by_status: Dict[str, int]
    programs_by_status: Dict[str, int]
    program_bookings: List[ProgramBookingStats] = field(default_factory=list)


def program_booking_stats(
    programs: Sequence[Program], bookings: Sequence[Booking]
) -> List[ProgramBookingStats]:
    """
    Per approved program with at least one booking, busiest first.
    Ties keep catalog order.
    """
    by_program: Dict[str, List[Booking]] = {}
    for booking in bookings:
        by_program.setdefault(booking.program_id, []).append(booking)

    stats = []
    for program in programs:
        if program.status != ProgramStatus.APPROVED:
            continue
        program_bookings = by_program.get(program.id, [])
        if not program_bookings:
            continue
        counts = Counter(b.status for b in program_bookings)
        stats.append(ProgramBookingStats(
            program_id=program.id,
            program_title=program.title,
            company_name=program.company_name or "",
            provider_id=program.provider_id,
            total_tourists=len(program_bookings),
            status_counts={s.value: counts[s] for s in BookingStatus},
            total_revenue=revenue(program_bookings),
        ))
    return sorted(stats, key=lambda s: s.total_tourists, reverse=True)


def admin_stats(
    reports: Sequence[Report],
    programs: Sequence[Program],
    bookings: Sequence[Booking],
) -> AdminStats:
    report_counts = Counter(r.status for r in reports)
    program_counts = Counter(p.status for p in programs)
    return AdminStats(
        reports_by_status={s.value: report_counts[s] for s in ReportStatus},
        programs_by_status={s.value: program_counts[s] for s in ProgramStatus},
        program_bookings=program_booking_stats(programs, bookings),
    )
