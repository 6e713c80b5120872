"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the API.
Field names are camelCase on the wire, like the persisted records.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from shared.domain.aggregator import AdminStats, ProviderStats, TouristStats
from shared.domain.ranker import Recommendation
from shared.domain.resolver import ResolvedBooking
from shared.models.models import (
    Activity,
    Booking,
    Notification,
    Program,
    Report,
    ReportPriority,
    ReportType,
)


def _round_money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _round_rating(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# Rounded only here, at presentation time
Money = Annotated[Decimal, PlainSerializer(_round_money, return_type=float)]
Rating = Annotated[float, PlainSerializer(_round_rating, return_type=float)]


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
    )


# ── Program ───────────────────────────────────────────────────

class ProgramCreateRequest(BaseSchema):
    title: str = Field(..., min_length=3, max_length=200)
    price: float = Field(..., ge=0)
    duration: Optional[float] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[str] = Field(None, max_length=200)
    company_name: Optional[str] = Field(None, max_length=200)


class ProgramUpdateRequest(BaseSchema):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[str] = Field(None, max_length=200)
    company_name: Optional[str] = Field(None, max_length=200)


class ProgramRejectRequest(BaseSchema):
    reason: str = Field(..., min_length=5, max_length=500)


# ── Booking ───────────────────────────────────────────────────

class BookingCreateRequest(BaseSchema):
    program_id: str
    tour_date: datetime
    adults: int = Field(1, ge=1, le=20)
    children: int = Field(0, ge=0, le=20)
    total_price: float = Field(..., ge=0)
    tourist_name: Optional[str] = Field(None, max_length=100)
    special_requests: Optional[str] = Field(None, max_length=1000)

    @field_validator("tour_date")
    @classmethod
    def validate_tour_date(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v.date() < datetime.now(timezone.utc).date():
            raise ValueError("Tour date must not be in the past")
        return v


class BookingViewResponse(BaseSchema):
    """A booking joined to its program, with placeholders for anything missing."""
    booking: Booking
    title: str
    image: str
    program_available: bool

    @classmethod
    def from_resolved(cls, resolved: ResolvedBooking) -> "BookingViewResponse":
        return cls(
            booking=resolved.booking,
            title=resolved.title,
            image=resolved.image,
            program_available=resolved.program is not None,
        )


# ── Report ────────────────────────────────────────────────────

class ReportCreateRequest(BaseSchema):
    type: ReportType
    subject: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    priority: ReportPriority = ReportPriority.MEDIUM
    program_id: Optional[str] = None
    provider_id: Optional[str] = None
    booking_id: Optional[str] = None


class ReportNotesRequest(BaseSchema):
    notes: str = Field(..., min_length=1, max_length=5000)


class ReportPriorityRequest(BaseSchema):
    priority: ReportPriority


class ProviderNoteRequest(BaseSchema):
    note: str = Field(..., min_length=1, max_length=5000)


class ProviderResolveRequest(BaseSchema):
    note: Optional[str] = Field(None, max_length=5000)


# ── Notification ──────────────────────────────────────────────

class UnreadCountResponse(BaseSchema):
    unread_count: int


# ── Dashboards ────────────────────────────────────────────────

class RecommendationResponse(BaseSchema):
    id: str
    name: str
    company: str
    image: str
    price: float
    duration: Optional[float]
    provider_id: str
    is_trusted: bool

    @classmethod
    def from_recommendation(cls, rec: Recommendation, placeholder_image: str) -> "RecommendationResponse":
        program = rec.program
        return cls(
            id=program.id,
            name=program.title,
            company=program.company_name or "Tour Company",
            image=program.images[0] if program.images else placeholder_image,
            price=program.price,
            duration=program.duration,
            provider_id=program.provider_id,
            is_trusted=rec.is_trusted,
        )


class TouristStatsResponse(BaseSchema):
    trip_count: int
    total_spend: Money
    unread_notifications: int

    @classmethod
    def from_stats(cls, stats: TouristStats) -> "TouristStatsResponse":
        return cls.model_validate(stats)


class TouristDashboardResponse(BaseSchema):
    stats: TouristStatsResponse
    upcoming_bookings: List[BookingViewResponse]
    notifications: List[Notification]
    recommendations: List[RecommendationResponse]


class ProviderStatsResponse(BaseSchema):
    program_count: int
    booking_count: int
    revenue: Money
    average_rating: Rating
    unacknowledged_reports: int
    upcoming_bookings: int
    completed_bookings: int
    cancelled_bookings: int

    @classmethod
    def from_stats(cls, stats: ProviderStats) -> "ProviderStatsResponse":
        return cls.model_validate(stats)


class ProviderDashboardResponse(BaseSchema):
    stats: ProviderStatsResponse
    programs: List[Program]
    recent_bookings: List[Booking]


class ProgramBookingStatsResponse(BaseSchema):
    program_id: str
    program_title: str
    company_name: str
    provider_id: str
    total_tourists: int
    status_counts: Dict[str, int]
    total_revenue: Money


class AdminStatsResponse(BaseSchema):
    reports_by_status: Dict[str, int]
    programs_by_status: Dict[str, int]
    program_bookings: List[ProgramBookingStatsResponse]

    @classmethod
    def from_stats(cls, stats: AdminStats) -> "AdminStatsResponse":
        return cls(
            reports_by_status=stats.reports_by_status,
            programs_by_status=stats.programs_by_status,
            program_bookings=[
                ProgramBookingStatsResponse.model_validate(s) for s in stats.program_bookings
            ],
        )


class AdminDashboardResponse(BaseSchema):
    stats: AdminStatsResponse
    pending_programs: List[Program]
    new_reports: List[Report]
    recent_activities: List[Activity]
