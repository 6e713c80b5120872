"""
shared/models/models.py
Persisted record models for the Luxor Tours domain store.

Records live as whole JSON arrays, one per namespace. On the wire every
field is camelCase (`programId`, `totalPrice`); in Python it is snake_case.
Unknown keys written by older clients are kept so a load/save cycle never
drops data.
"""

import random
import string
import time
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ── Enumerations ──────────────────────────────────────────────

class UserRole(str, PyEnum):
    TOURIST = "Tourist"
    PROVIDER = "LocalBusinessOwner"
    ADMIN = "Admin"


class ProgramStatus(str, PyEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class BookingStatus(str, PyEnum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ReportType(str, PyEnum):
    USER = "User"
    PROGRAM = "Program"
    BOOKING = "Booking"
    TECHNICAL = "Technical"
    OTHER = "Other"


class ReportPriority(str, PyEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ReportStatus(str, PyEnum):
    NEW = "New"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class ProviderReportStatus(str, PyEnum):
    """Provider-side flag. Unset means new / unacknowledged."""
    ACKNOWLEDGED = "Acknowledged"
    RESOLVED = "Resolved"


class NotificationStatus(str, PyEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ActivityType(str, PyEnum):
    SERVICE_ADDED = "SERVICE_ADDED"
    SERVICE_UPDATED = "SERVICE_UPDATED"
    SERVICE_DELETED = "SERVICE_DELETED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    LOGIN = "LOGIN"


# ── Helpers ───────────────────────────────────────────────────

def _as_utc(value: datetime) -> datetime:
    # Date-only and naive values from older clients are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_record_id(prefix: str) -> str:
    """Generate an opaque id like booking-1718000000000-x7k9m2qa1."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


# ── Base ──────────────────────────────────────────────────────

class Record(BaseModel):
    """Base for every persisted record."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
        allow_inf_nan=False,
    )

    id: str = Field(..., min_length=1)


# ── Records ───────────────────────────────────────────────────

class Program(Record):
    """
    A tour program offered by a provider.
    Status transitions: Pending → Approved | Rejected. Never hard-deleted.
    """
    provider_id: str
    title: str
    price: float = Field(..., ge=0)
    duration: Optional[float] = Field(None, ge=0)
    status: ProgramStatus = ProgramStatus.PENDING
    images: List[str] = Field(default_factory=list)
    company_name: Optional[str] = None
    provider_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    rating: float = Field(0, ge=0, le=5)
    bookings: int = Field(0, ge=0)    # Denormalized booking counter
    submitted_at: Optional[UtcDatetime] = None
    reviewed_at: Optional[UtcDatetime] = None
    rejection_reason: Optional[str] = None


class Booking(Record):
    """
    A tourist's reservation of a program.
    Status transitions: Pending → Confirmed → Completed, Pending|Confirmed → Cancelled.

    `provider_id` is optional: bookings written before it was denormalized
    only carry `program_id`.
    """
    program_id: str
    provider_id: Optional[str] = None
    tourist_id: str
    tourist_name: Optional[str] = None
    program_title: Optional[str] = None
    program_image: Optional[str] = None
    company_name: Optional[str] = None
    tour_date: UtcDatetime
    adults: Optional[int] = Field(None, ge=0)
    children: Optional[int] = Field(None, ge=0)
    total_price: float = Field(..., ge=0)
    status: BookingStatus = BookingStatus.PENDING
    special_requests: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: Optional[UtcDatetime] = None


class Report(Record):
    """
    An issue raised by a tourist.

    Dual-homed: the admin queue owns `status`, `priority`, `admin_notes` and
    `resolved_at`; the provider mirror additionally owns `provider_status`,
    `provider_note`, `acknowledged_at` and `provider_resolved_at`.
    """
    reporter_id: str
    reporter_name: Optional[str] = None
    type: ReportType
    subject: str
    description: str
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    priority: ReportPriority = ReportPriority.MEDIUM
    status: ReportStatus = ReportStatus.NEW
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None
    program_id: Optional[str] = None
    program_title: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utcnow)
    resolved_at: Optional[UtcDatetime] = None

    # Provider-owned
    provider_status: Optional[ProviderReportStatus] = None
    provider_note: Optional[str] = None
    acknowledged_at: Optional[UtcDatetime] = None
    provider_resolved_at: Optional[UtcDatetime] = None


class Notification(Record):
    """In-app notification. Only the recipient may flip `read`, and only to True."""
    user_id: str
    type: Optional[str] = None
    title: str = "Notification"
    message: str
    status: NotificationStatus = NotificationStatus.INFO
    read: bool = False
    booking_id: Optional[str] = None
    program_id: Optional[str] = None
    link: Optional[str] = None
    created_at: UtcDatetime = Field(default_factory=utcnow)


class Activity(Record):
    """
    One entry of the provider activity log, shown on the admin dashboard.
    Stored newest first and capped; older entries fall off the end.
    """
    provider_id: str
    provider_name: Optional[str] = None
    company_name: Optional[str] = None
    type: ActivityType
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: UtcDatetime = Field(default_factory=utcnow)


# ── Auth Context ──────────────────────────────────────────────

class Actor(BaseModel):
    """The viewer as supplied by the upstream auth context."""
    id: str
    role: UserRole
    name: Optional[str] = None
    company_name: Optional[str] = None
