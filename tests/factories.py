"""
tests/factories.py
Record builders for seeding the store directly.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from shared.models.models import (
    Activity,
    ActivityType,
    Actor,
    Booking,
    BookingStatus,
    Notification,
    Program,
    ProgramStatus,
    Report,
    ReportType,
    UserRole,
)


def days_from_now(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def make_actor(
    id: str, role: UserRole, name: Optional[str] = None, company_name: Optional[str] = None
) -> Actor:
    return Actor(id=id, role=role, name=name, company_name=company_name)


def user_headers(actor: Actor) -> dict:
    headers = {"X-User-Id": actor.id, "X-User-Role": actor.role.value}
    if actor.name:
        headers["X-User-Name"] = actor.name
    if actor.company_name:
        headers["X-User-Company"] = actor.company_name
    return headers


def make_program(id: str = "p1", provider_id: str = "prov-1", **overrides) -> Program:
    fields = {
        "id": id,
        "provider_id": provider_id,
        "title": f"Program {id}",
        "price": 50,
        "duration": 4,
        "status": ProgramStatus.APPROVED,
        "company_name": "Nile Tours",
    }
    fields.update(overrides)
    return Program(**fields)


def make_booking(
    id: str = "b1", program_id: str = "p1", tourist_id: str = "tourist-1", **overrides
) -> Booking:
    fields = {
        "id": id,
        "program_id": program_id,
        "tourist_id": tourist_id,
        "tourist_name": "Mona",
        "tour_date": days_from_now(7),
        "total_price": 100,
        "status": BookingStatus.PENDING,
    }
    fields.update(overrides)
    return Booking(**fields)


def make_report(id: str = "r1", **overrides) -> Report:
    fields = {
        "id": id,
        "reporter_id": "tourist-1",
        "reporter_name": "Mona",
        "type": ReportType.PROGRAM,
        "subject": "Late pickup",
        "description": "The guide arrived an hour late.",
    }
    fields.update(overrides)
    return Report(**fields)


def make_notification(id: str = "n1", user_id: str = "tourist-1", **overrides) -> Notification:
    fields = {
        "id": id,
        "user_id": user_id,
        "title": "Hello",
        "message": "Something happened",
    }
    fields.update(overrides)
    return Notification(**fields)


def make_activity(id: str = "a1", provider_id: str = "prov-1", **overrides) -> Activity:
    fields = {
        "id": id,
        "provider_id": provider_id,
        "provider_name": "Karim",
        "company_name": "Nile Tours",
        "type": ActivityType.SERVICE_ADDED,
        "description": f"Added a new service: Program {id}",
    }
    fields.update(overrides)
    return Activity(**fields)
