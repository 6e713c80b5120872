"""
shared/domain/lifecycle.py
Status state machines and the writes that drive them.

Programs:       Pending → Approved | Rejected
Bookings:       Pending → Confirmed → Completed, Pending|Confirmed → Cancelled
Reports, admin: New → In Progress → Resolved (terminal)
Reports, prov.: unset → Acknowledged → Resolved (terminal)
Notifications:  unread → read (recipient only, one id at a time)

Statuses only move forward. The admin and provider report paths each own
their own fields and never write the other's.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set, Type, TypeVar

from pydantic import ValidationError

from config.settings import settings
from shared.domain.resolver import owned_program_ids, select_provider_bookings
from shared.models.models import (
    Activity,
    ActivityType,
    Actor,
    Booking,
    BookingStatus,
    Notification,
    NotificationStatus,
    Program,
    ProgramStatus,
    ProviderReportStatus,
    Record,
    Report,
    ReportPriority,
    ReportStatus,
    ReportType,
    UserRole,
    generate_record_id,
    utcnow,
)
from shared.store.repositories import Repositories
from shared.utils.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


# ── Transition tables ─────────────────────────────────────────

PROGRAM_TRANSITIONS: Dict[ProgramStatus, Set[ProgramStatus]] = {
    ProgramStatus.PENDING: {ProgramStatus.APPROVED, ProgramStatus.REJECTED},
    ProgramStatus.APPROVED: set(),
    ProgramStatus.REJECTED: set(),
}

BOOKING_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

REPORT_TRANSITIONS: Dict[ReportStatus, Set[ReportStatus]] = {
    ReportStatus.NEW: {ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED},
    ReportStatus.IN_PROGRESS: {ReportStatus.RESOLVED},
    ReportStatus.RESOLVED: set(),
}

PROVIDER_REPORT_TRANSITIONS: Dict[Optional[ProviderReportStatus], Set[ProviderReportStatus]] = {
    None: {ProviderReportStatus.ACKNOWLEDGED, ProviderReportStatus.RESOLVED},
    ProviderReportStatus.ACKNOWLEDGED: {ProviderReportStatus.RESOLVED},
    ProviderReportStatus.RESOLVED: set(),
}

# Fields the admin path copies into the provider mirror
ADMIN_REPORT_FIELDS = ("status", "priority", "admin_notes", "resolved_at")


def check_transition(kind: str, table: Mapping, current, target) -> None:
    if target not in table.get(current, set()):
        raise InvalidTransitionError(
            kind,
            current.value if current is not None else None,
            target.value,
        )


# ── Helpers ───────────────────────────────────────────────────

@contextmanager
def _validated():
    """Turn pydantic failures at the write boundary into ValidationFailedError."""
    try:
        yield
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "record"
        raise ValidationFailedError(f"{location}: {first['msg']}") from e


def _build(model: Type[R], fields: Mapping[str, Any], **overrides: Any) -> R:
    """Validate caller fields with server-owned `overrides` taking precedence."""
    with _validated():
        return model.model_validate({**fields, **overrides})


# ── Notifications ─────────────────────────────────────────────

class NotificationLifecycle:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def notify(
        self,
        user_id: str,
        message: str,
        title: str = "Notification",
        type: Optional[str] = None,
        status: NotificationStatus = NotificationStatus.INFO,
        booking_id: Optional[str] = None,
        program_id: Optional[str] = None,
        link: Optional[str] = None,
    ) -> Optional[Notification]:
        """
        Best-effort: a failed notification is logged and never fails the
        write that triggered it.
        """
        try:
            notification = Notification(
                id=generate_record_id("notif"),
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                status=status,
                booking_id=booking_id,
                program_id=program_id,
                link=link,
            )
            return await self.repos.notifications.add(notification)
        except Exception as e:
            logger.warning(f"Notification to {user_id} ({type}) failed: {e}")
            return None

    async def notify_admins(self, message: str, **kwargs) -> Optional[Notification]:
        return await self.notify(settings.ADMIN_INBOX_USER_ID, message, **kwargs)

    async def mark_read(self, notification_id: str, recipient_id: str) -> Notification:
        """Unread → read. Already-read notifications are left as they are."""
        notification = await self.repos.notifications.get(notification_id)
        if notification is None or notification.user_id != recipient_id:
            raise RecordNotFoundError("Notification", notification_id)
        if notification.read:
            return notification

        def _mark(n: Notification) -> None:
            if n.user_id != recipient_id:
                raise RecordNotFoundError("Notification", notification_id)
            n.read = True

        return await self.repos.notifications.update(notification_id, _mark)


# ── Activity Log ──────────────────────────────────────────────

class ActivityLog:
    def __init__(self, repos: Repositories):
        self.repos = repos

    async def record(
        self,
        provider: Actor,
        type: ActivityType,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Activity]:
        """Best-effort, like notifications: a failed entry never fails the write it describes."""
        try:
            activity = Activity(
                id=generate_record_id("activity"),
                provider_id=provider.id,
                provider_name=provider.name,
                company_name=provider.company_name,
                type=type,
                description=description,
                metadata=metadata or {},
            )
            return await self.repos.activities.add(activity)
        except Exception as e:
            logger.warning(f"Activity {type.value} for provider {provider.id} not logged: {e}")
            return None


# ── Programs ──────────────────────────────────────────────────

class ProgramLifecycle:
    # Fields a provider may edit after submission
    EDITABLE_FIELDS = {"title", "price", "duration", "images", "description", "location", "company_name"}

    def __init__(
        self,
        repos: Repositories,
        notifier: Optional[NotificationLifecycle] = None,
        activity_log: Optional[ActivityLog] = None,
    ):
        self.repos = repos
        self.notifier = notifier or NotificationLifecycle(repos)
        self.activity_log = activity_log or ActivityLog(repos)

    async def submit(self, provider: Actor, fields: Dict[str, Any], now: Optional[datetime] = None) -> Program:
        if provider.role != UserRole.PROVIDER:
            raise PermissionDeniedError("Only providers can submit programs")

        program = _build(
            Program,
            fields,
            id=generate_record_id("prog"),
            provider_id=provider.id,
            provider_name=provider.name,
            company_name=fields.get("company_name") or provider.company_name or "My Company",
            status=ProgramStatus.PENDING,
            submitted_at=now or utcnow(),
        )
        await self.repos.programs.add(program)
        logger.info(f"Program {program.id} submitted by provider {provider.id}")

        await self.activity_log.record(
            provider,
            ActivityType.SERVICE_ADDED,
            f"Added a new service: {program.title}",
            metadata={
                "programId": program.id,
                "programTitle": program.title,
                "price": program.price,
                "location": program.location,
            },
        )
        await self.notifier.notify_admins(
            f"{program.company_name} submitted \"{program.title}\" for review",
            title="New Program Pending Approval",
            type="new_program",
            program_id=program.id,
        )
        return program

    async def update_fields(self, provider: Actor, program_id: str, changes: Dict[str, Any]) -> Program:
        unknown = set(changes) - self.EDITABLE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Fields not editable: {', '.join(sorted(unknown))}")

        def _edit(program: Program) -> None:
            if program.provider_id != provider.id:
                raise PermissionDeniedError("Not authorized to edit this program")
            with _validated():
                for name, value in changes.items():
                    setattr(program, name, value)

        program = await self.repos.programs.update(program_id, _edit)
        await self.activity_log.record(
            provider,
            ActivityType.SERVICE_UPDATED,
            f"Updated a service: {program.title}",
            metadata={"programId": program.id, "programTitle": program.title, "fields": sorted(changes)},
        )
        return program

    async def _review(self, program_id: str, target: ProgramStatus, reason: Optional[str], now: Optional[datetime]) -> Program:
        def _apply(program: Program) -> None:
            check_transition("program", PROGRAM_TRANSITIONS, program.status, target)
            program.status = target
            program.reviewed_at = now or utcnow()
            if reason:
                program.rejection_reason = reason

        program = await self.repos.programs.update(program_id, _apply)
        logger.info(f"Program {program_id} {target.value.lower()}")
        return program

    async def approve(self, program_id: str, now: Optional[datetime] = None) -> Program:
        program = await self._review(program_id, ProgramStatus.APPROVED, None, now)
        await self.notifier.notify(
            program.provider_id,
            f"\"{program.title}\" is now live in the catalog.",
            title="Program Approved ✨",
            type="program_approved",
            status=NotificationStatus.SUCCESS,
            program_id=program.id,
        )
        return program

    async def reject(self, program_id: str, reason: str, now: Optional[datetime] = None) -> Program:
        if not reason or not reason.strip():
            raise ValidationFailedError("A rejection reason is required")
        program = await self._review(program_id, ProgramStatus.REJECTED, reason.strip(), now)
        await self.notifier.notify(
            program.provider_id,
            f"\"{program.title}\" was not approved. Reason: {program.rejection_reason}",
            title="Program Rejected",
            type="program_rejected",
            status=NotificationStatus.WARNING,
            program_id=program.id,
        )
        return program


# ── Bookings ──────────────────────────────────────────────────

_BOOKING_STATUS_MESSAGES = {
    BookingStatus.CONFIRMED: (
        "Booking Confirmed! 🎉",
        "Your booking for \"{title}\" has been confirmed by {company}!",
        NotificationStatus.SUCCESS,
    ),
    BookingStatus.COMPLETED: (
        "Trip Completed",
        "Your trip \"{title}\" has been completed. Hope you enjoyed it!",
        NotificationStatus.SUCCESS,
    ),
    BookingStatus.CANCELLED: (
        "Booking Cancelled",
        "Your booking for \"{title}\" has been cancelled.",
        NotificationStatus.WARNING,
    ),
}


class BookingLifecycle:
    def __init__(self, repos: Repositories, notifier: Optional[NotificationLifecycle] = None):
        self.repos = repos
        self.notifier = notifier or NotificationLifecycle(repos)

    async def create(self, tourist: Actor, fields: Dict[str, Any], now: Optional[datetime] = None) -> Booking:
        """
        Book an approved program. Provider id, title, image and company are
        copied from the program so later joins don't need it.
        """
        if tourist.role != UserRole.TOURIST:
            raise PermissionDeniedError("Only tourists can create bookings")

        program_id = fields.get("program_id")
        program = await self.repos.programs.get(program_id) if program_id else None
        if program is None:
            raise RecordNotFoundError("Program", program_id or "")
        if program.status != ProgramStatus.APPROVED:
            raise ValidationFailedError("Program is not open for booking")

        booking = _build(
            Booking,
            fields,
            id=generate_record_id("booking"),
            provider_id=program.provider_id,
            tourist_id=tourist.id,
            tourist_name=fields.get("tourist_name") or tourist.name,
            program_title=program.title,
            program_image=program.images[0] if program.images else None,
            company_name=program.company_name,
            status=BookingStatus.PENDING,
            created_at=now or utcnow(),
        )
        await self.repos.bookings.add(booking)
        logger.info(f"Booking {booking.id} created for program {program.id}")

        # Separate write: if it fails the counter lags the real booking count
        await self._bump_program_counter(program.id)
        await self.notifier.notify(
            program.provider_id,
            f"{booking.tourist_name or 'A tourist'} booked \"{program.title}\" for {booking.tour_date.date().isoformat()}",
            title="New Booking Received",
            type="new_booking",
            booking_id=booking.id,
        )
        return booking

    async def _bump_program_counter(self, program_id: str) -> None:
        def _bump(program: Program) -> None:
            program.bookings += 1

        try:
            await self.repos.programs.update(program_id, _bump)
        except Exception as e:
            logger.warning(f"Booking counter for program {program_id} not updated: {e}")

    async def _authorize(self, actor: Actor, booking: Booking, target: BookingStatus) -> None:
        if actor.role == UserRole.ADMIN:
            return
        if actor.role == UserRole.TOURIST:
            if booking.tourist_id == actor.id and target == BookingStatus.CANCELLED:
                return
            raise PermissionDeniedError("Not authorized to change this booking")
        if actor.role == UserRole.PROVIDER:
            programs = await self.repos.programs.all()
            if select_provider_bookings([booking], programs, actor.id):
                return
        raise PermissionDeniedError("Not authorized to change this booking")

    async def transition(
        self, actor: Actor, booking_id: str, target: BookingStatus, now: Optional[datetime] = None
    ) -> Booking:
        current = await self.repos.bookings.require(booking_id)
        await self._authorize(actor, current, target)

        previous: List[BookingStatus] = []

        def _apply(booking: Booking) -> None:
            check_transition("booking", BOOKING_TRANSITIONS, booking.status, target)
            previous.append(booking.status)
            booking.status = target
            booking.updated_at = now or utcnow()

        booking = await self.repos.bookings.update(booking_id, _apply)
        logger.info(f"Booking {booking_id}: {previous[0].value} → {target.value} by {actor.role.value}")

        title, template, status = _BOOKING_STATUS_MESSAGES[target]
        await self.notifier.notify(
            booking.tourist_id,
            template.format(title=booking.program_title, company=booking.company_name or "the provider"),
            title=title,
            type="status_change",
            status=status,
            booking_id=booking.id,
        )
        await self.notifier.notify_admins(
            f"{booking.company_name or 'Provider'} {target.value.lower()} booking for "
            f"\"{booking.program_title}\" by {booking.tourist_name}",
            title=f"Booking {target.value}",
            type="booking_update",
            booking_id=booking.id,
        )
        return booking

    async def confirm(self, actor: Actor, booking_id: str) -> Booking:
        return await self.transition(actor, booking_id, BookingStatus.CONFIRMED)

    async def complete(self, actor: Actor, booking_id: str) -> Booking:
        return await self.transition(actor, booking_id, BookingStatus.COMPLETED)

    async def cancel(self, actor: Actor, booking_id: str) -> Booking:
        return await self.transition(actor, booking_id, BookingStatus.CANCELLED)


# ── Reports ───────────────────────────────────────────────────

class ReportLifecycle:
    def __init__(self, repos: Repositories, notifier: Optional[NotificationLifecycle] = None):
        self.repos = repos
        self.notifier = notifier or NotificationLifecycle(repos)

    # Submission

    async def submit(
        self,
        reporter: Optional[Actor],
        type: ReportType,
        subject: str,
        description: str,
        priority: ReportPriority = ReportPriority.MEDIUM,
        program_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        booking_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Report:
        """
        File a report in the admin queue. When it points at a provider,
        directly or through a program, it is also mirrored into the
        provider queue and the provider is notified.
        """
        subject, description = (subject or "").strip(), (description or "").strip()
        if not subject or not description:
            raise ValidationFailedError("Subject and description are required")

        fields: Dict[str, Any] = {}
        if program_id:
            program = await self.repos.programs.get(program_id)
            fields.update(program_id=program_id, target_id=program_id, target_type="Tour Program")
            if program is not None:
                provider_id = provider_id or program.provider_id
                fields.update(
                    program_title=program.title,
                    provider_name=program.company_name or program.provider_name or "Service Provider",
                )
        elif booking_id and booking_id.strip():
            fields.update(target_id=booking_id.strip(), target_type="Booking")

        report = _build(
            Report,
            fields,
            id=generate_record_id("rep"),
            reporter_id=reporter.id if reporter else "guest",
            reporter_name=(reporter.name if reporter else None) or "Anonymous",
            type=type,
            subject=subject,
            description=description,
            priority=priority,
            status=ReportStatus.NEW,
            provider_id=provider_id,
            created_at=now or utcnow(),
        )
        await self.repos.reports.add(report)

        if report.provider_id:
            await self.repos.provider_reports.add(report.model_copy(deep=True))
            await self.notifier.notify(
                report.provider_id,
                f"New tourist report: \"{report.subject}\" ({report.priority.value} priority)",
                title="New Report",
                type="report",
                status=NotificationStatus.WARNING,
                link="/provider/reports",
            )
            logger.info(f"Report {report.id} routed to provider {report.provider_id}")
        else:
            logger.info(f"Report {report.id} filed to admin queue only (no provider reference)")
        return report

    # Admin path: reports namespace, admin-owned fields only

    async def _admin_update(self, report_id: str, mutate) -> Report:
        report = await self.repos.reports.update(report_id, mutate)
        await self._mirror_admin_fields(report)
        return report

    async def _mirror_admin_fields(self, report: Report) -> None:
        """Copy admin-owned fields onto the provider copy, if there is one."""
        def _copy(records: List[Report]) -> List[Report]:
            for mirrored in records:
                if mirrored.id == report.id:
                    for name in ADMIN_REPORT_FIELDS:
                        setattr(mirrored, name, getattr(report, name))
            return records

        if not report.provider_id:
            return
        try:
            await self.repos.provider_reports.transform(_copy)
        except Exception as e:
            logger.warning(f"Provider copy of report {report.id} not refreshed: {e}")

    async def admin_start(self, report_id: str) -> Report:
        def _apply(report: Report) -> None:
            check_transition("report", REPORT_TRANSITIONS, report.status, ReportStatus.IN_PROGRESS)
            report.status = ReportStatus.IN_PROGRESS

        return await self._admin_update(report_id, _apply)

    async def admin_add_notes(self, report_id: str, notes: str) -> Report:
        """Save admin notes. A New report moves to In Progress."""
        def _apply(report: Report) -> None:
            report.admin_notes = notes
            if report.status == ReportStatus.NEW:
                report.status = ReportStatus.IN_PROGRESS

        return await self._admin_update(report_id, _apply)

    async def admin_resolve(self, report_id: str, now: Optional[datetime] = None) -> Report:
        def _apply(report: Report) -> None:
            check_transition("report", REPORT_TRANSITIONS, report.status, ReportStatus.RESOLVED)
            report.status = ReportStatus.RESOLVED
            report.resolved_at = now or utcnow()

        report = await self._admin_update(report_id, _apply)
        if report.reporter_id != "guest":
            await self.notifier.notify(
                report.reporter_id,
                f"Your report \"{report.subject}\" has been resolved. ✅",
                title="Report Resolved",
                type="report_resolved",
                status=NotificationStatus.SUCCESS,
            )
        return report

    async def admin_set_priority(self, report_id: str, priority: ReportPriority) -> Report:
        def _apply(report: Report) -> None:
            report.priority = priority

        return await self._admin_update(report_id, _apply)

    # Provider path: providerReports namespace, provider-owned fields only

    async def _provider_update(self, provider: Actor, report_id: str, mutate) -> Report:
        programs = await self.repos.programs.all()
        program_ids = owned_program_ids(programs, provider.id)

        def _apply(report: Report) -> None:
            owns = report.provider_id == provider.id or (
                report.program_id is not None and report.program_id in program_ids
            )
            if not owns:
                raise RecordNotFoundError("Report", report_id)
            mutate(report)

        return await self.repos.provider_reports.update(report_id, _apply)

    async def provider_acknowledge(self, provider: Actor, report_id: str, now: Optional[datetime] = None) -> Report:
        def _apply(report: Report) -> None:
            check_transition(
                "provider report", PROVIDER_REPORT_TRANSITIONS,
                report.provider_status, ProviderReportStatus.ACKNOWLEDGED,
            )
            report.provider_status = ProviderReportStatus.ACKNOWLEDGED
            report.acknowledged_at = now or utcnow()

        return await self._provider_update(provider, report_id, _apply)

    async def provider_add_note(self, provider: Actor, report_id: str, note: str, now: Optional[datetime] = None) -> Report:
        """Save a provider note. An unacknowledged report becomes acknowledged."""
        def _apply(report: Report) -> None:
            report.provider_note = note
            if report.provider_status is None:
                report.provider_status = ProviderReportStatus.ACKNOWLEDGED
                report.acknowledged_at = now or utcnow()

        return await self._provider_update(provider, report_id, _apply)

    async def provider_resolve(
        self, provider: Actor, report_id: str, note: Optional[str] = None, now: Optional[datetime] = None
    ) -> Report:
        def _apply(report: Report) -> None:
            check_transition(
                "provider report", PROVIDER_REPORT_TRANSITIONS,
                report.provider_status, ProviderReportStatus.RESOLVED,
            )
            report.provider_status = ProviderReportStatus.RESOLVED
            report.provider_resolved_at = now or utcnow()
            if note:
                report.provider_note = note

        report = await self._provider_update(provider, report_id, _apply)
        provider_name = provider.company_name or provider.name or "Service Provider"

        if report.reporter_id != "guest":
            await self.notifier.notify(
                report.reporter_id,
                f"Your report \"{report.subject}\" has been resolved by {provider_name}. ✅",
                title="Report Resolved",
                type="report_resolved",
                status=NotificationStatus.SUCCESS,
                link="/dashboard/tourist",
            )
        await self.notifier.notify_admins(
            f"Provider {provider_name} resolved report: \"{report.subject}\"",
            title="Provider Resolved Report",
            type="report_resolved",
            link="/admin/reports",
        )
        return report
